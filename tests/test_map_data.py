"""Tests for the map calibration registry."""

import pytest

from demoheat.core.config import TransformConfig
from demoheat.map_data import (
    MAP_CALIBRATIONS,
    CalibrationError,
    Inset,
    MapCalibration,
    MapCalibrationRegistry,
    get_default_registry,
    get_map_metadata,
)


class TestMapCalibration:
    """Tests for MapCalibration construction and invariants."""

    def test_from_dict_reads_overview_fields(self):
        """Overview-style keys map onto calibration fields."""
        calibration = MapCalibration.from_dict("DE_Nuke", MAP_CALIBRATIONS["de_nuke"])
        assert calibration.map_id == "de_nuke"
        assert calibration.origin_x == -3453
        assert calibration.origin_y == 2887
        assert calibration.scale == 7.0
        assert calibration.floor_cutoff == -495.0
        assert calibration.inset == Inset(left=0.33, top=0.2, right=0.2, bottom=0.2)
        assert calibration.image_size == (1024, 1024)

    def test_optional_fields_default_to_none(self):
        """Maps without rotate/zoom/inset/cutoff leave them unset."""
        calibration = MapCalibration.from_dict("de_inferno", MAP_CALIBRATIONS["de_inferno"])
        assert calibration.rotate is None
        assert calibration.zoom is None
        assert calibration.inset is None
        assert calibration.floor_cutoff is None
        assert calibration.has_floors is False
        assert calibration.overlay_fields == []

    def test_overlay_fields_lists_ignored_settings(self):
        """dust2 carries rotate and zoom, mirage carries an inset."""
        dust2 = MapCalibration.from_dict("de_dust2", MAP_CALIBRATIONS["de_dust2"])
        mirage = MapCalibration.from_dict("de_mirage", MAP_CALIBRATIONS["de_mirage"])
        assert dust2.overlay_fields == ["rotate", "zoom"]
        assert mirage.overlay_fields == ["inset"]

    @pytest.mark.parametrize("scale", [0, -1.5])
    def test_non_positive_scale_rejected(self, scale):
        with pytest.raises(CalibrationError):
            MapCalibration(map_id="de_test", origin_x=0, origin_y=0, scale=scale)

    def test_invalid_rotate_rejected(self):
        with pytest.raises(CalibrationError):
            MapCalibration(map_id="de_test", origin_x=0, origin_y=0, scale=1.0, rotate=2)

    def test_inset_without_drawable_area_rejected(self):
        with pytest.raises(CalibrationError):
            MapCalibration(
                map_id="de_test",
                origin_x=0,
                origin_y=0,
                scale=1.0,
                inset=Inset(left=0.6, right=0.5),
            )

    def test_calibration_error_is_value_error(self):
        assert issubclass(CalibrationError, ValueError)


class TestMapCalibrationRegistry:
    """Tests for registry lookup and fallbacks."""

    def test_default_registry_has_all_maps(self):
        registry = get_default_registry()
        assert len(registry) == len(MAP_CALIBRATIONS)
        assert registry.maps() == sorted(MAP_CALIBRATIONS)

    def test_default_registry_is_shared(self):
        assert MapCalibrationRegistry.default() is get_default_registry()

    @pytest.mark.parametrize("spelling", ["de_mirage", "mirage", "Mirage", "  DE_MIRAGE  "])
    def test_lookup_is_prefix_and_case_tolerant(self, spelling):
        calibration = get_default_registry().lookup(spelling)
        assert calibration is not None
        assert calibration.map_id == "de_mirage"
        assert calibration.origin_x == -3230
        assert calibration.origin_y == 1713
        assert calibration.scale == 5.0

    def test_lookup_unprefixed_key(self):
        """cs_ maps are stored without the de_ prefix."""
        assert get_default_registry().lookup("cs_office").scale == 4.1

    @pytest.mark.parametrize("map_id", ["de_unknown", "", None])
    def test_unknown_map_returns_none(self, map_id):
        registry = get_default_registry()
        assert registry.lookup(map_id) is None
        assert registry.normalize(map_id) is None

    def test_image_size_fallback(self):
        registry = get_default_registry()
        assert registry.image_size("de_unknown") == (1024, 1024)
        assert registry.image_size("de_mirage") == (1024, 1024)

    def test_custom_fallback_size(self):
        registry = MapCalibrationRegistry([], fallback_size=(2048, 512))
        assert registry.image_size("anything") == (2048, 512)

    def test_has_floors(self):
        registry = get_default_registry()
        assert registry.has_floors("nuke")
        assert registry.has_floors("de_vertigo")
        assert registry.has_floors("de_train")
        assert not registry.has_floors("de_mirage")
        assert not registry.has_floors("de_unknown")

    def test_contains(self):
        registry = get_default_registry()
        assert "mirage" in registry
        assert "de_unknown" not in registry
        assert 42 not in registry

    def test_synthetic_registry(self):
        """Test doubles can be built from plain dicts with a custom prefix."""
        registry = MapCalibrationRegistry.from_mapping(
            {"ar_test": {"pos_x": 0, "pos_y": 100, "scale": 2.0, "width": 512, "height": 256}},
            prefix="ar_",
        )
        assert registry.lookup("test").scale == 2.0
        assert registry.image_size("ar_test") == (512, 256)
        assert "de_mirage" not in registry

    def test_from_config(self):
        default = get_default_registry()
        assert MapCalibrationRegistry.from_config(TransformConfig()) is default

        config = TransformConfig(default_image_width=2048, default_image_height=2048)
        registry = MapCalibrationRegistry.from_config(config)
        assert registry.image_size("de_unknown") == (2048, 2048)
        assert registry.image_size("de_mirage") == (1024, 1024)
        assert registry.maps() == default.maps()

    def test_registry_is_read_only(self):
        registry = get_default_registry()
        with pytest.raises(TypeError):
            registry._by_id["de_new"] = None  # type: ignore[index]

    def test_get_map_metadata(self):
        assert get_map_metadata("train").floor_cutoff == -50.0
        assert get_map_metadata("de_unknown") is None
