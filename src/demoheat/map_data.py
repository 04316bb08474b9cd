"""CS2 map calibration for coordinate transformation.

To convert game coordinates to radar pixel coordinates:
    pixel_x = (game_x - pos_x) / scale
    pixel_y = (pos_y - game_y) / scale  # Y is inverted

Values come from the HLTV/awpy overview description files. Every
radar image is 1024x1024 pixels.

The registry is constructed explicitly and handed to the transformer,
so tests can substitute synthetic calibrations.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from demoheat.core.config import TransformConfig
from demoheat.core.constants import (
    DEFAULT_MAP_PREFIX,
    FALLBACK_IMAGE_HEIGHT,
    FALLBACK_IMAGE_WIDTH,
)

# pos_x, pos_y = game coordinates of the radar's top-left corner
# scale = game units per pixel
# inset_* = unusable border of the radar image, as a fraction of its size
# z_cutoff = world Z splitting upper (>=) and lower (<) floor
MAP_CALIBRATIONS: dict[str, dict[str, Any]] = {
    "de_dust2": {
        "name": "Dust II",
        "pos_x": -2476,
        "pos_y": 3239,
        "scale": 4.4,
        "rotate": 1,
        "zoom": 1.1,
    },
    "de_mirage": {
        "name": "Mirage",
        "pos_x": -3230,
        "pos_y": 1713,
        "scale": 5.0,
        "rotate": 0,
        "zoom": 0,
        "inset_left": 0.135,
        "inset_top": 0.08,
        "inset_right": 0.105,
        "inset_bottom": 0.08,
    },
    "de_inferno": {
        "name": "Inferno",
        "pos_x": -2087,
        "pos_y": 3870,
        "scale": 4.9,
    },
    "de_ancient": {
        "name": "Ancient",
        "pos_x": -2953,
        "pos_y": 2164,
        "scale": 5.0,
        "rotate": 0,
        "zoom": 0,
    },
    "de_anubis": {
        "name": "Anubis",
        "pos_x": -2796,
        "pos_y": 3328,
        "scale": 5.22,
    },
    "de_nuke": {
        "name": "Nuke",
        "pos_x": -3453,
        "pos_y": 2887,
        "scale": 7.0,
        "inset_left": 0.33,
        "inset_top": 0.2,
        "inset_right": 0.2,
        "inset_bottom": 0.2,
        "z_cutoff": -495.0,
    },
    "de_overpass": {
        "name": "Overpass",
        "pos_x": -4831,
        "pos_y": 1781,
        "scale": 5.2,
        "rotate": 0,
        "zoom": 0,
    },
    "de_vertigo": {
        "name": "Vertigo",
        "pos_x": -3168,
        "pos_y": 1762,
        "scale": 4.0,
        "inset_left": 0.1,
        "inset_top": 0.1,
        "inset_right": 0.2,
        "inset_bottom": 0.15,
        "z_cutoff": 11700.0,
    },
    "de_train": {
        "name": "Train",
        "pos_x": -2308,
        "pos_y": 2078,
        "scale": 4.082077,
        "z_cutoff": -50.0,
    },
    "de_cache": {
        "name": "Cache",
        "pos_x": -2000,
        "pos_y": 3250,
        "scale": 5.0,
    },
    "cs_office": {
        "name": "Office",
        "pos_x": -1838,
        "pos_y": 1858,
        "scale": 4.1,
    },
    "cs_italy": {
        "name": "Italy",
        "pos_x": -2647,
        "pos_y": 2592,
        "scale": 4.6,
    },
}


class CalibrationError(ValueError):
    """Raised when a calibration entry violates its invariants."""


@dataclass(frozen=True)
class Inset:
    """Unusable border of a radar image, as fractions of width/height."""

    left: float = 0.0
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not (self.left or self.top or self.right or self.bottom)


@dataclass(frozen=True)
class MapCalibration:
    """Physical calibration constants for one map."""

    map_id: str
    origin_x: float
    origin_y: float
    scale: float
    image_width: int = FALLBACK_IMAGE_WIDTH
    image_height: int = FALLBACK_IMAGE_HEIGHT
    rotate: int | None = None
    zoom: float | None = None
    inset: Inset | None = None
    floor_cutoff: float | None = None
    display_name: str = ""

    def __post_init__(self) -> None:
        if not self.scale > 0:
            raise CalibrationError(f"{self.map_id}: scale must be > 0, got {self.scale}")
        if self.rotate not in (None, 0, 1):
            raise CalibrationError(f"{self.map_id}: rotate must be 0 or 1, got {self.rotate}")
        if self.image_width <= 0 or self.image_height <= 0:
            raise CalibrationError(f"{self.map_id}: image size must be positive")
        if self.inset is not None:
            for side in (self.inset.left, self.inset.top, self.inset.right, self.inset.bottom):
                if not 0.0 <= side < 1.0:
                    raise CalibrationError(f"{self.map_id}: inset fractions must be in [0, 1)")
            if self.inset.left + self.inset.right >= 1.0 or self.inset.top + self.inset.bottom >= 1.0:
                raise CalibrationError(f"{self.map_id}: inset leaves no drawable area")

    @property
    def has_floors(self) -> bool:
        """True for maps split into an upper and a lower floor."""
        return self.floor_cutoff is not None

    @property
    def image_size(self) -> tuple[int, int]:
        return (self.image_width, self.image_height)

    @property
    def overlay_fields(self) -> list[str]:
        """Names of calibration fields only honored by the overlay transform."""
        fields = []
        if self.rotate:
            fields.append("rotate")
        if self.inset is not None and not self.inset.is_empty:
            fields.append("inset")
        if self.zoom:
            fields.append("zoom")
        return fields

    @classmethod
    def from_dict(cls, map_id: str, data: Mapping[str, Any]) -> MapCalibration:
        """Build a calibration from an overview-style dict (``pos_x``, ``inset_left``, ...)."""
        inset = None
        if any(key in data for key in ("inset_left", "inset_top", "inset_right", "inset_bottom")):
            inset = Inset(
                left=float(data.get("inset_left", 0.0)),
                top=float(data.get("inset_top", 0.0)),
                right=float(data.get("inset_right", 0.0)),
                bottom=float(data.get("inset_bottom", 0.0)),
            )
        z_cutoff = data.get("z_cutoff")
        zoom = data.get("zoom")
        rotate = data.get("rotate")
        return cls(
            map_id=map_id.lower().strip(),
            origin_x=float(data["pos_x"]),
            origin_y=float(data["pos_y"]),
            scale=float(data["scale"]),
            image_width=int(data.get("width", FALLBACK_IMAGE_WIDTH)),
            image_height=int(data.get("height", FALLBACK_IMAGE_HEIGHT)),
            rotate=int(rotate) if rotate is not None else None,
            zoom=float(zoom) if zoom is not None else None,
            inset=inset,
            floor_cutoff=float(z_cutoff) if z_cutoff is not None else None,
            display_name=str(data.get("name", "")),
        )


class MapCalibrationRegistry:
    """
    Immutable lookup table of map calibrations.

    Lookups are prefix-tolerant: ``"Mirage"``, ``" de_mirage "`` and
    ``"de_mirage"`` all resolve to the same entry.

    Example:
        >>> registry = MapCalibrationRegistry.default()
        >>> registry.lookup("mirage").scale
        5.0
        >>> registry.image_size("de_unknown")
        (1024, 1024)
    """

    def __init__(
        self,
        calibrations: Iterable[MapCalibration],
        prefix: str = DEFAULT_MAP_PREFIX,
        fallback_size: tuple[int, int] = (FALLBACK_IMAGE_WIDTH, FALLBACK_IMAGE_HEIGHT),
    ):
        self.prefix = prefix.lower()
        self.fallback_size = fallback_size
        self._by_id: Mapping[str, MapCalibration] = MappingProxyType(
            {calibration.map_id: calibration for calibration in calibrations}
        )

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Mapping[str, Any]], prefix: str = DEFAULT_MAP_PREFIX
    ) -> MapCalibrationRegistry:
        """Build a registry from ``{map_id: overview dict}``."""
        return cls(
            (MapCalibration.from_dict(map_id, entry) for map_id, entry in data.items()),
            prefix=prefix,
        )

    @classmethod
    def default(cls) -> MapCalibrationRegistry:
        """Registry over the built-in CS2 calibration table."""
        return get_default_registry()

    @classmethod
    def from_config(cls, config: TransformConfig) -> MapCalibrationRegistry:
        """Built-in table with the configured fallback raster size."""
        default = get_default_registry()
        fallback = (config.default_image_width, config.default_image_height)
        if fallback == default.fallback_size:
            return default
        return cls(default, prefix=default.prefix, fallback_size=fallback)

    def normalize(self, map_id: str | None) -> str | None:
        """Resolve any spelling of a map name to its registry key, or None if unknown."""
        if not map_id:
            return None
        name = str(map_id).lower().strip()
        candidates = [name]
        if name.startswith(self.prefix):
            candidates.append(name[len(self.prefix):])
        else:
            candidates.append(f"{self.prefix}{name}")
        for candidate in candidates:
            if candidate in self._by_id:
                return candidate
        return None

    def lookup(self, map_id: str | None) -> MapCalibration | None:
        """Calibration for a map, or None if the map is not calibrated."""
        key = self.normalize(map_id)
        if key is None:
            return None
        return self._by_id[key]

    def image_size(self, map_id: str | None) -> tuple[int, int]:
        """Radar (width, height) for a map, defaulting to the fallback raster."""
        calibration = self.lookup(map_id)
        if calibration is None:
            return self.fallback_size
        return calibration.image_size

    def has_floors(self, map_id: str | None) -> bool:
        calibration = self.lookup(map_id)
        return calibration is not None and calibration.has_floors

    def maps(self) -> list[str]:
        """Sorted list of calibrated map ids."""
        return sorted(self._by_id)

    def __contains__(self, map_id: object) -> bool:
        return isinstance(map_id, str) and self.normalize(map_id) is not None

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._by_id.values())


@lru_cache(maxsize=1)
def get_default_registry() -> MapCalibrationRegistry:
    """Built-in registry, constructed once. Registries are immutable, so sharing is safe."""
    return MapCalibrationRegistry.from_mapping(MAP_CALIBRATIONS)


def get_map_metadata(map_name: str) -> MapCalibration | None:
    """Get coordinate transformation metadata for a map from the built-in table.

    Args:
        map_name: Map name with or without 'de_' prefix

    Returns:
        MapCalibration, or None if unknown map
    """
    return get_default_registry().lookup(map_name)
