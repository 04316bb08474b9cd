"""
Radar Coordinate Transformation for CS2 Replay Heatmaps

Map coordinate systems:
- CS2 uses Source 2 coordinates (X, Y, Z in game units)
- Radar images have their own coordinate systems defined by pos_x, pos_y, scale
- Transformation: pixel = (game_coord - pos) / scale, with Y inverted

Two routines exist for calibrated maps:
- OFFSET: origin offset and scale only. This is what persisted heatmaps use.
- OVERLAY: OFFSET followed by the calibration's inset remap and rotation,
  as used for drawing on cropped/rotated radar art.
Both are kept because it is unconfirmed whether OFFSET ignoring inset/rotate
for dust2, mirage, nuke and vertigo is intentional. ``zoom`` is honored by neither.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import StrEnum

from demoheat.core.constants import FALLBACK_WORLD_EXTENT, Floor
from demoheat.core.models import ImagePoint, WorldPoint
from demoheat.map_data import MapCalibration, MapCalibrationRegistry

logger = logging.getLogger(__name__)


class TransformMode(StrEnum):
    """Which calibrated routine to apply."""

    OFFSET = "offset"
    OVERLAY = "overlay"


class CoordinateTransformer:
    """
    Transforms CS2 game coordinates to radar pixel coordinates.

    CS2 coordinate system:
    - X increases going East
    - Y increases going North
    - Z increases going Up

    Radar coordinate system:
    - X increases going right (pixel columns)
    - Y increases going down (pixel rows)

    Maps without a calibration get a linear fallback over a symmetric
    +/- ``fallback_extent`` world window, so every point stays plottable.

    Example:
        >>> transformer = CoordinateTransformer()
        >>> transformer.transform("de_mirage", WorldPoint(-3230, 1713, 0))
        ImagePoint(x=0.0, y=0.0, floor=<Floor.UPPER: 'upper'>)
    """

    def __init__(
        self,
        registry: MapCalibrationRegistry | None = None,
        mode: TransformMode | str = TransformMode.OFFSET,
        fallback_extent: float = FALLBACK_WORLD_EXTENT,
    ):
        """
        Args:
            registry: Calibration table (defaults to the built-in CS2 table)
            mode: ``"offset"`` or ``"overlay"``
            fallback_extent: Half-width of the world window used for unknown maps
        """
        if fallback_extent <= 0:
            raise ValueError(f"fallback_extent must be > 0, got {fallback_extent}")
        self.registry = registry if registry is not None else MapCalibrationRegistry.default()
        self.mode = TransformMode(mode)
        self.fallback_extent = fallback_extent
        # Log-once bookkeeping only; never affects results
        self._reported: set[str] = set()

    def transform(self, map_id: str | None, point: WorldPoint) -> ImagePoint | None:
        """
        Transform one world point to image space.

        Args:
            map_id: Map name in any spelling (``"de_nuke"``, ``"Nuke"``)
            point: World-space position

        Returns:
            ImagePoint, or None when the input has a non-finite component
        """
        if not point.is_finite:
            logger.debug(f"Dropping non-finite point {point} on {map_id}")
            return None

        calibration = self.registry.lookup(map_id)
        if calibration is None:
            self._report_once(str(map_id), f"No calibration for map {map_id!r}, using linear fallback")
            return self._fallback(map_id, point)

        pixel_x = (point.x - calibration.origin_x) / calibration.scale
        pixel_y = (calibration.origin_y - point.y) / calibration.scale

        if self.mode is TransformMode.OVERLAY:
            pixel_x, pixel_y = self._apply_overlay(calibration, pixel_x, pixel_y)
        elif calibration.overlay_fields:
            self._report_once(
                calibration.map_id,
                f"{calibration.map_id}: offset transform ignores {', '.join(calibration.overlay_fields)}",
            )

        return ImagePoint(x=pixel_x, y=pixel_y, floor=self._floor(calibration, point.z))

    def transform_many(self, map_id: str | None, points: Iterable[WorldPoint]) -> list[ImagePoint]:
        """Transform a sequence of points, dropping any that cannot be transformed."""
        transformed = []
        for point in points:
            image_point = self.transform(map_id, point)
            if image_point is not None:
                transformed.append(image_point)
        return transformed

    def floor_for(self, map_id: str | None, z: float) -> Floor:
        """Floor classification for a world Z on a map."""
        calibration = self.registry.lookup(map_id)
        if calibration is None:
            return Floor.UPPER
        return self._floor(calibration, z)

    def image_to_world(self, map_id: str | None, pixel_x: float, pixel_y: float) -> tuple[float, float]:
        """
        Invert the offset transform (or the linear fallback).

        Args:
            map_id: Map name
            pixel_x: Radar pixel X
            pixel_y: Radar pixel Y

        Returns:
            Tuple of (game_x, game_y)
        """
        calibration = self.registry.lookup(map_id)
        if calibration is None:
            width, height = self.registry.image_size(map_id)
            span = 2 * self.fallback_extent
            game_x = (pixel_x / width) * span - self.fallback_extent
            game_y = (1 - pixel_y / height) * span - self.fallback_extent
            return (game_x, game_y)

        game_x = pixel_x * calibration.scale + calibration.origin_x
        game_y = calibration.origin_y - pixel_y * calibration.scale
        return (game_x, game_y)

    def _fallback(self, map_id: str | None, point: WorldPoint) -> ImagePoint:
        width, height = self.registry.image_size(map_id)
        span = 2 * self.fallback_extent
        normalized_x = (point.x + self.fallback_extent) / span
        normalized_y = (point.y + self.fallback_extent) / span
        return ImagePoint(
            x=normalized_x * width,
            y=(1 - normalized_y) * height,
            floor=Floor.UPPER,
        )

    @staticmethod
    def _floor(calibration: MapCalibration, z: float) -> Floor:
        if calibration.floor_cutoff is None:
            return Floor.UPPER
        return Floor.UPPER if z >= calibration.floor_cutoff else Floor.LOWER

    @staticmethod
    def _apply_overlay(calibration: MapCalibration, pixel_x: float, pixel_y: float) -> tuple[float, float]:
        width, height = calibration.image_size
        inset = calibration.inset

        if inset is not None and not inset.is_empty:
            left = inset.left * width
            top = inset.top * height
            drawable_width = width - left - inset.right * width
            drawable_height = height - top - inset.bottom * height
            pixel_x = left + (pixel_x / width) * drawable_width
            pixel_y = top + (pixel_y / height) * drawable_height

        if calibration.rotate == 1:
            # 90 degrees counter-clockwise
            pixel_x, pixel_y = pixel_y, width - pixel_x

        return pixel_x, pixel_y

    def _report_once(self, key: str, message: str) -> None:
        if key not in self._reported:
            self._reported.add(key)
            logger.debug(message)


def transform_point(
    map_id: str | None,
    x: float,
    y: float,
    z: float = 0.0,
    mode: TransformMode | str = TransformMode.OFFSET,
) -> ImagePoint | None:
    """Convenience wrapper: transform one point with the built-in calibration table."""
    return CoordinateTransformer(mode=mode).transform(map_id, WorldPoint(float(x), float(y), float(z)))
