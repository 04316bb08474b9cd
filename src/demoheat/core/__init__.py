"""
demoheat Core - Foundation modules shared by every pipeline stage.

This module contains the fundamental components:
- constants: Team numbers, floors, default thresholds
- config: Application configuration management
- models: Value types (world/image points, roster entries, raw events)
- schemas: JSON data contracts for module boundaries
- utils: Identity normalization and decoder-value coercion
"""

from demoheat.core.constants import (
    DEFAULT_MAP_PREFIX,
    FALLBACK_IMAGE_HEIGHT,
    FALLBACK_IMAGE_WIDTH,
    FALLBACK_WORLD_EXTENT,
    Floor,
    Team,
)
from demoheat.core.models import (
    EventSide,
    ImagePoint,
    RawEvent,
    RosterEntry,
    WorldPoint,
)
from demoheat.core.schemas import (
    HeatmapPointDict,
    PlayerHeatmapDict,
    ReplayResultDict,
    ValidationResultDict,
)

__all__ = [
    # Enums
    "Floor",
    "Team",
    # Constants
    "DEFAULT_MAP_PREFIX",
    "FALLBACK_IMAGE_HEIGHT",
    "FALLBACK_IMAGE_WIDTH",
    "FALLBACK_WORLD_EXTENT",
    # Models
    "EventSide",
    "ImagePoint",
    "RawEvent",
    "RosterEntry",
    "WorldPoint",
    # Schemas (data contracts)
    "HeatmapPointDict",
    "PlayerHeatmapDict",
    "ReplayResultDict",
    "ValidationResultDict",
]
