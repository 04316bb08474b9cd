"""
demoheat - Constants

Game constants and default tuning values shared across the replay pipeline.
"""

from enum import Enum, StrEnum


class Team(int, Enum):
    """CS2 team numbers as recorded in replay events."""

    UNASSIGNED = 0
    SPECTATOR = 1
    TERRORIST = 2
    CT = 3

    @classmethod
    def label(cls, team_num: int | None) -> str:
        """Short side label ("T"/"CT") for a raw team number."""
        if team_num == cls.TERRORIST:
            return "T"
        if team_num == cls.CT:
            return "CT"
        return "Unknown"


class Floor(StrEnum):
    """Vertical level of a point on maps with overlapping geometry."""

    UPPER = "upper"
    LOWER = "lower"


# Conventional map family prefix ("de_mirage" == "mirage")
DEFAULT_MAP_PREFIX = "de_"

# Radar raster used when a map has no calibration entry
FALLBACK_IMAGE_WIDTH = 1024
FALLBACK_IMAGE_HEIGHT = 1024

# Symmetric world window (+/- units) for the uncalibrated linear transform
FALLBACK_WORLD_EXTENT = 2500.0

# Roster reconciliation thresholds
MIN_MATCH_RATIO = 0.5
MAX_EXTRA_PLAYERS = 2
MAX_MISSING_PLAYERS = 2

# Sentinel strings some decoders emit instead of a missing value
NULL_SENTINELS = frozenset({"", "null", "undefined", "none", "nan"})
