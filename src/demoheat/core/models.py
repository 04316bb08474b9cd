"""
Value types shared by the transformer, validator and aggregator.

Raw decoder rows are loosely shaped (columns appear or vanish depending on
which props were requested), so they are converted into these explicit
optional-field records once, at the boundary, via ``RawEvent.from_record``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from demoheat.core.constants import Floor
from demoheat.core.utils import optional_float, optional_int, optional_str


@dataclass(frozen=True)
class WorldPoint:
    """A 3D position in game world units."""

    x: float
    y: float
    z: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y) and math.isfinite(self.z)


@dataclass(frozen=True)
class ImagePoint:
    """A 2D position on a map raster (0,0 = top-left) plus its floor."""

    x: float
    y: float
    floor: Floor = Floor.UPPER

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class RosterEntry:
    """One participant as seen in a replay or in a match record."""

    platform_id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"platform_id": self.platform_id, "name": self.name}


@dataclass(frozen=True)
class EventSide:
    """Victim or attacker half of a kill/death record. Every field may be absent."""

    name: str | None = None
    platform_id: str | None = None
    team_num: int | None = None
    x: float | None = None
    y: float | None = None
    z: float | None = None

    @property
    def position(self) -> WorldPoint | None:
        """World position, or None unless all three components were recorded."""
        if self.x is None or self.y is None or self.z is None:
            return None
        return WorldPoint(self.x, self.y, self.z)

    def identity_key(self, prefer_name: bool = True) -> str | None:
        """Grouping key for this side, or None when it carries no identity at all."""
        if prefer_name:
            return self.name or self.platform_id
        return self.platform_id or self.name

    @classmethod
    def from_record(cls, record: Mapping[str, Any], prefix: str) -> EventSide:
        """
        Build one side from a flat decoder row.

        Args:
            record: Row with ``{prefix}name``, ``{prefix}steamid``,
                ``{prefix}team_num`` and ``{prefix}X/Y/Z`` columns
            prefix: ``"user_"`` for the victim, ``"attacker_"`` for the attacker
        """
        return cls(
            name=optional_str(record.get(f"{prefix}name")),
            platform_id=optional_str(record.get(f"{prefix}steamid")),
            team_num=optional_int(record.get(f"{prefix}team_num")),
            x=optional_float(record.get(f"{prefix}X")),
            y=optional_float(record.get(f"{prefix}Y")),
            z=optional_float(record.get(f"{prefix}Z")),
        )


@dataclass(frozen=True)
class RawEvent:
    """A single player_death record."""

    victim: EventSide
    attacker: EventSide
    round_num: int = 0
    tick: int = 0

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> RawEvent:
        """
        Convert a demoparser2 ``player_death`` row.

        demoparser2 names the victim ``user_*`` and the attacker ``attacker_*``.
        """
        round_value = record.get("round")
        if round_value is None:
            round_value = record.get("total_rounds_played")
        return cls(
            victim=EventSide.from_record(record, "user_"),
            attacker=EventSide.from_record(record, "attacker_"),
            round_num=optional_int(round_value) or 0,
            tick=optional_int(record.get("tick")) or 0,
        )
