"""
demoheat Data Contracts

JSON shapes handed to the persistence layer and to clients.
If you need a field that doesn't exist here, ADD IT HERE FIRST,
then update the producer.

Producers: visualization/heatmaps.py, validation.py, pipeline/orchestrator.py
Consumers: persistence collaborator, frontend heatmap canvas
"""

from __future__ import annotations

from typing import NotRequired, TypedDict


class HeatmapPointDict(TypedDict):
    """One transformed kill or death position."""

    x: float
    y: float
    team_num: NotRequired[int]  # 2 = T, 3 = CT
    layer: str  # "upper" or "lower"


class PlayerHeatmapDict(TypedDict):
    """All kill/death positions of one player in one replay."""

    player_id: str  # platform (Steam) id, or the grouping key if none was seen
    player_name: str
    deaths: list[HeatmapPointDict]
    kills: list[HeatmapPointDict]


class RosterEntryDict(TypedDict):
    platform_id: str
    name: str


class ValidationResultDict(TypedDict):
    """Outcome of checking a replay against its claimed match."""

    is_valid: bool
    detected_map_name: str | None
    detected_roster: list[RosterEntryDict] | None
    errors: list[str]
    match_method: NotRequired[str]  # "id" or "name"
    matched_count: NotRequired[int]
    match_percentage: NotRequired[float]


class ReplayResultDict(TypedDict):
    """Full pipeline output for one uploaded replay."""

    map: str
    validation: ValidationResultDict | None
    players: list[PlayerHeatmapDict]
