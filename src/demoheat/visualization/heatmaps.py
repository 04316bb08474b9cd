"""
Per-player Kill/Death Heatmap Aggregation.

Groups a replay's player_death records by player and turns every
recorded victim/attacker position into a radar point, suitable for
persistence and frontend rendering.

Uses coordinate transforms from radar.py (CoordinateTransformer).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from demoheat.core.constants import Floor
from demoheat.core.models import EventSide, RawEvent, WorldPoint
from demoheat.core.schemas import HeatmapPointDict, PlayerHeatmapDict
from demoheat.map_data import MapCalibrationRegistry
from demoheat.visualization.radar import CoordinateTransformer, TransformMode

logger = logging.getLogger(__name__)


class GroupBy(StrEnum):
    """Which identity field keys a player's accumulator."""

    NAME = "name"
    PLATFORM_ID = "platform_id"


@dataclass(frozen=True)
class HeatmapPoint:
    """A single kill or death on the radar."""

    x: float
    y: float
    floor: Floor = Floor.UPPER
    team_num: int | None = None  # 2 = T, 3 = CT

    def to_dict(self) -> HeatmapPointDict:
        data: HeatmapPointDict = {"x": self.x, "y": self.y, "layer": str(self.floor)}
        if self.team_num is not None:
            data["team_num"] = self.team_num
        return data


@dataclass(frozen=True)
class PlayerHeatmapData:
    """All kill and death points of one player in one replay."""

    player_id: str
    player_name: str
    deaths: tuple[HeatmapPoint, ...] = ()
    kills: tuple[HeatmapPoint, ...] = ()

    def filter_team(self, team_num: int) -> PlayerHeatmapData:
        """Copy keeping only points recorded while on ``team_num``."""
        return PlayerHeatmapData(
            player_id=self.player_id,
            player_name=self.player_name,
            deaths=tuple(p for p in self.deaths if p.team_num == team_num),
            kills=tuple(p for p in self.kills if p.team_num == team_num),
        )

    def to_dict(self) -> PlayerHeatmapDict:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "deaths": [p.to_dict() for p in self.deaths],
            "kills": [p.to_dict() for p in self.kills],
        }


@dataclass
class _PlayerAccumulator:
    key: str
    display_name: str
    platform_id: str | None
    deaths: list[tuple[WorldPoint, int | None]] = field(default_factory=list)
    kills: list[tuple[WorldPoint, int | None]] = field(default_factory=list)


class PlayerEventAggregator:
    """
    Builds per-player kill/death point sets from raw player_death events.

    Each event contributes at most one death (to the victim) and at most one
    kill (to the attacker). A side with no identity or an incomplete position
    is skipped. Players are emitted in order of first appearance.

    Example:
        >>> aggregator = PlayerEventAggregator()
        >>> players = aggregator.aggregate(events, "de_mirage")
        >>> for player in players:
        ...     print(player.player_name, len(player.kills), len(player.deaths))
    """

    def __init__(
        self,
        transformer: CoordinateTransformer | None = None,
        group_by: GroupBy | str = GroupBy.NAME,
    ):
        self.transformer = transformer or CoordinateTransformer()
        self.group_by = GroupBy(group_by)

    def aggregate(self, events: Iterable[RawEvent], map_id: str | None) -> list[PlayerHeatmapData]:
        """
        Group events by player and transform every position.

        Args:
            events: player_death records from the replay
            map_id: Map used for the coordinate transform

        Returns:
            One PlayerHeatmapData per player, in first-appearance order
        """
        players: dict[str, _PlayerAccumulator] = {}
        event_count = 0

        for event in events:
            event_count += 1
            self._collect(players, event.victim, "deaths")
            self._collect(players, event.attacker, "kills")

        result = [self._build(acc, map_id) for acc in players.values()]

        logger.info(
            f"Aggregated {event_count} events into {len(result)} players "
            f"({sum(len(p.deaths) for p in result)} deaths, "
            f"{sum(len(p.kills) for p in result)} kills) on {map_id}"
        )
        return result

    def _collect(self, players: dict[str, _PlayerAccumulator], side: EventSide, bucket: str) -> None:
        key = side.identity_key(prefer_name=self.group_by is GroupBy.NAME)
        position = side.position
        if key is None or position is None:
            return

        acc = players.get(key)
        if acc is None:
            acc = _PlayerAccumulator(
                key=key,
                display_name=side.name or key,
                platform_id=side.platform_id,
            )
            players[key] = acc
        elif acc.platform_id is None and side.platform_id:
            acc.platform_id = side.platform_id

        getattr(acc, bucket).append((position, side.team_num))

    def _transform_all(
        self, samples: list[tuple[WorldPoint, int | None]], map_id: str | None
    ) -> tuple[HeatmapPoint, ...]:
        points = []
        for world_point, team_num in samples:
            image_point = self.transformer.transform(map_id, world_point)
            if image_point is None:
                continue
            points.append(
                HeatmapPoint(
                    x=image_point.x,
                    y=image_point.y,
                    floor=image_point.floor,
                    team_num=team_num,
                )
            )
        return tuple(points)

    def _build(self, acc: _PlayerAccumulator, map_id: str | None) -> PlayerHeatmapData:
        deaths = self._transform_all(acc.deaths, map_id)
        kills = self._transform_all(acc.kills, map_id)
        player_id = acc.platform_id or acc.key
        logger.debug(f"Player {acc.display_name} ({player_id}): {len(deaths)} deaths, {len(kills)} kills")
        return PlayerHeatmapData(
            player_id=player_id,
            player_name=acc.display_name,
            deaths=deaths,
            kills=kills,
        )


def build_player_heatmaps(
    events: Iterable[RawEvent],
    map_id: str | None,
    registry: MapCalibrationRegistry | None = None,
    mode: TransformMode | str = TransformMode.OFFSET,
    group_by: GroupBy | str = GroupBy.NAME,
) -> list[PlayerHeatmapData]:
    """
    Convenience wrapper around PlayerEventAggregator.

    Args:
        events: player_death records
        map_id: Map name for coordinate transform (e.g. ``"de_dust2"``)
        registry: Calibration table (defaults to the built-in one)
        mode: Transform routine, ``"offset"`` or ``"overlay"``
        group_by: ``"name"`` or ``"platform_id"``

    Returns:
        One PlayerHeatmapData per player
    """
    transformer = CoordinateTransformer(registry=registry, mode=mode)
    return PlayerEventAggregator(transformer, group_by=group_by).aggregate(events, map_id)
