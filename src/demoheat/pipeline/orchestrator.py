"""
Replay Processing Orchestrator - validate an uploaded replay, then build heatmaps.

Order of work:
1. Precondition: the replay file exists (hard failure otherwise)
2. Validate the replay's map and roster against the match record, when one is known
3. Pick the map label (the replay's own header wins over the match record)
4. Aggregate per-player kill/death points on that map
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from demoheat.core.config import DemoheatConfig
from demoheat.core.schemas import ReplayResultDict
from demoheat.map_data import MapCalibrationRegistry
from demoheat.parser import DemoNotFoundError, ReplayHandle
from demoheat.validation import ReplayIdentityValidator, ValidationResult
from demoheat.visualization.heatmaps import PlayerEventAggregator, PlayerHeatmapData
from demoheat.visualization.radar import CoordinateTransformer

logger = logging.getLogger(__name__)


class ReplayRejectedError(Exception):
    """The replay does not belong to the claimed match."""

    def __init__(self, validation: ValidationResult, expected_map: str | None = None):
        self.validation = validation
        self.expected_map = expected_map
        super().__init__("replay does not match the claimed match: " + "; ".join(validation.errors))


@dataclass(frozen=True)
class ReplayResult:
    """Everything produced for one replay."""

    map_name: str
    players: tuple[PlayerHeatmapData, ...] = field(default_factory=tuple)
    validation: ValidationResult | None = None

    @property
    def total_deaths(self) -> int:
        return sum(len(p.deaths) for p in self.players)

    @property
    def total_kills(self) -> int:
        return sum(len(p.kills) for p in self.players)

    def to_dict(self) -> ReplayResultDict:
        return {
            "map": self.map_name,
            "validation": self.validation.to_dict() if self.validation is not None else None,
            "players": [p.to_dict() for p in self.players],
        }


class ReplayOrchestrator:
    """
    Runs validation and aggregation for replay files.

    Components are built once from the configuration and hold no per-replay
    state, so one orchestrator can process any number of replays.
    """

    def __init__(
        self,
        config: DemoheatConfig | None = None,
        registry: MapCalibrationRegistry | None = None,
        replay_factory: Callable[[Path], ReplayHandle] = ReplayHandle,
    ):
        self.config = config or DemoheatConfig()
        self.registry = (
            registry if registry is not None else MapCalibrationRegistry.from_config(self.config.transform)
        )
        self._replay_factory = replay_factory

        transformer = CoordinateTransformer(
            registry=self.registry,
            mode=self.config.transform.mode,
            fallback_extent=self.config.transform.fallback_extent,
        )
        self.validator = ReplayIdentityValidator.from_config(self.config.validation)
        self.aggregator = PlayerEventAggregator(transformer, group_by=self.config.aggregation.group_by)

    def process(
        self,
        demo_path: str | Path,
        expected_map: str | None = None,
        expected_ids: Sequence[str] = (),
        expected_names: Sequence[str] | None = None,
        *,
        strict: bool = True,
    ) -> ReplayResult:
        """
        Process one replay.

        Args:
            demo_path: Path to the replay file
            expected_map: Map from the match record, if known
            expected_ids: Expected Steam/platform ids; validation is skipped when empty
            expected_names: Expected nicknames for the name-based fallback
            strict: Raise ReplayRejectedError on failed validation instead of continuing

        Returns:
            ReplayResult

        Raises:
            DemoNotFoundError: the replay file does not exist
            ReplayRejectedError: validation failed and ``strict`` is set
        """
        path = Path(demo_path)
        if not path.is_file():
            raise DemoNotFoundError(f"Demo file not found: {path}")

        replay = self._replay_factory(path)
        validation: ValidationResult | None = None

        if expected_ids:
            validation = self.validator.validate(replay, expected_map or "", expected_ids, expected_names)
            if not validation.is_valid and strict:
                raise ReplayRejectedError(validation, expected_map)
            detected_map = validation.detected_map_name
        else:
            logger.info(f"No expected roster for {path.name}, skipping validation")
            detected_map = replay.map_name()

        map_name = detected_map or expected_map or ""
        if detected_map and expected_map and detected_map != expected_map:
            logger.info(f"Using map from replay header: {detected_map} (match record: {expected_map})")

        players = self.aggregator.aggregate(replay.death_events(), map_name)
        result = ReplayResult(map_name=map_name, players=tuple(players), validation=validation)

        logger.info(
            f"Processed {path.name}: {len(result.players)} players, "
            f"{result.total_deaths} deaths, {result.total_kills} kills on {map_name or 'unknown map'}"
        )
        return result


def process_replay(
    demo_path: str | Path,
    expected_map: str | None = None,
    expected_ids: Sequence[str] = (),
    expected_names: Sequence[str] | None = None,
    *,
    strict: bool = True,
    registry: MapCalibrationRegistry | None = None,
    config: DemoheatConfig | None = None,
) -> ReplayResult:
    """Convenience function: build a ReplayOrchestrator and process one replay."""
    orchestrator = ReplayOrchestrator(config=config, registry=registry)
    return orchestrator.process(
        demo_path,
        expected_map,
        expected_ids,
        expected_names,
        strict=strict,
    )
