"""
Replay Identity Validation

Checks that an uploaded replay belongs to the match it claims to be from,
by comparing the replay's own map and roster with the match record.

Roster reconciliation is heuristic: match records carry Steam ids (or,
when unavailable, platform-specific ids) while replays carry Steam ids and
in-game names. RosterMatchStrategy picks the better of id- and name-based
matching; ValidationPolicy holds the thresholds that turn counts into errors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from demoheat.core.config import ValidationConfig
from demoheat.core.constants import (
    DEFAULT_MAP_PREFIX,
    MAX_EXTRA_PLAYERS,
    MAX_MISSING_PLAYERS,
    MIN_MATCH_RATIO,
)
from demoheat.core.models import RosterEntry
from demoheat.core.schemas import ValidationResultDict
from demoheat.core.utils import normalize_name, normalize_platform_id, safe_divide
from demoheat.parser import ReplaySource

logger = logging.getLogger(__name__)

ERROR_NO_MAP = "could not determine map from replay"
ERROR_NO_ROSTER = "could not determine roster from replay"


class MatchMethod(StrEnum):
    ID = "id"
    NAME = "name"


@dataclass(frozen=True)
class RosterMatch:
    """Which identity field reconciled the rosters, and how many players matched."""

    method: MatchMethod
    matched_count: int


@dataclass(frozen=True)
class ValidationPolicy:
    """Thresholds for turning roster discrepancies into errors."""

    min_match_ratio: float = MIN_MATCH_RATIO
    max_extra_players: int = MAX_EXTRA_PLAYERS
    max_missing_players: int = MAX_MISSING_PLAYERS

    @classmethod
    def from_config(cls, config: ValidationConfig) -> ValidationPolicy:
        return cls(
            min_match_ratio=config.min_match_ratio,
            max_extra_players=config.max_extra_players,
            max_missing_players=config.max_missing_players,
        )


class RosterMatchStrategy:
    """
    Count replay participants found in the expected roster.

    Ids are compared first. When fewer than ``min_match_ratio`` of the
    expected ids are found and expected names are available, names are
    compared too and the larger count wins.
    """

    def __init__(self, min_match_ratio: float = MIN_MATCH_RATIO):
        self.min_match_ratio = min_match_ratio

    def match(
        self,
        replay_ids: set[str],
        replay_names: set[str],
        expected_ids: set[str],
        expected_names: set[str] | None,
    ) -> RosterMatch:
        id_count = len(replay_ids & expected_ids)
        if id_count < len(expected_ids) * self.min_match_ratio and expected_names is not None:
            name_count = len(replay_names & expected_names)
            if name_count > id_count:
                logger.info(f"Roster matched by name ({name_count}) instead of id ({id_count})")
                return RosterMatch(MatchMethod.NAME, name_count)
        return RosterMatch(MatchMethod.ID, id_count)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validation call."""

    is_valid: bool
    detected_map_name: str | None = None
    detected_roster: tuple[RosterEntry, ...] | None = None
    errors: tuple[str, ...] = field(default_factory=tuple)
    match: RosterMatch | None = None
    match_percentage: float | None = None

    def to_dict(self) -> ValidationResultDict:
        data: ValidationResultDict = {
            "is_valid": self.is_valid,
            "detected_map_name": self.detected_map_name,
            "detected_roster": (
                [entry.to_dict() for entry in self.detected_roster]
                if self.detected_roster is not None
                else None
            ),
            "errors": list(self.errors),
        }
        if self.match is not None:
            data["match_method"] = str(self.match.method)
            data["matched_count"] = self.match.matched_count
        if self.match_percentage is not None:
            data["match_percentage"] = round(self.match_percentage, 1)
        return data


def strip_map_prefix(map_name: str, prefix: str = DEFAULT_MAP_PREFIX) -> str:
    return map_name[len(prefix):] if map_name.startswith(prefix) else map_name


def maps_match(declared: str, expected: str, prefix: str = DEFAULT_MAP_PREFIX) -> bool:
    """Compare map names case-insensitively, treating the family prefix as optional."""
    declared = declared.lower().strip()
    expected = expected.lower().strip()
    return (
        declared == expected
        or strip_map_prefix(declared, prefix) == strip_map_prefix(expected, prefix)
        or declared == strip_map_prefix(expected, prefix)
        or expected == strip_map_prefix(declared, prefix)
    )


def split_roster(entries: Iterable[RosterEntry]) -> tuple[list[str], list[str]]:
    """Split roster entries into the parallel (ids, names) lists the validator takes."""
    ids: list[str] = []
    names: list[str] = []
    for entry in entries:
        if entry.platform_id:
            ids.append(entry.platform_id)
        if entry.name:
            names.append(entry.name)
    return ids, names


class ReplayIdentityValidator:
    """
    Decide whether a replay belongs to the claimed match.

    Never raises for malformed replay data: every problem becomes an entry
    in ``ValidationResult.errors``.

    Example:
        >>> validator = ReplayIdentityValidator()
        >>> result = validator.validate(replay, "de_mirage", steam_ids, nicknames)
        >>> if not result.is_valid:
        ...     print(result.errors)
    """

    def __init__(
        self,
        policy: ValidationPolicy | None = None,
        strategy: RosterMatchStrategy | None = None,
        map_prefix: str = DEFAULT_MAP_PREFIX,
    ):
        self.policy = policy or ValidationPolicy()
        self.strategy = strategy or RosterMatchStrategy(self.policy.min_match_ratio)
        self.map_prefix = map_prefix

    @classmethod
    def from_config(cls, config: ValidationConfig) -> ReplayIdentityValidator:
        return cls(policy=ValidationPolicy.from_config(config), map_prefix=config.map_prefix)

    def validate(
        self,
        replay: ReplaySource,
        expected_map: str,
        expected_ids: Sequence[str],
        expected_names: Sequence[str] | None = None,
    ) -> ValidationResult:
        """
        Check a replay against the match record.

        Args:
            replay: Replay exposing ``map_name()`` and ``roster()``
            expected_map: Map name from the match record
            expected_ids: Expected Steam/platform ids
            expected_names: Optional expected display names, for name fallback

        Returns:
            ValidationResult; ``detected_map_name`` is set whenever the replay
            declares a map, even if validation fails
        """
        errors: list[str] = []

        detected_map = replay.map_name()
        if not detected_map:
            errors.append(ERROR_NO_MAP)
        elif not maps_match(detected_map, expected_map or "", self.map_prefix):
            errors.append(f"replay map ({detected_map}) does not match expected map ({expected_map})")

        roster = replay.roster()
        match: RosterMatch | None = None
        percentage: float | None = None
        if not roster:
            errors.append(ERROR_NO_ROSTER)
        else:
            match, percentage = self._check_roster(roster, expected_ids, expected_names, errors)

        result = ValidationResult(
            is_valid=not errors,
            detected_map_name=detected_map or None,
            detected_roster=tuple(roster) if roster else None,
            errors=tuple(errors),
            match=match,
            match_percentage=percentage,
        )
        if not result.is_valid:
            logger.warning(f"Replay failed validation: {'; '.join(errors)}")
        return result

    def _check_roster(
        self,
        roster: Sequence[RosterEntry],
        expected_ids: Sequence[str],
        expected_names: Sequence[str] | None,
        errors: list[str],
    ) -> tuple[RosterMatch, float]:
        replay_ids = {normalize_platform_id(entry.platform_id) for entry in roster}
        replay_names = {normalize_name(entry.name) for entry in roster}
        expected_id_set = {normalize_platform_id(pid) for pid in expected_ids}
        expected_name_set = (
            {normalize_name(name) for name in expected_names} if expected_names is not None else None
        )

        match = self.strategy.match(replay_ids, replay_names, expected_id_set, expected_name_set)

        extras = [
            entry
            for entry in roster
            if normalize_platform_id(entry.platform_id) not in expected_id_set
            and not (expected_name_set is not None and normalize_name(entry.name) in expected_name_set)
        ]
        missing = [pid for pid in expected_ids if normalize_platform_id(pid) not in replay_ids]

        if len(extras) > self.policy.max_extra_players:
            errors.append(
                f"replay contains players not in the match: {', '.join(e.name for e in extras)}"
            )
        if len(missing) > self.policy.max_missing_players:
            errors.append(f"replay is missing players from the match ({len(missing)} players)")

        total_expected = max(len(expected_id_set), len(expected_name_set or ()))
        percentage = safe_divide(match.matched_count, total_expected) * 100
        if percentage < self.policy.min_match_ratio * 100:
            errors.append(
                f"player match is only {percentage:.1f}% ({match.matched_count}/{total_expected})"
            )

        return match, percentage
