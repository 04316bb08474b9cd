"""
Replay Decoder Boundary for CS2 Demo Files

Wraps demoparser2 and converts its loosely-shaped output (dicts, lists or
DataFrames whose columns depend on what was requested) into the explicit
value types in ``demoheat.core.models``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

import pandas as pd

from demoheat.core.models import RawEvent, RosterEntry
from demoheat.core.utils import normalize_platform_id, optional_str, timed

try:
    from demoparser2 import DemoParser as Demoparser2
except ImportError:
    Demoparser2 = None  # type: ignore

logger = logging.getLogger(__name__)

# Key spellings seen across decoder versions
MAP_NAME_KEYS = ("map_name", "mapName", "map")
ROSTER_ID_KEYS = ("steamid", "steam_id", "steamId", "xuid", "userId", "user_id")
ROSTER_NAME_KEYS = ("name", "playerName", "player_name")

# player_death props: "player" fields come back prefixed user_/attacker_
DEATH_PLAYER_FIELDS = ["X", "Y", "Z", "name", "team_num", "steamid"]
DEATH_OTHER_FIELDS = ["total_rounds_played"]


class DemoNotFoundError(FileNotFoundError):
    """The replay file is absent; nothing can be processed."""


class DecoderUnavailableError(ImportError):
    """demoparser2 is not installed."""


class ReplaySource(Protocol):
    """
    What the validator needs from a replay.

    Implementations must not raise for unreadable data: ``map_name`` returns
    None and ``roster`` returns an empty list instead.
    """

    def map_name(self) -> str | None: ...

    def roster(self) -> list[RosterEntry]: ...


def _is_id_column(column: Any) -> bool:
    name = str(column)
    return name in ROSTER_ID_KEYS or name.endswith("_steamid")


def _ids_as_strings(df: pd.DataFrame) -> pd.DataFrame:
    """
    Convert integer id columns (numpy or nullable) to the pandas string dtype.

    ``to_dict`` would otherwise hand out numpy integers, and a nullable id
    column must never be widened to float64.
    """
    columns = [c for c in df.columns if _is_id_column(c) and pd.api.types.is_integer_dtype(df[c])]
    if not columns:
        return df
    return df.astype({c: "string" for c in columns})


def _records(data: Any) -> list[dict[str, Any]]:
    """Normalize decoder output (DataFrame, list of dicts, single dict) to a list of dicts."""
    if data is None:
        return []
    if isinstance(data, pd.DataFrame):
        return _ids_as_strings(data).to_dict("records")
    if isinstance(data, Mapping):
        return [dict(data)]
    if isinstance(data, list):
        return [dict(row) for row in data if isinstance(row, Mapping)]
    logger.debug(f"Unsupported decoder output type: {type(data).__name__}")
    return []


def _first_present(record: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = optional_str(record.get(key))
        if value:
            return value
    return None


def extract_map_name(header: Any) -> str | None:
    """Map name from a decoder header, lower-cased and trimmed."""
    if isinstance(header, Mapping):
        name = _first_present(header, MAP_NAME_KEYS)
    else:
        name = next(
            (str(getattr(header, key)) for key in MAP_NAME_KEYS if getattr(header, key, None)),
            None,
        )
    return name.lower().strip() if name else None


def extract_roster(player_info: Any) -> list[RosterEntry]:
    """
    Roster from decoder player info.

    Entries without an id or a name are dropped; ids keep digits only;
    duplicates by id keep the first occurrence.
    """
    roster: list[RosterEntry] = []
    seen: set[str] = set()

    for record in _records(player_info):
        platform_id = normalize_platform_id(_first_present(record, ROSTER_ID_KEYS))
        name = _first_present(record, ROSTER_NAME_KEYS)
        if not platform_id or not name or platform_id in seen:
            continue
        seen.add(platform_id)
        roster.append(RosterEntry(platform_id=platform_id, name=name))

    return roster


class ReplayHandle:
    """
    A replay file on disk, decoded lazily through demoparser2.

    Example:
        >>> replay = ReplayHandle("match.dem")
        >>> replay.map_name()
        'de_mirage'
        >>> events = replay.death_events()
    """

    def __init__(self, demo_path: str | Path):
        """
        Args:
            demo_path: Path to the replay file

        Raises:
            DemoNotFoundError: if the file does not exist
        """
        self.demo_path = Path(demo_path)
        if not self.demo_path.is_file():
            raise DemoNotFoundError(f"Demo file not found: {demo_path}")
        self._parser: Any = None

    def _get_parser(self) -> Any:
        if self._parser is None:
            if Demoparser2 is None:
                raise DecoderUnavailableError(
                    "demoparser2 is required but not installed. Install with: pip install demoparser2"
                )
            self._parser = Demoparser2(str(self.demo_path))
        return self._parser

    def map_name(self) -> str | None:
        """Map declared in the replay header, or None if it cannot be read."""
        try:
            header = self._get_parser().parse_header()
        except DecoderUnavailableError:
            raise
        except Exception as e:
            logger.warning(f"Could not read header from {self.demo_path.name}: {e}")
            return None
        return extract_map_name(header)

    def roster(self) -> list[RosterEntry]:
        """Participants listed in the replay, or [] if they cannot be read."""
        try:
            player_info = self._get_parser().parse_player_info()
        except DecoderUnavailableError:
            raise
        except Exception as e:
            logger.warning(f"Could not read player info from {self.demo_path.name}: {e}")
            return []
        return extract_roster(player_info)

    @timed
    def death_events(self) -> list[RawEvent]:
        """
        All player_death records with victim/attacker position, name, id and team.

        Decoder failures propagate: without events there is nothing to aggregate.
        """
        data = self._get_parser().parse_event(
            "player_death",
            player=DEATH_PLAYER_FIELDS,
            other=DEATH_OTHER_FIELDS,
        )
        events = [RawEvent.from_record(record) for record in _records(data)]
        logger.info(f"Found {len(events)} player_death events in {self.demo_path.name}")
        return events
