"""Tests for the demoparser2 boundary."""

from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from demoheat.core.models import RawEvent, RosterEntry
from demoheat.parser import (
    DEATH_OTHER_FIELDS,
    DEATH_PLAYER_FIELDS,
    DecoderUnavailableError,
    DemoNotFoundError,
    ReplayHandle,
    extract_map_name,
    extract_roster,
)


@pytest.fixture
def demo_file(tmp_path):
    path = tmp_path / "match.dem"
    path.write_bytes(b"PBDEMS2\x00")
    return path


@pytest.fixture
def mock_parser():
    """Patch the demoparser2 class and yield the parser instance it returns."""
    with patch("demoheat.parser.Demoparser2") as parser_cls:
        instance = MagicMock()
        parser_cls.return_value = instance
        yield instance


class TestExtractMapName:
    def test_header_dict(self):
        assert extract_map_name({"map_name": " DE_Mirage "}) == "de_mirage"

    def test_alternate_keys(self):
        assert extract_map_name({"mapName": "de_nuke"}) == "de_nuke"
        assert extract_map_name({"map": "de_ancient"}) == "de_ancient"

    def test_attribute_header(self):
        header = MagicMock(spec=["map_name"])
        header.map_name = "de_inferno"
        assert extract_map_name(header) == "de_inferno"

    @pytest.mark.parametrize("header", [{}, {"map_name": ""}, {"map_name": "null"}, None])
    def test_missing(self, header):
        assert extract_map_name(header) is None


class TestExtractRoster:
    def test_dataframe(self):
        df = pd.DataFrame(
            {
                "steamid": ["76561198000000001", "76561198000000002"],
                "name": ["alice", "bob"],
                "team_number": [2, 3],
            }
        )
        assert extract_roster(df) == [
            RosterEntry("76561198000000001", "alice"),
            RosterEntry("76561198000000002", "bob"),
        ]

    def test_list_of_dicts_with_alternate_keys(self):
        rows = [{"steamId": "STEAM-123", "playerName": "carol"}]
        assert extract_roster(rows) == [RosterEntry("123", "carol")]

    def test_incomplete_entries_dropped(self):
        rows = [
            {"steamid": "1", "name": "alice"},
            {"steamid": None, "name": "ghost"},
            {"steamid": "2", "name": "null"},
            {"steamid": "bot", "name": "BOT Eli"},
        ]
        assert extract_roster(rows) == [RosterEntry("1", "alice")]

    def test_duplicates_keep_first(self):
        rows = [{"steamid": "1", "name": "alice"}, {"steamid": "1", "name": "alice2"}]
        assert extract_roster(rows) == [RosterEntry("1", "alice")]

    def test_float_ids(self):
        """Ids that went through a float column keep their digits."""
        assert extract_roster([{"steamid": 123.0, "name": "a"}]) == [RosterEntry("123", "a")]

    @pytest.mark.parametrize("data", [None, [], "garbage", 42])
    def test_unusable_input(self, data):
        assert extract_roster(data) == []


class TestReplayHandle:
    """Tests for ReplayHandle."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(DemoNotFoundError):
            ReplayHandle(tmp_path / "nope.dem")

    def test_missing_file_is_file_not_found(self):
        assert issubclass(DemoNotFoundError, FileNotFoundError)

    def test_decoder_not_installed(self, demo_file):
        with patch("demoheat.parser.Demoparser2", None):
            replay = ReplayHandle(demo_file)
            with pytest.raises(DecoderUnavailableError):
                replay.map_name()
            with pytest.raises(DecoderUnavailableError):
                replay.roster()

    def test_map_name(self, demo_file, mock_parser):
        mock_parser.parse_header.return_value = {"map_name": "de_mirage", "server_name": "x"}
        assert ReplayHandle(demo_file).map_name() == "de_mirage"

    def test_header_failure_returns_none(self, demo_file, mock_parser):
        mock_parser.parse_header.side_effect = RuntimeError("corrupt header")
        assert ReplayHandle(demo_file).map_name() is None

    def test_roster(self, demo_file, mock_parser):
        mock_parser.parse_player_info.return_value = pd.DataFrame(
            {"steamid": ["1", "2"], "name": ["alice", "bob"]}
        )
        assert ReplayHandle(demo_file).roster() == [RosterEntry("1", "alice"), RosterEntry("2", "bob")]

    def test_roster_failure_returns_empty(self, demo_file, mock_parser):
        mock_parser.parse_player_info.side_effect = RuntimeError("corrupt")
        assert ReplayHandle(demo_file).roster() == []

    def test_parser_created_once(self, demo_file):
        with patch("demoheat.parser.Demoparser2") as parser_cls:
            parser_cls.return_value.parse_header.return_value = {"map_name": "de_nuke"}
            parser_cls.return_value.parse_player_info.return_value = []
            replay = ReplayHandle(demo_file)
            replay.map_name()
            replay.roster()
            parser_cls.assert_called_once_with(str(demo_file))

    def test_death_events(self, demo_file, mock_parser):
        mock_parser.parse_event.return_value = pd.DataFrame(
            {
                "tick": [1000, 2000],
                "total_rounds_played": [0, 3],
                "user_name": ["alice", "bob"],
                "user_steamid": ["1", "2"],
                "user_team_num": [3, 2],
                "user_X": [100.0, 200.0],
                "user_Y": [-50.0, 75.5],
                "user_Z": [10.0, -600.0],
                "attacker_name": ["bob", np.nan],
                "attacker_steamid": ["2", np.nan],
                "attacker_team_num": [2.0, np.nan],
                "attacker_X": [1.0, np.nan],
                "attacker_Y": [2.0, np.nan],
                "attacker_Z": [3.0, np.nan],
            }
        )
        events = ReplayHandle(demo_file).death_events()

        mock_parser.parse_event.assert_called_once_with(
            "player_death", player=DEATH_PLAYER_FIELDS, other=DEATH_OTHER_FIELDS
        )
        assert len(events) == 2

        first, second = events
        assert first.victim.name == "alice"
        assert first.victim.platform_id == "1"
        assert first.victim.team_num == 3
        assert first.victim.position.x == 100.0
        assert first.attacker.name == "bob"
        assert first.attacker.team_num == 2
        assert first.tick == 1000

        # world damage: attacker has no identity
        assert second.round_num == 3
        assert second.attacker.name is None
        assert second.attacker.platform_id is None
        assert second.attacker.identity_key() is None

    def test_death_event_failure_propagates(self, demo_file, mock_parser):
        mock_parser.parse_event.side_effect = RuntimeError("bad demo")
        with pytest.raises(RuntimeError):
            ReplayHandle(demo_file).death_events()

    def test_no_events(self, demo_file, mock_parser):
        mock_parser.parse_event.return_value = pd.DataFrame()
        assert ReplayHandle(demo_file).death_events() == []


class TestSteamIdColumns:
    """17-digit Steam ids must come out digit-exact or not at all."""

    STEAM_ID = 76561198000000011

    def test_nan_bearing_float_column_drops_ids(self, demo_file, mock_parser):
        """float64 has already rounded the id, so it is treated as unknown."""
        mock_parser.parse_event.return_value = pd.DataFrame(
            {"user_name": ["alice", "bob"], "user_steamid": [self.STEAM_ID, np.nan]}
        )
        events = ReplayHandle(demo_file).death_events()

        assert [e.victim.platform_id for e in events] == [None, None]
        assert [e.victim.identity_key() for e in events] == ["alice", "bob"]

    def test_nullable_integer_column_keeps_digits(self, demo_file, mock_parser):
        mock_parser.parse_event.return_value = pd.DataFrame(
            {
                "user_name": ["alice", "bob"],
                "user_steamid": pd.array([self.STEAM_ID, None], dtype="Int64"),
            }
        )
        events = ReplayHandle(demo_file).death_events()
        assert [e.victim.platform_id for e in events] == ["76561198000000011", None]

    def test_uint64_column_keeps_digits(self, demo_file, mock_parser):
        mock_parser.parse_event.return_value = pd.DataFrame(
            {
                "attacker_name": ["bob"],
                "attacker_steamid": np.array([self.STEAM_ID], dtype=np.uint64),
            }
        )
        [event] = ReplayHandle(demo_file).death_events()
        assert event.attacker.platform_id == "76561198000000011"

    def test_integer_roster_ids(self):
        df = pd.DataFrame({"steamid": [self.STEAM_ID, self.STEAM_ID + 1], "name": ["alice", "bob"]})
        assert [entry.platform_id for entry in extract_roster(df)] == [
            "76561198000000011",
            "76561198000000012",
        ]

    def test_float_roster_ids_dropped(self):
        df = pd.DataFrame({"steamid": [float(self.STEAM_ID), np.nan], "name": ["alice", "bob"]})
        assert extract_roster(df) == []


class TestRawEvent:
    """Tests for RawEvent.from_record."""

    def test_missing_columns(self):
        event = RawEvent.from_record({"user_name": "alice"})
        assert event.victim.name == "alice"
        assert event.victim.position is None
        assert event.attacker.identity_key() is None
        assert event.round_num == 0

    def test_round_column_preferred(self):
        event = RawEvent.from_record({"round": 5, "total_rounds_played": 4})
        assert event.round_num == 5

    def test_sentinel_strings(self):
        event = RawEvent.from_record({"attacker_name": "undefined", "attacker_steamid": "null"})
        assert event.attacker.name is None
        assert event.attacker.platform_id is None

    def test_nan_coordinates_kept_for_transformer(self):
        event = RawEvent.from_record({"user_X": float("nan"), "user_Y": 0.0, "user_Z": 0.0})
        assert event.victim.position is not None
        assert not event.victim.position.is_finite
