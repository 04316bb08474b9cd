"""Tests for the demoheat command line interface."""

import json
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
from typer.testing import CliRunner

from demoheat import __version__
from demoheat.cli import app
from demoheat.core.config import reset_config
from demoheat.integrations.faceit import ExpectedMatch, FACEITError

runner = CliRunner()

STEAM_IDS = [str(76561198000000000 + i) for i in range(10)]
NAMES = [f"Player{i}" for i in range(10)]


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FACEIT_API_KEY", raising=False)
    monkeypatch.delenv("DEMOHEAT_TRANSFORM_MODE", raising=False)
    yield
    reset_config()


@pytest.fixture
def demo_file(tmp_path):
    path = tmp_path / "match.dem"
    path.write_bytes(b"PBDEMS2\x00")
    return path


@pytest.fixture
def mock_parser():
    with patch("demoheat.parser.Demoparser2") as parser_cls:
        parser = MagicMock()
        parser.parse_header.return_value = {"map_name": "de_mirage"}
        parser.parse_player_info.return_value = pd.DataFrame({"steamid": STEAM_IDS, "name": NAMES})
        parser.parse_event.return_value = pd.DataFrame(
            {
                "user_name": ["Player0"],
                "user_steamid": [STEAM_IDS[0]],
                "user_team_num": [3],
                "user_X": [-3230.0],
                "user_Y": [1713.0],
                "user_Z": [0.0],
                "attacker_name": ["Player5"],
                "attacker_steamid": [STEAM_IDS[5]],
                "attacker_team_num": [2],
                "attacker_X": [-2730.0],
                "attacker_Y": [713.0],
                "attacker_Z": [0.0],
            }
        )
        parser_cls.return_value = parser
        yield parser


def _id_args(ids):
    args = []
    for steam_id in ids:
        args += ["--id", steam_id]
    return args


class TestBasicCommands:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_maps(self):
        result = runner.invoke(app, ["maps"])
        assert result.exit_code == 0
        assert "de_mirage" in result.output
        assert "de_nuke" in result.output

    def test_transform(self):
        result = runner.invoke(app, ["transform", "--", "de_mirage", "-3230", "1713", "0"])
        assert result.exit_code == 0
        assert "x=0.00 y=0.00 floor=upper" in result.output

    def test_transform_lower_floor(self):
        result = runner.invoke(app, ["transform", "--", "nuke", "-3453", "2887", "-600"])
        assert result.exit_code == 0
        assert "floor=lower" in result.output

    def test_transform_overlay_mode(self):
        result = runner.invoke(
            app, ["transform", "--mode", "overlay", "--", "de_mirage", "-3230", "1713"]
        )
        assert result.exit_code == 0
        assert "x=138.24 y=81.92" in result.output

    def test_transform_non_finite(self):
        result = runner.invoke(app, ["transform", "de_mirage", "nan", "0"])
        assert result.exit_code == 1

    def test_config_file(self, tmp_path):
        config = tmp_path / "custom.yaml"
        config.write_text("transform:\n  mode: overlay\n")
        result = runner.invoke(
            app, ["--config", str(config), "transform", "--", "de_mirage", "-3230", "1713"]
        )
        assert result.exit_code == 0
        assert "x=138.24" in result.output


class TestValidateCommand:
    def test_valid(self, demo_file, mock_parser):
        result = runner.invoke(app, ["validate", str(demo_file), "--map", "mirage", *_id_args(STEAM_IDS)])
        assert result.exit_code == 0
        assert "100.0%" in result.output

    def test_invalid_exits_one(self, demo_file, mock_parser):
        result = runner.invoke(app, ["validate", str(demo_file), "--map", "de_nuke", *_id_args(STEAM_IDS)])
        assert result.exit_code == 1
        assert "does not match expected map" in result.output

    def test_json_output(self, demo_file, mock_parser):
        result = runner.invoke(
            app, ["validate", str(demo_file), "--map", "de_mirage", "--json", *_id_args(STEAM_IDS)]
        )
        assert result.exit_code == 0
        assert '"is_valid": true' in result.output
        assert '"match_method": "id"' in result.output

    def test_missing_file_exits_two(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.dem"), "--map", "de_mirage"])
        assert result.exit_code == 2
        assert "not found" in result.output


class TestHeatmapCommand:
    def test_heatmap_export(self, demo_file, mock_parser, tmp_path):
        output = tmp_path / "out.json"
        result = runner.invoke(
            app,
            ["heatmap", str(demo_file), "--map", "de_mirage", "--output", str(output), *_id_args(STEAM_IDS)],
        )

        assert result.exit_code == 0
        assert "Player0" in result.output

        data = json.loads(output.read_text())
        assert data["map"] == "de_mirage"
        assert data["validation"]["is_valid"] is True
        player0, player5 = data["players"]
        assert player0["deaths"] == [{"x": 0.0, "y": 0.0, "layer": "upper", "team_num": 3}]
        assert player5["kills"] == [{"x": 100.0, "y": 200.0, "layer": "upper", "team_num": 2}]

    def test_rejected_exits_one(self, demo_file, mock_parser):
        result = runner.invoke(app, ["heatmap", str(demo_file), "--map", "de_nuke", *_id_args(STEAM_IDS)])
        assert result.exit_code == 1
        assert "does not match the claimed match" in result.output

    def test_no_strict_continues(self, demo_file, mock_parser):
        result = runner.invoke(
            app, ["heatmap", str(demo_file), "--map", "de_nuke", "--no-strict", *_id_args(STEAM_IDS)]
        )
        assert result.exit_code == 0
        assert "Player5" in result.output

    def test_without_roster(self, demo_file, mock_parser):
        result = runner.invoke(app, ["heatmap", str(demo_file)])
        assert result.exit_code == 0
        assert "de_mirage" in result.output

    def test_faceit_match(self, demo_file, mock_parser):
        expected = ExpectedMatch("1-abc", "de_mirage", list(STEAM_IDS), list(NAMES))
        with patch("demoheat.cli.FACEITClient") as client_cls:
            client_cls.return_value.fetch_expected_match.return_value = expected
            result = runner.invoke(app, ["heatmap", str(demo_file), "--match-id", "1-abc"])

        assert result.exit_code == 0
        client_cls.return_value.fetch_expected_match.assert_called_once_with("1-abc")

    def test_faceit_unavailable_continues(self, demo_file, mock_parser):
        with patch("demoheat.cli.FACEITClient") as client_cls:
            client_cls.return_value.fetch_expected_match.side_effect = FACEITError("FACEIT API key required")
            result = runner.invoke(app, ["heatmap", str(demo_file), "--match-id", "1-abc"])

        assert result.exit_code == 0
        assert "continuing without validation" in result.output

    def test_missing_file_exits_two(self, tmp_path):
        result = runner.invoke(app, ["heatmap", str(tmp_path / "nope.dem")])
        assert result.exit_code == 2
