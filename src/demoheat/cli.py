"""
demoheat CLI - Command Line Interface for replay heatmaps

Provides commands for:
- Listing map calibrations
- Transforming single world points
- Validating a replay against its match record
- Building per-player kill/death heatmaps
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from demoheat import __version__
from demoheat.core.config import DemoheatConfig, get_config, load_config, set_config
from demoheat.core.constants import Team
from demoheat.core.logging_setup import setup_logging
from demoheat.core.models import WorldPoint
from demoheat.integrations.faceit import FACEITClient, FACEITError
from demoheat.map_data import MapCalibrationRegistry
from demoheat.parser import DecoderUnavailableError, DemoNotFoundError, ReplayHandle
from demoheat.pipeline.orchestrator import ReplayOrchestrator, ReplayRejectedError, ReplayResult
from demoheat.validation import ReplayIdentityValidator, ValidationResult
from demoheat.visualization.radar import CoordinateTransformer, TransformMode

app = typer.Typer(
    name="demoheat",
    help="Validate CS2 replays against their match and build per-player kill/death heatmaps",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]demoheat[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (.yaml, .toml or .json)",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """demoheat - CS2 replay validation and heatmaps"""
    config = load_config(config_file)
    set_config(config)
    setup_logging(config.logging, verbose=verbose)


def _print_validation(result: ValidationResult) -> None:
    table = Table(title="Replay Validation", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Valid", "[green]yes[/green]" if result.is_valid else "[red]no[/red]")
    table.add_row("Detected map", result.detected_map_name or "-")
    table.add_row("Replay players", str(len(result.detected_roster or ())))
    if result.match is not None:
        table.add_row("Match method", str(result.match.method))
        table.add_row("Matched players", str(result.match.matched_count))
    if result.match_percentage is not None:
        table.add_row("Match", f"{result.match_percentage:.1f}%")
    console.print(table)

    for error in result.errors:
        console.print(f"[red]-[/red] {error}")


def _print_players(result: ReplayResult) -> None:
    table = Table(title=f"Heatmap players on {result.map_name or 'unknown map'}")
    table.add_column("Player", style="cyan")
    table.add_column("Platform ID")
    table.add_column("Kills", justify="right")
    table.add_column("Deaths", justify="right")
    table.add_column("Side", justify="right")

    for player in result.players:
        teams = {p.team_num for p in (*player.kills, *player.deaths) if p.team_num is not None}
        sides = "/".join(sorted(Team.label(t) for t in teams)) or "-"
        table.add_row(player.player_name, player.player_id, str(len(player.kills)), str(len(player.deaths)), sides)

    console.print(table)


@app.command()
def maps() -> None:
    """List calibrated maps and their transform constants."""
    registry = MapCalibrationRegistry.default()

    table = Table(title="Map Calibrations")
    table.add_column("Map", style="cyan")
    table.add_column("Origin", justify="right")
    table.add_column("Scale", justify="right")
    table.add_column("Floor cutoff", justify="right")
    table.add_column("Overlay-only fields")

    for map_id in registry.maps():
        calibration = registry.lookup(map_id)
        table.add_row(
            map_id,
            f"({calibration.origin_x:g}, {calibration.origin_y:g})",
            f"{calibration.scale:g}",
            f"{calibration.floor_cutoff:g}" if calibration.floor_cutoff is not None else "-",
            ", ".join(calibration.overlay_fields) or "-",
        )

    console.print(table)


@app.command()
def transform(
    map_name: str = typer.Argument(..., help="Map name, e.g. de_mirage or mirage"),
    x: float = typer.Argument(..., help="World X"),
    y: float = typer.Argument(..., help="World Y"),
    z: float = typer.Argument(0.0, help="World Z"),
    mode: Optional[TransformMode] = typer.Option(None, "--mode", "-m", help="offset or overlay"),
) -> None:
    """Transform one world point to radar pixels."""
    config = get_config()
    transformer = CoordinateTransformer(
        registry=MapCalibrationRegistry.from_config(config.transform),
        mode=mode or config.transform.mode,
        fallback_extent=config.transform.fallback_extent,
    )
    point = transformer.transform(map_name, WorldPoint(x, y, z))
    if point is None:
        console.print("[red]Point is not finite and cannot be transformed[/red]")
        raise typer.Exit(1)
    console.print(f"x={point.x:.2f} y={point.y:.2f} floor={point.floor}")


@app.command()
def validate(
    demo_path: Path = typer.Argument(..., help="Path to the .dem file", dir_okay=False),
    map_name: str = typer.Option(..., "--map", help="Expected map from the match record"),
    ids: list[str] = typer.Option([], "--id", help="Expected Steam id (repeatable)"),
    names: list[str] = typer.Option([], "--name", help="Expected nickname (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Check that a replay belongs to the claimed match. Exits 1 if it does not."""
    config = get_config()
    try:
        replay = ReplayHandle(demo_path)
        result = ReplayIdentityValidator.from_config(config.validation).validate(
            replay, map_name, ids, names or None
        )
    except (DemoNotFoundError, DecoderUnavailableError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if as_json:
        console.print_json(json.dumps(result.to_dict()))
    else:
        _print_validation(result)

    if not result.is_valid:
        raise typer.Exit(1)


def _expected_from_faceit(config: DemoheatConfig, match_id: str) -> tuple[str | None, list[str], list[str]]:
    try:
        expected = FACEITClient(config=config.faceit).fetch_expected_match(match_id)
    except FACEITError as e:
        console.print(f"[yellow]Warning:[/yellow] {e}; continuing without validation")
        return None, [], []
    if expected is None:
        console.print(f"[yellow]Warning:[/yellow] match {match_id} not found; continuing without validation")
        return None, [], []
    return expected.map_name or None, expected.platform_ids, expected.names


@app.command()
def heatmap(
    demo_path: Path = typer.Argument(..., help="Path to the .dem file", dir_okay=False),
    map_name: Optional[str] = typer.Option(None, "--map", help="Expected map (replay header wins)"),
    match_id: Optional[str] = typer.Option(
        None, "--match-id", help="FACEIT match id to validate against"
    ),
    ids: list[str] = typer.Option([], "--id", help="Expected Steam id (repeatable)"),
    names: list[str] = typer.Option([], "--name", help="Expected nickname (repeatable)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON result to this file"),
    strict: bool = typer.Option(True, "--strict/--no-strict", help="Reject replays that fail validation"),
) -> None:
    """Build per-player kill/death heatmap points for a replay."""
    config = get_config()

    expected_map, expected_ids, expected_names = map_name, list(ids), list(names)
    if match_id:
        faceit_map, faceit_ids, faceit_names = _expected_from_faceit(config, match_id)
        expected_map = expected_map or faceit_map
        expected_ids = expected_ids or faceit_ids
        expected_names = expected_names or faceit_names

    orchestrator = ReplayOrchestrator(config=config)
    try:
        result = orchestrator.process(
            demo_path,
            expected_map,
            expected_ids,
            expected_names or None,
            strict=strict,
        )
    except ReplayRejectedError as e:
        console.print("[red]Replay does not match the claimed match[/red]")
        _print_validation(e.validation)
        raise typer.Exit(1)
    except (DemoNotFoundError, DecoderUnavailableError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if result.validation is not None and not result.validation.is_valid:
        _print_validation(result.validation)

    _print_players(result)

    if output:
        output.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        logger.info(f"Wrote {len(result.players)} players to {output}")
        console.print(f"\n[green]Results exported to:[/green] {output}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
