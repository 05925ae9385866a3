"""variantlab CLI - typer application entry point."""

from __future__ import annotations

import asyncio
import atexit
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from variantlab.config import ConfigLoadError, VariantLabConfig, load_config
from variantlab.errors import SessionNotInitializedError, VariantLabError
from variantlab.features import BridgeExplorer, FilterStack, GridExplorer
from variantlab.filters.definitions import FilterLayer, parse_filter_id
from variantlab.observability import (
    GenerationCallLogger,
    close_file_logging,
    configure_logging,
    get_logger,
)
from variantlab.pipeline.tasks import TaskStatus
from variantlab.providers import ProviderError, create_text_generator
from variantlab.providers.model_info import KNOWN_MODELS
from variantlab.session.models import Adjectives
from variantlab.session.store import NAMESPACES, open_session_store
from variantlab.spaces.coordinates import GRID_RADIUS, MAX_RING, Coordinate

if TYPE_CHECKING:
    from variantlab.pipeline.tasks import RunReport
    from variantlab.providers import LoggingGenerator, RoutingGenerator
    from variantlab.session.store import FallbackSessionStore

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="vlab",
    help="variantlab: explore AI-generated text variations.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)

_STATUS_MARKS = {
    TaskStatus.COMPLETE: "[green]●[/green]",
    TaskStatus.GENERATING: "[yellow]◐[/yellow]",
    TaskStatus.ERROR: "[red]✗[/red]",
    TaskStatus.PENDING: "[dim]·[/dim]",
}

# Global state for logging flags (set by callback, used by commands)
_verbose: int = 0
_log_dir: Path | None = None
_storage: Path | None = None
_config_path: Path | None = None


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log-dir",
            help="Write debug.jsonl and generation_calls.jsonl to this directory.",
        ),
    ] = None,
    storage: Annotated[
        Path | None,
        typer.Option(
            "--storage",
            help="SQLite file for sessions (default: config or VL_STORAGE_PATH).",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", help="Config file (default: ~/.config/variantlab/config.yaml)."),
    ] = None,
) -> None:
    """variantlab: explore AI-generated text variations."""
    global _verbose, _log_dir, _storage, _config_path
    _verbose = verbose
    _log_dir = log_dir
    _storage = storage
    _config_path = config

    if log_dir is not None:
        configure_logging(verbosity=verbose, log_to_file=True, log_dir=log_dir)
        atexit.register(close_file_logging)
    else:
        configure_logging(verbosity=verbose)


def _load_config() -> VariantLabConfig:
    try:
        config = load_config(_config_path).validate()
    except (ConfigLoadError, VariantLabError) as e:
        raise _fail(e) from None
    if _storage is not None:
        config.storage_path = _storage
    return config


def _open_store(config: VariantLabConfig) -> FallbackSessionStore:
    store = open_session_store(config.storage_path)
    warning = store.storage_warning()
    if warning:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    return store


def _create_generator(
    config: VariantLabConfig, feature: str
) -> RoutingGenerator | LoggingGenerator:
    call_logger = GenerationCallLogger(_log_dir) if _log_dir is not None else None
    return create_text_generator(config.request_timeout, call_logger=call_logger, feature=feature)


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    return typer.Exit(1)


def _print_report(report: RunReport | None) -> None:
    if report is None:
        return
    console.print(
        f"[dim]{len(report.completed)} generated, {len(report.skipped)} cached, "
        f"{len(report.failed)} failed · {report.calls} calls · "
        f"{report.input_tokens + report.output_tokens} tokens · "
        f"{report.duration_seconds:.1f}s[/dim]"
    )
    for key, message in report.failed.items():
        console.print(f"  [red]✗[/red] {key}: {escape(message)}")


def _grid_table(explorer: GridExplorer) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("y\\x", justify="right")
    for x in range(-GRID_RADIUS, GRID_RADIUS + 1):
        table.add_column(str(x), justify="center")
    for y in range(GRID_RADIUS, -GRID_RADIUS - 1, -1):
        marks = [
            _STATUS_MARKS[explorer.get_status(Coordinate(x, y).key)]
            for x in range(-GRID_RADIUS, GRID_RADIUS + 1)
        ]
        table.add_row(str(y), *marks)
    return table


@app.command()
def version() -> None:
    """Show version information."""
    from variantlab import __version__

    console.print(f"variantlab v{__version__}")


@app.command()
def models() -> None:
    """List selectable models."""
    table = Table(title="Models")
    table.add_column("Model")
    table.add_column("Provider")
    table.add_column("API model")
    table.add_column("Concurrency", justify="right")
    for profile in KNOWN_MODELS.values():
        table.add_row(
            profile.model_id, profile.provider, profile.api_model, str(profile.max_concurrency)
        )
    console.print(table)


@app.command()
def grid(
    text: Annotated[str, typer.Argument(help="Source text (50-1000 characters).")],
    x_pos: Annotated[str, typer.Option("--x-pos", help="Adjective toward +x.")] = "",
    x_neg: Annotated[str, typer.Option("--x-neg", help="Adjective toward -x.")] = "",
    y_pos: Annotated[str, typer.Option("--y-pos", help="Adjective toward +y.")] = "",
    y_neg: Annotated[str, typer.Option("--y-neg", help="Adjective toward -y.")] = "",
    model: Annotated[str | None, typer.Option("--model", "-m", help="Model id.")] = None,
    rings: Annotated[
        int, typer.Option("--rings", min=0, max=MAX_RING, help="Generate rings 0..N.")
    ] = MAX_RING,
) -> None:
    """Generate the adjective grid, center outward."""
    config = _load_config()
    adjectives = Adjectives(x_positive=x_pos, x_negative=x_neg, y_positive=y_pos, y_negative=y_neg)

    async def _run() -> GridExplorer:
        generator = _create_generator(config, "grid")
        explorer = GridExplorer(_open_store(config), generator, config)
        try:
            explorer.setup(text, adjectives, model or config.model)
            with console.status("Generating grid..."):
                await explorer.start_generation(max_ring=rings)
        finally:
            await generator.close()
        return explorer

    try:
        explorer = asyncio.run(_run())
    except VariantLabError as e:
        raise _fail(e) from None

    console.print(_grid_table(explorer))
    _print_report(explorer.last_report)


@app.command()
def explore(
    coordinate: Annotated[str, typer.Argument(help="Grid coordinate as 'x,y'.")],
) -> None:
    """Show one grid variant, generating it if needed."""
    config = _load_config()

    async def _run() -> str:
        generator = _create_generator(config, "grid")
        explorer = GridExplorer(_open_store(config), generator, config)
        try:
            if explorer.resume() is None:
                raise SessionNotInitializedError("grid")
            return await explorer.request_variant(coordinate, prefetch=False)
        finally:
            await generator.close()

    try:
        text = asyncio.run(_run())
    except (VariantLabError, ProviderError) as e:
        raise _fail(e) from None

    console.print(Panel(text, title=f"({coordinate})"))


@app.command()
def bridge(
    text_a: Annotated[str, typer.Argument(help="Left anchor text (position 0).")],
    text_b: Annotated[str, typer.Argument(help="Right anchor text (position 10).")],
    model: Annotated[str | None, typer.Option("--model", "-m", help="Model id.")] = None,
) -> None:
    """Generate the nine bridge positions between two texts."""
    config = _load_config()

    async def _run() -> BridgeExplorer:
        generator = _create_generator(config, "bridge")
        explorer = BridgeExplorer(_open_store(config), generator, config)
        try:
            explorer.setup(text_a, text_b, model or config.model)
            with console.status("Generating bridge..."):
                await explorer.start_generation()
        finally:
            await generator.close()
        return explorer

    try:
        explorer = asyncio.run(_run())
    except VariantLabError as e:
        raise _fail(e) from None

    table = Table(title="Bridge")
    table.add_column("Pos", justify="right")
    table.add_column("Status")
    table.add_column("Text")
    for position, content in enumerate(explorer.positions()):
        status = _STATUS_MARKS[explorer.get_status(str(position))]
        table.add_row(str(position), status, content or (explorer.get_error(str(position)) or ""))
    console.print(table)
    _print_report(explorer.last_report)


def _parse_layer(value: str) -> FilterLayer:
    filter_id, _, intensity = value.partition(":")
    try:
        return FilterLayer(parse_filter_id(filter_id.strip()), int(intensity) if intensity else 50)
    except ValueError as e:
        raise typer.BadParameter(f"{value!r}: intensity must be an integer") from e
    except VariantLabError as e:
        raise typer.BadParameter(str(e)) from e


@app.command()
def filters(
    text: Annotated[str, typer.Argument(help="Original text (50-1000 characters).")],
    layer: Annotated[
        list[str] | None,
        typer.Option(
            "--layer",
            "-l",
            help="Layer as id[:intensity], repeatable, listed top to bottom.",
        ),
    ] = None,
    model: Annotated[str | None, typer.Option("--model", "-m", help="Model id.")] = None,
) -> None:
    """Apply a filter stack and print the result."""
    config = _load_config()
    layers = [_parse_layer(value) for value in layer or []]

    async def _run() -> tuple[FilterStack, str]:
        generator = _create_generator(config, "filters")
        stack = FilterStack(_open_store(config), generator, config)
        try:
            stack.setup(text, model or config.model)
            stack.replace_layers(layers)
            with console.status(f"Applying {stack.estimate_calls()} step(s)..."):
                result = await stack.apply()
        finally:
            await generator.close()
        return stack, result

    try:
        stack, result = asyncio.run(_run())
    except VariantLabError as e:
        raise _fail(e) from None

    console.print(Panel(result, title=stack.summary()))
    _print_report(stack.last_report)


@app.command()
def reset(
    feature: Annotated[
        str, typer.Argument(help="grid, bridge, filters or all.")
    ] = "all",
) -> None:
    """Discard stored sessions."""
    if feature != "all" and feature not in NAMESPACES:
        console.print(f"[red]Error:[/red] Unknown feature '{feature}'")
        raise typer.Exit(1)
    config = _load_config()
    store = _open_store(config)
    targets = NAMESPACES if feature == "all" else (feature,)
    for namespace in targets:
        store.clear(namespace)
    log.info("sessions_reset", namespaces=list(targets))
    console.print(f"[green]✓[/green] Cleared: {', '.join(targets)}")
