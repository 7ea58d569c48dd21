"""plantwatch CLI interface.

Commands:
- watch: Keep diagram images in sync with their sources (default command)
- render: Render diagram sources once
- clean: Remove rendered diagram images
- check: Validate external tool availability
- init: Write a default configuration file

Global options:
- --config: Path to configuration file
- --verbose: Show log levels and ignored events
- --quiet: Suppress status messages
- --ci: Emit JSON log lines
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from plantwatch import __version__
from plantwatch.config import (
    CONFIG_DIR_NAME,
    PlantWatchConfig,
    create_default_config,
    load_config,
)
from plantwatch.dispatcher import ChangeEvent, ChangeKind
from plantwatch.utils.logging import configure_from_cli, get_logger
from plantwatch.watcher import Watcher, build_renderer

app = typer.Typer(
    name="plantwatch",
    help="Keep rendered PlantUML diagrams in sync with their sources",
    add_completion=False,
    invoke_without_command=True,
)

# Global state
_config: PlantWatchConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"plantwatch {__version__}")
        raise typer.Exit()


def _current_config() -> PlantWatchConfig:
    return _config if _config is not None else PlantWatchConfig()


def _build_watcher(config: PlantWatchConfig) -> Watcher:
    return Watcher(config, renderer=build_renderer(config, _logger), logger=_logger)


def _resolve_sources(watcher: Watcher, paths: list[Path] | None) -> list[Path]:
    if not paths:
        return watcher.watch_filter.iter_sources()
    sources = []
    for path in paths:
        resolved = path.resolve()
        if not watcher.watch_filter.is_source(resolved):
            _logger.warning("Skipping %s: not a diagram source", path)
            continue
        sources.append(resolved)
    return sources


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show log levels and ignored events",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress status messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON log lines",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """plantwatch - Keep rendered PlantUML diagrams in sync with their sources.

    Run without a command to start watching.
    """
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, json_output=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug("Loaded config from: %s", _config.config_path)
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)

    if ctx.invoked_subcommand is None:
        watch()


# =============================================================================
# watch command
# =============================================================================


@app.command()
def watch(
    root: Annotated[
        Path | None,
        typer.Option(
            "--root",
            "-r",
            help="Directory to watch (default: config file directory or cwd)",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    sequence: Annotated[
        bool,
        typer.Option(
            "--sequence",
            help="Serialize operations on the same file (latest edit wins)",
        ),
    ] = False,
    polling: Annotated[
        bool,
        typer.Option(
            "--polling",
            help="Use the polling observer",
        ),
    ] = False,
    initial: Annotated[
        bool,
        typer.Option(
            "--initial",
            help="Render existing diagrams once at startup",
        ),
    ] = False,
) -> None:
    """Watch for diagram changes until interrupted.

    Exit codes:
        0: Stopped by Ctrl+C or SIGTERM
        1: Startup failed
    """
    config = _current_config()
    if root is not None:
        config.watch.root = root.resolve()
    if sequence:
        config.watch.sequence_per_path = True
    if polling:
        config.watch.use_polling = True
    if initial:
        config.watch.ignore_initial = False

    try:
        watcher = _build_watcher(config)
        watcher.run_forever()
    except (NotADirectoryError, ValueError, OSError) as e:
        _logger.error(f"Failed to start watcher: {e}")
        raise typer.Exit(1)


# =============================================================================
# render / clean commands
# =============================================================================


@app.command()
def render(
    paths: Annotated[
        list[Path] | None,
        typer.Argument(
            help="Diagram sources to render (default: all under the watch root)",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """Render diagram sources once and exit.

    Exit codes:
        0: All diagrams rendered
        1: One or more renders failed
    """
    config = _current_config()
    try:
        watcher = _build_watcher(config)
    except (ValueError, OSError) as e:
        _logger.error(f"Failed to create renderer: {e}")
        raise typer.Exit(1)

    sources = _resolve_sources(watcher, paths)
    if not sources:
        _logger.info("No diagram sources found under %s", watcher.root)
        raise typer.Exit(0)

    for source in sources:
        watcher.dispatcher.dispatch(ChangeEvent(ChangeKind.CREATED, source))
    results = watcher.dispatcher.join()
    watcher.dispatcher.shutdown(wait=True)

    failed = [r for r in results if not r.success]
    _logger.info("Rendered %d of %d diagram(s)", len(results) - len(failed), len(sources))
    if failed or len(results) < len(sources):
        raise typer.Exit(1)


@app.command()
def clean(
    paths: Annotated[
        list[Path] | None,
        typer.Argument(
            help="Diagram sources whose images to remove (default: all under the watch root)",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """Remove rendered images for diagram sources.

    Exit codes:
        0: All images removed (or already absent)
        1: One or more removals failed
    """
    config = _current_config()
    try:
        watcher = _build_watcher(config)
    except (ValueError, OSError) as e:
        _logger.error(f"Failed to create renderer: {e}")
        raise typer.Exit(1)

    sources = _resolve_sources(watcher, paths)
    results = [watcher.generator.cleanup(source) for source in sources]
    watcher.dispatcher.shutdown(wait=True)

    removed = sum(1 for r in results if r.removed)
    _logger.info("Removed %d image(s)", removed)
    if any(not r.success for r in results):
        raise typer.Exit(1)


# =============================================================================
# check command (preflight validation)
# =============================================================================


@app.command()
def check(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results as JSON",
        ),
    ] = False,
) -> None:
    """Validate external tool availability.

    Exit codes:
        0: All required tools available
        1: One or more required tools missing
        2: Only optional tools missing (warnings)
    """
    from plantwatch.utils.preflight import PreflightChecker

    checker = PreflightChecker()
    result = checker.check_all(_current_config())

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo("\nPreflight Check Results\n")

        for check_result in result.checks:
            status = "ok" if check_result.available else "missing"
            version_str = f" ({check_result.version})" if check_result.version else ""
            required_str = " [required]" if check_result.required else " [optional]"

            typer.echo(f"  [{status}] {check_result.name}{version_str}{required_str}")
            if check_result.available and check_result.path:
                typer.echo(f"     └─ {check_result.path}")
            elif not check_result.available:
                typer.echo(f"     └─ {check_result.message}")

        typer.echo()

    if result.errors:
        if not json_output:
            typer.echo("Preflight check FAILED")
            for error in result.errors:
                typer.echo(f"   • {error}")
        raise typer.Exit(1)
    elif result.warnings:
        if not json_output:
            typer.echo("Preflight check passed with WARNINGS")
            for warning in result.warnings:
                typer.echo(f"   • {warning}")
        raise typer.Exit(2)

    if not json_output:
        typer.echo("All preflight checks passed")
    raise typer.Exit(0)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    directory: Annotated[
        Path,
        typer.Option(
            "--dir",
            "-d",
            help="Directory to initialize",
            exists=True,
            file_okay=False,
        ),
    ] = Path("."),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing configuration",
        ),
    ] = False,
) -> None:
    """Write a default .plantwatch/config.yaml."""
    config_dir = directory.resolve() / CONFIG_DIR_NAME
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Configuration already exists: {config_file} (use --force to overwrite)")
        raise typer.Exit(1)

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        config_file.write_text(create_default_config())
    except OSError as e:
        _logger.error(f"Failed to write configuration: {e}")
        raise typer.Exit(1)

    typer.echo(f"Configuration written to: {config_file}")
    raise typer.Exit(0)
