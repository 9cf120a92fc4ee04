"""minihive CLI."""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from minihive import __version__
from minihive.config import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigurationError,
    TopologyConfig,
    generate_example_topology_yaml,
    load_topology,
)

# Default topology file name for auto-discovery
DEFAULT_CONFIG = "minihive.yaml"

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="minihive",
    help="Run an embedded HiveServer2 test cluster",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    epilog="[dim]Workflow: init -> validate -> up -> clean[/dim]",
)

console = Console()


# =============================================================================
# Helper Functions
# =============================================================================


def resolve_config_path(
    config_file: Path | None,
    file_option: Path | None = None,
) -> Path:
    """Resolve topology file path, using ./minihive.yaml as default.

    Supports both positional argument and --file/-f option.
    If both are provided, --file takes precedence.
    """
    path = file_option or config_file
    if path is not None:
        return path

    default = Path(DEFAULT_CONFIG)
    if default.exists():
        return default

    console.print(f"[red]ERROR[/red] No topology file specified and ./{DEFAULT_CONFIG} not found")
    console.print("[blue]INFO[/blue] Create one with: minihive init")
    raise typer.Exit(1)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]OK[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]ERROR[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]WARN[/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]...[/blue] {message}")


def _load_or_exit(config_file: Path) -> TopologyConfig:
    try:
        return load_topology(config_file)
    except ConfigFileNotFoundError as e:
        print_error(f"File not found: {e}")
        raise typer.Exit(1)  # noqa: B904
    except ConfigurationError as e:
        print_error("Topology validation failed:")
        for err in e.errors:
            loc = ".".join(str(x) for x in err["loc"]) or "topology"
            console.print(f"  [red]*[/red] {loc}: {err['msg']}")
        raise typer.Exit(1)  # noqa: B904
    except ConfigError as e:
        print_error(f"Config error: {e}")
        raise typer.Exit(1)  # noqa: B904


def _parse_overrides(pairs: list[str]) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a dict; later keys win."""
    overrides: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint="--set")
        overrides[key.strip()] = value
    return overrides


def _wait_forever() -> None:
    threading.Event().wait()


def _required_tools(cfg: TopologyConfig) -> list[str]:
    tools = ["hive"]
    if cfg.use_simulated_compute:
        tools += ["mapred", "hdfs"]
    return tools


@app.callback()
def _main_options(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"minihive version {__version__}")


@app.command()
def init(
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Output file path for the topology",
        ),
    ] = Path(DEFAULT_CONFIG),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing file",
        ),
    ] = False,
) -> None:
    """Write an example topology file."""
    if output.exists() and not force:
        print_error(f"{output} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    output.write_text(generate_example_topology_yaml())
    print_success(f"Created topology file: {output}")
    print_info("Then run: minihive validate")


@app.command()
def validate(
    config_file: Annotated[
        Path | None,
        typer.Argument(
            help="Path to topology YAML file (default: ./minihive.yaml)",
        ),
    ] = None,
    file_option: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Path to topology YAML file (alternative to positional argument)",
        ),
    ] = None,
) -> None:
    """Validate a topology and check the required command-line tools."""
    config_file = resolve_config_path(config_file, file_option)
    console.print(Panel(f"Validating: [bold]{config_file}[/bold]", expand=False))

    console.print("\n[bold]Topology[/bold]")
    cfg = _load_or_exit(config_file)
    print_success("Topology valid")

    table = Table(show_header=False, box=None, padding=(0, 2))
    for key, value in cfg.summary().items():
        table.add_row(f"[dim]{key}[/dim]", str(value))
    console.print(table)

    console.print("\n[bold]CLI Tools[/bold]")
    missing = 0
    for tool in _required_tools(cfg):
        if shutil.which(tool):
            print_success(f"{tool} found on PATH")
        else:
            print_warning(f"{tool} not found on PATH")
            missing += 1

    console.print()
    if missing:
        print_warning(f"{missing} tool(s) missing; 'minihive up' will fail without them")
    else:
        print_success("Ready: minihive up")


@app.command()
def up(
    config_file: Annotated[
        Path | None,
        typer.Argument(
            help="Path to topology YAML file (default: ./minihive.yaml)",
        ),
    ] = None,
    file_option: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Path to topology YAML file (alternative to positional argument)",
        ),
    ] = None,
    overrides: Annotated[
        list[str] | None,
        typer.Option(
            "--set",
            "-s",
            help="hive-site override as key=value (repeatable)",
        ),
    ] = None,
    database: Annotated[
        str,
        typer.Option("--database", "-d", help="Database placed in the printed JDBC URL"),
    ] = "default",
    cleanup: Annotated[
        bool,
        typer.Option("--cleanup/--keep", help="Delete the workspace after shutdown"),
    ] = False,
) -> None:
    """Start a cluster and keep it running until Ctrl-C."""
    from minihive.cluster import (
        MiniHS2,
        ProvisioningError,
        StartupError,
        TeardownStatus,
    )

    config_file = resolve_config_path(config_file, file_option)
    cfg = _load_or_exit(config_file)
    conf_overrides = _parse_overrides(overrides or [])

    hs2 = MiniHS2(cfg)
    print_info(f"Starting HiveServer2 ({cfg.transport_mode.value} transport)")
    try:
        hs2.start(conf_overrides)
    except KeyboardInterrupt:
        hs2.cancel_startup()
        print_warning("Startup interrupted")
        hs2.stop()
        raise typer.Exit(130)  # noqa: B904
    except (ProvisioningError, StartupError) as e:
        print_error(str(e))
        hs2.stop()
        raise typer.Exit(1)  # noqa: B904

    console.print(
        Panel(
            f"JDBC URL: [bold]{hs2.get_jdbc_url(database)}[/bold]\n"
            f"Driver:   {hs2.get_jdbc_driver_name()}\n"
            f"Workspace: {hs2.base_dir}",
            title="HiveServer2 running",
            expand=False,
        )
    )
    print_info("Press Ctrl-C to stop")

    try:
        _wait_forever()
    except KeyboardInterrupt:
        console.print()

    results = hs2.stop()
    for result in results:
        if result.status == TeardownStatus.FAILED:
            print_error(f"{result.component}: {result.message}")
        elif result.status == TeardownStatus.STOPPED:
            print_success(result.message)

    if cleanup:
        hs2.cleanup_workspace()
        print_success(f"Deleted workspace {hs2.base_dir}")

    if any(r.status == TeardownStatus.FAILED for r in results):
        raise typer.Exit(1)


@app.command()
def clean(
    temp_root: Annotated[
        Path | None,
        typer.Option(
            "--temp-root",
            help="Workspace root (default: $TEST_TMP_DIR, then <system tmp>/minihive)",
        ),
    ] = None,
) -> None:
    """Delete the local workspace left behind by previous runs."""
    from minihive.cluster import MiniHS2, get_base_dir

    root = str(temp_root) if temp_root else None
    base_dir = get_base_dir(root)
    if MiniHS2.cleanup_local_dir(root):
        print_success(f"Deleted {base_dir}")
    else:
        print_info(f"Nothing to delete at {base_dir}")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
