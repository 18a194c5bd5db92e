"""CLI app entry point.

Provides the main Typer app. Global options (project, zone, log level,
read-only, JSON output) are parsed by the root callback into a CLIState
stored in the Typer context. Without a subcommand the terminal UI starts.
"""

import asyncio
from typing import Optional

import typer

from tgcp.cli.state import CLIState
from tgcp.config.settings import get_logging_settings, get_path_settings
from tgcp.logging import configure_logging, get_logger, level_from_name

logger = get_logger(__name__)

app = typer.Typer(
    name="tgcp",
    help="tgcp - terminal browser and operator for Google Cloud resources.",
    add_completion=False,
)
config_app = typer.Typer(name="config", help="Inspect the saved configuration")
app.add_typer(config_app)


def _setup_logging(level_name: str) -> None:
    try:
        level = level_from_name(level_name)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from None
    settings = get_logging_settings()
    configure_logging(
        log_dir=get_path_settings().config_dir if level is not None else None,
        file_level=level,
        max_file_size_mb=settings.max_file_size_mb,
        backup_count=settings.backup_count,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="GCP project id (overrides config and gcloud)"
    ),
    zone: Optional[str] = typer.Option(
        None, "--zone", "-z", help="Compute zone, or 'all' for every zone"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="off, error, warn, info, debug or trace",
        envvar="TGCP_LOG_LEVEL",
    ),
    readonly: bool = typer.Option(
        False, "--readonly", help="Disable every mutating action"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output in JSON format for scripting"
    ),
) -> None:
    """Browse and operate GCP resources from the terminal."""
    state = CLIState(
        json_mode=json_output,
        log_level=log_level or get_logging_settings().level,
        project=project,
        zone=zone,
        readonly=readonly,
    )
    ctx.obj = state
    _setup_logging(state.log_level)

    if ctx.invoked_subcommand is None:
        run(ctx)


@app.command()
def run(ctx: typer.Context) -> None:
    """Start the terminal UI (the default command)."""
    from rich.console import Console

    from tgcp.app.pickers import load_projects, load_zones
    from tgcp.cli.output import print_error
    from tgcp.cli.session import build_app, open_session
    from tgcp.errors import TgcpError
    from tgcp.ui.loop import run_curses

    state: CLIState = ctx.obj
    console = Console(stderr=True)

    async def _run() -> None:
        with console.status("Loading GCP config") as status:
            session = await open_session(state.project, state.zone)
            try:
                status.update(f"Fetching projects [project: {session.context.project}]")
                projects = await load_projects(session.backend)
                status.update(f"Fetching zones [{session.context.zone}]")
                zones = await load_zones(session.backend)
            except BaseException:
                await session.close()
                raise

        try:
            tui = build_app(session, readonly=state.readonly)
            tui.set_projects(projects)
            tui.set_zones(zones)
            await run_curses(tui)
        finally:
            await session.close()

    try:
        asyncio.run(_run())
    except TgcpError as e:
        logger.error(f"Startup failed: {e}")
        print_error(e.message, state, e)
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        raise typer.Exit(130) from None


@app.command("resources")
def list_resources(ctx: typer.Context) -> None:
    """List every resource type tgcp knows about."""
    from rich.console import Console
    from rich.table import Table

    from tgcp.cli.output import print_error, print_json
    from tgcp.errors import TgcpError
    from tgcp.resources.registry import ResourceRegistry

    state: CLIState = ctx.obj
    try:
        registry = ResourceRegistry.load()
    except TgcpError as e:
        print_error(e.message, state, e)
        raise typer.Exit(1) from None

    if state.json_mode:
        print_json(
            [
                {
                    "key": definition.key,
                    "display_name": definition.display_name,
                    "service": definition.service,
                    "sub_resources": [s.resource_key for s in definition.sub_resources],
                    "actions": [a.key for a in definition.actions],
                }
                for definition in (registry[key] for key in registry.keys_sorted())
            ]
        )
        return

    table = Table(title="Resources")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Service")
    table.add_column("Sub-resources")
    table.add_column("Actions")
    for key in registry.keys_sorted():
        definition = registry[key]
        table.add_row(
            key,
            definition.display_name,
            definition.service,
            ", ".join(s.resource_key for s in definition.sub_resources),
            ", ".join(a.key for a in definition.actions),
        )
    Console().print(table)


@app.command("list")
def list_items(
    ctx: typer.Context,
    resource_key: str = typer.Argument(..., help="Resource key, e.g. compute-disks"),
    zones: Optional[list[str]] = typer.Option(
        None, "--in-zone", help="Zone to list; repeat to fetch several zones concurrently"
    ),
    concurrency: int = typer.Option(4, "--concurrency", min=1, help="Requests in flight"),
) -> None:
    """Print every page of a resource listing."""
    from rich.console import Console
    from rich.table import Table

    from tgcp.cli.output import print_error, print_json
    from tgcp.cli.session import open_session
    from tgcp.errors import TgcpError
    from tgcp.gcp.client import GcpClientError, format_error
    from tgcp.resources.fetcher import fetch_concurrent
    from tgcp.resources.values import display_value

    state: CLIState = ctx.obj

    async def _fetch() -> tuple:
        session = await open_session(state.project, state.zone)
        try:
            definition = session.registry.require(resource_key)
            filter_sets = None
            if zones:
                # One listing per zone; the zone param fills the URL template
                session.backend.context = session.context.with_zone(zones[0])
                filter_sets = [{"zone": [zone]} for zone in zones]
            items = await fetch_concurrent(
                session.backend, resource_key, filter_sets, max_concurrency=concurrency
            )
            return definition, items
        finally:
            await session.close()

    try:
        definition, items = asyncio.run(_fetch())
    except TgcpError as e:
        print_error(e.message, state, e)
        raise typer.Exit(1) from None
    except GcpClientError as e:
        print_error(format_error(e), state, e)
        raise typer.Exit(1) from None

    if state.json_mode:
        print_json(items)
        return

    if not items:
        Console().print(f"No {definition.display_name} found")
        return

    table = Table(title=f"{definition.display_name} ({len(items)})")
    for column in definition.columns:
        table.add_column(column.header)
    for item in items:
        table.add_row(*(display_value(item, c.json_path) for c in definition.columns))
    Console().print(table)


@app.command()
def version(ctx: typer.Context) -> None:
    """Show the tgcp version."""
    from tgcp.cli.output import print_success
    from tgcp.version import get_version

    state: CLIState = ctx.obj
    current = get_version()
    print_success(f"tgcp {current}", state, {"version": current})


@config_app.command("show")
def show_config(ctx: typer.Context) -> None:
    """Print the saved configuration and where it lives."""
    import yaml
    from rich.console import Console

    from tgcp.cli.output import print_json
    from tgcp.config.store import ConfigStore

    state: CLIState = ctx.obj
    store = ConfigStore.open()
    data = store.config.model_dump(mode="json")

    if state.json_mode:
        print_json({"path": str(store.path), "config": data})
        return

    console = Console()
    console.print(f"[cyan]{store.path}[/cyan]")
    console.print(yaml.safe_dump(data, default_flow_style=False, sort_keys=True), end="")


def cli_entry() -> None:
    app()
