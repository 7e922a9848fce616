"""
VIGIL CLI Main Entry Point

The main Typer application that assembles all command groups.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from vigil import __version__
from vigil.config import settings

logger = structlog.get_logger(__name__)
console = Console()

# Create the main app
app = typer.Typer(
    name="vigil",
    help="VIGIL - scheduled watcher execution",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def configure_logging(level: str) -> None:
    """Configure stdlib logging and structlog."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(
            Panel(
                Text.from_markup(
                    f"[bold cyan]VIGIL[/bold cyan] v{__version__}\n"
                    "[dim]Scheduled watcher execution[/dim]"
                ),
                title="Version",
                border_style="cyan",
            )
        )
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """
    VIGIL - keeps stored watchers scheduled and runs them.

    Each watcher runs a search on its own schedule, tests a condition against
    the result and dispatches its actions.
    """
    configure_logging("DEBUG" if verbose else settings.log_level)


# Import and register sub-commands
from vigil.cli.watchers import app as watchers_app

app.add_typer(watchers_app, name="watchers", help="Inspect and fire watchers")


@app.command()
def run(
    file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", help="Read watchers from a JSON file"),
    ] = None,
    es_url: Annotated[
        Optional[str],
        typer.Option("--es-url", help="Elasticsearch URL"),
    ] = None,
    reload_interval: Annotated[
        Optional[int],
        typer.Option("--reload-interval", "-r", help="Seconds between watcher reloads"),
    ] = None,
) -> None:
    """
    Run the watcher scheduler until interrupted.

    Example: vigil run --file watchers.json
    """
    from vigil.engine.scheduler import WatcherScheduler
    from vigil.storage import ElasticsearchClient, ElasticsearchWatcherStore, JsonWatcherStore

    updates = {}
    if es_url:
        updates["es_url"] = es_url
    if reload_interval:
        updates["reload_interval_seconds"] = reload_interval
    if file:
        updates["watchers_file"] = file
    config = settings.model_copy(update=updates)

    async def _run() -> None:
        client = ElasticsearchClient(config.es_url, timeout=config.request_timeout)
        if config.watchers_file:
            store = JsonWatcherStore(config.watchers_file)
        else:
            store = ElasticsearchWatcherStore(client, index=config.watcher_index)

        scheduler = WatcherScheduler(store=store, client=client, config=config)
        await scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.stop()
            await client.close()

    source = str(config.watchers_file) if config.watchers_file else f"{config.es_url}/{config.watcher_index}"
    console.print(f"[cyan]Watching[/cyan] {source} [dim](Ctrl+C to stop)[/dim]")

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command()
def info() -> None:
    """Show information about VIGIL."""
    from rich.table import Table

    table = Table(title="VIGIL Information", show_header=False, border_style="cyan")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Version", __version__)
    table.add_row("Elasticsearch", settings.es_url)
    table.add_row("Watcher Index", settings.watcher_index)
    table.add_row("Reload Interval", f"{settings.reload_interval_seconds}s")
    table.add_row("Search Plugins", ", ".join(settings.search_plugins) or "-")

    console.print(table)


if __name__ == "__main__":
    app()
