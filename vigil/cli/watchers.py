"""
Watcher CLI Commands

Commands for validating watcher files and firing single watchers.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from vigil.config import settings
from vigil.engine.actions import classify_actions
from vigil.engine.errors import RecurrenceError, StorageError
from vigil.engine.models import FiringOutcome, WatcherHit
from vigil.engine.pipeline import ExecutionPipeline
from vigil.engine.recurrence import resolve_recurrence
from vigil.engine.search import SearchMethodResolver
from vigil.storage import ElasticsearchClient, JsonWatcherStore

logger = structlog.get_logger(__name__)
console = Console()

app = typer.Typer(
    name="watchers",
    help="Inspect and fire watchers",
    no_args_is_help=True,
)


def check_watcher(raw: Any) -> tuple[str, str, list[str]]:
    """
    Check one raw watcher record.

    Returns:
        (watcher id, schedule description, problems); an empty problem list
        means the watcher will be scheduled and can fire
    """
    watcher_id = str(raw.get("_id", raw.get("id", "?"))) if isinstance(raw, dict) else "?"

    try:
        hit = WatcherHit.model_validate(raw)
    except ValidationError as e:
        return watcher_id, "-", [f"invalid definition ({e.error_count()} errors)"]

    watcher = hit.source
    if watcher is None:
        return hit.id, "-", ["missing definition"]

    problems: list[str] = []
    schedule = "-"
    try:
        recurrence = resolve_recurrence(watcher.trigger.schedule)
    except RecurrenceError as e:
        problems.append(str(e))
    else:
        if recurrence is None:
            problems.append("no usable schedule (needs a phrase or a whole number of seconds)")
        else:
            schedule = str(recurrence.interval)

    if not watcher.actions:
        problems.append("no actions")

    _, alert_actions = classify_actions(watcher.actions)
    if alert_actions and not (watcher.search_request and watcher.condition_script):
        problems.append("search request or condition missing")

    return hit.id, schedule, problems


def _load(file: Path) -> list[Any]:
    try:
        return JsonWatcherStore(file).load_raw()
    except StorageError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command("validate")
def validate(
    file: Annotated[Path, typer.Argument(help="JSON file with watcher records")],
) -> None:
    """
    Check that every watcher in a file can be scheduled and fired.

    Example: vigil watchers validate watchers.json
    """
    records = _load(file)

    table = Table(title=f"Watchers in {file}")
    table.add_column("ID", style="cyan")
    table.add_column("Schedule")
    table.add_column("Status")

    failures = 0
    for raw in records:
        watcher_id, schedule, problems = check_watcher(raw)
        if problems:
            failures += 1
            table.add_row(watcher_id, schedule, f"[red]{'; '.join(problems)}[/red]")
        else:
            table.add_row(watcher_id, schedule, "[green]ok[/green]")

    console.print(table)

    if failures:
        console.print(f"[red]{failures} of {len(records)} watcher(s) have problems[/red]")
        raise typer.Exit(1)

    console.print(f"[green]All {len(records)} watcher(s) valid[/green]")


@app.command("fire")
def fire(
    file: Annotated[Path, typer.Argument(help="JSON file with watcher records")],
    watcher_id: Annotated[str, typer.Argument(help="ID of the watcher to fire")],
    es_url: Annotated[str, typer.Option("--es-url", help="Elasticsearch URL")] = "",
) -> None:
    """
    Fire one watcher immediately against Elasticsearch.

    Example: vigil watchers fire watchers.json w1
    """
    store = JsonWatcherStore(file)

    async def _fire() -> FiringOutcome | None:
        try:
            hits = await store.get_watchers(await store.get_count())
        except StorageError as e:
            console.print(f"[red]{e}[/red]")
            return None

        hit = next((h for h in hits if h.id == watcher_id), None)
        if hit is None:
            console.print(f"[red]Watcher not found: {watcher_id}[/red]")
            return None

        client = ElasticsearchClient(es_url or settings.es_url, timeout=settings.request_timeout)
        pipeline = ExecutionPipeline(
            client,
            resolver=SearchMethodResolver.from_plugins(
                settings.search_plugins,
                settings.distributed_search_plugin,
                candidates=settings.search_method_candidates,
            ),
            timeout_seconds=settings.firing_timeout_seconds,
        )
        try:
            return await pipeline.fire(hit)
        finally:
            await client.close()

    outcome = asyncio.run(_fire())
    if outcome is None:
        raise typer.Exit(1)

    color = "green" if outcome in (FiringOutcome.DISPATCHED, FiringOutcome.REPORT_ONLY) else "yellow"
    console.print(f"[{color}]{watcher_id}: {outcome.value}[/{color}]")
