"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from vigil.engine.models import WatcherDefinition, WatcherHit
from vigil.engine.pipeline import ExecutionPipeline
from vigil.engine.reconciler import ScheduleReconciler
from vigil.engine.timers import TimerHandle, TimerTable
from vigil.storage.base import parse_hits


class FakeTimerService:
    """Records timers instead of running them."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[str, Any, Any, tuple[Any, ...]]] = []
        self.cancelled: list[str] = []
        self.active: dict[str, TimerHandle] = {}

    def schedule(self, job_id, trigger, callback, *args, run_now=False) -> TimerHandle:
        handle = TimerHandle(job_id=job_id)
        self.scheduled.append((job_id, trigger, callback, args))
        self.active[job_id] = handle
        return handle

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is None or handle.cancelled:
            return
        handle.cancelled = True
        self.cancelled.append(handle.job_id)
        if self.active.get(handle.job_id) is handle:
            del self.active[handle.job_id]

    def next_run_time(self, handle: TimerHandle | None) -> None:
        return None


class FakeWatcherStore:
    """In-memory watcher store."""

    def __init__(self, records: list[dict[str, Any]] | None = None) -> None:
        self.records = records or []
        self.count_error: Exception | None = None
        self.list_error: Exception | None = None
        self.requested_counts: list[int] = []

    async def get_count(self) -> int:
        if self.count_error:
            raise self.count_error
        return len(self.records)

    async def get_watchers(self, count: int) -> list[WatcherHit]:
        self.requested_counts.append(count)
        if self.list_error:
            raise self.list_error
        return parse_hits(self.records[:count])


class FakeSearchClient:
    """Search client returning queued responses and recording requests."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses = list(responses or [])
        self.requests: list[dict[str, Any]] = []

    async def search(self, request: dict[str, Any]) -> dict[str, Any] | None:
        self.requests.append(request)
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingDispatcher:
    """Dispatcher that records every dispatch."""

    def __init__(self) -> None:
        self.calls: list[tuple[dict[str, Any], dict[str, Any], WatcherDefinition]] = []

    async def dispatch(self, actions, payload, watcher) -> None:
        self.calls.append((actions, payload, watcher))


def watcher_record(watcher_id: str = "w1", **overrides: Any) -> dict[str, Any]:
    """A raw watcher record that schedules every 5 seconds and alerts by email."""
    source: dict[str, Any] = {
        "title": f"Watcher {watcher_id}",
        "disable": False,
        "report": False,
        "trigger": {"schedule": {"interval": 5}},
        "input": {"search": {"request": {"index": ["logs-*"], "body": {"query": {"match_all": {}}}}}},
        "condition": {"script": {"script": "payload.hits.total > 0"}},
        "actions": {"email": {"email": {"to": "ops@example.com", "subject": "Alert"}}},
    }
    source.update(overrides)
    return {"_id": watcher_id, "_source": source}


@pytest.fixture
def make_record() -> Callable[..., dict[str, Any]]:
    """Factory for raw watcher records."""
    return watcher_record


@pytest.fixture
def make_hit() -> Callable[..., WatcherHit]:
    """Factory for validated watcher hits."""

    def _make(watcher_id: str = "w1", **overrides: Any) -> WatcherHit:
        return WatcherHit.model_validate(watcher_record(watcher_id, **overrides))

    return _make


@pytest.fixture
def timers() -> FakeTimerService:
    """Timer service that records timers."""
    return FakeTimerService()


@pytest.fixture
def table(timers: FakeTimerService) -> TimerTable:
    """Empty timer table on the fake timer service."""
    return TimerTable(timers)  # type: ignore[arg-type]


@pytest.fixture
def search_client() -> FakeSearchClient:
    """Search client with no queued responses."""
    return FakeSearchClient()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    """Dispatcher that records dispatches."""
    return RecordingDispatcher()


@pytest.fixture
def pipeline(search_client: FakeSearchClient, dispatcher: RecordingDispatcher) -> ExecutionPipeline:
    """Pipeline wired to the fake search client and dispatcher."""
    return ExecutionPipeline(search_client, dispatcher=dispatcher)


@pytest.fixture
def store() -> FakeWatcherStore:
    """Empty in-memory watcher store."""
    return FakeWatcherStore()


@pytest.fixture
def reconciler(
    store: FakeWatcherStore,
    table: TimerTable,
    timers: FakeTimerService,
    pipeline: ExecutionPipeline,
) -> ScheduleReconciler:
    """Reconciler wired to fakes."""
    return ScheduleReconciler(store, table, timers, pipeline)  # type: ignore[arg-type]

