"""
Timers

Recurring timers backed by APScheduler, and the table of scheduled watchers.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterator

import structlog
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

from vigil.engine.models import WatcherHit
from vigil.engine.recurrence import TIMEZONE, Recurrence

logger = structlog.get_logger(__name__)

TimerCallback = Callable[..., Awaitable[Any]]


@dataclass
class TimerHandle:
    """Handle to an installed recurring timer."""

    job_id: str
    cancelled: bool = False


class TimerService:
    """
    Installs and cancels recurring timers.

    Each timer is an APScheduler job running its callback on the event loop.
    """

    def __init__(self, misfire_grace_seconds: int = 300) -> None:
        self._misfire_grace_seconds = misfire_grace_seconds
        self._scheduler: AsyncIOScheduler | None = None

    def _create_scheduler(self) -> AsyncIOScheduler:
        """Create and configure the APScheduler instance."""
        jobstores = {
            "default": MemoryJobStore(),
        }
        executors = {
            "default": AsyncIOExecutor(),
        }
        job_defaults = {
            "coalesce": True,  # Combine missed runs into one
            "max_instances": 1,  # One firing per watcher at a time
            "misfire_grace_time": self._misfire_grace_seconds,
        }

        return AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone=TIMEZONE,
        )

    @property
    def is_running(self) -> bool:
        """Check if timers are being run."""
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start running timers. Must be called from within the event loop."""
        if self.is_running:
            return
        self._scheduler = self._create_scheduler()
        self._scheduler.start()

    def shutdown(self) -> None:
        """Stop running timers and drop all jobs."""
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None

    def schedule(
        self,
        job_id: str,
        trigger: BaseTrigger,
        callback: TimerCallback,
        *args: Any,
        run_now: bool = False,
    ) -> TimerHandle:
        """
        Install a recurring timer.

        Args:
            job_id: Unique timer id
            trigger: When the callback runs
            callback: Coroutine function to run
            *args: Arguments passed to the callback
            run_now: Also run the callback as soon as possible

        Returns:
            Handle for cancelling the timer
        """
        if self._scheduler is None:
            raise RuntimeError("Timer service is not started")

        options: dict[str, Any] = {}
        if run_now:
            options["next_run_time"] = datetime.now(timezone.utc)

        self._scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id,
            name=f"watcher:{job_id}",
            args=list(args),
            replace_existing=True,
            **options,
        )
        return TimerHandle(job_id=job_id)

    def cancel(self, handle: TimerHandle | None) -> None:
        """Cancel a timer. Missing or already cancelled handles are ignored."""
        if handle is None or handle.cancelled:
            return

        handle.cancelled = True
        if self._scheduler is None:
            return

        try:
            self._scheduler.remove_job(handle.job_id)
        except JobLookupError:
            logger.debug("Timer already gone", job_id=handle.job_id)

    def next_run_time(self, handle: TimerHandle | None) -> datetime | None:
        """Next time a timer fires, if it is installed."""
        if handle is None or handle.cancelled or self._scheduler is None:
            return None
        job = self._scheduler.get_job(handle.job_id)
        return job.next_run_time if job else None


@dataclass
class ScheduleEntry:
    """A scheduled watcher: last seen definition, recurrence and timer."""

    hit: WatcherHit
    recurrence: Recurrence
    handle: TimerHandle | None = None
    scheduled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def interval(self) -> str | int:
        """Readable recurrence: the phrase or the number of seconds."""
        return self.recurrence.interval


class TimerTable:
    """
    Watcher id -> ScheduleEntry.

    At most one live timer exists per watcher: an entry's timer is cancelled
    before the entry is replaced or removed. Mutations happen while holding
    ``lock``.
    """

    def __init__(self, timers: TimerService) -> None:
        self._timers = timers
        self._entries: dict[str, ScheduleEntry] = {}
        self.lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, watcher_id: object) -> bool:
        return watcher_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def ids(self) -> set[str]:
        """Ids of all scheduled watchers."""
        return set(self._entries)

    def get(self, watcher_id: str) -> ScheduleEntry | None:
        """Get the entry for a watcher."""
        return self._entries.get(watcher_id)

    def put(self, watcher_id: str, entry: ScheduleEntry) -> None:
        """Store an entry, cancelling the timer of any entry it replaces."""
        previous = self._entries.get(watcher_id)
        if previous is not None:
            self._timers.cancel(previous.handle)
        self._entries[watcher_id] = entry

    def remove(self, watcher_id: str) -> ScheduleEntry | None:
        """Cancel a watcher's timer and drop its entry."""
        entry = self._entries.get(watcher_id)
        if entry is None:
            return None
        self._timers.cancel(entry.handle)
        del self._entries[watcher_id]
        return entry

    def clear(self) -> int:
        """Cancel every timer and drop every entry."""
        count = len(self._entries)
        for watcher_id in list(self._entries):
            self.remove(watcher_id)
        return count

    def snapshot(self) -> list[tuple[str, ScheduleEntry]]:
        """Entries sorted by watcher id."""
        return sorted(self._entries.items())
