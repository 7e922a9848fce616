"""
Watcher Scheduler

Owns the timers and the timer table, and periodically reconciles them with
watcher storage.
"""

from __future__ import annotations

from typing import Any

import structlog

from vigil.config import VigilSettings, settings as default_settings
from vigil.engine.actions import ActionDispatcher
from vigil.engine.evaluator import ScriptEvaluator
from vigil.engine.pipeline import ExecutionPipeline
from vigil.engine.protocols import SearchClient, WatcherStore
from vigil.engine.reconciler import ScheduleReconciler
from vigil.engine.recurrence import every_seconds
from vigil.engine.search import SearchMethodResolver
from vigil.engine.timers import ScheduleEntry, TimerHandle, TimerService, TimerTable

logger = structlog.get_logger(__name__)

RELOAD_JOB_ID = "vigil:reload"


class WatcherScheduler:
    """
    Schedules watchers stored in a watcher store.

    Every ``reload_interval_seconds`` the stored watchers are reconciled with
    the installed timers. Timers live as long as the scheduler runs.
    """

    def __init__(
        self,
        store: WatcherStore,
        client: SearchClient,
        dispatcher: ActionDispatcher | None = None,
        evaluator: ScriptEvaluator | None = None,
        config: VigilSettings | None = None,
        timers: TimerService | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            store: Where watchers are read from
            client: Search client for watcher firings
            dispatcher: Action delivery backend
            evaluator: Evaluator for condition and transform scripts
            config: Settings (defaults to the environment settings)
            timers: Timer service (created from settings if omitted)
        """
        self.config = config or default_settings
        self.timers = timers or TimerService(
            misfire_grace_seconds=self.config.misfire_grace_seconds,
        )
        self.table = TimerTable(self.timers)

        resolver = SearchMethodResolver.from_plugins(
            self.config.search_plugins,
            self.config.distributed_search_plugin,
            candidates=self.config.search_method_candidates,
        )
        self.pipeline = ExecutionPipeline(
            client,
            dispatcher=dispatcher,
            evaluator=evaluator,
            resolver=resolver,
            timeout_seconds=self.config.firing_timeout_seconds,
        )
        self.reconciler = ScheduleReconciler(store, self.table, self.timers, self.pipeline)
        self._reload_handle: TimerHandle | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    async def start(self) -> None:
        """Start timers and the periodic reload (first reload runs at once)."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting watcher scheduler")
        self.timers.start()
        self._reload_handle = self.timers.schedule(
            RELOAD_JOB_ID,
            every_seconds(self.config.reload_interval_seconds),
            self.reconciler.reconcile,
            run_now=True,
        )
        self._running = True
        logger.info(
            "Watcher scheduler started",
            reload_interval_seconds=self.config.reload_interval_seconds,
        )

    async def stop(self) -> None:
        """Cancel every watcher timer and stop the scheduler."""
        if not self._running:
            return

        logger.info("Stopping watcher scheduler")
        self.timers.cancel(self._reload_handle)
        self._reload_handle = None

        async with self.table.lock:
            cleared = self.table.clear()

        self.timers.shutdown()
        self._running = False
        logger.info("Watcher scheduler stopped", watchers_cleared=cleared)

    async def reload(self) -> None:
        """Reconcile watchers now."""
        await self.reconciler.reconcile()

    def list_entries(self) -> list[dict[str, Any]]:
        """Describe every scheduled watcher."""
        return [self._describe(watcher_id, entry) for watcher_id, entry in self.table.snapshot()]

    def _describe(self, watcher_id: str, entry: ScheduleEntry) -> dict[str, Any]:
        source = entry.hit.source
        return {
            "id": watcher_id,
            "title": source.title if source else None,
            "interval": entry.interval,
            "disabled": source.disable if source else True,
            "scheduled_at": entry.scheduled_at,
            "next_run": self.timers.next_run_time(entry.handle),
        }


# Global scheduler instance
_scheduler: WatcherScheduler | None = None


def get_scheduler(**kwargs: Any) -> WatcherScheduler:
    """
    Get the global scheduler instance.

    The first call creates it; ``store`` and ``client`` are required then.
    """
    global _scheduler
    if _scheduler is None:
        _scheduler = WatcherScheduler(**kwargs)
    return _scheduler


def reset_scheduler() -> None:
    """Forget the global scheduler instance."""
    global _scheduler
    _scheduler = None
