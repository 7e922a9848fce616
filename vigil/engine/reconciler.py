"""
Schedule Reconciler

Keeps the timer table in step with the watchers held in storage.
"""

from __future__ import annotations

import structlog

from vigil.engine.diff import changed_fields
from vigil.engine.errors import RecurrenceError, StorageNotFoundError
from vigil.engine.models import WatcherHit
from vigil.engine.pipeline import ExecutionPipeline
from vigil.engine.protocols import WatcherStore
from vigil.engine.recurrence import resolve_recurrence
from vigil.engine.timers import ScheduleEntry, TimerService, TimerTable

logger = structlog.get_logger(__name__)


class ScheduleReconciler:
    """
    Reconciles stored watchers with installed timers.

    Each cycle fetches the watcher count, then that many watchers; removes
    timers of watchers that disappeared; and (re)schedules watchers that are
    new or whose definition changed. Unchanged watchers keep their timer.
    """

    def __init__(
        self,
        store: WatcherStore,
        table: TimerTable,
        timers: TimerService,
        pipeline: ExecutionPipeline,
    ) -> None:
        self.store = store
        self.table = table
        self.timers = timers
        self.pipeline = pipeline

    async def reconcile(self) -> None:
        """Run one reconciliation cycle. Never raises."""
        logger.debug("Reloading watchers")

        try:
            count = await self.store.get_count()
        except StorageNotFoundError:
            logger.info("No watcher index found, initializing")
            return
        except Exception as e:
            logger.error("An error occurred while looking for watchers", error=str(e))
            return

        try:
            hits = await self.store.get_watchers(count)
        except StorageNotFoundError:
            logger.info("No watcher index found, initializing")
            return
        except Exception as e:
            logger.error("Failed to get watchers", error=str(e))
            return

        async with self.table.lock:
            self.remove_orphans(hits)
            for hit in hits:
                try:
                    self.schedule(hit)
                except Exception as e:
                    logger.error("Failed to schedule watcher", watcher_id=hit.id, error=str(e))

    def remove_orphans(self, hits: list[WatcherHit]) -> list[str]:
        """
        Cancel and drop entries for watchers no longer in storage.

        Returns:
            Ids of the removed watchers
        """
        orphans = sorted(self.table.ids() - {hit.id for hit in hits})
        removed = []

        for orphan in orphans:
            try:
                logger.info("Deleting orphan watcher", watcher_id=orphan)
                self.table.remove(orphan)
                removed.append(orphan)
            except Exception as e:
                logger.error("Failed to remove orphan watcher", watcher_id=orphan, error=str(e))

        return removed

    def schedule(self, hit: WatcherHit) -> bool:
        """
        Schedule a watcher unless it is already scheduled unchanged.

        Returns:
            True if a new timer was installed
        """
        entry = self.table.get(hit.id)
        if entry is not None:
            if entry.hit.same_as(hit):
                return False
            logger.info(
                "Clearing watcher",
                watcher_id=hit.id,
                changed=changed_fields(entry.hit.dump(), hit.dump()),
            )
            self.table.remove(hit.id)

        if hit.source is None:
            logger.debug("Watcher has no definition", watcher_id=hit.id)
            return False

        try:
            recurrence = resolve_recurrence(hit.source.trigger.schedule)
        except RecurrenceError as e:
            logger.info("Invalid watcher schedule", watcher_id=hit.id, error=str(e))
            return False

        if recurrence is None:
            logger.debug(
                "Watcher has no usable schedule",
                watcher_id=hit.id,
                interval=hit.source.trigger.schedule.interval,
            )
            return False

        # The firing owns its own copy of the definition
        snapshot = hit.model_copy(deep=True)
        handle = self.timers.schedule(hit.id, recurrence.trigger, self.pipeline.fire, snapshot)
        self.table.put(hit.id, ScheduleEntry(hit=snapshot, recurrence=recurrence, handle=handle))

        logger.info("Scheduled watcher", watcher_id=hit.id, every=recurrence.interval)
        return True
