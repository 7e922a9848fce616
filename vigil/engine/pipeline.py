"""
Execution Pipeline

Runs one firing of a watcher: search, condition, optional transform, actions.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from vigil.engine.actions import ActionDispatcher, Actions, LogActionDispatcher, classify_actions
from vigil.engine.errors import ScriptEvaluationError
from vigil.engine.evaluator import (
    PythonScriptEvaluator,
    ScriptEvaluator,
    apply_transform,
    evaluate_condition,
    wrap,
)
from vigil.engine.models import FiringOutcome, WatcherDefinition, WatcherHit
from vigil.engine.protocols import SearchClient
from vigil.engine.search import SearchMethodResolver

logger = structlog.get_logger(__name__)


class ExecutionPipeline:
    """
    Executes watcher firings.

    A firing never raises: every failure is logged and reported through the
    returned FiringOutcome. Firings share no mutable state, so any number of
    them may run concurrently.
    """

    def __init__(
        self,
        client: SearchClient,
        dispatcher: ActionDispatcher | None = None,
        evaluator: ScriptEvaluator | None = None,
        resolver: SearchMethodResolver | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            client: Search client used for every query of a firing
            dispatcher: Action delivery backend
            evaluator: Evaluator for condition and transform scripts
            resolver: Chooses the client's search operation
            timeout_seconds: Upper bound for a single firing (None = unbounded)
        """
        self.client = client
        self.dispatcher = dispatcher or LogActionDispatcher()
        self.evaluator = evaluator or PythonScriptEvaluator()
        self.resolver = resolver or SearchMethodResolver()
        self.timeout_seconds = timeout_seconds

    async def fire(self, hit: WatcherHit) -> FiringOutcome:
        """
        Run one firing of a watcher.

        Args:
            hit: The watcher snapshot captured when its timer was installed

        Returns:
            How the firing ended
        """
        try:
            if self.timeout_seconds:
                return await asyncio.wait_for(self._fire(hit), timeout=self.timeout_seconds)
            return await self._fire(hit)
        except asyncio.TimeoutError:
            logger.error(
                "Watcher firing timed out",
                watcher_id=hit.id,
                timeout_seconds=self.timeout_seconds,
            )
            return FiringOutcome.TIMEOUT
        except Exception as e:
            logger.error("Watcher firing failed", watcher_id=hit.id, error=str(e))
            return FiringOutcome.FAILED

    async def _fire(self, hit: WatcherHit) -> FiringOutcome:
        watcher = hit.source
        if watcher is None or watcher.disable:
            logger.debug("Non-executing disabled watcher", watcher_id=hit.id)
            return FiringOutcome.DISABLED

        logger.info("Executing watcher", watcher_id=hit.id)

        if not watcher.actions:
            logger.debug("Watcher has no actions", watcher_id=hit.id)
            return FiringOutcome.NO_ACTIONS

        report_actions, alert_actions = classify_actions(watcher.actions)
        outcome = FiringOutcome.NO_ACTIONS

        if watcher.report and report_actions:
            await self._run_reports(hit.id, watcher, report_actions)
            outcome = FiringOutcome.REPORT_ONLY

        if alert_actions:
            outcome = await self._run_alerts(hit.id, watcher, alert_actions)

        return outcome

    async def _run_reports(
        self,
        watcher_id: str,
        watcher: WatcherDefinition,
        actions: Actions,
    ) -> None:
        """Dispatch report actions directly, without searching."""
        logger.info("Executing report actions", watcher_id=watcher_id, actions=list(actions))
        await self._dispatch(watcher_id, watcher, actions, {"id": watcher_id})

    async def _run_alerts(
        self,
        watcher_id: str,
        watcher: WatcherDefinition,
        actions: Actions,
    ) -> FiringOutcome:
        """Search, test the condition, transform and dispatch alert actions."""
        logger.info("Executing actions", watcher_id=watcher_id, actions=list(actions))

        request = watcher.search_request
        condition = watcher.condition_script
        if request is None or not condition:
            logger.debug("Watcher search request or condition malformed", watcher_id=watcher_id)
            return FiringOutcome.MALFORMED

        method = self.resolver.resolve(self.client)

        try:
            result = await self._search(method, request)
        except Exception as e:
            logger.error(
                "An error occurred while executing the watcher",
                watcher_id=watcher_id,
                error=str(e),
            )
            return FiringOutcome.SEARCH_ERROR

        if result is None:
            logger.debug("Watcher search returned no result", watcher_id=watcher_id)
            return FiringOutcome.NO_RESULT

        payload = wrap(result)
        logger.debug("Watcher payload", watcher_id=watcher_id, payload=payload)

        try:
            matched = evaluate_condition(self.evaluator, condition, payload)
        except ScriptEvaluationError as e:
            logger.info("Condition error", watcher_id=watcher_id, error=str(e))
            return FiringOutcome.CONDITION_ERROR

        if not matched:
            logger.debug("Condition not met", watcher_id=watcher_id)
            return FiringOutcome.CONDITION_FALSE

        transform_script = watcher.transform_script
        transform_request = watcher.transform_request

        if transform_script:
            try:
                apply_transform(self.evaluator, transform_script, payload)
            except ScriptEvaluationError as e:
                logger.info("Transform script error", watcher_id=watcher_id, error=str(e))
        elif transform_request:
            try:
                transformed = await self._search(method, transform_request)
            except Exception as e:
                logger.error(
                    "An error occurred while executing the transform search",
                    watcher_id=watcher_id,
                    error=str(e),
                )
                return FiringOutcome.SEARCH_ERROR

            if transformed is None:
                return FiringOutcome.TRANSFORM_EMPTY
            payload = wrap(transformed)

        await self._dispatch(watcher_id, watcher, actions, payload)
        return FiringOutcome.DISPATCHED

    async def _search(self, method: str, request: dict[str, Any]) -> dict[str, Any] | None:
        """Run a search request through the resolved search operation."""
        operation = getattr(self.client, method)
        return await operation(request)

    async def _dispatch(
        self,
        watcher_id: str,
        watcher: WatcherDefinition,
        actions: Actions,
        payload: dict[str, Any],
    ) -> None:
        """Hand actions to the dispatcher; delivery failures are only logged."""
        try:
            await self.dispatcher.dispatch(actions, payload, watcher)
        except Exception as e:
            logger.error(
                "Action dispatch failed",
                watcher_id=watcher_id,
                actions=list(actions),
                error=str(e),
            )
