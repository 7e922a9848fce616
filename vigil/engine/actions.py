"""
Actions

Splits a watcher's actions into report and alert actions, and hands actions
over to the dispatch backend.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

from vigil.engine.models import WatcherDefinition

logger = structlog.get_logger(__name__)

REPORT_MARKER = "report"

Actions = dict[str, dict[str, Any]]


def is_report_action(settings: dict[str, Any]) -> bool:
    """An action is a report action if its settings carry the report key."""
    return REPORT_MARKER in settings


def classify_actions(actions: Actions) -> tuple[Actions, Actions]:
    """
    Partition actions by the report marker.

    Args:
        actions: Action name -> action settings

    Returns:
        (report_actions, other_actions); every action lands on exactly one side
    """
    report: Actions = {}
    other: Actions = {}

    for name, settings in actions.items():
        if is_report_action(settings):
            report[name] = settings
        else:
            other[name] = settings

    return report, other


class ActionDispatcher(Protocol):
    """Backend that delivers actions (email, webhooks, reports, ...)."""

    async def dispatch(
        self,
        actions: Actions,
        payload: dict[str, Any],
        watcher: WatcherDefinition,
    ) -> None:
        ...


class LogActionDispatcher:
    """
    Dispatcher that only logs the actions it receives.

    Used when no delivery backend is configured.
    """

    async def dispatch(
        self,
        actions: Actions,
        payload: dict[str, Any],
        watcher: WatcherDefinition,
    ) -> None:
        for name, settings in actions.items():
            action_type = next((k for k in settings if k != REPORT_MARKER), None)
            logger.info(
                "Action dispatched",
                action=name,
                action_type=action_type,
                watcher=watcher.title or watcher.uuid,
                payload_keys=sorted(payload.keys()),
            )
