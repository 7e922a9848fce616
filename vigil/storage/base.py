"""Helpers shared by the storage backends."""

from __future__ import annotations

from typing import Any, Iterable

import structlog
from pydantic import ValidationError

from vigil.engine.models import WatcherHit

logger = structlog.get_logger(__name__)


def parse_hits(raw_hits: Iterable[Any]) -> list[WatcherHit]:
    """
    Validate raw watcher records.

    Records that do not validate are logged and left out, so one broken
    watcher does not hide the others.
    """
    hits: list[WatcherHit] = []
    for raw in raw_hits:
        try:
            hits.append(WatcherHit.model_validate(raw))
        except ValidationError as e:
            watcher_id = raw.get("_id", raw.get("id")) if isinstance(raw, dict) else None
            logger.error("Invalid watcher definition", watcher_id=watcher_id, error=str(e))
    return hits
