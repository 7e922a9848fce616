"""
JSON File Backend

Reads watchers from a JSON file, for running without a search cluster.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from vigil.engine.errors import StorageError, StorageNotFoundError
from vigil.engine.models import WatcherHit
from vigil.storage.base import parse_hits

logger = structlog.get_logger(__name__)


class JsonWatcherStore:
    """
    Watcher storage backed by a JSON file.

    The file holds either a list of watcher records or a search response
    (``{"hits": {"hits": [...]}}``). It is re-read on every call, so edits
    are picked up by the next reconciliation.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load_raw(self) -> list[dict[str, Any]]:
        """Read the raw watcher records from the file."""
        if not self.path.exists():
            raise StorageNotFoundError(f"Watcher file not found: {self.path}")

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read watcher file {self.path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("hits", {}).get("hits", [])
        if not isinstance(data, list):
            raise StorageError(f"Unexpected watcher file layout: {self.path}")

        return data

    async def get_count(self) -> int:
        """Number of stored watchers."""
        return len(self.load_raw())

    async def get_watchers(self, count: int) -> list[WatcherHit]:
        """Fetch up to ``count`` watchers."""
        hits = parse_hits(self.load_raw()[:count])
        logger.debug("Loaded watchers from file", path=str(self.path), count=len(hits))
        return hits
