"""Interfaces of the collaborators the engine calls into."""

from __future__ import annotations

from typing import Any, Protocol

from vigil.engine.models import WatcherHit


class WatcherStore(Protocol):
    """Source of watcher definitions."""

    async def get_count(self) -> int:
        """Number of stored watchers."""
        ...

    async def get_watchers(self, count: int) -> list[WatcherHit]:
        """Fetch up to ``count`` watchers."""
        ...


class SearchClient(Protocol):
    """Runs watcher search requests."""

    async def search(self, request: dict[str, Any]) -> dict[str, Any] | None:
        ...
