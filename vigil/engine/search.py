"""
Search Method Resolution

Picks which search operation of a search client a watcher firing uses.
"""

from __future__ import annotations

from typing import Any, Sequence

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_SEARCH_METHOD = "search"
DEFAULT_CANDIDATES = ("kibi_search", "vanguard_search", "search")


class SearchMethodResolver:
    """
    Resolves the search operation to call on a search client.

    When the distributed search extension is available, the first candidate
    the client offers is used; otherwise the plain ``search`` operation. The
    result is cached per client.
    """

    def __init__(
        self,
        candidates: Sequence[str] = DEFAULT_CANDIDATES,
        distributed_search_available: bool = False,
    ) -> None:
        self.candidates = tuple(candidates)
        self.distributed_search_available = distributed_search_available
        self._resolved: dict[int, str] = {}

    @classmethod
    def from_plugins(
        cls,
        plugins: Sequence[str],
        extension: str,
        candidates: Sequence[str] = DEFAULT_CANDIDATES,
    ) -> "SearchMethodResolver":
        """Build a resolver from the search backend's installed plugins."""
        return cls(candidates=candidates, distributed_search_available=extension in plugins)

    def resolve(self, client: Any) -> str:
        """Name of the search operation to use for a client."""
        key = id(client)
        method = self._resolved.get(key)
        if method is not None:
            return method

        method = DEFAULT_SEARCH_METHOD
        if self.distributed_search_available:
            for candidate in self.candidates:
                if callable(getattr(client, candidate, None)):
                    method = candidate
                    break

        self._resolved[key] = method
        logger.debug("Resolved search method", method=method)
        return method
