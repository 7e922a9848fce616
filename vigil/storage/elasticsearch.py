"""
Elasticsearch Backend

Reads watchers from an Elasticsearch index and runs watcher searches over the
REST API.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from vigil.engine.errors import SearchError, StorageError, StorageNotFoundError
from vigil.engine.models import WatcherHit
from vigil.storage.base import parse_hits

logger = structlog.get_logger(__name__)

# Request keys that are not passed through as query parameters
_REQUEST_KEYS = {"index", "body", "type"}


class ElasticsearchClient:
    """
    Minimal async Elasticsearch REST client.

    Watcher search requests have the form ``{"index": ..., "body": {...}}``;
    any other keys are sent as query parameters.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:9200",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Elasticsearch URL
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send a request and decode the JSON response.

        Raises:
            StorageNotFoundError: On HTTP 404
            StorageError: On any other HTTP or transport failure
        """
        client = await self._get_client()
        try:
            response = await client.request(method, path, json=body, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise StorageNotFoundError(f"Not found: {path}") from e
            raise StorageError(
                f"Elasticsearch returned {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            raise StorageError(f"Elasticsearch request failed: {e}") from e

        return response.json()

    async def count(self, index: str) -> int:
        """Number of documents in an index."""
        data = await self.request("GET", f"/{index}/_count")
        return int(data.get("count", 0))

    async def search(self, request: dict[str, Any]) -> dict[str, Any] | None:
        """
        Run a watcher search request.

        Raises:
            SearchError: If the search fails
        """
        index = request.get("index") or "_all"
        if isinstance(index, (list, tuple)):
            index = ",".join(index)

        params = {
            key: str(value).lower() if isinstance(value, bool) else value
            for key, value in request.items()
            if key not in _REQUEST_KEYS
        }

        try:
            return await self.request(
                "POST",
                f"/{index}/_search",
                body=request.get("body") or {},
                params=params or None,
            )
        except StorageError as e:
            raise SearchError(str(e)) from e


class ElasticsearchWatcherStore:
    """Watcher storage on an Elasticsearch index."""

    def __init__(self, client: ElasticsearchClient, index: str = "watcher") -> None:
        self.client = client
        self.index = index

    async def get_count(self) -> int:
        """Number of stored watchers."""
        return await self.client.count(self.index)

    async def get_watchers(self, count: int) -> list[WatcherHit]:
        """Fetch up to ``count`` watchers."""
        data = await self.client.request(
            "POST",
            f"/{self.index}/_search",
            body={"size": count, "query": {"match_all": {}}},
        )
        raw_hits = data.get("hits", {}).get("hits", [])
        logger.debug("Fetched watchers", index=self.index, count=len(raw_hits))
        return parse_hits(raw_hits)
