"""
Tests for the storage backends.
"""

import json

import httpx
import pytest

from vigil.engine.errors import SearchError, StorageError, StorageNotFoundError
from vigil.storage import ElasticsearchClient, ElasticsearchWatcherStore, JsonWatcherStore


def _client(handler) -> ElasticsearchClient:
    return ElasticsearchClient("http://es:9200", transport=httpx.MockTransport(handler))


class TestElasticsearchWatcherStore:
    """Tests for the Elasticsearch watcher store."""

    @pytest.mark.asyncio
    async def test_count_then_list(self, make_record) -> None:
        """Test the store counts, then fetches that many watchers."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path, request.content))
            if request.url.path == "/watcher/_count":
                return httpx.Response(200, json={"count": 2})
            return httpx.Response(
                200,
                json={"hits": {"hits": [make_record("w1"), make_record("w2")]}},
            )

        client = _client(handler)
        store = ElasticsearchWatcherStore(client, index="watcher")

        count = await store.get_count()
        hits = await store.get_watchers(count)
        await client.close()

        assert count == 2
        assert [h.id for h in hits] == ["w1", "w2"]
        assert seen[1][0] == "POST"
        assert seen[1][1] == "/watcher/_search"
        assert json.loads(seen[1][2])["size"] == 2

    @pytest.mark.asyncio
    async def test_missing_index(self) -> None:
        """Test a 404 raises StorageNotFoundError."""
        client = _client(lambda request: httpx.Response(404, json={"error": "index_not_found"}))
        store = ElasticsearchWatcherStore(client)

        with pytest.raises(StorageNotFoundError):
            await store.get_count()
        await client.close()

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        """Test other HTTP errors raise StorageError."""
        client = _client(lambda request: httpx.Response(500))
        store = ElasticsearchWatcherStore(client)

        with pytest.raises(StorageError) as exc_info:
            await store.get_count()
        assert not isinstance(exc_info.value, StorageNotFoundError)
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_watcher_skipped(self, make_record) -> None:
        """Test records that fail validation are left out."""
        broken = {"_id": "bad", "_source": {"actions": "not-a-mapping"}}
        client = _client(
            lambda request: httpx.Response(200, json={"hits": {"hits": [broken, make_record("ok")]}})
        )
        store = ElasticsearchWatcherStore(client)

        hits = await store.get_watchers(2)
        await client.close()

        assert [h.id for h in hits] == ["ok"]


class TestElasticsearchSearch:
    """Tests for watcher searches."""

    @pytest.mark.asyncio
    async def test_search_request(self) -> None:
        """Test indices, body and extra parameters are sent."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"hits": {"total": 4}})

        client = _client(handler)
        result = await client.search({
            "index": ["logs-a", "logs-b"],
            "body": {"query": {"match_all": {}}},
            "ignore_unavailable": True,
        })
        await client.close()

        assert result == {"hits": {"total": 4}}
        assert seen["path"] == "/logs-a,logs-b/_search"
        assert seen["params"] == {"ignore_unavailable": "true"}
        assert seen["body"] == {"query": {"match_all": {}}}

    @pytest.mark.asyncio
    async def test_search_failure(self) -> None:
        """Test search failures raise SearchError."""
        client = _client(lambda request: httpx.Response(400, json={"error": "parse"}))

        with pytest.raises(SearchError):
            await client.search({"index": "logs", "body": {}})
        await client.close()


class TestJsonWatcherStore:
    """Tests for the JSON file store."""

    @pytest.mark.asyncio
    async def test_list_layout(self, tmp_path, make_record) -> None:
        """Test a plain list of records."""
        path = tmp_path / "watchers.json"
        path.write_text(json.dumps([make_record("w1"), make_record("w2")]))
        store = JsonWatcherStore(path)

        assert await store.get_count() == 2
        assert [h.id for h in await store.get_watchers(1)] == ["w1"]

    @pytest.mark.asyncio
    async def test_search_response_layout(self, tmp_path, make_record) -> None:
        """Test a search response layout."""
        path = tmp_path / "watchers.json"
        path.write_text(json.dumps({"hits": {"hits": [make_record("w1")]}}))

        hits = await JsonWatcherStore(path).get_watchers(10)

        assert [h.id for h in hits] == ["w1"]

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path) -> None:
        """Test a missing file raises StorageNotFoundError."""
        with pytest.raises(StorageNotFoundError):
            await JsonWatcherStore(tmp_path / "nope.json").get_count()

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path) -> None:
        """Test an unreadable file raises StorageError."""
        path = tmp_path / "watchers.json"
        path.write_text("{not json")

        with pytest.raises(StorageError):
            await JsonWatcherStore(path).get_count()
