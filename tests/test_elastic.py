import json

import httpx
import pytest

from ragsearch.errors import InvalidInputError, StoreError
from ragsearch.store.base import Item
from ragsearch.store.elastic import (
    Elastic,
    ensure_bulk_success,
    ensure_success,
    parse_highlight,
    parse_hits,
)


def make_store(handler, urls="http://localhost:9200"):
    requests = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return Elastic(urls, transport=httpx.MockTransport(record)), requests


def test_rejects_empty_urls():
    with pytest.raises(InvalidInputError):
        Elastic(" , ")


def test_rejects_invalid_url():
    with pytest.raises(StoreError):
        Elastic("not a url")


def test_parses_highlight_fragments():
    hits = parse_hits(
        {
            "hits": {
                "hits": [
                    {
                        "_id": "chunk_1",
                        "_score": 0.9,
                        "_source": {"id": "chunk_1", "content": "hello"},
                        "highlight": {
                            "content": ["<em>hello</em>"],
                            "title": ["title"],
                        },
                    }
                ]
            }
        }
    )
    assert hits[0].highlight == "<em>hello</em>\ntitle"
    assert hits[0].id == "chunk_1"
    assert hits[0].score == pytest.approx(0.9)


def test_rejects_bulk_item_errors():
    with pytest.raises(StoreError) as info:
        ensure_bulk_success({"errors": True})
    assert "batch_insert has item errors" in str(info.value)


def test_bulk_success_without_errors():
    assert ensure_bulk_success({"errors": False}) is None


def test_parse_hits_falls_back_to_source_id_and_zero_score():
    hits = parse_hits({"hits": {"hits": [{"_score": None, "_source": {"id": "x"}}]}})
    assert hits[0].id == "x"
    assert hits[0].score == 0.0
    assert hits[0].highlight is None


def test_parse_hits_requires_source():
    with pytest.raises(StoreError) as info:
        parse_hits({"hits": {"hits": [{"_id": "a"}]}})
    assert "missing _source" in str(info.value)


def test_parse_hits_without_hits_is_empty():
    assert parse_hits({"took": 1}) == []


def test_parse_highlight_empty_is_none():
    assert parse_highlight({"content": []}) is None
    assert parse_highlight(None) is None


def test_ensure_success_message():
    with pytest.raises(StoreError) as info:
        ensure_success(404, "search")
    assert str(info.value) == "store error: elastic search failed with status 404 Not Found"


@pytest.mark.asyncio
async def test_search_posts_body_and_parses_hits():
    body = {"query": {"match_all": {}}}

    def handler(request):
        return httpx.Response(
            200,
            json={"hits": {"hits": [{"_id": "a", "_score": 2.0, "_source": {"content": "c"}}]}},
        )

    store, requests = make_store(handler)
    hits = await store.search("chunks", body)
    await store.close()

    assert [hit.id for hit in hits] == ["a"]
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/chunks/_search"
    assert json.loads(requests[0].content) == body


@pytest.mark.asyncio
async def test_search_failure_raises():
    store, _ = make_store(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(StoreError) as info:
        await store.search("chunks", {})
    await store.close()
    assert "elastic search failed with status 500" in str(info.value)


@pytest.mark.asyncio
async def test_get_missing_returns_none():
    store, requests = make_store(lambda request: httpx.Response(404, json={"found": False}))
    assert await store.get("chunks", "missing") is None
    await store.close()
    assert requests[0].url.path == "/chunks/_doc/missing"


@pytest.mark.asyncio
async def test_get_returns_source():
    store, _ = make_store(
        lambda request: httpx.Response(200, json={"_id": "a", "_source": {"title": "t"}})
    )
    assert await store.get("chunks", "a") == {"title": "t"}
    await store.close()


@pytest.mark.asyncio
async def test_batch_insert_sends_ndjson():
    store, requests = make_store(lambda request: httpx.Response(200, json={"errors": False}))
    await store.batch_insert("chunks", [Item(id="1", source={"content": "甲"}), Item(id="2", source={"content": "b"})])
    await store.close()

    request = requests[0]
    assert request.url.path == "/_bulk"
    assert request.headers["content-type"] == "application/x-ndjson"
    lines = [json.loads(line) for line in request.content.decode("utf-8").splitlines()]
    assert lines == [
        {"index": {"_index": "chunks", "_id": "1"}},
        {"content": "甲"},
        {"index": {"_index": "chunks", "_id": "2"}},
        {"content": "b"},
    ]


@pytest.mark.asyncio
async def test_batch_insert_empty_sends_nothing():
    store, requests = make_store(lambda request: httpx.Response(200, json={}))
    await store.batch_insert("chunks", [])
    await store.close()
    assert requests == []


@pytest.mark.asyncio
async def test_batch_insert_item_errors_raise():
    store, _ = make_store(lambda request: httpx.Response(200, json={"errors": True}))
    with pytest.raises(StoreError):
        await store.batch_insert("chunks", [Item(id="1", source={})])
    await store.close()


@pytest.mark.asyncio
async def test_update_wraps_fields_in_doc():
    store, requests = make_store(lambda request: httpx.Response(200, json={}))
    await store.update("chunks", "a", {"title": "new"})
    await store.close()
    assert requests[0].url.path == "/chunks/_update/a"
    assert json.loads(requests[0].content) == {"doc": {"title": "new"}}


@pytest.mark.asyncio
async def test_create_schema_and_delete_paths():
    store, requests = make_store(lambda request: httpx.Response(200, json={}))
    await store.create_schema("chunks", {"mappings": {}})
    await store.delete("chunks", {"query": {"match_all": {}}})
    await store.insert("chunks", Item(id="x", source={"a": 1}))
    await store.close()
    assert [(r.method, r.url.path) for r in requests] == [
        ("PUT", "/chunks"),
        ("POST", "/chunks/_delete_by_query"),
        ("PUT", "/chunks/_doc/x"),
    ]


@pytest.mark.asyncio
async def test_multiple_nodes_are_used_in_turn():
    store, requests = make_store(
        lambda request: httpx.Response(200, json={}),
        urls="http://node1:9200, http://node2:9200",
    )
    await store.delete("a", {})
    await store.delete("a", {})
    await store.close()
    assert [r.url.host for r in requests] == ["node1", "node2"]