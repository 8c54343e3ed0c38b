"""Elasticsearch-backed store speaking the REST API over HTTP."""

from __future__ import annotations

import itertools
import json
from http import HTTPStatus
from typing import Any
from urllib.parse import quote

import httpx

from ragsearch.errors import InvalidInputError, StoreError
from ragsearch.store.base import Item, SearchHit, Store

_TIMEOUT_SECONDS = 30.0
_NDJSON = "application/x-ndjson"


def _status_text(status: int) -> str:
    try:
        return f"{status} {HTTPStatus(status).phrase}"
    except ValueError:
        return str(status)


def ensure_success(status: int, action: str) -> None:
    """Raise StoreError unless ``status`` is a 2xx code."""
    if not 200 <= status < 300:
        raise StoreError(f"elastic {action} failed with status {_status_text(status)}")


def ensure_bulk_success(value: Any) -> None:
    """Raise StoreError if a bulk response reports item errors."""
    if isinstance(value, dict) and value.get("errors") is True:
        raise StoreError("elastic batch_insert has item errors")


def parse_highlight(value: Any) -> str | None:
    """Join every highlight fragment of a hit with newlines."""
    if not isinstance(value, dict):
        return None
    fragments = [
        fragment
        for key in sorted(value)
        if isinstance(value[key], list)
        for fragment in value[key]
        if isinstance(fragment, str)
    ]
    return "\n".join(fragments) if fragments else None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def parse_hits(value: Any) -> list[SearchHit]:
    """Turn a search response into store hits."""
    outer = value.get("hits") if isinstance(value, dict) else None
    raw_hits = outer.get("hits") if isinstance(outer, dict) else None
    if not isinstance(raw_hits, list):
        return []

    hits = []
    for raw in raw_hits:
        raw = raw if isinstance(raw, dict) else {}
        if "_source" not in raw:
            raise StoreError("missing _source in search hit")
        source = raw["_source"]
        score = _as_number(raw.get("_score"))
        hit_id = raw.get("_id")
        if not isinstance(hit_id, str):
            source_id = source.get("id") if isinstance(source, dict) else None
            hit_id = source_id if isinstance(source_id, str) else ""
        hits.append(
            SearchHit(
                id=hit_id,
                source=source,
                score=score if score is not None else 0.0,
                scores={},
                highlight=parse_highlight(raw.get("highlight")),
            )
        )
    return hits


def _validate_node(url: str) -> str:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as error:
        raise StoreError(f"invalid elasticsearch transport: {error}") from error
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise StoreError(f"invalid elasticsearch transport: {url!r} is not an http(s) URL")
    return url.rstrip("/")


def _segment(text: str) -> str:
    return quote(text, safe="")


class Elastic(Store):
    """A store that talks to one or more Elasticsearch nodes."""

    def __init__(self, urls: str, transport: httpx.AsyncBaseTransport | None = None) -> None:
        nodes = [url.strip() for url in urls.split(",") if url.strip()]
        if not nodes:
            raise InvalidInputError("elastic urls cannot be empty")
        self.nodes = [_validate_node(node) for node in nodes]
        self._node_cycle = itertools.cycle(self.nodes)
        self._client = httpx.AsyncClient(transport=transport, timeout=_TIMEOUT_SECONDS)

    async def close(self) -> None:
        """Release the underlying HTTP connections."""
        await self._client.aclose()

    async def __aenter__(self) -> Elastic:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        *,
        body: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        url = f"{next(self._node_cycle)}{path}"
        try:
            if content is not None:
                return await self._client.request(method, url, content=content, headers=headers)
            if body is not None:
                return await self._client.request(method, url, json=body, headers=headers)
            return await self._client.request(method, url, headers=headers)
        except httpx.HTTPError as error:
            raise StoreError(f"elastic {action} request failed: {error}") from error

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as error:
            raise StoreError(f"elastic {action} returned invalid json: {error}") from error

    async def create_schema(self, index_name: str, schema: Any) -> None:
        response = await self._request(
            "PUT", f"/{_segment(index_name)}", "create_schema", body=schema
        )
        ensure_success(response.status_code, "create_schema")

    async def insert(self, index_name: str, item: Item) -> None:
        response = await self._request(
            "PUT",
            f"/{_segment(index_name)}/_doc/{_segment(item.id)}",
            "insert",
            body=item.source,
        )
        ensure_success(response.status_code, "insert")

    async def batch_insert(self, index_name: str, items: list[Item]) -> None:
        if not items:
            return
        lines = []
        for item in items:
            lines.append(json.dumps({"index": {"_index": index_name, "_id": item.id}}, ensure_ascii=False))
            lines.append(json.dumps(item.source, ensure_ascii=False))
        payload = ("\n".join(lines) + "\n").encode("utf-8")
        response = await self._request(
            "POST", "/_bulk", "batch_insert", content=payload, headers={"content-type": _NDJSON}
        )
        value = self._json(response, "batch_insert")
        ensure_success(response.status_code, "batch_insert")
        ensure_bulk_success(value)

    async def update(self, index_name: str, id: str, fields: Any) -> None:
        response = await self._request(
            "POST",
            f"/{_segment(index_name)}/_update/{_segment(id)}",
            "update",
            body={"doc": fields},
        )
        ensure_success(response.status_code, "update")

    async def delete(self, index_name: str, query: Any) -> None:
        response = await self._request(
            "POST", f"/{_segment(index_name)}/_delete_by_query", "delete", body=query
        )
        ensure_success(response.status_code, "delete")

    async def get(self, index_name: str, id: str) -> Any | None:
        response = await self._request(
            "GET", f"/{_segment(index_name)}/_doc/{_segment(id)}", "get"
        )
        if response.status_code == HTTPStatus.NOT_FOUND:
            return None
        value = self._json(response, "get")
        ensure_success(response.status_code, "get")
        if not isinstance(value, dict) or "_source" not in value:
            return None
        return value["_source"]

    async def search(self, index_name: str, body: Any) -> list[SearchHit]:
        response = await self._request(
            "POST", f"/{_segment(index_name)}/_search", "search", body=body
        )
        value = self._json(response, "search")
        ensure_success(response.status_code, "search")
        return parse_hits(value)