"""Demo wiring: ingest text files into Elasticsearch and run a hybrid search."""

from __future__ import annotations

import argparse
import asyncio
import copy
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ragsearch.embedding import Embedder
from ragsearch.errors import InvalidInputError, RagError
from ragsearch.index.builder import DefaultIndexBuilder
from ragsearch.index.types import BuildInput, ChunkerKind, ContentFormat
from ragsearch.query.engine import DefaultQueryEngine
from ragsearch.query.parsing import DefaultQueryParser
from ragsearch.query.types import HitPage
from ragsearch.store.base import Store
from ragsearch.store.elastic import Elastic

DEFAULT_DATA_DIR = "examples/data"
ES_URL = "http://127.0.0.1:9200"
DEMO_QUERY = "怎么重置密码？"
DEMO_KNOWLEDGE_BASE_ID = "demo_knowledge_base"
CHUNKS_INDEX = "rag_demo_chunks"
EMBEDDING_DIM = 1024
REFRESH_DELAY_SECONDS = 2.0

_FNV_OFFSET_BASIS = 0xCBF29CE484222325
_FNV_PRIME = 0x00000100000001B3
_U64_MASK = (1 << 64) - 1

_SEARCH_FIELDS = [
    "questions^8",
    "keywords^6",
    "title^4",
    "content^1",
    "question_tokens^3",
    "keyword_tokens^3",
    "title_tokens^2",
    "content_tokens^1",
]


def stable_hash(text: str) -> int:
    """Return the 64-bit FNV-1a hash of the UTF-8 bytes of ``text``."""
    value = _FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * _FNV_PRIME) & _U64_MASK
    return value


class DemoEmbedder(Embedder):
    """A hashing bag-of-words embedder, good enough for demos and tests."""

    def __repr__(self) -> str:
        return "DemoEmbedder()"

    async def embed(self, text: str) -> list[float]:
        vector = [0.0] * EMBEDDING_DIM
        tokens = text.split()
        for token in tokens:
            vector[stable_hash(token) % EMBEDDING_DIM] += 1.0
        if not tokens:
            for ch in text:
                if not ch.isspace():
                    vector[stable_hash(ch) % EMBEDDING_DIM] += 1.0

        norm = sum(value * value for value in vector) ** 0.5
        if norm > 0.0:
            vector = [value / norm for value in vector]
        return vector


def create_store(url: str = ES_URL) -> Elastic:
    """Return an Elasticsearch store for ``url``."""
    return Elastic(url)


def create_embedder() -> Embedder:
    """Return the demo embedder."""
    return DemoEmbedder()


def create_index_builder(store: Store | None, embedder: Embedder | None) -> DefaultIndexBuilder:
    """Return the index builder used by the demo."""
    return (
        DefaultIndexBuilder(store, embedder, CHUNKS_INDEX)
        .with_chunking(ChunkerKind.FIXED, 350, 80, None)
        .with_keyword_top(3)
    )


def create_engine(store: Store) -> DefaultQueryEngine:
    """Return the query engine used by the demo."""
    return DefaultQueryEngine(store, None, 20, 0.0, 0.95)


def txt_files(directory: str | Path) -> list[Path]:
    """Return the ``.txt`` entries of ``directory``, sorted by path."""
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except OSError as error:
        raise InvalidInputError(f"failed to read data dir {directory}: {error}") from error
    return sorted(path for path in entries if path.suffix == ".txt")


def data_files(data_dir: str | Path = DEFAULT_DATA_DIR) -> list[Path]:
    """Return the demo's text files."""
    return txt_files(data_dir)


def text_search_body(text_expression: str) -> dict[str, Any]:
    """Return a full-text search request."""
    return {
        "size": 20,
        "query": {
            "bool": {
                "must": [
                    {
                        "query_string": {
                            "query": text_expression,
                            "fields": list(_SEARCH_FIELDS),
                            "default_operator": "OR",
                        }
                    }
                ]
            }
        },
        "highlight": {"fields": {"content": {}}},
    }


def vector_search_body(query_vector: Sequence[float]) -> dict[str, Any]:
    """Return a kNN-only search request."""
    return {
        "size": 20,
        "knn": {
            "field": "embedding",
            "query_vector": list(query_vector),
            "k": 20,
            "num_candidates": 100,
        },
    }


def hybrid_search_body(text_expression: str, query_vector: Sequence[float]) -> dict[str, Any]:
    """Return a search request combining full-text and kNN retrieval."""

    def bool_query() -> dict[str, Any]:
        return {
            "bool": {
                "must": [
                    {
                        "query_string": {
                            "query": text_expression,
                            "fields": list(_SEARCH_FIELDS),
                            "type": "best_fields",
                            "minimum_should_match": "30%",
                        }
                    }
                ],
                "boost": 0.05,
            }
        }

    return {
        "size": 20,
        "query": bool_query(),
        "knn": {
            "field": "embedding",
            "query_vector": list(query_vector),
            "k": 20,
            "num_candidates": 100,
            "boost": 0.95,
            "filter": bool_query(),
        },
        "highlight": {"fields": {"content": {}}},
    }


def search_body(text_expression: str, query_vector: Sequence[float]) -> dict[str, Any]:
    """Return the search request the demo sends."""
    return hybrid_search_body(text_expression, query_vector)


def chunk_schema() -> dict[str, Any]:
    """Return the index mapping for chunk records."""
    return {
        "mappings": {
            "properties": {
                "id": {"type": "keyword"},
                "doc_id": {"type": "keyword"},
                "knowledge_base_id": {"type": "keyword"},
                "title": {"type": "text"},
                "title_tokens": {"type": "text"},
                "content": {"type": "text"},
                "content_tokens": {"type": "text"},
                "keywords": {"type": "keyword"},
                "keyword_tokens": {"type": "text"},
                "questions": {"type": "text"},
                "question_tokens": {"type": "text"},
                "tags": {"type": "keyword"},
                "embedding": {
                    "type": "dense_vector",
                    "dims": EMBEDDING_DIM,
                    "index": True,
                    "similarity": "cosine",
                },
            }
        }
    }


async def recreate_indexes(store: Store) -> None:
    """Empty the chunk index and (re)create its schema, ignoring store failures."""
    try:
        await store.delete(CHUNKS_INDEX, {"query": {"match_all": {}}})
    except RagError:
        pass
    try:
        await store.create_schema(CHUNKS_INDEX, chunk_schema())
    except RagError:
        pass


async def ingest_all_texts(
    store: Store | None = None, data_dir: str | Path = DEFAULT_DATA_DIR
) -> int:
    """Index every text file of ``data_dir`` and return the number of chunks written."""
    owned = store is None
    if store is None:
        store = create_store()
    try:
        await recreate_indexes(store)
        builder = create_index_builder(store, create_embedder())
        files = data_files(data_dir)
        print(f"indexing {len(files)} txt files from {data_dir}")

        chunk_count = 0
        for path in files:
            title = path.stem or "untitled"
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as error:
                raise InvalidInputError(f"failed to read {path}: {error}") from error
            output = await builder.index(
                BuildInput(
                    content=content,
                    title=title,
                    kind="text",
                    format=ContentFormat.TEXT,
                    knowledge_base_id=DEMO_KNOWLEDGE_BASE_ID,
                    metadata={"path": str(path)},
                    tags=["demo", "faq"],
                    chunker=ChunkerKind.FIXED,
                    chunk_size=350,
                    chunk_overlap=80,
                )
            )
            chunk_count += len(output.chunks)
        return chunk_count
    finally:
        if owned and isinstance(store, Elastic):
            await store.close()


def snippet(content: str, max_chars: int) -> str:
    """Return ``content`` on one line, cut to ``max_chars`` characters."""
    text = content.replace("\r", " ").replace("\n", " ")
    result = text[:max_chars]
    if len(text) > max_chars:
        result += "..."
    return result


def redacted_search_body(body: Any) -> Any:
    """Return a copy of ``body`` with the kNN query vector replaced by its size."""
    body = copy.deepcopy(body)
    knn = body.get("knn") if isinstance(body, dict) else None
    if isinstance(knn, dict) and "query_vector" in knn:
        vector = knn["query_vector"]
        knn["query_vector"] = {
            "redacted": True,
            "dims": len(vector) if isinstance(vector, list) else 0,
        }
    return body


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


async def run_search(store: Store | None = None, query: str = DEMO_QUERY) -> HitPage:
    """Run the demo query, print the ranked hits and return the page."""
    owned = store is None
    if store is None:
        store = create_store()
    try:
        embedder = create_embedder()
        engine = create_engine(store)
        parsed = DefaultQueryParser().parse(query)
        query_vector = await embedder.embed(parsed.normalized_query)
        body = search_body(parsed.text_expression, query_vector)
        redacted = json.dumps(
            redacted_search_body(body), ensure_ascii=False, indent=2, sort_keys=True
        )
        print(f"\nsearch index: {CHUNKS_INDEX}")
        print(f"search body:\n{redacted}")

        page = await engine.search(query, CHUNKS_INDEX, body, 1, 5)

        print(f"\nquery: {query}")
        print(f"normalized query: {parsed.normalized_query}")
        print(f"text expression: {parsed.text_expression}")
        print(f"keywords: {_dump(parsed.keywords)}")
        print(f"total hits after ranking: {page.total}")
        for number, hit in enumerate(page.hits, start=1):
            source = hit.source if isinstance(hit.source, dict) else {}
            title = source.get("title")
            content = source.get("content")
            title = title if isinstance(title, str) else ""
            content = content if isinstance(content, str) else ""
            print(
                f"\n#{number} id={hit.id} score={hit.score:.4f} title={title}\n"
                f"{snippet(content, 180)}"
            )
            print(f"scores: {_dump(hit.scores)}")
        return page
    finally:
        if owned and isinstance(store, Elastic):
            await store.close()


async def wait_for_refresh() -> None:
    """Give the search backend time to make new documents searchable."""
    await asyncio.sleep(REFRESH_DELAY_SECONDS)


async def _ingest(url: str, data_dir: str) -> int:
    store = create_store(url)
    try:
        count = await ingest_all_texts(store, data_dir)
        await wait_for_refresh()
        return count
    finally:
        await store.close()


async def _search(url: str, query: str) -> None:
    store = create_store(url)
    try:
        await run_search(store, query)
    finally:
        await store.close()


def ingest_main(argv: Sequence[str] | None = None) -> int:
    """Command entry point: index the demo text files."""
    parser = argparse.ArgumentParser(description="Index text files into the demo chunk index.")
    parser.add_argument("--url", default=ES_URL, help="comma separated Elasticsearch URLs")
    parser.add_argument("--data-dir", default=DEFAULT_DATA_DIR, help="directory of .txt files")
    args = parser.parse_args(argv)
    try:
        count = asyncio.run(_ingest(args.url, args.data_dir))
    except RagError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    print(f"indexed {count} chunks")
    return 0


def search_main(argv: Sequence[str] | None = None) -> int:
    """Command entry point: run the demo search."""
    parser = argparse.ArgumentParser(description="Search the demo chunk index.")
    parser.add_argument("--url", default=ES_URL, help="comma separated Elasticsearch URLs")
    parser.add_argument("--query", default=DEMO_QUERY, help="query text")
    args = parser.parse_args(argv)
    try:
        asyncio.run(_search(args.url, args.query))
    except RagError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    return 0