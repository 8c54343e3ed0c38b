from __future__ import annotations

import pytest

from ragsearch.errors import ExternalServiceError, InvalidInputError
from ragsearch.index.types import DefaultChunk
from ragsearch.query.engine import (
    DEFAULT_HYBRID_SCORE_WEIGHT,
    DEFAULT_SCORE_THRESHOLD,
    DEFAULT_TOP,
    DefaultQueryEngine,
)
from ragsearch.query.types import Reranker
from ragsearch.store.base import SearchHit, Store

QUERY = "怎么重置密码"


def default_chunk(chunk_id: str = "chunk_1", embedding=None) -> DefaultChunk:
    return DefaultChunk(
        id=chunk_id,
        doc_id="doc_1",
        title="密码手册",
        title_tokens=["密码手册"],
        content="点击忘记密码完成重置",
        content_tokens=["点击忘记密码完成重置"],
        keywords=["密码"],
        keyword_tokens=["密码"],
        questions=["怎么重置密码"],
        question_tokens=["怎么重置密码"],
        embedding=embedding,
    )


def search_hit(score: float, chunk_id: str = "chunk_1", embedding=None) -> SearchHit:
    chunk = default_chunk(chunk_id, embedding)
    return SearchHit(id=chunk.id, source=chunk.to_dict(), score=score, scores={})


def search_body(text: str, filters: list) -> dict:
    return {
        "query": {
            "bool": {
                "must": [
                    {
                        "query_string": {
                            "query": text,
                            "fields": [
                                "questions^8",
                                "keywords^6",
                                "title^4",
                                "content^1",
                                "question_tokens^3",
                                "keyword_tokens^3",
                                "title_tokens^2",
                                "content_tokens^1",
                            ],
                            "default_operator": "OR",
                        }
                    }
                ],
                "filter": filters,
            }
        },
        "from": 0,
        "size": 1024,
    }


class FakeStore(Store):
    def __init__(self, hits=None):
        self.hits = hits or []
        self.recorded: list[tuple[str, object]] = []

    async def create_schema(self, index_name, schema):
        return None

    async def insert(self, index_name, item):
        return None

    async def batch_insert(self, index_name, items):
        return None

    async def update(self, index_name, id, fields):
        return None

    async def delete(self, index_name, query):
        return None

    async def get(self, index_name, id):
        return None

    async def search(self, index_name, body):
        self.recorded.append((index_name, body))
        return [
            SearchHit(id=h.id, source=h.source, score=h.score, scores=dict(h.scores))
            for h in self.hits
        ]


class MockStore(FakeStore):
    def __init__(self):
        hit = search_hit(1.0)
        hit.scores["text"] = 1.0
        super().__init__([hit])


class RouteStore(FakeStore):
    async def search(self, index_name, body):
        score = 0.9 if body.get("mode") == "hybrid" else 0.8
        return [search_hit(score)]


class VectorStore(FakeStore):
    def __init__(self):
        super().__init__(
            [
                search_hit(0.1, "chunk_1", [1.0, 0.0]),
                search_hit(10.0, "chunk_2", [0.0, 1.0]),
            ]
        )


class BadReranker(Reranker):
    async def rerank(self, query, hits):
        return []


class MapReranker(Reranker):
    def __init__(self, scores: dict[str, float]):
        self.scores = scores
        self.seen: list[str] = []

    async def rerank(self, query, hits):
        self.seen = [hit.id for hit in hits]
        return [self.scores[hit.id] for hit in hits]


def five_hit_store() -> FakeStore:
    return FakeStore([search_hit(float(i), f"c{i}") for i in range(1, 6)])


@pytest.mark.asyncio
async def test_search_uses_mock_store():
    engine = DefaultQueryEngine(MockStore(), None, 1024, 0.0, 0.0)
    page = await engine.search(QUERY, "chunks", search_body(QUERY, []))
    assert page.total == 1
    assert page.hits[0].id == "chunk_1"


def test_new_uses_default_search_settings():
    engine = DefaultQueryEngine(MockStore())
    assert engine.top == DEFAULT_TOP == 100
    assert engine.score_threshold == DEFAULT_SCORE_THRESHOLD == 0.2
    assert engine.hybrid_score_weight == DEFAULT_HYBRID_SCORE_WEIGHT == 0.95


@pytest.mark.asyncio
async def test_passes_caller_built_request_to_store():
    store = FakeStore([search_hit(1.0)])
    engine = DefaultQueryEngine(store)
    body = search_body(QUERY, [{"terms": {"knowledge_base_id": ["kb_1"]}}])
    await engine.search(QUERY, "custom_chunks", body)
    assert len(store.recorded) == 1
    assert store.recorded[0][0] == "custom_chunks"
    assert store.recorded[0][1] == body


@pytest.mark.asyncio
async def test_treats_body_as_single_backend_condition():
    engine = DefaultQueryEngine(RouteStore(), None, 1024, 0.0, 0.95)
    page = await engine.search(QUERY, "chunks", {"mode": "hybrid"})
    assert page.total == 1
    assert page.hits[0].scores["hybrid_score"] == pytest.approx(0.9)


@pytest.mark.asyncio
async def test_local_rerank_uses_query_vector_from_request():
    engine = DefaultQueryEngine(VectorStore(), None, 1024, 0.0, 0.95)
    body = {
        "query": {"match_all": {}},
        "knn": {"field": "embedding", "query_vector": [1.0, 0.0], "k": 2},
    }
    page = await engine.search(QUERY, "chunks", body, None, 2)
    assert page.hits[0].id == "chunk_1"
    assert page.hits[0].scores.get("vector_score") == 1.0
    assert page.hits[0].score > page.hits[1].score


@pytest.mark.asyncio
async def test_accepts_explicit_pagination():
    engine = DefaultQueryEngine(MockStore())
    page = await engine.search(QUERY, "chunks", search_body(QUERY, []), None, 1)
    assert len(page.hits) == 1


@pytest.mark.asyncio
async def test_rejects_wrong_reranker_score_count():
    engine = DefaultQueryEngine(MockStore(), BadReranker())
    with pytest.raises(ExternalServiceError) as info:
        await engine.search(QUERY, "chunks", search_body(QUERY, []))
    assert "reranker returned 0 scores" in str(info.value)


@pytest.mark.asyncio
async def test_empty_query_is_rejected():
    engine = DefaultQueryEngine(MockStore())
    with pytest.raises(InvalidInputError):
        await engine.search("   ", "chunks", {})


@pytest.mark.asyncio
async def test_reranker_scores_decide_order_and_are_recorded():
    reranker = MapReranker({"c1": 0.9, "c2": 0.1, "c3": 0.5, "c4": 0.3, "c5": 0.7})
    engine = DefaultQueryEngine(five_hit_store(), reranker, 100, 0.0, 1.0)
    page = await engine.search(QUERY, "chunks", {}, 1, 10)
    assert [hit.id for hit in page.hits] == ["c1", "c5", "c3", "c4", "c2"]
    assert page.hits[0].scores["model_score"] == 0.9
    assert page.hits[0].scores["rerank_score"] == pytest.approx(0.9)
    assert "term_score" in page.hits[0].scores


@pytest.mark.asyncio
async def test_reranker_receives_hits_in_store_score_order():
    reranker = MapReranker({f"c{i}": 0.5 for i in range(1, 6)})
    engine = DefaultQueryEngine(five_hit_store(), reranker, 100, 0.0, 1.0)
    await engine.search(QUERY, "chunks", {})
    assert reranker.seen == ["c5", "c4", "c3", "c2", "c1"]


@pytest.mark.asyncio
async def test_top_truncates_store_hits_before_reranking():
    reranker = MapReranker({f"c{i}": float(i) for i in range(1, 6)})
    engine = DefaultQueryEngine(five_hit_store(), reranker, 2, 0.0, 1.0)
    page = await engine.search(QUERY, "chunks", {})
    assert page.total == 2
    assert reranker.seen == ["c5", "c4"]


@pytest.mark.asyncio
async def test_pagination_pages_and_clamps_page_number():
    reranker = MapReranker({f"c{i}": i / 10 for i in range(1, 6)})
    engine = DefaultQueryEngine(five_hit_store(), reranker, 100, 0.0, 1.0)
    second = await engine.search(QUERY, "chunks", {}, 2, 2)
    assert second.total == 5
    assert [hit.id for hit in second.hits] == ["c3", "c2"]
    clamped = await engine.search(QUERY, "chunks", {}, 0, 0)
    assert [hit.id for hit in clamped.hits] == ["c5"]
    beyond = await engine.search(QUERY, "chunks", {}, 10, 2)
    assert beyond.hits == []
    assert beyond.total == 5


@pytest.mark.asyncio
async def test_score_threshold_filters_low_scores():
    reranker = MapReranker({"c1": 0.1, "c2": 0.2, "c3": 0.3, "c4": 0.4, "c5": 0.5})
    engine = DefaultQueryEngine(five_hit_store(), reranker, 100, 0.35, 1.0)
    page = await engine.search(QUERY, "chunks", {})
    assert page.total == 2
    assert [hit.id for hit in page.hits] == ["c5", "c4"]


@pytest.mark.asyncio
async def test_high_threshold_removes_every_local_score():
    engine = DefaultQueryEngine(MockStore(), None, 100, 2.0, 0.95)
    page = await engine.search(QUERY, "chunks", search_body(QUERY, []))
    assert page.total == 0
    assert page.hits == []


@pytest.mark.asyncio
async def test_store_hits_keep_original_scores_and_hybrid_score():
    engine = DefaultQueryEngine(MockStore(), None, 100, 0.0, 0.95)
    page = await engine.search(QUERY, "chunks", {})
    scores = page.hits[0].scores
    assert scores["text"] == 1.0
    assert scores["hybrid_score"] == 1.0
    assert scores["rerank_score"] == scores["term_score"]
    assert "vector_score" not in scores