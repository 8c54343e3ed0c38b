"""Default query engine: search a store, re-rank locally or with a model, paginate."""

from __future__ import annotations

import logging
from typing import Any

from ragsearch.errors import ExternalServiceError
from ragsearch.query.parsing import DefaultQueryParser
from ragsearch.query.scorer import LocalScorer, QueryScorer
from ragsearch.query.types import Hit, HitPage, ParseQuery, QueryEngine, QueryParser, Reranker
from ragsearch.store.base import Store
from ragsearch.utils.hit import search_hit_to_hit

logger = logging.getLogger(__name__)

DEFAULT_TOP = 100
DEFAULT_SCORE_THRESHOLD = 0.2
DEFAULT_HYBRID_SCORE_WEIGHT = 0.95
DEFAULT_PAGE_SIZE = 10


def _sort_by_score(hits: list[Hit]) -> None:
    hits.sort(key=lambda hit: hit.score, reverse=True)


class DefaultQueryEngine(QueryEngine):
    """Runs the caller's search request, re-ranks the hits and returns one page."""

    def __init__(
        self,
        store: Store,
        reranker: Reranker | None = None,
        top: int = DEFAULT_TOP,
        score_threshold: float = DEFAULT_SCORE_THRESHOLD,
        hybrid_score_weight: float = DEFAULT_HYBRID_SCORE_WEIGHT,
        query_parser: QueryParser | None = None,
        scorer: QueryScorer | None = None,
    ) -> None:
        self.store = store
        self.reranker = reranker
        self.top = top
        self.score_threshold = score_threshold
        self.hybrid_score_weight = hybrid_score_weight
        self.query_parser: QueryParser = query_parser or DefaultQueryParser()
        self.scorer: QueryScorer = scorer or LocalScorer()

    def __repr__(self) -> str:
        return (
            f"DefaultQueryEngine(top={self.top}, score_threshold={self.score_threshold}, "
            f"hybrid_score_weight={self.hybrid_score_weight}, "
            f"reranker={self.reranker!r})"
        )

    async def _search_hits(self, index_name: str, body: Any) -> list[Hit]:
        raw_hits = await self.store.search(index_name, body)
        hits = [search_hit_to_hit(raw, "") for raw in raw_hits]
        for hit in hits:
            hit.scores["hybrid_score"] = hit.score
        _sort_by_score(hits)
        return hits[: self.top]

    def _blend(self, term_score: float, other_score: float) -> float:
        weight = self.hybrid_score_weight
        return term_score * (1.0 - weight) + other_score * weight

    async def _rerank(
        self,
        parse_query: ParseQuery,
        query_vector: list[float] | None,
        hits: list[Hit],
    ) -> list[Hit]:
        if self.reranker is not None:
            model_scores = list(await self.reranker.rerank(parse_query.original_query, hits))
            if len(model_scores) != len(hits):
                raise ExternalServiceError(
                    f"reranker returned {len(model_scores)} scores for {len(hits)} hits"
                )
            for hit, model_score in zip(hits, model_scores):
                term_score = self.scorer.term_score(parse_query.keywords, hit)
                rerank_score = self._blend(term_score, model_score)
                hit.scores["term_score"] = term_score
                hit.scores["model_score"] = model_score
                hit.scores["rerank_score"] = rerank_score
                hit.score = rerank_score
        else:
            for hit in hits:
                term_score = self.scorer.term_score(parse_query.keywords, hit)
                vector_score = (
                    self.scorer.vector_score(query_vector, hit)
                    if query_vector is not None
                    else None
                )
                if vector_score is not None:
                    hit.scores["vector_score"] = vector_score
                    rerank_score = self._blend(term_score, vector_score)
                else:
                    rerank_score = term_score
                hit.scores["term_score"] = term_score
                hit.scores["rerank_score"] = rerank_score
                hit.score = rerank_score

        _sort_by_score(hits)
        return hits

    def _filter_hits(self, hits: list[Hit]) -> list[Hit]:
        if self.score_threshold <= 0.0:
            return hits
        return [hit for hit in hits if hit.score >= self.score_threshold]

    @staticmethod
    def _paginate(hits: list[Hit], page_num: int, page_size: int) -> list[Hit]:
        page_num = max(page_num, 1)
        page_size = max(page_size, 1)
        offset = (page_num - 1) * page_size
        return hits[offset : offset + page_size]

    async def search(
        self,
        query: str,
        index_name: str,
        body: Any,
        page_num: int | None = None,
        page_size: int | None = None,
    ) -> HitPage:
        page_num = max(page_num if page_num is not None else 1, 1)
        page_size = max(page_size if page_size is not None else DEFAULT_PAGE_SIZE, 1)

        logger.info("search.start query=%s", query)
        parse_query = self.query_parser.parse(query)
        query_vector = self.scorer.query_vector(body)
        hits = await self._search_hits(index_name, body)
        ranked = await self._rerank(parse_query, query_vector, hits)
        filtered = self._filter_hits(ranked)
        return HitPage(total=len(filtered), hits=self._paginate(filtered, page_num, page_size))