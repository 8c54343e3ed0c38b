"""Reciprocal rank fusion of text and vector hit lists."""

from __future__ import annotations

from dataclasses import replace

from ragsearch.query.types import Hit


def fuse_by_rrf(
    text_hits: list[Hit],
    vector_hits: list[Hit],
    text_weight: float,
    vector_weight: float,
    rrf_k: int,
    top: int,
) -> list[Hit]:
    """Merge two ranked hit lists by weighted reciprocal rank, best first."""
    merged: dict[str, Hit] = {}

    for rank, hit in enumerate(text_hits, start=1):
        contribution = text_weight / (rrf_k + rank)
        scores = dict(hit.scores)
        scores["text_rank"] = float(rank)
        scores["rrf"] = contribution
        scores["hybrid_score"] = contribution
        merged[hit.id] = replace(hit, scores=scores)

    for rank, hit in enumerate(vector_hits, start=1):
        contribution = vector_weight / (rrf_k + rank)
        existing = merged.get(hit.id)
        if existing is not None:
            existing.scores["vector"] = hit.scores.get("vector", hit.score)
            existing.scores["vector_rank"] = float(rank)
            rrf = existing.scores.get("rrf", 0.0) + contribution
            existing.scores["rrf"] = rrf
            existing.scores["hybrid_score"] = rrf
            existing.score = rrf
        else:
            scores = dict(hit.scores)
            scores["vector_rank"] = float(rank)
            scores["rrf"] = contribution
            scores["hybrid_score"] = contribution
            merged[hit.id] = replace(hit, scores=scores, score=contribution)

    hits = [merged[hit_id] for hit_id in sorted(merged)]
    hits.sort(key=lambda hit: hit.score, reverse=True)
    return hits[:top]