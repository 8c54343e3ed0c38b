"""Conversion from store hits to query hits."""

from __future__ import annotations

from ragsearch.query.types import Hit
from ragsearch.store.base import SearchHit


def search_hit_to_hit(hit: SearchHit, score_key: str = "") -> Hit:
    """Convert a store hit, recording its score under ``score_key`` if given."""
    scores = dict(hit.scores)
    if score_key:
        scores[score_key] = hit.score
    return Hit(
        id=hit.id,
        source=hit.source,
        score=hit.score,
        scores=scores,
        highlight=hit.highlight,
    )