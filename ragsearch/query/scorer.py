"""Local re-scoring of hits by term overlap and vector similarity."""

from __future__ import annotations

import copy
import string
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable
from itertools import pairwise
from typing import Any

from ragsearch.query.types import Hit

_EPSILON = sys.float_info.epsilon if False else 1.1920929e-07
_ASCII_PUNCTUATION = frozenset(string.punctuation)
_ASCII_DIGITS = frozenset(string.digits)
_ASCII_LETTERS = frozenset(string.ascii_letters)
_CJK_PUNCTUATION = frozenset("，。？！；：、“”‘’（）【】《》「」『』")
_CJK_RANGES = (
    (0x4E00, 0x9FFF),
    (0x3400, 0x4DBF),
    (0x20000, 0x2A6DF),
    (0x2A700, 0x2B73F),
    (0x2B740, 0x2B81F),
    (0x2B820, 0x2CEAF),
)


class QueryScorer(ABC):
    """Scores hits against a parsed query."""

    @abstractmethod
    def term_score(self, keywords: list[str], hit: Hit) -> float:
        """Return the keyword overlap score of ``hit``."""

    @abstractmethod
    def vector_score(self, query_vector: list[float], hit: Hit) -> float | None:
        """Return the vector similarity of ``hit``, or None if it has no vector."""

    @abstractmethod
    def query_vector(self, search_body: Any) -> list[float] | None:
        """Return the query vector carried by a search request, if any."""


def _is_cjk(ch: str) -> bool:
    code = ord(ch)
    return any(low <= code <= high for low, high in _CJK_RANGES)


def _normalize_token(token: str) -> str:
    return token.strip().lower()


def _split_term_text(text: str) -> list[str]:
    cleaned = "".join(
        " " if ch in _ASCII_PUNCTUATION or ch.isspace() or ch in _CJK_PUNCTUATION else ch
        for ch in text
    )
    return [token for token in map(_normalize_token, cleaned.split()) if token]


def _field_terms(source: Any, field: str) -> list[str]:
    value = source.get(field) if isinstance(source, dict) else None
    if isinstance(value, list):
        return [term for item in value if isinstance(item, str) for term in _split_term_text(item)]
    if isinstance(value, str):
        return _split_term_text(value)
    return []


def _unique(tokens: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(tokens))


def _expanded_matching_terms(token: str) -> list[str]:
    token = _normalize_token(token)
    if not token:
        return []
    terms = [token]
    if len(token) >= 3 and any(_is_cjk(ch) for ch in token):
        terms.extend(a + b for a, b in pairwise(token))
    return _unique(terms)


def _expanded_field_terms(source: Any, field: str) -> list[str]:
    return [
        term
        for token in _field_terms(source, field)
        for term in _expanded_matching_terms(token)
    ]


def _term_weight(token: str) -> float:
    if all(ch in _ASCII_DIGITS for ch in token):
        return 2.0
    if all(ch in _ASCII_LETTERS for ch in token) and len(token) <= 2:
        return 0.01
    if len(token) == 1:
        return 0.2
    if len(token) >= 4:
        return 1.4
    return 1.0


def _normalized_term_weights(tokens: Iterable[str]) -> list[tuple[str, float]]:
    weighted = [
        (token, _term_weight(token))
        for token in map(_normalize_token, tokens)
        if token
    ]
    total = sum(weight for _, weight in weighted)
    if total <= _EPSILON:
        return []
    return [(token, weight / total) for token, weight in weighted]


def _weighted_token_similarity(query: dict[str, float], chunk: dict[str, float]) -> float:
    matched = 1e-9
    total = 1e-9
    for token, weight in query.items():
        if token in chunk:
            matched += weight
        total += weight
    return matched / total


def _number_array(value: Any) -> list[float] | None:
    if not isinstance(value, list) or not value:
        return None
    if any(isinstance(item, bool) or not isinstance(item, (int, float)) for item in value):
        return None
    return [float(item) for item in value]


def cosine_similarity(left: list[float], right: list[float]) -> float | None:
    """Return the cosine similarity, or None for mismatched or zero vectors."""
    if len(left) != len(right) or not left:
        return None
    dot = sum(a * b for a, b in zip(left, right))
    left_norm = sum(a * a for a in left)
    right_norm = sum(b * b for b in right)
    if left_norm <= _EPSILON or right_norm <= _EPSILON:
        return None
    return dot / left_norm**0.5 / right_norm**0.5


class LocalScorer(QueryScorer):
    """Scores hits by weighted token and phrase overlap, and by cosine similarity."""

    def __init__(
        self,
        token_weight: float = 0.4,
        phrase_weight: float = 0.6,
        title_weight: int = 2,
        keyword_weight: int = 5,
        question_weight: int = 6,
        vector_fields: Iterable[str] = ("embedding",),
    ) -> None:
        # Single tokens and adjacent-token phrases share the overlap score.
        self.token_weight = token_weight
        self.phrase_weight = phrase_weight
        # How many times each field's terms are repeated on the chunk side.
        self.title_weight = title_weight
        self.keyword_weight = keyword_weight
        self.question_weight = question_weight
        # Chunk vector fields tried after the dimension-specific q_{dim}_vec field.
        self.vector_fields = [str(name) for name in vector_fields]

    def __repr__(self) -> str:
        return (
            f"LocalScorer(token_weight={self.token_weight}, phrase_weight={self.phrase_weight}, "
            f"title_weight={self.title_weight}, keyword_weight={self.keyword_weight}, "
            f"question_weight={self.question_weight}, vector_fields={self.vector_fields!r})"
        )

    def with_token_weights(self, token_weight: float, phrase_weight: float) -> LocalScorer:
        """Return a copy with new token and phrase weights."""
        scorer = copy.deepcopy(self)
        scorer.token_weight = token_weight
        scorer.phrase_weight = phrase_weight
        return scorer

    def with_field_weights(
        self, title_weight: int, keyword_weight: int, question_weight: int
    ) -> LocalScorer:
        """Return a copy with new per-field repetition counts."""
        scorer = copy.deepcopy(self)
        scorer.title_weight = title_weight
        scorer.keyword_weight = keyword_weight
        scorer.question_weight = question_weight
        return scorer

    def with_vector_fields(self, vector_fields: Iterable[str]) -> LocalScorer:
        """Return a copy reading chunk vectors from ``vector_fields``."""
        scorer = copy.deepcopy(self)
        scorer.vector_fields = [str(name) for name in vector_fields]
        return scorer

    def _weighted_chunk_tokens(self, source: Any) -> list[str]:
        tokens = _unique(_expanded_field_terms(source, "content_tokens"))
        if not tokens:
            tokens = _unique(_expanded_field_terms(source, "content"))

        tokens.extend(_expanded_field_terms(source, "title_tokens") * self.title_weight)
        if not _field_terms(source, "title_tokens"):
            tokens.extend(_expanded_field_terms(source, "title") * self.title_weight)

        for field, times in (
            ("keywords", self.keyword_weight),
            ("keyword_tokens", self.keyword_weight),
            ("questions", self.question_weight),
            ("question_tokens", self.question_weight),
        ):
            tokens.extend(_expanded_field_terms(source, field) * times)
        return tokens

    def _token_weight_map(self, tokens: Iterable[str]) -> dict[str, float]:
        weighted = _normalized_term_weights(tokens)
        weights: dict[str, float] = {}
        for term, weight in weighted:
            weights[term] = weights.get(term, 0.0) + weight * self.token_weight
        for (term, weight), (next_term, next_weight) in pairwise(weighted):
            phrase = term + next_term
            weights[phrase] = weights.get(phrase, 0.0) + max(weight, next_weight) * self.phrase_weight
        return weights

    def term_score(self, keywords: list[str], hit: Hit) -> float:
        fallback = hit.scores.get("hybrid_score", 0.0)
        if not keywords:
            return fallback
        query_weights = self._token_weight_map(keywords)
        if not query_weights:
            return fallback
        chunk_tokens = self._weighted_chunk_tokens(hit.source)
        if not chunk_tokens:
            return 0.0
        return _weighted_token_similarity(query_weights, self._token_weight_map(chunk_tokens))

    def vector_score(self, query_vector: list[float], hit: Hit) -> float | None:
        source = hit.source if isinstance(hit.source, dict) else {}
        candidates = [f"q_{len(query_vector)}_vec", *self.vector_fields]
        chunk_vector = next(
            (vector for name in candidates if (vector := _number_array(source.get(name))) is not None),
            None,
        )
        if chunk_vector is None:
            return None
        return cosine_similarity(list(query_vector), chunk_vector)

    def query_vector(self, search_body: Any) -> list[float] | None:
        knn = search_body.get("knn") if isinstance(search_body, dict) else None
        if isinstance(knn, dict):
            vector = _number_array(knn.get("query_vector"))
            if vector is not None:
                return vector
        if isinstance(knn, list) and knn and isinstance(knn[0], dict):
            return _number_array(knn[0].get("query_vector"))
        return None