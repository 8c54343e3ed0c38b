"""Data types and interfaces of the query side."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Hit:
    """A ranked search result."""

    id: str
    source: Any
    score: float
    scores: dict[str, float] = field(default_factory=dict)
    highlight: str | None = None


@dataclass
class HitPage:
    """One page of ranked hits plus the total count."""

    total: int
    hits: list[Hit]


class QueryLanguage(enum.Enum):
    """Detected language of a query."""

    CHINESE = "Chinese"
    ENGLISH = "English"
    MIXED = "Mixed"
    UNKNOWN = "Unknown"


@dataclass
class ParseQuery:
    """The result of parsing a user query."""

    original_query: str
    normalized_query: str
    keywords: list[str]
    text_expression: str
    language: QueryLanguage


class QueryEngine(ABC):
    """Runs searches and returns ranked, paginated hits."""

    @abstractmethod
    async def search(
        self,
        query: str,
        index_name: str,
        body: Any,
        page_num: int | None = None,
        page_size: int | None = None,
    ) -> HitPage:
        """Search ``index_name`` with ``body`` and rank the hits for ``query``."""


class QueryParser(ABC):
    """Normalizes a user query and derives its keywords."""

    @abstractmethod
    def parse(self, query: str) -> ParseQuery:
        """Return the parsed form of ``query``."""


class Reranker(ABC):
    """Scores hits against a query with a model."""

    @abstractmethod
    async def rerank(self, query: str, hits: list[Hit]) -> list[float]:
        """Return one score per hit, in the same order."""