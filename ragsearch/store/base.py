"""Store records and the storage backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Item:
    """A document to be written to a store, keyed by ``id``."""

    id: str
    source: Any


@dataclass
class SearchHit:
    """A raw hit returned by a store search."""

    id: str
    source: Any
    score: float
    scores: dict[str, float] = field(default_factory=dict)
    highlight: str | None = None


class Store(ABC):
    """An asynchronous document store with search."""

    @abstractmethod
    async def create_schema(self, index_name: str, schema: Any) -> None:
        """Create ``index_name`` with the given schema."""

    @abstractmethod
    async def insert(self, index_name: str, item: Item) -> None:
        """Write a single item."""

    @abstractmethod
    async def batch_insert(self, index_name: str, items: list[Item]) -> None:
        """Write many items at once."""

    @abstractmethod
    async def update(self, index_name: str, id: str, fields: Any) -> None:
        """Partially update the document ``id``."""

    @abstractmethod
    async def delete(self, index_name: str, query: Any) -> None:
        """Delete every document matching ``query``."""

    @abstractmethod
    async def get(self, index_name: str, id: str) -> Any | None:
        """Return the source of document ``id``, or None if it is missing."""

    @abstractmethod
    async def search(self, index_name: str, body: Any) -> list[SearchHit]:
        """Run a search request and return its hits."""