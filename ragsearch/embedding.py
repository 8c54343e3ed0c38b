"""Interface for turning text into embedding vectors."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Embedder(ABC):
    """Produces a dense vector for a piece of text."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector of ``text``."""