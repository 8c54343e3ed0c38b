"""Exception hierarchy used throughout the package."""

from __future__ import annotations


class RagError(Exception):
    """Base class for every error raised by the package."""

    prefix = ""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        if self.prefix:
            return f"{self.prefix}: {self.message}"
        return self.message


class InvalidInputError(RagError, ValueError):
    """The caller passed input that cannot be processed."""

    prefix = "invalid input"


class UnsupportedError(RagError):
    """The requested operation is not supported."""

    prefix = "unsupported"


class StoreError(RagError):
    """The storage backend reported a failure."""

    prefix = "store error"


class ExternalServiceError(RagError):
    """An external service (reranker, embedder, ...) misbehaved."""

    prefix = "external service error"


class InternalError(RagError):
    """An unexpected internal failure."""

    prefix = "internal error"