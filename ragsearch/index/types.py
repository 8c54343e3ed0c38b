"""Data types and interfaces of the indexing pipeline."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ragsearch.store.base import Item


class ContentFormat(enum.Enum):
    """How the raw content of a document is structured."""

    TEXT = "Text"
    QA = "Qa"


class ChunkerKind(enum.Enum):
    """Which chunking strategy to apply."""

    FIXED = "Fixed"
    DELIMITER = "Delimiter"
    SEMANTIC = "Semantic"


@dataclass
class BuildInput:
    """A document handed to an index builder."""

    content: str
    title: str
    kind: str = "text"
    format: ContentFormat = ContentFormat.TEXT
    tenant_id: str | None = None
    user_id: str | None = None
    knowledge_base_id: str | None = None
    metadata: Any = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    chunker: ChunkerKind | None = None
    chunk_size: int | None = None
    chunk_overlap: int | None = None
    delimiter: str | None = None
    keywords: list[str] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)


@dataclass
class BuildOutput:
    """The document record and the chunk records produced by a build."""

    document: Item
    chunks: list[Item]


@dataclass
class Positions:
    """Where a chunk sits within its document."""

    chunk_index: int = 0
    start_offset: int | None = None
    end_offset: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the positions."""
        return {
            "chunk_index": self.chunk_index,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
        }


def _format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DefaultDocument:
    """The document record kept alongside its chunks."""

    id: str
    tenant_id: str | None
    user_id: str | None
    knowledge_base_id: str | None
    title: str
    content: str
    hash_id: str | None
    size: int
    created_at: datetime
    metadata: Any
    kind: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the document."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "knowledge_base_id": self.knowledge_base_id,
            "title": self.title,
            "content": self.content,
            "hash_id": self.hash_id,
            "size": self.size,
            "created_at": _format_timestamp(self.created_at),
            "metadata": self.metadata,
            "type": self.kind,
        }


@dataclass
class DefaultChunk:
    """A searchable chunk of a document."""

    id: str
    doc_id: str
    title: str
    content: str
    tenant_id: str | None = None
    user_id: str | None = None
    knowledge_base_id: str | None = None
    title_tokens: list[str] = field(default_factory=list)
    content_tokens: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    keyword_tokens: list[str] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)
    question_tokens: list[str] = field(default_factory=list)
    embedding: list[float] | None = None
    positions: Positions = field(default_factory=Positions)
    tags: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the chunk."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "knowledge_base_id": self.knowledge_base_id,
            "doc_id": self.doc_id,
            "title": self.title,
            "title_tokens": list(self.title_tokens),
            "content": self.content,
            "content_tokens": list(self.content_tokens),
            "keywords": list(self.keywords),
            "keyword_tokens": list(self.keyword_tokens),
            "questions": list(self.questions),
            "question_tokens": list(self.question_tokens),
            "embedding": None if self.embedding is None else list(self.embedding),
            "positions": self.positions.to_dict(),
            "tags": list(self.tags),
            "images": list(self.images),
        }


@dataclass
class ExtractedDocument:
    """Text pulled out of a raw document."""

    title: str
    content: str
    kind: str
    size: int


@dataclass
class Piece:
    """A unit of content produced by parsing or chunking."""

    content: str
    questions: list[str] = field(default_factory=list)
    positions: Positions = field(default_factory=Positions)


@dataclass
class ParsedContent:
    """The pieces a parser produced."""

    pieces: list[Piece]


@dataclass
class ParseInput:
    """Request for a parser."""

    extracted: ExtractedDocument
    format: ContentFormat = ContentFormat.TEXT


@dataclass
class ChunkInput:
    """Request for a single chunker."""

    content: str
    chunk_size: int
    chunk_overlap: int = 0
    delimiter: str | None = None


@dataclass
class ChunkPipelineInput:
    """Request for a chunking pipeline."""

    parsed: ParsedContent
    kind: ChunkerKind
    chunk_size: int
    chunk_overlap: int = 0
    delimiter: str | None = None


@dataclass(frozen=True)
class KeywordExtractionInput:
    """Request for a keyword extractor."""

    title: str
    content: str
    top: int


class IndexBuilder(ABC):
    """Turns documents into chunk records and optionally stores them."""

    @abstractmethod
    async def build(self, build_input: BuildInput) -> BuildOutput:
        """Build the document and chunk records without storing them."""

    @abstractmethod
    async def index(self, build_input: BuildInput) -> BuildOutput:
        """Build the records and write the chunks to the store."""


class Tokenizer(ABC):
    """Splits text into tokens."""

    @abstractmethod
    def tokenize(self, text: str) -> list[str]:
        """Return the tokens of ``text``."""


class KeywordExtractor(ABC):
    """Finds the keywords of a chunk."""

    @abstractmethod
    async def extract_keywords(self, request: KeywordExtractionInput) -> list[str]:
        """Return up to ``request.top`` keywords."""


class Extractor(ABC):
    """Pulls text out of a raw document."""

    @abstractmethod
    async def extract(self, build_input: BuildInput) -> ExtractedDocument:
        """Return the extracted document."""


class Parser(ABC):
    """Splits an extracted document into pieces."""

    @abstractmethod
    def parse(self, request: ParseInput) -> ParsedContent:
        """Return the parsed pieces."""


class Chunker(ABC):
    """Splits a text into chunks."""

    @abstractmethod
    def chunk(self, request: ChunkInput) -> list[Piece]:
        """Return the chunks of ``request.content``."""


class ChunkPipeline(ABC):
    """Chunks every piece of parsed content."""

    @abstractmethod
    def chunk(self, request: ChunkPipelineInput) -> list[Piece]:
        """Return the chunks of all parsed pieces."""