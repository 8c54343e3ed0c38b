"""Default index builder: extract, parse, chunk, enrich and store documents."""

from __future__ import annotations

import copy
import logging
import string
import uuid
from datetime import datetime, timezone

from ragsearch.embedding import Embedder
from ragsearch.errors import InvalidInputError
from ragsearch.index.chunkers import ChunkerPipeline
from ragsearch.index.parsers import ParserPipeline
from ragsearch.index.types import (
    BuildInput,
    BuildOutput,
    ChunkerKind,
    ChunkPipeline,
    ChunkPipelineInput,
    DefaultChunk,
    DefaultDocument,
    ExtractedDocument,
    Extractor,
    IndexBuilder,
    KeywordExtractionInput,
    KeywordExtractor,
    ParseInput,
    Parser,
    Piece,
    Tokenizer,
)
from ragsearch.store.base import Item, Store

logger = logging.getLogger(__name__)

DEFAULT_CHUNKER = ChunkerKind.FIXED
DEFAULT_CHUNK_SIZE = 800
DEFAULT_CHUNK_OVERLAP = 100
DEFAULT_KEYWORD_TOP = 3

_ASCII_PUNCTUATION = frozenset(string.punctuation)


class PlainTextExtractor(Extractor):
    """Uses the build input's content as-is."""

    async def extract(self, build_input: BuildInput) -> ExtractedDocument:
        return ExtractedDocument(
            title=build_input.title,
            content=build_input.content,
            kind=build_input.kind,
            size=len(build_input.content.encode("utf-8")),
        )


class SimpleTokenizer(Tokenizer):
    """Lowercases text and splits it on whitespace and ASCII punctuation."""

    def tokenize(self, text: str) -> list[str]:
        normalized = "".join(
            " " if ch in _ASCII_PUNCTUATION or ch.isspace() else ch for ch in text
        ).lower()
        return normalized.split()


class DefaultIndexBuilder(IndexBuilder):
    """Builds chunk records from documents and writes them to a store."""

    def __init__(
        self,
        store: Store | None,
        embedder: Embedder | None,
        index_name: str,
        keyword_extractor: KeywordExtractor | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.index_name = index_name
        self.keyword_extractor = keyword_extractor
        self.extractor: Extractor = PlainTextExtractor()
        self.parser: Parser = ParserPipeline()
        self.chunker: ChunkPipeline = ChunkerPipeline()
        self.tokenizer: Tokenizer = SimpleTokenizer()
        self.chunker_kind = DEFAULT_CHUNKER
        self.chunk_size = DEFAULT_CHUNK_SIZE
        self.chunk_overlap = DEFAULT_CHUNK_OVERLAP
        self.delimiter: str | None = None
        self.keyword_top = DEFAULT_KEYWORD_TOP

    def __repr__(self) -> str:
        return (
            f"DefaultIndexBuilder(index_name={self.index_name!r}, "
            f"chunker_kind={self.chunker_kind}, chunk_size={self.chunk_size}, "
            f"chunk_overlap={self.chunk_overlap}, keyword_top={self.keyword_top})"
        )

    def with_chunking(
        self,
        chunker_kind: ChunkerKind,
        chunk_size: int,
        chunk_overlap: int,
        delimiter: str | None = None,
    ) -> DefaultIndexBuilder:
        """Return a copy using the given default chunking settings."""
        builder = copy.copy(self)
        builder.chunker_kind = chunker_kind
        builder.chunk_size = chunk_size
        builder.chunk_overlap = chunk_overlap
        builder.delimiter = delimiter
        return builder

    def with_keyword_top(self, keyword_top: int) -> DefaultIndexBuilder:
        """Return a copy extracting up to ``keyword_top`` keywords per chunk."""
        builder = copy.copy(self)
        builder.keyword_top = keyword_top
        return builder

    def _build_document(
        self, extracted: ExtractedDocument, build_input: BuildInput
    ) -> DefaultDocument:
        return DefaultDocument(
            id=str(uuid.uuid4()),
            tenant_id=build_input.tenant_id,
            user_id=build_input.user_id,
            knowledge_base_id=build_input.knowledge_base_id,
            title=extracted.title,
            content=extracted.content,
            hash_id=None,
            size=extracted.size,
            created_at=datetime.now(timezone.utc),
            metadata=build_input.metadata,
            kind=extracted.kind,
        )

    @staticmethod
    def _build_chunk(
        piece: Piece, document: DefaultDocument, build_input: BuildInput
    ) -> DefaultChunk:
        return DefaultChunk(
            id=str(uuid.uuid4()),
            tenant_id=document.tenant_id,
            user_id=document.user_id,
            knowledge_base_id=document.knowledge_base_id,
            doc_id=document.id,
            title=document.title,
            content=piece.content,
            keywords=list(build_input.keywords),
            questions=list(piece.questions) or list(build_input.questions),
            positions=piece.positions,
            tags=list(build_input.tags),
        )

    async def _extract_keywords(self, chunk: DefaultChunk) -> None:
        if self.keyword_extractor is None or chunk.keywords:
            return
        keywords = await self.keyword_extractor.extract_keywords(
            KeywordExtractionInput(
                title=chunk.title, content=chunk.content, top=self.keyword_top
            )
        )
        chunk.keywords = [kw.strip() for kw in keywords if kw.strip()]

    def _tokenize_chunk(self, chunk: DefaultChunk) -> None:
        tokenize = self.tokenizer.tokenize
        chunk.title_tokens = tokenize(chunk.title)
        chunk.content_tokens = tokenize(chunk.content)
        chunk.keyword_tokens = [t for kw in chunk.keywords for t in tokenize(kw)]
        chunk.question_tokens = [t for q in chunk.questions for t in tokenize(q)]

    async def build(self, build_input: BuildInput) -> BuildOutput:
        logger.info(
            "index.build.start title=%s kind=%s", build_input.title, build_input.kind
        )
        extracted = await self.extractor.extract(build_input)
        parsed = self.parser.parse(
            ParseInput(extracted=extracted, format=build_input.format)
        )
        pieces = self.chunker.chunk(
            ChunkPipelineInput(
                parsed=parsed,
                kind=build_input.chunker or self.chunker_kind,
                chunk_size=(
                    build_input.chunk_size
                    if build_input.chunk_size is not None
                    else self.chunk_size
                ),
                chunk_overlap=(
                    build_input.chunk_overlap
                    if build_input.chunk_overlap is not None
                    else self.chunk_overlap
                ),
                delimiter=(
                    build_input.delimiter
                    if build_input.delimiter is not None
                    else self.delimiter
                ),
            )
        )

        document = self._build_document(extracted, build_input)
        chunks = [self._build_chunk(piece, document, build_input) for piece in pieces]

        for chunk in chunks:
            await self._extract_keywords(chunk)
            self._tokenize_chunk(chunk)
            if self.embedder is not None:
                chunk.embedding = list(await self.embedder.embed(chunk.content))

        chunk_items = [Item(id=chunk.id, source=chunk.to_dict()) for chunk in chunks]
        logger.info(
            "index.build.done document_id=%s chunk_count=%d", document.id, len(chunk_items)
        )
        return BuildOutput(
            document=Item(id=document.id, source=document.to_dict()),
            chunks=chunk_items,
        )

    async def index(self, build_input: BuildInput) -> BuildOutput:
        output = await self.build(build_input)
        if self.store is None:
            raise InvalidInputError("store is required for index()")
        await self.store.batch_insert(self.index_name, list(output.chunks))
        logger.info(
            "index.store.done document_id=%s chunk_count=%d",
            output.document.id,
            len(output.chunks),
        )
        return output