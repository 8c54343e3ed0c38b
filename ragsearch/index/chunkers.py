"""Chunkers that split text into pieces, and the pipeline that picks one."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import replace

from ragsearch.index.types import (
    ChunkerKind,
    ChunkInput,
    ChunkPipeline,
    ChunkPipelineInput,
    Chunker,
    Piece,
    Positions,
)

DEFAULT_DELIMITER = "\n\n"
SEMANTIC_DELIMITER = "\n"


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _span_piece(content: str, chunk_index: int, start: int, end: int) -> Piece:
    return Piece(
        content=content[start:end],
        positions=Positions(chunk_index=chunk_index, start_offset=start, end_offset=end),
    )


class DelimiterChunker(Chunker):
    """Joins delimiter-separated parts into chunks of at most ``chunk_size`` bytes."""

    def chunk(self, request: ChunkInput) -> list[Piece]:
        delimiter = request.delimiter or DEFAULT_DELIMITER
        parts = (part.strip() for part in request.content.split(delimiter))
        pieces: list[Piece] = []
        current = ""

        for part in filter(None, parts):
            if current and _byte_len(current) + _byte_len(part) > request.chunk_size:
                pieces.append(Piece(content=current, positions=Positions(len(pieces))))
                current = ""
            current = f"{current}{delimiter}{part}" if current else part

        if current:
            pieces.append(Piece(content=current, positions=Positions(len(pieces))))
        return pieces


class FixedChunker(Chunker):
    """Cuts text into consecutive windows of ``chunk_size`` characters."""

    def chunk(self, request: ChunkInput) -> list[Piece]:
        content = request.content
        size = max(request.chunk_size, 1)
        return [
            _span_piece(content, index, start, min(start + size, len(content)))
            for index, start in enumerate(range(0, len(content), size))
        ]


def _sliding_spans(length: int, size: int, overlap: int) -> Iterator[tuple[int, int]]:
    start = 0
    while start < length:
        end = min(start + size, length)
        yield start, end
        if end == length:
            return
        start = max(end - overlap, 0)


class SlidingWindowChunker(Chunker):
    """Cuts text into windows of ``chunk_size`` characters sharing ``chunk_overlap``."""

    def chunk(self, request: ChunkInput) -> list[Piece]:
        content = request.content
        size = max(request.chunk_size, 1)
        overlap = min(request.chunk_overlap, size - 1)
        return [
            _span_piece(content, index, start, end)
            for index, (start, end) in enumerate(_sliding_spans(len(content), size, overlap))
        ]


class SemanticChunker(Chunker):
    """Groups lines into chunks, splitting on single newlines."""

    def chunk(self, request: ChunkInput) -> list[Piece]:
        return DelimiterChunker().chunk(replace(request, delimiter=SEMANTIC_DELIMITER))


class ChunkerPipeline(ChunkPipeline):
    """Chunks parsed pieces with the chunker selected by the request."""

    def __init__(
        self,
        fixed: Chunker | None = None,
        sliding_window: Chunker | None = None,
        delimiter: Chunker | None = None,
        semantic: Chunker | None = None,
    ) -> None:
        self.fixed = fixed or FixedChunker()
        self.sliding_window = sliding_window or SlidingWindowChunker()
        self.delimiter = delimiter or DelimiterChunker()
        self.semantic = semantic or SemanticChunker()

    def _select(self, kind: ChunkerKind, chunk_overlap: int) -> Chunker:
        match kind:
            case ChunkerKind.FIXED:
                return self.fixed if chunk_overlap == 0 else self.sliding_window
            case ChunkerKind.DELIMITER:
                return self.delimiter
            case _:
                return self.semantic

    def chunk(self, request: ChunkPipelineInput) -> list[Piece]:
        chunker = self._select(request.kind, request.chunk_overlap)
        pieces: list[Piece] = []
        for piece in request.parsed.pieces:
            if piece.questions:
                pieces.append(piece)
                continue
            pieces.extend(
                chunker.chunk(
                    ChunkInput(
                        content=piece.content,
                        chunk_size=request.chunk_size,
                        chunk_overlap=request.chunk_overlap,
                        delimiter=request.delimiter,
                    )
                )
            )

        return [
            replace(piece, positions=replace(piece.positions, chunk_index=index))
            for index, piece in enumerate(pieces)
        ]