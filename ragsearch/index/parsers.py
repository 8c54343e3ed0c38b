"""Parsers that split extracted documents into pieces."""

from __future__ import annotations

from dataclasses import dataclass, field

from ragsearch.errors import InvalidInputError
from ragsearch.index.types import (
    ContentFormat,
    ParsedContent,
    ParseInput,
    Parser,
    Piece,
    Positions,
)

_QUESTION_PREFIXES = ("Q:", "问:")
_ANSWER_PREFIXES = ("A:", "答:")


def _strip_prefix(line: str, prefixes: tuple[str, ...]) -> str | None:
    for prefix in prefixes:
        if line.startswith(prefix):
            return line[len(prefix):]
    return None


class PlainTextParser(Parser):
    """Treats the whole document as a single piece."""

    def parse(self, request: ParseInput) -> ParsedContent:
        return ParsedContent(pieces=[Piece(content=request.extracted.content)])


class QaParser(Parser):
    """Parses blank-line separated ``Q:``/``A:`` blocks into question pieces."""

    def parse(self, request: ParseInput) -> ParsedContent:
        pieces = []
        for block_index, block in enumerate(request.extracted.content.split("\n\n")):
            question: str | None = None
            answer: list[str] = []
            for line in (raw.strip() for raw in block.split("\n")):
                if not line:
                    continue
                if (rest := _strip_prefix(line, _QUESTION_PREFIXES)) is not None:
                    question = rest.strip()
                elif (rest := _strip_prefix(line, _ANSWER_PREFIXES)) is not None:
                    answer.append(rest.strip())
                else:
                    answer.append(line)

            if question is not None and answer:
                pieces.append(
                    Piece(
                        content="\n".join(answer),
                        questions=[question],
                        positions=Positions(chunk_index=block_index),
                    )
                )

        if not pieces:
            raise InvalidInputError("qa content has no valid Q/A pairs")
        return ParsedContent(pieces=pieces)


@dataclass
class ParserPipeline(Parser):
    """Dispatches to the parser matching the content format."""

    plain_text: Parser = field(default_factory=PlainTextParser)
    qa: Parser = field(default_factory=QaParser)

    def parse(self, request: ParseInput) -> ParsedContent:
        if request.format is ContentFormat.QA:
            return self.qa.parse(request)
        return self.plain_text.parse(request)