import pytest

from ragsearch.errors import InvalidInputError
from ragsearch.index.parsers import ParserPipeline, PlainTextParser, QaParser
from ragsearch.index.types import ContentFormat, ExtractedDocument, ParseInput, Positions


def _extracted(content, kind="qa"):
    return ExtractedDocument(title="QA", content=content, kind=kind, size=0)


def test_qa_parser_extracts_pairs():
    extracted = _extracted("Q: 如何重置密码？\nA: 点击忘记密码。\n\nQ: 支持什么文件？\nA: txt。")
    parsed = QaParser().parse(ParseInput(extracted=extracted, format=ContentFormat.QA))
    assert len(parsed.pieces) == 2
    assert parsed.pieces[0].questions[0] == "如何重置密码？"
    assert parsed.pieces[0].content == "点击忘记密码。"
    assert parsed.pieces[1].questions == ["支持什么文件？"]


def test_qa_parser_accepts_chinese_prefixes_and_plain_lines():
    extracted = _extracted("问: 怎么登录\n答: 输入账号\n然后点击登录")
    parsed = QaParser().parse(ParseInput(extracted=extracted, format=ContentFormat.QA))
    assert parsed.pieces[0].questions == ["怎么登录"]
    assert parsed.pieces[0].content == "输入账号\n然后点击登录"


def test_qa_parser_skips_blocks_without_answer_and_keeps_block_index():
    extracted = _extracted("Q: lonely question\n\nQ: x\nA: y")
    parsed = QaParser().parse(ParseInput(extracted=extracted, format=ContentFormat.QA))
    assert len(parsed.pieces) == 1
    assert parsed.pieces[0].questions == ["x"]
    assert parsed.pieces[0].positions.chunk_index == 1


def test_qa_parser_rejects_content_without_pairs():
    extracted = _extracted("just some text\nwith no questions")
    with pytest.raises(InvalidInputError, match="no valid Q/A pairs"):
        QaParser().parse(ParseInput(extracted=extracted, format=ContentFormat.QA))


def test_plain_text_parser_returns_single_piece():
    extracted = _extracted("line one\n\nline two", kind="text")
    parsed = PlainTextParser().parse(ParseInput(extracted=extracted))
    assert len(parsed.pieces) == 1
    assert parsed.pieces[0].content == "line one\n\nline two"
    assert parsed.pieces[0].questions == []
    assert parsed.pieces[0].positions == Positions()


def test_pipeline_dispatches_by_format():
    content = "Q: a\nA: b"
    pipeline = ParserPipeline()
    text = pipeline.parse(ParseInput(extracted=_extracted(content), format=ContentFormat.TEXT))
    qa = pipeline.parse(ParseInput(extracted=_extracted(content), format=ContentFormat.QA))
    assert text.pieces[0].content == content
    assert text.pieces[0].questions == []
    assert qa.pieces[0].questions == ["a"]
    assert qa.pieces[0].content == "b"