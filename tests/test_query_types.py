import pytest

from ragsearch.query.types import (
    Hit,
    HitPage,
    ParseQuery,
    QueryEngine,
    QueryLanguage,
    QueryParser,
    Reranker,
)


class _ConstantReranker(Reranker):
    async def rerank(self, query, hits):
        return [0.5 for _ in hits]


def test_hit_defaults_are_independent():
    first = Hit(id="a", source={}, score=1.0)
    second = Hit(id="b", source={}, score=2.0)
    first.scores["hybrid_score"] = 1.0
    assert second.scores == {}
    assert second.highlight is None


def test_hit_page_holds_hits():
    hits = [Hit(id="a", source={}, score=1.0)]
    page = HitPage(total=5, hits=hits)
    assert page.total == 5
    assert page.hits[0].id == "a"


@pytest.mark.parametrize(
    ("value", "member"),
    [
        ("Chinese", QueryLanguage.CHINESE),
        ("English", QueryLanguage.ENGLISH),
        ("Mixed", QueryLanguage.MIXED),
        ("Unknown", QueryLanguage.UNKNOWN),
    ],
)
def test_query_language_values(value, member):
    assert QueryLanguage(value) is member


def test_parse_query_holds_fields():
    parsed = ParseQuery(
        original_query="Reset Password",
        normalized_query="reset password",
        keywords=["reset", "password"],
        text_expression="reset^1.000 OR password^1.000",
        language=QueryLanguage.ENGLISH,
    )
    assert parsed.keywords == ["reset", "password"]
    assert parsed.language is QueryLanguage.ENGLISH


@pytest.mark.parametrize("cls", [QueryEngine, QueryParser, Reranker])
def test_interfaces_are_abstract(cls):
    with pytest.raises(TypeError):
        cls()


@pytest.mark.asyncio
async def test_reranker_subclass_scores_every_hit():
    hits = [Hit(id=str(n), source={}, score=0.0) for n in range(3)]
    scores = await _ConstantReranker().rerank("q", hits)
    assert len(scores) == len(hits)