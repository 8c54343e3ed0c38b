from ragsearch.store.base import SearchHit
from ragsearch.utils.hit import search_hit_to_hit


def _search_hit():
    return SearchHit(
        id="chunk_1",
        source={"id": "chunk_1", "content": "hello"},
        score=0.9,
        scores={"text": 1.0},
        highlight="<em>hello</em>",
    )


def test_conversion_keeps_fields():
    hit = search_hit_to_hit(_search_hit(), "")
    assert hit.id == "chunk_1"
    assert hit.source == {"id": "chunk_1", "content": "hello"}
    assert hit.score == 0.9
    assert hit.scores == {"text": 1.0}
    assert hit.highlight == "<em>hello</em>"


def test_score_key_records_score():
    hit = search_hit_to_hit(_search_hit(), "vector")
    assert hit.scores == {"text": 1.0, "vector": 0.9}


def test_source_hit_is_not_mutated():
    original = _search_hit()
    search_hit_to_hit(original, "vector")
    assert original.scores == {"text": 1.0}