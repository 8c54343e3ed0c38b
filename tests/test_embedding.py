import pytest

from ragsearch.embedding import Embedder


def test_embedder_is_abstract():
    with pytest.raises(TypeError, match="embed"):
        Embedder()