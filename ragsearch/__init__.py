"""Retrieval-augmented search: chunking, Elasticsearch indexing, query parsing and reranking."""

__version__ = "0.1.0"