# ragsearch

A small retrieval-augmented search toolkit built around three pieces:

- **Store** – where chunks live. `ragsearch.store.elastic.Elastic` talks to one or
  more Elasticsearch nodes over HTTP (comma separated URLs, used in turn). It can be
  closed with `await store.close()` or used as `async with Elastic(...) as store`.
  Any class implementing `ragsearch.store.base.Store` can take its place.
- **Index builder** – `ragsearch.index.builder.DefaultIndexBuilder` turns a
  `ragsearch.index.types.BuildInput` into chunk records. It extracts the text, parses
  it as plain text or as blank-line separated `Q:`/`A:` (or `问:`/`答:`) blocks,
  splits it, tokenizes titles, content, keywords and questions with
  `SimpleTokenizer`, fills keywords from an optional `KeywordExtractor` and
  embeddings from an optional `Embedder`. `build()` returns the document and chunk
  records; `index()` also writes the chunks (only the chunks) to the store.
- **Query engine** – `ragsearch.query.engine.DefaultQueryEngine` sends a search body
  you build to the store, reranks the hits locally with term overlap and vector
  similarity (or with your own `Reranker`), filters them by score and returns a
  `HitPage` with the total and one page of hits.

### Chunking

`ragsearch.index.chunkers` provides:

- `FixedChunker` – consecutive windows of `chunk_size` characters;
- `SlidingWindowChunker` – windows of `chunk_size` characters sharing
  `chunk_overlap` characters;
- `DelimiterChunker` – joins delimiter-separated parts (default `"\n\n"`) into
  chunks of at most `chunk_size` UTF-8 bytes;
- `SemanticChunker` – the same, splitting on single newlines;
- `ChunkerPipeline` – picks one by `ChunkerKind` (`FIXED` uses the sliding window
  when the overlap is non-zero), keeps Q/A pieces whole and renumbers the chunks.

The builder defaults to fixed chunking of 800 characters with 100 overlap and three
extracted keywords; `with_chunking()` and `with_keyword_top()` return adjusted copies,
and each `BuildInput` may override the chunker, size, overlap and delimiter.

### Query parsing

`ragsearch.query.parsing.DefaultQueryParser` normalises a query: spacing between
Latin letters/digits and other text, lower-casing, full-width to half-width
conversion, mapping of common traditional Chinese characters to simplified ones,
removal of search syntax characters and weak question words, tokenization, term
weighting, a small built-in synonym list and bigram expansion for Chinese terms of
three or more characters. The resulting `ParseQuery` carries the normalised query,
the detected `QueryLanguage`, up to 32 keywords and a weighted `query_string`
expression. An empty query raises `InvalidInputError`.

### Ranking

With no reranker, each hit gets a `term_score` from `ragsearch.query.scorer.LocalScorer`
and, when the search body has `knn.query_vector` and the hit's source has a vector
(`q_{dim}_vec` or `embedding`), a `vector_score`; the two are blended by
`hybrid_score_weight`. With a reranker, its model scores are blended with the term
score instead, and a reranker returning the wrong number of scores raises
`ExternalServiceError`. Defaults: top 100 hits, score threshold 0.2 (a threshold of
0 or less disables filtering), weight 0.95, page size 10.

`LocalScorer.with_token_weights()`, `with_field_weights()` and `with_vector_fields()`
return adjusted copies.

Two ranked lists can also be merged with reciprocal rank fusion using
`ragsearch.query.rrf.fuse_by_rrf`.

## Trying it out

The demo expects an Elasticsearch node at `http://127.0.0.1:9200` and a directory
`examples/data` of `.txt` files relative to the working directory.

Index every text file as chunks (the chunk index is emptied and its schema
created first; the command then waits two seconds for the index to refresh):

```
ragsearch-ingest
```

Options: `--url` (comma separated Elasticsearch URLs) and `--data-dir`.

Then run the demo question against it and print the search body (with the query
vector redacted), the parsed query and the ranked hits with their scores:

```
ragsearch-search
```

Options: `--url` and `--query`. Both commands print the error and exit with status 1
when the package raises one of its errors.

The demo uses `ragsearch.demo.DemoEmbedder`, a deterministic 1024-dimension hashing
embedder, so no model service is needed. `ragsearch.demo` also offers
`text_search_body`, `vector_search_body`, `hybrid_search_body` and `chunk_schema`.

## Using the library

Everything that touches the store is asynchronous.

```python
import asyncio

from ragsearch.demo import DemoEmbedder, hybrid_search_body
from ragsearch.index.builder import DefaultIndexBuilder
from ragsearch.index.types import BuildInput
from ragsearch.query.engine import DefaultQueryEngine
from ragsearch.query.parsing import DefaultQueryParser
from ragsearch.store.elastic import Elastic


async def main() -> None:
    async with Elastic("http://127.0.0.1:9200") as store:
        embedder = DemoEmbedder()

        builder = DefaultIndexBuilder(store, embedder, "my_chunks").with_keyword_top(3)
        await builder.index(BuildInput(content="点击忘记密码完成重置。", title="密码手册"))

        parsed = DefaultQueryParser().parse("怎么重置密码？")
        print(parsed.normalized_query, parsed.keywords, parsed.text_expression)

        vector = await embedder.embed(parsed.normalized_query)
        body = hybrid_search_body(parsed.text_expression, vector)

        engine = DefaultQueryEngine(store)
        page = await engine.search(parsed.original_query, "my_chunks", body, 1, 5)
        for hit in page.hits:
            print(hit.id, hit.score, hit.scores)


asyncio.run(main())
```

`ragsearch.utils.retry.retry(operation, max_retries)` re-awaits a failing coroutine
function with exponential backoff starting at 0.1 seconds.

### Errors

All failures raise subclasses of `ragsearch.errors.RagError`:
`InvalidInputError` (also a `ValueError`), `UnsupportedError`, `StoreError`,
`ExternalServiceError` and `InternalError`.

### Extending

Implement `ragsearch.embedding.Embedder` to plug in an embedding model,
`ragsearch.index.types.KeywordExtractor` to fill chunk keywords automatically,
`ragsearch.query.types.Reranker` for model-based reranking, or
`ragsearch.query.scorer.QueryScorer` to change local scoring.

## What the package does not do

- It ships no real embedding model, keyword extractor or reranker: these are
  interfaces only, and `DemoEmbedder` is a hashing stand-in.
- Elasticsearch is the only storage backend included.
- `DefaultIndexBuilder.index()` stores chunks only; the document record is returned
  but not written anywhere.
- Traditional-to-simplified conversion covers a fixed table of common characters,
  not the full character set.
- Only plain text and Q/A text are parsed; there is no extraction from PDF, HTML or
  other file formats.