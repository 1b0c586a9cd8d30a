# vecstore

Store document chunks and their embedding vectors in SQLite, then query them
by cosine similarity or by keyword/bigram text matching. The first search
loads every chunk into memory; after that, searches need no database access
and later writes update the in-memory copy directly. Results are cached for a
short time and the cache is cleared on every write.

The package has no dependencies beyond the Python standard library
(Python 3.10 or later).

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Usage

```python
import sqlite3

from vecstore.store import SQLiteVectorStore, VectorChunk, ensure_table

db = sqlite3.connect("chunks.db")
ensure_table(db)

store = SQLiteVectorStore(db)
store.store("doc1", [
    VectorChunk(chunk_text="hello world", chunk_index=0, document_id="doc1",
                document_name="test.pdf", vector=[1.0, 0.0, 0.0]),
    VectorChunk(chunk_text="foo bar", chunk_index=1, document_id="doc1",
                document_name="test.pdf", vector=[0.0, 1.0, 0.0]),
])

for hit in store.search([1.0, 0.0, 0.0], top_k=5, threshold=0.0, partition_id=""):
    print(hit.chunk_text, hit.score)

for hit in store.text_search("hello", top_k=5):
    print(hit.chunk_text, hit.score)

store.delete_by_doc_id("doc1")
```

### The store

`SQLiteVectorStore(db, cache=None)` works on an open `sqlite3.Connection`
that already has a `chunks` table; `ensure_table(db)` creates the table and
its indexes if they are missing, and may be called repeatedly.

- `store(doc_id, chunks)` inserts all chunks in one transaction. Each row's
  id is `"<doc_id>-<chunk_index>"`, so a repeated id raises
  `sqlite3.IntegrityError` and nothing from that call is written.
  Vectors are stored as float32.
- `search(query_vector, top_k=5, threshold=0.0, partition_id="")` returns up
  to `top_k` `SearchResult` objects in descending cosine similarity, keeping
  only scores of at least `threshold`. Scores are computed at float32
  precision. A zero query vector, or an empty store, gives an empty list. A
  query whose length differs from the stored vectors raises `ValueError`.
- `text_search(query, top_k=5, threshold=0.0, partition_id="")` scores each
  chunk as 0.6 × the fraction of query keywords found in the lower-cased chunk
  text plus 0.4 × the Jaccard similarity of their character bigrams.
- `delete_by_doc_id(doc_id)` removes every chunk of a document; deleting an
  unknown document is not an error.

Both searches raise `ValueError` when `top_k` is less than 1.

`SearchResult` is a frozen dataclass with `chunk_text`, `chunk_index`,
`document_id`, `document_name`, `score`, `image_url`, `partition_id`,
`start_time` and `end_time`.

### Partitions

Each chunk can carry a `partition_id`. A search with a partition ID returns
matches from that partition plus chunks that have no partition (the empty
string). A search with `""` covers every chunk.

`vecstore.products.ProductVectorStore` offers the same operations with the
partition field named `product_id` (`ProductChunk`, `ProductSearchResult`,
and a `product_id` argument to `search` and `text_search`). That module also
re-exports the vector encoding helpers listed below.

### Result cache

`vecstore.cache.QueryCache(max_size=256, ttl=300.0)` holds search results
keyed by 64-bit FNV-1a hashes from `hash_query_vector` and `hash_text_query`.
When full it evicts the entry inserted first; entries older than `ttl`
seconds are treated as missing. Pass your own instance as the `cache`
argument of a store to change its size or lifetime.

### Vector encoding and math

`vecstore.serialize` holds the helpers for the stored format:

- `serialize_vector(vec)` writes little-endian float32 values (4 bytes each).
- `deserialize_vector(data)` reads that format and also the older float64
  layout (8 bytes each), told apart by common embedding dimensions and a
  plausibility check of the values. `deserialize_vector_f32` does the same
  and rounds every value to float32; `deserialize_vector_f32_unsafe` takes a
  direct float32 path when the length cannot be float64 data. All three
  return an empty list for empty input or a length not divisible by 4.
- `cosine_similarity(a, b)` returns 0 for vectors of different or zero
  length and for zero vectors.
- `dot_product(a, b)` and `vector_norm(v)` return float32-precision values;
  `dot_product` raises `ValueError` on vectors of different length.
- `simd_capability()` returns a short description of the arithmetic path.

`vecstore.textmatch` has the text-scoring pieces: `char_bigrams`,
`jaccard_bigrams`, `extract_keywords` (splits on whitespace and ASCII/CJK
punctuation, drops one-character fields, keeps first-seen order) and
`keyword_overlap`.

### Logging

`vecstore.service_log.ServiceLogger(service_name, is_service, log_dir)`
creates `log_dir` if needed and appends timestamped `[INFO]`, `[WARNING]` and
`[ERROR]` lines to `helpdesk.log` in it. Messages take `%`-style arguments.
It can be used as a context manager; after `close()` further messages are
dropped.

## What this package does not do

It does not compute embeddings: the vectors you store and query with must
come from elsewhere. It has no command-line tool and no network server, and
it does not install or manage system services; it is a library for use from
your own Python code.