"""SQLite-backed store of document chunk embeddings with in-memory search.

Chunks are persisted in a ``chunks`` table. The first search loads every row
into memory; later writes update that copy directly. Vector search ranks
chunks by cosine similarity at float32 precision. Text search ranks them by
keyword containment and character-bigram overlap. Both can be restricted to
a partition, in which case public chunks (empty partition) are included too.
"""

from __future__ import annotations

import heapq
import math
import sqlite3
import struct
import threading
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from vecstore.cache import QueryCache, hash_query_vector, hash_text_query
from vecstore.serialize import (
    deserialize_vector_f32,
    dot_product,
    serialize_vector,
    vector_norm,
)
from vecstore.textmatch import (
    char_bigrams,
    extract_keywords,
    jaccard_bigrams,
    keyword_overlap,
)

__all__ = ["VectorChunk", "SearchResult", "SQLiteVectorStore", "ensure_table"]

_KEYWORD_WEIGHT = 0.6
_BIGRAM_WEIGHT = 0.4

_CREATE_TABLE = """CREATE TABLE IF NOT EXISTS chunks (
    id            TEXT PRIMARY KEY,
    document_id   TEXT NOT NULL,
    document_name TEXT NOT NULL,
    chunk_index   INTEGER NOT NULL,
    chunk_text    TEXT NOT NULL,
    embedding     BLOB NOT NULL,
    image_url     TEXT DEFAULT '',
    product_id    TEXT DEFAULT '',
    created_at    DATETIME DEFAULT CURRENT_TIMESTAMP
)"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_chunks_document_id ON chunks(document_id)",
    "CREATE INDEX IF NOT EXISTS idx_chunks_product_id ON chunks(product_id)",
)

_INSERT = (
    "INSERT INTO chunks (id, document_id, document_name, chunk_index, chunk_text, "
    "embedding, image_url, product_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
)

_SELECT_ALL = (
    "SELECT document_id, document_name, chunk_index, chunk_text, embedding, "
    "COALESCE(image_url, ''), COALESCE(product_id, '') FROM chunks"
)


@dataclass
class VectorChunk:
    """A document chunk together with its embedding."""

    chunk_text: str
    chunk_index: int = 0
    document_id: str = ""
    document_name: str = ""
    vector: Sequence[float] = field(default_factory=list)
    image_url: str = ""
    partition_id: str = ""


@dataclass(frozen=True)
class SearchResult:
    """A chunk returned by a search, with its similarity score."""

    chunk_text: str
    chunk_index: int
    document_id: str
    document_name: str
    score: float
    image_url: str = ""
    partition_id: str = ""
    start_time: float = 0.0
    end_time: float = 0.0


def ensure_table(db: sqlite3.Connection) -> None:
    """Create the ``chunks`` table and its indexes if they do not exist."""
    db.execute(_CREATE_TABLE)
    for statement in _CREATE_INDEXES:
        db.execute(statement)
    db.commit()


def _f32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _as_f32_vector(vec: Sequence[float]) -> tuple[float, ...]:
    if not vec:
        return ()
    return struct.unpack(f"<{len(vec)}f", serialize_vector(vec))


def _inverse_norm(vec: Sequence[float]) -> float:
    norm = vector_norm(vec)
    return _f32(1.0 / norm) if norm > 0 else 0.0


def _check_top_k(top_k: int) -> None:
    if top_k < 1:
        raise ValueError(f"top_k must be at least 1, got {top_k}")


@dataclass(frozen=True)
class _Row:
    chunk_text: str
    chunk_index: int
    document_id: str
    document_name: str
    image_url: str
    partition_id: str
    vector: tuple[float, ...]
    inv_norm: float
    text_lower: str
    bigrams: frozenset[str]

    @classmethod
    def build(
        cls,
        *,
        chunk_text: str,
        chunk_index: int,
        document_id: str,
        document_name: str,
        image_url: str,
        partition_id: str,
        vector: tuple[float, ...],
    ) -> _Row:
        text_lower = chunk_text.lower()
        return cls(
            chunk_text=chunk_text,
            chunk_index=chunk_index,
            document_id=document_id,
            document_name=document_name,
            image_url=image_url,
            partition_id=partition_id,
            vector=vector,
            inv_norm=_inverse_norm(vector),
            text_lower=text_lower,
            bigrams=char_bigrams(text_lower),
        )

    def to_result(self, score: float) -> SearchResult:
        return SearchResult(
            chunk_text=self.chunk_text,
            chunk_index=self.chunk_index,
            document_id=self.document_id,
            document_name=self.document_name,
            score=score,
            image_url=self.image_url,
            partition_id=self.partition_id,
        )


class SQLiteVectorStore:
    """Vector store persisted in SQLite and searched from an in-memory copy.

    The connection must already hold a ``chunks`` table; see :func:`ensure_table`.
    """

    def __init__(self, db: sqlite3.Connection, cache: QueryCache | None = None) -> None:
        self._db = db
        self._lock = threading.RLock()
        self._cache = cache if cache is not None else QueryCache()
        self._rows: list[_Row] = []
        self._partitions: dict[str, list[int]] = {}
        self._merged: dict[str, list[int]] = {}
        self._dim = 0
        self._loaded = False

    def store(self, doc_id: str, chunks: Iterable[VectorChunk]) -> None:
        """Insert chunks of a document in one transaction and update the in-memory copy.

        Raises :class:`sqlite3.Error` (and writes nothing) if any insert fails.
        """
        new_rows: list[_Row] = []
        with self._db:
            for chunk in chunks:
                chunk_id = f"{doc_id}-{chunk.chunk_index}"
                self._db.execute(
                    _INSERT,
                    (
                        chunk_id,
                        doc_id,
                        chunk.document_name,
                        chunk.chunk_index,
                        chunk.chunk_text,
                        serialize_vector(chunk.vector),
                        chunk.image_url,
                        chunk.partition_id,
                    ),
                )
                new_rows.append(
                    _Row.build(
                        chunk_text=chunk.chunk_text,
                        chunk_index=chunk.chunk_index,
                        document_id=chunk.document_id,
                        document_name=chunk.document_name,
                        image_url=chunk.image_url,
                        partition_id=chunk.partition_id,
                        vector=_as_f32_vector(chunk.vector),
                    )
                )

        with self._lock:
            if self._loaded:
                self._append(new_rows)
            else:
                self._load()
            self._cache.invalidate()

    def search(
        self,
        query_vector: Sequence[float],
        top_k: int = 5,
        threshold: float = 0.0,
        partition_id: str = "",
    ) -> list[SearchResult]:
        """Return up to ``top_k`` chunks by descending cosine similarity.

        Only chunks scoring at least ``threshold`` are returned. A non-empty
        ``partition_id`` limits the search to that partition and public chunks.
        """
        _check_top_k(top_k)
        query = _as_f32_vector(query_vector)
        key = hash_query_vector(query, top_k, threshold, partition_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        with self._lock:
            self._ensure_loaded()
            indices = self._indices(partition_id)
            if not self._rows or not indices or self._dim == 0:
                return []
            query_norm = vector_norm(query)
            if query_norm == 0:
                return []
            if len(query) != self._dim:
                raise ValueError(
                    f"query vector has {len(query)} dimensions, store has {self._dim}"
                )
            inv_query_norm = _f32(1.0 / query_norm)
            min_score = _f32(threshold)
            rows = self._rows
            dim = self._dim

            def scored() -> Iterator[tuple[float, int]]:
                for idx in indices:
                    row = rows[idx]
                    if row.inv_norm == 0 or len(row.vector) != dim:
                        continue
                    dot = dot_product(query, row.vector)
                    score = _f32(_f32(dot * inv_query_norm) * row.inv_norm)
                    if score >= min_score:
                        yield score, idx

            best = heapq.nlargest(top_k, scored(), key=lambda item: item[0])
            results = [rows[idx].to_result(score) for score, idx in best]

        self._cache.put(key, results)
        return results

    def text_search(
        self,
        query: str,
        top_k: int = 5,
        threshold: float = 0.0,
        partition_id: str = "",
    ) -> list[SearchResult]:
        """Return up to ``top_k`` chunks ranked by keyword and bigram similarity.

        The score is 0.6 times the fraction of query keywords found in the
        chunk plus 0.4 times the Jaccard similarity of their character bigrams.
        """
        _check_top_k(top_k)
        key = hash_text_query(query, top_k, threshold, partition_id)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        with self._lock:
            self._ensure_loaded()
            indices = self._indices(partition_id)
            if not self._rows or not indices:
                return []
            query_lower = query.lower()
            query_bigrams = char_bigrams(query_lower)
            keywords = extract_keywords(query_lower)
            rows = self._rows

            def scored() -> Iterator[tuple[float, int]]:
                for idx in indices:
                    row = rows[idx]
                    score = (
                        keyword_overlap(keywords, row.text_lower) * _KEYWORD_WEIGHT
                        + jaccard_bigrams(query_bigrams, row.bigrams) * _BIGRAM_WEIGHT
                    )
                    if score >= threshold:
                        yield score, idx

            best = heapq.nlargest(top_k, scored(), key=lambda item: item[0])
            results = [rows[idx].to_result(score) for score, idx in best]

        self._cache.put(key, results)
        return results

    def delete_by_doc_id(self, doc_id: str) -> None:
        """Remove every chunk of a document from the database and memory."""
        with self._db:
            self._db.execute("DELETE FROM chunks WHERE document_id = ?", (doc_id,))

        with self._lock:
            if self._loaded:
                kept = [row for row in self._rows if row.document_id != doc_id]
                self._reset()
                self._append(kept)
            self._cache.invalidate()

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load()

    def _load(self) -> None:
        rows = [
            _Row.build(
                document_id=document_id,
                document_name=document_name,
                chunk_index=chunk_index,
                chunk_text=chunk_text,
                vector=tuple(deserialize_vector_f32(bytes(embedding))),
                image_url=image_url,
                partition_id=partition_id,
            )
            for (
                document_id,
                document_name,
                chunk_index,
                chunk_text,
                embedding,
                image_url,
                partition_id,
            ) in self._db.execute(_SELECT_ALL)
        ]
        self._reset()
        self._append(rows)
        self._loaded = True

    def _reset(self) -> None:
        dim = self._dim
        self._rows = []
        self._partitions = {}
        self._merged = {}
        self._dim = dim if self._loaded else 0

    def _append(self, rows: Iterable[_Row]) -> None:
        self._merged.clear()
        for row in rows:
            idx = len(self._rows)
            self._rows.append(row)
            if self._dim == 0 and row.vector:
                self._dim = len(row.vector)
            self._partitions.setdefault(row.partition_id, []).append(idx)

    def _indices(self, partition_id: str) -> Sequence[int]:
        if not partition_id:
            return range(len(self._rows))
        merged = self._merged.get(partition_id)
        if merged is None:
            merged = self._partitions.get(partition_id, []) + self._partitions.get("", [])
            self._merged[partition_id] = merged
        return merged