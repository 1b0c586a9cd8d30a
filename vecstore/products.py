"""Product-scoped view of the vector store.

Chunks and results carry a ``product_id`` instead of a generic partition.
A search restricted to a product also sees public chunks (empty product id).
The vector encoding helpers are re-exported here for callers that work with
product chunks.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from vecstore.cache import QueryCache
from vecstore.serialize import (
    cosine_similarity,
    deserialize_vector,
    deserialize_vector_f32,
    deserialize_vector_f32_unsafe,
    serialize_vector,
    simd_capability,
)
from vecstore.store import SearchResult, SQLiteVectorStore, VectorChunk

__all__ = [
    "ProductChunk",
    "ProductSearchResult",
    "ProductVectorStore",
    "serialize_vector",
    "deserialize_vector",
    "deserialize_vector_f32",
    "deserialize_vector_f32_unsafe",
    "cosine_similarity",
    "simd_capability",
]


@dataclass
class ProductChunk:
    """A document chunk with its embedding, belonging to a product."""

    chunk_text: str
    chunk_index: int = 0
    document_id: str = ""
    document_name: str = ""
    vector: Sequence[float] = field(default_factory=list)
    image_url: str = ""
    product_id: str = ""


@dataclass(frozen=True)
class ProductSearchResult:
    """A chunk returned by a product search, with its similarity score."""

    chunk_text: str
    chunk_index: int
    document_id: str
    document_name: str
    score: float
    image_url: str = ""
    product_id: str = ""
    start_time: float = 0.0
    end_time: float = 0.0


def _to_vector_chunk(chunk: ProductChunk) -> VectorChunk:
    return VectorChunk(
        chunk_text=chunk.chunk_text,
        chunk_index=chunk.chunk_index,
        document_id=chunk.document_id,
        document_name=chunk.document_name,
        vector=chunk.vector,
        image_url=chunk.image_url,
        partition_id=chunk.product_id,
    )


def _from_result(result: SearchResult) -> ProductSearchResult:
    return ProductSearchResult(
        chunk_text=result.chunk_text,
        chunk_index=result.chunk_index,
        document_id=result.document_id,
        document_name=result.document_name,
        score=result.score,
        image_url=result.image_url,
        product_id=result.partition_id,
        start_time=result.start_time,
        end_time=result.end_time,
    )


class ProductVectorStore:
    """Vector store whose partitions are products.

    The connection must already hold a ``chunks`` table.
    """

    def __init__(self, db: sqlite3.Connection, cache: QueryCache | None = None) -> None:
        self._inner = SQLiteVectorStore(db, cache)

    def store(self, doc_id: str, chunks: Iterable[ProductChunk]) -> None:
        """Insert the chunks of a document."""
        self._inner.store(doc_id, [_to_vector_chunk(chunk) for chunk in chunks])

    def search(
        self,
        query_vector: Sequence[float],
        top_k: int = 5,
        threshold: float = 0.0,
        product_id: str = "",
    ) -> list[ProductSearchResult]:
        """Cosine similarity search, limited to a product and public chunks if given."""
        results = self._inner.search(query_vector, top_k, threshold, product_id)
        return [_from_result(result) for result in results]

    def text_search(
        self,
        query: str,
        top_k: int = 5,
        threshold: float = 0.0,
        product_id: str = "",
    ) -> list[ProductSearchResult]:
        """Lexical similarity search, limited to a product and public chunks if given."""
        results = self._inner.text_search(query, top_k, threshold, product_id)
        return [_from_result(result) for result in results]

    def delete_by_doc_id(self, doc_id: str) -> None:
        """Remove every chunk of a document."""
        self._inner.delete_by_doc_id(doc_id)