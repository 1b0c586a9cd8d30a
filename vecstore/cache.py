"""Short-lived cache of search results and the keys used to address it."""

from __future__ import annotations

import struct
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from vecstore.serialize import serialize_vector

__all__ = ["QueryCache", "hash_query_vector", "hash_text_query"]

_FNV_OFFSET = 14695981039346656037
_FNV_PRIME = 1099511628211
_MASK64 = 0xFFFFFFFFFFFFFFFF
_VECTOR_SAMPLES = 32
_TEXT_TAG = 0xFF

DEFAULT_MAX_SIZE = 256
DEFAULT_TTL = 5 * 60.0


@dataclass
class _Entry:
    results: list[Any]
    timestamp: float


class QueryCache:
    """Bounded, time-limited cache of search results keyed by 64-bit hashes.

    When full, the entry that was inserted first is evicted. Entries older
    than ``ttl`` seconds are treated as missing. Results are copied on the
    way in and on the way out so callers cannot alter cached lists.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[int, _Entry] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: int) -> list[Any] | None:
        """Return a copy of the cached results for ``key``, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp > self.ttl:
                del self._entries[key]
                return None
            return list(entry.results)

    def put(self, key: int, results: Sequence[Any]) -> None:
        """Store a copy of ``results`` under ``key``, evicting the oldest entry if full."""
        with self._lock:
            if key in self._entries:
                self._entries[key] = _Entry(list(results), self._clock())
                return
            while len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(list(results), self._clock())

    def invalidate(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()


def _mix(h: int, value: int) -> int:
    return ((h ^ (value & _MASK64)) * _FNV_PRIME) & _MASK64


def _float64_bits(value: float) -> int:
    return struct.unpack("<Q", struct.pack("<d", float(value)))[0]


def _mix_tail(h: int, top_k: int, threshold: float, partition_id: str) -> int:
    h = _mix(h, top_k)
    h = _mix(h, _float64_bits(threshold))
    for byte in partition_id.encode("utf-8"):
        h = _mix(h, byte)
    return h


def hash_query_vector(
    vector: Sequence[float], top_k: int, threshold: float, partition_id: str
) -> int:
    """Cache key for a vector search.

    Samples up to 32 elements spread over the vector (at float32 precision),
    then mixes in the first and last elements, the length and the search
    parameters with FNV-1a.
    """
    n = len(vector)
    bits = struct.unpack(f"<{n}I", serialize_vector(vector)) if n else ()
    h = _FNV_OFFSET

    samples = min(_VECTOR_SAMPLES, n)
    if samples:
        step = max(n // samples, 1)
        for idx in range(0, samples * step, step):
            if idx >= n:
                break
            h = _mix(h, bits[idx])

    if n:
        h = _mix(h, bits[0])
        h = _mix(h, bits[-1])

    h = _mix(h, n)
    return _mix_tail(h, top_k, threshold, partition_id)


def hash_text_query(query: str, top_k: int, threshold: float, partition_id: str) -> int:
    """FNV-1a cache key for a text search, tagged apart from vector search keys."""
    h = _mix(_FNV_OFFSET, _TEXT_TAG)
    for byte in query.encode("utf-8"):
        h = _mix(h, byte)
    return _mix_tail(h, top_k, threshold, partition_id)