"""Compact binary encoding of embedding vectors and basic vector math.

Vectors are stored as little-endian float32 values (4 bytes per element).
Decoding also accepts the older float64 layout (8 bytes per element), which
is told apart from float32 data by the dimension and a plausibility check.
"""

from __future__ import annotations

import math
import struct
from collections.abc import Sequence

__all__ = [
    "serialize_vector",
    "deserialize_vector",
    "deserialize_vector_f32",
    "deserialize_vector_f32_unsafe",
    "cosine_similarity",
    "dot_product",
    "vector_norm",
    "simd_capability",
]

_COMMON_DIMS = frozenset({128, 256, 384, 512, 768, 1024, 1536, 2048, 3072, 4096})
_F64_PROBE_COUNT = 16


def _to_f32(value: float) -> float:
    """Round a Python float to the nearest float32, overflowing to infinity."""
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _pack_f32(values: Sequence[float]) -> bytes:
    try:
        return struct.pack(f"<{len(values)}f", *values)
    except OverflowError:
        return struct.pack(f"<{len(values)}f", *(_to_f32(v) for v in values))


def serialize_vector(vec: Sequence[float]) -> bytes:
    """Encode a vector as little-endian float32 bytes."""
    return _pack_f32([float(v) for v in vec])


def _is_common_dim(n: int) -> bool:
    return n in _COMMON_DIMS


def _looks_like_float64_embedding(data: bytes, n: int) -> bool:
    check = min(n, _F64_PROBE_COUNT)
    valid = 0
    for (value,) in struct.iter_unpack("<d", data[: check * 8]):
        if math.isnan(value) or math.isinf(value):
            return False
        magnitude = abs(value)
        if magnitude > 10:
            return False
        if 0.001 < magnitude < 5:
            valid += 1
    return valid >= check // 2


def _is_float64_layout(data: bytes) -> bool:
    if len(data) % 8 != 0:
        return False
    n64 = len(data) // 8
    n32 = len(data) // 4
    if not _is_common_dim(n64):
        return False
    if not _is_common_dim(n32):
        return True
    return _looks_like_float64_embedding(data, n64)


def _valid_length(data: bytes) -> bool:
    return len(data) > 0 and len(data) % 4 == 0


def deserialize_vector(data: bytes) -> list[float]:
    """Decode bytes written by :func:`serialize_vector` or the legacy float64 layout.

    Returns an empty list for empty input or a length that is not a multiple of 4.
    """
    if not _valid_length(data):
        return []
    if _is_float64_layout(data):
        return list(struct.unpack(f"<{len(data) // 8}d", data))
    return list(struct.unpack(f"<{len(data) // 4}f", data))


def deserialize_vector_f32(data: bytes) -> list[float]:
    """Decode bytes like :func:`deserialize_vector`, rounding every value to float32."""
    if not _valid_length(data):
        return []
    if _is_float64_layout(data):
        return [_to_f32(v) for v in struct.unpack(f"<{len(data) // 8}d", data)]
    return list(struct.unpack(f"<{len(data) // 4}f", data))


def deserialize_vector_f32_unsafe(data: bytes) -> list[float]:
    """Fast float32 decode; lengths that could be float64 go through the checked path."""
    if not _valid_length(data):
        return []
    if len(data) % 8 == 0:
        return deserialize_vector_f32(data)
    return list(struct.unpack(f"<{len(data) // 4}f", data))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0 for mismatched, empty or zero vectors."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = sum(x * x for x in a)
    norm_b = sum(y * y for y in b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product of two equal-length vectors, returned at float32 precision."""
    if len(a) != len(b):
        raise ValueError(f"vector lengths differ: {len(a)} != {len(b)}")
    return _to_f32(math.fsum(x * y for x, y in zip(a, b)))


def vector_norm(v: Sequence[float]) -> float:
    """Euclidean (L2) norm of a vector at float32 precision."""
    squared = dot_product(v, v)
    if squared <= 0:
        return 0.0
    return _to_f32(math.sqrt(squared))


def simd_capability() -> str:
    """Describe the arithmetic path used for vector operations."""
    return "Python (no SIMD acceleration)"