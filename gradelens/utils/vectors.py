"""
Binary serialization for embedding vectors stored on submissions

Layout: version (uint8) | element count (uint32 LE) | float32 LE payload
"""

import struct
from collections.abc import Sequence

import numpy as np

from gradelens.core.exceptions import VectorDecodeError

SCHEMA_VERSION = 1
_HEADER = struct.Struct("<BI")
_DTYPE = np.dtype("<f4")


def encode_vector(vector: Sequence[float] | np.ndarray) -> bytes:
    """Serialize a vector into a versioned, length-prefixed blob"""
    values = np.asarray(vector, dtype=_DTYPE).ravel()
    return _HEADER.pack(SCHEMA_VERSION, values.size) + values.tobytes()


def decode_vector(blob: bytes | None) -> list[float]:
    """Deserialize a blob produced by encode_vector"""
    if not blob or len(blob) < _HEADER.size:
        raise VectorDecodeError("Embedding blob is missing or shorter than its header")

    version, count = _HEADER.unpack_from(blob)
    if version != SCHEMA_VERSION:
        raise VectorDecodeError(f"Unsupported embedding schema version {version}")

    payload = blob[_HEADER.size:]
    if len(payload) != count * _DTYPE.itemsize:
        raise VectorDecodeError(
            f"Embedding payload holds {len(payload)} bytes, expected {count * _DTYPE.itemsize}"
        )

    values = np.frombuffer(payload, dtype=_DTYPE)
    if not np.all(np.isfinite(values)):
        raise VectorDecodeError("Embedding payload contains NaN or infinite values")

    return values.astype(float).tolist()
