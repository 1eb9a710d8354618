import struct

import pytest

from gradelens.core.exceptions import VectorDecodeError
from gradelens.utils import SCHEMA_VERSION, decode_vector, encode_vector


def test_encode_layout():
    blob = encode_vector([0.5, -1.0, 2.0])

    version, count = struct.unpack_from("<BI", blob)
    assert version == SCHEMA_VERSION
    assert count == 3
    assert len(blob) == 5 + 3 * 4


def test_decode_restores_float32_values():
    assert decode_vector(encode_vector([0.5, -1.0, 2.0])) == [0.5, -1.0, 2.0]


def test_empty_vector_is_valid():
    assert decode_vector(encode_vector([])) == []


@pytest.mark.parametrize("blob", [None, b"", b"\x01\x00"])
def test_missing_or_short_header(blob):
    with pytest.raises(VectorDecodeError):
        decode_vector(blob)


def test_unknown_version():
    blob = bytearray(encode_vector([1.0]))
    blob[0] = 99
    with pytest.raises(VectorDecodeError, match="version 99"):
        decode_vector(bytes(blob))


def test_truncated_payload():
    blob = encode_vector([1.0, 2.0, 3.0])
    with pytest.raises(VectorDecodeError, match="expected 12"):
        decode_vector(blob[:-2])


def test_legacy_json_text_is_rejected():
    with pytest.raises(VectorDecodeError):
        decode_vector(b"[0.1, 0.2, 0.3]")


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_payload_is_rejected(bad):
    with pytest.raises(VectorDecodeError, match="NaN or infinite"):
        decode_vector(encode_vector([0.1, bad, 0.3]))
