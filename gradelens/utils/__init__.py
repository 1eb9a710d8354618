"""Utility functions"""

from .helpers import (
    calculate_percentage,
    generate_record_id,
    round_half_up,
    truncate_content,
    utc_now,
)
from .vectors import SCHEMA_VERSION, decode_vector, encode_vector

__all__ = [
    "generate_record_id",
    "round_half_up",
    "calculate_percentage",
    "truncate_content",
    "utc_now",
    "SCHEMA_VERSION",
    "encode_vector",
    "decode_vector",
]
