"""
Utility functions and helpers
"""

import math
from datetime import datetime, timezone
import uuid


def generate_record_id() -> str:
    """Generate a unique record identifier"""
    return str(uuid.uuid4())


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up (2.5 -> 3)"""
    return math.floor(value + 0.5)


def calculate_percentage(score: float, max_score: float) -> int:
    """Score as a rounded percentage of max_score"""
    if max_score <= 0:
        return 0
    return round_half_up(score / max_score * 100)


def truncate_content(content: str, max_length: int = 200, suffix: str = "...") -> str:
    """Shorten content for audit display, never exceeding max_length characters"""
    if len(content) <= max_length:
        return content
    if max_length <= len(suffix):
        return content[:max_length]
    return content[:max_length - len(suffix)] + suffix


def utc_now() -> datetime:
    """Timezone-aware current time"""
    return datetime.now(timezone.utc)
