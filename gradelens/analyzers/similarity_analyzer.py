"""
Cosine similarity matching between submission embeddings
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import structlog

from gradelens.core.exceptions import DimensionMismatchError
from gradelens.utils import round_half_up

logger = structlog.get_logger()


@dataclass
class SimilarityCandidate:
    """Another submission for the same assignment, with its decoded vector"""
    id: str
    vector: Sequence[float]
    student_id: str
    content: str


@dataclass
class SimilarityMatch:
    """A candidate whose similarity cleared the matching threshold"""
    id: str
    similarity: float  # 0.0 to 1.0
    student_id: str
    content: str

    @property
    def percentage(self) -> int:
        return round_half_up(self.similarity * 100)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between two vectors, in [-1, 1]

    Raises:
        DimensionMismatchError: if the vectors differ in length

    Returns 0.0 when either vector has zero norm or holds NaN or infinite values.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)
    if not np.isfinite(similarity):
        return 0.0
    return max(-1.0, min(1.0, similarity))


def find_matches(
    target: Sequence[float],
    candidates: Sequence[SimilarityCandidate],
    threshold: float = 0.75
) -> list[SimilarityMatch]:
    """
    Rank candidates by similarity to the target vector

    Args:
        target: Vector of the submission being checked
        candidates: Other submissions for the same assignment
        threshold: Minimum similarity fraction to keep a candidate

    Returns:
        Matches with similarity >= threshold, most similar first. Equal
        similarities keep their input order.
    """
    matches = []
    for candidate in candidates:
        similarity = cosine_similarity(target, candidate.vector)
        if similarity >= threshold:
            matches.append(SimilarityMatch(
                id=candidate.id,
                similarity=similarity,
                student_id=candidate.student_id,
                content=candidate.content
            ))

    matches.sort(key=lambda match: match.similarity, reverse=True)

    logger.debug("Similarity matching completed",
                 candidate_count=len(candidates),
                 match_count=len(matches),
                 threshold=threshold)

    return matches
