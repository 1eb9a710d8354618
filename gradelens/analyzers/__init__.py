"""Text analyzers for similarity matching and rubric grading"""

from .base import TextFeatures, extract_features
from .rubric_grader import (
    CriterionKind,
    GradingResult,
    RubricGrader,
    classify_criterion,
    grade_submission,
    performance_label,
    rubric_grader,
)
from .similarity_analyzer import (
    SimilarityCandidate,
    SimilarityMatch,
    cosine_similarity,
    find_matches,
)

__all__ = [
    "TextFeatures",
    "extract_features",
    "CriterionKind",
    "GradingResult",
    "RubricGrader",
    "classify_criterion",
    "grade_submission",
    "performance_label",
    "rubric_grader",
    "SimilarityCandidate",
    "SimilarityMatch",
    "cosine_similarity",
    "find_matches",
]
