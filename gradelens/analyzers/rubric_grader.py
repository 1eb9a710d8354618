"""
Heuristic rubric grading for written submissions

Each rubric criterion is classified by name into a CriterionKind and scored
0-100 from lexical and structural features of the text. Criterion scores are
combined with the rubric weights into a final score out of max_score.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum

import structlog

from gradelens.utils import calculate_percentage, round_half_up

from .base import TextFeatures, extract_features

logger = structlog.get_logger()


class CriterionKind(Enum):
    """Scoring rule applied to a rubric criterion"""
    CONTENT_QUALITY = "content_quality"
    CORRECTNESS = "correctness"
    DOCUMENTATION = "documentation"
    STYLE = "style"
    DEFAULT = "default"


# Checked in order, first hit wins
_CRITERION_KEYWORDS: list[tuple[CriterionKind, tuple[str, ...]]] = [
    (CriterionKind.CONTENT_QUALITY, ("content", "quality")),
    (CriterionKind.CORRECTNESS, ("correctness", "accuracy")),
    (CriterionKind.DOCUMENTATION, ("documentation", "comments")),
    (CriterionKind.STYLE, ("style", "formatting")),
]

PROGRAMMING_KEYWORDS = (
    "function", "variable", "loop", "condition", "array", "object",
    "class", "method", "return", "if", "else", "for", "while",
    "try", "catch", "import", "export", "const", "let", "var",
)

COMMENT_PREFIXES = ("//", "/*", "*", "#")

_CAMEL_CASE = re.compile(r"[a-z][a-zA-Z]*[a-z]")
_SNAKE_CASE = re.compile(r"[a-z]+_[a-z]+")
_OPERATOR_SPACING = re.compile(r"[a-zA-Z0-9]\s*[+\-*/=<>!]\s*[a-zA-Z0-9]")


def classify_criterion(name: str) -> CriterionKind:
    """Resolve a rubric criterion name to its scoring rule (case-insensitive)"""
    lowered = name.lower()
    for kind, keywords in _CRITERION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return kind
    return CriterionKind.DEFAULT


def performance_label(score: float) -> str:
    """Qualitative label for a 0-100 criterion score"""
    if score >= 90:
        return "Excellent"
    if score >= 80:
        return "Good"
    if score >= 70:
        return "Satisfactory"
    if score >= 60:
        return "Needs Improvement"
    return "Poor"


@dataclass
class GradingResult:
    """Outcome of grading one submission against a rubric"""
    score: int
    max_score: int
    feedback: str
    rubric_scores: dict[str, int] = field(default_factory=dict)
    reasoning: list[str] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        return calculate_percentage(self.score, self.max_score)


class RubricGrader:
    """Deterministic, rule-based grader driven by rubric criterion names"""

    def __init__(self) -> None:
        self._scorers: dict[CriterionKind, Callable[[TextFeatures], float]] = {
            CriterionKind.CONTENT_QUALITY: self._score_content_quality,
            CriterionKind.CORRECTNESS: self._score_correctness,
            CriterionKind.DOCUMENTATION: self._score_documentation,
            CriterionKind.STYLE: self._score_style,
            CriterionKind.DEFAULT: self._score_default,
        }

    def grade(
        self,
        content: str,
        rubric: Mapping[str, float],
        max_score: int = 100
    ) -> GradingResult:
        """
        Grade content against a rubric

        Args:
            content: Submission text
            rubric: Criterion name -> relative weight (need not sum to anything)
            max_score: Points available for the assignment

        Returns:
            GradingResult with the weighted score scaled to max_score
        """
        features = extract_features(content)

        rubric_scores: dict[str, int] = {}
        reasoning: list[str] = []
        weighted_total = 0.0
        total_weight = 0.0

        for criterion, weight in rubric.items():
            score = self.score_criterion(criterion, features)
            rubric_scores[criterion] = score
            weighted_total += score * weight
            total_weight += weight

            reasoning.append(f"{criterion}: {score}/100 ({performance_label(score)})")

        if total_weight > 0:
            final_score = round_half_up(weighted_total / total_weight * max_score / 100)
            final_score = max(0, min(final_score, max_score))
        else:
            final_score = 0

        feedback = self._build_feedback(final_score, max_score, features)

        logger.debug("Rubric grading completed",
                     criteria=len(rubric_scores),
                     score=final_score,
                     max_score=max_score,
                     word_count=features.word_count)

        return GradingResult(
            score=final_score,
            max_score=max_score,
            feedback=feedback,
            rubric_scores=rubric_scores,
            reasoning=reasoning
        )

    def score_criterion(self, criterion: str, features: TextFeatures) -> int:
        """Score a single criterion 0-100"""
        kind = classify_criterion(criterion)
        raw = self._scorers[kind](features)
        return round_half_up(min(raw, 100))

    def _score_content_quality(self, features: TextFeatures) -> float:
        """Length band plus sentence and paragraph structure"""
        words = features.word_count
        score = 0

        # Optimal range is 150-500 words
        if 150 <= words <= 500:
            score += 40
        elif 100 <= words < 150:
            score += 30
        elif 500 < words <= 800:
            score += 35
        elif words < 100:
            score += 15
        else:
            score += 20

        if features.sentence_count >= 5:
            score += 30
        elif features.sentence_count >= 3:
            score += 20
        else:
            score += 10

        if features.paragraph_count >= 2:
            score += 30
        elif features.paragraph_count >= 1:
            score += 20
        else:
            score += 10

        return min(score, 100)

    def _score_correctness(self, features: TextFeatures) -> float:
        """Coverage of common programming vocabulary"""
        found = sum(1 for keyword in PROGRAMMING_KEYWORDS if keyword in features.text)
        score = min(found / len(PROGRAMMING_KEYWORDS) * 100, 100)

        # Braces suggest real code structure
        if "{" in features.text and "}" in features.text:
            score += 20

        return min(score, 100)

    def _score_documentation(self, features: TextFeatures) -> float:
        """Share of comment lines, with a bonus for inline comments"""
        comment_lines = sum(
            1 for line in features.lines if line.strip().startswith(COMMENT_PREFIXES)
        )
        ratio = comment_lines / len(features.lines) if features.lines else 0.0
        score = ratio * 100

        if "//" in features.text or "/*" in features.text:
            score += 20

        return min(score, 100)

    def _score_style(self, features: TextFeatures) -> float:
        """Indentation, naming, operator spacing and semicolons"""
        score = 0.0
        lines = features.lines

        if lines:
            indented = sum(
                1 for line in lines
                if line.startswith("  ") or line.startswith("\t") or line.strip() == ""
            )
            score += indented / len(lines) * 30

        # Deliberately loose: almost any prose matches
        if _CAMEL_CASE.search(features.text) or _SNAKE_CASE.search(features.text):
            score += 30

        if _OPERATOR_SPACING.search(features.text):
            score += 20

        if ";" in features.text:
            score += 20

        return min(score, 100)

    def _score_default(self, features: TextFeatures) -> float:
        score = 0
        if features.word_count >= 50:
            score += 30
        if features.sentence_count >= 3:
            score += 30
        if features.paragraph_count >= 1:
            score += 20
        if features.char_count > 100:
            score += 20
        return min(score, 100)

    def _build_feedback(self, score: int, max_score: int, features: TextFeatures) -> str:
        """Overall feedback from the raw counts and final percentage"""
        percentage = calculate_percentage(score, max_score)

        lines = [f"AI Preliminary Grade: {score}/{max_score} ({percentage}%)", ""]

        if features.word_count < 50:
            lines.append("• Content is too short. Consider expanding your response.")
        elif features.word_count > 800:
            lines.append("• Content is quite long. Consider being more concise.")
        else:
            lines.append("• Good content length.")

        if features.sentence_count < 3:
            lines.append("• Add more detailed explanations with multiple sentences.")
        else:
            lines.append("• Good use of multiple sentences for clarity.")

        if features.paragraph_count < 2:
            lines.append("• Consider organizing content into multiple paragraphs.")
        else:
            lines.append("• Good paragraph structure.")

        lines.append("")
        if percentage >= 90:
            lines.append("Excellent work! This submission demonstrates strong understanding.")
        elif percentage >= 80:
            lines.append("Good work! Minor improvements could enhance the submission.")
        elif percentage >= 70:
            lines.append("Satisfactory work. Consider addressing the areas mentioned above.")
        elif percentage >= 60:
            lines.append("Needs improvement. Please review the feedback and revise.")
        else:
            lines.append("Significant improvement needed. Please review requirements and resubmit.")

        return "\n".join(lines)


# Global rubric grader instance
rubric_grader = RubricGrader()


def grade_submission(
    content: str,
    rubric: Mapping[str, float],
    max_score: int = 100
) -> GradingResult:
    """Grade content with the shared RubricGrader"""
    return rubric_grader.grade(content, rubric, max_score)
