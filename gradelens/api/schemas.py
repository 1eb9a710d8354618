"""
Pydantic schemas for API request/response models
"""

from typing import Any

from pydantic import BaseModel, Field

from gradelens.analyzers import performance_label


class PlagiarismMatchSchema(BaseModel):
    """One similar submission within a plagiarism report"""
    id: str = Field(..., description="Matched submission identifier")
    similarity: int = Field(..., ge=0, le=100, description="Similarity percentage")
    student_id: str = Field(..., description="Author of the matched submission")
    content: str = Field("", description="Matched submission content")


class PlagiarismReportView(BaseModel):
    """Plagiarism report returned to callers"""
    id: str
    matches: list[PlagiarismMatchSchema] = Field(default_factory=list)
    highest_similarity: int = Field(0, ge=0, le=100)
    is_flagged: bool = False

    @classmethod
    def from_record(cls, report: Any) -> "PlagiarismReportView":
        return cls(
            id=report.id,
            matches=[PlagiarismMatchSchema(**match) for match in report.matches],
            highest_similarity=report.highest_similarity,
            is_flagged=report.is_flagged
        )


class GradeView(BaseModel):
    """AI grade returned to callers"""
    id: str
    score: int = Field(..., ge=0)
    max_score: int = Field(..., gt=0)
    feedback: str = ""
    rubric_scores: dict[str, int] = Field(default_factory=dict)
    reasoning: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, grade: Any, max_score: int) -> "GradeView":
        """Rebuild the view from a stored grade; reasoning follows from the criterion scores"""
        return cls(
            id=grade.id,
            score=grade.score,
            max_score=max_score,
            feedback=grade.feedback,
            rubric_scores=grade.rubric_scores,
            reasoning=[
                f"{criterion}: {score}/100 ({performance_label(score)})"
                for criterion, score in grade.rubric_scores.items()
            ]
        )


class AISubmissionResult(BaseModel):
    """Outcome of AI processing; an absent field means that branch did not complete"""
    plagiarism_report: PlagiarismReportView | None = None
    ai_grade: GradeView | None = None
