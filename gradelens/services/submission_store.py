"""
Persistence access for the submission processing pipeline
"""

from typing import Any

import structlog
from sqlalchemy import and_, desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gradelens.models import Assignment, Grade, PlagiarismReport, Submission
from gradelens.utils import utc_now

logger = structlog.get_logger()


class SubmissionStore:
    """
    Reads and writes the records the pipeline touches

    Database errors are not caught here; they reach the caller.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_submission(self, submission_id: str) -> Submission | None:
        result = await self.db.execute(
            select(Submission).where(Submission.id == submission_id)
        )
        return result.scalar_one_or_none()

    async def get_sibling_submissions(
        self,
        assignment_id: str,
        exclude_submission_id: str
    ) -> list[Submission]:
        """Other submissions for the assignment that already have a stored vector"""
        result = await self.db.execute(
            select(Submission)
            .where(
                and_(
                    Submission.assignment_id == assignment_id,
                    Submission.id != exclude_submission_id,
                    Submission.embedding.is_not(None)
                )
            )
            .order_by(Submission.created_at, Submission.id)
        )
        return list(result.scalars().all())

    async def get_assignment(self, assignment_id: str) -> Assignment | None:
        result = await self.db.execute(
            select(Assignment).where(Assignment.id == assignment_id)
        )
        return result.scalar_one_or_none()

    async def update_submission_embedding(self, submission_id: str, embedding: bytes) -> None:
        await self.db.execute(
            update(Submission)
            .where(Submission.id == submission_id)
            .values(embedding=embedding)
        )
        await self.db.commit()

        logger.debug("Stored submission embedding",
                     submission_id=submission_id,
                     size=len(embedding))

    async def insert_plagiarism_report(
        self,
        submission_id: str,
        matches: list[dict[str, Any]],
        highest_similarity: int,
        is_flagged: bool
    ) -> PlagiarismReport:
        report = PlagiarismReport(
            submission_id=submission_id,
            matches=matches,
            highest_similarity=highest_similarity,
            is_flagged=is_flagged
        )
        self.db.add(report)
        await self.db.commit()
        await self.db.refresh(report)

        logger.info("Plagiarism report stored",
                    report_id=report.id,
                    submission_id=submission_id,
                    highest_similarity=highest_similarity,
                    flagged=is_flagged)

        return report

    async def insert_grade(
        self,
        submission_id: str,
        score: int,
        feedback: str,
        rubric_scores: dict[str, int],
        graded_by: str = "ai"
    ) -> Grade:
        grade = Grade(
            submission_id=submission_id,
            score=score,
            feedback=feedback,
            rubric_scores=rubric_scores,
            graded_by=graded_by,
            graded_at=utc_now()
        )
        self.db.add(grade)
        await self.db.commit()
        await self.db.refresh(grade)

        logger.info("Grade stored",
                    grade_id=grade.id,
                    submission_id=submission_id,
                    score=score,
                    graded_by=graded_by)

        return grade

    async def get_plagiarism_report(self, submission_id: str) -> PlagiarismReport | None:
        """Most recent plagiarism report for a submission"""
        result = await self.db.execute(
            select(PlagiarismReport)
            .where(PlagiarismReport.submission_id == submission_id)
            .order_by(desc(PlagiarismReport.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_ai_grade(self, submission_id: str, graded_by: str = "ai") -> Grade | None:
        """Most recent grade written by the AI grader for a submission"""
        result = await self.db.execute(
            select(Grade)
            .where(
                and_(
                    Grade.submission_id == submission_id,
                    Grade.graded_by == graded_by
                )
            )
            .order_by(desc(Grade.graded_at))
            .limit(1)
        )
        return result.scalar_one_or_none()
