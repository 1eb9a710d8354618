"""
API endpoints for AI processing of submissions
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from gradelens.api.schemas import AISubmissionResult, GradeView, PlagiarismReportView
from gradelens.core.config import settings
from gradelens.db.database import get_db
from gradelens.services import SubmissionAIProcessor, SubmissionStore

logger = structlog.get_logger()
router = APIRouter()


def get_processor(request: Request) -> SubmissionAIProcessor:
    """Dependency returning the processor built at startup"""
    return request.app.state.processor


@router.post("/{submission_id}/ai", response_model=AISubmissionResult)
async def process_submission(
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    processor: SubmissionAIProcessor = Depends(get_processor)
) -> AISubmissionResult:
    """Run plagiarism detection and AI grading for a stored submission"""
    try:
        submission = await SubmissionStore(db).get_submission(submission_id)
        if not submission:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Submission {submission_id} not found"
            ) from None

        return await processor.process(
            submission_id=submission.id,
            content=submission.content or "",
            assignment_id=submission.assignment_id,
            db=db
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error("AI processing failed", submission_id=submission_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"AI processing failed: {str(e)}"
        ) from None


@router.get("/{submission_id}/plagiarism", response_model=PlagiarismReportView)
async def get_plagiarism_report(
    submission_id: str,
    db: AsyncSession = Depends(get_db)
) -> PlagiarismReportView:
    """Get the latest plagiarism report for a submission"""
    try:
        report = await SubmissionStore(db).get_plagiarism_report(submission_id)
        if not report:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No plagiarism report found"
            ) from None

        return PlagiarismReportView.from_record(report)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to fetch plagiarism report", submission_id=submission_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch plagiarism report"
        ) from None


@router.get("/{submission_id}/ai-grade", response_model=GradeView)
async def get_ai_grade(
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    processor: SubmissionAIProcessor = Depends(get_processor)
) -> GradeView:
    """Get the latest AI grade for a submission"""
    try:
        store = SubmissionStore(db)
        grade = await store.get_ai_grade(submission_id, graded_by=settings.grading.graded_by)
        if not grade:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No AI grade found"
            ) from None

        assignment = None
        submission = await store.get_submission(submission_id)
        if submission:
            assignment = await store.get_assignment(submission.assignment_id)
        max_score = processor.resolve_max_score(assignment.max_score if assignment else None)

        return GradeView.from_record(grade, max_score)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to fetch AI grade", submission_id=submission_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch AI grade"
        ) from None
