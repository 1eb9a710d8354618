"""
AI processing of a single submission: plagiarism matching and rubric grading
"""

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gradelens.analyzers import (
    RubricGrader,
    SimilarityCandidate,
    SimilarityMatch,
    find_matches,
    rubric_grader,
)
from gradelens.api.schemas import (
    AISubmissionResult,
    GradeView,
    PlagiarismMatchSchema,
    PlagiarismReportView,
)
from gradelens.core.config import settings
from gradelens.core.exceptions import (
    AssignmentNotFoundError,
    EmbeddingGenerationError,
    EmptyInputError,
    VectorDecodeError,
)
from gradelens.models import Submission
from gradelens.utils import decode_vector, encode_vector, truncate_content

from .embedding_service import EmbeddingService
from .submission_store import SubmissionStore

logger = structlog.get_logger()


class SubmissionAIProcessor:
    """
    Entry point for AI processing of submissions

    Each call embeds the text, stores the vector, compares it with the other
    submissions for the assignment, then grades the text against the
    assignment rubric. A failure in one branch leaves the other intact;
    database errors propagate to the caller.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        grader: RubricGrader | None = None,
        *,
        match_threshold: float | None = None,
        flag_threshold: int | None = None,
        snippet_length: int | None = None,
        default_max_score: int | None = None
    ) -> None:
        self.embedding_service = embedding_service
        self.grader = grader or rubric_grader
        self.similarity_enabled = settings.similarity.enabled
        self.match_threshold = (
            match_threshold if match_threshold is not None
            else settings.similarity.match_threshold
        )
        self.flag_threshold = (
            flag_threshold if flag_threshold is not None
            else settings.similarity.flag_threshold
        )
        if not 0.0 <= self.match_threshold <= 1.0:
            raise ValueError(f"match_threshold must be between 0 and 1, got {self.match_threshold}")
        self.snippet_length = snippet_length or settings.similarity.snippet_length
        self.default_max_score = default_max_score or settings.grading.default_max_score
        self.graded_by = settings.grading.graded_by

    async def process(
        self,
        submission_id: str,
        content: str,
        assignment_id: str,
        db: AsyncSession
    ) -> AISubmissionResult:
        """
        Run plagiarism detection and AI grading for one submission

        Args:
            submission_id: Submission being processed
            content: Submission text
            assignment_id: Assignment the submission belongs to
            db: Database session

        Returns:
            AISubmissionResult; a field is None when its branch yielded nothing
        """
        store = SubmissionStore(db)
        result = AISubmissionResult()

        logger.info("Processing submission with AI",
                    submission_id=submission_id,
                    assignment_id=assignment_id)

        embedding = await self._embed(submission_id, content)
        if embedding is not None:
            result.plagiarism_report = await self._check_plagiarism(
                store, submission_id, embedding, assignment_id
            )

        result.ai_grade = await self._generate_grade(
            store, submission_id, content, assignment_id
        )

        logger.info("AI processing completed",
                    submission_id=submission_id,
                    plagiarism_report=result.plagiarism_report is not None,
                    ai_grade=result.ai_grade is not None)

        return result

    async def _embed(self, submission_id: str, content: str) -> list[float] | None:
        try:
            return await self.embedding_service.embed(content)
        except EmptyInputError:
            logger.warning("Submission has no text to embed, skipping plagiarism check",
                           submission_id=submission_id)
        except EmbeddingGenerationError as e:
            logger.warning("Embedding failed, skipping plagiarism check",
                           submission_id=submission_id,
                           error=str(e))
        return None

    async def _check_plagiarism(
        self,
        store: SubmissionStore,
        submission_id: str,
        embedding: list[float],
        assignment_id: str
    ) -> PlagiarismReportView | None:
        await store.update_submission_embedding(submission_id, encode_vector(embedding))

        if not self.similarity_enabled:
            logger.info("Similarity checking disabled", submission_id=submission_id)
            return None

        siblings = await store.get_sibling_submissions(assignment_id, submission_id)
        candidates = self._load_candidates(siblings, len(embedding))

        logger.info("Checking similarity against existing submissions",
                    submission_id=submission_id,
                    existing_count=len(candidates))

        if not candidates:
            return None

        matches = find_matches(embedding, candidates, self.match_threshold)
        if not matches:
            return None

        highest_similarity = matches[0].percentage
        is_flagged = highest_similarity >= self.flag_threshold

        report = await store.insert_plagiarism_report(
            submission_id=submission_id,
            matches=[self._match_record(match) for match in matches],
            highest_similarity=highest_similarity,
            is_flagged=is_flagged
        )

        return PlagiarismReportView(
            id=report.id,
            matches=[
                PlagiarismMatchSchema(
                    id=match.id,
                    similarity=match.percentage,
                    student_id=match.student_id,
                    content=match.content
                )
                for match in matches
            ],
            highest_similarity=highest_similarity,
            is_flagged=is_flagged
        )

    def _load_candidates(self, siblings: list[Submission], dimension: int) -> list[SimilarityCandidate]:
        """Decode stored vectors, skipping any that are corrupt or of another dimension"""
        candidates = []
        for sibling in siblings:
            try:
                vector = decode_vector(sibling.embedding)
            except VectorDecodeError as e:
                logger.error("Stored embedding could not be decoded",
                             submission_id=sibling.id,
                             error=str(e))
                continue

            if len(vector) != dimension:
                logger.error("Stored embedding has the wrong dimension",
                             submission_id=sibling.id,
                             expected=dimension,
                             actual=len(vector))
                continue

            candidates.append(SimilarityCandidate(
                id=sibling.id,
                vector=vector,
                student_id=sibling.student_id,
                content=sibling.content or ""
            ))
        return candidates

    def resolve_max_score(self, max_score: int | None) -> int:
        """Assignment max score, or the default when it is unset or not positive"""
        if max_score is None or max_score <= 0:
            return self.default_max_score
        return max_score

    def _match_record(self, match: SimilarityMatch) -> dict[str, Any]:
        return {
            "id": match.id,
            "similarity": match.percentage,
            "student_id": match.student_id,
            "content": truncate_content(match.content, self.snippet_length)
        }

    async def _generate_grade(
        self,
        store: SubmissionStore,
        submission_id: str,
        content: str,
        assignment_id: str
    ) -> GradeView | None:
        try:
            assignment = await store.get_assignment(assignment_id)
            if assignment is None:
                raise AssignmentNotFoundError(assignment_id)

            rubric = assignment.rubric or {}
            max_score = self.resolve_max_score(assignment.max_score)

            grading = self.grader.grade(content, rubric, max_score)

            grade = await store.insert_grade(
                submission_id=submission_id,
                score=grading.score,
                feedback=grading.feedback,
                rubric_scores=grading.rubric_scores,
                graded_by=self.graded_by
            )

            return GradeView(
                id=grade.id,
                score=grading.score,
                max_score=grading.max_score,
                feedback=grading.feedback,
                rubric_scores=grading.rubric_scores,
                reasoning=grading.reasoning
            )

        except AssignmentNotFoundError as e:
            logger.warning("Skipping AI grade",
                           submission_id=submission_id,
                           error=str(e))
            return None
