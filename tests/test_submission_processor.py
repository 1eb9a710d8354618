import pytest
from sqlalchemy.exc import OperationalError

from gradelens.core.exceptions import EmbeddingGenerationError
from gradelens.services import EmbeddingService, SubmissionAIProcessor, SubmissionStore
from gradelens.utils import decode_vector, encode_vector

from .conftest import DIMENSION, make_essay

ESSAY = make_essay(26, [7, 7, 6], word="photosynthesis")
OTHER_ESSAY = (
    "The French revolution reshaped European politics. Monarchies fell and "
    "new republics rose across the continent during the following decades."
)


@pytest.fixture
def processor(embedding_service):
    return SubmissionAIProcessor(embedding_service)


async def embed_and_encode(service, text):
    return encode_vector(await service.embed(text))


class TestPlagiarismBranch:
    async def test_identical_submissions_are_flagged(self, processor, embedding_service, seed, db_session):
        assignment = await seed.assignment(rubric={"Content Quality": 1})
        earlier = await seed.submission(
            assignment.id, ESSAY, student_id="alice",
            embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission(assignment.id, ESSAY, student_id="bob")

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        report = result.plagiarism_report
        assert report is not None
        assert report.highest_similarity == 100
        assert report.is_flagged is True
        assert [m.id for m in report.matches] == [earlier.id]
        assert report.matches[0].student_id == "alice"
        assert report.matches[0].similarity == 100

    async def test_only_submission_has_no_report(self, processor, seed, db_session):
        assignment = await seed.assignment(rubric={"Content Quality": 1})
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.plagiarism_report is None
        assert result.ai_grade is not None
        assert result.ai_grade.score == 95

    async def test_vector_is_stored_on_submission(self, processor, seed, db_session):
        assignment = await seed.assignment(rubric={})
        current = await seed.submission(assignment.id, ESSAY)

        await processor.process(current.id, ESSAY, assignment.id, db_session)

        await db_session.refresh(current)
        assert current.embedding is not None
        assert len(decode_vector(current.embedding)) > 0

    async def test_dissimilar_submissions_have_no_report(self, processor, embedding_service, seed, db_session):
        assignment = await seed.assignment(rubric={})
        await seed.submission(
            assignment.id, OTHER_ESSAY, student_id="alice",
            embedding=await embed_and_encode(embedding_service, OTHER_ESSAY)
        )
        current = await seed.submission(assignment.id, ESSAY, student_id="bob")

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.plagiarism_report is None
        assert await SubmissionStore(db_session).get_plagiarism_report(current.id) is None

    async def test_siblings_without_vectors_are_ignored(self, processor, seed, db_session):
        assignment = await seed.assignment(rubric={})
        await seed.submission(assignment.id, ESSAY, student_id="alice")
        current = await seed.submission(assignment.id, ESSAY, student_id="bob")

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.plagiarism_report is None

    async def test_other_assignments_are_not_compared(self, processor, embedding_service, seed, db_session):
        first = await seed.assignment(rubric={})
        second = await seed.assignment(rubric={})
        await seed.submission(
            first.id, ESSAY, embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission(second.id, ESSAY)

        result = await processor.process(current.id, ESSAY, second.id, db_session)

        assert result.plagiarism_report is None

    async def test_below_flag_threshold_is_reported_but_not_flagged(self, embedding_service, seed, db_session):
        processor = SubmissionAIProcessor(embedding_service, flag_threshold=101)
        assignment = await seed.assignment(rubric={})
        await seed.submission(
            assignment.id, ESSAY, embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.plagiarism_report.highest_similarity == 100
        assert result.plagiarism_report.is_flagged is False

    async def test_matches_ranked_and_snippets_truncated(self, processor, embedding_service, seed, db_session):
        # Differs within the first 512 characters the embedder sees
        near_essay = "Preface about chlorophyll and sunlight. " + ESSAY
        assignment = await seed.assignment(rubric={})
        near = await seed.submission(
            assignment.id, near_essay, student_id="carol",
            embedding=await embed_and_encode(embedding_service, near_essay)
        )
        exact = await seed.submission(
            assignment.id, ESSAY, student_id="alice",
            embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission(assignment.id, ESSAY, student_id="bob")

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        matches = result.plagiarism_report.matches
        assert [m.id for m in matches] == [exact.id, near.id]
        assert matches[0].similarity >= matches[1].similarity
        assert matches[0].content == ESSAY

        stored = await SubmissionStore(db_session).get_plagiarism_report(current.id)
        assert stored.id == result.plagiarism_report.id
        assert stored.highest_similarity == result.plagiarism_report.highest_similarity
        assert all(len(match["content"]) <= 200 for match in stored.matches)
        assert stored.matches[0]["content"].endswith("...")

    async def test_rerun_creates_new_report(self, processor, embedding_service, seed, db_session):
        assignment = await seed.assignment(rubric={"Style": 1})
        await seed.submission(
            assignment.id, ESSAY, embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission(assignment.id, ESSAY)

        first = await processor.process(current.id, ESSAY, assignment.id, db_session)
        second = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert first.plagiarism_report.id != second.plagiarism_report.id
        assert first.ai_grade.id != second.ai_grade.id


class TestCorruptStoredVectors:
    async def test_undecodable_sibling_is_skipped(self, processor, embedding_service, seed, db_session):
        assignment = await seed.assignment(rubric={})
        await seed.submission(assignment.id, ESSAY, student_id="broken", embedding=b"[0.1, 0.2]")
        good = await seed.submission(
            assignment.id, ESSAY, student_id="alice",
            embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert [m.id for m in result.plagiarism_report.matches] == [good.id]

    async def test_wrong_dimension_sibling_is_skipped(self, processor, embedding_service, seed, db_session):
        assignment = await seed.assignment(rubric={})
        await seed.submission(
            assignment.id, ESSAY, student_id="stale", embedding=encode_vector([1.0, 0.0, 0.0])
        )
        good = await seed.submission(
            assignment.id, ESSAY, student_id="alice",
            embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert [m.id for m in result.plagiarism_report.matches] == [good.id]

    async def test_non_finite_sibling_is_skipped(self, processor, seed, db_session):
        assignment = await seed.assignment(rubric={})
        await seed.submission(
            assignment.id, OTHER_ESSAY, student_id="broken",
            embedding=encode_vector([float("nan")] * DIMENSION)
        )
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.plagiarism_report is None
        assert await SubmissionStore(db_session).get_plagiarism_report(current.id) is None


class TestEmbeddingFailures:
    async def test_empty_content_still_grades(self, processor, seed, db_session):
        assignment = await seed.assignment(rubric={"Participation": 1}, max_score=10)
        current = await seed.submission(assignment.id, "   ")

        result = await processor.process(current.id, "   ", assignment.id, db_session)

        assert result.plagiarism_report is None
        assert result.ai_grade is not None
        assert result.ai_grade.score == 0
        await db_session.refresh(current)
        assert current.embedding is None

    async def test_model_failure_still_grades(self, seed, db_session):
        def loader(name, device):
            raise EmbeddingGenerationError("cannot load")

        processor = SubmissionAIProcessor(EmbeddingService("broken", model_loader=loader))
        assignment = await seed.assignment(rubric={"Content Quality": 1})
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.plagiarism_report is None
        assert result.ai_grade.score == 95


class TestGradingBranch:
    async def test_grade_is_persisted_as_ai(self, processor, seed, db_session):
        assignment = await seed.assignment(
            rubric={"Content Quality": 3, "Participation": 1}, max_score=50
        )
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        grade = result.ai_grade
        assert grade.score == 48
        assert grade.max_score == 50
        assert grade.rubric_scores == {"Content Quality": 95, "Participation": 100}
        assert grade.reasoning == [
            "Content Quality: 95/100 (Excellent)",
            "Participation: 100/100 (Excellent)",
        ]
        assert grade.feedback.startswith("AI Preliminary Grade: 48/50 (96%)")

        stored = await SubmissionStore(db_session).get_ai_grade(current.id)
        assert stored.id == grade.id
        assert stored.graded_by == "ai"
        assert stored.score == 48
        assert stored.rubric_scores == grade.rubric_scores

    async def test_missing_rubric_and_max_score_use_defaults(self, processor, seed, db_session):
        assignment = await seed.assignment(rubric=None, max_score=None)
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.ai_grade.score == 0
        assert result.ai_grade.max_score == 100

    async def test_unknown_assignment_skips_grade_only(self, processor, embedding_service, seed, db_session):
        # Submissions whose assignment row is gone
        await seed.submission(
            "deleted-assignment", ESSAY, student_id="alice",
            embedding=await embed_and_encode(embedding_service, ESSAY)
        )
        current = await seed.submission("deleted-assignment", ESSAY, student_id="bob")

        result = await processor.process(current.id, ESSAY, "deleted-assignment", db_session)

        assert result.ai_grade is None
        assert result.plagiarism_report is not None
        assert result.plagiarism_report.is_flagged is True
        assert await SubmissionStore(db_session).get_ai_grade(current.id) is None


class TestStorageFailures:
    async def test_write_failure_propagates(self, processor, seed, db_session, monkeypatch):
        async def failing_insert(self, *args, **kwargs):
            raise OperationalError("INSERT INTO grades", {}, Exception("disk I/O error"))

        monkeypatch.setattr(SubmissionStore, "insert_grade", failing_insert)
        assignment = await seed.assignment(rubric={"Style": 1})
        current = await seed.submission(assignment.id, ESSAY)

        with pytest.raises(OperationalError):
            await processor.process(current.id, ESSAY, assignment.id, db_session)

    async def test_read_failure_propagates(self, processor, seed, db_session, monkeypatch):
        async def failing_fetch(self, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(SubmissionStore, "get_sibling_submissions", failing_fetch)
        assignment = await seed.assignment(rubric={})
        current = await seed.submission(assignment.id, ESSAY)

        with pytest.raises(OperationalError):
            await processor.process(current.id, ESSAY, assignment.id, db_session)


class TestConfiguration:
    @pytest.mark.parametrize("threshold", [-0.5, 1.01])
    def test_match_threshold_out_of_range(self, embedding_service, threshold):
        with pytest.raises(ValueError):
            SubmissionAIProcessor(embedding_service, match_threshold=threshold)

    async def test_non_positive_max_score_uses_default(self, processor, seed, db_session):
        assignment = await seed.assignment(rubric={"Content Quality": 1}, max_score=-5)
        current = await seed.submission(assignment.id, ESSAY)

        result = await processor.process(current.id, ESSAY, assignment.id, db_session)

        assert result.ai_grade.max_score == 100
        assert result.ai_grade.score == 95
