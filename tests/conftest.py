"""
Shared fixtures: in-memory database and a deterministic embedding model
"""

import hashlib
import re

import numpy as np
import pytest
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from gradelens.db.database import Base
from gradelens.models import Assignment, Submission
from gradelens.services import EmbeddingService

DIMENSION = 256


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class HashingModel:
    """Bag-of-words stand-in for a sentence-transformers model"""

    def __init__(self) -> None:
        self.calls = 0

    def encode(self, text, **kwargs):
        self.calls += 1
        vector = np.zeros(DIMENSION, dtype=np.float32)
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % DIMENSION
            vector[bucket] += 1.0
        norm = np.linalg.norm(vector)
        if kwargs.get("normalize_embeddings") and norm > 0:
            vector = vector / norm
        return vector


def make_essay(words_per_sentence: int, sentences_per_paragraph: list[int], word: str = "lorem") -> str:
    """Text with exact word, sentence and paragraph counts"""
    sentence = " ".join([word] * (words_per_sentence - 1) + ["ipsum."])
    paragraphs = [" ".join([sentence] * count) for count in sentences_per_paragraph]
    return "\n\n".join(paragraphs)


@pytest.fixture
def hashing_model() -> HashingModel:
    return HashingModel()


@pytest.fixture
def embedding_service(hashing_model) -> EmbeddingService:
    return EmbeddingService("test-model", model_loader=lambda name, device: hashing_model)


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncSession:
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(db_session):
    """Factory helpers for assignments and submissions"""

    class Seeder:
        async def assignment(self, rubric=None, max_score=100, **kwargs) -> Assignment:
            assignment = Assignment(
                course_id=kwargs.pop("course_id", "course-1"),
                title=kwargs.pop("title", "Essay"),
                rubric=rubric,
                max_score=max_score,
                **kwargs
            )
            db_session.add(assignment)
            await db_session.commit()
            return assignment

        async def submission(
            self,
            assignment_id: str,
            content: str,
            student_id: str = "student-1",
            embedding: bytes | None = None
        ) -> Submission:
            submission = Submission(
                assignment_id=assignment_id,
                student_id=student_id,
                content=content,
                embedding=embedding,
            )
            db_session.add(submission)
            await db_session.commit()
            return submission

    return Seeder()
