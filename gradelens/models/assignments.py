"""
Database model for assignments and their grading configuration
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from gradelens.db.database import Base
from gradelens.utils import generate_record_id

if TYPE_CHECKING:
    from .submissions import Submission


class Assignment(Base):
    """Assignment with the rubric used for AI grading (read-only to the pipeline)"""

    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_record_id)
    course_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Grading configuration
    max_score: Mapped[int | None] = mapped_column(Integer, nullable=True, default=100)
    rubric: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    # Expected structure: {"Content Quality": 2, "Style": 1}

    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    # Relationships
    submissions: Mapped[list["Submission"]] = relationship(
        "Submission", back_populates="assignment", cascade="all, delete-orphan"
    )
