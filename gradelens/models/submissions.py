"""
Database model for student submissions
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from gradelens.db.database import Base
from gradelens.utils import generate_record_id

if TYPE_CHECKING:
    from .assignments import Assignment
    from .grades import Grade
    from .reports import PlagiarismReport


class Submission(Base):
    """One student's content for one assignment"""

    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_record_id)
    assignment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("assignments.id"), nullable=False, index=True
    )
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Versioned float32 blob, see gradelens.utils.vectors
    embedding: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="submitted")  # draft, submitted, graded

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
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
    assignment: Mapped["Assignment"] = relationship("Assignment", back_populates="submissions")
    grades: Mapped[list["Grade"]] = relationship(
        "Grade", back_populates="submission", cascade="all, delete-orphan"
    )
    plagiarism_reports: Mapped[list["PlagiarismReport"]] = relationship(
        "PlagiarismReport", back_populates="submission", cascade="all, delete-orphan"
    )
