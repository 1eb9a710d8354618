"""
Database model for grades
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from gradelens.db.database import Base
from gradelens.utils import generate_record_id

if TYPE_CHECKING:
    from .submissions import Submission


class Grade(Base):
    """Grade for a submission, one record per grader identity ("ai" or "instructor")"""

    __tablename__ = "grades"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_record_id)
    submission_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("submissions.id"), nullable=False, index=True
    )

    score: Mapped[int] = mapped_column(Integer, nullable=False)
    feedback: Mapped[str] = mapped_column(Text, nullable=False)
    rubric_scores: Mapped[dict] = mapped_column(JSON, nullable=False)  # criterion -> 0..100

    graded_by: Mapped[str] = mapped_column(String(20), nullable=False, default="ai", index=True)
    graded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    submission: Mapped["Submission"] = relationship("Submission", back_populates="grades")
