"""
Database model for plagiarism reports
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from gradelens.db.database import Base
from gradelens.utils import generate_record_id, utc_now

if TYPE_CHECKING:
    from .submissions import Submission


class PlagiarismReport(Base):
    """Similar submissions found for one checked submission. Never updated in place."""

    __tablename__ = "plagiarism_reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_record_id)
    submission_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("submissions.id"), nullable=False, index=True
    )

    matches: Mapped[list] = mapped_column(JSON, nullable=False)
    # Expected structure: [
    #   {"id": "...", "similarity": 97, "student_id": "...", "content": "first 200 chars"}
    # ]

    highest_similarity: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 - 100
    is_flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )

    # Relationships
    submission: Mapped["Submission"] = relationship("Submission", back_populates="plagiarism_reports")
