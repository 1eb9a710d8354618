"""Database models"""

from .assignments import Assignment
from .grades import Grade
from .reports import PlagiarismReport
from .submissions import Submission

__all__ = [
    "Assignment",
    "Submission",
    "PlagiarismReport",
    "Grade",
]
