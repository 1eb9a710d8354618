"""Business logic services"""

from .embedding_service import EmbeddingService, load_sentence_transformer
from .submission_processor import SubmissionAIProcessor
from .submission_store import SubmissionStore

__all__ = [
    "EmbeddingService",
    "load_sentence_transformer",
    "SubmissionAIProcessor",
    "SubmissionStore",
]
