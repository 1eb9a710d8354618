"""
Errors raised by the submission processing pipeline
"""


class GradeLensError(Exception):
    """Base class for pipeline errors"""


class EmptyInputError(GradeLensError):
    """Text is empty once whitespace has been collapsed and trimmed"""


class EmbeddingGenerationError(GradeLensError):
    """The embedding model failed or timed out"""


class DimensionMismatchError(GradeLensError):
    """Two vectors being compared have different lengths"""

    def __init__(self, left: int, right: int):
        super().__init__(f"Vectors must have the same length ({left} != {right})")
        self.left = left
        self.right = right


class VectorDecodeError(GradeLensError):
    """A stored embedding blob is malformed or of an unknown schema version"""


class AssignmentNotFoundError(GradeLensError):
    """The assignment referenced by a submission does not exist"""

    def __init__(self, assignment_id: str):
        super().__init__(f"Assignment {assignment_id} not found")
        self.assignment_id = assignment_id
