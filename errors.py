"""Error taxonomy for the knowledge engine."""

from __future__ import annotations

__all__ = [
    "IndexCorruptionError",
    "InvalidExtractionTypeError",
    "InvalidQueryError",
    "KnowledgeBaseError",
    "NotFoundError",
    "ValidationError",
]


class KnowledgeBaseError(ValueError):
    """Base class for recoverable errors surfaced to callers."""

    kind = "knowledge_base_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(KnowledgeBaseError):
    """Raised when input is malformed or a required field is missing."""

    kind = "validation_error"


class NotFoundError(KnowledgeBaseError):
    """Raised when an id or category is unknown."""

    kind = "not_found"


class InvalidQueryError(KnowledgeBaseError):
    """Raised when a search query is empty."""

    kind = "invalid_query"


class InvalidExtractionTypeError(KnowledgeBaseError):
    """Raised when an extraction type is missing."""

    kind = "invalid_extraction_type"


class IndexCorruptionError(RuntimeError):
    """The index references a record the store does not hold.

    This is an internal defect, never a user-facing condition.
    """
