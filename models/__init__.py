"""Knowledge base data models."""

from .knowledge import (
    ExtractionResult,
    KnowledgeRecord,
    RecordKind,
    RelationSummary,
    SearchResponse,
    SearchResult,
    build_record,
    normalize_record_id,
    validate_records,
)

__all__ = [
    "ExtractionResult",
    "KnowledgeRecord",
    "RecordKind",
    "RelationSummary",
    "SearchResponse",
    "SearchResult",
    "build_record",
    "normalize_record_id",
    "validate_records",
]
