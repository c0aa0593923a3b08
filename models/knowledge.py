"""Pydantic schemas for knowledge base records and engine results."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Sequence, Set, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError

FieldValue = Union[str, List[str]]


def _normalize_text(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_record_id(value: str, position: int) -> str:
    """Clean an id read from a CSV export.

    Spreadsheet exports turn ``1`` into ``"1.0"``; blank ids become ``auto_<position>``.
    """
    normalized = value.strip().lstrip("\ufeff")
    if not normalized:
        return f"auto_{position}"
    try:
        numeric = float(normalized)
    except ValueError:
        return normalized
    return str(int(numeric)) if numeric.is_integer() else normalized


class RecordKind(str, Enum):
    """Kinds of records held by the store."""

    QA = "qa"
    DOCUMENT = "document"


class KnowledgeRecord(BaseModel):
    """Immutable knowledge entry: a Q&A pair or an uploaded document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    kind: RecordKind
    category: str
    question: str | None = None
    answer: str | None = None
    title: str | None = None
    body: str | None = None
    tags: List[str] = Field(default_factory=list)
    confidence: float = Field(default=100.0, ge=0, le=100)
    sources: List[str] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("created_at", "createdAt"),
    )
    user_id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _ensure_id(cls, value: object) -> str:
        if value is None:
            raise ValueError("knowledge record id is required")
        if isinstance(value, (int, float)):
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            value = str(value)
        if not isinstance(value, str):
            raise ValueError("knowledge record id must be a string")
        normalized = value.strip()
        if not normalized:
            raise ValueError("knowledge record id must not be empty")
        return normalized

    @field_validator("created_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: object, info: ValidationInfo) -> str:
        field_name = info.field_name or "field"
        if value is None:
            raise ValueError(f"knowledge record {field_name} is required")
        if not isinstance(value, str):
            raise ValueError(f"knowledge record {field_name} must be a string")
        normalized = _normalize_text(value)
        if not normalized:
            raise ValueError(f"knowledge record {field_name} must not be empty")
        return normalized

    @field_validator("question", "answer", "title", mode="before")
    @classmethod
    def _normalize_optional_field(cls, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, (int, float)):
            value = str(value)
        if not isinstance(value, str):
            raise ValueError("text field values must be strings")
        normalized = _normalize_text(value)
        return normalized or None

    @field_validator("body", mode="before")
    @classmethod
    def _strip_body(cls, value: object) -> str | None:
        # Line breaks are kept, the extractors split on them.
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("document body must be a string")
        stripped = value.strip()
        return stripped or None

    @staticmethod
    def _prepare_list(value: object) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            parts = re.split(r"[\n;,]+", value)
            return [_normalize_text(part) for part in parts if _normalize_text(part)]
        if isinstance(value, (Sequence, set, frozenset)) and not isinstance(
            value, (bytes, bytearray)
        ):
            normalized_items: List[str] = []
            for item in value:
                if item is None:
                    continue
                if isinstance(item, (int, float)):
                    item = str(item)
                if not isinstance(item, str):
                    raise ValueError("list items must be strings")
                normalized = _normalize_text(item)
                if normalized:
                    normalized_items.append(normalized)
            return normalized_items
        raise ValueError("value must be a string or a sequence of strings")

    @field_validator("tags", "sources", mode="before")
    @classmethod
    def _normalize_string_lists(cls, value: object) -> List[str]:
        return cls._prepare_list(value)

    @field_validator("tags", "sources", mode="after")
    @classmethod
    def _ensure_unique(cls, value: List[str]) -> List[str]:
        seen = set()
        unique_items: List[str] = []
        for item in value:
            lowered = item.lower()
            if lowered in seen:
                continue
            seen.add(lowered)
            unique_items.append(item)
        return unique_items

    @model_validator(mode="after")
    def _require_text(self) -> "KnowledgeRecord":
        if not any((self.question, self.answer, self.title, self.body)):
            raise ValueError("knowledge record needs at least one text field")
        return self

    @property
    def primary_field(self) -> str:
        return "question" if self.kind is RecordKind.QA else "title"

    @property
    def secondary_field(self) -> str:
        return "answer" if self.kind is RecordKind.QA else "body"

    @property
    def primary_text(self) -> str:
        return getattr(self, self.primary_field) or ""

    @property
    def secondary_text(self) -> str:
        return getattr(self, self.secondary_field) or ""

    @property
    def display_title(self) -> str:
        return self.primary_text or self.secondary_text[:80]

    @property
    def tag_set(self) -> Set[str]:
        return {tag.lower() for tag in self.tags}

    @property
    def content_text(self) -> str:
        """Body of a document or answer of a Q&A pair, falling back to its title."""
        return self.secondary_text or self.primary_text

    def model_dump_for_storage(self) -> dict:
        return self.model_dump(mode="json")


class RelationSummary(BaseModel):
    """Short description of a record related to another one."""

    id: str
    question: str
    category: str

    @classmethod
    def from_record(cls, record: KnowledgeRecord) -> "RelationSummary":
        return cls(id=record.id, question=record.display_title, category=record.category)


class SearchResult(BaseModel):
    record: KnowledgeRecord
    score: float
    matched_fields: Set[str] = Field(default_factory=set)


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult] = Field(default_factory=list)
    count: int = 0


class ExtractionResult(BaseModel):
    source_record_id: str
    extraction_type: str
    fields: Dict[str, FieldValue] = Field(default_factory=dict)
    confidence: float


def build_record(data: Mapping[str, object] | KnowledgeRecord) -> KnowledgeRecord:
    """Validate ``data`` into a record, raising the engine's ValidationError."""
    if isinstance(data, KnowledgeRecord):
        return data
    try:
        return KnowledgeRecord.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid knowledge record: {exc}") from exc


def validate_records(data: Iterable[Mapping[str, object]]) -> List[KnowledgeRecord]:
    records: List[KnowledgeRecord] = []
    seen_ids: set[str] = set()
    for index, item in enumerate(data, start=1):
        try:
            record = KnowledgeRecord.model_validate(item)
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid knowledge record at index {index}: {exc}"
            ) from exc
        if record.id in seen_ids:
            raise ValidationError(f"Duplicate knowledge record id detected: {record.id}")
        seen_ids.add(record.id)
        records.append(record)
    return records
