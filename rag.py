"""Knowledge base facade used by the service layer.

Wires the record store, index, query engine, relation finder and extraction
engine together and exposes the operations the HTTP layer calls.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional

import pandas as pd
from openai import AsyncOpenAI
from rapidfuzz import fuzz, process

from errors import NotFoundError, ValidationError
from models.knowledge import (
    ExtractionResult,
    KnowledgeRecord,
    RecordKind,
    RelationSummary,
    SearchResponse,
    build_record,
    normalize_record_id,
    validate_records,
)
from services.answer_service import (
    AnswerGenerator,
    CannedAnswerGenerator,
    OpenAIAnswerGenerator,
)
from services.extraction import ExtractionEngine
from services.query_engine import QueryEngine
from services.question_logger import QuestionLogger
from services.record_store import RecordStore
from services.relation_finder import DEFAULT_RELATED_LIMIT, RelationFinder

if TYPE_CHECKING:
    from config import Config

DocumentTextExtractor = Callable[[bytes], str]

DEFAULT_CATEGORY = "General"
DEFAULT_FAQ_LIMIT = 10
MIN_QUESTION_LENGTH = 10
SUGGESTED_QUESTIONS = 3

logger = logging.getLogger(__name__)


def decode_plain_text(raw: bytes) -> str:
    """Default document text extractor: UTF-8 with an optional BOM."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValidationError("Document is not valid UTF-8 text") from exc


def load_records(path: Path | str) -> List[KnowledgeRecord]:
    """Read a seed corpus from JSON (list of records) or CSV."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Knowledge file not found: {path}")

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, encoding="utf-8-sig", dtype=str, keep_default_na=False)
        df.rename(columns=lambda name: name.strip().lstrip("\ufeff"), inplace=True)
        if "kind" not in df.columns:
            df["kind"] = RecordKind.QA.value
        if "id" not in df.columns:
            raise ValidationError("Knowledge CSV must contain an 'id' column")
        df["id"] = [
            normalize_record_id(value, position)
            for position, value in enumerate(df["id"].tolist(), start=1)
        ]
        rows = [
            {key: value for key, value in row.items() if value != ""}
            for row in df.to_dict(orient="records")
        ]
        return validate_records(rows)

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw_data, list):
        raise ValidationError("Knowledge JSON must contain a list of records")
    return validate_records(raw_data)


def build_context_snippets(records: Iterable[KnowledgeRecord]) -> str:
    """Format records as prompt context for an answer model."""
    parts = []
    for record in records:
        part = (
            f"[ID:{record.id}] Category: {record.category}\n"
            f"Question: {record.primary_text}\n"
            f"Answer: {record.secondary_text}\n"
            f"Sources: {', '.join(record.sources) or '-'}\n"
        )
        parts.append(part)
    return "\n---\n".join(parts)


@dataclass(frozen=True)
class SimilarQuestion:
    record: KnowledgeRecord
    score: float


class KnowledgeBase:
    build_context_snippets = staticmethod(build_context_snippets)

    def __init__(
        self,
        records: Optional[Iterable[KnowledgeRecord | Mapping[str, object]]] = None,
        *,
        answer_generator: Optional[AnswerGenerator] = None,
        text_extractor: DocumentTextExtractor = decode_plain_text,
        question_logger: Optional[QuestionLogger] = None,
        related_limit: int = DEFAULT_RELATED_LIMIT,
        faq_limit: int = DEFAULT_FAQ_LIMIT,
        min_question_length: int = MIN_QUESTION_LENGTH,
    ) -> None:
        self._store = RecordStore(records)
        self._query_engine = QueryEngine(self._store)
        self._relation_finder = RelationFinder(self._store)
        self._extraction_engine = ExtractionEngine(self._store)
        self._answer_generator: AnswerGenerator = answer_generator or CannedAnswerGenerator()
        self._text_extractor = text_extractor
        self._question_logger = question_logger
        self._related_limit = related_limit
        self._faq_limit = faq_limit
        self._min_question_length = min_question_length

    @classmethod
    def from_file(cls, path: Path | str, **kwargs: Any) -> "KnowledgeBase":
        records = load_records(path)
        logger.info("Loaded %d knowledge records from %s", len(records), path)
        return cls(records, **kwargs)

    @classmethod
    def from_config(cls, config: "Config") -> "KnowledgeBase":
        question_logger = QuestionLogger(config.question_log_path, token_model=config.openai_model)
        knowledge_base = cls.from_file(
            config.knowledge_base_path,
            question_logger=question_logger,
            related_limit=config.related_limit,
            faq_limit=config.faq_limit,
            min_question_length=config.min_question_length,
        )
        if config.answer_backend == "openai":
            knowledge_base.answer_generator = OpenAIAnswerGenerator(
                knowledge_base,
                AsyncOpenAI(api_key=config.openai_api_key),
                model=config.openai_model,
                system_prompt=config.system_prompt,
            )
        return knowledge_base

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def extraction(self) -> ExtractionEngine:
        return self._extraction_engine

    @property
    def answer_generator(self) -> AnswerGenerator:
        return self._answer_generator

    @answer_generator.setter
    def answer_generator(self, generator: AnswerGenerator) -> None:
        self._answer_generator = generator

    # ---------------------- Q&A ----------------------
    def search(self, query: str | None, category: str | None = None) -> SearchResponse:
        return self._query_engine.search(query, category)

    def get_faq(self, category: str | None = None, limit: int | str | None = None) -> Dict[str, Any]:
        limit = self._faq_limit if limit is None else self._parse_limit(limit)
        faqs = self._store.list(kind=RecordKind.QA, category=category or None)
        faqs = sorted(faqs, key=lambda record: record.confidence, reverse=True)[:limit]
        return {
            "faqs": faqs,
            "categories": self._store.categories(kind=RecordKind.QA),
        }

    def get_by_category(self, category: str) -> List[KnowledgeRecord]:
        if not category or not category.strip():
            raise NotFoundError("Category not found")
        records = self._store.list(kind=RecordKind.QA, category=category.strip())
        if not records:
            raise NotFoundError(f"Category not found: {category}")
        return records

    def get_by_id(self, record_id: str) -> Dict[str, Any]:
        record = self._store.get(record_id)
        return {"record": record, "related": self.related(record_id)}

    def related(self, record_id: str, limit: int | None = None) -> List[RelationSummary]:
        return self._relation_finder.related(
            record_id, self._related_limit if limit is None else limit
        )

    def similar_questions(self, question: str, limit: int = SUGGESTED_QUESTIONS) -> List[SimilarQuestion]:
        if not question or not question.strip() or limit <= 0:
            return []
        records = {record.id: record for record in self._store.list(kind=RecordKind.QA)}
        choices = {record_id: record.display_title for record_id, record in records.items()}
        matches = process.extract(question, choices, scorer=fuzz.WRatio, limit=limit)
        return [SimilarQuestion(record=records[key], score=float(score)) for _, score, key in matches]

    async def ask_question(
        self,
        question: str,
        category: str | None = DEFAULT_CATEGORY,
        user_id: str | None = None,
    ) -> Dict[str, Any]:
        cleaned = (question or "").strip()
        if len(cleaned) < self._min_question_length:
            raise ValidationError(
                f"Question must be at least {self._min_question_length} characters long"
            )
        category = (category or DEFAULT_CATEGORY).strip() or DEFAULT_CATEGORY

        generated = await self._answer_generator.generate_answer(cleaned, category)
        answered_at = datetime.now(timezone.utc)

        if self._question_logger is not None and user_id:
            self._question_logger.log(
                user_id=user_id,
                question=cleaned,
                category=category,
                answer=generated.answer,
                confidence=generated.confidence,
                status=generated.status,
                timestamp=answered_at,
            )

        return {
            "id": uuid.uuid4().hex,
            "question": cleaned,
            "category": category,
            "answer": generated.answer,
            "confidence": generated.confidence,
            "sources": generated.sources,
            "status": generated.status,
            "answered_at": answered_at,
            "user_id": user_id,
            "related_questions": [
                hit.record.display_title for hit in self.similar_questions(cleaned)
            ],
        }

    def question_history(self, user_id: str | None) -> List[Dict[str, str]]:
        if not user_id:
            raise ValidationError("User ID required")
        if self._question_logger is None:
            return []
        return self._question_logger.history(user_id)

    # ---------------------- Documents ----------------------
    def ingest_document(
        self,
        raw: bytes,
        metadata: Mapping[str, Any] | None = None,
        *,
        user_id: str | None = None,
    ) -> KnowledgeRecord:
        metadata = dict(metadata or {})
        # text extraction runs before the store takes its write lock
        text = self._text_extractor(raw)
        if not text or not text.strip():
            raise ValidationError("Document contains no text")

        record = build_record(
            {
                "id": f"doc_{uuid.uuid4().hex[:12]}",
                "kind": RecordKind.DOCUMENT,
                "title": metadata.get("title") or metadata.get("filename") or "Untitled document",
                "body": text,
                "category": metadata.get("category") or DEFAULT_CATEGORY,
                "tags": metadata.get("tags") or [],
                "sources": metadata.get("sources") or [],
                "confidence": metadata.get("confidence", 100.0),
                "user_id": user_id,
            }
        )
        self._store.put(record)
        logger.info("Ingested document %s (%d characters)", record.id, len(text))
        return record

    def get_document(self, document_id: str) -> KnowledgeRecord:
        record = self._store.get(document_id)
        if record.kind is not RecordKind.DOCUMENT:
            raise NotFoundError(f"Document not found: {document_id}")
        return record

    def extract(self, document_id: str, extraction_type: str | None) -> ExtractionResult:
        return self._extraction_engine.extract(document_id, extraction_type)

    def search_documents(
        self,
        query: str | None,
        document_ids: Iterable[str] | None = None,
        category: str | None = None,
    ) -> SearchResponse:
        return self._query_engine.search(
            query,
            category,
            record_ids=list(document_ids) if document_ids is not None else None,
            kind=RecordKind.DOCUMENT,
        )

    def document_history(self, user_id: str | None = None) -> List[KnowledgeRecord]:
        documents = self._store.list(kind=RecordKind.DOCUMENT)
        if user_id is not None:
            documents = [record for record in documents if record.user_id == user_id]
        return sorted(documents, key=lambda record: record.created_at, reverse=True)

    def delete_document(self, document_id: str) -> Dict[str, Any]:
        record = self._store.get(document_id)
        if record.kind is RecordKind.QA:
            raise ValidationError("Q&A records are read-only")
        self._store.delete(document_id)
        return {"deleted": True, "id": document_id}

    @staticmethod
    def _parse_limit(limit: int | str) -> int:
        try:
            value = int(limit)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid limit: {limit!r}") from exc
        if value < 0:
            raise ValidationError(f"Invalid limit: {limit!r}")
        return value
