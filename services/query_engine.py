"""Free-text search over the record store.

Candidates come from the inverted index (union over query terms) plus a raw
substring pass over question, answer and tag text, so that a query such as
``"flare"`` still finds ``"flare-ups"``. Scoring weights the primary field
(question or title) twice as much as the secondary one (answer or body);
tag matches make a record eligible but add nothing to its score.
"""

from __future__ import annotations

import logging
from typing import Collection, List, Set

from errors import InvalidQueryError
from models.knowledge import KnowledgeRecord, RecordKind, SearchResponse, SearchResult
from services.record_store import RecordStore
from services.tokenizer import normalize, tokenize

PRIMARY_WEIGHT = 2.0
SECONDARY_WEIGHT = 1.0


class QueryEngine:
    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._logger = logging.getLogger(__name__)

    def search(
        self,
        query: str | None,
        category: str | None = None,
        *,
        record_ids: Collection[str] | None = None,
        kind: RecordKind | str | None = None,
    ) -> SearchResponse:
        if not query or not query.strip():
            raise InvalidQueryError("Search query required")

        terms = set(tokenize(query))
        phrase = normalize(query)
        wanted_kind = RecordKind(kind) if kind is not None else None
        wanted_category = category.strip().lower() if category and category.strip() else None
        allowed_ids = set(record_ids) if record_ids is not None else None

        with self._store.read_locked():
            candidate_ids: Set[str] = set()
            for term in terms:
                candidate_ids |= self._store.index.lookup(term)
            positions = self._store.position_unlocked()
            candidates = [self._store.resolve_unlocked(rid) for rid in candidate_ids]
            for record in self._store.list_unlocked():
                if record.id not in candidate_ids and self._contains_phrase(record, phrase):
                    candidates.append(record)

        results: List[SearchResult] = []
        for record in candidates:
            if wanted_kind is not None and record.kind is not wanted_kind:
                continue
            if wanted_category is not None and record.category.lower() != wanted_category:
                continue
            if allowed_ids is not None and record.id not in allowed_ids:
                continue
            results.append(self._score(record, terms, phrase))

        results.sort(key=lambda result: positions[result.record.id])
        results.sort(key=lambda result: result.score, reverse=True)

        self._logger.debug("Search %r matched %d records", query, len(results))
        return SearchResponse(query=query, results=results, count=len(results))

    @staticmethod
    def _contains_phrase(record: KnowledgeRecord, phrase: str) -> bool:
        if not phrase:
            return False
        if phrase in normalize(record.primary_text) or phrase in normalize(record.secondary_text):
            return True
        return any(phrase in tag.lower() for tag in record.tags)

    @staticmethod
    def _field_matches(text: str, terms: Set[str], phrase: str) -> bool:
        if not text:
            return False
        return bool(terms.intersection(tokenize(text))) or phrase in normalize(text)

    def _score(self, record: KnowledgeRecord, terms: Set[str], phrase: str) -> SearchResult:
        matched: Set[str] = set()
        score = 0.0
        if self._field_matches(record.primary_text, terms, phrase):
            score += PRIMARY_WEIGHT
            matched.add(record.primary_field)
        if self._field_matches(record.secondary_text, terms, phrase):
            score += SECONDARY_WEIGHT
            matched.add(record.secondary_field)
        tag_terms = {token for tag in record.tags for token in tokenize(tag)}
        if terms.intersection(tag_terms) or any(phrase in tag.lower() for tag in record.tags):
            matched.add("tags")
        return SearchResult(record=record, score=score, matched_fields=matched)
