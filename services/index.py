from __future__ import annotations

import logging
from collections import defaultdict
from typing import DefaultDict, Dict, FrozenSet, Set

from models.knowledge import KnowledgeRecord
from services.tokenizer import tokenize


def record_terms(record: KnowledgeRecord) -> FrozenSet[str]:
    """All index terms of a record: primary and secondary text plus tags."""
    terms: Set[str] = set(tokenize(record.primary_text))
    terms.update(tokenize(record.secondary_text))
    for tag in record.tags:
        terms.update(tokenize(tag))
    return frozenset(terms)


class InvertedIndex:
    """Term to record-id mapping.

    Not thread-safe on its own; :class:`services.record_store.RecordStore`
    serializes writers.
    """

    def __init__(self) -> None:
        self._postings: DefaultDict[str, Set[str]] = defaultdict(set)
        self._terms_by_record: Dict[str, FrozenSet[str]] = {}
        self._logger = logging.getLogger(__name__)

    def insert(self, record: KnowledgeRecord) -> None:
        terms = record_terms(record)
        if record.id in self._terms_by_record:
            self.remove(record.id)
        for term in terms:
            self._postings[term].add(record.id)
        self._terms_by_record[record.id] = terms
        self._logger.debug("Indexed record %s under %d terms", record.id, len(terms))

    def remove(self, record_id: str) -> None:
        terms = self._terms_by_record.pop(record_id, frozenset())
        for term in terms:
            ids = self._postings.get(term)
            if ids is None:
                continue
            ids.discard(record_id)
            if not ids:
                del self._postings[term]
        self._logger.debug("Removed record %s from %d terms", record_id, len(terms))

    def lookup(self, term: str) -> Set[str]:
        ids = self._postings.get(term)
        return set(ids) if ids else set()

    def terms_for(self, record_id: str) -> FrozenSet[str]:
        return self._terms_by_record.get(record_id, frozenset())

    def record_ids(self) -> Set[str]:
        return set(self._terms_by_record)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._terms_by_record

    def __len__(self) -> int:
        return len(self._postings)
