from __future__ import annotations

from typing import List

from models.knowledge import RelationSummary
from services.record_store import RecordStore

DEFAULT_RELATED_LIMIT = 3


class RelationFinder:
    """Surfaces records sharing a category or at least one tag with a given record."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def related(self, record_id: str, limit: int = DEFAULT_RELATED_LIMIT) -> List[RelationSummary]:
        with self._store.read_locked():
            target = self._store.get_unlocked(record_id)
            if limit <= 0:
                return []
            target_tags = target.tag_set
            related: List[RelationSummary] = []
            for record in self._store.list_unlocked():
                if record.id == target.id:
                    continue
                if record.category == target.category or target_tags & record.tag_set:
                    related.append(RelationSummary.from_record(record))
                    if len(related) >= limit:
                        break
            return related
