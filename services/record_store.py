from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Mapping

from errors import IndexCorruptionError, NotFoundError
from models.knowledge import KnowledgeRecord, RecordKind, build_record
from services.index import InvertedIndex


class ReadWriteLock:
    """Many concurrent readers or a single writer.

    Waiting writers block new readers so a steady stream of searches cannot
    starve an upload. Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class RecordStore:
    """In-memory record store kept in lockstep with an inverted index.

    Public methods take the lock themselves. The ``*_unlocked`` accessors are
    for engines that already hold :meth:`read_locked` across several reads.
    """

    def __init__(
        self,
        records: Iterable[KnowledgeRecord | Mapping[str, object]] | None = None,
        *,
        index: InvertedIndex | None = None,
    ) -> None:
        self._records: Dict[str, KnowledgeRecord] = {}
        self._index = index or InvertedIndex()
        self._lock = ReadWriteLock()
        self._logger = logging.getLogger(__name__)
        for record in records or ():
            self.put(record)

    @property
    def index(self) -> InvertedIndex:
        return self._index

    def read_locked(self):
        return self._lock.read_locked()

    def put(self, record: KnowledgeRecord | Mapping[str, object]) -> KnowledgeRecord:
        record = build_record(record)
        with self._lock.write_locked():
            self._index.insert(record)
            # dict assignment keeps the original position of a replaced id
            self._records[record.id] = record
        return record

    def get(self, record_id: str) -> KnowledgeRecord:
        with self._lock.read_locked():
            return self.get_unlocked(record_id)

    def delete(self, record_id: str) -> KnowledgeRecord:
        with self._lock.write_locked():
            record = self._records.pop(record_id, None)
            if record is None:
                raise NotFoundError(f"Record not found: {record_id}")
            self._index.remove(record_id)
        self._logger.info("Deleted record %s", record_id)
        return record

    def list(
        self,
        *,
        kind: RecordKind | str | None = None,
        category: str | None = None,
    ) -> List[KnowledgeRecord]:
        with self._lock.read_locked():
            return self.list_unlocked(kind=kind, category=category)

    def categories(self, *, kind: RecordKind | str | None = None) -> List[str]:
        """Distinct categories in order of first appearance."""
        seen: Dict[str, None] = {}
        for record in self.list(kind=kind):
            seen.setdefault(record.category, None)
        return list(seen)

    def get_unlocked(self, record_id: str) -> KnowledgeRecord:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        return record

    def resolve_unlocked(self, record_id: str) -> KnowledgeRecord:
        """Fetch a record the index points at."""
        record = self._records.get(record_id)
        if record is None:
            raise IndexCorruptionError(f"Index references missing record {record_id}")
        return record

    def list_unlocked(
        self,
        *,
        kind: RecordKind | str | None = None,
        category: str | None = None,
    ) -> List[KnowledgeRecord]:
        wanted_kind = RecordKind(kind) if kind is not None else None
        wanted_category = category.lower() if category else None
        return [
            record
            for record in self._records.values()
            if (wanted_kind is None or record.kind is wanted_kind)
            and (wanted_category is None or record.category.lower() == wanted_category)
        ]

    def position_unlocked(self) -> Dict[str, int]:
        return {record_id: pos for pos, record_id in enumerate(self._records)}

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)
