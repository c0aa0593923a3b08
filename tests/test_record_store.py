import threading

import pytest

from errors import NotFoundError, ValidationError
from models.knowledge import KnowledgeRecord, RecordKind
from services.index import InvertedIndex, record_terms
from services.record_store import ReadWriteLock, RecordStore


def test_put_indexes_text_and_tags(sample_records):
    store = RecordStore(sample_records)

    assert len(store) == 4
    assert store.index.lookup("eczema") == {"1"}
    assert store.index.lookup("triggers") == {"1", "4"}
    assert store.index.lookup("autoimmune") == {"3"}
    assert store.index.lookup("rosacea") == set()


def test_every_stored_record_is_reachable_from_index(sample_records):
    store = RecordStore(sample_records)

    for record in store.list():
        terms = record_terms(record)
        assert terms
        assert all(record.id in store.index.lookup(term) for term in terms)


def test_put_rejects_missing_required_fields():
    store = RecordStore()

    with pytest.raises(ValidationError):
        store.put({"id": "x", "kind": "qa", "question": "Question?"})
    with pytest.raises(ValidationError):
        store.put({"id": "x", "kind": "qa", "category": "Acne"})
    with pytest.raises(ValidationError):
        store.put({"kind": "qa", "question": "Q?", "category": "Acne"})
    with pytest.raises(ValidationError):
        store.put({"id": "x", "question": "Q?", "category": "Acne"})

    assert len(store) == 0
    assert len(store.index) == 0


def test_put_replaces_record_and_reindexes(sample_records):
    store = RecordStore(sample_records)
    replacement = dict(sample_records[0], question="What makes dermatitis worse?", answer="Heat.")

    store.put(replacement)

    assert store.get("1").question == "What makes dermatitis worse?"
    assert store.index.lookup("eczema") == set()
    assert store.index.lookup("dermatitis") == {"1"}
    assert [record.id for record in store.list()] == ["1", "2", "3", "4"]


def test_put_leaves_store_untouched_when_indexing_fails(sample_records):
    class FailingIndex(InvertedIndex):
        def insert(self, record):
            if record.id == "new":
                raise RuntimeError("indexing failed")
            super().insert(record)

    store = RecordStore(sample_records, index=FailingIndex())

    with pytest.raises(RuntimeError):
        store.put({"id": "new", "kind": "qa", "question": "Can moles itch?", "category": "Moles"})

    assert "new" not in store
    assert len(store) == 4


def test_get_and_delete_missing_raise_not_found():
    store = RecordStore()

    with pytest.raises(NotFoundError):
        store.get("nope")
    with pytest.raises(NotFoundError):
        store.delete("nope")


def test_delete_prunes_index(sample_records):
    store = RecordStore(sample_records)

    removed = store.delete("3")

    assert removed.id == "3"
    assert "3" not in store
    assert store.index.lookup("psoriasis") == set()
    assert "3" not in store.index
    assert all("3" not in store.index.lookup(term) for term in record_terms(removed))
    with pytest.raises(NotFoundError):
        store.delete("3")


def test_list_filters_by_kind_and_category(sample_records):
    store = RecordStore(sample_records)
    store.put(
        {
            "id": "doc_1",
            "kind": "document",
            "title": "Clinic note",
            "body": "Eczema on both hands.",
            "category": "eczema",
        }
    )

    assert [r.id for r in store.list(category="ECZEMA")] == ["1", "doc_1"]
    assert [r.id for r in store.list(kind=RecordKind.DOCUMENT)] == ["doc_1"]
    assert [r.id for r in store.list(kind="qa", category="eczema")] == ["1"]
    assert store.categories(kind=RecordKind.QA) == ["Eczema", "Acne", "Psoriasis", "General"]


def test_records_are_immutable(sample_records):
    store = RecordStore(sample_records)
    record = store.get("1")

    with pytest.raises(Exception):
        record.category = "Acne"


def test_index_remove_unknown_id_is_noop():
    index = InvertedIndex()
    record = KnowledgeRecord(id="1", kind="qa", question="Dry skin?", category="General")
    index.insert(record)

    index.remove("missing")

    assert index.lookup("dry") == {"1"}
    assert index.terms_for("1") == frozenset({"dry", "skin"})


def test_lookup_returns_copy():
    index = InvertedIndex()
    index.insert(KnowledgeRecord(id="1", kind="qa", question="Dry skin?", category="General"))

    index.lookup("dry").add("intruder")

    assert index.lookup("dry") == {"1"}


def test_write_lock_waits_for_readers():
    lock = ReadWriteLock()
    acquired = threading.Event()

    def writer():
        with lock.write_locked():
            acquired.set()

    lock.acquire_read()
    thread = threading.Thread(target=writer)
    thread.start()
    assert not acquired.wait(0.1)

    lock.release_read()
    assert acquired.wait(2)
    thread.join(2)


def test_concurrent_reads_and_writes_stay_consistent(sample_records):
    store = RecordStore(sample_records)
    errors = []

    def writer():
        try:
            for n in range(50):
                doc_id = f"doc_{n}"
                store.put(
                    {
                        "id": doc_id,
                        "kind": "document",
                        "title": f"Note {n}",
                        "body": "Scalp psoriasis plaques.",
                        "category": "Psoriasis",
                    }
                )
                store.delete(doc_id)
        except Exception as exc:  # pragma: no cover - surfaced by assertion
            errors.append(exc)

    def reader():
        try:
            for _ in range(200):
                with store.read_locked():
                    for record_id in store.index.lookup("psoriasis"):
                        store.resolve_unlocked(record_id)
        except Exception as exc:  # pragma: no cover - surfaced by assertion
            errors.append(exc)

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(10)

    assert errors == []
    assert store.index.lookup("psoriasis") == {"3"}
