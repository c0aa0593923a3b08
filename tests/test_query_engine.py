import pytest

from errors import IndexCorruptionError, InvalidQueryError
from services.query_engine import QueryEngine
from services.record_store import RecordStore
from services.tokenizer import tokenize


@pytest.fixture
def engine(sample_records):
    return QueryEngine(RecordStore(sample_records))


@pytest.mark.parametrize("query", ["", "   ", None])
def test_empty_query_is_rejected(engine, query):
    with pytest.raises(InvalidQueryError):
        engine.search(query)


def test_primary_field_match_scores_two(engine):
    response = engine.search("eczema")

    assert response.count == 1
    assert [r.record.id for r in response.results] == ["1"]
    assert response.results[0].score == 2
    assert response.results[0].matched_fields == {"question"}


def test_primary_and_secondary_match_scores_three(engine):
    response = engine.search("acne")

    assert [r.record.id for r in response.results] == ["2"]
    assert response.results[0].score == 3
    assert response.results[0].matched_fields == {"question", "answer"}


def test_union_of_terms_and_descending_score(engine):
    response = engine.search("psoriasis sweat")

    assert [r.record.id for r in response.results] == ["3", "4"]
    assert [r.score for r in response.results] == [3, 3]


def test_tag_only_match_is_eligible_with_zero_score(engine):
    response = engine.search("timeline")

    assert [r.record.id for r in response.results] == ["2"]
    assert response.results[0].score == 0
    assert response.results[0].matched_fields == {"tags"}


def test_substring_fallback_matches_partial_words(engine):
    response = engine.search("contag")

    assert [r.record.id for r in response.results] == ["3"]
    assert response.results[0].score == 2


def test_category_filter_is_case_insensitive(engine):
    response = engine.search("triggers", category="general")

    assert [r.record.id for r in response.results] == ["4"]


def test_results_always_contain_a_query_term(engine):
    query = "skin flare treatments"
    terms = set(tokenize(query))

    response = engine.search(query)

    assert response.count > 0
    for result in response.results:
        assert result.matched_fields
        record = result.record
        field_text = {
            "question": record.question or "",
            "answer": record.answer or "",
            "title": record.title or "",
            "body": record.body or "",
            "tags": " ".join(record.tags),
        }
        assert any(
            terms & set(tokenize(field_text[name])) or query in field_text[name].lower()
            for name in result.matched_fields
        )


def test_equal_scores_keep_insertion_order():
    store = RecordStore(
        [
            {"id": "b", "kind": "qa", "question": "Dry skin in winter?", "answer": "Moisturize.", "category": "General"},
            {"id": "a", "kind": "qa", "question": "Oily skin care?", "answer": "Cleanse.", "category": "General"},
            {"id": "c", "kind": "qa", "question": "Skin and sun?", "answer": "Protect your skin.", "category": "General"},
        ]
    )
    engine = QueryEngine(store)

    first = [r.record.id for r in engine.search("skin").results]
    second = [r.record.id for r in engine.search("skin").results]

    assert first == ["c", "b", "a"]
    assert first == second


def test_record_ids_and_kind_filters(sample_records):
    store = RecordStore(sample_records)
    store.put({"id": "d1", "kind": "document", "title": "Acne note", "body": "Mild acne.", "category": "Acne"})
    store.put({"id": "d2", "kind": "document", "title": "Acne plan", "body": "Retinoids.", "category": "Acne"})
    engine = QueryEngine(store)

    documents = engine.search("acne", kind="document")
    scoped = engine.search("acne", kind="document", record_ids=["d2"])

    assert [r.record.id for r in documents.results] == ["d1", "d2"]
    assert [r.record.id for r in scoped.results] == ["d2"]
    assert scoped.results[0].matched_fields == {"title"}


def test_dangling_index_entry_is_an_internal_error(sample_records):
    store = RecordStore(sample_records)
    store._records.pop("3")
    engine = QueryEngine(store)

    with pytest.raises(IndexCorruptionError):
        engine.search("psoriasis")
