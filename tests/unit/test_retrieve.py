import threading

import pytest

from researchkb.errors import CancellationError, StorageError
from researchkb.models import ItemType, QueryOptions
from researchkb.retrieve import FullTextRanking, StructuredRanking, build_filters, select_strategy
from researchkb.store import KnowledgeStore


def _item(item_id, paper_id, content, **extra):
    data = {"id": item_id, "type": "claim", "content": content, "paper_id": paper_id,
            "section": "Method", "page": 1, "confidence": 0.5, "tags": []}
    data.update(extra)
    return data


def test_select_strategy():
    assert isinstance(select_strategy(QueryOptions(query="attention")), FullTextRanking)
    assert isinstance(select_strategy(QueryOptions(type="claim")), StructuredRanking)
    assert isinstance(select_strategy(QueryOptions()), StructuredRanking)


def test_build_filters_combines_with_and():
    sql, params = build_filters(QueryOptions(type="method", paper_id="p1", tags=["x", "y", "x"]))
    assert sql.count(" AND ") == 4
    assert params == ["method", "p1", "x", "y"]


def test_build_filters_empty():
    assert build_filters(QueryOptions(query="attention")) == ("", [])


def test_full_text_match(ingested):
    results = ingested.retrieve(QueryOptions(query="GLUE"))
    assert [r.id for r in results] == ["2301.07041-result1"]
    assert results[0].paper_title == "Efficient Attention Mechanisms for Transformers"
    assert results[0].paper_authors == ["Smith, J.", "Doe, A."]


def test_full_text_no_match(ingested):
    assert ingested.retrieve(QueryOptions(query="convolution")) == []


def test_full_text_with_filters(ingested):
    results = ingested.retrieve(QueryOptions(query="attention", type=ItemType.METHOD))
    assert [r.id for r in results] == ["2301.07041-method1"]


def test_relevance_vs_structured_order(kb, store):
    kb.write_extraction("a", [_item(
        "a-1", "a",
        "attention appears once in this long sentence about convolution networks "
        "pooling layers residual blocks batch normalization and image classification",
        tags=["t"],
    )])
    kb.write_extraction("b", [_item("b-1", "b", "attention attention attention", tags=["t"])])
    store.ingest()

    ranked = store.retrieve(QueryOptions(query="attention"))
    assert [r.id for r in ranked] == ["b-1", "a-1"]

    structured = store.retrieve(QueryOptions(tags=["t"]))
    assert [r.id for r in structured] == ["a-1", "b-1"]


def test_structured_order_by_section_and_page(ingested):
    results = ingested.retrieve(QueryOptions(paper_id="2301.07041"))
    assert [r.id for r in results] == [
        "2301.07041-def1",     # Background p1
        "2301.07041-claim1",   # Method p2
        "2301.07041-method1",  # Method p3
        "2301.07041-result1",  # Results p5
    ]


def test_tags_are_conjunctive(kb, store):
    kb.write_extraction("p1", [
        _item("A", "p1", "claim with x", tags=["x"]),
        _item("B", "p1", "method with x and y", type="method", tags=["x", "y"]),
    ])
    store.ingest()

    assert [r.id for r in store.retrieve(QueryOptions(tags=["x", "y"]))] == ["B"]
    assert [r.id for r in store.retrieve(QueryOptions(tags=["x"]))] == ["A", "B"]
    assert [r.id for r in store.retrieve(QueryOptions(type="claim"))] == ["A"]
    assert store.retrieve(QueryOptions(tags=["x", "z"])) == []


def test_tag_filter_is_exact(ingested):
    assert ingested.retrieve(QueryOptions(tags=["atten"])) == []
    assert len(ingested.retrieve(QueryOptions(tags=["attention"]))) == 3


def test_filter_by_paper(kb, store):
    kb.write_extraction("p1")
    kb.write_extraction("p2")
    store.ingest()

    results = store.retrieve(QueryOptions(paper_id="p2"))
    assert len(results) == 4
    assert {r.paper_id for r in results} == {"p2"}


def test_default_max_results(kb):
    for pid in ("p1", "p2", "p3"):
        kb.write_extraction(pid)
    with KnowledgeStore(kb.config(max_results=5)) as store:
        store.ingest()
        assert store.max_results == 5
        assert len(store.retrieve(QueryOptions(tags=["attention"]))) == 5
        assert len(store.retrieve(QueryOptions(tags=["attention"], max_results=2))) == 2
        assert len(store.retrieve(QueryOptions(tags=["attention"], max_results=0))) == 5


def test_retrieve_on_empty_store(store):
    assert store.retrieve(QueryOptions(query="anything")) == []
    assert store.retrieve(QueryOptions(type="claim")) == []


def test_query_options_is_empty():
    assert QueryOptions().is_empty()
    assert QueryOptions(tags=[""]).is_empty()
    assert not QueryOptions(query="x").is_empty()
    assert not QueryOptions(type="result").is_empty()
    assert not QueryOptions(paper_id="p1").is_empty()


def test_invalid_fts_syntax_is_storage_error(ingested):
    with pytest.raises(StorageError):
        ingested.retrieve(QueryOptions(query='"unterminated'))


def test_cancelled_before_start(ingested):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(CancellationError):
        ingested.retrieve(QueryOptions(query="attention"), cancel_event=cancel)


def test_uncancelled_event_does_not_interfere(ingested):
    cancel = threading.Event()
    results = ingested.retrieve(QueryOptions(query="attention"), cancel_event=cancel)
    assert len(results) == 3
    # Progress handler is removed afterwards
    assert len(ingested.retrieve(QueryOptions(query="softmax"))) == 2
