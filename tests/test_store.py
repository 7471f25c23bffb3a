"""
Tests for the in-memory stores, structured queries and snapshot loading.
"""

from __future__ import annotations

import datetime as dt
import json

import numpy as np
import pytest

from campusrag.rag import InMemoryKnowledgeStore, InMemoryScheduleStore, StructuredQuery, load_chunks, load_events
from campusrag.rag.errors import ProviderUnavailable
from campusrag.rag.store import all_of, any_of, field_in, field_matches, iter_tokens, scored
from fakes import HashingEmbedder, make_chunk, make_event, make_schedule, make_store


@pytest.fixture
def chunks():
    return [
        make_chunk("a", "Dean of FACET is Dr. Valdez", section="leadership", type="dean", keywords=["dean"]),
        make_chunk("b", "The university hymn lyrics", section="visionMission", metadata={"field": "identity.hymn.lyrics.verse1"}),
        make_chunk("c", "Admission requirements: Form 138", type="admission_requirements", category="returningStudents"),
    ]


def test_iter_tokens_drops_stopwords_and_short_words():
    assert list(iter_tokens("What is the Dean of FACET?")) == ["dean", "facet"]


def test_match_clause_on_metadata_and_collections(chunks):
    """Regex clauses read metadata paths; term clauses intersect keyword sets."""
    assert field_matches("metadata.field", r"identity\.hymn").matches(chunks[1])
    assert not field_matches("metadata.field", r"identity\.hymn").matches(chunks[0])
    assert field_in("keywords", ["dean", "deans"]).matches(chunks[0])
    assert field_in("category", ["returningstudents"]).matches(chunks[2])


def test_structured_query_accepts_and_scores(chunks):
    query = StructuredQuery(
        any_of=(field_matches("type", "dean"), field_matches("text", "requirements")),
        exclude=(field_matches("category", "returning"),),
        scoring=(scored(field_matches("section", "^leadership$"), 200), scored(field_in("keywords", ["dean"]), 80)),
    )
    assert query.accepts(chunks[0])
    assert not query.accepts(chunks[1])
    assert not query.accepts(chunks[2])
    assert query.relevance(chunks[0]) == 280


def test_restricted_adds_required_clause(chunks):
    base = StructuredQuery(any_of=(field_matches("text", "."),))
    narrowed = base.restricted(any_of(field_matches("type", "dean"), all_of(field_matches("text", "hymn"))))
    assert [c.id for c in chunks if narrowed.accepts(c)] == ["a", "b"]
    assert all(base.accepts(c) for c in chunks)


@pytest.mark.anyio
async def test_filtered_query_orders_by_relevance_then_ingestion(chunks):
    store = make_store(chunks)
    query = StructuredQuery(scoring=(scored(field_matches("text", "hymn|requirements"), 50),))
    hits = await store.filtered_query(query, limit=10)
    assert [h.record.id for h in hits] == ["b", "c", "a"]
    assert [h.relevance for h in hits] == [50, 50, 0]
    assert len(await store.filtered_query(query, limit=1)) == 1


@pytest.mark.anyio
async def test_vector_search_scales_similarity(chunks):
    embedder = HashingEmbedder()
    store = make_store(chunks, embedder)
    hits = await store.vector_search(embedder.vector("university hymn lyrics"), k=2)
    assert hits[0].record.id == "b"
    assert 0 < hits[0].relevance <= 100.0 + 1e-3
    assert len(hits) == 2


@pytest.mark.anyio
async def test_vector_search_without_embeddings_is_unavailable(chunks):
    store = InMemoryKnowledgeStore(chunks)
    assert not store.has_vectors
    with pytest.raises(ProviderUnavailable):
        await store.vector_search(np.ones(8, dtype=np.float32), k=3)


@pytest.mark.anyio
async def test_vector_search_dimension_mismatch(chunks):
    store = make_store(chunks)
    with pytest.raises(ProviderUnavailable):
        await store.vector_search(np.ones(3, dtype=np.float32), k=3)


@pytest.mark.anyio
async def test_keyword_query_prefers_phrase_matches(chunks):
    store = make_store(chunks)
    hits = await store.keyword_query(["admission", "requirements"], limit=5)
    assert hits[0].record.id == "c"
    assert all(h.record.id != "b" for h in hits)
    assert await store.keyword_query(["of", ""], limit=5) == []


@pytest.mark.anyio
async def test_schedule_date_window():
    events = [
        make_event("1", "Midterm Examination", dt.date(2025, 3, 10), category="Academic"),
        make_event("2", "Foundation Day", dt.date(2025, 4, 1), category="Institutional"),
        make_event(
            "3",
            "Enrollment",
            None,
            start_date=dt.date(2025, 2, 25),
            end_date=dt.date(2025, 3, 2),
            category="Academic",
        ),
    ]
    store = make_schedule(events)
    query = StructuredQuery(date_window=(dt.date(2025, 3, 1), dt.date(2025, 3, 31)))
    hits = await store.filtered_query(query, limit=10)
    assert [h.record.id for h in hits] == ["3", "1"]


def test_load_snapshots(tmp_path):
    chunks_file = tmp_path / "chunks.jsonl"
    chunks_file.write_text(
        "\n".join(
            json.dumps(o)
            for o in (
                {"id": "x", "section": "history", "text": "Founded in 1989", "keywords": ["History"]},
                {"id": "x", "section": "history", "text": "duplicate"},
                {"id": "y", "content": "Text from content", "metadata": {"year": 2018}},
            )
        )
        + "\n\n"
    )
    chunks = load_chunks(chunks_file)
    assert [c.id for c in chunks] == ["x", "y"]
    assert chunks[0].keywords == frozenset({"history"})
    assert chunks[1].text == "Text from content"
    assert chunks[1].order == 2

    events_file = tmp_path / "schedule.jsonl"
    events_file.write_text(
        json.dumps({"_id": "e1", "title": "Finals", "isoDate": "2025-05-20T00:00:00Z", "semester": "2nd"})
        + "\n"
        + json.dumps({"id": "e2", "title": "Break", "dateType": "date_range", "startDate": "2025-06-01", "endDate": "2025-06-10"})
    )
    events = load_events(events_file)
    assert events[0].date == dt.date(2025, 5, 20)
    assert events[0].semester == 2
    assert events[1].is_range and events[1].overlaps(dt.date(2025, 6, 5), dt.date(2025, 6, 30))


def test_missing_snapshot_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_chunks(tmp_path / "nope.jsonl")


def test_from_path_embeds_when_vectors_missing(tmp_path):
    path = tmp_path / "chunks.jsonl"
    path.write_text(json.dumps({"id": "a", "text": "campus library hours"}) + "\n")
    store = InMemoryKnowledgeStore.from_path(path, HashingEmbedder())
    assert len(store) == 1
    assert store.has_vectors
    assert len(InMemoryScheduleStore([])) == 0


@pytest.mark.anyio
async def test_schedule_from_path_embeds_events(tmp_path):
    path = tmp_path / "schedule.jsonl"
    path.write_text(json.dumps({"id": "e1", "title": "Midterm Examination", "isoDate": "2025-03-10"}) + "\n")
    embedder = HashingEmbedder()
    store = InMemoryScheduleStore.from_path(path, embedder)
    hits = await store.vector_search(embedder.vector("midterm examination"), k=1)
    assert hits[0].record.id == "e1"
    assert hits[0].relevance == pytest.approx(100.0, abs=1e-3)
