"""
Tests for SearchService: end-to-end retrieval over fake stores and embedders.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging

import pytest

from campusrag.rag import Category, SearchOptions, SearchService, StrategyDispatcher, TypoCorrector, ValidationError
from campusrag.rag.store import StoreHit
from fakes import DEAN_CHUNKS, CannedStore, DownEmbedder, DownStore, HashingEmbedder, make_chunk, make_event, make_schedule


class SlowEmbedder(HashingEmbedder):
    """Embedder that outlives any reasonable stage timeout."""

    async def embed(self, text: str):
        await asyncio.sleep(1.0)
        return self.vector(text)


@pytest.fixture
def service(knowledge, embedder) -> SearchService:
    return SearchService(StrategyDispatcher(knowledge, embedder))


def _ids(outcome) -> list:
    return [r.id for r in outcome.results]


@pytest.mark.anyio
async def test_hymn_parts_in_singing_order(service):
    """Hymn lyrics come back verse 1, chorus, verse 2, final chorus regardless of score."""
    outcome = await service.search("Sing the university hymn")
    assert outcome.category == Category.HYMN
    assert _ids(outcome)[:4] == ["hymn-v1", "hymn-chorus", "hymn-v2", "hymn-final"]
    assert not outcome.degraded


@pytest.mark.anyio
async def test_all_deans_listed_through_coverage(service):
    """A tiny candidate pool still lists every faculty's dean."""
    outcome = await service.search("Who are the deans?", SearchOptions(max_results=1))
    assert outcome.category == Category.DEANS
    assert {c.id for c in DEAN_CHUNKS} <= set(_ids(outcome))


@pytest.mark.anyio
async def test_single_dean_ranks_first(service):
    outcome = await service.search("Who is the dean of FACET?")
    assert outcome.results[0].id == "dean-facet"


@pytest.mark.anyio
async def test_history_is_chronological_without_heritage(service):
    outcome = await service.search("history of the university", SearchOptions(query_type=Category.HISTORY))
    ids = _ids(outcome)
    assert ids[:2] == ["hist-1989", "hist-2018"]
    assert "hist-heritage" not in ids


@pytest.mark.anyio
async def test_general_query_finds_generic_chunks(service):
    outcome = await service.search("Where is the library?")
    assert outcome.category == Category.GENERAL
    assert "campus-library" in _ids(outcome)
    assert outcome.fallback_used is False


@pytest.mark.anyio
async def test_empty_category_falls_back_to_general(service):
    """A forced category with nothing to offer falls back to general retrieval."""
    outcome = await service.search(
        "library opening times",
        SearchOptions(query_type=Category.ADMISSION_REQUIREMENTS),
    )
    assert outcome.category == Category.ADMISSION_REQUIREMENTS
    assert outcome.fallback_used is True
    assert "campus-library" in _ids(outcome)


@pytest.mark.anyio
async def test_full_outage_returns_empty_degraded():
    """Every provider down: no exception, no results, degraded."""
    service = SearchService(StrategyDispatcher(DownStore(), DownEmbedder()))
    outcome = await service.search("Who are the deans?")
    assert outcome.results == []
    assert outcome.degraded is True
    assert "deans.structured" in outcome.failed_stages
    assert any(s.startswith("general.") for s in outcome.failed_stages)


@pytest.mark.anyio
async def test_embedder_down_degrades_but_answers(knowledge):
    service = SearchService(StrategyDispatcher(knowledge, DownEmbedder()))
    outcome = await service.search("Sing the university hymn")
    assert outcome.degraded is True
    assert "hymn.vector" in outcome.failed_stages
    assert _ids(outcome)[:4] == ["hymn-v1", "hymn-chorus", "hymn-v2", "hymn-final"]


@pytest.mark.anyio
async def test_slow_stage_times_out(knowledge):
    dispatcher = StrategyDispatcher(knowledge, SlowEmbedder(), stage_timeout=0.05)
    outcome = await SearchService(dispatcher).search("Who is the dean of FACET?")
    assert "deans.vector" in outcome.failed_stages
    assert outcome.results[0].id == "dean-facet"


@pytest.mark.anyio
async def test_search_is_deterministic(service):
    first = await service.search("Who are the deans?")
    second = await service.search("Who are the deans?")
    assert [(r.id, r.score) for r in first.results] == [(r.id, r.score) for r in second.results]


@pytest.mark.anyio
@pytest.mark.parametrize("category", list(Category))
async def test_results_bounded_and_unique(service, category):
    """Every category honours max_sections and never repeats a chunk."""
    outcome = await service.search(
        "university history dean hymn requirements",
        SearchOptions(max_sections=3, query_type=category),
    )
    ids = _ids(outcome)
    assert len(ids) <= 3
    assert len(ids) == len(set(ids))


@pytest.mark.anyio
async def test_query_type_accepts_names(service):
    outcome = await service.search("Sing the university hymn", SearchOptions(query_type="vision"))
    assert outcome.category == Category.VISION_MISSION


@pytest.mark.anyio
@pytest.mark.parametrize(
    "query, options",
    [
        ("", None),
        ("   ", None),
        ("x" * 501, None),
        ("dean", SearchOptions(max_sections=0)),
        ("dean", SearchOptions(max_results=-1)),
        ("dean", SearchOptions(max_results=True)),
        ("dean", SearchOptions(query_type="bogus")),
        ("dean", SearchOptions(query_type=7)),
    ],
)
async def test_invalid_input_raises(service, query, options):
    with pytest.raises(ValidationError):
        await service.search(query, options)


@pytest.mark.anyio
async def test_typo_correction_applied(knowledge, embedder):
    service = SearchService(StrategyDispatcher(knowledge, embedder), typo_corrector=TypoCorrector())
    outcome = await service.search("Who are the deens?")
    assert outcome.had_corrections is True
    assert outcome.corrected_query == "Who are the deans?"
    assert outcome.category == Category.DEANS


@pytest.mark.anyio
async def test_schedule_exam_events_first(knowledge, embedder):
    """Requested exam types come first, then events by date."""
    today = dt.date.today()
    schedule = make_schedule(
        [
            make_event("1", "Foundation Day", today + dt.timedelta(days=5), category="Institutional"),
            make_event("2", "Final Examination", today + dt.timedelta(days=40), category="Academic"),
            make_event("3", "Midterm Examination", today + dt.timedelta(days=20), category="Academic"),
        ],
        embedder,
    )
    service = SearchService(StrategyDispatcher(knowledge, embedder, schedule=schedule))
    outcome = await service.search("When is the midterm exam?")
    assert outcome.category == Category.SCHEDULE
    assert outcome.results[0].metadata["title"] == "Midterm Examination"
    assert outcome.results[0].id == "schedule-3"


@pytest.mark.anyio
async def test_search_emits_telemetry(service, caplog):
    with caplog.at_level(logging.INFO, logger="campusrag.rag.service"):
        await service.search("Sing the university hymn")
    records = [r for r in caplog.records if r.getMessage() == "search.completed"]
    assert len(records) == 1
    payload = records[0].telemetry
    assert payload["category"] == "hymn"
    assert payload["fallback_used"] is False
    assert payload["result_count"] > 0


class _BrokenFilter(logging.Filter):
    def filter(self, record):
        raise RuntimeError("telemetry sink down")


@pytest.mark.anyio
async def test_broken_telemetry_does_not_break_search(service):
    log = logging.getLogger("campusrag.rag.service")
    broken = _BrokenFilter()
    level = log.level
    log.setLevel(logging.INFO)
    log.addFilter(broken)
    try:
        outcome = await service.search("Sing the university hymn")
    finally:
        log.removeFilter(broken)
        log.setLevel(level)
    assert outcome.results


@pytest.mark.anyio
async def test_keyword_hits_rank_below_weak_vector_hits(embedder):
    """A strong keyword match still ranks under a barely similar vector match."""
    store = CannedStore(
        vector_hits=[StoreHit(make_chunk("vec-hit", "campus shuttle stops"), 20.0)],
        keyword_hits=[
            StoreHit(make_chunk("kw-hit", "shuttle timetable"), 60.0),
            StoreHit(make_chunk("vec-hit", "campus shuttle stops"), 1000.0),
        ],
    )
    outcome = await SearchService(StrategyDispatcher(store, embedder)).search("Where does the shuttle stop?")
    assert outcome.category == Category.GENERAL
    assert _ids(outcome) == ["vec-hit", "kw-hit"]
    vec, kw = outcome.results
    assert vec.source_tag == "general_vector"
    assert kw.score < vec.score


class _StaggeredDownStore(DownStore):
    """Vector lookups fail late, keyword lookups fail at once."""

    async def vector_search(self, vector, k):
        await asyncio.sleep(0.05)
        return await super().vector_search(vector, k)


@pytest.mark.anyio
async def test_failed_stages_follow_declaration_order(embedder):
    service = SearchService(StrategyDispatcher(_StaggeredDownStore(), embedder))
    outcome = await service.search("Where does the shuttle stop?")
    assert outcome.failed_stages[:2] == ["general.vector", "general.keyword"]
