"""
Tests for merging, ranking policies and bounded assembly.
"""

from __future__ import annotations

from campusrag.rag import ChronologicalOrder, PeriodDescending, PriorityFirst, SearchResult, StructuralOrder, assemble, merge, rank
from campusrag.rag.merger import merge_into


def _r(id: str, score: float, order: int = 0, **metadata) -> SearchResult:
    return SearchResult(id=id, section="s", type="t", text=id, score=score, metadata=metadata, order=order)


def test_merge_keeps_higher_score_and_first_seen_order():
    merged = merge([[_r("a", 10), _r("b", 50)], [_r("a", 80), _r("c", 5)]])
    assert [r.id for r in merged] == ["a", "b", "c"]
    assert merged[0].score == 80


def test_merge_tie_keeps_first_seen():
    first = _r("a", 10)
    first.source_tag = "structured"
    second = _r("a", 10)
    second.source_tag = "vector"
    assert merge([[first], [second]])[0].source_tag == "structured"


def test_merge_into_counts_new_ids():
    results = {}
    assert merge_into(results, [_r("a", 1), _r("b", 2)]) == 2
    assert merge_into(results, [_r("a", 5), _r("c", 1)]) == 1
    assert results["a"].score == 5


def test_rank_by_score_with_stable_tie_breaks():
    ranked = rank([_r("z", 10, order=2), _r("y", 10, order=1), _r("x", 30, order=9), _r("w", 10, order=1)])
    assert [r.id for r in ranked] == ["x", "w", "y", "z"]


def test_structural_order_ignores_score():
    """Hymn parts come back in singing order whatever their scores."""
    parts = [
        _r("final", 900, field="identity.hymn.lyrics.finalChorus"),
        _r("v2", 10, field="identity.hymn.lyrics.verse2"),
        _r("title", 999, field="identity.hymn.title"),
        _r("chorus", 1, field="identity.hymn.lyrics.chorus"),
        _r("v1", 5, field="identity.hymn.lyrics.verse1"),
    ]
    order = StructuralOrder("metadata.field", ("verse1", "chorus", "verse2", "finalchorus"))
    assert [r.id for r in rank(parts, order)] == ["v1", "chorus", "v2", "final", "title"]


def test_structural_order_uses_index_within_part():
    order = StructuralOrder("metadata.field", ("verse1",))
    ranked = rank([_r("b", 100, field="verse1", index=2), _r("a", 1, field="verse1", index=1)], order)
    assert [r.id for r in ranked] == ["a", "b"]


def test_chronological_order_missing_last():
    items = [_r("none", 99), _r("2018", 1, year=2018), _r("1989", 1, year="1989"), _r("1997", 1, year="SY 1997-1998")]
    assert [r.id for r in rank(items, ChronologicalOrder("metadata.year"))] == ["1989", "1997", "2018", "none"]


def test_period_descending():
    items = [_r("2021", 10, year=2021), _r("2023", 1, year=2023), _r("2022", 5, year=2022)]
    assert [r.id for r in rank(items, PeriodDescending("metadata.year"))] == ["2023", "2022", "2021"]


def test_chronological_dates():
    items = [_r("b", 1, date="2025-05-01"), _r("a", 1, date="2025-03-01")]
    assert [r.id for r in rank(items, ChronologicalOrder("metadata.date"))] == ["a", "b"]


def test_priority_first():
    items = [_r("other", 100), _r("midterm", 1), _r("midterm2", 2)]
    ordering = PriorityFirst(lambda r: r.id.startswith("midterm"))
    assert [r.id for r in rank(items, ordering)] == ["midterm2", "midterm", "other"]


def test_assemble_bounds_without_resorting():
    ranked = [_r("a", 1), _r("b", 99), _r("c", 50)]
    assert [r.id for r in assemble(ranked, 2)] == ["a", "b"]
    assert assemble(ranked, 0) == []
    assert assemble(ranked, -3) == []
    assert len(assemble(ranked, 10)) == 3
