"""
Merge partial result lists from several stages into one list keyed by id.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from .retriever import SearchResult


def merge(partials: Iterable[Iterable[SearchResult]]) -> List[SearchResult]:
    """
    Deduplicate results by id across partial lists.

    On collision the higher score wins; an exact tie keeps the entry seen
    first. Output follows first-seen order of ids, ranking happens later.
    """
    by_id: Dict[str, SearchResult] = {}
    for partial in partials:
        for r in partial:
            existing = by_id.get(r.id)
            if existing is None or r.score > existing.score:
                by_id[r.id] = r
    return list(by_id.values())


def merge_into(results: Dict[str, SearchResult], items: Iterable[SearchResult]) -> int:
    """Merge items into an id-keyed dict in place. Returns how many ids were new."""
    added = 0
    for r in items:
        existing = results.get(r.id)
        if existing is None:
            results[r.id] = r
            added += 1
        elif r.score > existing.score:
            results[r.id] = r
    return added
