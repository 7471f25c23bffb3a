"""
Ranking and bounded assembly of merged results.

Without an ordering policy results sort by descending score, then by the
store ingestion order, then by id, so equal scores always come back in the
same order. Categories whose answers have an inherent order (hymn verses,
timelines, scholarship years) pass an ordering policy instead.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

from .retriever import SearchResult

_YEAR_RE = re.compile(r"\d{4}")
_MISSING_INDEX = 999


def resolve(result: SearchResult, field: str) -> Any:
    """Value of a top-level attribute or a ``metadata.<key>`` path."""
    if field.startswith("metadata."):
        return result.metadata.get(field.split(".", 1)[1])
    return getattr(result, field, None)


def score_key(result: SearchResult) -> Tuple:
    return (-result.score, result.order, result.id)


def _index(result: SearchResult) -> float:
    value = result.metadata.get("index")
    try:
        return float(value)
    except (TypeError, ValueError):
        return _MISSING_INDEX


def _sortable(value: Any) -> Optional[Tuple[int, Any]]:
    """Comparable form of a year or date value; None when missing."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return (0, float(value))
    text = str(value)
    if re.fullmatch(r"\d{4}", text.strip()):
        return (0, float(text))
    if re.match(r"\d{4}-\d{2}-\d{2}", text):
        return (1, text[:10])
    m = _YEAR_RE.search(text)
    if m:
        return (0, float(m.group(0)))
    return None


class Ordering(Protocol):
    def key(self, result: SearchResult) -> Tuple:
        ...


@dataclass(frozen=True)
class StructuralOrder:
    """
    Fixed part order read from a field, e.g. hymn verses in singing order.

    A result's part is the first entry of ``sequence`` contained in the
    lowercased field value; longer part names are tried first so that
    "finalchorus" is not mistaken for "chorus". Unknown parts sort last.
    Within a part: ``metadata.index`` ascending, then score.
    """

    field: str
    sequence: Tuple[str, ...]

    def part_of(self, result: SearchResult) -> Optional[str]:
        value = str(resolve(result, self.field) or "").lower()
        if not value:
            return None
        for part in sorted(self.sequence, key=len, reverse=True):
            if part.lower() in value:
                return part
        return None

    def key(self, result: SearchResult) -> Tuple:
        part = self.part_of(result)
        rank = self.sequence.index(part) if part is not None else len(self.sequence)
        return (rank, _index(result)) + score_key(result)


@dataclass(frozen=True)
class ChronologicalOrder:
    """Order by a year/date field, oldest first unless newest_first. Missing values last."""

    key_field: str
    newest_first: bool = False

    def key(self, result: SearchResult) -> Tuple:
        value = _sortable(resolve(result, self.key_field))
        if value is None:
            return (1, 0, 0) + score_key(result)
        kind, v = value
        if self.newest_first:
            v = -v if kind == 0 else tuple(-ord(c) for c in v)
        return (0, kind, v) + score_key(result)


@dataclass(frozen=True)
class PeriodDescending(ChronologicalOrder):
    """Most recent period first, then score."""

    newest_first: bool = True


@dataclass(frozen=True)
class PriorityFirst:
    """Results satisfying ``predicate`` first, each group ordered by ``then``."""

    predicate: Callable[[SearchResult], bool]
    then: Optional[Ordering] = None

    def key(self, result: SearchResult) -> Tuple:
        inner = self.then.key(result) if self.then is not None else score_key(result)
        return (0 if self.predicate(result) else 1,) + inner


def rank(results: Sequence[SearchResult], ordering: Optional[Ordering] = None) -> List[SearchResult]:
    """Sort results by the ordering policy, or by score with stable tie-breaks."""
    key = ordering.key if ordering is not None else score_key
    return sorted(results, key=key)


def assemble(ranked: Sequence[SearchResult], max_sections: int) -> List[SearchResult]:
    """The first max_sections ranked results. Never re-sorts."""
    if max_sections <= 0:
        return []
    return list(ranked[:max_sections])
