"""
Result types shared by every retrieval stage, plus the retriever interface.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .categories import Category
from .index import ChunkRecord, ScheduleEvent

SCHEDULE_SECTION = "schedule_events"

_SEMESTER_LABELS = {1: "1st Semester", 2: "2nd Semester", 3: "Off Semester"}


@dataclass
class SearchResult:
    """One evidence item. Produced fresh for every query, never persisted."""

    id: str
    section: str
    type: str
    text: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)
    keywords: List[str] = field(default_factory=list)
    category: str = ""
    source_tag: str = ""
    order: int = 0

    @classmethod
    def from_chunk(cls, chunk: ChunkRecord, score: float, source_tag: str) -> "SearchResult":
        return cls(
            id=chunk.id,
            section=chunk.section,
            type=chunk.type,
            text=chunk.text,
            score=max(0.0, float(score)),
            metadata=dict(chunk.metadata),
            keywords=sorted(chunk.keywords),
            category=chunk.category,
            source_tag=source_tag,
            order=chunk.order,
        )

    @classmethod
    def from_event(cls, event: ScheduleEvent, score: float, source_tag: str) -> "SearchResult":
        keywords = sorted(
            {w for w in event.title.lower().split() if len(w) > 3}
            | ({event.category.lower()} if event.category else set())
        )
        return cls(
            id=f"schedule-{event.id}",
            section=SCHEDULE_SECTION,
            type=event.type or ("event" if event.category == "Event" else "announcement"),
            text=format_event_text(event),
            score=max(0.0, float(score)),
            metadata={
                "title": event.title,
                "date": event.date.isoformat() if event.date else None,
                "category": event.category,
                "semester": event.semester,
                "dateType": "date_range" if event.is_range else "date",
                "startDate": event.start_date.isoformat() if event.start_date else None,
                "endDate": event.end_date.isoformat() if event.end_date else None,
                "time": event.time,
                "source": event.source,
            },
            keywords=keywords,
            category=event.category or "General",
            source_tag=source_tag,
            order=event.order,
        )

    def with_score(self, score: float, source_tag: str | None = None) -> "SearchResult":
        return dataclasses.replace(
            self,
            score=max(0.0, float(score)),
            source_tag=source_tag if source_tag is not None else self.source_tag,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "section": self.section,
            "type": self.type,
            "text": self.text,
            "score": self.score,
            "metadata": self.metadata,
            "keywords": self.keywords,
            "category": self.category,
            "source_tag": self.source_tag,
        }


def _format_date(value: dt.date) -> str:
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_event_text(event: ScheduleEvent) -> str:
    """Render an event as a single evidence paragraph."""
    parts = [f"{event.title}."]
    if event.description:
        parts.append(f"{event.description}.")
    parts.append(f"Date: {_format_date(event.date) if event.date else 'Date TBD'}.")
    if event.time and event.time != "All Day":
        parts.append(f"Time: {event.time}.")
    if event.category:
        parts.append(f"Category: {event.category}.")
    if event.semester in _SEMESTER_LABELS:
        parts.append(f"Semester: {_SEMESTER_LABELS[event.semester]}.")
    if event.is_range:
        parts.append(
            f"Date Range: {_format_date(event.start_date)} to {_format_date(event.end_date)}."  # type: ignore[arg-type]
        )
    return " ".join(parts)


@dataclass
class SearchOptions:
    """
    Caller options for a single search.

    ``max_results`` bounds each stage's candidate pool and ``max_sections``
    bounds the returned list. Left as None, the handling strategy's own
    defaults apply.
    """

    max_results: Optional[int] = None
    max_sections: Optional[int] = None
    query_type: Optional[Category] = None


@dataclass
class StrategyRun:
    """Everything a strategy produced for one query, before ranking."""

    results: List[SearchResult] = field(default_factory=list)
    stage_counts: Dict[str, int] = field(default_factory=dict)
    stage_timings: Dict[str, float] = field(default_factory=dict)
    failed_stages: List[str] = field(default_factory=list)
    attempted_stages: List[str] = field(default_factory=list)
    category: Optional[Category] = None
    ordering: Any = None
    max_sections: int = 10

    @property
    def all_failed(self) -> bool:
        return bool(self.attempted_stages) and len(self.failed_stages) >= len(self.attempted_stages)

    @property
    def degraded(self) -> bool:
        return bool(self.failed_stages)


@dataclass
class SearchOutcome:
    """Return value of SearchService.search."""

    query: str
    results: List[SearchResult]
    category: Category
    corrected_query: str
    had_corrections: bool = False
    degraded: bool = False
    fallback_used: bool = False
    failed_stages: List[str] = field(default_factory=list)
    stage_timings: Dict[str, float] = field(default_factory=dict)


class Retriever(Protocol):
    """Protocol for retrieval implementations."""

    async def search(self, query: str, options: SearchOptions | None = None) -> SearchOutcome:
        """
        Search for evidence matching the query.

        Args:
            query: User query string
            options: Result bounds and optional category override

        Returns:
            SearchOutcome whose results are ranked and bounded by max_sections
        """
        ...
