"""
Calendar events, exam schedules and announcements.

Schedule queries have no structured chunk lookup: the vector stage searches
the ScheduleStore, the keyword stage looks for calendar text among knowledge
chunks, and the coverage step is a date-window lookup over events.
"""

from __future__ import annotations

import calendar
import datetime as dt
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..categories import Category
from ..classifier import SCHEDULE_QUESTION_RE
from ..errors import ProviderUnavailable
from ..ranker import ChronologicalOrder, Ordering, PriorityFirst
from ..retriever import SearchResult
from ..store import StructuredQuery, any_of, field_in, field_matches, iter_tokens
from .base import CoverageLookup, StageContext, Strategy, vector_score

EXAM_TYPES = {
    "prelim": re.compile(r"\b(prelims?|preliminary|preliminaries)\b", re.I),
    "midterm": re.compile(r"\b(midterms?|mid-terms?)\b", re.I),
    "final": re.compile(r"\b(finals?)\b", re.I),
}
EXAM_RE = re.compile(r"\b(exams?|examinations?|tests?)\b", re.I)
_SCHEDULE_WORD_RE = re.compile(r"\b(schedule|schedules|date|dates|when|calendar)\b", re.I)
_ANY_EXAM_TITLE = r"\b(prelim|preliminary|midterm|final|exam|examination)\b"

MONTHS = {name.lower(): i for i, name in enumerate(calendar.month_name) if name}
MONTHS.update({name.lower(): i for i, name in enumerate(calendar.month_abbr) if name})
MONTH_RE = re.compile(r"\b(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")\b", re.I)
YEAR_RE = re.compile(r"\b(20\d{2})\b")
SEMESTER_RES = (
    (1, re.compile(r"\b(1st|first)\s+sem(ester)?\b|\bsemester\s+1\b", re.I)),
    (2, re.compile(r"\b(2nd|second)\s+sem(ester)?\b|\bsemester\s+2\b", re.I)),
    (3, re.compile(r"\b(off|summer)\s+sem(ester)?\b", re.I)),
)
_DATE_ORIENTED_RE = re.compile(r"\b(when|date|dates|upcoming|next|calendar|schedule|deadline)\b", re.I)

_GENERIC_WORDS = {
    "schedule", "schedules", "event", "events", "date", "dates", "calendar", "upcoming",
    "coming", "next", "semester", "sem", "exam", "exams", "examination", "announcement",
    "announcements", "week", "month", "year", "day", "days", "time", "will", "there",
    "1st", "2nd", "first", "second", "any", "prelims", "midterms", "finals", "preliminary",
}


def month_window(year: int, month: int) -> Tuple[dt.date, dt.date]:
    return dt.date(year, month, 1), dt.date(year, month, calendar.monthrange(year, month)[1])


def date_window(facts: Dict[str, Any], today: dt.date) -> Tuple[dt.date, dt.date]:
    """Inclusive date range an event lookup should cover."""
    month, year = facts.get("month"), facts.get("year")
    if month and year:
        return month_window(year, month)
    if year:
        return dt.date(year, 1, 1), dt.date(year, 12, 31)
    if month:
        return month_window(today.year, month)
    return today - dt.timedelta(days=30), today + dt.timedelta(days=365)


class ScheduleStrategy(Strategy):
    category = Category.SCHEDULE
    source = "schedule"
    default_max_results = 30
    default_max_sections = 30
    uses_structured = False

    def analyze(self, query: str) -> Dict[str, Any]:
        hits = {name: bool(rx.search(query)) for name, rx in EXAM_TYPES.items()}
        exam = bool(EXAM_RE.search(query))
        # "final" alone is too common a word to mean the final exams
        exam_context = exam or bool(_SCHEDULE_WORD_RE.search(query)) or sum(hits.values()) > 1
        exam_types = [name for name, hit in hits.items() if hit and exam_context]

        month = MONTH_RE.search(query)
        year = YEAR_RE.search(query)
        semester = next((n for n, rx in SEMESTER_RES if rx.search(query)), None)
        content = [
            t
            for t in iter_tokens(query)
            if t not in _GENERIC_WORDS and t not in MONTHS and not YEAR_RE.fullmatch(t) and t not in EXAM_TYPES
        ]
        return {
            "exam_types": exam_types,
            "exam": exam or bool(exam_types),
            "month": MONTHS[month.group(0).lower()] if month else None,
            "year": int(year.group(0)) if year else None,
            "semester": semester,
            "content": content,
            "date_oriented": bool(SCHEDULE_QUESTION_RE.search(query) or _DATE_ORIENTED_RE.search(query) or month or year),
        }

    def _title_matches_type(self, title: str, ctx: StageContext) -> bool:
        return any(EXAM_TYPES[t].search(title) for t in ctx.facts.get("exam_types") or [])

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        title = getattr(record, "title", "") or ""
        if self._title_matches_type(title, ctx):
            return 100.0
        if ctx.facts.get("exam_types"):
            return 50.0 if EXAM_RE.search(title) else 0.0
        if ctx.facts.get("exam") and re.search(_ANY_EXAM_TITLE, title, re.I):
            return 30.0
        return 0.0

    async def vector_stage(self, ctx: StageContext) -> List[SearchResult]:
        if ctx.schedule is None:
            raise ProviderUnavailable("schedule_store", "no schedule store configured")
        vec = await ctx.embedder.embed(self.vector_text(ctx))
        hits = await ctx.schedule.vector_search(vec, ctx.max_results * 2)
        return [
            SearchResult.from_event(
                h.record, vector_score(h.relevance) + self.vector_boost(h.record, ctx), f"{self.source}_vector"
            )
            for h in hits
        ]

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        f = ctx.facts
        exam_types = f.get("exam_types") or []
        if len(found) >= 5 and not exam_types:
            return []

        clauses = [
            any_of(
                field_in("category", ["institutional", "academic"]),
                field_matches("type", r"^calendar_event$"),
                field_matches("category", r"^$"),
            )
        ]
        if f.get("semester"):
            clauses.append(field_in("semester", [f["semester"]]))
        if exam_types:
            clauses.append(field_matches("title", "|".join(EXAM_TYPES[t].pattern for t in exam_types)))
        elif f.get("exam"):
            clauses.append(field_matches("title", _ANY_EXAM_TITLE))
        elif f.get("content"):
            words = "|".join(re.escape(w) for w in f["content"])
            clauses.append(any_of(field_matches("title", rf"\b({words})"), field_matches("description", rf"\b({words})")))

        def score(event: Any) -> float:
            if self._title_matches_type(event.title, ctx):
                return 150
            if f.get("exam") and re.search(_ANY_EXAM_TITLE, event.title, re.I):
                return 80
            return 50

        return [
            CoverageLookup(
                name="date_window",
                query=StructuredQuery(
                    all_of=tuple(clauses),
                    exclude=(field_matches("category", r"^(announcement|news|event)$"),),
                    date_window=date_window(f, ctx.today),
                ),
                score=score,
                limit=ctx.max_sections,
                target="schedule",
            )
        ]

    def ordering(self, ctx: StageContext) -> Optional[Ordering]:
        then = ChronologicalOrder("metadata.date") if ctx.facts.get("date_oriented") else None
        exam_types = ctx.facts.get("exam_types") or []
        if not exam_types:
            return then

        def requested(result: SearchResult) -> bool:
            title = str(result.metadata.get("title") or result.text)
            return any(EXAM_TYPES[t].search(title) for t in exam_types)

        return PriorityFirst(requested, then)

