"""
Scholarship statistics, bucketed by academic year.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from ..categories import Category
from ..ranker import Ordering, PeriodDescending
from ..retriever import SearchResult
from ..store import StructuredQuery, any_of, field_in, field_matches, scored
from .base import CoverageLookup, StageContext, Strategy, field_of, lower, text_of

YEAR_RE = re.compile(r"\b(\d{4})\b")
COUNT_RE = re.compile(r"\b(total|count|number|how\s+many|statistics?|sum|aggregate)\b", re.I)

_SCHOLARSHIP_MARKERS = r"scholarship|scholar|recipients?|beneficiar(y|ies)|grantees?|financial\s+aid"


def _years_clause(years: Sequence[str]):
    pattern = "|".join(years)
    return any_of(
        field_matches("text", rf"\b({pattern})\b"),
        field_matches("metadata.year", rf"^({pattern})$"),
        field_matches("metadata.academicYear", rf"\b({pattern})\b"),
    )


def _is_scholarship(record: Any) -> bool:
    return (
        "scholarship" in lower(record.section)
        or "scholarship" in field_of(record)
        or bool(re.search(r"scholarship|financial_aid", lower(record.type)))
        or bool(re.search(_SCHOLARSHIP_MARKERS, text_of(record)))
    )


def _has_year(record: Any, year: str) -> bool:
    meta = record.metadata
    return (
        str(meta.get("year") or "") == year
        or year in str(meta.get("academicYear") or "")
        or re.search(rf"\b{year}\b", record.text) is not None
    )


class ScholarshipStrategy(Strategy):
    category = Category.SCHOLARSHIP
    source = "scholarship"
    default_max_results = 30
    default_max_sections = 30

    def analyze(self, query: str) -> Dict[str, Any]:
        years: List[str] = []
        for y in YEAR_RE.findall(query):
            if y not in years:
                years.append(y)
        return {"years": years, "count": bool(COUNT_RE.search(query))}

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        years = ctx.facts.get("years") or []
        clauses = [
            field_matches("section", r"scholarship|students"),
            field_matches("text", _SCHOLARSHIP_MARKERS),
            field_matches("metadata.field", r"scholarship"),
            field_matches("metadata.category", r"scholarship"),
            field_matches("type", r"scholarship|financial_aid"),
            field_matches("category", r"scholarship"),
            field_in("keywords", ["scholarship", "scholarships", "scholars", "recipients", "students", "grantees"]),
        ]
        scoring = [
            scored(field_matches("section", r"scholarship"), 250),
            scored(field_matches("text", r"total\s+(number|count)|total\s+of|\btotal\b.*\b(students?|recipients?|scholars?)\b"), 200),
            scored(field_matches("type", r"scholarship|financial_aid"), 150),
            scored(field_in("keywords", ["scholarship"]), 120),
            scored(field_in("keywords", ["students"]), 100),
        ]
        if years:
            pattern = "|".join(years)
            clauses.append(_years_clause(years))
            scoring.append(scored(field_matches("text", rf"\b({pattern})\b"), 300))
            scoring.append(
                scored(
                    any_of(
                        field_matches("metadata.year", rf"^({pattern})$"),
                        field_matches("metadata.academicYear", rf"\b({pattern})\b"),
                    ),
                    180,
                )
            )
        return StructuredQuery(any_of=tuple(clauses), scoring=tuple(scoring))

    def vector_text(self, ctx: StageContext) -> str:
        years = " ".join(ctx.facts.get("years") or [])
        return f"{ctx.query} scholarship recipients students total number count statistics {years}".strip()

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        if not _is_scholarship(record):
            return False
        years = ctx.facts.get("years") or []
        if len(years) == 1:
            return _has_year(record, years[0])
        return True

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        text = text_of(record)
        years = ctx.facts.get("years") or []
        score = 0.0
        if "scholarship" in lower(record.section):
            score += 100
        if re.search(r"scholarship|financial_aid", lower(record.type)):
            score += 80
        if COUNT_RE.search(text):
            score += 70
        if any(str(record.metadata.get("year") or "") == y for y in years):
            score += 90
        if any(re.search(rf"\b{y}\b", text) for y in years):
            score += 80
        if "students" in text and "scholarship" in text:
            score += 60
        if "scholarship" in field_of(record):
            score += 50
        return score

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        if len(found) >= 10:
            return []
        years = ctx.facts.get("years") or []
        clauses = [
            any_of(
                field_matches("section", r"scholarship"),
                field_matches("metadata.field", r"scholarship"),
                field_matches("type", r"scholarship|financial_aid"),
                field_matches("text", r"scholarship"),
            )
        ]
        if years:
            clauses.append(_years_clause(years))

        def score(record: Any) -> float:
            if years and any(_has_year(record, y) for y in years):
                return 250
            return 200

        return [
            CoverageLookup(
                name="years" if years else "all",
                query=StructuredQuery(all_of=tuple(clauses)),
                score=score,
                limit=ctx.max_sections,
            )
        ]

    def ordering(self, ctx: StageContext) -> Optional[Ordering]:
        return PeriodDescending("metadata.year")
