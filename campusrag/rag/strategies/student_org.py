"""
Student council, publications and their officers.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from ..categories import Category
from ..retriever import SearchResult
from ..store import StructuredQuery, field_in, field_matches, scored
from .base import CoverageLookup, StageContext, Strategy, field_of, lower, text_of

USC_RE = re.compile(r"\b(usc|university\s+student\s+council|student\s+council)\b", re.I)
OFFICERS_RE = re.compile(
    r"\b(officers?|executives?|leaders?|members?|president|vice\s+president|secretary|treasurer|auditor|pio|business\s+manager)\b",
    re.I,
)
ANG_RE = re.compile(r"\b(ang\s+sidlakan|student\s+publication)\b", re.I)
CATALYST_RE = re.compile(r"\b(catalyst|yearbook)\b", re.I)

_OFFICER_TITLES = r"president|vice\s*president|secretary|treasurer|auditor|pio|business\s*manager"
_OFFICER_NAMES = r"mr\.|ms\.|hon\.|\b[A-Z][a-z]+\s+[A-Z]\.\s+[A-Z][a-z]+"


class StudentOrgStrategy(Strategy):
    category = Category.STUDENT_ORG
    source = "student_org"
    default_max_results = 15
    default_max_sections = 15

    def analyze(self, query: str) -> Dict[str, Any]:
        return {
            "usc": bool(USC_RE.search(query)),
            "officers": bool(OFFICERS_RE.search(query)),
            "ang": bool(ANG_RE.search(query)),
            "catalyst": bool(CATALYST_RE.search(query)),
        }

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        f = ctx.facts
        return StructuredQuery(
            any_of=(
                field_matches("section", r"studentOrganizations"),
                field_matches("text", r"usc|university student council|student council|ang sidlakan|catalyst"),
                field_matches("metadata.field", r"studentOrganizations|executives2025|usc"),
                field_matches("category", _OFFICER_TITLES),
                field_in("keywords", ["usc", "student", "council", "officers", "organization", "publication"]),
            ),
            scoring=(
                scored(field_matches("text", r"\busc\b|university student council"), 300 if f.get("usc") else 100),
                scored(field_matches("category", _OFFICER_TITLES), 280 if f.get("officers") else 150),
                scored(field_matches("metadata.field", r"executives2025"), 250),
                scored(field_matches("section", r"studentOrganizations"), 200),
                scored(field_matches("text", _OFFICER_NAMES, 0), 180),
                scored(field_matches("text", r"ang sidlakan"), 120 if f.get("ang") else 60),
                scored(field_matches("text", r"catalyst"), 120 if f.get("catalyst") else 60),
                scored(field_in("keywords", ["usc"]), 80),
                scored(field_in("keywords", ["student"]), 60),
            ),
        )

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        section, text = lower(record.section), text_of(record)
        return (
            "studentorganizations" in section
            or "executives2025" in field_of(record)
            or bool(re.search(r"\busc\b|student council|ang sidlakan|catalyst", text))
        )

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        text, category = text_of(record), lower(record.category)
        score = 0.0
        if re.search(r"\busc\b|university student council", text):
            score += 100
        if ctx.facts.get("officers") and re.search(_OFFICER_TITLES, text):
            score += 90
        if "executives2025" in field_of(record):
            score += 80
        if re.search(r"president|vice\s*president", category):
            score += 70
        if re.search(_OFFICER_NAMES, record.text):
            score += 60
        return score

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        if not ctx.facts.get("officers") or len(found) >= 7:
            return []
        return [
            CoverageLookup(
                name="officers",
                query=StructuredQuery(
                    all_of=(
                        field_matches("section", r"studentOrganizations"),
                        field_matches("metadata.field", r"executives2025"),
                    )
                ),
                score=200,
                limit=ctx.max_sections,
            )
        ]
