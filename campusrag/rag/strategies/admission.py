"""
Admission and enrollment requirements, one block per student category.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence

from ..categories import Category
from ..retriever import SearchResult
from ..store import StructuredQuery, field_in, field_matches, scored
from .base import CoverageLookup, StageContext, Strategy, field_of, lower, text_of

STUDENT_CATEGORIES = (
    "returningStudents",
    "continuingStudents",
    "transferringStudents",
    "secondDegreeStudents",
    "incomingFirstYearStudents",
)

_REQUIREMENT_TEXT = (
    r"admission.*requirements?|requirements?.*admission|enrollment.*requirements?|"
    r"returning.*students?|continuing.*students?|transferring.*students?|"
    r"second.*degree.*students?|incoming.*first.*year|SUAST.*Examination|"
    r"Form 138|Student's Profile Form|Good Moral Character|PSA.*Birth.*Certificate|"
    r"Drug.*Test|Medical.*certificate"
)
_REQUIREMENT_MARKERS = (
    "requirements:",
    "admission requirements",
    "enrollment requirements",
    "suast",
    "form 138",
    "transcript of records",
)


def _spaced(name: str) -> str:
    """``returningStudents`` -> ``returning students``."""
    return re.sub(r"(?<=[a-z])(?=[A-Z])", " ", name).lower()


def _is_requirement_chunk(record: Any) -> bool:
    type_, category, text = lower(record.type), lower(record.category), text_of(record)
    if type_ == "admission_requirements" or "admissionenrollmentrequirements" in field_of(record):
        return True
    if any(c.lower() in category for c in STUDENT_CATEGORIES):
        return True
    return any(m in text for m in _REQUIREMENT_MARKERS)


class AdmissionStrategy(Strategy):
    category = Category.ADMISSION_REQUIREMENTS
    source = "admission"
    default_max_results = 15
    default_max_sections = 15

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        categories = "|".join(STUDENT_CATEGORIES) + "|admission_requirements"
        return StructuredQuery(
            any_of=(
                field_matches("type", r"^admission_requirements$"),
                field_matches("category", rf"^({categories})$"),
                field_matches("text", _REQUIREMENT_TEXT),
                field_in(
                    "keywords",
                    ["admission", "requirements", "returning", "continuing", "transferring", "incoming", "students", "suast", "form 138"],
                ),
                field_matches("metadata.field", r"admissionEnrollmentRequirements2025.*requirements"),
            ),
            scoring=(
                scored(field_matches("type", r"^admission_requirements$"), 300),
                scored(field_matches("category", rf"^({categories})$"), 250),
                scored(field_matches("text", r"Form 138|SUAST|PSA.*Birth|Good Moral|Drug.*Test|Medical.*certificate"), 200),
                scored(field_matches("text", r"requirements?.*:\s*\d+\.|Requirements?:", 0), 150),
                scored(field_matches("metadata.field", r"admissionEnrollmentRequirements2025"), 100),
                scored(field_in("keywords", ["requirements"]), 80),
                scored(field_in("keywords", ["admission"]), 60),
            ),
        )

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        return _is_requirement_chunk(record)

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        text = text_of(record)
        score = 0.0
        if lower(record.type) == "admission_requirements":
            score += 100
        if any(c.lower() in lower(record.category) for c in STUDENT_CATEGORIES):
            score += 80
        if "requirements:" in text:
            score += 50
        if "suast" in text or "form 138" in text:
            score += 30
        return score

    def keep_keyword(self, record: Any, ctx: StageContext) -> bool:
        return _is_requirement_chunk(record)

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        lookups = []
        for name in STUDENT_CATEGORIES:
            key, spaced = name.lower(), _spaced(name)
            if any(key in lower(r.category) or spaced in text_of(r) for r in found):
                continue
            lookups.append(
                CoverageLookup(
                    name=name,
                    query=StructuredQuery(all_of=(field_matches("category", rf"^{name}$"),)),
                    score=170,
                    limit=5,
                )
            )
        return lookups
