"""
University leadership (president, vice presidents, directors) and office heads.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from ..categories import Category
from ..classifier import OFFICE_ACRONYMS
from ..retriever import SearchResult
from ..store import StructuredQuery, all_of, any_of, field_in, field_matches, scored
from .base import CoverageLookup, StageContext, Strategy, lower, recency, text_of

VP_RE = re.compile(r"\b(vice\s+presidents?|vps?)\b", re.I)
PRESIDENT_RE = re.compile(r"\b(president|roy.*ponce|dr\.?\s*roy)\b", re.I)

PRESIDENT_PROFILE_QUERY = (
    "Dr. Roy G. Ponce President of DOrSU education degrees expertise achievements "
    "University of Melbourne UNESCO museum biodiversity conservation research"
)

_ROY_RE = r"roy.*g\.?\s*ponce|dr\.?\s*roy.*g\.?\s*ponce|roy.*ponce"
_OFFICE_SECTIONS_RE = r"additionalofficesandcenters|detailedofficeservices|offices$"
_STUDENT_COUNCIL_TEXT = r"university student council|usc.*vice president|student.*vice president"
_ORG_STRUCTURE = r"organizationalStructure.*DOrSUOfficials2025"


def _orphan_president_office(record: Any) -> bool:
    """Mentions the Office of the President without naming the president."""
    text = text_of(record)
    return "office of the president" in text and "dr. roy" not in text and "roy ponce" not in text


class LeadershipStrategy(Strategy):
    category = Category.LEADERSHIP
    source = "leadership"
    default_max_results = 50
    default_max_sections = 50

    def analyze(self, query: str) -> Dict[str, Any]:
        vp = bool(VP_RE.search(query))
        # "vice president" also contains "president"
        president = not vp and bool(PRESIDENT_RE.search(query))
        return {"president": president, "vp": vp}

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        if ctx.facts.get("president"):
            return StructuredQuery(
                any_of=(
                    field_matches("section", r"^leadership$"),
                    field_matches("section", r"^organizationalStructure/DOrSUOfficials2025$"),
                    field_matches("type", r"^president$"),
                    field_matches("category", r"^president$"),
                    field_matches("text", _ROY_RE),
                    field_in("keywords", ["president", "roy ponce", "dr. roy", "roy g. ponce", "leadership"]),
                    field_matches("metadata.name", r"roy.*ponce"),
                ),
                exclude=(field_matches("section", _OFFICE_SECTIONS_RE),),
                scoring=(
                    scored(all_of(field_matches("section", r"^leadership$"), field_matches("type", r"^president$")), 300),
                    scored(field_matches("text", r"roy.*g\.?\s*ponce|dr\.?\s*roy.*g\.?\s*ponce"), 250),
                    scored(field_matches("section", r"^leadership$"), 200),
                    scored(field_matches("type", r"^president$"), 150),
                    scored(field_in("keywords", ["president"]), 100),
                    scored(field_matches("text", r"education|expertise|achievement|degree|university.*melbourne|unesco|museum"), 80),
                ),
            )
        if ctx.facts.get("vp"):
            return StructuredQuery(
                any_of=(
                    field_matches("section", _ORG_STRUCTURE),
                    field_matches("section", r"^leadership$"),
                    field_matches("type", r"vice_president|vicePresidents|vice president"),
                    field_matches("category", r"vice_president|vice president"),
                    field_matches(
                        "text",
                        r"VP for|vice president for|administration and finance|research.*innovation.*extension|"
                        r"academic affairs|planning.*quality assurance",
                    ),
                ),
                exclude=(
                    field_matches("section", r"studentOrganizations|usc|ang.*sidlakan|catalyst"),
                    field_matches("text", _STUDENT_COUNCIL_TEXT),
                ),
                scoring=(
                    scored(field_matches("section", _ORG_STRUCTURE), 300),
                    scored(field_matches("text", r"VP for|vice president for"), 250),
                    scored(field_matches("text", r"vice presidents?"), 200),
                    scored(field_matches("section", r"^leadership$"), 150),
                ),
            )
        return StructuredQuery(
            any_of=(
                field_matches("section", r"^leadership$"),
                field_matches("section", r"organizationalStructure"),
                field_matches("type", r"president|vice_president|director|chancellor|board"),
                field_in("keywords", ["leadership", "administration", "board of regents", "director", "governance"]),
            ),
            exclude=(field_matches("section", r"studentOrganizations"),),
            scoring=(
                scored(field_matches("section", r"^leadership$"), 200),
                scored(field_matches("section", r"organizationalStructure"), 150),
                scored(field_matches("type", r"president|vice_president|director|chancellor|board"), 100),
                scored(field_matches("text", r"director|chancellor|board of regents|governance"), 80),
            ),
        )

    def vector_text(self, ctx: StageContext) -> str:
        if ctx.facts.get("president"):
            return PRESIDENT_PROFILE_QUERY
        return ctx.query

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        section, type_, text = lower(record.section), lower(record.type), text_of(record)
        if ctx.facts.get("president"):
            if "additionalofficesandcenters" in section or "offices" in section or "detailedofficeservices" in section:
                return False
            if _orphan_president_office(record):
                return False
            return (
                section == "leadership"
                or "organizationalstructure" in section
                or type_ == "president"
                or ("roy" in text and "ponce" in text)
                or any(w in text for w in ("dr. roy", "education", "expertise", "achievement"))
            )
        if ctx.facts.get("vp"):
            if "studentorganizations" in section or re.search(_STUDENT_COUNCIL_TEXT, text):
                return False
            return section == "leadership" or "organizationalstructure" in section or "vice president" in text
        return section == "leadership" or "organizationalstructure" in section

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        if not ctx.facts.get("president"):
            return 0.0
        text = text_of(record)
        score = 0.0
        if record.section == "leadership" and record.type == "president":
            score += 50
        if "roy g. ponce" in text:
            score += 40
        if any(w in text for w in ("education", "expertise", "achievement")):
            score += 30
        if any(w in text for w in ("university of melbourne", "unesco", "museum")):
            score += 20
        return score

    def post_filter(self, results: List[SearchResult], ctx: StageContext) -> List[SearchResult]:
        if ctx.facts.get("president"):
            return [r for r in results if not _orphan_president_office(r)]
        if ctx.facts.get("vp"):
            return [
                r
                for r in results
                if "studentorganizations" not in lower(r.section)
                and not re.search(_STUDENT_COUNCIL_TEXT, r.text.lower())
            ]
        return results


OFFICE_ACRONYM_RE = re.compile(r"\b(" + "|".join(re.escape(a) for a in OFFICE_ACRONYMS) + r")\b", re.I)
OFFICE_SECTIONS = ("offices", "unitsAndOfficesHeads", "detailedOfficeServices", "additionalOfficesAndCenters")


def carries_acronym(record: Any, acronym: str) -> bool:
    """True if the acronym appears as a text word, the category, metadata.acronym or a keyword."""
    acr = acronym.lower()
    pattern = re.compile(rf"\b{re.escape(acr)}\b", re.I)
    category = lower(record.category)
    meta_acronym = lower(record.metadata.get("acronym"))
    return (
        bool(pattern.search(record.text))
        or bool(category and pattern.search(category))
        or meta_acronym == acr
        or acr in {str(k).lower() for k in record.keywords}
    )


class OfficeStrategy(Strategy):
    category = Category.OFFICE
    source = "office"
    default_max_results = 15
    default_max_sections = 15

    def analyze(self, query: str) -> Dict[str, Any]:
        m = OFFICE_ACRONYM_RE.search(query)
        return {"acronym": m.group(0).upper() if m else None}

    def _acronym_clauses(self, acronym: str):
        acr = re.escape(acronym)
        return (
            field_matches("metadata.acronym", rf"^{acr}$"),
            field_matches("category", rf"^{acr}$"),
            field_matches("text", rf"\b{acr}\b"),
            field_in("keywords", [acronym]),
        )

    def _office_scope(self):
        return any_of(
            field_in("section", OFFICE_SECTIONS),
            field_matches("type", r"office"),
            field_matches("metadata.acronym", r"."),
        )

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        acronym = ctx.facts.get("acronym")
        if acronym:
            meta, category, text, keywords = self._acronym_clauses(acronym)
            return StructuredQuery(
                any_of=(meta, category, text, keywords),
                all_of=(self._office_scope(),),
                scoring=(
                    scored(meta, 300),
                    scored(category, 250),
                    scored(text, 200),
                    scored(keywords, 100),
                ),
            )
        return StructuredQuery(
            any_of=(
                field_in("section", OFFICE_SECTIONS),
                field_matches("type", r"office|unit"),
                field_matches("text", r"head of|director of|chief of|manager of"),
            ),
            scoring=(
                scored(field_in("section", OFFICE_SECTIONS), 200),
                scored(field_matches("type", r"office|unit"), 150),
                scored(field_matches("text", r"\b(head|director)\b"), 80),
            ),
        )

    def boost(self, record: Any, ctx: StageContext) -> float:
        acronym = ctx.facts.get("acronym")
        bonus = recency(record)
        if acronym and lower(record.metadata.get("acronym")) == acronym.lower():
            bonus += 50
        return bonus

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        section, type_, text = lower(record.section), lower(record.type), text_of(record)
        office_like = (
            "office" in section
            or "unit" in section
            or "office" in type_
            or "unit" in type_
            or any(w in text for w in ("office", "head", "director"))
        )
        acronym = ctx.facts.get("acronym")
        if acronym:
            return office_like and carries_acronym(record, acronym)
        return office_like

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        acronym = ctx.facts.get("acronym")
        if not acronym or len(found) >= 5:
            return []
        return [
            CoverageLookup(
                name=acronym.lower(),
                query=StructuredQuery(any_of=self._acronym_clauses(acronym), all_of=(self._office_scope(),)),
                score=200,
                limit=15,
            )
        ]

    def post_filter(self, results: List[SearchResult], ctx: StageContext) -> List[SearchResult]:
        acronym = ctx.facts.get("acronym")
        if not acronym:
            return results
        return [r for r in results if carries_acronym(r, acronym)]
