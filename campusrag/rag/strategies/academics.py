"""
Academic structure: programs offered, faculties, and faculty deans.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..categories import Category
from ..classifier import FACULTY_CODES
from ..retriever import SearchOptions, SearchResult
from ..store import StructuredQuery, all_of, any_of, field_in, field_matches, scored
from .base import CoverageLookup, StageContext, Strategy, field_of, lower, text_of

FACULTY_NAMES: Dict[str, Tuple[str, ...]] = {
    "FACET": (
        "Faculty of Computing, Engineering, and Technology",
        "Faculty of Computing, Engineering and Technology",
        "Computing, Engineering, and Technology",
        "Computing, Engineering and Technology",
    ),
    "FALS": ("Faculty of Agriculture and Life Sciences", "Agriculture and Life Sciences"),
    "FTED": ("Faculty of Teacher Education", "Teacher Education"),
    "FBM": (
        "Faculty of Business Management",
        "Faculty of Business and Management",
        "Business Management",
        "Business and Management",
    ),
    "FCJE": ("Faculty of Criminal Justice Education", "Criminal Justice Education"),
    "FNAHS": (
        "Faculty of Nursing and Allied Health Sciences",
        "Faculty of Nursing and Allied Health Services",
        "Nursing and Allied Health Sciences",
        "Nursing and Allied Health Services",
    ),
    "FHUSOCOM": (
        "Faculty of Humanities, Social Sciences, and Communications",
        "Faculty of Humanities, Social Sciences and Communication",
        "Humanities, Social Sciences, and Communications",
        "Humanities, Social Sciences and Communication",
    ),
}

FACULTY_CODE_RE = re.compile(r"\b(" + "|".join(FACULTY_CODES) + r")\b", re.I)
FACULTY_NAME_RE = re.compile(
    r"\bfaculty\s+of\s+(agriculture|life\s+sciences|computing|engineering|technology|business|management|"
    r"criminal\s+justice|nursing|allied\s+health|teacher\s+education|humanities|social\s+sciences|communication)\b",
    re.I,
)
PROGRAM_CODES = (
    "BSAM", "BSA", "BSBio", "BSES", "BSDevCom", r"AB\s+PolSci", r"BS\s+Psych", "BSBA", "BSHM", "BSC",
    "BITM", "BSCE", "BSIT", "BSMath", "BSMRS", "BSN", "BEED", "BSED", "BSPH", "BSTM", "BSE",
)
PROGRAM_CODE_RE = re.compile(r"\b(" + "|".join(PROGRAM_CODES) + r")\b", re.I)
LISTING_RE = re.compile(r"\b(list|all|every|show\s+all|what\s+are\s+the|enumerate)\b", re.I)

_DEGREE_RE = re.compile(r"\b(BS|BA|MA|MS|PhD|EdD|bachelor|master|doctorate)\b", re.I)
_FACULTY_LABEL_RE = re.compile(r"faculty:\s*(faculty\s+of|FACET|FALS|FTED|FBM|FCJE|FNAHS|FHUSOCOM)", re.I)
_DEAN_NAME_RE = r"dr\.\s*(gemma|eleanor|rizaldy|danilo|rex|goriel|michelle|jocelyn)"
_DEAN_FULL_NAME_RE = _DEAN_NAME_RE + r".*\s+(valdez|vilela|maypa|jacobe|aparicio|llanita|tabotabo|arles)"
_FACULTY_OF_RE = (
    r"faculty\s+of\s+(agriculture|life\s+sciences|computing|engineering|technology|business|management|"
    r"criminal\s+justice|nursing|allied\s+health|teacher\s+education|humanities|social\s+sciences|communication)"
)


def _faculty_code(query: str) -> Optional[str]:
    m = FACULTY_CODE_RE.search(query)
    return m.group(0).upper() if m else None


def _names_pattern(code: str) -> str:
    return "|".join(re.escape(n) for n in FACULTY_NAMES[code])


def chunk_faculty(record: Any) -> Optional[str]:
    """The faculty code a dean chunk belongs to, if it can be told."""
    code = str(record.metadata.get("facultyCode") or "").upper()
    if code in FACULTY_NAMES:
        return code
    haystack = f"{record.text} {record.metadata.get('faculty') or ''}".lower()
    for c in FACULTY_CODES:
        if re.search(rf"\b{c.lower()}\b", haystack):
            return c
    for c, names in FACULTY_NAMES.items():
        if any(n.lower() in haystack for n in names):
            return c
    return None


class ProgramsStrategy(Strategy):
    category = Category.PROGRAMS
    source = "programs"
    default_max_results = 30
    default_max_sections = 30

    def analyze(self, query: str) -> Dict[str, Any]:
        m = PROGRAM_CODE_RE.search(query)
        return {
            "program_code": m.group(0) if m else None,
            "faculty_code": _faculty_code(query),
            "listing": bool(LISTING_RE.search(query) or re.search(r"\b(programs?|courses?)\b", query, re.I)),
        }

    def limits(self, options: SearchOptions, facts: Dict[str, Any]) -> Tuple[int, int]:
        max_results, max_sections = super().limits(options, facts)
        # listings span all seven faculties
        if facts.get("listing") and options.max_sections is None:
            max_sections *= 2
        return max_results, max_sections

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        program = ctx.facts.get("program_code")
        faculty = ctx.facts.get("faculty_code")
        clauses = [
            field_matches("section", r"^programs$"),
            field_matches("section", r"allProgramsOffered"),
            field_matches("text", r"\b(bachelor|BS|BA|MA|MS|PhD|EdD|program|course|degree|academic\s+program)\b"),
            field_matches("metadata.field", r"programs\.(FACET|FALS|FTED|FBM|FCJE|FNAHS|FHUSOCOM)|programs\..*\.programs|allProgramsOffered"),
            field_matches("type", r"academic_program|program"),
            field_in("keywords", ["program", "programs", "course", "courses", "degree", "degrees", "bachelor", "academic"]),
        ]
        scoring = [
            scored(field_matches("metadata.field", r"programs\.(facet|fals|fted|fbm|fcje|fnahs|fhusocom)"), 280),
            scored(any_of(field_matches("section", r"^programs$"), field_matches("metadata.field", r"programs")), 200),
            scored(field_matches("metadata.field", r"allprogramsoffered"), 180),
            scored(field_matches("text", _FACULTY_LABEL_RE.pattern), 170),
            scored(field_matches("type", r"^academic_program$"), 150),
            scored(field_matches("metadata.facultyCode", r"."), 140),
            scored(field_matches("text", r"BSAM|BSA|BSBio|BSES|BSDevCom|BS\s+Psych|BSBA|BSHM|BSC|BITM|BSCE|BSIT|BSMath|BSMRS|BSN|BEED|BSED"), 120),
            scored(field_in("keywords", ["program", "course", "degree"]), 80),
        ]
        if program:
            code_re = re.sub(r"\s+", r"\\s+", program)
            by_code = any_of(field_matches("text", code_re), field_matches("metadata.programCode", rf"^{code_re}$"))
            clauses.append(by_code)
            scoring.append(scored(by_code, 300))
        if faculty:
            by_faculty = any_of(
                field_matches("text", faculty),
                field_matches("metadata.facultyCode", rf"^{faculty}$"),
                field_matches("category", faculty),
            )
            clauses.append(by_faculty)
            scoring.append(scored(by_faculty, 250))
        return StructuredQuery(any_of=tuple(clauses), scoring=tuple(scoring))

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        section, type_, text, fld = lower(record.section), lower(record.type), text_of(record), field_of(record)
        return (
            "programs" in section
            or "programs." in fld
            or "allprogramsoffered" in fld
            or type_ == "academic_program"
            or ("faculty:" in text and ("bachelor of" in text or "bachelor in" in text))
            or bool(_DEGREE_RE.search(record.text))
        )

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        section, type_, text, fld = lower(record.section), lower(record.type), text_of(record), field_of(record)
        score = 0.0
        if re.search(r"programs\.(facet|fals|fted|fbm|fcje|fnahs|fhusocom)", fld):
            score += 120
        if section == "programs" or type_ == "academic_program":
            score += 100
        if _FACULTY_LABEL_RE.search(record.text):
            score += 90
        program = ctx.facts.get("program_code")
        if program and program.lower() in text:
            score += 80
        faculty = ctx.facts.get("faculty_code")
        if faculty and faculty.lower() in text:
            score += 70
        if re.search(r"\b(BS|BA|MA|MS|PhD|EdD)\b", record.text, re.I):
            score += 50
        return score

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        present = {
            code
            for r in found
            for code in FACULTY_CODES
            if f"programs.{code.lower()}" in str(r.metadata.get("field") or "").lower()
        }
        return [
            CoverageLookup(
                name=code.lower(),
                query=StructuredQuery(
                    all_of=(
                        field_matches("section", r"^programs$"),
                        field_matches("metadata.field", rf"programs\.{code}"),
                    )
                ),
                score=250,
                limit=20,
            )
            for code in FACULTY_CODES
            if code not in present
        ]


class FacultiesStrategy(Strategy):
    category = Category.FACULTIES
    source = "faculties"
    default_max_results = 15
    default_max_sections = 15

    def analyze(self, query: str) -> Dict[str, Any]:
        return {"faculty_code": _faculty_code(query)}

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        faculty = ctx.facts.get("faculty_code")
        codes = "|".join(FACULTY_CODES)
        clauses = [
            field_matches("section", r"^faculties$"),
            field_matches("text", rf"faculty|{codes}|faculty of"),
            field_matches("metadata.field", r"^faculties$"),
            field_matches("type", r"faculty"),
            field_matches("category", codes),
            field_in("keywords", ["faculty", "faculties"] + [c.lower() for c in FACULTY_CODES]),
        ]
        scoring = [
            scored(any_of(field_matches("section", r"^faculties$"), field_matches("metadata.field", r"faculties")), 200),
            scored(field_matches("type", r"^faculty$"), 180),
            scored(field_matches("text", codes), 150),
            scored(field_matches("text", r"faculty of"), 120),
            scored(field_in("keywords", ["faculty", "faculties"]), 80),
        ]
        if faculty:
            by_faculty = any_of(
                field_matches("text", faculty),
                field_matches("metadata.facultyCode", rf"^{faculty}$"),
                field_matches("category", rf"^{faculty}$"),
            )
            clauses.append(by_faculty)
            scoring.append(scored(by_faculty, 300))
        return StructuredQuery(any_of=tuple(clauses), scoring=tuple(scoring))

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        section, type_ = lower(record.section), lower(record.type)
        return (
            section == "faculties"
            or type_ == "faculty"
            or bool(re.search(r"faculty\s+of|\b(" + "|".join(FACULTY_CODES) + r")\b", record.text, re.I))
            or bool(re.search("|".join(FACULTY_CODES), record.category or "", re.I))
        )

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        text = text_of(record)
        score = 0.0
        if lower(record.section) == "faculties":
            score += 100
        faculty = ctx.facts.get("faculty_code")
        if faculty and faculty.lower() in text:
            score += 80
        if re.search(r"faculty\s+of", text):
            score += 70
        if re.search(r"\b(" + "|".join(FACULTY_CODES) + r")\b", record.text):
            score += 50
        return score


class DeansStrategy(Strategy):
    category = Category.DEANS
    source = "deans"
    default_max_results = 10
    default_max_sections = 10

    def analyze(self, query: str) -> Dict[str, Any]:
        code = _faculty_code(query)
        name = FACULTY_NAME_RE.search(query)
        return {
            "faculty_code": code,
            "faculty_name": name.group(0).lower() if name else None,
            "listing": bool(LISTING_RE.search(query) or re.search(r"\bdeans\b", query, re.I)),
        }

    def _dean_scope(self):
        return any_of(
            field_matches("metadata.field", r"\.deans"),
            field_matches("type", r"dean"),
            all_of(field_matches("section", r"organizationalStructure"), field_matches("metadata.faculty", r"faculty\s+of")),
        )

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        code = ctx.facts.get("faculty_code")
        name = ctx.facts.get("faculty_name")
        clauses = [
            field_matches("section", r"^leadership$"),
            field_matches("section", r"organizationalStructure"),
            field_matches("text", _DEAN_FULL_NAME_RE),
            field_matches("text", r"faculty.*dean|dean.*faculty|" + _FACULTY_OF_RE),
            field_matches("metadata.field", r"leadership\.deans|organizationalStructure/DOrSUOfficials2025\.deans|\.deans"),
            field_matches("metadata.faculty", r"faculty\s+of"),
            field_matches("metadata.name", _DEAN_NAME_RE),
            field_matches("type", r"dean"),
            field_matches("category", r"dean"),
            field_in("keywords", ["dean", "deans", "faculty"]),
        ]
        scoring = [
            scored(
                any_of(
                    field_matches("metadata.field", r"leadership\.deans|organizationalstructure/dorsuofficials2025\.deans"),
                    all_of(field_matches("metadata.field", r"deans"), field_matches("section", r"organizationalstructure")),
                ),
                300,
            ),
            scored(field_matches("type", r"dean"), 280),
            scored(
                any_of(
                    field_matches("section", r"^leadership$"),
                    all_of(field_matches("section", r"organizationalstructure"), field_matches("metadata.field", r"deans")),
                ),
                250,
            ),
            scored(field_matches("text", _DEAN_NAME_RE), 150),
            scored(field_matches("text", r"faculty.*dean|dean.*faculty"), 120),
            scored(field_in("keywords", ["dean"]), 80),
        ]
        if code:
            names = _names_pattern(code)
            clauses.extend([field_matches("text", code), field_matches("text", names), field_matches("metadata.faculty", names)])
            scoring.extend([
                scored(field_matches("text", code), 200),
                scored(field_matches("text", names), 200),
                scored(any_of(field_matches("metadata.faculty", names), field_matches("metadata.faculty", code)), 180),
            ])
        if name:
            clauses.extend([field_matches("text", re.escape(name)), field_matches("metadata.faculty", re.escape(name))])
            scoring.append(scored(field_matches("text", re.escape(name)), 200))
        return StructuredQuery(
            any_of=tuple(clauses),
            exclude=(
                field_matches("text", r"\b(president|vice\s+president|chancellor|director)\b"),
                field_matches("type", r"president|vice_president|director"),
            ),
            scoring=tuple(scoring),
        )

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        section, type_, text, fld = lower(record.section), lower(record.type), text_of(record), field_of(record)
        faculty_meta = lower(record.metadata.get("faculty"))
        return (
            (section == "leadership" and ("dean" in text or "dean" in type_))
            or (
                "organizationalstructure" in section
                and ("deans" in fld or ("faculty" in faculty_meta and re.search(_DEAN_NAME_RE, text)))
            )
            or "deans" in fld
            or bool(re.search(_DEAN_FULL_NAME_RE, text))
            or ("faculty" in text and "dean" in text)
        )

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        section, type_, text = lower(record.section), lower(record.type), text_of(record)
        score = 0.0
        if section == "leadership" and ("dean" in type_ or "dean" in text):
            score += 100
        if "organizationalstructure" in section and type_ == "dean":
            score += 100
        code = ctx.facts.get("faculty_code")
        if code and code.lower() in text:
            score += 80
        if code and any(n.lower() in text for n in FACULTY_NAMES[code]):
            score += 80
        if re.search(_DEAN_NAME_RE, text):
            score += 70
        if re.search(r"faculty.*dean|dean.*faculty", text):
            score += 50
        return score

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        code = ctx.facts.get("faculty_code")
        wanted = [code] if code and not ctx.facts.get("listing") else list(FACULTY_CODES)
        present = {chunk_faculty(r) for r in found if "dean" in lower(r.type) or "deans" in field_of(r)}
        lookups = []
        for c in wanted:
            if c in present:
                continue
            lookups.append(
                CoverageLookup(
                    name=c.lower(),
                    query=StructuredQuery(
                        all_of=(
                            self._dean_scope(),
                            any_of(
                                field_matches("metadata.facultyCode", rf"^{c}$"),
                                field_matches("text", rf"\b{c}\b"),
                                field_matches("text", _names_pattern(c)),
                                field_matches("metadata.faculty", _names_pattern(c)),
                            ),
                        ),
                    ),
                    score=200,
                    limit=5,
                )
            )
        return lookups
