"""
Query classification via an explicit, ordered rule table.

Rules are evaluated top to bottom and the first match wins. Categories overlap
lexically, so the order of RULES is part of the behaviour: deans before
leadership ("dean" queries often mention directors or presidents), office
heads before leadership ("director of OSA"), values before programs
("graduate outcomes" contains "graduate"), and the specific categories before
the catch-all comprehensive rule.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .categories import Category

Predicate = Callable[[str], bool]


@dataclass(frozen=True)
class Rule:
    """A single (predicate, category) entry of the rule table."""

    name: str
    category: Category
    predicate: Predicate

    def matches(self, query: str) -> bool:
        return self.predicate(query)


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.I)


def any_of(*patterns: re.Pattern[str]) -> Predicate:
    return lambda q: any(p.search(q) for p in patterns)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda q: all(pred(q) for pred in predicates)


def contains_any(*terms: str) -> Predicate:
    """Case-insensitive substring match, not bound to word edges."""
    lowered = tuple(t.lower() for t in terms)
    return lambda q: any(t in q.lower() for t in lowered)


def either(*predicates: Predicate) -> Predicate:
    return lambda q: any(pred(q) for pred in predicates)


HISTORY_RE = _rx(
    r"\b(history|historical|founded|established|background|evolution|development|"
    r"kasaysayan|itinatag|pinagmulan|gitukod|timeline|narrative|heritage|conversion|"
    r"doscst|mcc|mati community college)\b"
)
DEAN_RE = _rx(r"\b(dean|deans|who\s+(is|are)\s+the\s+dean|dean\s+of)\b")
LEADERSHIP_RE = _rx(
    r"\b(president|vice president|vice presidents|chancellor|director|directors|leadership|"
    r"board|governance|administration|executive|executives|board of regents|roy.*ponce|"
    r"dr\.?\s*roy)\b"
)
OFFICE_ACRONYMS = ("OSPAT", "OSA", "OSCD", "FASG", "PESO", "IRO", "HSU", "CGAD", "IP-TBM", "GCTC")
OFFICE_HEAD_RE = _rx(
    r"\b(who\s+(is|are)\s+(the\s+)?(head|director|chief|manager|officer)\s+(of|in)?|"
    r"head\s+of|director\s+of|chief\s+of|manager\s+of)\b"
)
OFFICE_ACRONYM_RE = _rx(r"\b(" + "|".join(re.escape(a) for a in OFFICE_ACRONYMS) + r")\b")
OFFICE_NAME_RE = _rx(
    r"\b(office|offices|unit|units)\s+(of|for|in)?\s+[a-z\s]+(office|unit|services|affairs|program|programs)\b"
)
OFFICE_WORD_RE = _rx(r"\boffice\b")
VALUES_RE = _rx(
    r"\b(core\s+values?|values?\s+of|graduate\s+outcomes?|outcomes?|quality\s+policy|mandate|charter)\b"
)
PROGRAMS_RE = _rx(
    r"\b(program|programs|programme|course|courses|degree|degrees|bachelor|BS|BA|MA|MS|PhD|"
    r"EdD|undergraduate|graduate|masters|doctorate|what\s+programs?\s+are|what\s+courses?\s+are)\b"
)
FACULTY_CODES = ("FACET", "FALS", "FTED", "FBM", "FCJE", "FNAHS", "FHUSOCOM")
FACULTIES_RE = _rx(
    r"\b(faculty|faculties|"
    + "|".join(FACULTY_CODES)
    + r"|college|colleges|what\s+faculties?\s+are|list\s+faculties?)\b"
)
STUDENT_ORG_RE = _rx(
    r"\b(usc|university\s+student\s+council|student\s+council|ang.*sidlakan|catalyst|"
    r"student\s+organization|student\s+organizations|student\s+publication|yearbook)\b"
)
ADMISSION_DIRECT_RE = _rx(
    r"\b(admission\s+requirements?|requirements?\s+for\s+admission|admission\s+req|"
    r"what\s+(are|do|does)\s+.*\s+(need|required|requirement))\b"
)
ADMISSION_WORD_RE = _rx(r"\b(admission|admissions)\b")
REQUIREMENT_WORD_RE = _rx(r"\b(requirements?|required|need|needed)\b")
HYMN_RE = _rx(
    r"\b(hymn|anthem|university\s+hymn|university\s+anthem|dorsu\s+hymn|dorsu\s+anthem|"
    r"lyrics|song|composer)\b"
)
VISION_MISSION_RE = _rx(
    r"\b(vision|mission|what\s+is\s+.*\s+(vision|mission)|dorsu.*\s+(vision|mission)|"
    r"university.*\s+(vision|mission))\b"
)
SCHEDULE_RE = _rx(
    r"\b(date|dates|event|events|announcement|announcements|schedule|schedules|calendar|when|"
    r"upcoming|coming|next|this\s+(week|month|year)|deadline|deadlines|holiday|holidays|"
    r"academic\s+calendar|semester|enrollment\s+period|registration|exam\s+schedule|"
    r"class\s+schedule|timeline|time\s+table|graduation|seminar|workshop|conference|meeting|"
    r"activity|activities)\b"
)
SCHEDULE_QUESTION_RE = _rx(
    r"\b(when\s+(is|are|will|does)|what\s+(date|dates|time|schedule)|"
    r"tell\s+me\s+(about\s+)?(the\s+)?(schedule|dates?|events?))\b"
)
SCHOLARSHIP_RE = _rx(
    r"\b(scholarship|scholarships|scholar|scholars|recipients?|beneficiaries?|"
    r"total\s+(number|count|students?|recipients?)|how\s+many\s+students?\s+.*scholarship|"
    r"students?\s+with\s+scholarship|scholarship\s+(statistics?|data|information|numbers?|counts?))\b"
)
# plain substrings: "campus" also catches "campuses", "dean" catches "deanship"
COMPREHENSIVE_TERMS = (
    "core values", "mission", "missions", "mandate", "objectives",
    "graduate outcomes", "quality commitments", "president", "vice president", "vice presidents",
    "leadership", "chancellor", "board", "governance", "administration",
    "history", "faculties", "faculty", "programs", "programme", "enrollment",
    "campuses", "campus", "deans", "dean", "directors", "director",
    "events", "schedules", "calendar", "announcements", "dates", "deadlines",
)
PLURAL_TERMS = (
    "faculties", "programs", "courses", "deans", "directors", "campuses",
    "values", "missions", "objectives", "commitments", "outcomes",
    "events", "schedules", "announcements", "dates", "deadlines",
    "presidents", "vice presidents", "chancellors", "executives",
)
LISTING_RE = _rx(r"\b(list|all|every|show\s+all|what\s+are\s+the|enumerate)\b")


RULES: Sequence[Rule] = (
    Rule("history", Category.HISTORY, any_of(HISTORY_RE)),
    Rule("deans", Category.DEANS, any_of(DEAN_RE)),
    Rule(
        "office",
        Category.OFFICE,
        all_of(any_of(OFFICE_HEAD_RE), any_of(OFFICE_ACRONYM_RE, OFFICE_NAME_RE, OFFICE_WORD_RE)),
    ),
    Rule("leadership", Category.LEADERSHIP, any_of(LEADERSHIP_RE)),
    Rule("student_org", Category.STUDENT_ORG, any_of(STUDENT_ORG_RE)),
    Rule("values", Category.VALUES, any_of(VALUES_RE)),
    Rule("programs", Category.PROGRAMS, any_of(PROGRAMS_RE)),
    Rule("faculties", Category.FACULTIES, any_of(FACULTIES_RE)),
    Rule(
        "admission_requirements",
        Category.ADMISSION_REQUIREMENTS,
        either(
            any_of(ADMISSION_DIRECT_RE),
            all_of(any_of(ADMISSION_WORD_RE), any_of(REQUIREMENT_WORD_RE)),
        ),
    ),
    Rule("hymn", Category.HYMN, any_of(HYMN_RE)),
    Rule("vision_mission", Category.VISION_MISSION, any_of(VISION_MISSION_RE)),
    Rule("schedule", Category.SCHEDULE, any_of(SCHEDULE_RE, SCHEDULE_QUESTION_RE)),
    Rule("scholarship", Category.SCHOLARSHIP, any_of(SCHOLARSHIP_RE)),
    Rule(
        "comprehensive",
        Category.COMPREHENSIVE,
        either(contains_any(*COMPREHENSIVE_TERMS, *PLURAL_TERMS), any_of(LISTING_RE)),
    ),
)


class QueryClassifier:
    """Maps a query to exactly one Category using an ordered rule table."""

    def __init__(
        self,
        rules: Sequence[Rule] | None = None,
        default: Category = Category.GENERAL,
    ) -> None:
        self.rules: List[Rule] = list(rules if rules is not None else RULES)
        self.default = default

    def match(self, query: str) -> Optional[Rule]:
        """Return the first rule matching the query, or None."""
        q = (query or "").strip()
        if not q:
            return None
        for rule in self.rules:
            if rule.matches(q):
                return rule
        return None

    def classify(self, query: str) -> Category:
        rule = self.match(query)
        return rule.category if rule is not None else self.default


def classify(query: str) -> Category:
    """Classify with the default rule table."""
    return QueryClassifier().classify(query)
