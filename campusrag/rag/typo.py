"""
Typo correction against the knowledge base vocabulary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

COMMON_TERMS: Tuple[str, ...] = (
    # leadership
    "president", "presidents", "vice president", "vice presidents", "chancellor", "chancellors",
    "dean", "deans", "director", "directors", "leadership", "administration", "board", "governance",
    "executive", "executives", "officer", "officers",
    # offices
    "office", "offices", "unit", "units", "head", "heads", "chief", "manager", "ospat", "osa",
    "oscd", "fasg", "peso", "iro", "hsu", "cgad", "ip-tbm", "gctc",
    # academics
    "program", "programs", "programme", "course", "courses", "faculty", "faculties",
    "department", "departments", "college", "colleges", "curriculum", "degree", "degrees",
    "baccalaureate", "undergraduate", "graduate", "enrollment", "admission",
    # campus
    "campus", "campuses", "location", "locations", "facility", "facilities", "building", "buildings",
    "extension", "main campus",
    # calendar
    "date", "dates", "event", "events", "announcement", "announcements", "schedule", "schedules",
    "calendar", "deadline", "deadlines", "holiday", "holidays", "semester", "registration",
    "exam", "exams", "examination", "examinations", "midterm", "prelim", "final",
    # statistics
    "statistics", "stats", "suast", "applicants", "passers", "passing rate", "enrolled",
    "entrance exam", "admission test", "results", "data", "numbers",
    # identity
    "dorsu", "davao oriental state university", "mission", "vision", "mandate", "objectives",
    "core values", "graduate outcomes", "quality commitments", "history", "founded", "established",
    "hymn", "anthem", "scholarship", "scholarships",
    # question words and stopwords (never corrected into each other)
    "what", "who", "when", "where", "why", "how", "which", "tell", "me", "about", "is", "are",
    "the", "of", "and", "or", "for", "to", "in", "on", "at", "by", "with", "from",
    # faculty acronyms
    "facet", "fals", "fted", "fbm", "fcje", "fnahs", "fhusocom",
    # misc
    "requirement", "requirements", "process", "steps", "procedure", "policy", "policies",
    "news", "article", "articles", "post", "posts",
)

QUESTION_WORDS = frozenset({"what", "who", "when", "where", "why", "how", "which"})

_ACRONYM_RE = re.compile(r"^[A-Z]{2,5}(-[A-Z0-9]+)?$")
_SPLIT_RE = re.compile(r"(\s+)")
_LEADING_PUNCT_RE = re.compile(r"^[^\w]*")
_TRAILING_PUNCT_RE = re.compile(r"[^\w]*$")
_NON_WORD_RE = re.compile(r"[^\w]")


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur.append(min(cur[j - 1] + 1, prev[j] + 1, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


@dataclass(frozen=True)
class Correction:
    original: str
    corrected: str
    similarity: float
    distance: int


@dataclass
class TypoCorrector:
    """Corrects likely misspellings against a known vocabulary."""

    vocabulary: Sequence[str] = COMMON_TERMS
    max_distance: int = 2
    min_similarity: float = 0.6
    correct_phrases: bool = True
    _terms: frozenset = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._terms = frozenset(t.lower() for t in self.vocabulary)

    def similar_terms(self, word: str) -> List[Tuple[str, int, float]]:
        """Vocabulary terms within max_distance, best first as (term, distance, similarity)."""
        w = word.lower()
        if len(w) <= 2:
            return []
        found: List[Tuple[str, int, float]] = []
        for term in self.vocabulary:
            t = term.lower()
            if abs(len(w) - len(t)) > self.max_distance:
                continue
            d = levenshtein(w, t)
            if 0 < d <= self.max_distance:
                found.append((term, d, 1 - d / max(len(w), len(t))))
        # vocabulary order breaks remaining ties, keeping the result deterministic
        found.sort(key=lambda x: (-x[2], x[1]))
        return found

    def correct(self, text: str) -> Tuple[str, bool]:
        """Return (corrected text, whether any correction was made)."""
        corrected, corrections = self.correct_verbose(text)
        return corrected, bool(corrections)

    def correct_verbose(self, text: str) -> Tuple[str, List[Correction]]:
        words = _SPLIT_RE.split(text)
        out: List[str] = []
        corrections: List[Correction] = []
        i = 0
        while i < len(words):
            word = words[i]
            bare = _NON_WORD_RE.sub("", word)
            if not word.strip() or len(bare) <= 2:
                out.append(word)
                i += 1
                continue

            before = _LEADING_PUNCT_RE.match(word).group(0)  # type: ignore[union-attr]
            after = _TRAILING_PUNCT_RE.search(word).group(0)  # type: ignore[union-attr]

            if self.correct_phrases and i + 2 < len(words):
                nxt = _NON_WORD_RE.sub("", words[i + 2])
                if len(nxt) > 2:
                    phrase = f"{bare} {nxt}".lower()
                    if phrase not in self._terms:
                        cands = self.similar_terms(phrase)
                        if cands and cands[0][2] >= self.min_similarity and " " in cands[0][0]:
                            first, second = cands[0][0].split(" ", 1)
                            out.extend([before + first, words[i + 1], second + after])
                            corrections.append(Correction(phrase, cands[0][0], cands[0][2], cands[0][1]))
                            i += 3
                            continue

            lower = bare.lower()
            if lower in self._terms or _ACRONYM_RE.match(bare):
                out.append(word)
                i += 1
                continue

            cands = self.similar_terms(bare)
            if cands and cands[0][2] >= self.min_similarity:
                term, dist, sim = cands[0]
                if lower in QUESTION_WORDS and term.lower() in QUESTION_WORDS:
                    out.append(word)
                    i += 1
                    continue
                fixed = term[0].upper() + term[1:] if bare[0].isupper() else term
                out.append(before + fixed + after)
                corrections.append(Correction(bare, term, sim, dist))
            else:
                out.append(word)
            i += 1

        return "".join(out).strip(), corrections
