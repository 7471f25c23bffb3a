"""
History and timeline queries.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional

from ..categories import Category
from ..ranker import ChronologicalOrder, Ordering
from ..retriever import SearchResult
from ..store import StructuredQuery, field_in, field_matches, scored
from .base import StageContext, Strategy, lower, text_of

HISTORY_KEYWORDS = ("history", "timeline", "founded", "established", "narrative", "heritage", "conversion", "dorsu", "doscst", "mcc")
_HISTORY_TEXT = r"history|founded|established|timeline|narrative|heritage|conversion|dorsu|doscst|mcc"
_EXCLUDED_TYPES = ("conversion_process", "heritage_info", "current_mission")

_UNESCO_RE = re.compile(r"heritage site|unesco.*hamiguitan|hamiguitan.*unesco")


def is_off_topic(section: str, type_: str, category: str, text: str) -> bool:
    """Conversion-process, heritage-site and current-mission chunks that are not timeline events."""
    timeline_event = type_ == "timeline_event"
    if type_ == "conversion_process":
        return True
    if "conversionprocess" in section and "timeline" not in type_:
        return True
    if category == "conversionprocess" and not timeline_event:
        return True
    if "conversion process" in text and "stakeholders" in text and "timeline" not in text:
        return True
    if type_ == "heritage_info":
        return True
    if ("heritage" in section or category == "heritage") and not timeline_event:
        return True
    if _UNESCO_RE.search(text) and not timeline_event and "timeline" not in text:
        return True
    if type_ == "current_mission" or category == "currentmission":
        return True
    if "currentmission" in section and not timeline_event:
        return True
    if "current mission" in text and not timeline_event and "timeline" not in text:
        return True
    return False


class HistoryStrategy(Strategy):
    category = Category.HISTORY
    source = "history"
    default_max_results = 60
    default_max_sections = 60

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        return StructuredQuery(
            any_of=(
                field_matches("section", r"^history$"),
                field_matches("type", r"timeline|history|narrative|heritage|conversion"),
                field_matches("category", r"timeline|history|historical|1972|1989|1991|1997|1999|2015|2018|2021"),
                field_matches("text", _HISTORY_TEXT),
                field_in("keywords", HISTORY_KEYWORDS),
            ),
            exclude=(
                field_matches("type", r"conversion_process|heritage_info|current_mission"),
                field_matches("section", r"conversionprocess|heritage|currentmission"),
                field_matches("category", r"conversionprocess|heritage|currentmission"),
            ),
            scoring=(
                scored(field_matches("section", r"^history$"), 200),
                scored(field_matches("type", r"timeline_event|history_narrative"), 150),
                scored(field_matches("type", r"history|timeline"), 100),
                scored(field_matches("text", r"2018.*may|may.*28|converted.*university|dorsu.*university"), 80),
                scored(field_in("keywords", ["history"]), 60),
            ),
        )

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        section, type_, text = lower(record.section), lower(record.type), text_of(record)
        if any(t in type_ for t in _EXCLUDED_TYPES):
            return False
        return (
            section == "history"
            or "timeline" in type_
            or "history" in type_
            or any(w in text for w in ("founded", "established", "dorsu", "doscst"))
        )

    def post_filter(self, results: List[SearchResult], ctx: StageContext) -> List[SearchResult]:
        return [
            r
            for r in results
            if not is_off_topic(lower(r.section), lower(r.type), lower(r.category), r.text.lower())
        ]

    def ordering(self, ctx: StageContext) -> Optional[Ordering]:
        return ChronologicalOrder("metadata.year")
