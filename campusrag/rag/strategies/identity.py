"""
Institutional identity: the university hymn, vision and mission, and core
values / graduate outcomes / mandate / quality policy.

These answers have an inherent part order, so each strategy hands the
ranker a StructuralOrder instead of relying on score.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from ..categories import Category
from ..ranker import Ordering, StructuralOrder
from ..retriever import SearchResult
from ..store import StructuredQuery, all_of, any_of, field_in, field_matches, scored
from .base import CoverageLookup, StageContext, Strategy, field_of, lower, text_of

HYMN_PARTS = ("verse1", "chorus", "verse2", "finalchorus")

_HYMN_TEXT = r"hymn|anthem|alma matter|davao oriental state university|harold chang|jillian sitchon"


class HymnStrategy(Strategy):
    category = Category.HYMN
    source = "hymn"
    default_max_results = 30
    default_max_sections = 30

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        lyrics = field_matches("metadata.field", r"identity\.hymn\.lyrics")
        scoring = [
            scored(lyrics, 300),
            scored(field_matches("metadata.field", r"identity\.hymn\.title"), 280),
            scored(field_matches("metadata.field", r"identity\.hymn\.composers"), 250),
            scored(field_matches("metadata.field", r"identity\.hymn"), 200),
            scored(field_matches("section", r"^visionmission$"), 100),
            scored(field_matches("text", r"hymn|anthem"), 150),
            scored(field_matches("text", r"lyrics|verse|chorus"), 120),
            scored(field_matches("text", r"alma matter"), 100),
            scored(field_matches("text", r"harold chang|jillian sitchon"), 80),
            scored(field_in("keywords", ["hymn", "anthem"]), 100),
        ]
        scoring.extend(
            scored(field_matches("metadata.field", rf"identity\.hymn\.lyrics\.{part}"), 50) for part in HYMN_PARTS
        )
        return StructuredQuery(
            any_of=(
                field_matches("metadata.field", r"identity\.hymn"),
                all_of(field_matches("section", r"^visionMission$"), field_matches("metadata.field", r"hymn")),
                field_matches("text", _HYMN_TEXT),
                field_in("keywords", ["hymn", "anthem", "lyrics", "song"]),
            ),
            scoring=tuple(scoring),
        )

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        fld, text = field_of(record), text_of(record)
        return "identity.hymn" in fld or bool(re.search(r"hymn|anthem|lyrics|verse|chorus", text))

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        fld, text = field_of(record), text_of(record)
        score = 0.0
        if "identity.hymn.lyrics" in fld:
            score += 100
        if "identity.hymn" in fld:
            score += 80
        if re.search(r"hymn|anthem", text):
            score += 60
        if re.search(r"lyrics|verse|chorus", text):
            score += 50
        return score

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        if len(found) >= 25:
            return []
        return [
            CoverageLookup(
                name="hymn",
                query=StructuredQuery(all_of=(field_matches("metadata.field", r"identity\.hymn"),)),
                score=300,
                limit=ctx.max_sections,
            )
        ]

    def ordering(self, ctx: StageContext) -> Optional[Ordering]:
        return StructuralOrder("metadata.field", HYMN_PARTS)


class VisionMissionStrategy(Strategy):
    category = Category.VISION_MISSION
    source = "vision_mission"
    default_max_results = 15
    default_max_sections = 15

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        return StructuredQuery(
            any_of=(
                field_matches("metadata.field", r"visionMission\.(vision|mission)"),
                field_matches("section", r"^visionMission$"),
                field_matches("text", r"\b(vision|mission)\b"),
                field_in("keywords", ["vision", "mission"]),
            ),
            exclude=(field_matches("metadata.field", r"identity\.hymn"),),
            scoring=(
                scored(field_matches("metadata.field", r"visionmission\.vision"), 400),
                scored(field_matches("metadata.field", r"visionmission\.mission"), 350),
                scored(field_matches("metadata.field", r"visionmission"), 200),
                scored(field_matches("section", r"^visionmission$"), 150),
                scored(field_matches("text", r"university of excellence.*innovation.*inclusion"), 200),
                scored(field_matches("text", r"elevate knowledge|promote inclusive|produce holistic"), 180),
                scored(field_matches("text", r"\b(vision|mission)\b"), 120),
                scored(field_matches("metadata.field", r"organization\.(name|about)"), -50),
                scored(field_in("keywords", ["vision", "mission"]), 100),
            ),
        )

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        fld = field_of(record)
        if "identity.hymn" in fld:
            return False
        return "visionmission" in fld or lower(record.section) == "visionmission" or bool(
            re.search(r"\b(vision|mission)\b", text_of(record))
        )

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        fld, text = field_of(record), text_of(record)
        score = 0.0
        if "visionmission.vision" in fld:
            score += 150
        if "visionmission.mission" in fld:
            score += 130
        if lower(record.section) == "visionmission":
            score += 80
        if re.search(r"university of excellence.*innovation.*inclusion", text):
            score += 100
        if re.search(r"elevate knowledge|promote inclusive|produce holistic", text):
            score += 90
        return score

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        if len(found) >= 4:
            return []
        return [
            CoverageLookup(
                name="statements",
                query=StructuredQuery(all_of=(field_matches("metadata.field", r"visionMission\.(vision|mission)"),)),
                score=400,
                limit=ctx.max_sections,
            )
        ]

    def ordering(self, ctx: StageContext) -> Optional[Ordering]:
        return StructuralOrder("metadata.field", ("visionmission.vision", "visionmission.mission"))


CORE_VALUES_RE = re.compile(r"\b(core\s+values?|values?)\b", re.I)
OUTCOMES_RE = re.compile(r"\b(graduate\s+outcomes?|outcomes?)\b", re.I)
MANDATE_RE = re.compile(r"\b(mandate|charter)\b", re.I)
QUALITY_RE = re.compile(r"\bquality\s+policy\b", re.I)

_VALUE_FIELDS = {
    "core": r"valuesAndOutcomes\.coreValues",
    "outcomes": r"valuesAndOutcomes\.graduateOutcomes",
    "mandate": r"mandate\.(statement|objectives)",
    "quality": r"qualityPolicy",
}
_VALUES_CONTENT = (
    r"\b(integrity|excellence|innovation|inclusivity|commitment|accountability)\b",
    r"knowledgeable|skilled|ethical|globally\s+competitive",
    r"republic\s+act|mandated\s+to|charter",
    r"quality\s+management|continual\s+improvement|customer\s+satisfaction",
)
VALUES_PARTS = (
    "mandate.statement",
    "mandate.objectives",
    "valuesandoutcomes.corevalues",
    "valuesandoutcomes.graduateoutcomes",
    "qualitypolicy",
)


class ValuesStrategy(Strategy):
    category = Category.VALUES
    source = "values"
    default_max_results = 15
    default_max_sections = 15

    def analyze(self, query: str) -> Dict[str, Any]:
        mandate = bool(MANDATE_RE.search(query))
        quality = bool(QUALITY_RE.search(query))
        return {
            "core": bool(CORE_VALUES_RE.search(query)) and not (mandate or quality),
            "outcomes": bool(OUTCOMES_RE.search(query)),
            "mandate": mandate,
            "quality": quality,
        }

    def _requested(self, ctx: StageContext) -> List[str]:
        return [topic for topic in ("core", "outcomes", "mandate", "quality") if ctx.facts.get(topic)]

    def _topic_clause(self, topic: str):
        if topic == "mandate":
            return any_of(field_matches("metadata.field", _VALUE_FIELDS[topic]), field_matches("section", r"^mandate$"))
        if topic == "quality":
            return any_of(field_matches("metadata.field", r"qualityPolicy"), field_matches("section", r"qualityPolicy"))
        return field_matches("metadata.field", _VALUE_FIELDS[topic])

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        f = ctx.facts
        bonus = {topic: (100 if f.get(topic) else 0) for topic in _VALUE_FIELDS}
        scoring = [
            scored(field_matches("metadata.field", r"valuesandoutcomes\.corevalues"), 400 + bonus["core"]),
            scored(field_matches("metadata.field", r"valuesandoutcomes\.graduateoutcomes"), 350 + bonus["outcomes"]),
            scored(field_matches("metadata.field", r"mandate\.(statement|objectives)"), 400 + bonus["mandate"]),
            scored(field_matches("metadata.field", r"qualitypolicy"), 400 + bonus["quality"]),
            scored(field_matches("metadata.field", r"valuesandoutcomes"), 200),
            scored(field_matches("section", r"^mandate$"), 200),
            scored(field_matches("section", r"^visionmission$"), 150),
            scored(field_matches("section", r"qualitypolicy"), 150),
            scored(field_matches("text", r"\b(values|outcomes)\b"), 120),
            scored(field_in("keywords", ["values", "outcomes", "mandate", "quality policy"]), 100),
        ]
        scoring.extend(scored(field_matches("text", p), 180) for p in _VALUES_CONTENT)
        query = StructuredQuery(
            any_of=(
                field_matches("metadata.field", r"valuesAndOutcomes\.(coreValues|graduateOutcomes)"),
                all_of(field_matches("section", r"^visionMission$"), field_matches("metadata.field", r"valuesAndOutcomes")),
                field_matches("metadata.field", _VALUE_FIELDS["mandate"]),
                field_matches("section", r"^mandate$"),
                field_matches("metadata.field", r"qualityPolicy"),
                field_matches("section", r"qualityPolicy"),
                *(field_matches("text", p) for p in _VALUES_CONTENT),
                field_in("keywords", ["values", "core values", "outcomes", "graduate outcomes", "mandate", "quality policy"]),
            ),
            scoring=tuple(scoring),
        )
        requested = self._requested(ctx)
        # a single sub-topic keeps the others out
        if len(requested) == 1:
            query = query.restricted(self._topic_clause(requested[0]))
        return query

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        fld, section = field_of(record), lower(record.section)
        requested = self._requested(ctx)
        if len(requested) == 1:
            return self._topic_clause(requested[0]).matches(record)
        return (
            "valuesandoutcomes" in fld
            or "mandate" in fld
            or "qualitypolicy" in fld
            or section in ("mandate", "qualitypolicy")
            or bool(re.search(r"core values|graduate outcomes|quality policy", text_of(record)))
        )

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        fld = field_of(record)
        score = 0.0
        for topic, pattern in _VALUE_FIELDS.items():
            if re.search(pattern, fld, re.I):
                score += 150 if ctx.facts.get(topic) else 80
        return score

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        if len(found) >= 10:
            return []
        topics = self._requested(ctx) or list(_VALUE_FIELDS)
        return [
            CoverageLookup(
                name=topic,
                query=StructuredQuery(all_of=(self._topic_clause(topic),)),
                score=400,
                limit=ctx.max_sections,
            )
            for topic in topics
        ]

    def ordering(self, ctx: StageContext) -> Optional[Ordering]:
        return StructuralOrder("metadata.field", VALUES_PARTS)
