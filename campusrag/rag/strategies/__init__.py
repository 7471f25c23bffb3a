"""
Retrieval strategies, one per query category.
"""

from __future__ import annotations

from typing import Dict

from ..categories import Category
from .academics import DeansStrategy, FacultiesStrategy, ProgramsStrategy
from .admission import AdmissionStrategy
from .base import CoverageLookup, StageContext, Strategy, keyword_score, vector_score
from .general import ComprehensiveStrategy, GeneralStrategy
from .history import HistoryStrategy
from .identity import HymnStrategy, ValuesStrategy, VisionMissionStrategy
from .leadership import LeadershipStrategy, OfficeStrategy
from .scholarship import ScholarshipStrategy
from .schedule import ScheduleStrategy
from .student_org import StudentOrgStrategy

STRATEGY_CLASSES = (
    GeneralStrategy,
    ComprehensiveStrategy,
    HistoryStrategy,
    LeadershipStrategy,
    DeansStrategy,
    OfficeStrategy,
    ProgramsStrategy,
    FacultiesStrategy,
    StudentOrgStrategy,
    AdmissionStrategy,
    HymnStrategy,
    VisionMissionStrategy,
    ValuesStrategy,
    ScheduleStrategy,
    ScholarshipStrategy,
)


def build_strategies() -> Dict[Category, Strategy]:
    """A fresh Category -> Strategy table covering every category."""
    table = {cls.category: cls() for cls in STRATEGY_CLASSES}
    missing = set(Category) - set(table)
    if missing:
        raise RuntimeError(f"No strategy for categories: {sorted(c.value for c in missing)}")
    return table


__all__ = [
    "AdmissionStrategy",
    "ComprehensiveStrategy",
    "CoverageLookup",
    "DeansStrategy",
    "FacultiesStrategy",
    "GeneralStrategy",
    "HistoryStrategy",
    "HymnStrategy",
    "LeadershipStrategy",
    "OfficeStrategy",
    "ProgramsStrategy",
    "STRATEGY_CLASSES",
    "ScheduleStrategy",
    "ScholarshipStrategy",
    "StageContext",
    "Strategy",
    "StudentOrgStrategy",
    "ValuesStrategy",
    "VisionMissionStrategy",
    "build_strategies",
    "keyword_score",
    "vector_score",
]
