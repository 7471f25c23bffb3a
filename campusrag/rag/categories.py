"""
Query categories. Each category is handled by exactly one retrieval strategy.
"""

from __future__ import annotations

from enum import Enum


class Category(str, Enum):
    GENERAL = "general"
    COMPREHENSIVE = "comprehensive"
    HISTORY = "history"
    LEADERSHIP = "leadership"
    DEANS = "deans"
    OFFICE = "office"
    PROGRAMS = "programs"
    FACULTIES = "faculties"
    STUDENT_ORG = "student_org"
    ADMISSION_REQUIREMENTS = "admission_requirements"
    HYMN = "hymn"
    VISION_MISSION = "vision_mission"
    VALUES = "values"
    SCHEDULE = "schedule"
    SCHOLARSHIP = "scholarship"

    @classmethod
    def parse(cls, value: "str | Category | None") -> "Category | None":
        """Parse a category name, accepting hyphens and any case."""
        if value is None or isinstance(value, Category):
            return value
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        if key in ("vision", "mission"):
            key = "vision_mission"
        if key == "outcomes":
            key = "values"
        return cls(key)
