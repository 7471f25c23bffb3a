"""
Configuration for the retrieval pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .index import CHUNKS_PATH, ROOT, SCHEDULE_PATH


def load_env() -> None:
    """Load the project .env file if it exists. Real environment variables win."""
    env_file = ROOT / ".env"
    if env_file.exists():
        load_dotenv(env_file)


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_env_path(name: str, default: Optional[Path]) -> Optional[Path]:
    value = os.getenv(name)
    if not value:
        return default
    return Path(value)


@dataclass
class RetrievalConfig:
    """Configuration for retrieval."""

    chunks_path: Path = CHUNKS_PATH
    schedule_path: Optional[Path] = SCHEDULE_PATH
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_cache_size: int = 1000
    search_deadline_seconds: float = 5.0
    stage_timeout_seconds: float = 3.0
    default_max_sections: Optional[int] = None
    default_max_results: Optional[int] = None
    max_query_length: int = 500
    enable_typo_correction: bool = True
    log_level: str = "INFO"
    calendar_timezone: str = "Asia/Manila"

    @classmethod
    def from_env(cls) -> "RetrievalConfig":
        """Build a config from environment variables (after loading .env)."""
        load_env()
        defaults = cls()
        max_sections = _get_env_int("DEFAULT_MAX_SECTIONS", 0)
        max_results = _get_env_int("DEFAULT_MAX_RESULTS", 0)
        return cls(
            chunks_path=_get_env_path("CHUNKS_PATH", defaults.chunks_path),
            schedule_path=_get_env_path("SCHEDULE_PATH", defaults.schedule_path),
            embedding_model=os.getenv("EMBEDDING_MODEL", defaults.embedding_model),
            embedding_cache_size=_get_env_int("EMBEDDING_CACHE_SIZE", defaults.embedding_cache_size),
            search_deadline_seconds=_get_env_float("SEARCH_DEADLINE_SECONDS", defaults.search_deadline_seconds),
            stage_timeout_seconds=_get_env_float("STAGE_TIMEOUT_SECONDS", defaults.stage_timeout_seconds),
            default_max_sections=max_sections if max_sections > 0 else None,
            default_max_results=max_results if max_results > 0 else None,
            max_query_length=_get_env_int("MAX_QUERY_LENGTH", defaults.max_query_length),
            enable_typo_correction=_get_env_bool("ENABLE_TYPO_CORRECTION", defaults.enable_typo_correction),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            calendar_timezone=os.getenv("CALENDAR_TIMEZONE", defaults.calendar_timezone),
        )
