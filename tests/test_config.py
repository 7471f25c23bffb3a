"""
Tests for environment configuration and logging setup.
"""

from __future__ import annotations

import logging
from pathlib import Path

from campusrag.logging_config import setup_logging
from campusrag.rag import RetrievalConfig


def test_defaults(monkeypatch):
    for name in ("EMBEDDING_CACHE_SIZE", "DEFAULT_MAX_SECTIONS", "CALENDAR_TIMEZONE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    config = RetrievalConfig.from_env()
    assert config.embedding_cache_size == 1000
    assert config.default_max_sections is None
    assert config.calendar_timezone == "Asia/Manila"
    assert config.log_level == "INFO"


def test_from_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CHUNKS_PATH", str(tmp_path / "c.jsonl"))
    monkeypatch.setenv("SEARCH_DEADLINE_SECONDS", "2.5")
    monkeypatch.setenv("DEFAULT_MAX_SECTIONS", "12")
    monkeypatch.setenv("ENABLE_TYPO_CORRECTION", "no")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    config = RetrievalConfig.from_env()
    assert config.chunks_path == Path(tmp_path / "c.jsonl")
    assert config.search_deadline_seconds == 2.5
    assert config.default_max_sections == 12
    assert config.enable_typo_correction is False
    assert config.log_level == "DEBUG"


def test_bad_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("EMBEDDING_CACHE_SIZE", "lots")
    monkeypatch.setenv("STAGE_TIMEOUT_SECONDS", "soon")
    config = RetrievalConfig.from_env()
    assert config.embedding_cache_size == 1000
    assert config.stage_timeout_seconds == 3.0


def test_setup_logging_single_handler():
    logger = logging.getLogger("campusrag")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    try:
        setup_logging("warning")
        setup_logging("debug")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
    finally:
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])
        logger.propagate = saved[2]
