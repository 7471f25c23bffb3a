"""
Build the search service for the API (used in lifespan).
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from campusrag.rag import (
    EmbeddingCache,
    InMemoryKnowledgeStore,
    InMemoryScheduleStore,
    RetrievalConfig,
    SearchOptions,
    SearchService,
    SentenceTransformerEmbedder,
    StrategyDispatcher,
    TypoCorrector,
)

logger = logging.getLogger(__name__)


def build_search_service(
    config: RetrievalConfig | None = None,
) -> Tuple[Optional[SearchService], int, int, SentenceTransformerEmbedder]:
    """
    Load snapshots, the embedding model and wire the service.
    Returns (service, chunks_loaded, events_loaded, embedder).
    """
    config = config or RetrievalConfig.from_env()
    embedder = SentenceTransformerEmbedder(
        model_name=config.embedding_model,
        cache=EmbeddingCache(config.embedding_cache_size),
    )
    embedder.load()

    try:
        knowledge = InMemoryKnowledgeStore.from_path(config.chunks_path, embedder)
    except FileNotFoundError as e:
        logger.warning("%s", e)
        # Return None service so routes can return 503
        return None, 0, 0, embedder

    schedule = None
    if config.schedule_path is not None:
        try:
            schedule = InMemoryScheduleStore.from_path(config.schedule_path, embedder)
        except FileNotFoundError as e:
            logger.warning("%s; schedule queries will use knowledge chunks only", e)

    dispatcher = StrategyDispatcher(
        knowledge,
        embedder,
        schedule=schedule,
        stage_timeout=config.stage_timeout_seconds,
        timezone=config.calendar_timezone,
    )
    service = SearchService(
        dispatcher,
        typo_corrector=TypoCorrector() if config.enable_typo_correction else None,
        deadline_seconds=config.search_deadline_seconds,
        max_query_length=config.max_query_length,
        default_options=SearchOptions(
            max_results=config.default_max_results,
            max_sections=config.default_max_sections,
        ),
    )
    logger.info(
        "Search service ready: %d chunks, %d events, embedder ready=%s",
        len(knowledge),
        len(schedule) if schedule is not None else 0,
        embedder.ready,
    )
    return service, len(knowledge), len(schedule) if schedule is not None else 0, embedder
