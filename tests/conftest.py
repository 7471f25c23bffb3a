"""
Shared fixtures for retrieval tests.
"""

from __future__ import annotations

import pytest

from campusrag.rag import InMemoryKnowledgeStore
from fakes import DEAN_CHUNKS, GENERAL_CHUNKS, HISTORY_CHUNKS, HYMN_CHUNKS, HashingEmbedder, make_store


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


@pytest.fixture
def knowledge(embedder: HashingEmbedder) -> InMemoryKnowledgeStore:
    return make_store(HYMN_CHUNKS + DEAN_CHUNKS + GENERAL_CHUNKS + HISTORY_CHUNKS, embedder)
