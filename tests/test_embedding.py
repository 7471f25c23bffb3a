"""
Tests for the embedding cache and the sentence-transformers provider (model mocked).
"""

from __future__ import annotations

from unittest.mock import MagicMock

import numpy as np
import pytest

from campusrag.rag import EmbeddingCache, SentenceTransformerEmbedder
from campusrag.rag.errors import ProviderUnavailable


def test_cache_evicts_least_recently_used():
    cache = EmbeddingCache(capacity=2)
    cache.put("a", np.zeros(2))
    cache.put("b", np.ones(2))
    assert cache.get("a") is not None  # "a" is now most recent
    cache.put("c", np.ones(2))
    assert "b" not in cache
    assert "a" in cache and "c" in cache
    assert len(cache) == 2


def test_cache_counts_hits_and_misses():
    cache = EmbeddingCache(capacity=4)
    cache.get("x")
    cache.put("x", np.zeros(1))
    cache.get("x")
    assert (cache.hits, cache.misses) == (1, 1)


def test_cache_zero_capacity_stores_nothing():
    cache = EmbeddingCache(capacity=0)
    cache.put("a", np.zeros(1))
    assert len(cache) == 0


def test_cache_rejects_negative_capacity():
    with pytest.raises(ValueError):
        EmbeddingCache(capacity=-1)


def _model(dims: int = 4) -> MagicMock:
    model = MagicMock()
    model.encode.side_effect = lambda texts, **kwargs: np.ones((len(texts), dims), dtype=np.float32)
    return model


@pytest.mark.anyio
async def test_embed_uses_cache():
    model = _model()
    embedder = SentenceTransformerEmbedder(model=model, cache=EmbeddingCache(10))
    first = await embedder.embed("dean of facet")
    second = await embedder.embed("dean of facet")
    assert first.dtype == np.float32
    assert np.array_equal(first, second)
    assert model.encode.call_count == 1
    assert embedder.cache.hits == 1


@pytest.mark.anyio
async def test_embed_without_model_is_unavailable():
    embedder = SentenceTransformerEmbedder(model=None)
    assert not embedder.ready
    with pytest.raises(ProviderUnavailable):
        await embedder.embed("anything")


@pytest.mark.anyio
async def test_embed_wraps_inference_errors():
    model = MagicMock()
    model.encode.side_effect = RuntimeError("cuda out of memory")
    embedder = SentenceTransformerEmbedder(model=model)
    with pytest.raises(ProviderUnavailable):
        await embedder.embed("anything")
    assert "anything" not in embedder.cache


def test_encode_many_shape():
    embedder = SentenceTransformerEmbedder(model=_model(dims=3))
    assert embedder.encode_many(["a", "b"]).shape == (2, 3)
