"""
Query embedding with sentence-transformers and a bounded LRU cache.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import OrderedDict
from typing import Optional, Protocol

import numpy as np
from sentence_transformers import SentenceTransformer

from .errors import ProviderUnavailable

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "all-MiniLM-L6-v2"
DEFAULT_CACHE_SIZE = 1000


class EmbeddingProvider(Protocol):
    """Turns text into a fixed-length float32 vector."""

    async def embed(self, text: str) -> np.ndarray:
        ...


class EmbeddingCache:
    """
    Least-recently-used cache of query embeddings.

    Keys are the exact query text. Thread-safe so that the same cache can be
    shared between the event loop and worker threads doing model inference.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_SIZE) -> None:
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        self._data: "OrderedDict[str, np.ndarray]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[np.ndarray]:
        with self._lock:
            vec = self._data.get(key)
            if vec is None:
                self.misses += 1
                return None
            self._data.move_to_end(key)
            self.hits += 1
            return vec

    def put(self, key: str, vector: np.ndarray) -> None:
        if self.capacity == 0:
            return
        with self._lock:
            self._data[key] = vector
            self._data.move_to_end(key)
            while len(self._data) > self.capacity:
                self._data.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class SentenceTransformerEmbedder:
    """EmbeddingProvider backed by a local sentence-transformers model."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        cache: EmbeddingCache | None = None,
        model=None,
    ) -> None:
        self.model_name = model_name
        self.cache = cache if cache is not None else EmbeddingCache()
        self._model = model
        self._load_error: Optional[Exception] = None

    @property
    def ready(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        """Load the model eagerly. Failures are remembered and surfaced on embed()."""
        if self._model is not None:
            return
        try:
            self._model = SentenceTransformer(self.model_name)
            logger.info("Loaded embedding model %s", self.model_name)
        except Exception as e:  # model download / init failures
            self._load_error = e
            logger.warning("Embedding model %s failed to load: %s", self.model_name, e)

    def encode_many(self, texts: list[str]) -> np.ndarray:
        """Encode a batch synchronously; used when building a store's embedding matrix."""
        if self._model is None:
            raise ProviderUnavailable("embedding", f"model {self.model_name} is not loaded")
        return np.asarray(
            self._model.encode(
                texts,
                batch_size=64,
                convert_to_numpy=True,
                normalize_embeddings=True,
            ),
            dtype=np.float32,
        )

    def _encode(self, text: str) -> np.ndarray:
        vec = self._model.encode(
            [text],
            convert_to_numpy=True,
            normalize_embeddings=True,
        )[0]
        return np.asarray(vec, dtype=np.float32)

    async def embed(self, text: str) -> np.ndarray:
        cached = self.cache.get(text)
        if cached is not None:
            return cached
        if self._model is None:
            detail = str(self._load_error) if self._load_error else "model is not loaded"
            raise ProviderUnavailable("embedding", detail)
        try:
            vec = await asyncio.to_thread(self._encode, text)
        except Exception as e:
            raise ProviderUnavailable("embedding", str(e)) from e
        self.cache.put(text, vec)
        return vec
