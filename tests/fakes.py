"""
Fake providers, stores and small knowledge snapshots for tests (no model downloads).
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import zlib
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from campusrag.rag import ChunkRecord, InMemoryKnowledgeStore, InMemoryScheduleStore, ScheduleEvent
from campusrag.rag.errors import ProviderUnavailable
from campusrag.rag.store import iter_tokens

DIMS = 64


class HashingEmbedder:
    """Deterministic bag-of-words embedder; shares a space with ``vector``."""

    ready = True

    def __init__(self) -> None:
        self.calls: List[str] = []

    def vector(self, text: str) -> np.ndarray:
        v = np.zeros(DIMS, dtype=np.float32)
        for tok in iter_tokens(text):
            v[zlib.crc32(tok.encode()) % DIMS] += 1.0
        return v

    def encode_many(self, texts: Sequence[str]) -> np.ndarray:
        return np.stack([self.vector(t) for t in texts])

    async def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        return self.vector(text)


class DownEmbedder:
    """Embedding provider whose model never loaded."""

    ready = False

    async def embed(self, text: str) -> np.ndarray:
        raise ProviderUnavailable("embedding", "model is not loaded")


class DownStore:
    """Knowledge/schedule store that is unreachable."""

    def __init__(self) -> None:
        self.calls = 0

    async def filtered_query(self, query, limit):
        self.calls += 1
        raise ProviderUnavailable("knowledge_store", "connection refused")

    async def vector_search(self, vector, k):
        self.calls += 1
        raise ProviderUnavailable("knowledge_store", "connection refused")

    async def keyword_query(self, terms, limit):
        self.calls += 1
        raise ProviderUnavailable("knowledge_store", "connection refused")


def make_chunk(
    id: str,
    text: str,
    section: str = "",
    type: str = "",
    category: str = "",
    keywords: Iterable[str] = (),
    metadata: Optional[Dict[str, Any]] = None,
    order: int = 0,
) -> ChunkRecord:
    return ChunkRecord(
        id=id,
        section=section,
        type=type,
        category=category,
        text=text,
        keywords=frozenset(k.lower() for k in keywords),
        metadata=dict(metadata or {}),
        order=order,
    )


def make_store(chunks: Sequence[ChunkRecord], embedder: Optional[HashingEmbedder] = None) -> InMemoryKnowledgeStore:
    embedder = embedder or HashingEmbedder()
    ordered = [dataclasses.replace(c, order=i) for i, c in enumerate(chunks)]
    return InMemoryKnowledgeStore(ordered, embeddings=embedder.encode_many([c.text for c in ordered]))


def make_event(id: str, title: str, date: dt.date, **kwargs: Any) -> ScheduleEvent:
    return ScheduleEvent(id=id, title=title, date=date, **kwargs)


def make_schedule(events: Sequence[ScheduleEvent], embedder: Optional[HashingEmbedder] = None) -> InMemoryScheduleStore:
    embedder = embedder or HashingEmbedder()
    with_vectors = [
        dataclasses.replace(e, embedding=tuple(embedder.vector(f"{e.title} {e.description}")), order=i)
        for i, e in enumerate(events)
    ]
    return InMemoryScheduleStore(with_vectors)


HYMN_CHUNKS = [
    # deliberately out of singing order and with uneven relevance
    make_chunk(
        "hymn-final",
        "University hymn final chorus: Davao Oriental State University, alma matter we sing",
        section="visionMission",
        type="hymn",
        metadata={"field": "identity.hymn.lyrics.finalChorus"},
    ),
    make_chunk(
        "hymn-v2",
        "Hymn verse two lyrics of the university",
        section="visionMission",
        type="hymn",
        metadata={"field": "identity.hymn.lyrics.verse2"},
    ),
    make_chunk(
        "hymn-chorus",
        "Hymn chorus lyrics: Davao Oriental State University hymn anthem chorus",
        section="visionMission",
        type="hymn",
        keywords=["hymn", "anthem"],
        metadata={"field": "identity.hymn.lyrics.chorus"},
    ),
    make_chunk(
        "hymn-v1",
        "Hymn verse one lyrics",
        section="visionMission",
        type="hymn",
        metadata={"field": "identity.hymn.lyrics.verse1"},
    ),
]

DEAN_CHUNKS = [
    make_chunk(
        f"dean-{code.lower()}",
        f"Dr. {first} {last} is the Dean of the {name} ({code}).",
        section="organizationalStructure/DOrSUOfficials2025",
        type="dean",
        metadata={"field": "organizationalStructure/DOrSUOfficials2025.deans", "facultyCode": code, "faculty": name},
    )
    for code, first, last, name in (
        ("FACET", "Gemma", "Valdez", "Faculty of Computing, Engineering, and Technology"),
        ("FALS", "Eleanor", "Vilela", "Faculty of Agriculture and Life Sciences"),
        ("FTED", "Rizaldy", "Maypa", "Faculty of Teacher Education"),
        ("FBM", "Danilo", "Jacobe", "Faculty of Business Management"),
        ("FCJE", "Rex", "Aparicio", "Faculty of Criminal Justice Education"),
        ("FNAHS", "Goriel", "Llanita", "Faculty of Nursing and Allied Health Sciences"),
        ("FHUSOCOM", "Michelle", "Tabotabo", "Faculty of Humanities, Social Sciences, and Communications"),
    )
]

GENERAL_CHUNKS = [
    make_chunk(
        "campus-library",
        "The campus library is open from eight in the morning until five in the afternoon on weekdays.",
        section="facilities",
        type="facility",
    ),
    make_chunk(
        "campus-clinic",
        "The campus clinic offers free consultations to enrolled students.",
        section="facilities",
        type="facility",
    ),
]

HISTORY_CHUNKS = [
    make_chunk(
        "hist-2018",
        "In 2018 the college was converted into Davao Oriental State University.",
        section="history",
        type="timeline_event",
        metadata={"year": 2018},
    ),
    make_chunk(
        "hist-1989",
        "In 1989 the institution was established as a state college.",
        section="history",
        type="timeline_event",
        metadata={"year": 1989},
    ),
    make_chunk(
        "hist-heritage",
        "Mount Hamiguitan is a UNESCO heritage site near the campus.",
        section="history",
        type="heritage_info",
    ),
]


class CannedStore:
    """Knowledge store answering every lookup with fixed hits."""

    def __init__(self, vector_hits=(), keyword_hits=()) -> None:
        self.vector_hits = list(vector_hits)
        self.keyword_hits = list(keyword_hits)

    async def filtered_query(self, query, limit):
        return []

    async def vector_search(self, vector, k):
        return self.vector_hits[:k]

    async def keyword_query(self, terms, limit):
        return self.keyword_hits[:limit]
