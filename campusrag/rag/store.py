"""
Read-only knowledge and schedule stores.

Strategies talk to stores through the KnowledgeStore / ScheduleStore protocols.
The in-memory implementations below evaluate StructuredQuery objects in
process, rank vectors by cosine similarity over a numpy matrix and score
keyword queries with BM25 plus substring matching.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, FrozenSet, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
from rank_bm25 import BM25Okapi

from .errors import ProviderUnavailable
from .index import ChunkRecord, ScheduleEvent, load_chunks, load_events

logger = logging.getLogger(__name__)

Record = Union[ChunkRecord, ScheduleEvent]

TOKEN_RE = re.compile(r"[A-Za-z0-9_]+")

STOPWORDS = {
    "the", "a", "an", "and", "or", "of", "in", "on", "for", "to",
    "is", "are", "be", "as", "that", "this", "these", "those",
    "with", "by", "at", "from", "it", "its", "what", "who", "when",
    "where", "how", "which", "tell", "me", "about", "dorsu",
}


def iter_tokens(text: str) -> Iterable[str]:
    """Lowercased word tokens with short words and stopwords removed."""
    for match in TOKEN_RE.finditer(text.lower()):
        tok = match.group(0)
        if len(tok) <= 2 or tok in STOPWORDS:
            continue
        yield tok


# --- Structured queries ---


@dataclass(frozen=True)
class MatchClause:
    """
    A predicate on one record field.

    Either ``pattern`` (regex searched in the field's string form, or in any
    element when the field is a collection) or ``terms`` (membership of the
    lowercased value, or intersection for collections) must be given.
    """

    field: str
    pattern: Optional[re.Pattern] = None
    terms: Optional[FrozenSet[str]] = None

    def matches(self, record: Record) -> bool:
        value = record.field_value(self.field)
        if value is None:
            return False
        if isinstance(value, (set, frozenset, list, tuple)):
            items = [str(v).lower() for v in value]
            if self.terms is not None:
                return any(i in self.terms for i in items)
            return self.pattern is not None and any(self.pattern.search(i) for i in items)
        text = str(value)
        if self.terms is not None:
            return text.lower() in self.terms
        return self.pattern is not None and self.pattern.search(text) is not None


@dataclass(frozen=True)
class AnyOf:
    """Matches when at least one of the grouped clauses matches."""

    clauses: Tuple[Any, ...]

    def matches(self, record: Record) -> bool:
        return any(c.matches(record) for c in self.clauses)


@dataclass(frozen=True)
class AllOf:
    """Matches when every grouped clause matches."""

    clauses: Tuple[Any, ...]

    def matches(self, record: Record) -> bool:
        return all(c.matches(record) for c in self.clauses)


Clause = Union[MatchClause, AnyOf, AllOf]


def field_matches(field: str, pattern: str, flags: int = re.I) -> MatchClause:
    return MatchClause(field=field, pattern=re.compile(pattern, flags))


def field_in(field: str, terms: Iterable[str]) -> MatchClause:
    return MatchClause(field=field, terms=frozenset(str(t).lower() for t in terms))


def any_of(*clauses: Clause) -> AnyOf:
    return AnyOf(tuple(clauses))


def all_of(*clauses: Clause) -> AllOf:
    return AllOf(tuple(clauses))


@dataclass(frozen=True)
class ScoreClause:
    """Adds ``weight`` to a candidate's relevance when ``clause`` matches."""

    clause: Clause
    weight: float


def scored(clause: Clause, weight: float) -> ScoreClause:
    return ScoreClause(clause, weight)


@dataclass(frozen=True)
class StructuredQuery:
    """
    A filtered lookup.

    A record is a candidate if it matches at least one ``any_of`` clause (or
    ``any_of`` is empty), every ``all_of`` clause, no ``exclude`` clause, and
    falls inside ``date_window`` when one is given. Its relevance is the sum
    of the weights of matching ``scoring`` clauses.
    """

    any_of: Tuple[Clause, ...] = ()
    all_of: Tuple[Clause, ...] = ()
    exclude: Tuple[Clause, ...] = ()
    scoring: Tuple[ScoreClause, ...] = ()
    date_window: Optional[Tuple[dt.date, dt.date]] = None

    def accepts(self, record: Record) -> bool:
        if self.any_of and not any(c.matches(record) for c in self.any_of):
            return False
        if not all(c.matches(record) for c in self.all_of):
            return False
        if any(c.matches(record) for c in self.exclude):
            return False
        if self.date_window is not None:
            if not isinstance(record, ScheduleEvent):
                return False
            return record.overlaps(*self.date_window)
        return True

    def relevance(self, record: Record) -> float:
        return float(sum(s.weight for s in self.scoring if s.clause.matches(record)))

    def restricted(self, *clauses: Clause) -> "StructuredQuery":
        """Copy of this query with extra required clauses."""
        return dataclasses.replace(self, all_of=self.all_of + tuple(clauses))


@dataclass(frozen=True)
class StoreHit:
    """A record returned by a store together with its store-side relevance."""

    record: Any
    relevance: float


# --- Protocols ---


class KnowledgeStore(Protocol):
    async def filtered_query(self, query: StructuredQuery, limit: int) -> List[StoreHit]:
        ...

    async def vector_search(self, vector: np.ndarray, k: int) -> List[StoreHit]:
        """Nearest chunks, relevance is cosine similarity scaled to 0-100."""
        ...

    async def keyword_query(self, terms: Sequence[str], limit: int) -> List[StoreHit]:
        ...


class ScheduleStore(Protocol):
    async def filtered_query(self, query: StructuredQuery, limit: int) -> List[StoreHit]:
        ...

    async def vector_search(self, vector: np.ndarray, k: int) -> List[StoreHit]:
        ...


# --- In-memory implementations ---


def _embedding_matrix(records: Sequence[Record]) -> Optional[np.ndarray]:
    if not records or any(r.embedding is None for r in records):
        return None
    emb = np.asarray([r.embedding for r in records], dtype=np.float32)
    norms = np.linalg.norm(emb, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return emb / norms


def _cosine_top_k(
    matrix: Optional[np.ndarray],
    records: Sequence[Record],
    vector: np.ndarray,
    k: int,
    name: str,
) -> List[StoreHit]:
    if matrix is None:
        raise ProviderUnavailable(name, "no embeddings loaded")
    q = np.asarray(vector, dtype=np.float32).reshape(-1)
    if q.shape[0] != matrix.shape[1]:
        raise ProviderUnavailable(name, f"query dimension {q.shape[0]} != index dimension {matrix.shape[1]}")
    n = float(np.linalg.norm(q))
    if n == 0:
        return []
    sims = matrix @ (q / n)
    # stable sort keeps ingestion order for equal similarities
    idxs = np.argsort(-sims, kind="stable")[: max(0, k)]
    return [StoreHit(records[int(i)], max(0.0, float(sims[i])) * 100.0) for i in idxs]


def _filter(records: Sequence[Record], query: StructuredQuery, limit: int) -> List[StoreHit]:
    hits = [StoreHit(r, query.relevance(r)) for r in records if query.accepts(r)]
    hits.sort(key=lambda h: (-h.relevance, h.record.order))
    return hits[: max(0, limit)]


class InMemoryKnowledgeStore:
    """KnowledgeStore over an immutable list of chunks."""

    def __init__(self, chunks: Sequence[ChunkRecord], embeddings: Optional[np.ndarray] = None) -> None:
        self.chunks: List[ChunkRecord] = list(chunks)
        if embeddings is not None:
            if len(embeddings) != len(self.chunks):
                raise ValueError("embeddings and chunks differ in length")
            emb = np.asarray(embeddings, dtype=np.float32)
            norms = np.linalg.norm(emb, axis=1, keepdims=True)
            norms[norms == 0] = 1.0
            self.embeddings: Optional[np.ndarray] = emb / norms
        else:
            self.embeddings = _embedding_matrix(self.chunks)
        self._tokens = [list(iter_tokens(c.text)) for c in self.chunks]
        self._bm25 = BM25Okapi(self._tokens) if any(self._tokens) else None

    @classmethod
    def from_path(cls, path: Path | None = None, embedder=None) -> "InMemoryKnowledgeStore":
        """Load a JSONL snapshot, embedding chunk texts with ``embedder`` when the snapshot has none."""
        chunks = load_chunks(path)
        embeddings = None
        if chunks and any(c.embedding is None for c in chunks) and embedder is not None and embedder.ready:
            logger.info("Embedding %d chunks without stored vectors", len(chunks))
            embeddings = embedder.encode_many([c.text for c in chunks])
        return cls(chunks, embeddings=embeddings)

    def __len__(self) -> int:
        return len(self.chunks)

    @property
    def has_vectors(self) -> bool:
        return self.embeddings is not None

    async def filtered_query(self, query: StructuredQuery, limit: int) -> List[StoreHit]:
        return _filter(self.chunks, query, limit)

    async def vector_search(self, vector: np.ndarray, k: int) -> List[StoreHit]:
        return _cosine_top_k(self.embeddings, self.chunks, vector, k, "knowledge_store")

    async def keyword_query(self, terms: Sequence[str], limit: int) -> List[StoreHit]:
        """
        Score chunks by keyword evidence.

        +50 when the whole phrase occurs in the text, +2 per whole-word
        occurrence of each term, +5 per chunk keyword overlapping a term,
        plus the BM25 score of the terms.
        """
        words = [t.lower() for t in terms if t and len(t) > 2]
        if not words:
            return []
        phrase = " ".join(words)
        patterns = [re.compile(rf"\b{re.escape(w)}\b") for w in words]
        bm25 = self._bm25.get_scores(words) if self._bm25 is not None else np.zeros(len(self.chunks))
        hits: List[StoreHit] = []
        for i, chunk in enumerate(self.chunks):
            text = chunk.text.lower()
            score = 0.0
            if len(words) > 1 and phrase in text:
                score += 50
            for p in patterns:
                score += 2 * len(p.findall(text))
            for kw in chunk.keywords:
                if any(w in kw or kw in w for w in words):
                    score += 5
            if score <= 0:
                continue
            score += max(0.0, float(bm25[i]))
            hits.append(StoreHit(chunk, score))
        hits.sort(key=lambda h: (-h.relevance, h.record.order))
        return hits[: max(0, limit)]


class InMemoryScheduleStore:
    """ScheduleStore over an immutable list of events."""

    def __init__(self, events: Sequence[ScheduleEvent], embeddings: Optional[np.ndarray] = None) -> None:
        self.events: List[ScheduleEvent] = list(events)
        if embeddings is not None:
            if len(embeddings) != len(self.events):
                raise ValueError("embeddings and events differ in length")
            self.events = [
                dataclasses.replace(e, embedding=tuple(float(x) for x in row)) for e, row in zip(self.events, embeddings)
            ]
        self.embeddings = _embedding_matrix(self.events)

    @classmethod
    def from_path(cls, path: Path | None = None, embedder=None) -> "InMemoryScheduleStore":
        """Load a JSONL snapshot, embedding "title description" when the snapshot has no vectors."""
        events = load_events(path)
        embeddings = None
        if events and any(e.embedding is None for e in events) and embedder is not None and embedder.ready:
            logger.info("Embedding %d events without stored vectors", len(events))
            embeddings = embedder.encode_many([f"{e.title} {e.description}".strip() for e in events])
        return cls(events, embeddings=embeddings)

    def __len__(self) -> int:
        return len(self.events)

    async def filtered_query(self, query: StructuredQuery, limit: int) -> List[StoreHit]:
        hits = [StoreHit(e, query.relevance(e)) for e in self.events if query.accepts(e)]
        hits.sort(key=lambda h: (-h.relevance, h.record.sort_date or dt.date.max, h.record.order))
        return hits[: max(0, limit)]

    async def vector_search(self, vector: np.ndarray, k: int) -> List[StoreHit]:
        return _cosine_top_k(self.embeddings, self.events, vector, k, "schedule_store")
