"""
Shared shape of every retrieval strategy.

A strategy runs up to three stages concurrently:

1. a structured lookup (``KnowledgeStore.filtered_query``) scored from a
   base of 100 plus store relevance plus the strategy's boosts;
2. a vector lookup filtered to the category's domain markers, scored from
   a floor of 50 plus half the store similarity;
3. a keyword lookup, merged only when stages 1 and 2 together found fewer
   results than the strategy's threshold. Keyword scores stay below 50.

After the join a coverage step issues targeted lookups for required
sub-entities that are still missing. Every stage and coverage lookup is
isolated: a failure or timeout is logged and recorded, never raised.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..categories import Category
from ..embedding import EmbeddingProvider
from ..merger import merge_into
from ..ranker import Ordering
from ..retriever import SearchOptions, SearchResult, StrategyRun
from ..store import KnowledgeStore, ScheduleStore, StoreHit, StructuredQuery, iter_tokens

logger = logging.getLogger(__name__)

STRUCTURED_BASE = 100.0
KEYWORD_CEILING = 50.0
KEYWORD_HALF = 25.0
RECENCY_BOOST = 10.0


@dataclass
class StageContext:
    """Per-query inputs shared by the stages of one strategy run."""

    query: str
    knowledge: KnowledgeStore
    embedder: EmbeddingProvider
    schedule: Optional[ScheduleStore] = None
    max_results: int = 10
    max_sections: int = 10
    stage_timeout: float = 3.0
    deadline: Optional[float] = None
    today: dt.date = field(default_factory=dt.date.today)
    facts: Dict[str, Any] = field(default_factory=dict)

    def time_left(self) -> float:
        """Seconds a stage may take: the stage timeout, cut short by the query deadline."""
        timeout = self.stage_timeout
        if self.deadline is not None:
            timeout = min(timeout, self.deadline - asyncio.get_running_loop().time())
        return timeout


@dataclass(frozen=True)
class CoverageLookup:
    """A targeted lookup for a missing sub-entity, force-included at ``score``."""

    name: str
    query: StructuredQuery
    score: Union[float, Callable[[Any], float]]
    limit: int = 50
    target: str = "knowledge"

    def score_for(self, record: Any) -> float:
        return self.score(record) if callable(self.score) else float(self.score)


def vector_score(relevance: float) -> float:
    """Map a store similarity in [0, 100] onto [KEYWORD_CEILING, 100]."""
    return KEYWORD_CEILING + max(0.0, relevance) * (STRUCTURED_BASE - KEYWORD_CEILING) / 100.0


def keyword_score(relevance: float) -> float:
    """Squash a raw keyword relevance into [0, KEYWORD_CEILING)."""
    if relevance <= 0:
        return 0.0
    return KEYWORD_CEILING * relevance / (relevance + KEYWORD_HALF)


def text_of(record: Any) -> str:
    return (getattr(record, "text", "") or "").lower()


def field_of(record: Any) -> str:
    return str(record.metadata.get("field") or "").lower() if hasattr(record, "metadata") else ""


def lower(value: Any) -> str:
    return str(value or "").lower()


def recency(record: Any) -> float:
    meta = getattr(record, "metadata", None) or {}
    return RECENCY_BOOST if meta.get("updated_at") else 0.0


class Strategy:
    """Base retrieval strategy; subclasses override the hooks they need."""

    category: Category = Category.GENERAL
    source: str = "general"
    default_max_results: int = 10
    default_max_sections: int = 10
    uses_structured: bool = True

    # --- hooks ---

    def analyze(self, query: str) -> Dict[str, Any]:
        """Query facts the other hooks read from ``ctx.facts``."""
        return {}

    def limits(self, options: SearchOptions, facts: Dict[str, Any]) -> Tuple[int, int]:
        max_results = options.max_results or self.default_max_results
        max_sections = options.max_sections or self.default_max_sections
        return max_results, max_sections

    def structured(self, ctx: StageContext) -> Optional[StructuredQuery]:
        return None

    def boost(self, record: Any, ctx: StageContext) -> float:
        return recency(record)

    def vector_text(self, ctx: StageContext) -> str:
        return ctx.query

    def keep_vector(self, record: Any, ctx: StageContext) -> bool:
        return True

    def vector_boost(self, record: Any, ctx: StageContext) -> float:
        return 0.0

    def keyword_threshold(self, ctx: StageContext) -> int:
        return ctx.max_sections

    def keep_keyword(self, record: Any, ctx: StageContext) -> bool:
        return True

    def coverage(self, ctx: StageContext, found: Sequence[SearchResult]) -> List[CoverageLookup]:
        return []

    def post_filter(self, results: List[SearchResult], ctx: StageContext) -> List[SearchResult]:
        return results

    def ordering(self, ctx: StageContext) -> Optional[Ordering]:
        return None

    # --- stages ---

    async def structured_stage(self, ctx: StageContext) -> List[SearchResult]:
        sq = self.structured(ctx)
        if sq is None:
            return []
        hits = await ctx.knowledge.filtered_query(sq, ctx.max_results * 2)
        return [
            SearchResult.from_chunk(
                h.record,
                STRUCTURED_BASE + h.relevance + self.boost(h.record, ctx),
                f"{self.source}_structured",
            )
            for h in hits
        ]

    async def vector_stage(self, ctx: StageContext) -> List[SearchResult]:
        vec = await ctx.embedder.embed(self.vector_text(ctx))
        hits = await ctx.knowledge.vector_search(vec, ctx.max_results * 2)
        return [
            SearchResult.from_chunk(
                h.record, vector_score(h.relevance) + self.vector_boost(h.record, ctx), f"{self.source}_vector"
            )
            for h in hits
            if self.keep_vector(h.record, ctx)
        ]

    async def keyword_stage(self, ctx: StageContext) -> List[SearchResult]:
        terms = list(iter_tokens(ctx.query))
        if not terms:
            return []
        hits = await ctx.knowledge.keyword_query(terms, ctx.max_sections)
        return [
            SearchResult.from_chunk(h.record, keyword_score(h.relevance), f"{self.source}_keyword")
            for h in hits
            if self.keep_keyword(h.record, ctx)
        ]

    # --- orchestration ---

    async def _guarded(
        self,
        name: str,
        stage: Callable[[], Awaitable[List[SearchResult]]],
        ctx: StageContext,
        run: StrategyRun,
    ) -> List[SearchResult]:
        run.attempted_stages.append(name)
        start = time.perf_counter()
        try:
            timeout = ctx.time_left()
            if timeout <= 0:
                raise asyncio.TimeoutError()
            results = await asyncio.wait_for(stage(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Stage %s timed out", name)
            run.failed_stages.append(name)
            return []
        except Exception as e:
            logger.warning("Stage %s failed: %s", name, e)
            run.failed_stages.append(name)
            return []
        finally:
            run.stage_timings[name] = round((time.perf_counter() - start) * 1000, 2)
        run.stage_counts[name] = len(results)
        logger.debug("Stage %s returned %d results", name, len(results))
        return results

    @staticmethod
    def _settle(run: StrategyRun) -> None:
        """Put stage bookkeeping in declaration order; stages finish in any order."""
        position = {name: i for i, name in enumerate(run.attempted_stages)}
        run.failed_stages.sort(key=lambda name: position.get(name, len(position)))
        run.stage_counts = {n: run.stage_counts[n] for n in run.attempted_stages if n in run.stage_counts}
        run.stage_timings = {n: run.stage_timings[n] for n in run.attempted_stages if n in run.stage_timings}

    async def _coverage_lookup(self, lookup: CoverageLookup, ctx: StageContext) -> List[SearchResult]:
        if lookup.target == "schedule":
            if ctx.schedule is None:
                return []
            hits: List[StoreHit] = await ctx.schedule.filtered_query(lookup.query, lookup.limit)
            return [
                SearchResult.from_event(h.record, lookup.score_for(h.record), f"{self.source}_coverage")
                for h in hits
            ]
        hits = await ctx.knowledge.filtered_query(lookup.query, lookup.limit)
        return [
            SearchResult.from_chunk(h.record, lookup.score_for(h.record), f"{self.source}_coverage")
            for h in hits
        ]

    async def run(self, ctx: StageContext) -> StrategyRun:
        run = StrategyRun(category=self.category, max_sections=ctx.max_sections)

        stages = []
        if self.uses_structured:
            stages.append(("structured", lambda: self.structured_stage(ctx)))
        stages.append(("vector", lambda: self.vector_stage(ctx)))
        stages.append(("keyword", lambda: self.keyword_stage(ctx)))

        names = [name for name, _ in stages]
        outputs = await asyncio.gather(
            *(self._guarded(f"{self.source}.{name}", fn, ctx, run) for name, fn in stages)
        )
        by_stage = dict(zip(names, outputs))

        merged: Dict[str, SearchResult] = {}
        merge_into(merged, by_stage.get("structured", []))
        merge_into(merged, by_stage.get("vector", []))
        if len(merged) < self.keyword_threshold(ctx):
            merge_into(merged, by_stage.get("keyword", []))

        lookups = self.coverage(ctx, list(merged.values()))
        if lookups:
            covered = await asyncio.gather(
                *(
                    self._guarded(
                        f"{self.source}.coverage.{lk.name}",
                        (lambda lk=lk: self._coverage_lookup(lk, ctx)),
                        ctx,
                        run,
                    )
                    for lk in lookups
                )
            )
            for items in covered:
                merge_into(merged, items)

        self._settle(run)
        run.results = self.post_filter(list(merged.values()), ctx)
        run.ordering = self.ordering(ctx)
        if run.all_failed:
            logger.warning("All %d stages of %s failed", len(run.attempted_stages), self.source)
        return run
