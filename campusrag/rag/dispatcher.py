"""
Route a classified query to its category's strategy.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from .categories import Category
from .embedding import EmbeddingProvider
from .retriever import SearchOptions, StrategyRun
from .store import KnowledgeStore, ScheduleStore
from .strategies import Strategy, build_strategies
from .strategies.base import StageContext
from .telemetry import build_payload, emit

logger = logging.getLogger(__name__)


class StrategyDispatcher:
    """Category -> Strategy lookup; unknown categories go to the general strategy."""

    def __init__(
        self,
        knowledge: KnowledgeStore,
        embedder: EmbeddingProvider,
        schedule: Optional[ScheduleStore] = None,
        strategies: Optional[Dict[Category, Strategy]] = None,
        stage_timeout: float = 3.0,
        timezone: str = "Asia/Manila",
    ) -> None:
        self.knowledge = knowledge
        self.embedder = embedder
        self.schedule = schedule
        self.strategies = strategies if strategies is not None else build_strategies()
        self.stage_timeout = stage_timeout
        self.tz = ZoneInfo(timezone)

    def strategy_for(self, category: Category) -> Strategy:
        strategy = self.strategies.get(category)
        if strategy is None:
            logger.debug("No strategy for %s, using general", category.value)
            strategy = self.strategies[Category.GENERAL]
        return strategy

    def today(self) -> dt.date:
        return dt.datetime.now(self.tz).date()

    def context(
        self,
        strategy: Strategy,
        query: str,
        options: SearchOptions,
        deadline: Optional[float] = None,
    ) -> StageContext:
        facts = strategy.analyze(query)
        max_results, max_sections = strategy.limits(options, facts)
        return StageContext(
            query=query,
            knowledge=self.knowledge,
            embedder=self.embedder,
            schedule=self.schedule,
            max_results=max_results,
            max_sections=max_sections,
            stage_timeout=self.stage_timeout,
            deadline=deadline,
            today=self.today(),
            facts=facts,
        )

    async def dispatch(
        self,
        query: str,
        category: Category,
        options: Optional[SearchOptions] = None,
        deadline: Optional[float] = None,
    ) -> StrategyRun:
        """Run the category's strategy. Never raises for stage failures."""
        strategy = self.strategy_for(category)
        ctx = self.context(strategy, query, options or SearchOptions(), deadline)
        run = await strategy.run(ctx)
        emit("strategy.completed", build_payload(query, run, result_count=len(run.results)), level=logging.DEBUG)
        return run
