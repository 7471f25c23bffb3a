"""
SearchService: the retrieval entry point.

validate -> typo-correct -> classify -> dispatch (under a deadline) ->
general fallback -> rank -> assemble.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Tuple

from .categories import Category
from .classifier import QueryClassifier, Rule
from .dispatcher import StrategyDispatcher
from .errors import TotalRetrievalFailure, ValidationError
from .ranker import assemble, rank
from .retriever import SearchOptions, SearchOutcome, StrategyRun
from .telemetry import build_payload, emit
from .typo import TypoCorrector

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_SECONDS = 5.0
DEFAULT_MAX_QUERY_LENGTH = 500
# grace period for the outer backstop beyond the per-stage deadline
_BACKSTOP_GRACE = 0.5


def _check_total_failure(runs, category: Category) -> None:
    if runs and all(r.all_failed for r in runs):
        raise TotalRetrievalFailure(f"every stage failed for {category.value}")


class SearchService:
    """Answers ``search(query, options)`` with ranked, bounded evidence."""

    def __init__(
        self,
        dispatcher: StrategyDispatcher,
        classifier: Optional[QueryClassifier] = None,
        typo_corrector: Optional[TypoCorrector] = None,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        max_query_length: int = DEFAULT_MAX_QUERY_LENGTH,
        default_options: Optional[SearchOptions] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.classifier = classifier or QueryClassifier()
        self.typo_corrector = typo_corrector
        self.deadline_seconds = deadline_seconds
        self.max_query_length = max_query_length
        self.default_options = default_options or SearchOptions()

    # --- steps ---

    def validate(self, query: str, options: SearchOptions) -> str:
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string")
        q = query.strip()
        if len(q) > self.max_query_length:
            raise ValidationError(f"query exceeds {self.max_query_length} characters")
        for name in ("max_results", "max_sections"):
            value = getattr(options, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
                raise ValidationError(f"{name} must be a positive integer")
        if options.query_type is not None and not isinstance(options.query_type, Category):
            if not isinstance(options.query_type, str):
                raise ValidationError(f"query_type must be a category name, got {type(options.query_type).__name__}")
            try:
                options.query_type = Category.parse(options.query_type)
            except ValueError as e:
                raise ValidationError(f"unknown query_type: {options.query_type!r}") from e
        return q

    def correct(self, query: str) -> Tuple[str, bool]:
        if self.typo_corrector is None:
            return query, False
        try:
            return self.typo_corrector.correct(query)
        except Exception as e:
            logger.warning("Typo correction failed, using raw query: %s", e)
            return query, False

    def classify(self, query: str) -> Tuple[Category, Optional[Rule]]:
        rule = self.classifier.match(query)
        return (rule.category if rule is not None else self.classifier.default), rule

    def _options(self, options: Optional[SearchOptions]) -> SearchOptions:
        """Caller options with unset bounds taken from the service defaults."""
        options = options or SearchOptions()
        defaults = self.default_options
        return SearchOptions(
            max_results=options.max_results if options.max_results is not None else defaults.max_results,
            max_sections=options.max_sections if options.max_sections is not None else defaults.max_sections,
            query_type=options.query_type,
        )

    async def _dispatch(
        self,
        query: str,
        category: Category,
        options: SearchOptions,
        deadline: float,
    ) -> StrategyRun:
        loop = asyncio.get_running_loop()
        timeout = max(0.0, deadline - loop.time()) + _BACKSTOP_GRACE
        try:
            return await asyncio.wait_for(
                self.dispatcher.dispatch(query, category, options, deadline=deadline),
                timeout,
            )
        except asyncio.TimeoutError:
            source = self.dispatcher.strategy_for(category).source
            name = f"{source}.deadline"
            logger.warning("Strategy %s exceeded the query deadline", source)
            return StrategyRun(category=category, attempted_stages=[name], failed_stages=[name])

    # --- entry point ---

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> SearchOutcome:
        """
        Search for evidence matching the query.

        Raises ValidationError for bad input. Store and provider failures
        never raise: they yield fewer results and ``degraded=True``.
        """
        options = self._options(options)
        q = self.validate(query, options)
        start = time.perf_counter()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.deadline_seconds

        corrected, had_corrections = self.correct(q)
        if options.query_type is not None:
            category = options.query_type
        else:
            category, _ = self.classify(corrected)

        run = await self._dispatch(corrected, category, options, deadline)
        runs = [run]
        fallback_used = False
        if not run.results and category != Category.GENERAL and loop.time() < deadline:
            logger.info("No results for %s, falling back to general", category.value)
            fallback = await self._dispatch(corrected, Category.GENERAL, options, deadline)
            runs.append(fallback)
            fallback_used = True
            run = fallback

        failed = [s for r in runs for s in r.failed_stages]
        timings = {k: v for r in runs for k, v in r.stage_timings.items()}
        results = assemble(rank(run.results, run.ordering), run.max_sections)

        try:
            _check_total_failure(runs, category)
        except TotalRetrievalFailure as e:
            logger.warning("%s", e)
            results = []

        outcome = SearchOutcome(
            query=q,
            results=results,
            category=category,
            corrected_query=corrected,
            had_corrections=had_corrections,
            degraded=bool(failed),
            fallback_used=fallback_used,
            failed_stages=failed,
            stage_timings=timings,
        )

        summary = StrategyRun(
            category=category,
            stage_counts={k: v for r in runs for k, v in r.stage_counts.items()},
            stage_timings=timings,
            failed_stages=failed,
        )
        emit(
            "search.completed",
            build_payload(
                q,
                summary,
                fallback_used=fallback_used,
                elapsed_ms=round((time.perf_counter() - start) * 1000, 2),
                result_count=len(results),
            ),
            log=logger,
        )
        return outcome
