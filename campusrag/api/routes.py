"""
API routes: health, search, classify, categories.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from campusrag.rag import Category, SearchOptions, ValidationError
from campusrag.rag.classifier import RULES, QueryClassifier

from .models import (
    CategoriesResponse,
    CategoryRule,
    ClassifyRequest,
    ClassifyResponse,
    HealthResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
)

router = APIRouter(prefix="/api", tags=["api"])

_UNAVAILABLE = {"detail": "Service unavailable: knowledge snapshot not loaded or service not initialized."}


def _get_state(request: Request) -> tuple[Any, int, int, Any]:
    service = getattr(request.app.state, "service", None)
    chunks_loaded = getattr(request.app.state, "chunks_loaded", 0)
    events_loaded = getattr(request.app.state, "events_loaded", 0)
    embedder = getattr(request.app.state, "embedder", None)
    return service, chunks_loaded, events_loaded, embedder


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check."""
    _, chunks_loaded, events_loaded, embedder = _get_state(request)
    return HealthResponse(
        status="ok",
        chunks_loaded=chunks_loaded,
        events_loaded=events_loaded,
        embedder_ready=bool(getattr(embedder, "ready", False)),
    )


@router.post("/search", response_model=SearchResponse)
async def search_endpoint(request: Request, body: SearchRequest) -> SearchResponse | JSONResponse:
    """Category-aware search."""
    service, chunks_loaded, _, _ = _get_state(request)
    if service is None or chunks_loaded == 0:
        return JSONResponse(status_code=503, content=_UNAVAILABLE)
    options = SearchOptions(
        max_results=body.max_results,
        max_sections=body.max_sections,
        query_type=body.query_type,  # parsed and validated by the service
    )
    try:
        outcome = await service.search(body.query, options)
    except ValidationError as e:
        return JSONResponse(status_code=422, content={"detail": str(e)})
    hits = [
        SearchHit(
            id=r.id,
            section=r.section,
            type=r.type,
            text=r.text,
            score=round(r.score, 4),
            category=r.category,
            source_tag=r.source_tag,
            metadata=r.metadata,
        )
        for r in outcome.results
    ]
    return SearchResponse(
        query=outcome.query,
        corrected_query=outcome.corrected_query,
        category=outcome.category.value,
        degraded=outcome.degraded,
        fallback_used=outcome.fallback_used,
        results=hits,
    )


@router.post("/classify", response_model=ClassifyResponse)
async def classify_endpoint(request: Request, body: ClassifyRequest) -> ClassifyResponse | JSONResponse:
    """Classify a query without retrieving anything."""
    service, _, _, _ = _get_state(request)
    if not body.query.strip():
        return JSONResponse(status_code=422, content={"detail": "query must be a non-empty string"})
    if service is not None:
        category, rule = service.classify(body.query)
    else:
        classifier = QueryClassifier()
        rule = classifier.match(body.query)
        category = rule.category if rule is not None else classifier.default
    return ClassifyResponse(query=body.query, category=category.value, rule=rule.name if rule else None)


@router.get("/categories", response_model=CategoriesResponse)
async def categories() -> CategoriesResponse:
    """The ordered classification table; the first matching rule wins."""
    return CategoriesResponse(
        default=Category.GENERAL.value,
        rules=[CategoryRule(position=i, rule=r.name, category=r.category.value) for i, r in enumerate(RULES)],
    )
