"""
Request and response models for the retrieval API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    """Request body for POST /api/search."""

    query: str = Field(..., min_length=1, description="User question")
    max_results: Optional[int] = Field(None, ge=1, le=200, description="Candidate pool per stage")
    max_sections: Optional[int] = Field(None, ge=1, le=200, description="Maximum results returned")
    query_type: Optional[str] = Field(None, description="Force a category instead of classifying")


class SearchHit(BaseModel):
    """Single search result."""

    id: str
    section: str
    type: str
    text: str
    score: float
    category: str = ""
    source_tag: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    """Response for POST /api/search."""

    query: str
    corrected_query: str
    category: str
    degraded: bool = False
    fallback_used: bool = False
    results: List[SearchHit] = Field(default_factory=list)


class ClassifyRequest(BaseModel):
    """Request body for POST /api/classify."""

    query: str = Field(..., min_length=1)


class ClassifyResponse(BaseModel):
    """Response for POST /api/classify."""

    query: str
    category: str
    rule: Optional[str] = None


class CategoryRule(BaseModel):
    """One entry of the ordered classification table."""

    position: int
    rule: str
    category: str


class CategoriesResponse(BaseModel):
    """Response for GET /api/categories."""

    default: str
    rules: List[CategoryRule] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    status: str = "ok"
    chunks_loaded: int = 0
    events_loaded: int = 0
    embedder_ready: bool = False
