"""
FastAPI application for the retrieval API.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campusrag.logging_config import setup_logging
from campusrag.rag import RetrievalConfig

from .deps import build_search_service
from .routes import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load snapshots and build the search service on startup; clear on shutdown."""
    config = RetrievalConfig.from_env()
    setup_logging(config.log_level)
    service, chunks_loaded, events_loaded, embedder = build_search_service(config)
    app.state.service = service
    app.state.chunks_loaded = chunks_loaded
    app.state.events_loaded = events_loaded
    app.state.embedder = embedder
    yield
    if embedder is not None:
        embedder.cache.clear()
    app.state.service = None


app = FastAPI(
    title="campusrag API",
    description="Category-aware retrieval over a university knowledge snapshot",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.include_router(router)
