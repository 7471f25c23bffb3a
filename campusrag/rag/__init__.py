"""
Retrieval module.

Category-aware retrieval over a read-only university knowledge snapshot:
- rule-table query classification with typo correction
- one strategy per category (structured, vector and keyword stages)
- coverage lookups for enumerable sub-entities
- ranking with category ordering policies
"""

from .categories import Category
from .classifier import QueryClassifier, classify
from .config import RetrievalConfig
from .dispatcher import StrategyDispatcher
from .embedding import EmbeddingCache, EmbeddingProvider, SentenceTransformerEmbedder
from .errors import ProviderUnavailable, RetrievalError, TotalRetrievalFailure, ValidationError
from .index import ChunkRecord, ScheduleEvent, load_chunks, load_events
from .merger import merge
from .ranker import ChronologicalOrder, PeriodDescending, PriorityFirst, StructuralOrder, assemble, rank
from .retriever import Retriever, SearchOptions, SearchOutcome, SearchResult, StrategyRun
from .service import SearchService
from .store import InMemoryKnowledgeStore, InMemoryScheduleStore, StructuredQuery
from .typo import TypoCorrector

__all__ = [
    "Category",
    "QueryClassifier",
    "classify",
    "RetrievalConfig",
    "StrategyDispatcher",
    "EmbeddingCache",
    "EmbeddingProvider",
    "SentenceTransformerEmbedder",
    "ProviderUnavailable",
    "RetrievalError",
    "TotalRetrievalFailure",
    "ValidationError",
    "ChunkRecord",
    "ScheduleEvent",
    "load_chunks",
    "load_events",
    "merge",
    "ChronologicalOrder",
    "PeriodDescending",
    "PriorityFirst",
    "StructuralOrder",
    "assemble",
    "rank",
    "Retriever",
    "SearchOptions",
    "SearchOutcome",
    "SearchResult",
    "StrategyRun",
    "SearchService",
    "InMemoryKnowledgeStore",
    "InMemoryScheduleStore",
    "StructuredQuery",
    "TypoCorrector",
]
