"""
Error taxonomy for the retrieval core.
"""

from __future__ import annotations


class RetrievalError(Exception):
    """Base class for retrieval errors."""


class ValidationError(RetrievalError):
    """Empty or invalid query/options. Surfaced to the caller immediately."""


class ProviderUnavailable(RetrievalError):
    """An embedding or store call failed or timed out."""

    def __init__(self, provider: str, message: str = "") -> None:
        self.provider = provider
        super().__init__(f"{provider} unavailable: {message}" if message else f"{provider} unavailable")


class TotalRetrievalFailure(RetrievalError):
    """Every stage of a strategy run failed.

    Only used to mark a run internally; SearchService turns it into an empty,
    degraded outcome instead of raising.
    """
