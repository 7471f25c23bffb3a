"""
Default strategies: plain vector search topped up with keyword matches.
"""

from __future__ import annotations

from ..categories import Category
from .base import Strategy


class GeneralStrategy(Strategy):
    """Fallback for queries no rule matched, and for empty category results."""

    category = Category.GENERAL
    source = "general"
    uses_structured = False


class ComprehensiveStrategy(Strategy):
    """Listing queries ("list all ...") that want broad coverage."""

    category = Category.COMPREHENSIVE
    source = "comprehensive"
    default_max_results = 30
    default_max_sections = 30
    uses_structured = False
