"""
Dollar estimates for a research request.

Token costs use the per-1K rates of the synthesis tier; search costs are a
flat rate per search call. These are approximations for usage reporting,
not billing figures.
"""

from __future__ import annotations

import math
from typing import Optional

from revintel.core.config import TierPricing

DEFAULT_SEARCH_ESTIMATE = 5
CITATIONS_PER_SEARCH = 3


def estimate_searches_performed(citation_count: int) -> int:
    """
    Approximate how many web searches a search-capable model ran.

    Heuristic proxy, not telemetry: assumes roughly three citations per
    search and falls back to a flat guess when nothing was cited.
    """
    if citation_count <= 0:
        return DEFAULT_SEARCH_ESTIMATE
    return math.ceil(citation_count / CITATIONS_PER_SEARCH)


def resolve_searches_performed(
    counted_calls: Optional[int], citation_count: int
) -> int:
    """Prefer a real call counter; fall back to the citation-based estimate."""
    if counted_calls is not None:
        return counted_calls
    return estimate_searches_performed(citation_count)


def estimate_cost(
    input_tokens: int,
    output_tokens: int,
    searches_performed: int,
    pricing: TierPricing,
    search_rate: float,
) -> float:
    """Estimated USD cost of one request."""
    token_cost = (input_tokens / 1000) * pricing.input_per_1k + (
        output_tokens / 1000
    ) * pricing.output_per_1k
    return token_cost + searches_performed * search_rate
