"""
Budgeted, failure-isolated execution of the research query plan.

Queries run one at a time, in order. Each one either spends a call from the
request's budget or is recorded as skipped; a provider error on one query is
captured in that query's result and never stops the rest of the batch.
"""

from __future__ import annotations

import time
from datetime import date
from typing import List, Optional, Protocol, Sequence

import structlog

from revintel.core.exceptions import BudgetExceededError, ConfigurationError, QueryFailure
from revintel.core.models import DatePrecision, ResearchDepth, ResearchRequest
from revintel.intelligence.budget import CallBudgetTracker
from revintel.intelligence.evidence import EvidenceEnricher
from revintel.intelligence.research_models import (
    BatchSearchResult,
    EnrichedEvidence,
    EvidenceQuality,
    RawSearchHit,
)

logger = structlog.get_logger(__name__)

SEARCH_DEPTH_BY_RESEARCH_DEPTH = {
    ResearchDepth.STANDARD: "basic",
    ResearchDepth.DEEP: "advanced",
}

FRESHNESS_BY_PRECISION = {
    DatePrecision.EXACT: 1.0,
    DatePrecision.MONTH: 0.8,
    DatePrecision.QUARTER: 0.6,
    DatePrecision.YEAR: 0.4,
}


class SearchProvider(Protocol):
    async def search(
        self, query: str, *, search_depth: str = "basic", max_results: int = 3
    ) -> List[RawSearchHit]: ...


def build_research_queries(
    request: ResearchRequest, reference_year: Optional[int] = None
) -> List[str]:
    """
    Build the fixed, ordered query plan for an entity.

    Firmographics and business-database profiles come first so that a tight
    budget still covers the basics; a ``site:`` query is appended when the
    caller supplied the entity's site.
    """
    name = request.entity_name
    category = request.entity_category
    current_year = reference_year or date.today().year
    previous_year = current_year - 1

    queries = [
        f'"{name}" company overview revenue employees headquarters',
        f'site:zoominfo.com "{name}" company profile',
        f'site:linkedin.com/company "{name}"',
        f'"{name}" parent company acquisition investors ownership',
        f'"{name}" news announcements {previous_year} {current_year}',
        f'"{name}" earnings revenue financial results growth',
        f'"{name}" technology ERP CRM digital transformation analytics hiring',
        f'"{name}" competitors market share {category}'.strip(),
    ]
    if request.entity_site:
        queries.append(f"site:{request.entity_site} about company")
    return queries


class SearchOrchestrator:
    """Run a query batch against a search provider under a call budget."""

    def __init__(self, provider: Optional[SearchProvider], enricher: Optional[EvidenceEnricher] = None):
        self.provider = provider
        self.enricher = enricher or EvidenceEnricher()

    async def run_batch(
        self,
        queries: Sequence[str],
        tracker: CallBudgetTracker,
        *,
        max_results: int = 3,
        search_depth: str = "basic",
    ) -> List[BatchSearchResult]:
        """
        Execute ``queries`` sequentially.

        Returns exactly one ``BatchSearchResult`` per query, in input order.
        Only a missing provider aborts the batch; every per-query problem is
        recorded on that query's result.
        """
        if self.provider is None:
            raise ConfigurationError("No search provider configured")

        results: List[BatchSearchResult] = []
        for query in queries:
            if not tracker.can_make_call():
                skipped = BudgetExceededError(query)
                logger.warning("search_budget_exhausted", query=query, **tracker.status)
                results.append(
                    BatchSearchResult(query=query, success=False, error=skipped.message, failure=skipped)
                )
                continue

            tracker.record_call()
            started = time.monotonic()
            try:
                hits = await self.provider.search(
                    query, search_depth=search_depth, max_results=max_results
                )
            except Exception as exc:  # noqa: BLE001
                failure = QueryFailure(query, str(exc), details={"error_type": type(exc).__name__})
                logger.warning(
                    "search_query_failed",
                    query=query,
                    error=failure.message,
                    error_type=failure.details["error_type"],
                )
                results.append(
                    BatchSearchResult(query=query, success=False, error=failure.message, failure=failure)
                )
                continue

            evidence = [self.enricher.enrich(hit) for hit in hits]
            logger.info(
                "search_query_completed",
                query=query,
                hits=len(evidence),
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            results.append(BatchSearchResult(query=query, results=evidence, success=True))

        return results


def unique_evidence(batches: Sequence[BatchSearchResult]) -> List[EnrichedEvidence]:
    """Evidence from successful queries, first occurrence of each URL only."""
    seen = set()
    unique: List[EnrichedEvidence] = []
    for batch in batches:
        if not batch.success:
            continue
        for item in batch.results:
            key = item.url or f"{item.title}|{item.content[:80]}"
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
    return unique


def collect_source_urls(batches: Sequence[BatchSearchResult]) -> List[str]:
    return [item.url for item in unique_evidence(batches) if item.url]


def format_evidence_for_prompt(
    batches: Sequence[BatchSearchResult], snippet_chars: int = 500
) -> str:
    """Render the evidence corpus as prompt text; failed queries contribute nothing."""
    evidence = unique_evidence(batches)
    if not evidence:
        return ""

    succeeded = sum(1 for b in batches if b.success)
    sections = [
        f"=== GATHERED RESEARCH DATA ({len(evidence)} sources from {succeeded} searches) ==="
    ]

    seen = set()
    for batch in batches:
        if not batch.success:
            continue
        entries = []
        for item in batch.results:
            key = item.url or f"{item.title}|{item.content[:80]}"
            if key in seen:
                continue
            seen.add(key)
            if item.publication_date:
                date_info = f"[Date: {item.publication_date} ({item.date_precision.value})]"
            else:
                date_info = "[Date: unknown]"
            entries.append(
                f"Source: {item.title}\n"
                f"URL: {item.url}\n"
                f"{date_info} [Credibility: {item.credibility_score * 100:.0f}%]\n"
                f"Content: {item.content[:snippet_chars]}"
            )
        if entries:
            sections.append(f"\n--- {batch.query} ---")
            sections.extend(entries)

    return "\n\n".join(sections)


def summarize_evidence_quality(batches: Sequence[BatchSearchResult]) -> EvidenceQuality:
    """Average credibility, date freshness, and query success rate for a batch."""
    evidence = unique_evidence(batches)

    source_quality = (
        sum(item.credibility_score for item in evidence) / len(evidence) if evidence else 0.0
    )

    freshness = [
        FRESHNESS_BY_PRECISION.get(item.date_precision, 0.2)
        for item in evidence
        if item.publication_date
    ]
    signal_freshness = sum(freshness) / len(freshness) if freshness else 0.0

    search_coverage = (
        sum(1 for batch in batches if batch.success) / len(batches) if batches else 0.0
    )

    return EvidenceQuality(
        source_quality=round(source_quality, 2),
        signal_freshness=round(signal_freshness, 2),
        search_coverage=round(search_coverage, 2),
        total_sources=len(evidence),
    )
