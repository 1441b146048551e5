"""
Shared data structures for the research pipeline.

These models capture raw search hits, the enriched evidence built from them,
and the per-query batch outcomes so the synthesis stage and callers can
inspect exactly what was gathered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from revintel.core.exceptions import QueryFailure, RevIntelError
from revintel.core.models import DatePrecision, IntelligenceReport


@dataclass(slots=True)
class RawSearchHit:
    """Single result returned by the search provider."""

    title: str
    url: str
    content: str
    score: float = 0.0


@dataclass(slots=True)
class EnrichedEvidence:
    """A search hit annotated with source domain, credibility, and date."""

    title: str
    url: str
    content: str
    score: float
    domain: str
    credibility_score: float
    publication_date: Optional[str] = None
    date_precision: DatePrecision = DatePrecision.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        """Convert to primitive dict for downstream JSON serialisation."""
        return {
            "title": self.title,
            "url": self.url,
            "content": self.content,
            "score": self.score,
            "domain": self.domain,
            "credibility_score": self.credibility_score,
            "publication_date": self.publication_date,
            "date_precision": self.date_precision.value,
        }


@dataclass(slots=True)
class BatchSearchResult:
    """
    Outcome of one query in a search batch.

    Exactly one of these exists per input query, in input order, whether the
    query succeeded, failed at the provider, or was skipped for budget.
    """

    query: str
    results: List[EnrichedEvidence] = field(default_factory=list)
    success: bool = True
    error: Optional[str] = None
    failure: Optional[QueryFailure] = None


@dataclass(slots=True)
class CompletionResult:
    """Text and usage returned by one generative model call."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    annotations: List[str] = field(default_factory=list)


@dataclass(slots=True)
class EvidenceGathering:
    """Stage A output: free text plus the URLs the model cited."""

    text: str
    citations: List[str] = field(default_factory=list)
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(slots=True)
class SynthesisOutput:
    """Stage B output: the decoded (not yet normalized) report payload."""

    payload: Dict[str, Any]
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(slots=True)
class EvidenceQuality:
    """Aggregate quality indicators for an evidence corpus."""

    source_quality: float = 0.0
    signal_freshness: float = 0.0
    search_coverage: float = 0.0
    total_sources: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_quality": self.source_quality,
            "signal_freshness": self.signal_freshness,
            "search_coverage": self.search_coverage,
            "total_sources": self.total_sources,
        }


class PipelineState(str, Enum):
    """Lifecycle of a single research request."""

    PENDING = "pending"
    SEARCHING = "searching"
    SYNTHESIZING = "synthesizing"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class ResearchResult:
    """Either a report or the error that prevented one."""

    report: Optional[IntelligenceReport] = None
    error: Optional[RevIntelError] = None
    state: PipelineState = PipelineState.PENDING
    batches: List[BatchSearchResult] = field(default_factory=list)
    evidence_quality: Optional[EvidenceQuality] = None

    @property
    def ok(self) -> bool:
        return self.report is not None and self.error is None
