"""
Co-ordinates the research workflow (web search -> evidence gathering -> synthesis).

This module is the single entry point callers use: it validates credentials,
runs the budgeted search batch, the two generative stages, and the
normalizer, and returns either a finished report or the error that stopped it.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, FrozenSet, Optional

import structlog

from revintel.core.config import Credentials, ResearchContext, Settings, build_research_context
from revintel.core.exceptions import ConfigurationError, RevIntelError
from revintel.core.logging import get_correlation_id, set_correlation_id
from revintel.core.models import ModelsUsed, ReportMetadata, ResearchRequest
from revintel.intelligence.budget import CallBudgetTracker
from revintel.intelligence.costs import estimate_cost, resolve_searches_performed
from revintel.intelligence.evidence import EvidenceEnricher
from revintel.intelligence.llm_client import OpenAIChatProvider
from revintel.intelligence.normalizer import build_report, merge_citations, normalize_report
from revintel.intelligence.research_models import (
    BatchSearchResult,
    EvidenceQuality,
    PipelineState,
    ResearchResult,
)
from revintel.intelligence.search_client import TavilySearchClient
from revintel.intelligence.search_orchestrator import (
    SEARCH_DEPTH_BY_RESEARCH_DEPTH,
    SearchOrchestrator,
    SearchProvider,
    build_research_queries,
    collect_source_urls,
    format_evidence_for_prompt,
    summarize_evidence_quality,
)
from revintel.intelligence.synthesis import GenerativeProvider, SynthesisEngine
from revintel.utils.reliability import elapsed_ms, track_performance

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[str], None]

ALLOWED_TRANSITIONS: Dict[PipelineState, FrozenSet[PipelineState]] = {
    PipelineState.PENDING: frozenset(
        {PipelineState.SEARCHING, PipelineState.FAILED, PipelineState.CANCELLED}
    ),
    PipelineState.SEARCHING: frozenset(
        {PipelineState.SYNTHESIZING, PipelineState.FAILED, PipelineState.CANCELLED}
    ),
    PipelineState.SYNTHESIZING: frozenset(
        {PipelineState.DONE, PipelineState.FAILED, PipelineState.CANCELLED}
    ),
    PipelineState.DONE: frozenset(),
    PipelineState.FAILED: frozenset(),
    PipelineState.CANCELLED: frozenset(),
}


class ResearchPipeline:
    """
    Execute one research request end to end.

    The pipeline object holds only collaborators; all per-request state lives
    in locals and the returned ``ResearchResult``, so one instance can serve
    concurrent requests.
    """

    def __init__(
        self,
        search_provider: Optional[SearchProvider] = None,
        generative_provider: Optional[GenerativeProvider] = None,
        enricher: Optional[EvidenceEnricher] = None,
        reference_year: Optional[int] = None,
        synthesis_backoff: tuple[float, float] = (0.5, 8.0),
    ) -> None:
        """Initialise the pipeline with optional pre-configured providers."""
        self.search_provider = search_provider
        self.generative_provider = generative_provider
        self.enricher = enricher or EvidenceEnricher(reference_year=reference_year)
        self.reference_year = reference_year
        self.synthesis_backoff = synthesis_backoff

    async def run(
        self,
        request: ResearchRequest,
        context: ResearchContext,
        *,
        on_progress: Optional[ProgressCallback] = None,
        tracker: Optional[CallBudgetTracker] = None,
    ) -> ResearchResult:
        """
        Research ``request`` and return a report or the error that stopped it.

        Cancelling the awaiting task aborts in-flight provider calls and
        re-raises ``asyncio.CancelledError``; calls already spent stay spent.
        """
        result = ResearchResult()
        tracker = tracker or CallBudgetTracker(context.max_search_calls)
        started = time.monotonic()
        if get_correlation_id() is None:
            set_correlation_id()

        def progress(label: str) -> None:
            if on_progress is not None:
                on_progress(label)

        log = logger.bind(entity=request.entity_name, depth=request.depth.value)

        try:
            search_provider, generative_provider = self._resolve_providers(context)

            progress(f"Starting research for {request.entity_name}...")
            self._transition(result, PipelineState.SEARCHING, log)

            batches = []
            if search_provider is not None:
                batches = await self._run_searches(
                    request, context, search_provider, tracker, progress, log
                )
            result.batches = batches
            result.evidence_quality = summarize_evidence_quality(batches)
            evidence_text = format_evidence_for_prompt(batches, context.search_content_chars)

            engine = SynthesisEngine(
                generative_provider,
                backoff_min=self.synthesis_backoff[0],
                backoff_max=self.synthesis_backoff[1],
                reference_year=self.reference_year,
            )

            progress(f"Gathering evidence with {context.search_model}...")
            gathering = await engine.gather_evidence(request, context, evidence_text)

            synthesis_model = context.synthesis_model_for(request.depth)
            self._transition(result, PipelineState.SYNTHESIZING, log)
            progress(
                f"Found {len(gathering.citations)} cited sources. "
                f"Synthesizing with {synthesis_model}..."
            )
            synthesis = await engine.synthesize(request, context, gathering.text, evidence_text)

            body = normalize_report(synthesis.payload, request.entity_name)
            body = merge_citations(body, collect_source_urls(batches))

            searches_performed = resolve_searches_performed(
                tracker.get_call_count() if search_provider is not None else None,
                len(gathering.citations),
            )
            input_tokens = gathering.input_tokens + synthesis.input_tokens
            output_tokens = gathering.output_tokens + synthesis.output_tokens
            metadata = ReportMetadata(
                searches_performed=searches_performed,
                sources_cited=len(body["company_profile"]["citations"]),
                models_used=ModelsUsed(
                    search=_search_label(context.search_model, search_provider),
                    synthesis=synthesis.model,
                ),
                execution_time_ms=elapsed_ms(started),
                estimated_cost=estimate_cost(
                    input_tokens,
                    output_tokens,
                    searches_performed,
                    context.pricing_for(request.depth),
                    context.search_price_per_call,
                ),
            )
            result.report = build_report(body, metadata)
            self._transition(result, PipelineState.DONE, log)
            progress("Research complete!")

            log.info(
                "research_completed",
                searches_performed=metadata.searches_performed,
                sources_cited=metadata.sources_cited,
                execution_time_ms=metadata.execution_time_ms,
                estimated_cost=round(metadata.estimated_cost, 4),
                **_quality_fields(result.evidence_quality),
            )
            return result

        except asyncio.CancelledError:
            self._transition(result, PipelineState.CANCELLED, log)
            log.warning("research_cancelled", calls_consumed=tracker.get_call_count())
            raise
        except RevIntelError as exc:
            result.error = exc
            self._transition(result, PipelineState.FAILED, log)
            log.error("research_failed", error_type=type(exc).__name__, error=exc.message)
            progress(f"Research failed: {exc.message}")
            return result
        except Exception as exc:  # noqa: BLE001
            log.exception("research_crashed", error_type=type(exc).__name__)
            result.error = RevIntelError(
                f"Research failed unexpectedly ({type(exc).__name__})",
                details={"error": str(exc)},
            )
            self._transition(result, PipelineState.FAILED, log)
            progress(f"Research failed: {result.error.message}")
            return result

    # --------------------------------------------------------------------- #
    # Helpers
    # --------------------------------------------------------------------- #

    def _resolve_providers(self, context: ResearchContext):
        """Build per-request providers; a missing key fails before any call."""
        credentials = context.credentials
        generative = self.generative_provider
        if generative is None:
            if not credentials.openai_api_key:
                raise ConfigurationError("OPENAI_API_KEY is required for research")
            generative = OpenAIChatProvider(
                credentials.openai_api_key, timeout=context.stage_timeout_seconds
            )

        search = None
        if context.search_enabled:
            search = self.search_provider
            if search is None:
                if not credentials.tavily_api_key:
                    raise ConfigurationError("TAVILY_API_KEY is required when web search is enabled")
                search = TavilySearchClient(
                    credentials.tavily_api_key, timeout=context.search_timeout_seconds
                )
        return search, generative

    @track_performance("search_batch")
    async def _run_searches(
        self,
        request: ResearchRequest,
        context: ResearchContext,
        provider: SearchProvider,
        tracker: CallBudgetTracker,
        progress: ProgressCallback,
        log,
    ) -> list[BatchSearchResult]:
        queries = build_research_queries(request, reference_year=self.reference_year)
        progress(f"Searching the web ({len(queries)} queries)...")

        orchestrator = SearchOrchestrator(provider, self.enricher)
        batches = await orchestrator.run_batch(
            queries,
            tracker,
            max_results=context.results_per_query,
            search_depth=SEARCH_DEPTH_BY_RESEARCH_DEPTH[request.depth],
        )

        succeeded = sum(1 for batch in batches if batch.success)
        sources = sum(len(batch.results) for batch in batches if batch.success)
        log.info(
            "search_batch_completed",
            queries=len(queries),
            succeeded=succeeded,
            failed=len(queries) - succeeded,
            sources=sources,
            **tracker.status,
        )
        progress(f"Search complete: {sources} sources from {succeeded}/{len(queries)} queries.")
        return batches

    @staticmethod
    def _transition(result: ResearchResult, new_state: PipelineState, log) -> None:
        if new_state not in ALLOWED_TRANSITIONS[result.state]:
            raise RuntimeError(f"Invalid pipeline transition {result.state.value} -> {new_state.value}")
        log.debug("pipeline_state_changed", previous=result.state.value, state=new_state.value)
        result.state = new_state


def _search_label(search_model: str, search_provider: Optional[SearchProvider]) -> str:
    if search_provider is None:
        return search_model
    return f"{search_model} + {getattr(search_provider, 'service_name', 'web search')}"


def _quality_fields(quality: Optional[EvidenceQuality]) -> dict:
    return quality.to_dict() if quality else {}


async def run_research(
    request: ResearchRequest,
    credentials: Optional[Credentials] = None,
    *,
    settings: Optional[Settings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ResearchResult:
    """Build a per-request context from settings and run the default pipeline."""
    context = build_research_context(settings, credentials)
    return await ResearchPipeline().run(request, context, on_progress=on_progress)
