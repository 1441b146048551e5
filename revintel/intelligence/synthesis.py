"""
Two-stage generative research: evidence gathering, then JSON synthesis.

Stage B consumes Stage A's text verbatim, so the two calls always run in
sequence. Transport problems in either stage surface as ``StageFailure``;
an answer that cannot be decoded surfaces as ``ParseFailure``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

import structlog

from revintel.core.config import ResearchContext
from revintel.core.exceptions import (
    ExternalServiceError,
    ParseFailure,
    ResearchTimeoutError,
    StageFailure,
)
from revintel.core.models import ResearchRequest
from revintel.intelligence.json_utils import coerce_json_payload
from revintel.intelligence.prompts import build_search_prompt, build_synthesis_prompt
from revintel.intelligence.research_models import (
    CompletionResult,
    EvidenceGathering,
    SynthesisOutput,
)
from revintel.utils.reliability import call_with_retry, with_timeout

logger = structlog.get_logger(__name__)

STAGE_SEARCH = "evidence_gathering"
STAGE_SYNTHESIS = "synthesis"


class GenerativeProvider(Protocol):
    async def complete(
        self,
        *,
        model: str,
        messages: List[Dict[str, str]],
        search_options: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> CompletionResult: ...


def is_transient_error(exc: BaseException) -> bool:
    """Timeouts, connection errors, rate limits and 5xx are worth one more try."""
    if isinstance(exc, ResearchTimeoutError):
        return True
    if isinstance(exc, ExternalServiceError):
        return exc.status_code is None or exc.status_code == 429 or exc.status_code >= 500
    return False


class SynthesisEngine:
    """Run the evidence-gathering and synthesis model calls for one request."""

    def __init__(
        self,
        provider: GenerativeProvider,
        *,
        backoff_min: float = 0.5,
        backoff_max: float = 8.0,
        reference_year: Optional[int] = None,
    ):
        self.provider = provider
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self.reference_year = reference_year

    async def gather_evidence(
        self,
        request: ResearchRequest,
        context: ResearchContext,
        evidence_text: str = "",
    ) -> EvidenceGathering:
        """Stage A: free-text brief plus citations from a search-capable model."""
        prompt = build_search_prompt(request, evidence_text, reference_year=self.reference_year)
        result = await self._call_stage(
            STAGE_SEARCH,
            context,
            timeout=context.stage_timeout_seconds,
            model=context.search_model,
            messages=[{"role": "user", "content": prompt}],
            search_options={"search_context_size": context.search_context_size},
        )
        logger.info(
            "synthesis_stage_completed",
            stage=STAGE_SEARCH,
            model=result.model,
            citations=len(result.annotations),
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
        return EvidenceGathering(
            text=result.content,
            citations=list(result.annotations),
            model=result.model,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )

    async def synthesize(
        self,
        request: ResearchRequest,
        context: ResearchContext,
        research_text: str,
        evidence_text: str = "",
    ) -> SynthesisOutput:
        """Stage B: decode the report JSON produced from Stage A's brief."""
        model = context.synthesis_model_for(request.depth)
        prompt = build_synthesis_prompt(request, research_text, evidence_text)
        result = await self._call_stage(
            STAGE_SYNTHESIS,
            context,
            timeout=context.stage_timeout_for(request.depth),
            model=model,
            messages=[{"role": "user", "content": prompt}],
            json_mode=True,
        )

        try:
            payload = coerce_json_payload(result.content)
        except ParseFailure:
            logger.error(
                "synthesis_parse_failed",
                model=model,
                content_preview=result.content[:200],
            )
            raise

        logger.info(
            "synthesis_stage_completed",
            stage=STAGE_SYNTHESIS,
            model=result.model,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
        return SynthesisOutput(
            payload=payload,
            model=model,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )

    async def _call_stage(
        self,
        stage: str,
        context: ResearchContext,
        *,
        timeout: float,
        **kwargs: Any,
    ) -> CompletionResult:
        async def attempt() -> CompletionResult:
            return await with_timeout(
                self.provider.complete(timeout=timeout, **kwargs),
                timeout,
                operation=stage,
            )

        try:
            return await call_with_retry(
                attempt,
                max_attempts=context.llm_max_attempts,
                retry_if=is_transient_error,
                backoff_min=self.backoff_min,
                backoff_max=self.backoff_max,
                operation=stage,
            )
        except (ExternalServiceError, ResearchTimeoutError) as exc:
            logger.error(
                "synthesis_stage_failed",
                stage=stage,
                model=kwargs.get("model"),
                error=exc.message,
                status_code=getattr(exc, "status_code", None),
            )
            raise StageFailure(stage, f"{stage} failed: {exc.message}") from exc
