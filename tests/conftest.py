"""Configure pytest fixtures and test doubles for revintel tests."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from dotenv import load_dotenv

from revintel.core.config import Credentials, ResearchContext
from revintel.core.models import ResearchRequest
from revintel.intelligence.research_models import CompletionResult, RawSearchHit


def pytest_sessionstart(session):
    """Load environment variables from a local .env file, if any."""
    load_dotenv()


class FakeSearchProvider:
    """Test double for the web search provider.

    Returns one deterministic hit per call unless the query contains a marker
    listed in ``failures``. Setting ``gate`` makes every call wait on it.
    """

    service_name = "fake-search"

    def __init__(
        self,
        failures: Optional[Dict[str, Exception]] = None,
        hits_by_query: Optional[Dict[str, List[RawSearchHit]]] = None,
    ):
        self.failures = failures or {}
        self.hits_by_query = hits_by_query or {}
        self.calls: List[Dict[str, Any]] = []
        self.started = asyncio.Event()
        self.gate: Optional[asyncio.Event] = None

    async def search(self, query: str, *, search_depth: str = "basic", max_results: int = 3):
        self.calls.append(
            {"query": query, "search_depth": search_depth, "max_results": max_results}
        )
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        for marker, exc in self.failures.items():
            if marker in query:
                raise exc
        if query in self.hits_by_query:
            return list(self.hits_by_query[query])
        n = len(self.calls)
        return [
            RawSearchHit(
                title=f"Result {n}",
                url=f"https://www.reuters.com/article-{n}",
                content=f"Published March {n}, 2025. Findings for {query}.",
                score=0.8,
            )
        ]


class FakeGenerativeProvider:
    """Test double for the chat-completions provider.

    Pops one scripted response per call; exceptions in the script are raised.
    """

    service_name = "fake-llm"

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        *,
        model: str,
        messages: List[Dict[str, str]],
        search_options: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> CompletionResult:
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "search_options": search_options,
                "json_mode": json_mode,
                "timeout": timeout,
            }
        )
        if not self.responses:
            raise AssertionError("FakeGenerativeProvider ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


SAMPLE_REPORT_JSON = """{
  "company_profile": {
    "confirmed_name": "Acme Foods, Inc.",
    "revenue": "$450M (ZoomInfo)",
    "employee_count": "1,001-5,000 (LinkedIn)",
    "headquarters": "Chicago, IL",
    "ownership_type": "PE-Backed",
    "investors": ["Summit Partners"],
    "industry": "Food & Beverage",
    "business_model": "B2B",
    "citations": ["https://acmefoods.com/about"]
  },
  "recent_signals": [
    {
      "type": "pricing",
      "headline": "Acme raises list prices 6%",
      "detail": "Cost pass-through across the snack portfolio.",
      "date": "2025-02",
      "source_url": "https://www.reuters.com/acme-prices",
      "source_name": "Reuters",
      "relevance": "Pricing pressure creates a margin analytics opening.",
      "is_intent_signal": false
    }
  ],
  "intent_signals": [
    {
      "signal_type": "hiring",
      "description": "Hiring a Director of Revenue Growth Management",
      "timeframe": "Q1 2025",
      "source": "LinkedIn Jobs",
      "fit_score": "perfect"
    }
  ],
  "hypothesis": {
    "primary_hypothesis": "Acme needs pricing analytics to protect margin after price increases.",
    "supporting_evidence": ["6% price increase", "RGM hiring"],
    "confidence": "medium"
  },
  "persona_angles": {
    "cfo_finance": {"hook": "Margin recovery", "supporting_point": "6% increase", "question": "Where is margin leaking?"},
    "pricing_rgm": {"hook": "Elasticity", "supporting_point": "New RGM team", "question": "How do you measure price response?"}
  },
  "outreach_priority": {
    "recommended_personas": ["pricing_rgm", "cfo_finance"],
    "urgency": "high",
    "urgency_reason": "Active RGM hiring",
    "cautions": ["Recent PE ownership change"]
  },
  "research_gaps": ["Exact revenue not confirmed"]
}"""


def completion(content: str, model: str = "gpt-4o", **kwargs: Any) -> CompletionResult:
    """Build a scripted ``CompletionResult``."""
    return CompletionResult(content=content, model=model, **kwargs)


@pytest.fixture
def acme_request() -> ResearchRequest:
    return ResearchRequest(entity_name="Acme Foods", entity_category="Food & Beverage")


@pytest.fixture
def make_context():
    """Factory for research contexts with test credentials and zero waits."""

    def _make(**overrides: Any) -> ResearchContext:
        values: Dict[str, Any] = {
            "credentials": Credentials(openai_api_key="sk-test", tavily_api_key="tvly-test"),
            "max_search_calls": 8,
        }
        values.update(overrides)
        return ResearchContext(**values)

    return _make


@pytest.fixture
def sample_report_json() -> str:
    return SAMPLE_REPORT_JSON
