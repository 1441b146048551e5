"""Tavily web search client."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx
import structlog

from revintel.core.exceptions import ConfigurationError, ExternalServiceError, ResearchTimeoutError
from revintel.intelligence.research_models import RawSearchHit

logger = structlog.get_logger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


class TavilySearchClient:
    """
    Minimal async client for the Tavily search endpoint.

    The API key is supplied per instance and a fresh HTTP client is opened for
    every call, so nothing outlives the request that created it.
    """

    service_name = "tavily"

    def __init__(self, api_key: str, timeout: float = 15.0, base_url: str = TAVILY_SEARCH_URL):
        if not api_key:
            raise ConfigurationError("TAVILY_API_KEY is required for web search")
        self._api_key = api_key
        self.timeout = timeout
        self.base_url = base_url

    async def search(
        self,
        query: str,
        *,
        search_depth: str = "basic",
        max_results: int = 3,
    ) -> List[RawSearchHit]:
        """Run one search and return the provider's hits in ranked order."""
        payload: Dict[str, Any] = {
            "api_key": self._api_key,
            "query": query,
            "search_depth": search_depth,
            "max_results": max_results,
            "include_answer": False,
            "include_raw_content": False,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.base_url, json=payload)
        except httpx.TimeoutException as exc:
            raise ResearchTimeoutError(
                f"Tavily search timed out after {self.timeout}s", details={"query": query}
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(self.service_name, f"request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ExternalServiceError(
                self.service_name,
                _error_message(response),
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalServiceError(self.service_name, "invalid JSON response") from exc

        return [
            RawSearchHit(
                title=item.get("title") or "",
                url=item.get("url") or "",
                content=item.get("content") or "",
                score=float(item.get("score") or 0.0),
            )
            for item in data.get("results") or []
            if isinstance(item, dict)
        ]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, dict):
            detail = detail.get("error")
        message = body.get("message") or body.get("error") or detail
        if message:
            return str(message)
    return response.reason_phrase or f"HTTP {response.status_code}"
