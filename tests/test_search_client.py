from __future__ import annotations

import httpx
import pytest

from revintel.core.exceptions import ConfigurationError, ExternalServiceError, ResearchTimeoutError
from revintel.intelligence.search_client import TavilySearchClient


class _FakeResponse:
    def __init__(self, payload, status_code: int = 200, reason_phrase: str = "OK"):
        self._payload = payload
        self.status_code = status_code
        self.reason_phrase = reason_phrase

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def test_missing_key_rejected():
    with pytest.raises(ConfigurationError):
        TavilySearchClient("")


@pytest.mark.asyncio
async def test_search_posts_query_and_parses_results(monkeypatch):
    captured: list[dict] = []

    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        captured.append({"url": url, **kwargs.get("json", {})})
        return _FakeResponse(
            {
                "results": [
                    {"title": "Acme 10-K", "url": "https://sec.gov/acme", "content": "Annual report", "score": 0.91},
                    {"title": None, "url": "https://example.com", "content": None},
                    "garbage",
                ]
            }
        )

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    hits = await TavilySearchClient("tvly-key").search("Acme revenue", search_depth="advanced", max_results=2)

    assert captured[0]["url"] == "https://api.tavily.com/search"
    assert captured[0]["api_key"] == "tvly-key"
    assert captured[0]["query"] == "Acme revenue"
    assert captured[0]["search_depth"] == "advanced"
    assert captured[0]["max_results"] == 2
    assert [h.url for h in hits] == ["https://sec.gov/acme", "https://example.com"]
    assert hits[0].score == 0.91
    assert hits[1].title == ""
    assert hits[1].content == ""


@pytest.mark.asyncio
async def test_http_error_status_raises_external_service_error(monkeypatch):
    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse({"detail": {"error": "Invalid API key"}}, status_code=401)

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    with pytest.raises(ExternalServiceError) as exc_info:
        await TavilySearchClient("tvly-key").search("Acme")

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "tavily: Invalid API key"


@pytest.mark.asyncio
async def test_timeout_raises_research_timeout(monkeypatch):
    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        raise httpx.ReadTimeout("timed out")

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    with pytest.raises(ResearchTimeoutError):
        await TavilySearchClient("tvly-key", timeout=1).search("Acme")


@pytest.mark.asyncio
async def test_invalid_json_raises_external_service_error(monkeypatch):
    async def fake_post(self, url: str, **kwargs):  # noqa: ARG001
        return _FakeResponse(ValueError("no json"))

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)

    with pytest.raises(ExternalServiceError):
        await TavilySearchClient("tvly-key").search("Acme")
