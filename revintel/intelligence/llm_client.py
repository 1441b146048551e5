"""
OpenAI chat-completions provider used by both synthesis stages.

A new ``AsyncOpenAI`` client is opened per call with the caller's key and
closed afterwards; keys are never held beyond one invocation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import openai
import structlog
from openai import AsyncOpenAI

from revintel.core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    ResearchTimeoutError,
)
from revintel.intelligence.research_models import CompletionResult

logger = structlog.get_logger(__name__)

# Reasoning models reject response_format=json_object.
_NO_JSON_MODE_PREFIXES = ("o1", "o3")


def supports_json_mode(model: str) -> bool:
    return not model.lower().startswith(_NO_JSON_MODE_PREFIXES)


class OpenAIChatProvider:
    """Thin async wrapper over ``chat.completions.create``."""

    service_name = "openai"

    def __init__(self, api_key: str, timeout: float = 120.0, base_url: Optional[str] = None):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for research")
        self._api_key = api_key
        self.timeout = timeout
        self.base_url = base_url

    async def complete(
        self,
        *,
        model: str,
        messages: List[Dict[str, str]],
        search_options: Optional[Dict[str, Any]] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> CompletionResult:
        """Run one completion and return its text, usage, and cited URLs."""
        kwargs: Dict[str, Any] = {"model": model, "messages": messages}
        if search_options is not None:
            kwargs["web_search_options"] = search_options
        if json_mode and supports_json_mode(model):
            kwargs["response_format"] = {"type": "json_object"}

        client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            max_retries=0,
        )
        try:
            response = await client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as exc:
            raise ResearchTimeoutError(f"{model} request timed out") from exc
        except openai.APIStatusError as exc:
            raise ExternalServiceError(
                self.service_name, _status_message(exc), status_code=exc.status_code
            ) from exc
        except openai.APIConnectionError as exc:
            raise ExternalServiceError(self.service_name, f"connection error: {exc}") from exc
        finally:
            await client.close()

        if not response.choices:
            raise ExternalServiceError(self.service_name, "response contained no choices")

        message = response.choices[0].message
        usage = response.usage
        return CompletionResult(
            content=message.content or "",
            model=getattr(response, "model", None) or model,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            annotations=_annotation_urls(getattr(message, "annotations", None)),
        )


def _status_message(exc: openai.APIStatusError) -> str:
    body = exc.body if isinstance(exc.body, dict) else {}
    error = body.get("error") if isinstance(body.get("error"), dict) else body
    return str(error.get("message") or exc.message or f"HTTP {exc.status_code}")


def _annotation_urls(annotations: Optional[List[Any]]) -> List[str]:
    """Pull cited URLs out of ``url_citation`` annotations, keeping order."""
    urls: List[str] = []
    for annotation in annotations or []:
        citation = getattr(annotation, "url_citation", None)
        if citation is None and isinstance(annotation, dict):
            citation = annotation.get("url_citation")
        url = citation.get("url") if isinstance(citation, dict) else getattr(citation, "url", None)
        if url:
            urls.append(url)
    return urls
