"""Utilities for decoding LLM payloads that should contain JSON objects."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from revintel.core.exceptions import ParseFailure

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```\s*$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```), if present."""
    candidate = text.strip()
    match = _FENCE_RE.match(candidate)
    if match:
        return match.group(1).strip()
    if candidate.startswith("```"):
        # Unterminated fence: drop the opening line only.
        return candidate.split("\n", 1)[1].strip() if "\n" in candidate else ""
    return candidate


def coerce_json_payload(text: Optional[str]) -> Dict[str, Any]:
    """
    Decode a JSON object from an LLM response.

    Code fences are stripped first. Anything that is not a JSON object raises
    ``ParseFailure``; there is no partial or best-effort result.
    """
    if not text or not text.strip():
        raise ParseFailure("Empty synthesis payload", raw_content=text or "")

    candidate = strip_code_fences(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ParseFailure(
            f"Failed to parse synthesis result: {exc.msg} at line {exc.lineno} column {exc.colno}",
            raw_content=text,
        ) from exc

    if not isinstance(data, dict):
        raise ParseFailure(
            f"Synthesis result must be a JSON object, got {type(data).__name__}",
            raw_content=text,
        )
    return data
