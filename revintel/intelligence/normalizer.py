"""
Fill-defaults transform for synthesized report payloads.

The synthesis model returns loosely-typed JSON that may omit sections or use
unexpected enum values. ``normalize_report`` turns any decoded object into a
complete report body: every array present, all five persona angles present,
and a non-null company profile. It is pure and idempotent, and it never
raises on shape problems.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from revintel.core.models import (
    PERSONA_KEYS,
    FitScore,
    IntelligenceReport,
    IntentSignalType,
    Level,
    OwnershipType,
    ReportMetadata,
    SignalType,
)

logger = structlog.get_logger(__name__)

DEFAULT_PERSONA_ANGLE = {
    "hook": "No specific angle available due to limited data.",
    "supporting_point": "Further research recommended.",
    "question": "What are your current analytics priorities?",
}

DEFAULT_HYPOTHESIS_TEXT = "Insufficient data to form a strong hypothesis."
DEFAULT_URGENCY_REASON = "Standard timing - no urgent signals detected"
DEFAULT_RECOMMENDED_PERSONAS = ["cfo_finance"]

_OPTIONAL_PROFILE_FIELDS = (
    "revenue",
    "revenue_source",
    "employee_count",
    "employee_source",
    "headquarters",
    "founded_year",
    "parent_company",
    "sub_segment",
)


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = _text(value, default="")
    return text if text or isinstance(value, str) else None


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [_text(item) for item in value if _text(item)]


def _choice(value: Any, allowed: Iterable[str], default: str) -> str:
    """Match ``value`` case-insensitively against ``allowed``, else ``default``."""
    if not isinstance(value, str):
        return default
    wanted = value.strip().lower().replace(" ", "-")
    for option in allowed:
        if option.lower() == wanted or option.lower().replace("_", "-") == wanted:
            return option
    return default


def _bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return default


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def normalize_company_profile(data: Any, entity_name: str) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        data = {}

    profile: Dict[str, Any] = {
        "confirmed_name": _text(data.get("confirmed_name")).strip() or entity_name,
    }
    # Optional fields absent from the payload stay absent.
    for key in _OPTIONAL_PROFILE_FIELDS:
        if key in data:
            profile[key] = _optional_text(data[key])
    profile["ownership_type"] = _choice(
        data.get("ownership_type"), _enum_values(OwnershipType), OwnershipType.PRIVATE.value
    )
    profile["investors"] = _text_list(data.get("investors"))
    profile["industry"] = _text(data.get("industry"))
    profile["business_model"] = _text(data.get("business_model"))
    profile["citations"] = _text_list(data.get("citations"))

    # Keep declared field order stable for idempotent comparisons.
    ordered_keys = [
        "confirmed_name",
        "revenue",
        "revenue_source",
        "employee_count",
        "employee_source",
        "headquarters",
        "founded_year",
        "ownership_type",
        "parent_company",
        "investors",
        "industry",
        "sub_segment",
        "business_model",
        "citations",
    ]
    return {key: profile[key] for key in ordered_keys if key in profile}


def normalize_recent_signal(data: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(data, Mapping):
        return None
    headline = _text(data.get("headline")) or _text(data.get("description"))
    if not headline:
        return None

    signal_type = _choice(
        data.get("type", data.get("signal_type")),
        _enum_values(SignalType),
        SignalType.STRATEGIC.value,
    )
    relevance = data.get("relevance", data.get("relevance_to_revology"))
    return {
        "type": signal_type,
        "headline": headline,
        "detail": _text(data.get("detail")),
        "date": _text(data.get("date")),
        "source_url": _text(data.get("source_url")),
        "source_name": _text(data.get("source_name")),
        "relevance": _text(relevance),
        "is_intent_signal": _bool(
            data.get("is_intent_signal"), default=signal_type == SignalType.INTENT.value
        ),
    }


def normalize_intent_signal(data: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(data, Mapping):
        return None
    description = _text(data.get("description"))
    if not description:
        return None
    signal = {
        "signal_type": _choice(
            data.get("signal_type"),
            _enum_values(IntentSignalType),
            IntentSignalType.TECHNOLOGY_INITIATIVE.value,
        ),
        "description": description,
        "source": _text(data.get("source")),
        "fit_score": _choice(data.get("fit_score"), _enum_values(FitScore), FitScore.MODERATE.value),
    }
    if "timeframe" in data:
        signal["timeframe"] = _optional_text(data["timeframe"])
    return signal


def normalize_hypothesis(data: Any) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        data = {}
    return {
        "primary_hypothesis": _text(data.get("primary_hypothesis")) or DEFAULT_HYPOTHESIS_TEXT,
        "supporting_evidence": _text_list(data.get("supporting_evidence")),
        "confidence": _choice(data.get("confidence"), _enum_values(Level), Level.LOW.value),
    }


def normalize_persona_angles(data: Any) -> Dict[str, Dict[str, str]]:
    if not isinstance(data, Mapping):
        data = {}
    lowered = {str(k).strip().lower(): v for k, v in data.items()}

    angles: Dict[str, Dict[str, str]] = {}
    for key in PERSONA_KEYS:
        angle = lowered.get(key)
        if not isinstance(angle, Mapping):
            angles[key] = dict(DEFAULT_PERSONA_ANGLE)
            continue
        angles[key] = {
            field: _text(angle.get(field)) or default
            for field, default in DEFAULT_PERSONA_ANGLE.items()
        }
    return angles


def normalize_outreach_priority(data: Any) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        data = {}

    raw_personas = data.get("recommended_personas")
    if isinstance(raw_personas, list):
        personas: List[str] = []
        for persona in raw_personas:
            key = _text(persona).strip().lower()
            if key in PERSONA_KEYS and key not in personas:
                personas.append(key)
    else:
        personas = list(DEFAULT_RECOMMENDED_PERSONAS)

    return {
        "recommended_personas": personas,
        "urgency": _choice(data.get("urgency"), _enum_values(Level), Level.MEDIUM.value),
        "urgency_reason": _text(data.get("urgency_reason")) or DEFAULT_URGENCY_REASON,
        "cautions": _text_list(data.get("cautions")),
    }


def _normalize_list(value: Any, normalize_item) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    normalized = (normalize_item(item) for item in value)
    return [item for item in normalized if item is not None]


def normalize_report(payload: Any, entity_name: str) -> Dict[str, Any]:
    """
    Complete a decoded synthesis payload into a total report body.

    Args:
        payload: The decoded JSON object (any shape, including ``{}``).
        entity_name: Requested entity name, used when the profile is missing.

    Returns:
        A dict with every report section except ``metadata``.
    """
    if not isinstance(payload, Mapping):
        payload = {}

    missing = [
        key
        for key in (
            "company_profile",
            "recent_signals",
            "intent_signals",
            "hypothesis",
            "persona_angles",
            "outreach_priority",
            "research_gaps",
        )
        if key not in payload
    ]
    if missing:
        logger.debug("report_sections_defaulted", sections=missing)

    return {
        "company_profile": normalize_company_profile(payload.get("company_profile"), entity_name),
        "recent_signals": _normalize_list(payload.get("recent_signals"), normalize_recent_signal),
        "intent_signals": _normalize_list(payload.get("intent_signals"), normalize_intent_signal),
        "hypothesis": normalize_hypothesis(payload.get("hypothesis")),
        "persona_angles": normalize_persona_angles(payload.get("persona_angles")),
        "outreach_priority": normalize_outreach_priority(payload.get("outreach_priority")),
        "research_gaps": _text_list(payload.get("research_gaps")),
    }


def merge_citations(body: Dict[str, Any], urls: Iterable[str]) -> Dict[str, Any]:
    """Return ``body`` with ``urls`` appended to the profile citations, de-duplicated."""
    profile = dict(body["company_profile"])
    merged: List[str] = []
    for url in list(profile.get("citations") or []) + list(urls):
        if url and url not in merged:
            merged.append(url)
    profile["citations"] = merged
    return {**body, "company_profile": profile}


def build_report(body: Dict[str, Any], metadata: ReportMetadata) -> IntelligenceReport:
    """Freeze a normalized body plus metadata into an ``IntelligenceReport``."""
    return IntelligenceReport.model_validate({**body, "metadata": metadata.model_dump()})
