"""Prompt builders for the evidence-gathering and synthesis stages."""

from __future__ import annotations

import json
from datetime import date
from typing import Optional

from revintel.core.models import PERSONA_KEYS, ResearchRequest

SELLER_CONTEXT = """The seller is a revenue growth analytics consultancy serving mid-market companies ($50M-$2B) with:
- Margin Analytics - find profit leaks, optimize pricing
- Sales Growth Analytics - customer segmentation, mix optimization
- Promotion Effectiveness - ROI measurement, trade optimization
- Commercial Analytics Transformation - build analytics capabilities

Target personas: CFO/Finance, Pricing/RGM, Sales/Commercial, CEO/GM, Technology/Analytics"""

# Angles the evidence-gathering model must cover, in order.
REQUIRED_SEARCH_ANGLES = [
    ("firmographics", '"{name}" company profile revenue employees headquarters'),
    ("ownership", '"{name}" parent company acquisition investors ownership'),
    ("recent news", '"{name}" news {current_year} {previous_year}'),
    ("intent signals", 'site:zoominfo.com "{name}" - firmographics and buying intent'),
    ("leadership", '"{name}" CEO leadership executive team'),
    ("competitors", '"{name}" competitors market position'),
]

REPORT_SCHEMA = {
    "company_profile": {
        "confirmed_name": "string - official company name",
        "revenue": "string or null - e.g. '$35M (ZoomInfo, March 2025)'",
        "revenue_source": "string or null",
        "employee_count": "string or null - e.g. '201-500 (LinkedIn)'",
        "employee_source": "string or null",
        "headquarters": "string or null - City, State/Country",
        "founded_year": "string or null",
        "ownership_type": "Public | Private | Subsidiary | PE-Backed",
        "parent_company": "string or null",
        "investors": ["investor names, or empty"],
        "industry": "string",
        "sub_segment": "string or null",
        "business_model": "string - B2B, B2C, D2C, etc.",
        "citations": ["source URLs used"],
    },
    "recent_signals": [
        {
            "type": "financial | strategic | pricing | leadership | technology | intent",
            "headline": "string",
            "detail": "string",
            "date": "string - YYYY-MM or YYYY-MM-DD",
            "source_url": "string",
            "source_name": "string",
            "relevance": "string - why this matters to the seller",
            "is_intent_signal": "boolean",
        }
    ],
    "intent_signals": [
        {
            "signal_type": "rfp | vendor_evaluation | technology_initiative | hiring",
            "description": "string",
            "timeframe": "string or null",
            "source": "string",
            "fit_score": "perfect | good | moderate",
        }
    ],
    "hypothesis": {
        "primary_hypothesis": "string",
        "supporting_evidence": ["2-4 evidence points"],
        "confidence": "high | medium | low",
    },
    "persona_angles": {
        key: {"hook": "string", "supporting_point": "string", "question": "string"}
        for key in PERSONA_KEYS
    },
    "outreach_priority": {
        "recommended_personas": ["1-3 of: " + ", ".join(PERSONA_KEYS)],
        "urgency": "high | medium | low",
        "urgency_reason": "string",
        "cautions": ["caution strings"],
    },
    "research_gaps": ["missing data points"],
}


def build_search_prompt(
    request: ResearchRequest,
    evidence_text: str = "",
    reference_year: Optional[int] = None,
) -> str:
    """Stage A: direct a search-capable model to gather evidence on the entity."""
    name = request.entity_name
    industry = request.entity_category or "unspecified"
    current_year = reference_year or date.today().year
    previous_year = current_year - 1

    angles = "\n".join(
        f"{i}. {label.title()}: "
        + template.format(name=name, current_year=current_year, previous_year=previous_year)
        for i, (label, template) in enumerate(REQUIRED_SEARCH_ANGLES, start=1)
    )
    site_line = ""
    if request.entity_site:
        site_line = (
            f"\nThe company website is {request.entity_site}. "
            f"Also search site:{request.entity_site} for about/company pages.\n"
        )

    return f"""You are a B2B sales intelligence researcher.

YOUR TASK: Research "{name}" in the {industry} industry and gather comprehensive intelligence for sales outreach.
{site_line}
## PRE-GATHERED DATA

{evidence_text or "No pre-gathered search results available."}

## REQUIRED SEARCHES

Use the web search tool for each of these angles. Do NOT rely on training data alone.

{angles}

If you discover a parent company, also search for its {current_year} financial results, revenue and employees.

## WHAT TO LOOK FOR

- Company profile: confirmed name, revenue with source, employee count with source,
  headquarters, founded year, ownership (Public, Private, Subsidiary, PE-Backed),
  parent company, key investors
- Intent signals (most valuable): RFPs, vendor evaluations, technology initiatives
  (ERP, analytics, pricing tools), hiring for analytics/pricing/finance roles, M&A
- Recent signals: financial news, strategic moves, pricing changes, leadership changes,
  technology investments

## ABOUT THE SELLER

{SELLER_CONTEXT}

## OUTPUT

Write a thorough research brief combining the pre-gathered data with your searches.
Cite a source URL for every fact. Say explicitly what you could not find."""


def build_synthesis_prompt(
    request: ResearchRequest,
    research_text: str,
    evidence_text: str = "",
) -> str:
    """Stage B: turn Stage A's brief into a JSON object matching the report schema."""
    schema = json.dumps(REPORT_SCHEMA, indent=2)
    evidence_section = ""
    if evidence_text:
        evidence_section = f"\n## WEB SEARCH EVIDENCE\n\n{evidence_text}\n"

    return f"""You are synthesizing research about "{request.entity_name}" for a sales team.

## RESEARCH BRIEF

{research_text}
{evidence_section}
## YOUR TASK

Analyze the material above and produce a structured sales intelligence brief.
Be honest about what was found versus what is missing.

## OUTPUT SCHEMA

Respond with ONLY a valid JSON object matching this structure:

{schema}

IMPORTANT:
- Include source URLs for every data point
- Provide an angle for every one of the 5 personas
- Intent signals are the most valuable; do not invent them
- List anything you could not confirm in research_gaps"""
