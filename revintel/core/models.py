"""
Data models and type definitions for revintel.

Provides the canonical intelligence report schema and the research request
accepted by the pipeline entry point.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResearchDepth(str, Enum):
    """Requested research depth; selects the synthesis model tier."""

    STANDARD = "standard"
    DEEP = "deep"


class DatePrecision(str, Enum):
    """How precisely a publication date was recovered from a source."""

    EXACT = "exact"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    UNKNOWN = "unknown"


class OwnershipType(str, Enum):
    PUBLIC = "Public"
    PRIVATE = "Private"
    SUBSIDIARY = "Subsidiary"
    PE_BACKED = "PE-Backed"


class SignalType(str, Enum):
    FINANCIAL = "financial"
    STRATEGIC = "strategic"
    PRICING = "pricing"
    LEADERSHIP = "leadership"
    TECHNOLOGY = "technology"
    INTENT = "intent"


class IntentSignalType(str, Enum):
    RFP = "rfp"
    VENDOR_EVALUATION = "vendor_evaluation"
    TECHNOLOGY_INITIATIVE = "technology_initiative"
    HIRING = "hiring"


class FitScore(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    MODERATE = "moderate"


class Level(str, Enum):
    """Three-step scale shared by hypothesis confidence and outreach urgency."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PersonaKey(str, Enum):
    """The five buyer-role categories every report carries an angle for."""

    CFO_FINANCE = "cfo_finance"
    PRICING_RGM = "pricing_rgm"
    SALES_COMMERCIAL = "sales_commercial"
    CEO_GM = "ceo_gm"
    TECHNOLOGY_ANALYTICS = "technology_analytics"


PERSONA_KEYS: List[str] = [key.value for key in PersonaKey]

PERSONA_DISPLAY_NAMES = {
    PersonaKey.CFO_FINANCE.value: "CFO / Finance",
    PersonaKey.PRICING_RGM.value: "Pricing / RGM",
    PersonaKey.SALES_COMMERCIAL.value: "Sales / Commercial",
    PersonaKey.CEO_GM.value: "CEO / GM",
    PersonaKey.TECHNOLOGY_ANALYTICS.value: "Technology / Analytics",
}


# Report Models


class ReportModel(BaseModel):
    """Base class for report sections; reports are immutable once built."""

    model_config = ConfigDict(frozen=True, use_enum_values=True, extra="ignore")


class CompanyProfile(ReportModel):
    """Firmographics for the researched entity."""

    confirmed_name: str
    revenue: Optional[str] = None
    revenue_source: Optional[str] = None
    employee_count: Optional[str] = None
    employee_source: Optional[str] = None
    headquarters: Optional[str] = None
    founded_year: Optional[str] = None
    ownership_type: OwnershipType = OwnershipType.PRIVATE
    parent_company: Optional[str] = None
    investors: List[str] = Field(default_factory=list)
    industry: str = ""
    sub_segment: Optional[str] = None
    business_model: str = ""
    citations: List[str] = Field(default_factory=list)


class RecentSignal(ReportModel):
    type: SignalType
    headline: str
    detail: str = ""
    date: str = ""
    source_url: str = ""
    source_name: str = ""
    relevance: str = ""
    is_intent_signal: bool = False


class IntentSignal(ReportModel):
    signal_type: IntentSignalType
    description: str
    timeframe: Optional[str] = None
    source: str = ""
    fit_score: FitScore = FitScore.MODERATE


class Hypothesis(ReportModel):
    primary_hypothesis: str
    supporting_evidence: List[str] = Field(default_factory=list)
    confidence: Level = Level.LOW


class PersonaAngle(ReportModel):
    hook: str
    supporting_point: str
    question: str


class PersonaAngles(ReportModel):
    cfo_finance: PersonaAngle
    pricing_rgm: PersonaAngle
    sales_commercial: PersonaAngle
    ceo_gm: PersonaAngle
    technology_analytics: PersonaAngle


class OutreachPriority(ReportModel):
    recommended_personas: List[PersonaKey] = Field(default_factory=list)
    urgency: Level = Level.MEDIUM
    urgency_reason: str = ""
    cautions: List[str] = Field(default_factory=list)


class ModelsUsed(ReportModel):
    search: str
    synthesis: str


class ReportMetadata(ReportModel):
    """Usage metadata emitted alongside every report."""

    searches_performed: int = Field(default=0, ge=0)
    sources_cited: int = Field(default=0, ge=0)
    models_used: ModelsUsed
    execution_time_ms: int = Field(default=0, ge=0)
    estimated_cost: float = Field(default=0.0, ge=0.0)


class IntelligenceReport(ReportModel):
    """Complete sales-intelligence report for one research request."""

    company_profile: CompanyProfile
    recent_signals: List[RecentSignal] = Field(default_factory=list)
    intent_signals: List[IntentSignal] = Field(default_factory=list)
    hypothesis: Hypothesis
    persona_angles: PersonaAngles
    outreach_priority: OutreachPriority
    research_gaps: List[str] = Field(default_factory=list)
    metadata: ReportMetadata


# Request Models


class ResearchRequest(BaseModel):
    """Input accepted by the research pipeline."""

    entity_name: str = Field(..., min_length=1, max_length=300)
    entity_category: str = Field(default="", max_length=300)
    entity_site: Optional[str] = Field(default=None, max_length=500)
    depth: ResearchDepth = ResearchDepth.STANDARD

    model_config = ConfigDict(frozen=True)

    @field_validator("entity_name", "entity_category", mode="before")
    @classmethod
    def strip_text(cls, v):
        """Trim surrounding whitespace."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("entity_site", mode="before")
    @classmethod
    def normalize_site(cls, v):
        """Reduce a site hint to a bare host, dropping placeholders."""
        if v is None:
            return None
        site = str(v).strip()
        if not site or site.lower() in ("not provided", "n/a", "none"):
            return None
        for prefix in ("https://", "http://"):
            if site.lower().startswith(prefix):
                site = site[len(prefix):]
        if site.lower().startswith("www."):
            site = site[4:]
        return site.split("/")[0].lower() or None
