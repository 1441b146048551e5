"""
Configuration management for revintel.

Provides validated configuration from environment variables with proper type
checking and defaults, and turns it into the per-request ``ResearchContext``
that the pipeline threads through every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from revintel.core.models import ResearchDepth


def _parse_bool(v) -> bool:
    if isinstance(v, str):
        return v.lower() in ("1", "true", "yes", "y")
    return bool(v)


class CredentialsConfig(BaseSettings):
    """Provider credentials."""

    openai_api_key: Optional[SecretStr] = Field(default=None, alias="OPENAI_API_KEY")
    tavily_api_key: Optional[SecretStr] = Field(default=None, alias="TAVILY_API_KEY")

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")


class ModelConfig(BaseSettings):
    """Per-task model selection."""

    search_model: str = Field(default="gpt-4o-search-preview", alias="SEARCH_MODEL")
    synthesis_model_standard: str = Field(default="gpt-4o", alias="SYNTHESIS_MODEL_STANDARD")
    synthesis_model_deep: str = Field(default="o1", alias="SYNTHESIS_MODEL_DEEP")
    search_context_size: str = Field(default="high", alias="SEARCH_CONTEXT_SIZE")

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")


class SearchConfig(BaseSettings):
    """Web search provider settings."""

    enabled: bool = Field(default=True, alias="SEARCH_ENABLED")
    max_calls: int = Field(default=10, ge=0, alias="MAX_SEARCH_CALLS")
    results_per_query: int = Field(default=3, ge=1, le=20, alias="SEARCH_RESULTS_PER_QUERY")
    timeout_seconds: float = Field(default=15.0, gt=0, alias="SEARCH_TIMEOUT_SECONDS")
    content_chars: int = Field(default=500, ge=50, alias="SEARCH_CONTENT_CHARS")

    @field_validator("enabled", mode="before")
    @classmethod
    def parse_enabled(cls, v):
        return _parse_bool(v)

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")


class PricingConfig(BaseSettings):
    """Approximate USD rates used for cost estimates."""

    standard_input_per_1k: float = Field(default=0.0025, alias="PRICE_STANDARD_INPUT_PER_1K")
    standard_output_per_1k: float = Field(default=0.01, alias="PRICE_STANDARD_OUTPUT_PER_1K")
    deep_input_per_1k: float = Field(default=0.015, alias="PRICE_DEEP_INPUT_PER_1K")
    deep_output_per_1k: float = Field(default=0.06, alias="PRICE_DEEP_OUTPUT_PER_1K")
    search_per_call: float = Field(default=0.01, alias="PRICE_SEARCH_PER_CALL")

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: str = Field(default="production", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Component configurations
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    models: ModelConfig = Field(default_factory=ModelConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)

    # Generative stage limits
    stage_timeout_seconds: float = Field(default=120.0, gt=0, alias="STAGE_TIMEOUT_SECONDS")
    deep_stage_timeout_seconds: float = Field(default=300.0, gt=0, alias="DEEP_STAGE_TIMEOUT_SECONDS")
    llm_max_attempts: int = Field(default=2, ge=1, le=5, alias="LLM_MAX_ATTEMPTS")

    @field_validator("debug", mode="before")
    @classmethod
    def parse_debug(cls, v):
        return _parse_bool(v)

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


# Per-request context


@dataclass(frozen=True, slots=True)
class Credentials:
    """Credentials handed to a single research request."""

    openai_api_key: Optional[str] = None
    tavily_api_key: Optional[str] = None

    def __repr__(self) -> str:
        return (
            "Credentials("
            f"openai_api_key={'***' if self.openai_api_key else None}, "
            f"tavily_api_key={'***' if self.tavily_api_key else None})"
        )


@dataclass(frozen=True, slots=True)
class TierPricing:
    input_per_1k: float
    output_per_1k: float


@dataclass(frozen=True, slots=True)
class ResearchContext:
    """
    Everything one research request needs from configuration.

    Built once at the entry point and passed explicitly to each component so
    that nothing downstream reads process-wide settings.
    """

    credentials: Credentials
    search_model: str = "gpt-4o-search-preview"
    synthesis_models: Dict[str, str] = field(
        default_factory=lambda: {
            ResearchDepth.STANDARD.value: "gpt-4o",
            ResearchDepth.DEEP.value: "o1",
        }
    )
    search_context_size: str = "high"
    search_enabled: bool = True
    max_search_calls: int = 10
    results_per_query: int = 3
    search_timeout_seconds: float = 15.0
    search_content_chars: int = 500
    tier_pricing: Dict[str, TierPricing] = field(
        default_factory=lambda: {
            ResearchDepth.STANDARD.value: TierPricing(0.0025, 0.01),
            ResearchDepth.DEEP.value: TierPricing(0.015, 0.06),
        }
    )
    search_price_per_call: float = 0.01
    stage_timeout_seconds: float = 120.0
    deep_stage_timeout_seconds: float = 300.0
    llm_max_attempts: int = 2

    def synthesis_model_for(self, depth: ResearchDepth | str) -> str:
        return self.synthesis_models[ResearchDepth(depth).value]

    def pricing_for(self, depth: ResearchDepth | str) -> TierPricing:
        return self.tier_pricing[ResearchDepth(depth).value]

    def stage_timeout_for(self, depth: ResearchDepth | str) -> float:
        if ResearchDepth(depth) is ResearchDepth.DEEP:
            return self.deep_stage_timeout_seconds
        return self.stage_timeout_seconds


def _secret(value: Optional[SecretStr]) -> Optional[str]:
    return value.get_secret_value() if value is not None else None


def build_research_context(
    config: Optional[Settings] = None,
    credentials: Optional[Credentials] = None,
) -> ResearchContext:
    """
    Snapshot settings into a per-request context.

    Args:
        config: Settings to read; defaults to the process settings.
        credentials: Caller-supplied credentials. When omitted, the keys from
            the environment are used.
    """
    config = config or get_settings()
    if credentials is None:
        credentials = Credentials(
            openai_api_key=_secret(config.credentials.openai_api_key),
            tavily_api_key=_secret(config.credentials.tavily_api_key),
        )

    pricing = config.pricing
    return ResearchContext(
        credentials=credentials,
        search_model=config.models.search_model,
        synthesis_models={
            ResearchDepth.STANDARD.value: config.models.synthesis_model_standard,
            ResearchDepth.DEEP.value: config.models.synthesis_model_deep,
        },
        search_context_size=config.models.search_context_size,
        search_enabled=config.search.enabled,
        max_search_calls=config.search.max_calls,
        results_per_query=config.search.results_per_query,
        search_timeout_seconds=config.search.timeout_seconds,
        search_content_chars=config.search.content_chars,
        tier_pricing={
            ResearchDepth.STANDARD.value: TierPricing(
                pricing.standard_input_per_1k, pricing.standard_output_per_1k
            ),
            ResearchDepth.DEEP.value: TierPricing(
                pricing.deep_input_per_1k, pricing.deep_output_per_1k
            ),
        },
        search_price_per_call=pricing.search_per_call,
        stage_timeout_seconds=config.stage_timeout_seconds,
        deep_stage_timeout_seconds=config.deep_stage_timeout_seconds,
        llm_max_attempts=config.llm_max_attempts,
    )


def validate_required_settings(config: Optional[Settings] = None) -> List[str]:
    """
    Validate that the credentials a research run needs are present.

    Returns:
        List of missing required settings
    """
    missing = []
    try:
        config = config or get_settings()
        if not config.credentials.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if config.search.enabled and not config.credentials.tavily_api_key:
            missing.append("TAVILY_API_KEY")
    except Exception as e:
        missing.append(f"Configuration error: {e}")

    return missing


def print_configuration_summary(config: Optional[Settings] = None) -> None:
    """Print a summary of the current configuration for debugging."""
    try:
        config = config or get_settings()
        print("=== revintel Configuration Summary ===")
        print(f"Environment: {config.environment}")
        print(f"Debug Mode: {config.debug}")
        print()
        print(f"OpenAI: {'✓' if config.credentials.openai_api_key else '✗'}")
        print(f"Tavily: {'✓' if config.credentials.tavily_api_key else '✗'}")
        print()
        print("Models:")
        print(f"  Search: {config.models.search_model}")
        print(f"  Synthesis (standard): {config.models.synthesis_model_standard}")
        print(f"  Synthesis (deep): {config.models.synthesis_model_deep}")
        print()
        print("Web Search:")
        print(f"  Enabled: {'✓' if config.search.enabled else '✗'}")
        print(f"  Max Calls per Request: {config.search.max_calls}")
        print(f"  Results per Query: {config.search.results_per_query}")
        print(f"  Timeout: {config.search.timeout_seconds}s")
        print("=" * 38)
    except Exception as e:
        print(f"Error loading configuration: {e}")
