"""Unit tests for the stage prompts."""

from revintel.core.models import PERSONA_KEYS, ResearchRequest
from revintel.intelligence.prompts import REPORT_SCHEMA, build_search_prompt, build_synthesis_prompt


def test_search_prompt_lists_angles_and_site():
    request = ResearchRequest(entity_name="Acme Foods", entity_category="Snacks", entity_site="acmefoods.com")

    prompt = build_search_prompt(request, "EVIDENCE", reference_year=2025)

    assert 'Research "Acme Foods" in the Snacks industry' in prompt
    assert '"Acme Foods" news 2025 2024' in prompt
    assert "site:acmefoods.com" in prompt
    assert "EVIDENCE" in prompt


def test_search_prompt_without_evidence():
    prompt = build_search_prompt(ResearchRequest(entity_name="Acme"), reference_year=2025)

    assert "No pre-gathered search results available." in prompt
    assert "unspecified industry" in prompt


def test_synthesis_prompt_embeds_brief_and_schema():
    prompt = build_synthesis_prompt(ResearchRequest(entity_name="Acme"), "THE BRIEF")

    assert "THE BRIEF" in prompt
    assert "## WEB SEARCH EVIDENCE" not in prompt
    assert '"persona_angles"' in prompt


def test_schema_covers_every_persona():
    assert list(REPORT_SCHEMA["persona_angles"]) == PERSONA_KEYS
    assert "metadata" not in REPORT_SCHEMA
