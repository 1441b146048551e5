"""Tests for log redaction and correlation IDs."""

from revintel.core.logging import (
    REDACTED,
    clear_correlation_id,
    get_correlation_id,
    redact_secrets,
    set_correlation_id,
)


def test_redact_secrets_masks_credential_keys():
    event = {"event": "provider_call", "api_key": "sk-live", "query": "Acme"}

    result = redact_secrets(None, "info", event)

    assert result["api_key"] == REDACTED
    assert result["query"] == "Acme"


def test_correlation_id_round_trip():
    try:
        assert set_correlation_id("req-1") == "req-1"
        assert get_correlation_id() == "req-1"
    finally:
        clear_correlation_id()

    assert get_correlation_id() is None


def test_generated_correlation_id_is_short():
    try:
        assert len(set_correlation_id()) == 8
    finally:
        clear_correlation_id()
