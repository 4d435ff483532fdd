"""Tests for the loguru configuration used by the LLM client and governor.

Tests cover:
- Component tagging through get_logger
- Verification correlation ids shared with structlog context
- Credential masking in log messages
"""

import pytest

from evidence_engine.config.logging import (
    REDACTED,
    configure_logging,
    get_logger,
    redact_secrets,
)
from evidence_engine.utils.logging import (
    bind_verification_context,
    clear_verification_context,
)


# ── Fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def captured():
    messages: list = []
    clear_verification_context()
    configure_logging(sink=messages.append, level="DEBUG")
    yield messages
    clear_verification_context()
    configure_logging()


# ── Redaction Tests ──────────────────────────────────────────────────────


class TestRedaction:
    def test_query_string_key(self) -> None:
        text = "GET https://factchecktools.googleapis.com/v1alpha1/claims:search?query=x&key=abc123XYZ failed"
        redacted = redact_secrets(text)
        assert "abc123XYZ" not in redacted
        assert f"key={REDACTED}" in redacted
        assert "query=x" in redacted

    def test_api_key_parameter(self) -> None:
        assert redact_secrets("api_key=s3cret value") == f"api_key={REDACTED} value"

    def test_bearer_token(self) -> None:
        assert redact_secrets("Authorization: Bearer tok.en-123") == f"Authorization: Bearer {REDACTED}"

    def test_gemini_style_key(self) -> None:
        key = "AIza" + "B" * 35
        assert redact_secrets(f"invalid key {key}") == f"invalid key {REDACTED}"

    def test_plain_text_untouched(self) -> None:
        text = "Spacing requests: waiting 1.20s"
        assert redact_secrets(text) == text


# ── Record Context Tests ─────────────────────────────────────────────────


class TestRecordContext:
    def test_component_bound(self, captured) -> None:
        get_logger("RateGovernor.gdelt").debug("Spacing requests: waiting 1.20s")

        record = captured[-1].record
        assert record["extra"]["component"] == "RateGovernor.gdelt"
        assert record["extra"]["correlation_id"] == "-"
        assert "RateGovernor.gdelt | - | Spacing requests" in str(captured[-1])

    def test_correlation_id_from_verification_context(self, captured) -> None:
        bind_verification_context("corr-42", finding_id="f-7")

        get_logger("llm.gemini").warning("Retrying with strict JSON mode")

        extra = captured[-1].record["extra"]
        assert extra["correlation_id"] == "corr-42"
        assert extra["finding_id"] == "f-7"

    def test_messages_are_masked(self, captured) -> None:
        get_logger("llm.gemini").error("Max retries exceeded: request ?key=topsecret rejected")

        assert "topsecret" not in str(captured[-1])
        assert "topsecret" not in captured[-1].record["message"]

    def test_level_filter(self) -> None:
        messages: list = []
        configure_logging(sink=messages.append, level="WARNING")
        try:
            log = get_logger("llm.gemini")
            log.debug("hidden")
            log.warning("shown")
        finally:
            configure_logging()

        assert [m.record["message"] for m in messages] == ["shown"]
