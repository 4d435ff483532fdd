"""Tests for FactCheckAdapter and verdict normalization.

Tests cover:
- Missing key returns configured=False without any request
- Claim review parsing (publisher fallbacks, claim text fallback)
- Verdict normalization ordering
- Dedupe by review URL / publisher+title+date, 12-match cap
- Provider failures raise ProviderError
"""

import httpx
import pytest

from evidence_engine.schemas import NormalizedVerdict
from evidence_engine.verification.adapters.fact_check import (
    FactCheckAdapter,
    normalize_verdict,
)
from evidence_engine.verification.errors import ProviderError
from evidence_engine.verification.http import JsonHttpClient


# ── Helpers ──────────────────────────────────────────────────────────────


def make_http(handler, calls: list) -> JsonHttpClient:
    def recording(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    return JsonHttpClient(transport=httpx.MockTransport(recording), retry_wait=0)


def review(url: str, rating: str = "False", publisher: str = "Reuters", **extra) -> dict:
    data = {
        "publisher": {"name": publisher, "site": "reuters.com"},
        "url": url,
        "title": "Fact Check: Bridge collapse was not sabotage",
        "reviewDate": "2026-03-02T00:00:00Z",
        "textualRating": rating,
        "languageCode": "en",
    }
    data.update(extra)
    return data


# ── Verdict Normalization Tests ───────────────────────────────────────────


class TestNormalizeVerdict:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("False", NormalizedVerdict.CONTRADICTED),
            ("Pants on Fire!", NormalizedVerdict.CONTRADICTED),
            ("Mostly False", NormalizedVerdict.CONTRADICTED),
            ("This claim is not true", NormalizedVerdict.CONTRADICTED),
            ("True", NormalizedVerdict.SUPPORTED),
            ("Mostly True", NormalizedVerdict.SUPPORTED),
            ("Accurate", NormalizedVerdict.SUPPORTED),
            ("Misleading", NormalizedVerdict.CONTESTED),
            ("Missing context: out of context", NormalizedVerdict.CONTESTED),
            ("Unproven", NormalizedVerdict.CONTESTED),
            ("Satire", NormalizedVerdict.UNKNOWN),
            ("", NormalizedVerdict.UNKNOWN),
        ],
    )
    def test_patterns(self, text: str, expected: NormalizedVerdict) -> None:
        assert normalize_verdict(text) == expected

    def test_contradiction_checked_first(self) -> None:
        assert normalize_verdict("Incorrect") == NormalizedVerdict.CONTRADICTED

    def test_support_checked_before_contest(self) -> None:
        assert normalize_verdict("Half True") == NormalizedVerdict.SUPPORTED


# ── Configuration Tests ───────────────────────────────────────────────────


class TestConfiguration:
    @pytest.mark.asyncio
    async def test_no_key_makes_no_request(self) -> None:
        calls: list = []
        adapter = FactCheckAdapter(api_key=None, http=make_http(lambda r: httpx.Response(500), calls))
        result = await adapter.search("bridge collapsed sabotage")
        assert result.configured is False
        assert result.matches == []
        assert calls == []

    def test_blank_key_not_configured(self) -> None:
        assert FactCheckAdapter(api_key="   ").configured is False

    @pytest.mark.asyncio
    async def test_zero_claims_is_configured_and_empty(self) -> None:
        calls: list = []
        adapter = FactCheckAdapter(
            api_key="key", http=make_http(lambda r: httpx.Response(200, json={}), calls)
        )
        result = await adapter.search("bridge collapsed sabotage")
        assert result.configured is True
        assert result.matches == []
        assert len(calls) == 1


# ── Parsing Tests ─────────────────────────────────────────────────────────


class TestParsing:
    @pytest.mark.asyncio
    async def test_request_parameters(self) -> None:
        calls: list = []
        adapter = FactCheckAdapter(
            api_key="secret", http=make_http(lambda r: httpx.Response(200, json={}), calls)
        )
        await adapter.search("bridge collapsed sabotage")
        params = calls[0].url.params
        assert params["query"] == "bridge collapsed sabotage"
        assert params["languageCode"] == "en"
        assert params["pageSize"] == "10"
        assert params["key"] == "secret"

    @pytest.mark.asyncio
    async def test_claim_review_mapped(self) -> None:
        payload = {
            "claims": [
                {
                    "text": "The bridge collapsed because of sabotage",
                    "claimant": "Social media posts",
                    "claimReview": [review("https://reuters.com/fc/1")],
                }
            ]
        }
        adapter = FactCheckAdapter(
            api_key="key", http=make_http(lambda r: httpx.Response(200, json=payload), [])
        )
        result = await adapter.search("bridge sabotage")

        assert len(result.matches) == 1
        match = result.matches[0]
        assert match.claim_text == "The bridge collapsed because of sabotage"
        assert match.claimant == "Social media posts"
        assert match.publisher == "Reuters"
        assert match.textual_rating == "False"
        assert match.review_url == "https://reuters.com/fc/1"
        assert match.normalized_verdict == NormalizedVerdict.CONTRADICTED

    @pytest.mark.asyncio
    async def test_fallbacks(self) -> None:
        payload = {
            "claims": [
                {
                    "claimReview": [
                        {"publisher": {"site": "snopes.com"}, "url": "https://snopes.com/a"},
                        {"url": "https://example.org/b"},
                    ]
                }
            ]
        }
        adapter = FactCheckAdapter(
            api_key="key", http=make_http(lambda r: httpx.Response(200, json=payload), [])
        )
        result = await adapter.search("bridge sabotage")

        assert [m.publisher for m in result.matches] == ["snopes.com", "Unknown Publisher"]
        assert all(m.claim_text == "bridge sabotage" for m in result.matches)
        assert all(m.review_title == "Fact-check review" for m in result.matches)
        assert all(m.normalized_verdict == NormalizedVerdict.UNKNOWN for m in result.matches)

    @pytest.mark.asyncio
    async def test_dedupe_by_url_and_composite_key(self) -> None:
        no_url = review("", publisher="PolitiFact")
        payload = {
            "claims": [
                {"text": "a", "claimReview": [review("https://x/1"), review("https://x/1")]},
                {"text": "b", "claimReview": [no_url, dict(no_url)]},
            ]
        }
        adapter = FactCheckAdapter(
            api_key="key", http=make_http(lambda r: httpx.Response(200, json=payload), [])
        )
        result = await adapter.search("q")
        assert len(result.matches) == 2

    @pytest.mark.asyncio
    async def test_capped_at_twelve(self) -> None:
        payload = {
            "claims": [
                {"text": "c", "claimReview": [review(f"https://x/{i}") for i in range(20)]}
            ]
        }
        adapter = FactCheckAdapter(
            api_key="key", http=make_http(lambda r: httpx.Response(200, json=payload), [])
        )
        result = await adapter.search("q")
        assert len(result.matches) == 12


# ── Failure Tests ─────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_server_error_raises_after_retry(self) -> None:
        calls: list = []
        adapter = FactCheckAdapter(
            api_key="key",
            http=make_http(lambda r: httpx.Response(503, text="unavailable"), calls),
        )
        with pytest.raises(ProviderError) as exc_info:
            await adapter.search("q")
        assert exc_info.value.status_code == 503
        assert "Google Fact Check API failed (503)" in str(exc_info.value)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_key_not_in_error_message(self) -> None:
        adapter = FactCheckAdapter(
            api_key="super-secret-key",
            http=make_http(lambda r: httpx.Response(403, text="forbidden"), []),
        )
        with pytest.raises(ProviderError) as exc_info:
            await adapter.search("q")
        assert "super-secret-key" not in str(exc_info.value)
