"""Google Fact Check Tools adapter.

Missing credentials are a first-class outcome: the adapter returns
configured=False without touching the network. With a key, each
claimReview entry becomes a FactCheckMatch whose verdict is normalized by
ordered keyword classes (contradiction, then support, then contest).

Usage:
    from evidence_engine.verification.adapters.fact_check import FactCheckAdapter

    adapter = FactCheckAdapter(api_key="...")
    result = await adapter.search("bridge collapsed sabotage")
"""

from typing import Any, Optional

import structlog

from evidence_engine.config.scoring import SOURCE_LABELS, VERDICT_PATTERNS
from evidence_engine.schemas import (
    FactCheckMatch,
    FactCheckResult,
    NormalizedVerdict,
    SearchHints,
)
from evidence_engine.verification.errors import MalformedPayloadError
from evidence_engine.verification.http import JsonHttpClient

FACT_CHECK_API = "https://factchecktools.googleapis.com/v1alpha1/claims:search"
MAX_MATCHES = 12
PAGE_SIZE = 10


def normalize_verdict(text: str) -> NormalizedVerdict:
    """Map free-text rating (and review title) to a normalized verdict."""
    lowered = (text or "").lower()
    for verdict, pattern in VERDICT_PATTERNS:
        if pattern.search(lowered):
            return NormalizedVerdict(verdict)
    return NormalizedVerdict.UNKNOWN


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class FactCheckAdapter:
    """Search published claim reviews."""

    label = SOURCE_LABELS["factcheck"]

    def __init__(
        self,
        api_key: Optional[str] = None,
        http: Optional[JsonHttpClient] = None,
        max_matches: int = MAX_MATCHES,
    ) -> None:
        self._api_key = (api_key or "").strip()
        self._http = http or JsonHttpClient()
        self.max_matches = max_matches
        self._logger = structlog.get_logger().bind(component="FactCheckAdapter")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def search(self, query: str, hints: Optional[SearchHints] = None) -> FactCheckResult:
        """Look up claim reviews for query.

        Returns:
            FactCheckResult; configured=False when no API key is set.

        Raises:
            ProviderError: Request failed or payload malformed.
        """
        if not self.configured:
            return FactCheckResult(configured=False)

        payload = await self._http.get_json(
            FACT_CHECK_API,
            params={
                "query": query,
                "languageCode": "en",
                "pageSize": str(PAGE_SIZE),
                "key": self._api_key,
            },
            label=self.label,
        )
        if not isinstance(payload, dict):
            raise MalformedPayloadError(self.label, f"{self.label} returned an unexpected payload.")

        matches = self._dedupe(self._parse_claims(payload.get("claims"), query))
        self._logger.debug("fact_checks_found", query=query[:80], matches=len(matches))
        return FactCheckResult(configured=True, matches=matches)

    def _parse_claims(self, claims: Any, query: str) -> list[FactCheckMatch]:
        rows: list[FactCheckMatch] = []
        if not isinstance(claims, list):
            return rows

        for claim in claims:
            if not isinstance(claim, dict):
                continue
            claim_text = _text(claim.get("text")) or query
            claimant = _text(claim.get("claimant")) or None
            reviews = claim.get("claimReview")
            if not isinstance(reviews, list):
                continue

            for review in reviews:
                if not isinstance(review, dict):
                    continue
                publisher_info = review.get("publisher") or {}
                publisher = (
                    _text(publisher_info.get("name"))
                    or _text(publisher_info.get("site"))
                    or "Unknown Publisher"
                )
                review_title = _text(review.get("title")) or "Fact-check review"
                rating = _text(review.get("textualRating")) or None
                rows.append(
                    FactCheckMatch(
                        claim_text=claim_text,
                        claimant=claimant,
                        publisher=publisher,
                        review_title=review_title,
                        textual_rating=rating,
                        review_url=_text(review.get("url")),
                        review_date=_text(review.get("reviewDate")) or None,
                        language_code=_text(review.get("languageCode")) or None,
                        normalized_verdict=normalize_verdict(f"{rating or ''} {review_title}"),
                    )
                )
        return rows

    def _dedupe(self, rows: list[FactCheckMatch]) -> list[FactCheckMatch]:
        """Dedupe by review URL, else publisher|title|date; cap at max_matches."""
        seen: set[str] = set()
        unique_rows: list[FactCheckMatch] = []
        for row in rows:
            key = row.review_url or f"{row.publisher}|{row.review_title}|{row.review_date or ''}"
            if key in seen:
                continue
            seen.add(key)
            unique_rows.append(row)
            if len(unique_rows) >= self.max_matches:
                break
        return unique_rows
