"""GDELT DOC 2.0 news archive adapter.

GDELT is best-effort: it rate-limits aggressively and sometimes returns
empty or non-JSON bodies. Every request goes through the process-wide
RateGovernor, and any failure (429, non-2xx, timeout, bad JSON) is
treated as "no data" for that query.

Search strategy:
1. Keywords scoped to trusted domains with an OR of domainis: filters
2. If that returns nothing, the same keywords unscoped

Results keep provider order (ToneDesc: most critical coverage first),
deduped by URL and capped at 5.
"""

import math
from typing import Any, Optional
from urllib.parse import urlparse

import structlog

from evidence_engine.config.scoring import (
    FACT_CHECK_OUTLETS,
    SOURCE_LABELS,
    TRUSTED_NEWS_DOMAINS,
)
from evidence_engine.config.settings import settings
from evidence_engine.schemas import NewsArticle, QueryIntent, SearchHints
from evidence_engine.verification.errors import ProviderError
from evidence_engine.verification.http import JsonHttpClient
from evidence_engine.verification.rate_governor import RateGovernor, gdelt_governor
from evidence_engine.verification.text import extract_search_keywords

GDELT_API = "https://api.gdeltproject.org/api/v2/doc/doc"
MAX_RESULTS = 5


def trusted_domains_for(intent: QueryIntent) -> list[str]:
    """Allow-list for the scoped attempt; fact-check outlets only for misinformation."""
    if intent == QueryIntent.MISINFORMATION:
        return list(TRUSTED_NEWS_DOMAINS)
    return [d for d in TRUSTED_NEWS_DOMAINS if d not in FACT_CHECK_OUTLETS]


def normalize_tone(value: Any) -> Optional[float]:
    try:
        tone = float(value)
    except (TypeError, ValueError):
        return None
    return tone if math.isfinite(tone) else None


class GdeltAdapter:
    """Search recent news coverage with provider-side rate limiting."""

    label = SOURCE_LABELS["gdelt"]

    def __init__(
        self,
        http: Optional[JsonHttpClient] = None,
        governor: Optional[RateGovernor] = None,
    ) -> None:
        base = http or JsonHttpClient()
        self._http = base.with_timeout(settings.news_timeout)
        self._governor = governor or gdelt_governor
        self._logger = structlog.get_logger().bind(component="GdeltAdapter")

    async def search(
        self, query: str, hints: Optional[SearchHints] = None
    ) -> list[NewsArticle]:
        """Scoped search, then unscoped fallback. Never raises on provider failure."""
        hints = hints or SearchHints()
        keywords = extract_search_keywords(query)
        if not keywords:
            return []

        domain_filter = " OR ".join(
            f"domainis:{domain}" for domain in trusted_domains_for(hints.intent)
        )
        primary = await self._fetch(f"{keywords} ({domain_filter})")
        if primary is None:
            return []

        articles = self._map_articles(primary)
        if articles:
            return articles

        fallback = await self._fetch(keywords)
        if fallback is None:
            return []
        return self._map_articles(fallback)

    async def _fetch(self, gdelt_query: str) -> Optional[dict[str, Any]]:
        params = {
            "query": gdelt_query,
            "mode": "ArtList",
            "format": "json",
            "maxrecords": "30",
            "timespan": "3m",
            "sort": "ToneDesc",
        }

        async def request() -> Any:
            return await self._http.get_json(GDELT_API, params=params, label=self.label, retries=0)

        try:
            payload = await self._governor.run(request)
        except ProviderError as exc:
            self._logger.debug("gdelt_no_data", reason=str(exc)[:120], status=exc.status_code)
            return None

        return payload if isinstance(payload, dict) else None

    def _map_articles(self, payload: dict[str, Any]) -> list[NewsArticle]:
        raw_articles = payload.get("articles")
        if not isinstance(raw_articles, list):
            return []

        articles: list[NewsArticle] = []
        seen: set[str] = set()
        for raw in raw_articles:
            if not isinstance(raw, dict):
                continue
            url = str(raw.get("url") or "").strip()
            if not url or url in seen:
                continue
            seen.add(url)

            domain = str(raw.get("domain") or "").strip()
            if not domain:
                host = urlparse(url).hostname or ""
                domain = host[4:] if host.startswith("www.") else host or "unknown"

            articles.append(
                NewsArticle(
                    title=str(raw.get("title") or "").strip() or "Related article",
                    url=url,
                    domain=domain,
                    tone=normalize_tone(raw.get("tone")),
                    seen_date=str(raw.get("seendate") or "").strip() or None,
                    language=str(raw.get("language") or "").strip() or None,
                )
            )
            if len(articles) >= MAX_RESULTS:
                break
        return articles
