"""Concurrent evidence collection across the five provider families.

Each provider runs as its own pipeline:
- try the pack's variants for that family in order
- stop at the first variant with at least one result
- all variants empty is a successful "no evidence" outcome

The five pipelines run concurrently and the aggregator waits for every one
of them to settle. A pipeline exception becomes a named entry in the error
map; news-archive failures are swallowed into an empty result.

Usage:
    from evidence_engine.verification.evidence_aggregator import EvidenceAggregator

    aggregator = EvidenceAggregator()
    aggregated = await aggregator.aggregate(pack, finding, credentials)
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, Field

from evidence_engine.schemas import (
    Corroboration,
    Credentials,
    ErrorSource,
    FactCheckResult,
    Finding,
    NewsArticle,
    QueryPack,
    SearchHints,
)
from evidence_engine.verification.adapters import (
    FactCheckAdapter,
    GdeltAdapter,
    PubMedAdapter,
    WikidataAdapter,
    WikipediaAdapter,
)
from evidence_engine.verification.http import JsonHttpClient

T = TypeVar("T")

# Fallback messages when an exception carries no text
_DEFAULT_ERRORS: dict[ErrorSource, str] = {
    ErrorSource.FACT_CHECKS: "Google Fact Check lookup failed.",
    ErrorSource.WIKIPEDIA: "Wikipedia lookup failed.",
    ErrorSource.WIKIDATA: "Wikidata lookup failed.",
    ErrorSource.PUBMED: "PubMed lookup failed.",
}


class AggregatedEvidence(BaseModel):
    """Raw per-source results of one aggregation pass."""

    fact_checks: FactCheckResult = Field(
        default_factory=lambda: FactCheckResult(configured=False)
    )
    corroboration: Corroboration = Field(default_factory=Corroboration)
    news_articles: list[NewsArticle] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)


class EvidenceAggregator:
    """Fan out a QueryPack to every provider and join the results.

    The fact-check adapter is built per call from the caller's credentials
    unless one is injected. The other adapters are stateless and reused.
    """

    def __init__(
        self,
        http: Optional[JsonHttpClient] = None,
        fact_check_factory: Optional[Callable[[Optional[str]], FactCheckAdapter]] = None,
        wikipedia: Optional[WikipediaAdapter] = None,
        wikidata: Optional[WikidataAdapter] = None,
        pubmed: Optional[PubMedAdapter] = None,
        gdelt: Optional[GdeltAdapter] = None,
    ) -> None:
        """Initialize aggregator.

        Args:
            http: Shared JSON client for adapters built here.
            fact_check_factory: Builds a fact-check adapter from an API key.
            wikipedia: Encyclopedic search adapter override.
            wikidata: Structured-entity search adapter override.
            pubmed: Biomedical search adapter override.
            gdelt: News-archive adapter override.
        """
        self._http = http or JsonHttpClient()
        self._fact_check_factory = fact_check_factory or (
            lambda key: FactCheckAdapter(api_key=key, http=self._http)
        )
        self.wikipedia = wikipedia or WikipediaAdapter(http=self._http)
        self.wikidata = wikidata or WikidataAdapter(http=self._http)
        self.pubmed = pubmed or PubMedAdapter(http=self._http)
        self.gdelt = gdelt or GdeltAdapter(http=self._http)
        self._logger = structlog.get_logger().bind(component="EvidenceAggregator")

    async def aggregate(
        self,
        pack: QueryPack,
        finding: Finding,
        credentials: Optional[Credentials] = None,
    ) -> AggregatedEvidence:
        """Run all provider pipelines concurrently and collect their results.

        Args:
            pack: Query variants for every provider family.
            finding: Finding under verification (used for log context).
            credentials: Caller-supplied provider keys.

        Returns:
            AggregatedEvidence with per-source results and error messages.
        """
        credentials = credentials or Credentials()
        hints = pack.hints
        fact_check = self._fact_check_factory(credentials.fact_check_key)

        self._logger.info(
            "aggregation_started",
            finding_id=finding.id,
            primary=pack.primary[:80],
            intent=pack.intent.value,
            fact_check_configured=fact_check.configured,
        )

        results = await asyncio.gather(
            self._fact_check_pipeline(fact_check, pack.fact_check, hints),
            self._first_non_empty("wikipedia", pack.wikipedia, self.wikipedia.search, hints),
            self._first_non_empty("wikidata", pack.wikidata, self.wikidata.search, hints),
            self._first_non_empty("pubmed", pack.pubmed, self.pubmed.search, hints),
            self._first_non_empty("gdelt", pack.gdelt, self.gdelt.search, hints),
            return_exceptions=True,
        )
        fact_result, wikipedia_result, wikidata_result, pubmed_result, gdelt_result = results

        errors: dict[str, str] = {}

        if isinstance(fact_result, BaseException):
            self._record_error(errors, ErrorSource.FACT_CHECKS, fact_result)
            fact_checks = FactCheckResult(configured=fact_check.configured)
        else:
            fact_checks = fact_result

        corroboration = Corroboration(
            wikipedia=self._settled(errors, ErrorSource.WIKIPEDIA, wikipedia_result),
            wikidata=self._settled(errors, ErrorSource.WIKIDATA, wikidata_result),
            pubmed=self._settled(errors, ErrorSource.PUBMED, pubmed_result),
        )

        if isinstance(gdelt_result, BaseException):
            self._logger.debug("news_lookup_failed", error=str(gdelt_result)[:120])
            news_articles: list[NewsArticle] = []
        else:
            news_articles = gdelt_result

        self._logger.info(
            "aggregation_complete",
            finding_id=finding.id,
            fact_checks=len(fact_checks.matches),
            wikipedia=len(corroboration.wikipedia),
            wikidata=len(corroboration.wikidata),
            pubmed=len(corroboration.pubmed),
            news=len(news_articles),
            failed_sources=sorted(errors),
        )

        return AggregatedEvidence(
            fact_checks=fact_checks,
            corroboration=corroboration,
            news_articles=news_articles,
            errors=errors,
        )

    async def _fact_check_pipeline(
        self,
        adapter: FactCheckAdapter,
        variants: list[str],
        hints: SearchHints,
    ) -> FactCheckResult:
        """Variant loop that carries the configured flag across attempts."""
        if not adapter.configured:
            return FactCheckResult(configured=False)

        configured = False
        for variant in variants:
            if not variant.strip():
                continue
            result = await adapter.search(variant, hints)
            configured = configured or result.configured
            if result.matches:
                self._logger.debug("variant_hit", source="fact_checks", variant=variant[:80])
                return result
        return FactCheckResult(configured=configured)

    async def _first_non_empty(
        self,
        source: str,
        variants: list[str],
        search: Callable[[str, SearchHints], Awaitable[list[T]]],
        hints: SearchHints,
    ) -> list[T]:
        """Return the first variant's results that are non-empty, else []."""
        for variant in variants:
            if not variant.strip():
                continue
            items = await search(variant, hints)
            if items:
                self._logger.debug("variant_hit", source=source, variant=variant[:80], count=len(items))
                return items
        self._logger.debug("variants_exhausted", source=source, attempts=len(variants))
        return []

    def _settled(self, errors: dict[str, str], source: ErrorSource, result: Any) -> list:
        if isinstance(result, BaseException):
            self._record_error(errors, source, result)
            return []
        return result

    def _record_error(
        self, errors: dict[str, str], source: ErrorSource, exc: BaseException
    ) -> None:
        message = str(exc).strip() or _DEFAULT_ERRORS[source]
        errors[source.value] = message
        self._logger.warning(
            "adapter_failed",
            source=source.value,
            error_type=type(exc).__name__,
            error=message[:200],
        )
