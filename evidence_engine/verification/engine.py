"""Verification engine: one finding in, one FindingEvidence out.

Flow per call:
1. Build the QueryPack (QueryPackBuilder)
2. Fan out to every provider (EvidenceAggregator)
3. Classify fact-checks + corroboration (first pass)
4. Optional relevance rerank when an LLM key is supplied, then reclassify
5. Assemble FindingEvidence

The engine is stateless. Caching is the caller's concern (see
EvidencePipeline). verify() never raises: an unexpected internal failure
yields an unverified result with the message under errors["engine"].

Usage:
    from evidence_engine import verify

    evidence = await verify(finding, page_context, Credentials(fact_check_key="..."))
"""

from typing import Callable, Optional

import structlog

from evidence_engine.llm.gemini_client import GeminiJsonClient
from evidence_engine.schemas import (
    ApiStatus,
    Credentials,
    ErrorSource,
    Finding,
    FindingEvidence,
    PageContext,
)
from evidence_engine.utils.logging import (
    bind_verification_context,
    clear_verification_context,
    get_correlation_id,
)
from evidence_engine.verification.classifier import (
    UNVERIFIED_STATUS,
    classify_verification_status,
)
from evidence_engine.verification.errors import RerankError
from evidence_engine.verification.evidence_aggregator import EvidenceAggregator
from evidence_engine.verification.query_builder import QueryPackBuilder
from evidence_engine.verification.relevance_reranker import RelevanceReranker
from evidence_engine.verification.text import clean_text, truncate_words

FALLBACK_QUERY_WORDS = 22


def build_gemini_reranker(llm_key: str) -> RelevanceReranker:
    return RelevanceReranker(client=GeminiJsonClient(api_key=llm_key))


class VerificationEngine:
    """Orchestrates query building, aggregation, classification and rerank."""

    def __init__(
        self,
        query_builder: Optional[QueryPackBuilder] = None,
        aggregator: Optional[EvidenceAggregator] = None,
        reranker_factory: Optional[Callable[[str], RelevanceReranker]] = None,
    ) -> None:
        """Initialize VerificationEngine.

        Args:
            query_builder: Builds query variants from a finding.
            aggregator: Runs the provider pipelines.
            reranker_factory: Builds a reranker from an LLM key.
        """
        self.query_builder = query_builder or QueryPackBuilder()
        self.aggregator = aggregator or EvidenceAggregator()
        self._reranker_factory = reranker_factory or build_gemini_reranker
        self._logger = structlog.get_logger().bind(component="VerificationEngine")

    async def verify(
        self,
        finding: Finding,
        page_context: Optional[PageContext] = None,
        credentials: Optional[Credentials] = None,
    ) -> FindingEvidence:
        """Verify one finding against independent sources.

        Args:
            finding: Flagged quote to verify.
            page_context: Optional description of the surrounding document.
            credentials: Optional provider keys; absent keys disable providers.

        Returns:
            FindingEvidence. Never raises for provider or internal failures.
        """
        credentials = credentials or Credentials()
        bind_verification_context(get_correlation_id(), finding.id)
        try:
            return await self._run(finding, page_context, credentials)
        except Exception as e:
            self._logger.error(
                "verification_failed",
                error_type=type(e).__name__,
                error=str(e)[:200],
                exc_info=True,
            )
            return self._failed_evidence(finding, credentials, e)
        finally:
            clear_verification_context()

    async def _run(
        self,
        finding: Finding,
        page_context: Optional[PageContext],
        credentials: Credentials,
    ) -> FindingEvidence:
        pack = self.query_builder.build(finding, page_context)
        aggregated = await self.aggregator.aggregate(pack, finding, credentials)

        fact_checks = aggregated.fact_checks.matches
        corroboration = aggregated.corroboration
        news_articles = aggregated.news_articles
        errors = dict(aggregated.errors)
        status = classify_verification_status(fact_checks, corroboration)

        reranked = False
        if credentials.has_llm_key:
            try:
                reranker = self._build_reranker(credentials.llm_key.strip())
                result = await reranker.rerank(
                    finding, fact_checks, corroboration, news_articles, page_context
                )
            except RerankError as e:
                errors[ErrorSource.RERANK.value] = str(e)
                self._logger.warning("rerank_failed", error=str(e)[:200])
            else:
                if result.applied:
                    fact_checks = result.fact_checks
                    corroboration = result.corroboration
                    news_articles = result.news_articles
                    status = classify_verification_status(fact_checks, corroboration)
                    reranked = True
        else:
            self._logger.debug("rerank_skipped", reason="no_llm_key")

        self._logger.info(
            "verification_complete",
            status=status.code.value,
            confidence=status.confidence.value,
            reranked=reranked,
            errors=sorted(errors),
        )

        return FindingEvidence(
            finding_id=finding.id,
            finding_quote=finding.quote,
            query=pack.primary,
            status=status,
            fact_checks=fact_checks,
            corroboration=corroboration,
            news_articles=news_articles,
            api_status=ApiStatus(
                fact_check_configured=aggregated.fact_checks.configured,
                reranker_configured=credentials.has_llm_key,
                reranked=reranked,
            ),
            errors=errors,
        )

    def _build_reranker(self, llm_key: str) -> RelevanceReranker:
        try:
            return self._reranker_factory(llm_key)
        except Exception as e:
            raise RerankError(f"Relevance reranker unavailable: {e}") from e

    def _failed_evidence(
        self, finding: Finding, credentials: Credentials, error: Exception
    ) -> FindingEvidence:
        return FindingEvidence(
            finding_id=finding.id,
            finding_quote=finding.quote,
            query=truncate_words(clean_text(finding.quote), FALLBACK_QUERY_WORDS),
            status=UNVERIFIED_STATUS,
            api_status=ApiStatus(
                fact_check_configured=credentials.has_fact_check_key,
                reranker_configured=credentials.has_llm_key,
            ),
            errors={ErrorSource.ENGINE.value: str(error) or type(error).__name__},
        )


_engine: Optional[VerificationEngine] = None


def get_engine() -> VerificationEngine:
    """Process-wide default engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = VerificationEngine()
    return _engine


async def verify(
    finding: Finding,
    page_context: Optional[PageContext] = None,
    credentials: Optional[Credentials] = None,
) -> FindingEvidence:
    """Verify a finding with the default engine."""
    return await get_engine().verify(finding, page_context, credentials)
