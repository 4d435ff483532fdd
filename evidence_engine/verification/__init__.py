"""Evidence cross-verification for flagged findings.

Core workflow:
1. QueryPackBuilder derives query variants for every provider family
2. EvidenceAggregator runs the five provider pipelines concurrently
3. classify_verification_status reduces evidence to one verdict
4. RelevanceReranker optionally prunes evidence with an LLM, then the
   verdict is recomputed
"""

from evidence_engine.verification.classifier import classify_verification_status
from evidence_engine.verification.engine import VerificationEngine, get_engine, verify
from evidence_engine.verification.errors import (
    MalformedPayloadError,
    ProviderError,
    RerankError,
)
from evidence_engine.verification.evidence_aggregator import (
    AggregatedEvidence,
    EvidenceAggregator,
)
from evidence_engine.verification.query_builder import QueryPackBuilder
from evidence_engine.verification.rate_governor import RateGovernor, gdelt_governor
from evidence_engine.verification.relevance_reranker import (
    JsonCompletionClient,
    RelevanceReranker,
    build_keep_set,
)

__all__ = [
    "AggregatedEvidence",
    "EvidenceAggregator",
    "JsonCompletionClient",
    "MalformedPayloadError",
    "ProviderError",
    "QueryPackBuilder",
    "RateGovernor",
    "RelevanceReranker",
    "RerankError",
    "VerificationEngine",
    "build_keep_set",
    "classify_verification_status",
    "gdelt_governor",
    "get_engine",
    "verify",
]
