"""Schemas consumed and produced by the verification engine.

- finding_schema: Finding, PageContext (inputs from the analysis stage)
- query_schema: QueryPack, SearchHints (derived per verification pass)
- evidence_schema: adapter items, VerificationStatus, FindingEvidence
"""

from evidence_engine.schemas.evidence_schema import (
    ApiStatus,
    ConfidenceTier,
    Corroboration,
    CorroborationItem,
    Credentials,
    ErrorSource,
    FactCheckMatch,
    FactCheckResult,
    FindingEvidence,
    NewsArticle,
    NormalizedVerdict,
    VerificationCode,
    VerificationStatus,
)
from evidence_engine.schemas.finding_schema import Finding, IssueType, PageContext
from evidence_engine.schemas.query_schema import QueryIntent, QueryPack, SearchHints

__all__ = [
    "ApiStatus",
    "ConfidenceTier",
    "Corroboration",
    "CorroborationItem",
    "Credentials",
    "ErrorSource",
    "FactCheckMatch",
    "FactCheckResult",
    "Finding",
    "FindingEvidence",
    "IssueType",
    "NewsArticle",
    "NormalizedVerdict",
    "PageContext",
    "QueryIntent",
    "QueryPack",
    "SearchHints",
    "VerificationCode",
    "VerificationStatus",
]
