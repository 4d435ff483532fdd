"""Evidence schemas produced by source adapters and the verification engine.

Item shapes:
- FactCheckMatch: one publisher's claim review with a normalized verdict
- CorroborationItem: Wikipedia / Wikidata / PubMed record (identical shape)
- NewsArticle: GDELT article; tone only affects ordering

Result shapes:
- VerificationStatus: the single verdict (code + confidence + reason)
- FindingEvidence: everything returned to the caller for one finding

Error map keys are the ErrorSource values. GDELT never appears in the map
from a fresh verification; its failures are non-blocking.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from evidence_engine.config.settings import Settings, settings as default_settings


class NormalizedVerdict(str, Enum):
    SUPPORTED = "supported"
    CONTRADICTED = "contradicted"
    CONTESTED = "contested"
    UNKNOWN = "unknown"


class VerificationCode(str, Enum):
    SUPPORTED = "supported"
    CONTRADICTED = "contradicted"
    CONTESTED = "contested"
    UNVERIFIED = "unverified"


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ErrorSource(str, Enum):
    """Keys of FindingEvidence.errors."""

    FACT_CHECKS = "fact_checks"
    WIKIPEDIA = "wikipedia"
    WIKIDATA = "wikidata"
    PUBMED = "pubmed"
    RERANK = "rerank"
    ENGINE = "engine"


CorroborationSource = Literal["wikipedia", "wikidata", "pubmed"]


class FactCheckMatch(BaseModel):
    """One independent publisher's review of a claim."""

    claim_text: str
    claimant: Optional[str] = None
    publisher: str
    review_title: str
    textual_rating: Optional[str] = None
    review_url: str
    review_date: Optional[str] = None
    language_code: Optional[str] = None
    normalized_verdict: NormalizedVerdict = NormalizedVerdict.UNKNOWN

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "claim_text": "The bridge collapsed because of sabotage",
                    "claimant": "Social media posts",
                    "publisher": "Reuters",
                    "review_title": "Fact Check: Bridge collapse was not sabotage",
                    "textual_rating": "False",
                    "review_url": "https://www.reuters.com/fact-check/bridge-123",
                    "review_date": "2026-03-02T00:00:00Z",
                    "language_code": "en",
                    "normalized_verdict": "contradicted",
                }
            ]
        }
    }


class CorroborationItem(BaseModel):
    """Normalized reference record from an encyclopedic, entity, or biomedical search."""

    title: str
    snippet: str = ""
    url: str
    source: CorroborationSource


class NewsArticle(BaseModel):
    """News coverage record from the GDELT archive."""

    title: str
    url: str
    domain: str
    tone: Optional[float] = Field(
        default=None,
        description="Provider tone; more negative means more critical coverage",
    )
    seen_date: Optional[str] = None
    language: Optional[str] = None


class FactCheckResult(BaseModel):
    """Fact-check adapter output; configured=False is not an error."""

    configured: bool
    matches: list[FactCheckMatch] = Field(default_factory=list)


class Corroboration(BaseModel):
    """The three reference collections consulted by the classifier."""

    wikipedia: list[CorroborationItem] = Field(default_factory=list)
    wikidata: list[CorroborationItem] = Field(default_factory=list)
    pubmed: list[CorroborationItem] = Field(default_factory=list)

    def non_empty_count(self) -> int:
        return sum(1 for items in (self.wikipedia, self.wikidata, self.pubmed) if items)


class VerificationStatus(BaseModel):
    """Single authoritative verdict; recomputed, never patched."""

    code: VerificationCode
    label: str
    reason: str
    confidence: ConfidenceTier

    model_config = {"frozen": True}


def _clean_key(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


class ApiStatus(BaseModel):
    """Which optional providers had credentials for this pass."""

    fact_check_configured: bool = False
    reranker_configured: bool = False
    reranked: bool = False


class Credentials(BaseModel):
    """Optional provider credentials supplied by the caller."""

    fact_check_key: Optional[str] = None
    llm_key: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "Credentials":
        """Build credentials from environment settings."""
        config = config or default_settings
        return cls(
            fact_check_key=config.fact_check_api_key,
            llm_key=config.gemini_api_key,
        )

    @property
    def has_fact_check_key(self) -> bool:
        return bool(_clean_key(self.fact_check_key))

    @property
    def has_llm_key(self) -> bool:
        return bool(_clean_key(self.llm_key))

    def __repr__(self) -> str:
        return (
            f"Credentials(fact_check_key={'set' if self.has_fact_check_key else None}, "
            f"llm_key={'set' if self.has_llm_key else None})"
        )

    __str__ = __repr__


class FindingEvidence(BaseModel):
    """Complete verification outcome for one finding, owned by the caller."""

    finding_id: Optional[str] = None
    finding_quote: str = ""
    query: str = Field(..., description="Primary query string used for this pass")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    status: VerificationStatus
    fact_checks: list[FactCheckMatch] = Field(default_factory=list)
    corroboration: Corroboration = Field(default_factory=Corroboration)
    news_articles: list[NewsArticle] = Field(default_factory=list)
    api_status: ApiStatus = Field(default_factory=ApiStatus)
    errors: dict[str, str] = Field(
        default_factory=dict,
        description="Per-source failure messages keyed by ErrorSource value",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "finding_id": "finding-7",
                    "finding_quote": "The bridge collapsed because of sabotage",
                    "query": "bridge collapsed sabotage",
                    "generated_at": "2026-03-02T12:00:00Z",
                    "status": {
                        "code": "contradicted",
                        "label": "Contradicted",
                        "reason": "Independent fact-check publishers rate this claim as false or unsupported.",
                        "confidence": "high",
                    },
                    "api_status": {"fact_check_configured": True},
                    "errors": {"pubmed": "PubMed ESearch API failed (503): ..."},
                }
            ]
        }
    }
