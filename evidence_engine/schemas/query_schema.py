"""Query pack schema: derived search strings for one verification pass."""

from enum import Enum

from pydantic import BaseModel, Field


class QueryIntent(str, Enum):
    """Search intent derived from a finding's issue types.

    MISINFORMATION: at least one misinformation tag; searches look for
        fact-checks and debunks.
    ARGUMENTATION: fallacy/bias only; searches look for context and
        explanation of the claim topic.
    """

    MISINFORMATION = "misinformation"
    ARGUMENTATION = "argumentation"


class SearchHints(BaseModel):
    """Extracted terms forwarded to adapters that rank their own results."""

    topic_terms: list[str] = Field(default_factory=list)
    entity_terms: list[str] = Field(default_factory=list)
    intent: QueryIntent = QueryIntent.MISINFORMATION

    model_config = {"frozen": True}


class QueryPack(BaseModel):
    """Query variants for all five provider families, most specific first.

    Every variant list holds at least one entry. The pack is ephemeral and
    owned by a single verification call.
    """

    primary: str = Field(..., description="Compact claim: top entities + topic terms")
    core_claim: str = Field(..., description="Claim with preambles/attribution removed")
    fact_check: list[str] = Field(..., min_length=1)
    wikipedia: list[str] = Field(..., min_length=1)
    wikidata: list[str] = Field(..., min_length=1)
    pubmed: list[str] = Field(..., min_length=1)
    gdelt: list[str] = Field(..., min_length=1)
    topic_terms: list[str] = Field(default_factory=list)
    entity_terms: list[str] = Field(default_factory=list)
    intent: QueryIntent = QueryIntent.MISINFORMATION

    model_config = {"frozen": True}

    @property
    def hints(self) -> SearchHints:
        return SearchHints(
            topic_terms=self.topic_terms,
            entity_terms=self.entity_terms,
            intent=self.intent,
        )

    def variants_for(self, family: str) -> list[str]:
        """Return the variant list for a provider family name."""
        return list(getattr(self, family))
