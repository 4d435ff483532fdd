"""Heuristic scoring tables for source adapters.

The encyclopedic and biomedical adapters rank provider results with
hand-tuned keyword lists and additive scores rather than learned weights.
Every weight lives here so a deployment can recalibrate them without
touching adapter code: construct a WikipediaScoring / PubMedScoring with
overrides and pass it to the adapter.

Tables:
- TOPIC_ANCHORS: recurring hot-topic nouns used as the Wikipedia intitle: anchor
- TRUSTED_NEWS_DOMAINS: GDELT allow-list (wire, fact-check, broadcast, science)
- FACT_CHECK_OUTLETS: subset of TRUSTED_NEWS_DOMAINS that only publish fact-checks
- VERDICT_PATTERNS: ordered rating-text patterns for fact-check normalization
"""

import re
from typing import Dict, List, Tuple

from pydantic import BaseModel, Field

# Wikipedia title anchors, checked in order
TOPIC_ANCHORS: List[str] = [
    "border",
    "immigration",
    "election",
    "covid",
    "vaccine",
    "climate",
    "economy",
    "inflation",
    "crime",
    "healthcare",
    "tax",
    "war",
    "ukraine",
    "gaza",
    "china",
]

# GDELT domain allow-list for the first (scoped) attempt
TRUSTED_NEWS_DOMAINS: List[str] = [
    "snopes.com",
    "politifact.com",
    "factcheck.org",
    "reuters.com",
    "apnews.com",
    "bbc.com",
    "fullfact.org",
    "leadstories.com",
    "washingtonpost.com",
    "nytimes.com",
    "npr.org",
    "pbs.org",
    "who.int",
    "cdc.gov",
    "nature.com",
    "sciencemag.org",
]

# Dropped from the allow-list for argumentation (fallacy/bias) findings,
# which fact-check outlets rarely cover
FACT_CHECK_OUTLETS: List[str] = [
    "snopes.com",
    "politifact.com",
    "factcheck.org",
    "fullfact.org",
    "leadstories.com",
]

# Ordered verdict classes: first match wins
VERDICT_PATTERNS: List[Tuple[str, "re.Pattern[str]"]] = [
    (
        "contradicted",
        re.compile(
            r"(false|pants on fire|incorrect|fake|hoax|scam|baseless|fabricated"
            r"|debunked|not true|mostly false)"
        ),
    ),
    (
        "supported",
        re.compile(r"(true|correct|accurate|supported|mostly true|legitimate)"),
    ),
    (
        "contested",
        re.compile(
            r"(misleading|partly|partially|half true|mixed|out of context"
            r"|disputed|unproven)"
        ),
    ),
]


class WikipediaScoring(BaseModel):
    """Relevance weights for Wikipedia search results."""

    title_overlap_weight: int = Field(default=3, description="Per query term found in title")
    combined_overlap_weight: int = Field(
        default=2, description="Per query term found in title or snippet"
    )
    topic_hint_bonus: int = Field(
        default=2, description="Per supplied topic term found in title or snippet"
    )
    entity_hint_bonus: int = Field(
        default=1, description="Per supplied entity term found in title or snippet"
    )
    omnibus_title_penalty: int = Field(
        default=3, description="Titles matching omnibus_title_pattern"
    )
    entity_only_penalty: int = Field(
        default=4,
        description="Result overlaps only on entity terms and never on topic terms",
    )
    omnibus_title_pattern: str = Field(
        default=r"policy of the (first|second)|domestic policy|economic policy|administration",
    )
    min_score: int = Field(default=3, description="Floor for short queries")
    min_score_long: int = Field(default=6, description="Floor when query has many terms")
    long_query_terms: int = Field(default=5, description="Term count that switches floors")
    rich_topic_terms: int = Field(
        default=2,
        description="Supplied topic terms at which unranked fallback is disabled",
    )
    max_raw_results: int = 12
    max_final_results: int = 5


class PubMedScoring(BaseModel):
    """Quality weights for PubMed article titles."""

    top_quality_terms: List[str] = Field(
        default_factory=lambda: [
            "systematic review",
            "meta-analysis",
            "umbrella review",
        ]
    )
    quality_terms: List[str] = Field(
        default_factory=lambda: [
            "cohort",
            "case-control",
            "randomized",
            "population-based",
            "nationwide",
            "consensus",
            "longitudinal",
        ]
    )
    low_signal_terms: List[str] = Field(
        default_factory=lambda: [
            "editorial",
            "comment",
            "letter",
            "case report",
            "protocol",
        ]
    )
    top_quality_bonus: int = 8
    quality_bonus: int = 4
    low_signal_penalty: int = 5
    retracted_score: int = -100
    # (minimum year, bonus), checked in order
    recency_bonuses: List[Tuple[int, int]] = Field(
        default_factory=lambda: [(2020, 3), (2014, 2), (2005, 1)]
    )
    echo_overlap_threshold: float = 0.8
    echo_penalty: int = 7
    min_score: int = -1
    fetch_limit: int = 20
    result_limit: int = 5

    def recency_bonus(self, year: int) -> int:
        for min_year, bonus in self.recency_bonuses:
            if year >= min_year:
                return bonus
        return 0


DEFAULT_WIKIPEDIA_SCORING = WikipediaScoring()
DEFAULT_PUBMED_SCORING = PubMedScoring()

# Kind -> human label used in logs and rerank summaries
SOURCE_LABELS: Dict[str, str] = {
    "factcheck": "Google Fact Check API",
    "wikipedia": "Wikipedia",
    "wikidata": "Wikidata",
    "pubmed": "PubMed",
    "gdelt": "GDELT",
}
