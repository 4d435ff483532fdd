"""PubMed adapter: ESearch for ids, then ESummary for titles.

Ranking prefers strong study designs (systematic reviews, meta-analyses,
cohorts, RCTs) and recent work, penalizes editorials and case reports,
hard-excludes retractions, and penalizes titles that simply echo the query
(usually the disputed paper itself rather than corroboration).

Usage:
    from evidence_engine.verification.adapters.pubmed import PubMedAdapter

    items = await PubMedAdapter().search("ivermectin covid mortality")
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from evidence_engine.config.scoring import (
    DEFAULT_PUBMED_SCORING,
    SOURCE_LABELS,
    PubMedScoring,
)
from evidence_engine.schemas import CorroborationItem, SearchHints
from evidence_engine.verification.errors import MalformedPayloadError
from evidence_engine.verification.http import JsonHttpClient

ESEARCH_API = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
ESUMMARY_API = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esummary.fcgi"

PUBLICATION_TYPE_FILTER = (
    "NOT (editorial[Publication Type] OR comment[Publication Type] "
    "OR letter[Publication Type])"
)

_YEAR = re.compile(r"(?:19|20)\d{2}")
_NON_ALNUM = re.compile(r"[^a-z0-9\s-]")
_NON_ALNUM_STRICT = re.compile(r"[^a-z0-9\s]")


@dataclass
class RankedPaper:
    """Scored candidate before dedupe and truncation."""

    item: CorroborationItem
    score: int
    year: int
    title_key: str


def normalize_tokens(value: str) -> list[str]:
    return [t for t in _NON_ALNUM.sub(" ", value.lower()).split() if len(t) >= 3]


def token_overlap(left: list[str], right: list[str]) -> float:
    """Shared-token ratio relative to the smaller token set."""
    if not left or not right:
        return 0.0
    left_set, right_set = set(left), set(right)
    shared = len(left_set & right_set)
    return shared / max(1, min(len(left_set), len(right_set)))


def extract_year(value: str) -> int:
    """Last 4-digit year in a PubMed pubdate string, or 0."""
    matches = _YEAR.findall(value or "")
    return int(matches[-1]) if matches else 0


def title_key(value: str) -> str:
    return " ".join(_NON_ALNUM_STRICT.sub(" ", value.lower()).split())


class PubMedAdapter:
    """Search biomedical literature and keep the strongest evidence."""

    label = SOURCE_LABELS["pubmed"]

    def __init__(
        self,
        http: Optional[JsonHttpClient] = None,
        scoring: Optional[PubMedScoring] = None,
    ) -> None:
        self._http = http or JsonHttpClient()
        self.scoring = scoring or DEFAULT_PUBMED_SCORING
        self._logger = structlog.get_logger().bind(component="PubMedAdapter")

    async def search(
        self, query: str, hints: Optional[SearchHints] = None
    ) -> list[CorroborationItem]:
        """Two-step lookup: ids, then summaries.

        Raises:
            ProviderError: Either request failed or a payload was malformed.
        """
        ids = await self._search_ids(query)
        if not ids:
            return []

        summaries = await self._fetch_summaries(ids)
        uids = summaries.get("uids")
        if not isinstance(uids, list):
            uids = ids

        ranked: list[RankedPaper] = []
        for uid in uids:
            raw = summaries.get(str(uid))
            if not isinstance(raw, dict) or not raw.get("title"):
                continue
            title = str(raw["title"]).strip()
            journal = str(raw.get("fulljournalname") or raw.get("source") or "PubMed").strip()
            pubdate = str(raw.get("pubdate") or "").strip()

            score = self.score_title(title, pubdate, query)
            if score < self.scoring.min_score:
                continue

            ranked.append(
                RankedPaper(
                    item=CorroborationItem(
                        title=title,
                        snippet=f"{journal} ({pubdate})" if pubdate else journal,
                        url=f"https://pubmed.ncbi.nlm.nih.gov/{uid}/",
                        source="pubmed",
                    ),
                    score=score,
                    year=extract_year(pubdate),
                    title_key=title_key(title),
                )
            )

        ranked.sort(key=lambda paper: (paper.score, paper.year), reverse=True)

        papers: list[CorroborationItem] = []
        seen_titles: set[str] = set()
        for paper in ranked:
            if paper.title_key in seen_titles:
                continue
            seen_titles.add(paper.title_key)
            papers.append(paper.item)
            if len(papers) >= self.scoring.result_limit:
                break

        self._logger.debug(
            "pubmed_ranked",
            query=query[:80],
            candidates=len(uids),
            kept=len(papers),
        )
        return papers

    def score_title(self, title: str, pubdate: str, query: str) -> int:
        """Additive quality score for one article title."""
        weights = self.scoring
        lowered = title.lower()
        if "retracted" in lowered:
            return weights.retracted_score

        score = 0
        score += sum(weights.top_quality_bonus for t in weights.top_quality_terms if t in lowered)
        score += sum(weights.quality_bonus for t in weights.quality_terms if t in lowered)
        score -= sum(weights.low_signal_penalty for t in weights.low_signal_terms if t in lowered)
        score += weights.recency_bonus(extract_year(pubdate))

        overlap = token_overlap(normalize_tokens(title), normalize_tokens(query))
        if overlap >= weights.echo_overlap_threshold:
            score -= weights.echo_penalty

        return score

    async def _search_ids(self, query: str) -> list[str]:
        payload = await self._http.get_json(
            ESEARCH_API,
            params={
                "db": "pubmed",
                "term": f"{query} {PUBLICATION_TYPE_FILTER}",
                "retmode": "json",
                "retmax": str(self.scoring.fetch_limit),
                "sort": "relevance",
            },
            label="PubMed ESearch API",
        )
        if not isinstance(payload, dict):
            raise MalformedPayloadError(
                "PubMed ESearch API", "PubMed ESearch API returned an unexpected payload."
            )
        ids = (payload.get("esearchresult") or {}).get("idlist")
        if not isinstance(ids, list):
            return []
        return [str(i) for i in ids if str(i).strip()]

    async def _fetch_summaries(self, ids: list[str]) -> dict[str, Any]:
        payload = await self._http.get_json(
            ESUMMARY_API,
            params={"db": "pubmed", "id": ",".join(ids), "retmode": "json"},
            label="PubMed ESummary API",
        )
        if not isinstance(payload, dict):
            raise MalformedPayloadError(
                "PubMed ESummary API", "PubMed ESummary API returned an unexpected payload."
            )
        result = payload.get("result")
        return result if isinstance(result, dict) else {}
