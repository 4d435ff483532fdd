"""LLM relevance and stance pass over collected evidence.

Every collected item becomes a candidate row with a stable id
(`<kind>:<index>`) and a compact summary. The LLM scores each id for
relevance, usefulness and stance; a pure keep-set policy then decides
which ids survive, and every collection is filtered by membership.

Keep-set policy (broadly relevant = useful and relevance >= 0.55):
- Fallacy/bias findings: top 8 broadly relevant
- Misinformation findings: up to 8 broadly relevant non-supportive items,
  else up to 5 strongly relevant (>= 0.7), else up to 4 broadly relevant
- Nothing broadly relevant: up to 4 with relevance >= 0.45, else top 3

Supportive-only evidence never hides critical sources for a misinformation
finding. Scores for ids that match no candidate are ignored, and a response
with no usable scores passes evidence through. Any capability failure
raises RerankError and the caller keeps its evidence.

Usage:
    from evidence_engine.verification.relevance_reranker import RelevanceReranker

    reranker = RelevanceReranker(client=GeminiJsonClient(api_key))
    reranked = await reranker.rerank(
        finding, fact_checks, corroboration, news_articles, page_context
    )
"""

import json
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, TypeVar

import structlog
from pydantic import BaseModel, Field

from evidence_engine.schemas import (
    Corroboration,
    FactCheckMatch,
    Finding,
    NewsArticle,
    PageContext,
)
from evidence_engine.verification.errors import RerankError

T = TypeVar("T")

BROAD_RELEVANCE = 0.55
STRONG_RELEVANCE = 0.7
BEST_EFFORT_RELEVANCE = 0.45
MAX_KEEP = 8
MAX_STRONG_SUPPORTIVE = 5
MAX_BROAD_FALLBACK = 4
MAX_BEST_EFFORT = 4
MIN_KEEP = 3
SUMMARY_CHARS = 260
HINT_CHARS = 220

_WHITESPACE = re.compile(r"\s+")


class JsonCompletionClient(Protocol):
    """Anything that turns a prompt into parsed JSON."""

    async def generate_json(self, prompt: str) -> Any: ...


class Stance(str, Enum):
    CRITICAL = "critical"
    SUPPORTIVE = "supportive"
    NEUTRAL = "neutral"
    MIXED = "mixed"
    UNKNOWN = "unknown"


@dataclass
class CandidateRow:
    id: str
    kind: str
    summary: str


@dataclass
class ScoredCandidate:
    id: str
    relevance: float
    useful: bool
    stance: Stance


class RerankedEvidence(BaseModel):
    """Evidence after the rerank pass; applied=False means passed through."""

    fact_checks: list[FactCheckMatch] = Field(default_factory=list)
    corroboration: Corroboration = Field(default_factory=Corroboration)
    news_articles: list[NewsArticle] = Field(default_factory=list)
    applied: bool = False


def trim_text(value: str, max_chars: int = SUMMARY_CHARS) -> str:
    cleaned = _WHITESPACE.sub(" ", value or "").strip()
    if len(cleaned) <= max_chars:
        return cleaned
    return f"{cleaned[: max_chars - 3].strip()}..."


def as_score(value: Any) -> float:
    """Clamp to [0, 1]; anything non-numeric scores 0."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(score):
        return 0.0
    return max(0.0, min(1.0, score))


def as_stance(value: Any) -> Stance:
    text = str(value if value is not None else "").strip().lower()
    try:
        return Stance(text)
    except ValueError:
        return Stance.UNKNOWN


def build_candidate_rows(
    fact_checks: list[FactCheckMatch],
    corroboration: Corroboration,
    news_articles: list[NewsArticle],
) -> list[CandidateRow]:
    """Flatten every collection into id-tagged candidate rows."""
    rows: list[CandidateRow] = []

    for index, match in enumerate(fact_checks):
        parts = [f"publisher={match.publisher}", f"title={match.review_title}"]
        if match.claim_text:
            parts.append(f"claim={match.claim_text}")
        if match.textual_rating:
            parts.append(f"rating={match.textual_rating}")
        rows.append(CandidateRow(f"factcheck:{index}", "factcheck", trim_text(" | ".join(parts))))

    for kind in ("wikipedia", "wikidata", "pubmed"):
        for index, item in enumerate(getattr(corroboration, kind)):
            rows.append(
                CandidateRow(
                    f"{kind}:{index}",
                    kind,
                    trim_text(f"title={item.title} | snippet={item.snippet}"),
                )
            )

    for index, article in enumerate(news_articles):
        parts = [f"domain={article.domain}", f"title={article.title}"]
        if article.tone is not None:
            parts.append(f"tone={article.tone:.1f}")
        rows.append(CandidateRow(f"gdelt:{index}", "gdelt", trim_text(" | ".join(parts))))

    return rows


def build_prompt(
    finding: Finding,
    candidates: list[CandidateRow],
    page_context: Optional[PageContext] = None,
) -> str:
    issue_types = ", ".join(issue.value for issue in finding.issue_types)
    correction = trim_text(finding.correction or "", HINT_CHARS)
    summary = trim_text(page_context.summary, HINT_CHARS) if page_context else ""
    topics = ", ".join(page_context.topic_keywords[:8]) if page_context else ""
    candidates_json = json.dumps(
        [{"id": row.id, "kind": row.kind, "summary": row.summary} for row in candidates],
        ensure_ascii=False,
    )

    return "\n".join(
        [
            "You are a strict evidence relevance and stance filter for misinformation analysis.",
            "Task: score whether each candidate is truly relevant to evaluating the claim substance.",
            "Reject entity-only matches (e.g., person biography pages) when they do not address the claim topic.",
            "For misinformation findings, prefer critical/neutral/mixed verification context over supportive-only context.",
            "Return strict JSON only with shape:",
            '{"items":[{"id":"string","relevance":0.0,"useful":true,"stance":"critical|supportive|neutral|mixed|unknown"}]}',
            "Scoring guidance:",
            "- relevance 0.0..1.0, where >=0.65 is strong topical match.",
            "- useful=true only when source helps verify, critique, or contextualize the claim topic directly.",
            f"ISSUE_TYPES: {issue_types}",
            f"CLAIM_QUOTE: {trim_text(finding.quote)}",
            f"RATIONALE: {trim_text(finding.rationale)}",
            f"CORRECTION_HINT: {correction or 'none'}",
            f"PAGE_CONTEXT_SUMMARY: {summary or 'none'}",
            f"PAGE_CONTEXT_TOPICS: {topics or 'none'}",
            f"CANDIDATES_JSON: {candidates_json}",
        ]
    )


def parse_scores(response: Any) -> list[ScoredCandidate]:
    """Read scored rows from an LLM response; rows without an id are dropped."""
    items = response.get("items") if isinstance(response, dict) else None
    if not isinstance(items, list):
        return []

    scored: list[ScoredCandidate] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        candidate_id = str(item.get("id") or "").strip()
        if not candidate_id:
            continue
        scored.append(
            ScoredCandidate(
                id=candidate_id,
                relevance=as_score(item.get("relevance")),
                useful=bool(item.get("useful")),
                stance=as_stance(item.get("stance")),
            )
        )
    return scored


def build_keep_set(scored: list[ScoredCandidate], is_misinformation: bool) -> set[str]:
    """Select the candidate ids to keep. Never empty when scored is non-empty."""
    ranked = sorted(scored, key=lambda row: row.relevance, reverse=True)
    broadly_relevant = [row for row in ranked if row.useful and row.relevance >= BROAD_RELEVANCE]

    if broadly_relevant and not is_misinformation:
        return {row.id for row in broadly_relevant[:MAX_KEEP]}

    if broadly_relevant:
        non_supportive = [row for row in broadly_relevant if row.stance != Stance.SUPPORTIVE]
        if non_supportive:
            return {row.id for row in non_supportive[:MAX_KEEP]}
        strong = [row for row in broadly_relevant if row.relevance >= STRONG_RELEVANCE]
        if strong:
            return {row.id for row in strong[:MAX_STRONG_SUPPORTIVE]}
        return {row.id for row in broadly_relevant[:MAX_BROAD_FALLBACK]}

    best_effort = [row for row in ranked if row.relevance >= BEST_EFFORT_RELEVANCE]
    if best_effort:
        return {row.id for row in best_effort[:MAX_BEST_EFFORT]}
    return {row.id for row in ranked[:MIN_KEEP]}


def filter_by_keep_ids(items: list[T], kind: str, keep_ids: set[str]) -> list[T]:
    return [item for index, item in enumerate(items) if f"{kind}:{index}" in keep_ids]


class RelevanceReranker:
    """Prune collected evidence to what an LLM judges relevant to the claim."""

    def __init__(self, client: JsonCompletionClient) -> None:
        self._client = client
        self._logger = structlog.get_logger().bind(component="RelevanceReranker")

    async def rerank(
        self,
        finding: Finding,
        fact_checks: list[FactCheckMatch],
        corroboration: Corroboration,
        news_articles: list[NewsArticle],
        page_context: Optional[PageContext] = None,
    ) -> RerankedEvidence:
        """Score every candidate and filter all collections by the keep set.

        Raises:
            RerankError: The capability failed; callers keep their evidence.
        """
        passthrough = RerankedEvidence(
            fact_checks=fact_checks,
            corroboration=corroboration,
            news_articles=news_articles,
        )
        candidates = build_candidate_rows(fact_checks, corroboration, news_articles)
        if not candidates:
            return passthrough

        prompt = build_prompt(finding, candidates, page_context)
        try:
            response = await self._client.generate_json(prompt)
        except Exception as e:
            raise RerankError(f"Relevance rerank failed: {e}") from e

        candidate_ids = {row.id for row in candidates}
        parsed = parse_scores(response)
        scored = [row for row in parsed if row.id in candidate_ids]
        if not scored:
            self._logger.warning(
                "rerank_no_scores",
                candidates=len(candidates),
                unknown_ids=len(parsed),
            )
            return passthrough

        keep_ids = build_keep_set(scored, finding.is_misinformation)
        reranked = RerankedEvidence(
            fact_checks=filter_by_keep_ids(fact_checks, "factcheck", keep_ids),
            corroboration=Corroboration(
                wikipedia=filter_by_keep_ids(corroboration.wikipedia, "wikipedia", keep_ids),
                wikidata=filter_by_keep_ids(corroboration.wikidata, "wikidata", keep_ids),
                pubmed=filter_by_keep_ids(corroboration.pubmed, "pubmed", keep_ids),
            ),
            news_articles=filter_by_keep_ids(news_articles, "gdelt", keep_ids),
            applied=True,
        )
        self._logger.info(
            "rerank_applied",
            candidates=len(candidates),
            scored=len(scored),
            kept=len(keep_ids),
        )
        return reranked
