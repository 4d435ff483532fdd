"""Wikipedia full-text search adapter with term-overlap ranking.

Wikipedia's search ranks long pages with many incidental mentions highly,
so the adapter:
1. Rewrites the query as `intitle:<anchor> <terms...>`, where the anchor is
   a recurring hot-topic noun when present (else the longest term)
2. Scores up to 12 results by title/snippet overlap plus bonuses for the
   caller's topic/entity terms
3. Penalizes omnibus "administration"/"policy of" pages and biography pages
   that only match an entity name
4. Keeps results above a floor that grows with query length
"""

import re
from typing import Any, Optional

import structlog

from evidence_engine.config.scoring import (
    DEFAULT_WIKIPEDIA_SCORING,
    SOURCE_LABELS,
    TOPIC_ANCHORS,
    WikipediaScoring,
)
from evidence_engine.schemas import CorroborationItem, QueryIntent, SearchHints
from evidence_engine.verification.errors import MalformedPayloadError
from evidence_engine.verification.http import JsonHttpClient
from evidence_engine.verification.text import (
    extract_search_keywords,
    strip_html,
    tokenize,
    unique,
)

WIKIPEDIA_API = "https://en.wikipedia.org/w/api.php"
MAX_QUERY_TERMS = 8
MAX_UNANCHORED_TERMS = 5


def build_search_query(raw_query: str) -> tuple[str, list[str]]:
    """Rewrite free text into Wikipedia search syntax.

    Returns:
        (api_query, terms) where terms are the lowercase tokens used for scoring.
    """
    terms = unique(tokenize(extract_search_keywords(raw_query)))[:MAX_QUERY_TERMS]
    if not terms:
        return raw_query, []

    anchor = next((candidate for candidate in TOPIC_ANCHORS if candidate in terms), None)
    if anchor is None:
        anchor = sorted(terms, key=len, reverse=True)[0]

    remaining = [term for term in terms if term != anchor][:MAX_UNANCHORED_TERMS]
    return " ".join([f"intitle:{anchor}", *remaining]).strip(), terms


class WikipediaAdapter:
    """Search English Wikipedia and keep only topically relevant pages."""

    label = SOURCE_LABELS["wikipedia"]

    def __init__(
        self,
        http: Optional[JsonHttpClient] = None,
        scoring: Optional[WikipediaScoring] = None,
    ) -> None:
        self._http = http or JsonHttpClient()
        self.scoring = scoring or DEFAULT_WIKIPEDIA_SCORING
        self._omnibus = re.compile(self.scoring.omnibus_title_pattern)
        self._logger = structlog.get_logger().bind(component="WikipediaAdapter")

    async def search(
        self, query: str, hints: Optional[SearchHints] = None
    ) -> list[CorroborationItem]:
        """Search Wikipedia for query, ranked against hints.

        Raises:
            ProviderError: Request failed or payload malformed.
        """
        hints = hints or SearchHints()
        api_query, terms = build_search_query(query)

        payload = await self._http.get_json(
            WIKIPEDIA_API,
            params={
                "action": "query",
                "list": "search",
                "srsearch": api_query,
                "utf8": "1",
                "format": "json",
                "srlimit": str(self.scoring.max_raw_results),
            },
            label=self.label,
        )
        if not isinstance(payload, dict):
            raise MalformedPayloadError(self.label, f"{self.label} returned an unexpected payload.")

        results = (payload.get("query") or {}).get("search")
        if not isinstance(results, list):
            return []

        scored: list[tuple[int, CorroborationItem]] = []
        for raw in results[: self.scoring.max_raw_results]:
            if not isinstance(raw, dict) or raw.get("pageid") in (None, ""):
                continue
            title = str(raw.get("title") or "Wikipedia page").strip()
            snippet = strip_html(str(raw.get("snippet") or ""))
            item = CorroborationItem(
                title=title,
                snippet=snippet,
                url=f"https://en.wikipedia.org/?curid={raw['pageid']}",
                source="wikipedia",
            )
            scored.append((self.score(title, snippet, terms, hints), item))

        # Stable sort keeps provider order among ties
        scored.sort(key=lambda pair: pair[0], reverse=True)

        floor = (
            self.scoring.min_score_long
            if len(terms) >= self.scoring.long_query_terms
            else self.scoring.min_score
        )
        kept = [item for score, item in scored if score >= floor]

        if not kept:
            if len(hints.topic_terms) >= self.scoring.rich_topic_terms:
                self._logger.debug("no_result_above_floor", query=query[:80], floor=floor)
                return []
            kept = [item for _, item in scored]

        return kept[: self.scoring.max_final_results]

    def score(self, title: str, snippet: str, terms: list[str], hints: SearchHints) -> int:
        """Additive relevance score for one search result."""
        weights = self.scoring
        title_lower = title.lower()
        combined = f"{title_lower} {snippet.lower()}"

        overlap = sum(1 for term in terms if term in combined)
        title_overlap = sum(1 for term in terms if term in title_lower)
        score = overlap * weights.combined_overlap_weight + title_overlap * weights.title_overlap_weight

        entity_tokens = {
            token for entity in hints.entity_terms for token in tokenize(entity)
        }
        topic_terms = set(tok.lower() for tok in hints.topic_terms) | (set(terms) - entity_tokens)

        topic_hits = sum(1 for term in topic_terms if _contains(combined, term))
        entity_hits = sum(1 for token in entity_tokens if _contains(combined, token))

        score += sum(
            weights.topic_hint_bonus for term in hints.topic_terms if _contains(combined, term.lower())
        )
        score += entity_hits * weights.entity_hint_bonus

        if self._omnibus.search(title_lower):
            score -= weights.omnibus_title_penalty

        if entity_hits > 0 and topic_hits == 0:
            penalty = weights.entity_only_penalty
            if hints.intent == QueryIntent.ARGUMENTATION:
                penalty //= 2
            score -= penalty

        return score


def _contains(text: str, term: Any) -> bool:
    term = str(term).strip()
    return bool(term) and term in text
