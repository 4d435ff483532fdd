"""Query pack construction for the five provider families.

Providers disagree about what a good query looks like: the fact-check
registry matches claim text, Wikipedia ranks on title terms, Wikidata only
matches entity labels, PubMed ANDs every term, and GDELT wants a handful of
keywords. The builder therefore derives several ordered variants per
family from one finding, most specific first, and the aggregator tries them
until one yields results.

Steps:
1. Clean quote and correction (quotation marks, whitespace)
2. Extract proper-noun-like entities, merge caller entity keywords
3. Extract topic terms (stopwords and entity tokens removed), merge caller topics
4. Derive the core claim (strip preambles, attribution, concessive tails)
5. Compact claim = top 2 entities + top 6 topic terms
6. Assemble per-family variant lists (never empty)

Usage:
    from evidence_engine.verification.query_builder import QueryPackBuilder

    pack = QueryPackBuilder().build(finding, page_context)
"""

import re
from typing import Optional

import structlog

from evidence_engine.schemas import Finding, PageContext, QueryIntent, QueryPack
from evidence_engine.verification.text import (
    clean_text,
    tokenize,
    truncate_words,
    unique,
)

CORE_CLAIM_WORDS = 22
FALLBACK_WORDS = 12
FACT_CHECK_QUOTE_WORDS = 18
SUMMARY_SNIPPET_WORDS = 12
MAX_ENTITIES = 6
MAX_TOPIC_TERMS = 8
MAX_VARIANTS = 7

INTENT_PHRASES: dict[QueryIntent, str] = {
    QueryIntent.MISINFORMATION: "fact check false misleading",
    QueryIntent.ARGUMENTATION: "claim context explained",
}

_CAPITALIZED_RUN = re.compile(
    r"\b[A-Z][\w'’.-]*(?:\s+(?:of|the|and|for|de|von|van)?\s*[A-Z][\w'’.-]*)*"
)
_SENTENCE_BREAK = re.compile(r"[.!?;:]\s+")

_ENTITY_LEAD_STOPWORDS = frozenset(
    [
        "the", "a", "an", "this", "that", "these", "those", "it", "he", "she",
        "they", "we", "i", "but", "and", "or", "if", "in", "on", "at", "so",
        "according", "when", "while", "our", "their", "his", "her", "its",
        "after", "before", "since", "because", "yes", "no", "there", "here",
    ]
)
_HONORIFICS = frozenset(
    [
        "mr", "mrs", "ms", "dr", "prof", "sir", "madam", "sen", "rep", "gov",
        "gen", "president", "senator", "governor", "minister", "secretary",
        "representative", "congressman", "congresswoman", "mayor", "judge",
    ]
)
_DATE_WORDS = frozenset(
    [
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
        "sunday", "january", "february", "march", "april", "may", "june",
        "july", "august", "september", "october", "november", "december",
        "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct",
        "nov", "dec", "today", "yesterday", "tomorrow",
    ]
)

_REPORTING_PREAMBLE = re.compile(
    r"^(?:[\w.'’-]+\s+){1,4}?"
    r"(?:said|says|claimed|claims|stated|states|argued|argues|insisted|insists"
    r"|wrote|writes|announced|announces|added|noted|suggested|suggests"
    r"|believes|believe|told\s+\w+)"
    r"(?:\s+that)?[,:]?\s+",
    re.IGNORECASE,
)
_ATTRIBUTION_PREFIXES = [
    re.compile(r"^according\s+to\s+[^,]{1,60},\s*", re.IGNORECASE),
    re.compile(r"^(?:on|last|this|earlier|in|by)\s+[^,]{1,30},\s*", re.IGNORECASE),
    re.compile(r"^(?:reportedly|allegedly|apparently|frankly|honestly),?\s+", re.IGNORECASE),
]
_CONCESSIVE_TAIL = re.compile(
    r",?\s+(?:although|though|even though|even if|despite|whereas|while)\b.*$"
    r"|,\s*but\b.*$",
    re.IGNORECASE,
)
_LEADING_PRONOUN = re.compile(r"^(?:he|she|they|it)\b", re.IGNORECASE)


class QueryPackBuilder:
    """Derive per-provider query variants from a finding.

    Pure and deterministic; building never raises for any well-formed
    Finding, and every variant list in the returned pack is non-empty.
    """

    def __init__(self, max_variants: int = MAX_VARIANTS) -> None:
        self.max_variants = max_variants
        self._logger = structlog.get_logger().bind(component="QueryPackBuilder")

    def build(self, finding: Finding, page_context: Optional[PageContext] = None) -> QueryPack:
        """Build the query pack for one verification pass.

        Args:
            finding: Finding to verify.
            page_context: Optional description of the source document.

        Returns:
            QueryPack with five non-empty variant lists.
        """
        context = page_context or PageContext()
        quote = clean_text(finding.quote)
        correction = clean_text(finding.correction or "")
        intent = (
            QueryIntent.MISINFORMATION
            if finding.is_misinformation
            else QueryIntent.ARGUMENTATION
        )

        finding_entities = self.extract_entities(f"{quote}. {correction}" if correction else quote)
        entities = unique(finding_entities + context.entity_keywords)[:MAX_ENTITIES]

        entity_tokens = {
            token for entity in entities for token in tokenize(entity, min_length=1)
        }
        finding_topics = [
            token
            for token in tokenize(f"{quote} {correction}")
            if token not in entity_tokens
        ]
        context_topics = [kw.lower() for kw in context.topic_keywords]
        topics = unique(finding_topics + context_topics)[:MAX_TOPIC_TERMS]

        core = self.derive_core_claim(quote, entities)
        if not core:
            core = self._fallback_claim(finding)

        compact = " ".join(entities[:2] + topics[:6]).strip() or core
        short = " ".join(entities[:1] + topics[:2])
        quote_snippet = truncate_words(quote, FACT_CHECK_QUOTE_WORDS)
        intent_query = f"{' '.join(topics[:3]) or compact} {INTENT_PHRASES[intent]}"

        pack = QueryPack(
            primary=compact,
            core_claim=core,
            fact_check=self._finalize(
                [
                    core,
                    compact,
                    quote_snippet,
                    " ".join(entities[:2] + topics[:3]),
                    short,
                    intent_query,
                ],
                core,
            ),
            wikipedia=self._finalize(
                [
                    compact,
                    " ".join(topics[:4]),
                    short,
                    " ".join(context.topic_keywords[:4]),
                    " ".join(context.entity_keywords[:2] + context.topic_keywords[:2]),
                    truncate_words(clean_text(context.summary), SUMMARY_SNIPPET_WORDS),
                    core,
                ],
                core,
            ),
            wikidata=self._finalize(
                entities[:3]
                + context.entity_keywords[:2]
                + topics[:1]
                + [compact, short, core],
                core,
            ),
            pubmed=self._finalize(
                [
                    " ".join(topics[:5]),
                    " ".join(topics[:3]),
                    " ".join(topics[:2]),
                    " ".join(context.topic_keywords[:3]),
                    compact,
                    core,
                ],
                core,
            ),
            gdelt=self._finalize(
                [
                    compact,
                    intent_query,
                    " ".join(context.topic_keywords[:3] + context.entity_keywords[:1]),
                    short,
                    quote_snippet,
                ],
                core,
            ),
            topic_terms=topics,
            entity_terms=entities,
            intent=intent,
        )

        self._logger.debug(
            "query_pack_built",
            intent=intent.value,
            entities=len(entities),
            topics=len(topics),
            primary=pack.primary[:80],
        )
        return pack

    # ── Extraction ────────────────────────────────────────────────────

    def extract_entities(self, text: str) -> list[str]:
        """Extract proper-noun-like capitalized runs.

        Leading stopwords, honorifics and date words are trimmed from each
        run. A single capitalized word at the start of a sentence is only
        kept when the same word is also capitalized mid-sentence.
        """
        candidates: list[str] = []
        mid_sentence_words: set[str] = set()
        sentence_starts = {0} | {m.end() for m in _SENTENCE_BREAK.finditer(text)}

        runs: list[tuple[bool, list[str]]] = []
        for match in _CAPITALIZED_RUN.finditer(text):
            words = [w.strip(".'’") for w in match.group(0).split()]
            words = [w for w in words if w]
            while words and (
                words[0].lower() in _ENTITY_LEAD_STOPWORDS
                or words[0].lower().rstrip(".") in _HONORIFICS
                or words[0].lower() in _DATE_WORDS
            ):
                words = words[1:]
            words = [w for w in words if w.lower() not in _DATE_WORDS]
            while words and words[-1].lower() in {"of", "the", "and", "for", "de", "von", "van"}:
                words = words[:-1]
            if not words:
                continue
            at_start = match.start() in sentence_starts
            runs.append((at_start, words))
            if not at_start:
                mid_sentence_words.update(w.lower() for w in words)

        for at_start, words in runs:
            if at_start and len(words) == 1 and not words[0].isupper():
                if words[0].lower() not in mid_sentence_words:
                    continue
            candidates.append(" ".join(words))

        return unique(candidates)

    def derive_core_claim(self, quote: str, entities: list[str]) -> str:
        """Strip preambles, attribution and concessive tails; cap at 22 words."""
        claim = quote.strip()
        if not claim:
            return ""

        stripped = _REPORTING_PREAMBLE.sub("", claim, count=1)
        if len(stripped.split()) >= 3:
            claim = stripped

        for pattern in _ATTRIBUTION_PREFIXES:
            candidate = pattern.sub("", claim, count=1)
            if len(candidate.split()) >= 3:
                claim = candidate

        trimmed = _CONCESSIVE_TAIL.sub("", claim)
        if len(trimmed.split()) >= 3:
            claim = trimmed

        if entities and _LEADING_PRONOUN.match(claim):
            claim = _LEADING_PRONOUN.sub(entities[0], claim, count=1)

        claim = claim.strip(" ,;:-.")
        return truncate_words(claim, CORE_CLAIM_WORDS)

    # ── Helpers ────────────────────────────────────────────────────────

    def _fallback_claim(self, finding: Finding) -> str:
        """Raw text truncated to a fixed word count when the quote is degenerate."""
        for raw in (finding.quote, finding.correction or "", finding.rationale):
            text = " ".join((raw or "").split())
            if text:
                return truncate_words(text, FALLBACK_WORDS)
        return ""

    def _finalize(self, variants: list[str], core: str) -> list[str]:
        cleaned = unique(v for v in variants if v and v.strip())[: self.max_variants]
        return cleaned or [core]
