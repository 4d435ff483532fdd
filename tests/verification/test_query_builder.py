"""Tests for QueryPackBuilder.

Tests cover:
- Intent derivation from issue types
- Entity and topic extraction (stopwords, entity tokens, caller keywords)
- Core claim derivation (preambles, attribution, concessive tails, pronouns)
- Per-family variant lists (ordering, dedupe, caps, never empty)
"""

import pytest

from evidence_engine.schemas import Finding, IssueType, PageContext, QueryIntent
from evidence_engine.verification.query_builder import (
    INTENT_PHRASES,
    MAX_VARIANTS,
    QueryPackBuilder,
)

FAMILIES = ("fact_check", "wikipedia", "wikidata", "pubmed", "gdelt")


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def builder() -> QueryPackBuilder:
    return QueryPackBuilder()


@pytest.fixture
def bridge_finding() -> Finding:
    return Finding(
        id="finding-7",
        quote="The bridge collapsed because of sabotage",
        issue_types=[IssueType.MISINFORMATION],
        rationale="Investigators attributed the collapse to corrosion.",
    )


def make_finding(quote: str, *issue_types: IssueType, correction: str = None) -> Finding:
    return Finding(
        quote=quote,
        issue_types=list(issue_types) or [IssueType.MISINFORMATION],
        correction=correction,
    )


# ── Intent Tests ──────────────────────────────────────────────────────────


class TestIntent:
    def test_misinformation_intent(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        pack = builder.build(bridge_finding)
        assert pack.intent == QueryIntent.MISINFORMATION

    def test_mixed_tags_with_misinformation(self, builder: QueryPackBuilder) -> None:
        finding = make_finding("Taxes doubled last year", IssueType.BIAS, IssueType.MISINFORMATION)
        assert builder.build(finding).intent == QueryIntent.MISINFORMATION

    def test_fallacy_only_is_argumentation(self, builder: QueryPackBuilder) -> None:
        finding = make_finding("Everyone knows taxes doubled", IssueType.FALLACY)
        pack = builder.build(finding)
        assert pack.intent == QueryIntent.ARGUMENTATION
        assert pack.gdelt[1].endswith(INTENT_PHRASES[QueryIntent.ARGUMENTATION])

    def test_misinformation_gdelt_phrase(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        pack = builder.build(bridge_finding)
        assert pack.gdelt[1] == "bridge collapsed sabotage fact check false misleading"


# ── Extraction Tests ──────────────────────────────────────────────────────


class TestExtraction:
    def test_topics_drop_stopwords(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        pack = builder.build(bridge_finding)
        assert pack.topic_terms == ["bridge", "collapsed", "sabotage"]
        assert pack.entity_terms == []

    def test_mid_sentence_entity(self, builder: QueryPackBuilder) -> None:
        entities = builder.extract_entities("Masks were banned by the CDC in Atlanta")
        assert "CDC" in entities
        assert "Atlanta" in entities

    def test_multiword_entity(self, builder: QueryPackBuilder) -> None:
        entities = builder.extract_entities("The claim about New York City spread online")
        assert "New York City" in entities

    def test_date_words_not_entities(self, builder: QueryPackBuilder) -> None:
        entities = builder.extract_entities("Prices rose on Tuesday in March")
        assert entities == []

    def test_honorific_trimmed(self, builder: QueryPackBuilder) -> None:
        entities = builder.extract_entities("A speech by Senator Jane Smith went viral")
        assert "Jane Smith" in entities

    def test_entity_tokens_excluded_from_topics(self, builder: QueryPackBuilder) -> None:
        finding = make_finding("Vaccines from Pfizer caused outbreaks")
        pack = builder.build(finding)
        assert "Pfizer" in pack.entity_terms
        assert "pfizer" not in pack.topic_terms

    def test_context_keywords_merged(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        context = PageContext(
            topic_keywords=["infrastructure", "Bridge"],
            entity_keywords=["Baltimore"],
        )
        pack = builder.build(bridge_finding, context)
        assert pack.entity_terms == ["Baltimore"]
        assert pack.topic_terms == ["bridge", "collapsed", "sabotage", "infrastructure"]

    def test_topic_cap(self, builder: QueryPackBuilder) -> None:
        finding = make_finding(
            "alpha bravo charlie delta echo foxtrot golf hotel india juliet kilo lima"
        )
        assert len(builder.build(finding).topic_terms) == 8


# ── Core Claim Tests ──────────────────────────────────────────────────────


class TestCoreClaim:
    def test_plain_quote_unchanged(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        assert builder.build(bridge_finding).core_claim == "The bridge collapsed because of sabotage"

    def test_reporting_preamble_removed(self, builder: QueryPackBuilder) -> None:
        assert (
            builder.derive_core_claim("Senator Smith said that the vaccine causes autism", [])
            == "the vaccine causes autism"
        )

    def test_attribution_prefix_removed(self, builder: QueryPackBuilder) -> None:
        assert (
            builder.derive_core_claim(
                "According to the CDC, masks reduce transmission by 80 percent", ["CDC"]
            )
            == "masks reduce transmission by 80 percent"
        )

    def test_concessive_tail_removed(self, builder: QueryPackBuilder) -> None:
        assert (
            builder.derive_core_claim("Crime fell sharply last year, although police say otherwise", [])
            == "Crime fell sharply last year"
        )

    def test_leading_pronoun_substituted(self, builder: QueryPackBuilder) -> None:
        assert (
            builder.derive_core_claim("He raised taxes on every family", ["John Doe"])
            == "John Doe raised taxes on every family"
        )

    def test_pronoun_kept_without_entities(self, builder: QueryPackBuilder) -> None:
        assert builder.derive_core_claim("He raised taxes on every family", []).startswith("He ")

    def test_truncated_to_22_words(self, builder: QueryPackBuilder) -> None:
        quote = " ".join(f"word{i}" for i in range(40))
        assert len(builder.derive_core_claim(quote, []).split()) == 22

    def test_quotes_and_whitespace_cleaned(self, builder: QueryPackBuilder) -> None:
        finding = make_finding('  "The   bridge collapsed"  ')
        assert builder.build(finding).core_claim == "The bridge collapsed"


# ── Variant Tests ─────────────────────────────────────────────────────────


class TestVariants:
    def test_bridge_variants(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        pack = builder.build(bridge_finding)
        core = "The bridge collapsed because of sabotage"
        compact = "bridge collapsed sabotage"

        intent_query = f"{compact} {INTENT_PHRASES[QueryIntent.MISINFORMATION]}"

        assert pack.primary == compact
        assert pack.fact_check == [core, compact, "bridge collapsed", intent_query]
        assert pack.wikipedia == [compact, "bridge collapsed", core]
        assert pack.wikidata == ["bridge", compact, "bridge collapsed", core]
        assert pack.pubmed == [compact, "bridge collapsed", core]
        assert pack.gdelt == [compact, intent_query, "bridge collapsed", core]

    @pytest.mark.parametrize(
        "quote",
        [
            "The bridge collapsed because of sabotage",
            "Vaccines from Pfizer caused outbreaks",
            "Officials said that the dam failed overnight",
        ],
    )
    def test_ordinary_quotes_get_three_variants(self, builder: QueryPackBuilder, quote: str) -> None:
        pack = builder.build(make_finding(quote))
        for family in FAMILIES:
            assert 3 <= len(pack.variants_for(family)) <= MAX_VARIANTS, family

    def test_core_claim_first_for_fact_checks(self, builder: QueryPackBuilder) -> None:
        pack = builder.build(make_finding("Officials said that the dam failed overnight"))
        assert pack.fact_check[0] == pack.core_claim

    def test_context_summary_variant(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        context = PageContext(summary="Coverage of the Key Bridge collapse in Baltimore harbor and cleanup")
        pack = builder.build(bridge_finding, context)
        assert "Coverage of the Key Bridge collapse in Baltimore harbor and cleanup" in pack.wikipedia

    def test_variants_capped(self, builder: QueryPackBuilder) -> None:
        context = PageContext(
            summary="A long summary of a political speech about the economy and jobs",
            topic_keywords=["economy", "jobs", "wages", "unemployment"],
            entity_keywords=["Federal Reserve", "Congress"],
        )
        finding = make_finding("Senator Smith said that unemployment tripled in Ohio since January")
        pack = builder.build(finding, context)
        for family in FAMILIES:
            assert 1 <= len(pack.variants_for(family)) <= MAX_VARIANTS

    def test_variants_deduplicated(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        pack = builder.build(bridge_finding)
        for family in FAMILIES:
            lowered = [v.lower() for v in pack.variants_for(family)]
            assert len(lowered) == len(set(lowered))

    @pytest.mark.parametrize("quote", ["Lies", "abcd", "?!?!", "the of and"])
    def test_degenerate_quotes_never_empty(self, builder: QueryPackBuilder, quote: str) -> None:
        pack = builder.build(make_finding(quote, IssueType.FALLACY))
        for family in FAMILIES:
            variants = pack.variants_for(family)
            assert variants
            assert all(v.strip() for v in variants)

    def test_empty_quote_falls_back_to_correction(self, builder: QueryPackBuilder) -> None:
        finding = make_finding("", correction="Inspectors found corrosion caused the collapse.")
        pack = builder.build(finding)
        assert pack.core_claim
        assert pack.fact_check

    def test_hints_carry_terms(self, builder: QueryPackBuilder, bridge_finding: Finding) -> None:
        pack = builder.build(bridge_finding)
        hints = pack.hints
        assert hints.topic_terms == pack.topic_terms
        assert hints.intent == QueryIntent.MISINFORMATION
