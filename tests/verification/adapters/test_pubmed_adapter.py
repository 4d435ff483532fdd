"""Tests for PubMedAdapter ranking and the two-step lookup."""

import httpx
import pytest

from evidence_engine.verification.adapters.pubmed import (
    PubMedAdapter,
    extract_year,
    title_key,
    token_overlap,
)
from evidence_engine.verification.errors import ProviderError
from evidence_engine.verification.http import JsonHttpClient


# ── Helpers ──────────────────────────────────────────────────────────────


def make_adapter(summaries: dict, ids: list[str], calls: list = None) -> PubMedAdapter:
    calls = calls if calls is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path.endswith("esearch.fcgi"):
            return httpx.Response(200, json={"esearchresult": {"idlist": ids}})
        return httpx.Response(200, json={"result": {"uids": ids, **summaries}})

    http = JsonHttpClient(transport=httpx.MockTransport(handler), retry_wait=0)
    return PubMedAdapter(http=http)


# ── Helper Function Tests ─────────────────────────────────────────────────


class TestHelpers:
    def test_extract_year_takes_last(self) -> None:
        assert extract_year("2019 Dec 30; 2020 Jan") == 2020
        assert extract_year("") == 0

    def test_title_key_normalizes(self) -> None:
        assert title_key("Ivermectin: A Review!") == title_key("ivermectin a review")

    def test_token_overlap_relative_to_smaller_set(self) -> None:
        assert token_overlap(["a1a", "b2b"], ["a1a", "b2b", "c3c", "d4d"]) == 1.0
        assert token_overlap([], ["a1a"]) == 0.0


# ── Scoring Tests ─────────────────────────────────────────────────────────


class TestScoreTitle:
    @pytest.fixture
    def adapter(self) -> PubMedAdapter:
        return PubMedAdapter()

    def test_systematic_review_rewarded(self, adapter: PubMedAdapter) -> None:
        score = adapter.score_title(
            "Ivermectin for COVID-19: a systematic review and meta-analysis",
            "2021 Jun",
            "ivermectin covid mortality",
        )
        # two top-quality terms + 2020s recency
        assert score == 19

    def test_retracted_hard_excluded(self, adapter: PubMedAdapter) -> None:
        assert adapter.score_title("RETRACTED: Ivermectin cures covid", "2020", "q") == -100

    def test_low_signal_penalized(self, adapter: PubMedAdapter) -> None:
        assert adapter.score_title("Case report of a rare rash", "1999", "vaccine") == -5

    def test_quality_term_bonus(self, adapter: PubMedAdapter) -> None:
        assert adapter.score_title("A nationwide cohort of adults", "2015", "vaccine") == 10

    def test_query_echo_penalized(self, adapter: PubMedAdapter) -> None:
        assert (
            adapter.score_title("Ivermectin covid mortality", "", "ivermectin covid mortality")
            == -7
        )

    @pytest.mark.parametrize("pubdate,bonus", [("2023", 3), ("2016", 2), ("2008", 1), ("1990", 0)])
    def test_recency_bonus(self, adapter: PubMedAdapter, pubdate: str, bonus: int) -> None:
        assert adapter.score_title("Plain title", pubdate, "vaccine") == bonus


# ── Search Tests ──────────────────────────────────────────────────────────


class TestSearch:
    @pytest.mark.asyncio
    async def test_two_step_lookup_and_filtering(self) -> None:
        calls: list = []
        summaries = {
            "1": {
                "title": "Ivermectin and COVID-19 mortality: a systematic review",
                "fulljournalname": "BMJ",
                "pubdate": "2022 Jan",
            },
            "2": {"title": "Editorial: the ivermectin saga", "source": "Lancet", "pubdate": "2021"},
            "3": {"title": "RETRACTED: Ivermectin cures covid", "pubdate": "2020"},
        }
        adapter = make_adapter(summaries, ["1", "2", "3"], calls)
        items = await adapter.search("ivermectin covid mortality")

        assert len(items) == 1
        assert items[0].title == "Ivermectin and COVID-19 mortality: a systematic review"
        assert items[0].snippet == "BMJ (2022 Jan)"
        assert items[0].url == "https://pubmed.ncbi.nlm.nih.gov/1/"
        assert items[0].source == "pubmed"

        search_params = calls[0].url.params
        assert "NOT (editorial[Publication Type]" in search_params["term"]
        assert search_params["retmax"] == "20"
        assert calls[1].url.params["id"] == "1,2,3"

    @pytest.mark.asyncio
    async def test_no_ids_skips_summary_call(self) -> None:
        calls: list = []
        adapter = make_adapter({}, [], calls)
        assert await adapter.search("nothing here") == []
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_duplicate_titles_collapsed(self) -> None:
        summaries = {
            "1": {"title": "Masks and influenza: a cohort study", "pubdate": "2019"},
            "2": {"title": "Masks and Influenza - A Cohort Study.", "pubdate": "2018"},
        }
        items = await make_adapter(summaries, ["1", "2"]).search("masks influenza transmission")
        assert len(items) == 1
        assert items[0].url.endswith("/1/")

    @pytest.mark.asyncio
    async def test_ranked_by_score_then_year(self) -> None:
        summaries = {
            "1": {"title": "Masks in schools", "pubdate": "2021"},
            "2": {"title": "Masks in offices", "pubdate": "2022"},
            "3": {"title": "Masks: a meta-analysis", "pubdate": "2010"},
        }
        items = await make_adapter(summaries, ["1", "2", "3"]).search("influenza transmission")
        assert [item.url.rsplit("/", 2)[-2] for item in items] == ["3", "2", "1"]

    @pytest.mark.asyncio
    async def test_search_failure_raises(self) -> None:
        http = JsonHttpClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(503, text="busy")),
            retry_wait=0,
        )
        with pytest.raises(ProviderError) as exc_info:
            await PubMedAdapter(http=http).search("q")
        assert "PubMed ESearch API failed (503)" in str(exc_info.value)
