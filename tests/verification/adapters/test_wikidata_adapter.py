"""Tests for WikidataAdapter."""

import httpx
import pytest

from evidence_engine.verification.adapters.wikidata import WikidataAdapter
from evidence_engine.verification.errors import ProviderError
from evidence_engine.verification.http import JsonHttpClient


def make_adapter(handler) -> WikidataAdapter:
    return WikidataAdapter(
        http=JsonHttpClient(transport=httpx.MockTransport(handler), retry_wait=0)
    )


@pytest.mark.asyncio
async def test_entities_mapped() -> None:
    payload = {
        "search": [
            {
                "id": "Q60",
                "label": "New York City",
                "description": "most populous city in the United States",
                "concepturi": "http://www.wikidata.org/entity/Q60",
            },
            {"id": "Q1384", "label": "New York"},
        ]
    }
    items = await make_adapter(lambda r: httpx.Response(200, json=payload)).search("New York")

    assert [item.title for item in items] == ["New York City", "New York"]
    assert items[0].url == "http://www.wikidata.org/entity/Q60"
    assert items[0].snippet == "most populous city in the United States"
    assert items[1].url == "https://www.wikidata.org/wiki/Q1384"
    assert all(item.source == "wikidata" for item in items)


@pytest.mark.asyncio
async def test_request_parameters() -> None:
    calls: list = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"search": []})

    assert await make_adapter(handler).search("Pfizer") == []
    params = calls[0].url.params
    assert params["action"] == "wbsearchentities"
    assert params["search"] == "Pfizer"
    assert params["limit"] == "5"


@pytest.mark.asyncio
async def test_top_five_only() -> None:
    payload = {"search": [{"id": f"Q{i}", "label": f"Entity {i}"} for i in range(9)]}
    items = await make_adapter(lambda r: httpx.Response(200, json=payload)).search("entity")
    assert len(items) == 5


@pytest.mark.asyncio
async def test_missing_search_key_is_empty() -> None:
    items = await make_adapter(lambda r: httpx.Response(200, json={"success": 1})).search("x")
    assert items == []


@pytest.mark.asyncio
async def test_http_error_raises() -> None:
    with pytest.raises(ProviderError) as exc_info:
        await make_adapter(lambda r: httpx.Response(404, text="not found")).search("x")
    assert "Wikidata failed (404)" in str(exc_info.value)
