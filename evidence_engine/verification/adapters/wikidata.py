"""Wikidata entity search adapter.

Single-shot label lookup, top 5, mapped to CorroborationItem. No extra
relevance filtering: entity hits are cheap for a reader to check.
"""

from typing import Optional

from evidence_engine.config.scoring import SOURCE_LABELS
from evidence_engine.schemas import CorroborationItem, SearchHints
from evidence_engine.verification.errors import MalformedPayloadError
from evidence_engine.verification.http import JsonHttpClient

WIKIDATA_API = "https://www.wikidata.org/w/api.php"
MAX_RESULTS = 5


class WikidataAdapter:
    """Look up entities by label."""

    label = SOURCE_LABELS["wikidata"]

    def __init__(self, http: Optional[JsonHttpClient] = None) -> None:
        self._http = http or JsonHttpClient()

    async def search(
        self, query: str, hints: Optional[SearchHints] = None
    ) -> list[CorroborationItem]:
        payload = await self._http.get_json(
            WIKIDATA_API,
            params={
                "action": "wbsearchentities",
                "search": query,
                "language": "en",
                "format": "json",
                "limit": str(MAX_RESULTS),
            },
            label=self.label,
        )
        if not isinstance(payload, dict):
            raise MalformedPayloadError(self.label, f"{self.label} returned an unexpected payload.")

        results = payload.get("search")
        if not isinstance(results, list):
            return []

        items: list[CorroborationItem] = []
        for raw in results[:MAX_RESULTS]:
            if not isinstance(raw, dict):
                continue
            entity_id = str(raw.get("id") or "").strip()
            url = str(raw.get("concepturi") or "").strip()
            if not url and not entity_id:
                continue
            items.append(
                CorroborationItem(
                    title=str(raw.get("label") or entity_id or "Wikidata entity").strip(),
                    snippet=str(raw.get("description") or "").strip(),
                    url=url or f"https://www.wikidata.org/wiki/{entity_id}",
                    source="wikidata",
                )
            )
        return items
