"""Source adapters, one per provider.

Common contract: `await adapter.search(query, hints=None)` returns an empty
collection when the provider answered with nothing, and raises
ProviderError only when the lookup itself is broken. GdeltAdapter never
raises for provider failures.
"""

from evidence_engine.verification.adapters.fact_check import FactCheckAdapter
from evidence_engine.verification.adapters.gdelt import GdeltAdapter
from evidence_engine.verification.adapters.pubmed import PubMedAdapter
from evidence_engine.verification.adapters.wikidata import WikidataAdapter
from evidence_engine.verification.adapters.wikipedia import WikipediaAdapter

__all__ = [
    "FactCheckAdapter",
    "GdeltAdapter",
    "PubMedAdapter",
    "WikidataAdapter",
    "WikipediaAdapter",
]
