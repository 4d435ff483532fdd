"""Storage for resolved finding evidence.

Storage adapters:
- EvidenceStore: Tab-scoped evidence cache with optional JSON persistence
"""

from evidence_engine.data_management.evidence_store import EvidenceStore, is_stale

__all__ = ["EvidenceStore", "is_stale"]
