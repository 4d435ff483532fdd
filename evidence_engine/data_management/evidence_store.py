"""Finding evidence storage keyed by (tab, finding).

Follows the same patterns as the other stores:
- Tab-based organization (tab_id as primary key)
- O(1) lookup by finding_id
- asyncio lock around every read and write
- Optional JSON persistence

Freshness is judged by the caller with is_stale(); the store itself keeps
whatever it was given.

Usage:
    from evidence_engine.data_management.evidence_store import EvidenceStore

    store = EvidenceStore()
    await store.save_evidence(tab_id, "finding-7", evidence)
    cached = await store.get_evidence(tab_id, "finding-7")
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError

from evidence_engine.config.settings import settings
from evidence_engine.schemas import FindingEvidence

TabId = Union[int, str]


def is_stale(
    evidence: Optional[FindingEvidence],
    max_age: Optional[float] = None,
    now: Optional[datetime] = None,
) -> bool:
    """True when evidence is missing, undated, or older than max_age seconds.

    Naive timestamps are read as UTC.
    """
    if evidence is None or not isinstance(evidence.generated_at, datetime):
        return True
    max_age = settings.evidence_max_age if max_age is None else max_age
    generated_at = evidence.generated_at
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return (now - generated_at).total_seconds() > max_age


class EvidenceStore:
    """Storage for FindingEvidence with tab-scoped access.

    Data structure:
    {
        tab_id: {
            finding_id: FindingEvidence,
            ...
        },
        ...
    }
    """

    def __init__(self, persistence_path: Optional[str] = None) -> None:
        """Initialize EvidenceStore.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.
        """
        self._evidence: dict[str, dict[str, FindingEvidence]] = {}
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._logger = structlog.get_logger().bind(component="EvidenceStore")

        if self._persistence_path and self._persistence_path.exists():
            self._load_from_file()

    async def save_evidence(
        self, tab_id: TabId, finding_id: str, evidence: FindingEvidence
    ) -> None:
        """Store evidence for a finding, replacing any previous entry."""
        async with self._lock:
            self._evidence.setdefault(str(tab_id), {})[finding_id] = evidence
            self._logger.debug(
                "evidence_saved",
                tab_id=str(tab_id),
                finding_id=finding_id,
                status=evidence.status.code.value,
            )
            if self._persistence_path:
                self._save_to_file()

    async def get_evidence(
        self, tab_id: TabId, finding_id: str
    ) -> Optional[FindingEvidence]:
        """Get stored evidence, or None."""
        async with self._lock:
            return self._evidence.get(str(tab_id), {}).get(finding_id)

    async def get_all_evidence(self, tab_id: TabId) -> list[FindingEvidence]:
        async with self._lock:
            return list(self._evidence.get(str(tab_id), {}).values())

    async def clear_tab(self, tab_id: TabId) -> int:
        """Drop all evidence for a tab (e.g. after a rescan).

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            removed = self._evidence.pop(str(tab_id), {})
            if removed and self._persistence_path:
                self._save_to_file()
            self._logger.info("tab_cleared", tab_id=str(tab_id), removed=len(removed))
            return len(removed)

    async def get_stats(self, tab_id: TabId) -> dict[str, Any]:
        """Counts by verification code for one tab."""
        async with self._lock:
            tab = self._evidence.get(str(tab_id), {})
            status_counts: dict[str, int] = {}
            for evidence in tab.values():
                code = evidence.status.code.value
                status_counts[code] = status_counts.get(code, 0) + 1
            return {
                "tab_id": str(tab_id),
                "total": len(tab),
                "status_counts": status_counts,
            }

    def _save_to_file(self) -> None:
        """Save to JSON file (synchronous)."""
        if not self._persistence_path:
            return
        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = {
                tab_id: {
                    finding_id: evidence.model_dump(mode="json")
                    for finding_id, evidence in findings.items()
                }
                for tab_id, findings in self._evidence.items()
            }
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            self._logger.error("persistence_failed", error=str(e))

    def _load_from_file(self) -> None:
        """Load stored evidence from JSON; unreadable entries are skipped."""
        try:
            with open(self._persistence_path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self._logger.error("load_failed", error=str(e))
            return

        skipped = 0
        for tab_id, findings in (data or {}).items():
            if not isinstance(findings, dict):
                continue
            for finding_id, raw in findings.items():
                try:
                    evidence = FindingEvidence.model_validate(raw)
                except ValidationError:
                    skipped += 1
                    continue
                self._evidence.setdefault(str(tab_id), {})[finding_id] = evidence

        self._logger.info(
            "evidence_loaded",
            tabs=len(self._evidence),
            skipped=skipped,
        )
