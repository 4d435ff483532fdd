"""Cached, deduplicated evidence resolution per (tab, finding).

The verification engine is stateless; this pipeline is the caller-side
cache around it:
- Fresh stored evidence is returned without touching any provider
- Concurrent requests for the same key share one in-flight verification
- Completed evidence is saved, then the in-flight entry is cleared

Usage:
    from evidence_engine.pipeline import EvidencePipeline

    pipeline = EvidencePipeline()
    evidence = await pipeline.resolve(tab_id, finding, page_context, credentials)

    # After a rescan of the tab:
    await pipeline.invalidate_tab(tab_id)
"""

import asyncio
from typing import Optional

from evidence_engine.data_management.evidence_store import (
    EvidenceStore,
    TabId,
    is_stale,
)
from evidence_engine.schemas import Credentials, Finding, FindingEvidence, PageContext
from evidence_engine.utils.logging import get_structured_logger
from evidence_engine.verification.engine import VerificationEngine

# Error keys never surfaced by fresh verifications; dropped from older cache entries
SUPPRESSED_ERROR_KEYS = ("gdelt",)


class EvidencePipeline:
    """Resolve evidence for findings through a staleness-checked cache."""

    def __init__(
        self,
        engine: Optional[VerificationEngine] = None,
        store: Optional[EvidenceStore] = None,
        max_age: Optional[float] = None,
    ) -> None:
        """Initialize EvidencePipeline.

        Args:
            engine: Verification engine. Lazy-initialized if None.
            store: Evidence store. Memory-only store if None.
            max_age: Staleness window in seconds (settings default if None).
        """
        self._engine = engine
        self.store = store or EvidenceStore()
        self.max_age = max_age
        self._in_flight: dict[tuple[str, str], "asyncio.Task[FindingEvidence]"] = {}
        self._logger = get_structured_logger(__name__, component="EvidencePipeline")

    def _get_engine(self) -> VerificationEngine:
        if self._engine is None:
            self._engine = VerificationEngine()
        return self._engine

    async def resolve(
        self,
        tab_id: TabId,
        finding: Finding,
        page_context: Optional[PageContext] = None,
        credentials: Optional[Credentials] = None,
        force_refresh: bool = False,
    ) -> FindingEvidence:
        """Return evidence for a finding, verifying only when needed.

        Args:
            tab_id: Scope of the finding (one scanned page).
            finding: Finding to resolve; must carry an id.
            page_context: Optional page description for query building.
            credentials: Provider keys for a fresh verification.
            force_refresh: Skip the cache and verify again.

        Raises:
            ValueError: If the finding has no id.
        """
        if not finding.id:
            raise ValueError("Finding id is required to resolve cached evidence")

        if not force_refresh:
            cached = await self.store.get_evidence(tab_id, finding.id)
            if cached is not None and not is_stale(cached, self.max_age):
                self._logger.debug("cache_hit", tab_id=str(tab_id), finding_id=finding.id)
                return await self._sanitize_cached(tab_id, finding.id, cached)

        key = (str(tab_id), finding.id)
        existing = self._in_flight.get(key)
        if existing is not None:
            self._logger.debug("joined_in_flight", tab_id=key[0], finding_id=finding.id)
            return await asyncio.shield(existing)

        job = asyncio.create_task(
            self._verify_and_save(tab_id, finding, page_context, credentials)
        )
        self._in_flight[key] = job
        job.add_done_callback(lambda _: self._in_flight.pop(key, None))
        return await asyncio.shield(job)

    async def invalidate_tab(self, tab_id: TabId) -> int:
        """Drop cached evidence for a tab. Returns the number of entries removed."""
        return await self.store.clear_tab(tab_id)

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def _verify_and_save(
        self,
        tab_id: TabId,
        finding: Finding,
        page_context: Optional[PageContext],
        credentials: Optional[Credentials],
    ) -> FindingEvidence:
        evidence = await self._get_engine().verify(finding, page_context, credentials)
        await self.store.save_evidence(tab_id, finding.id, evidence)
        self._logger.info(
            "evidence_resolved",
            tab_id=str(tab_id),
            finding_id=finding.id,
            status=evidence.status.code.value,
        )
        return evidence

    async def _sanitize_cached(
        self, tab_id: TabId, finding_id: str, evidence: FindingEvidence
    ) -> FindingEvidence:
        if not any(key in evidence.errors for key in SUPPRESSED_ERROR_KEYS):
            return evidence
        errors = {
            key: message
            for key, message in evidence.errors.items()
            if key not in SUPPRESSED_ERROR_KEYS
        }
        sanitized = evidence.model_copy(update={"errors": errors})
        await self.store.save_evidence(tab_id, finding_id, sanitized)
        return sanitized
