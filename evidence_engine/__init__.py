"""Evidence cross-verification engine for flagged findings."""

from evidence_engine.schemas import Credentials, Finding, FindingEvidence, PageContext
from evidence_engine.verification.engine import VerificationEngine, verify

__all__ = [
    "Credentials",
    "Finding",
    "FindingEvidence",
    "PageContext",
    "VerificationEngine",
    "verify",
]
