"""Verdict classifier: fact-check verdicts + corroboration counts -> one status.

Pure and deterministic. Decision order:
1. Only contradicting fact-checks       -> contradicted / high
2. Only supporting fact-checks          -> supported / high
3. Any other usable fact-check mix      -> contested / medium
4. No usable fact-check signal:
   - 2+ non-empty corroboration sets    -> unverified / low (reference sources)
   - otherwise                          -> unverified / low (nothing found)

Unknown verdicts count toward nothing. Callers re-run this whenever the
evidence sets change; a status is never patched in place.
"""

from collections import Counter
from typing import Iterable

from evidence_engine.schemas import (
    ConfidenceTier,
    Corroboration,
    FactCheckMatch,
    NormalizedVerdict,
    VerificationCode,
    VerificationStatus,
)

MIN_CORROBORATION_SIGNALS = 2

CONTRADICTED_STATUS = VerificationStatus(
    code=VerificationCode.CONTRADICTED,
    label="Contradicted",
    reason="Independent fact-check publishers rate this claim as false or unsupported.",
    confidence=ConfidenceTier.HIGH,
)
SUPPORTED_STATUS = VerificationStatus(
    code=VerificationCode.SUPPORTED,
    label="Supported",
    reason="Independent fact-check publishers rate this claim as true or mostly true.",
    confidence=ConfidenceTier.HIGH,
)
CONTESTED_STATUS = VerificationStatus(
    code=VerificationCode.CONTESTED,
    label="Contested",
    reason="Fact-check verdicts are mixed, nuanced, or context-dependent across publishers.",
    confidence=ConfidenceTier.MEDIUM,
)
REFERENCES_ONLY_STATUS = VerificationStatus(
    code=VerificationCode.UNVERIFIED,
    label="Unverified",
    reason=(
        "No direct fact-check match found; trusted reference sources are "
        "provided for manual review."
    ),
    confidence=ConfidenceTier.LOW,
)
UNVERIFIED_STATUS = VerificationStatus(
    code=VerificationCode.UNVERIFIED,
    label="Unverified",
    reason="No direct fact-check match or reliable corroboration was found for this claim.",
    confidence=ConfidenceTier.LOW,
)


def tally_verdicts(matches: Iterable[FactCheckMatch]) -> Counter:
    """Count normalized verdicts; every verdict value is present in the result."""
    tally: Counter = Counter({verdict: 0 for verdict in NormalizedVerdict})
    for match in matches:
        tally[match.normalized_verdict] += 1
    return tally


def classify_verification_status(
    fact_checks: list[FactCheckMatch],
    corroboration: Corroboration,
) -> VerificationStatus:
    """Reduce collected evidence to a single verification status."""
    tally = tally_verdicts(fact_checks)
    supported = tally[NormalizedVerdict.SUPPORTED]
    contradicted = tally[NormalizedVerdict.CONTRADICTED]
    contested = tally[NormalizedVerdict.CONTESTED]

    if contradicted > 0 and supported == 0 and contested == 0:
        return CONTRADICTED_STATUS
    if supported > 0 and contradicted == 0 and contested == 0:
        return SUPPORTED_STATUS
    if supported + contradicted + contested > 0:
        return CONTESTED_STATUS

    if corroboration.non_empty_count() >= MIN_CORROBORATION_SIGNALS:
        return REFERENCES_ONLY_STATUS
    return UNVERIFIED_STATUS
