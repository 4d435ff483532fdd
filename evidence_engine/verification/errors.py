"""Exceptions raised by verification components.

ProviderError marks a genuinely broken lookup (non-2xx, timeout, transport
failure, malformed payload). An adapter that reached its provider and found
nothing returns an empty list instead of raising.
"""

from typing import Optional


class ProviderError(Exception):
    """A provider lookup failed; the aggregator records it per source."""

    def __init__(self, label: str, message: str, status_code: Optional[int] = None) -> None:
        self.label = label
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """429, 5xx, and timeouts/transport failures (no status) are retryable."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class MalformedPayloadError(ProviderError):
    """Provider answered 2xx but the body was not the expected JSON."""

    @property
    def retryable(self) -> bool:
        return False


class RerankError(Exception):
    """The LLM capability failed or returned an unusable response."""
