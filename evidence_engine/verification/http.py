"""JSON-over-HTTP helper shared by the source adapters.

Each request opens a short-lived httpx.AsyncClient so concurrent
verification calls share no connection state. Retries follow the provider
policy: only 429, 5xx, timeouts and transport errors are retried, with
exponential backoff via tenacity. Everything else fails fast.

Usage:
    from evidence_engine.verification.http import JsonHttpClient

    http = JsonHttpClient(timeout=18.0, retries=1)
    payload = await http.get_json(url, params={"q": "..."}, label="Wikipedia API")
"""

from typing import Any, Mapping, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from evidence_engine.config.settings import settings
from evidence_engine.verification.errors import MalformedPayloadError, ProviderError

USER_AGENT = "evidence-engine/0.1 (claim cross-verification)"

_BODY_SNIPPET_CHARS = 220


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.retryable


class JsonHttpClient:
    """GET JSON from a provider with timeout, retry, and error normalization.

    Attributes:
        timeout: Per-attempt timeout in seconds
        retries: Extra attempts after the first on retryable failures
        retry_wait: Base backoff multiplier in seconds (0 disables waiting)
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        retry_wait: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize client.

        Args:
            timeout: Per-attempt timeout (defaults to settings.provider_timeout)
            retries: Extra attempts (defaults to settings.provider_retries)
            retry_wait: Backoff multiplier in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.timeout = timeout if timeout is not None else settings.provider_timeout
        self.retries = retries if retries is not None else settings.provider_retries
        self.retry_wait = retry_wait
        self._transport = transport
        self._logger = structlog.get_logger().bind(component="JsonHttpClient")

    def with_timeout(self, timeout: float) -> "JsonHttpClient":
        """Copy of this client with a different timeout, same transport."""
        return JsonHttpClient(
            timeout=timeout,
            retries=self.retries,
            retry_wait=self.retry_wait,
            transport=self._transport,
        )

    async def get_json(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        label: str = "Provider",
        retries: Optional[int] = None,
    ) -> Any:
        """
        Fetch and decode a JSON document.

        Args:
            url: Endpoint URL
            params: Query parameters
            label: Provider label used in error messages
            retries: Override of extra attempts for this call

        Returns:
            Decoded JSON payload

        Raises:
            ProviderError: Non-2xx status, timeout, or transport failure
            MalformedPayloadError: 2xx response whose body is not JSON
        """
        attempts = 1 + (self.retries if retries is None else retries)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=4),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                number = attempt.retry_state.attempt_number
                if number > 1:
                    self._logger.debug("provider_retry", label=label, attempt=number)
                return await self._get_once(url, params, label)

    async def _get_once(
        self,
        url: str,
        params: Optional[Mapping[str, Any]],
        label: str,
    ) -> Any:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        ) as client:
            try:
                response = await client.get(url, params=params)
            except httpx.TimeoutException as exc:
                raise ProviderError(label, f"{label} request timed out.") from exc
            except httpx.HTTPError as exc:
                raise ProviderError(label, f"{label} request failed: {exc}") from exc

        if not response.is_success:
            snippet = response.text[:_BODY_SNIPPET_CHARS]
            raise ProviderError(
                label,
                f"{label} failed ({response.status_code}): {snippet}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedPayloadError(label, f"{label} returned invalid JSON.") from exc
