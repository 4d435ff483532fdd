"""Gemini JSON completion client with exponential backoff.

The reranker only needs "prompt in, JSON object out". Models wrap JSON in
code fences, prepend prose, or leave trailing commas, so responses go
through a recovery chain before parsing. When the first answer still does
not parse, one strict attempt is made at temperature 0 with the JSON MIME
type requested.

Credentials belong to the client: every call opens its own generative
language service with that client's key, and nothing is configured
process-wide.
"""

import asyncio
import functools
import json
import random
import re
from typing import Any, Awaitable, Callable, Optional

import google.generativeai as genai
from google.ai import generativelanguage as glm

from evidence_engine.config.logging import get_logger
from evidence_engine.config.settings import settings

STRICT_SUFFIX = "\n\nIMPORTANT: Return valid JSON only. Do not use markdown or comments."

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


class LLMResponseError(RuntimeError):
    """Model answered but the answer could not be used."""


class PromptBlockedError(LLMResponseError):
    """Prompt rejected by the model's safety filters."""


def _default_service(api_key: str) -> Any:
    return glm.GenerativeServiceAsyncClient(client_options={"api_key": api_key})


def extract_balanced_json(text: str) -> Optional[str]:
    """Return the first balanced {...} or [...] document in text, if any."""
    start = next((i for i, ch in enumerate(text) if ch in "{["), -1)
    if start == -1:
        return None

    stack: list[str] = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]":
            if not stack or (stack[-1], ch) not in (("{", "}"), ("[", "]")):
                return None
            stack.pop()
            if not stack:
                return text[start : i + 1].strip()
    return None


def extract_json_block(text: str) -> str:
    """Strip fences and surrounding prose from a model answer."""
    fenced = _FENCED_JSON.search(text)
    if fenced and fenced.group(1).strip():
        body = fenced.group(1).strip()
        return extract_balanced_json(body) or body
    return extract_balanced_json(text) or text.strip()


def normalize_json_candidate(text: str) -> str:
    """Replace smart quotes and drop trailing commas."""
    text = text.replace("“", '"').replace("”", '"')
    text = text.replace("‘", "'").replace("’", "'")
    return _TRAILING_COMMA.sub(r"\1", text).strip()


def parse_json_with_recovery(text: str) -> Any:
    """
    Parse model output as JSON, trying progressively repaired candidates.

    Raises:
        LLMResponseError: No candidate parsed
    """
    block = extract_json_block(text)
    candidates = [block]
    normalized = normalize_json_candidate(block)
    if normalized != block:
        candidates.append(normalized)
    balanced = extract_balanced_json(normalized)
    if balanced and balanced not in candidates:
        candidates.append(balanced)

    last_error: Optional[Exception] = None
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
    raise LLMResponseError(f"Model response was not valid JSON: {last_error}")


def _async_exponential_backoff(
    max_retries: int = 3, base_delay: float = 1.0
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """
    Decorator retrying an async API call with exponential delay plus jitter.

    Blocked prompts, unusable answers and timeouts are raised immediately;
    everything else is retried up to max_retries attempts.

    Args:
        max_retries: Total attempts
        base_delay: Delay before the first retry in seconds
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            for retry in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except (LLMResponseError, asyncio.TimeoutError):
                    raise
                except Exception as e:
                    if retry == max_retries - 1:
                        get_logger("llm.gemini").error(
                            f"Max retries exceeded for {func.__name__}: {e}"
                        )
                        raise

                    delay = base_delay * (2 ** retry)
                    total_delay = delay + random.uniform(0, delay * 0.1)
                    get_logger("llm.gemini").warning(
                        f"Retry {retry + 1}/{max_retries} for {func.__name__} "
                        f"after {total_delay:.2f}s: {e}"
                    )
                    await asyncio.sleep(total_delay)

            raise RuntimeError(f"Unexpected retry loop exit in {func.__name__}")

        return wrapper

    return decorator


class GeminiJsonClient:
    """
    Async Gemini client returning parsed JSON.

    Each client holds its own credentials and opens its own service
    connection per call, so clients built with different keys can run
    concurrently in one process.

    Attributes:
        model_name: Gemini model id
        timeout: Seconds allowed per generation call
    """

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        service_factory: Optional[Callable[[str], Any]] = None,
    ) -> None:
        """
        Bind credentials and model settings to this client.

        Args:
            api_key: Gemini API key (never logged)
            model: Model id, defaults to settings.gemini_model
            timeout: Per-call timeout, defaults to settings.llm_timeout
            service_factory: Builds an async generation service from an
                API key; defaults to the generative language GAPIC client

        Raises:
            ValueError: If api_key is empty
        """
        if not api_key or not api_key.strip():
            raise ValueError("Gemini API key is required")

        self._api_key = api_key.strip()
        self._service_factory = service_factory or _default_service
        self.model_name = model or settings.gemini_model
        self.timeout = timeout if timeout is not None else settings.llm_timeout
        self._logger = get_logger("llm.gemini")
        self._logger.debug(f"Gemini JSON client ready with model {self.model_name}")

    @property
    def resource_name(self) -> str:
        if self.model_name.startswith("models/"):
            return self.model_name
        return f"models/{self.model_name}"

    async def generate_json(self, prompt: str) -> Any:
        """
        Generate a JSON answer for prompt.

        Returns:
            Parsed JSON value

        Raises:
            LLMResponseError: Both attempts returned unusable output
            PromptBlockedError: Prompt rejected by safety filters
            asyncio.TimeoutError: A call exceeded the timeout
        """
        text = await self._generate(prompt, strict=False)
        try:
            return parse_json_with_recovery(text)
        except LLMResponseError as e:
            self._logger.warning(f"Retrying with strict JSON mode: {e}")

        text = await self._generate(prompt + STRICT_SUFFIX, strict=True)
        try:
            return parse_json_with_recovery(text)
        except LLMResponseError as e:
            raise LLMResponseError(f"Model response was not valid JSON after strict retry: {e}") from e

    def build_request(self, prompt: str, strict: bool) -> Any:
        config: dict[str, Any] = {
            "temperature": 0.0 if strict else 0.1,
            "max_output_tokens": 1800,
        }
        if strict:
            config["response_mime_type"] = "application/json"
        return genai.protos.GenerateContentRequest(
            model=self.resource_name,
            contents=[genai.protos.Content(role="user", parts=[genai.protos.Part(text=prompt)])],
            generation_config=genai.protos.GenerationConfig(**config),
        )

    @_async_exponential_backoff()
    async def _generate(self, prompt: str, strict: bool) -> str:
        request = self.build_request(prompt, strict)
        async with self._service_factory(self._api_key) as service:
            response = await asyncio.wait_for(
                service.generate_content(request=request),
                timeout=self.timeout,
            )

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            self._logger.error(f"Prompt blocked by safety filters: {block_reason}")
            raise PromptBlockedError(f"Prompt blocked by safety filters: {block_reason}")

        text = "".join(
            part.text or ""
            for candidate in list(response.candidates)[:1]
            for part in candidate.content.parts
        )
        if not text.strip():
            raise LLMResponseError("Model response did not contain text content.")
        return text
