"""LLM clients used by the verification engine."""

from evidence_engine.llm.gemini_client import (
    GeminiJsonClient,
    LLMResponseError,
    PromptBlockedError,
)

__all__ = ["GeminiJsonClient", "LLMResponseError", "PromptBlockedError"]
