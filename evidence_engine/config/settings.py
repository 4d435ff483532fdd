"""Application settings using Pydantic BaseSettings for environment variable management."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Credentials are optional. The engine itself never reads them implicitly;
    callers build a Credentials object (see Credentials.from_settings) and
    pass it to verify().

    Attributes:
        fact_check_api_key: Google Fact Check Tools API key (optional)
        gemini_api_key: Gemini API key used by the relevance reranker (optional)
        gemini_model: Gemini model used for reranking
        provider_timeout: Timeout in seconds for JSON provider calls
        news_timeout: Timeout in seconds for GDELT calls
        llm_timeout: Timeout in seconds for the rerank call
        provider_retries: Extra attempts on 429/5xx/timeouts
        news_min_interval: Minimum seconds between GDELT requests
        evidence_max_age: Seconds before cached evidence is considered stale
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
    """

    fact_check_api_key: Optional[str] = Field(
        default=None,
        description="Google Fact Check Tools API key",
    )
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key for relevance reranking",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model identifier for reranking",
    )
    provider_timeout: float = Field(
        default=18.0,
        description="Timeout (seconds) for fact-check, Wikipedia, Wikidata, PubMed",
    )
    news_timeout: float = Field(
        default=20.0,
        description="Timeout (seconds) for GDELT requests",
    )
    llm_timeout: float = Field(
        default=55.0,
        description="Timeout (seconds) for the rerank LLM call",
    )
    provider_retries: int = Field(
        default=1,
        ge=0,
        description="Extra attempts on retryable provider failures",
    )
    news_min_interval: float = Field(
        default=5.2,
        ge=0.0,
        description="Minimum spacing (seconds) between GDELT requests, process-wide",
    )
    evidence_max_age: float = Field(
        default=600.0,
        description="Staleness window (seconds) for cached evidence",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance - import this throughout the application
settings = Settings()
