"""Upstream LLM provider resolution.

Turns settings into an immutable ``LLMClient`` descriptor and builds the
OpenAI-compatible SDK client from it.  Groq exposes the OpenAI chat
completions API, so both providers share one SDK.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from devflow.config import Settings

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"


@dataclass(frozen=True)
class LLMClient:
    """Immutable descriptor for a resolved upstream provider.

    Created via ``resolve_llm_client()``; not intended for direct construction.
    """

    provider: str  # "groq" | "openai"
    model: str
    api_key: str
    base_url: str

    def create_openai_client(
        self,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        """Create an ``AsyncOpenAI`` client pointed at this provider."""
        from openai import AsyncOpenAI

        return AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=timeout if timeout is not None else 60.0,
            max_retries=max_retries if max_retries is not None else 0,
        )

    def describe_error(self, error: Exception) -> str:
        """Return a log-friendly one-line description of an upstream failure."""
        error_str = str(error) or type(error).__name__
        lowered = error_str.lower()

        if "api key" in lowered or "authentication" in lowered or "401" in lowered:
            return f"{self.provider} rejected the API key: {error_str}"
        if "model" in lowered and ("not found" in lowered or "does not exist" in lowered):
            return f"{self.provider} does not serve model '{self.model}': {error_str}"
        if "rate" in lowered and "limit" in lowered:
            return f"{self.provider} rate limit hit: {error_str}"
        if "connect" in lowered or "refused" in lowered:
            return f"Cannot reach {self.provider} at {self.base_url}: {error_str}"
        return f"{self.provider} error ({type(error).__name__}): {error_str}"


def resolve_llm_client(settings: Settings) -> LLMClient:
    """Resolve settings into an ``LLMClient``.

    Raises ``ConfigurationError`` when the API key is missing.  A
    ``groq_base_url`` pointing at api.openai.com resolves to the ``openai``
    provider so log lines name the right service.
    """
    api_key = settings.require_api_key()
    base_url = settings.groq_base_url.rstrip("/")

    provider = "openai" if base_url == OPENAI_BASE_URL else "groq"

    return LLMClient(
        provider=provider,
        model=settings.groq_model,
        api_key=api_key,
        base_url=base_url,
    )
