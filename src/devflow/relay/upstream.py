# Upstream provider: one streaming chat completion per prompt.
# Created: 2026-10-12
#
# The relay only sees ``UpstreamProvider.stream_reply()``; provider SDK errors
# are translated into UpstreamError / UpstreamTimeout here.

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Protocol

import httpx

from devflow.config import Settings
from devflow.errors import UpstreamError, UpstreamTimeout
from devflow.llm.client import LLMClient, resolve_llm_client

logger = logging.getLogger(__name__)


class UpstreamProvider(Protocol):
    """Anything that can stream a reply to a single prompt."""

    def stream_reply(self, prompt: str) -> AsyncIterator[str]:
        """Yield non-empty text fragments in the order the model emits them."""
        ...

    async def aclose(self) -> None: ...


def build_messages(system_prompt: str, prompt: str) -> list[dict[str, str]]:
    """System instruction plus one user turn. No history is forwarded."""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": prompt},
    ]


class OpenAICompatibleUpstream:
    """Streams chat completions from Groq (or any OpenAI-compatible API)."""

    def __init__(
        self,
        llm: LLMClient,
        *,
        system_prompt: str,
        timeout: float = 60.0,
        max_retries: int = 0,
    ):
        self.llm = llm
        self.system_prompt = system_prompt
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = None

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAICompatibleUpstream:
        return cls(
            resolve_llm_client(settings),
            system_prompt=settings.system_prompt,
            timeout=settings.upstream_timeout,
            max_retries=settings.upstream_max_retries,
        )

    @property
    def client(self):
        if self._client is None:
            self._client = self.llm.create_openai_client(
                timeout=self.timeout, max_retries=self.max_retries
            )
        return self._client

    async def stream_reply(self, prompt: str) -> AsyncIterator[str]:
        import openai

        try:
            stream = await self.client.chat.completions.create(
                model=self.llm.model,
                stream=True,
                messages=build_messages(self.system_prompt, prompt),
            )
        except openai.APITimeoutError as e:
            raise UpstreamTimeout(detail=self.llm.describe_error(e)) from e
        except openai.OpenAIError as e:
            raise UpstreamError(detail=self.llm.describe_error(e)) from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except (openai.APITimeoutError, httpx.TimeoutException) as e:
            raise UpstreamTimeout(detail=self.llm.describe_error(e)) from e
        except (openai.OpenAIError, httpx.HTTPError) as e:
            raise UpstreamError(detail=self.llm.describe_error(e)) from e
        finally:
            await stream.close()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
