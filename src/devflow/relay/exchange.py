# Per-request relay state machine.
# Created: 2026-10-12
#
#   received -> validated -> upstream_streaming -> completed | failed
#
# The first fragment is awaited in ``open()`` so upstream failures that happen
# before anything was flushed can still become a 500 response.  After that the
# only way to report failure is to abort the connection, which is what raising
# MidStreamError out of ``fragments()`` does.

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import ValidationError

from devflow.api.schemas import MAX_SESSION_ID_LENGTH, AskRequest
from devflow.errors import (
    DevFlowError,
    MidStreamError,
    PromptValidationError,
    UpstreamError,
    UpstreamTimeout,
)
from devflow.relay.upstream import UpstreamProvider

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    UPSTREAM_STREAMING = "upstream_streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason(str, Enum):
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    TIMEOUT = "timeout"
    MID_STREAM = "mid_stream"
    DISCONNECTED = "disconnected"


def _validation_message(exc: ValidationError) -> str:
    """Turn the first pydantic error into a caller-facing sentence."""
    err = exc.errors()[0]
    field = err["loc"][0] if err["loc"] else ""
    if field == "prompt":
        if err["type"] == "missing":
            return "Prompt is required"
        if err["type"] == "string_type":
            return "Prompt must be a string"
        return "Prompt must not be empty"
    if field == "sessionId":
        return f"sessionId must be a string of at most {MAX_SESSION_ID_LENGTH} characters"
    return err["msg"]


class RelayExchange:
    """One prompt in, one ordered fragment stream out."""

    def __init__(
        self,
        upstream: UpstreamProvider,
        *,
        fragment_timeout: float | None = None,
    ):
        self.upstream = upstream
        self.fragment_timeout = fragment_timeout
        self.state = RelayState.RECEIVED
        self.failure: FailureReason | None = None
        self.request: AskRequest | None = None
        self.fragments_sent = 0
        self._stream: AsyncIterator[str] | None = None
        self._first: str | None = None

    @property
    def finished(self) -> bool:
        return self.state in (RelayState.COMPLETED, RelayState.FAILED)

    def _fail(self, reason: FailureReason) -> None:
        self.state = RelayState.FAILED
        self.failure = reason

    def validate(self, payload: Any) -> AskRequest:
        """received -> validated, or failed with PromptValidationError."""
        if self.state is not RelayState.RECEIVED:
            raise RuntimeError(f"validate() called in state {self.state.value}")
        if not isinstance(payload, dict):
            self._fail(FailureReason.VALIDATION)
            raise PromptValidationError("Request body must be a JSON object")
        try:
            self.request = AskRequest.model_validate(payload)
        except ValidationError as e:
            self._fail(FailureReason.VALIDATION)
            raise PromptValidationError(_validation_message(e)) from e
        self.state = RelayState.VALIDATED
        return self.request

    async def _next(self) -> str:
        if self.fragment_timeout is None:
            return await self._stream.__anext__()
        return await asyncio.wait_for(self._stream.__anext__(), timeout=self.fragment_timeout)

    async def open(self) -> None:
        """Start the upstream call and wait for its first fragment.

        Raises UpstreamError (or UpstreamTimeout) if nothing could be relayed.
        """
        if self.state is not RelayState.VALIDATED:
            raise RuntimeError(f"open() called in state {self.state.value}")

        self.state = RelayState.UPSTREAM_STREAMING
        self._stream = self.upstream.stream_reply(self.request.prompt)
        try:
            self._first = await self._next()
        except StopAsyncIteration:
            self._fail(FailureReason.UPSTREAM)
            await self._close_upstream()
            raise UpstreamError(detail="Upstream stream ended without any text") from None
        except TimeoutError as e:
            self._fail(FailureReason.TIMEOUT)
            await self._close_upstream()
            raise UpstreamTimeout(
                detail=f"No fragment within {self.fragment_timeout:g}s"
            ) from e
        except UpstreamTimeout:
            self._fail(FailureReason.TIMEOUT)
            await self._close_upstream()
            raise
        except DevFlowError:
            self._fail(FailureReason.UPSTREAM)
            await self._close_upstream()
            raise
        except Exception as e:
            self._fail(FailureReason.UPSTREAM)
            await self._close_upstream()
            raise UpstreamError(detail=f"{type(e).__name__}: {e}") from e

    async def fragments(
        self,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[str]:
        """Yield the primed first fragment, then every later one as it arrives."""
        if self.state is not RelayState.UPSTREAM_STREAMING or self._first is None:
            raise RuntimeError("fragments() requires a successful open()")

        first, self._first = self._first, None
        try:
            self.fragments_sent += 1
            yield first

            while True:
                if is_disconnected is not None and await is_disconnected():
                    self._fail(FailureReason.DISCONNECTED)
                    logger.info("Client went away after %d fragments", self.fragments_sent)
                    return
                try:
                    fragment = await self._next()
                except StopAsyncIteration:
                    break
                except (TimeoutError, UpstreamTimeout) as e:
                    self._fail(FailureReason.TIMEOUT)
                    logger.warning(
                        "Mid-stream upstream timeout after %d fragments: %s",
                        self.fragments_sent,
                        e,
                    )
                    raise MidStreamError(
                        detail=f"Upstream timed out after {self.fragments_sent} fragments"
                    ) from e
                except Exception as e:
                    self._fail(FailureReason.MID_STREAM)
                    logger.warning(
                        "Mid-stream upstream failure after %d fragments: %s: %s",
                        self.fragments_sent,
                        type(e).__name__,
                        e,
                    )
                    raise MidStreamError(
                        detail=f"Upstream failed after {self.fragments_sent} fragments: {e}"
                    ) from e
                self.fragments_sent += 1
                yield fragment

            self.state = RelayState.COMPLETED
        except (asyncio.CancelledError, GeneratorExit):
            if not self.finished:
                self._fail(FailureReason.DISCONNECTED)
            raise
        finally:
            await self._close_upstream()

    async def _close_upstream(self) -> None:
        stream, self._stream = self._stream, None
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception:
            logger.debug("Error while closing upstream stream", exc_info=True)
