"""Streaming response translator.

Reshapes the upstream's incremental deltas into Ollama /api/chat chunks.

States: STREAMING -> DONE.
- Each delta becomes exactly one non-terminal chunk (done=false), even when
  its content is empty. A non-empty finish reason is remembered; the last
  one seen wins.
- A clean end of the upstream stream produces exactly one terminal chunk
  (done=true) carrying the remembered finish reason, "stop" by default.
- A mid-stream upstream failure produces one StreamError line instead of a
  terminal chunk, and translation stops.

Nothing is buffered: every chunk is yielded as soon as its delta arrives.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

from ollama_relay.core.constants import ASSISTANT_ROLE, DEFAULT_FINISH_REASON
from ollama_relay.core.exceptions import MidStreamFailureError
from ollama_relay.core.logging import get_logger
from ollama_relay.models.responses import (
    ChatChunk,
    ChatDone,
    ChatResponse,
    ChunkMessage,
    StreamError,
)
from ollama_relay.providers.base import ChatCompletionResult, ChatDelta


logger = get_logger(__name__)

StreamItem = ChatChunk | ChatDone | StreamError


class StreamTranslator:
    """Stateless translator; all per-stream state lives in translate()."""

    def chunk_for(self, delta: ChatDelta, model: str) -> ChatChunk:
        return ChatChunk(
            model=model,
            message=ChunkMessage(role=ASSISTANT_ROLE, content=delta.content),
        )

    def done_for(self, model: str, finish_reason: str | None) -> ChatDone:
        reason = finish_reason or DEFAULT_FINISH_REASON
        return ChatDone(model=model, finish_reason=reason, done_reason=reason)

    async def translate(
        self,
        deltas: AsyncIterable[ChatDelta],
        model: str,
    ) -> AsyncIterator[StreamItem]:
        """Translate an upstream delta stream into outbound chunks.

        Args:
            deltas: Upstream deltas; may raise MidStreamFailureError.
            model: Fully-qualified model id reported on every chunk.

        Yields:
            One ChatChunk per delta, then a ChatDone, or a StreamError if
            the upstream failed.
        """
        last_finish_reason: str | None = None
        emitted = 0

        try:
            async for delta in deltas:
                if delta.finish_reason:
                    last_finish_reason = delta.finish_reason
                emitted += 1
                yield self.chunk_for(delta, model)
        except MidStreamFailureError as e:
            logger.error(
                "Upstream stream failed",
                operation=e.operation,
                model=model,
                chunks_sent=emitted,
                error=e.message,
            )
            yield StreamError(error=f"Stream error: {e.message}")
            return

        logger.debug(
            "Stream completed",
            model=model,
            chunks_sent=emitted,
            finish_reason=last_finish_reason or DEFAULT_FINISH_REASON,
        )
        yield self.done_for(model, last_finish_reason)

    def aggregate(self, result: ChatCompletionResult, model: str) -> ChatResponse:
        """Build the single response for a non-streaming chat request."""
        reason = result.finish_reason or DEFAULT_FINISH_REASON
        return ChatResponse(
            model=model,
            message=ChunkMessage(role=result.role or ASSISTANT_ROLE, content=result.content),
            finish_reason=reason,
            done_reason=reason,
            prompt_eval_count=result.prompt_tokens or 0,
            eval_count=result.completion_tokens or 0,
        )
