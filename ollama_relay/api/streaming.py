"""NDJSON streaming response.

A StreamingResponse that:
- writes every chunk as soon as the body iterator yields it,
- bounds each chunk write with a timeout so a stalled client cannot pin
  the upstream connection forever,
- always releases its resources when streaming stops for any reason
  (finished, client disconnect, write timeout): the body iterator is
  closed and the on_close callback (the upstream stream's aclose) runs.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping

import anyio
from starlette.responses import StreamingResponse
from starlette.types import Send

from ollama_relay.core.constants import NDJSON_CONTENT_TYPE
from ollama_relay.core.logging import get_logger


logger = get_logger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class NDJSONStreamingResponse(StreamingResponse):
    """Chunked application/x-ndjson response with a per-write timeout."""

    media_type = NDJSON_CONTENT_TYPE

    def __init__(
        self,
        content: AsyncIterator[str],
        write_timeout: float | None = None,
        on_close: Callable[[], Awaitable[None]] | None = None,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the response.

        Args:
            content: Async iterator of NDJSON lines.
            write_timeout: Max seconds for one chunk write; None or 0 disables.
            on_close: Awaited once streaming stops, even if the body iterator
                never started.
            status_code: HTTP status.
            headers: Extra headers, merged over the streaming defaults.
        """
        super().__init__(
            content,
            status_code=status_code,
            headers={**STREAM_HEADERS, **(headers or {})},
        )
        self.write_timeout = write_timeout or None
        self._on_close = on_close

    async def stream_response(self, send: Send) -> None:
        try:
            await send(
                {
                    "type": "http.response.start",
                    "status": self.status_code,
                    "headers": self.raw_headers,
                }
            )
            async for chunk in self.body_iterator:
                body = chunk if isinstance(chunk, (bytes, memoryview)) else chunk.encode(self.charset)
                with anyio.fail_after(self.write_timeout):
                    await send({"type": "http.response.body", "body": body, "more_body": True})
        except TimeoutError:
            logger.warning("Client write timed out, aborting stream", timeout=self.write_timeout)
            raise
        finally:
            # Runs under cancellation when the client disconnects
            with anyio.CancelScope(shield=True):
                await self._release()

        await send({"type": "http.response.body", "body": b"", "more_body": False})

    async def _release(self) -> None:
        aclose = getattr(self.body_iterator, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._on_close is not None:
            await self._on_close()
