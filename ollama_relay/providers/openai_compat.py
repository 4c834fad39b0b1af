"""OpenAI-compatible upstream provider.

Talks to any API implementing the OpenAI REST surface (OpenRouter by
default): GET /models, POST /chat/completions with and without
server-sent-event streaming.

Patterns applied:
- UpstreamProvider ABC implementation
- One shared httpx.AsyncClient per provider (connection pooling)
- httpx.Timeout read timeout doubles as the upstream idle timeout
- Exception chaining with `raise ... from e`
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx
from opentelemetry.trace import SpanKind

from ollama_relay.core.constants import DEFAULT_UPSTREAM_BASE_URL
from ollama_relay.core.exceptions import (
    MidStreamFailureError,
    UpstreamUnavailableError,
)
from ollama_relay.core.logging import get_logger
from ollama_relay.observability.tracing import get_tracer, inject_trace_context
from ollama_relay.providers.base import (
    ChatCompletionResult,
    ChatDelta,
    ChatStream,
    UpstreamProvider,
)


logger = get_logger(__name__)
tracer = get_tracer(__name__)

# =============================================================================
# Constants
# =============================================================================

MODELS_PATH = "/models"
CHAT_COMPLETIONS_PATH = "/chat/completions"
SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


# =============================================================================
# Payload Helpers
# =============================================================================


def extract_error_message(body: str | bytes, status_code: int | None = None) -> str:
    """Pull the upstream's error text out of a response body.

    OpenAI-style bodies look like {"error": {"message": ...}}; anything else
    is returned verbatim.

    Args:
        body: Raw response body.
        status_code: Upstream HTTP status, prefixed to the message when given.

    Returns:
        Human-readable error text.
    """
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    message = text.strip()
    try:
        payload = json.loads(text)
    except ValueError:
        payload = None

    if isinstance(payload, dict) and "error" in payload:
        error = payload["error"]
        if isinstance(error, dict):
            message = str(error.get("message") or error)
        else:
            message = str(error)

    if status_code is not None:
        return f"upstream returned {status_code}: {message}"
    return message


def parse_delta(chunk: dict[str, Any]) -> ChatDelta | None:
    """Convert one streamed completion chunk into a ChatDelta.

    Returns:
        The delta, or None for chunks without choices (keep-alives, usage-only).
    """
    choices = chunk.get("choices") or []
    if not choices:
        return None

    choice = choices[0]
    delta = choice.get("delta") or {}
    return ChatDelta(
        content=delta.get("content") or "",
        role=delta.get("role"),
        finish_reason=choice.get("finish_reason") or None,
    )


def parse_completion(payload: dict[str, Any]) -> ChatCompletionResult:
    """Convert a non-streamed completion body into a ChatCompletionResult.

    Raises:
        UpstreamUnavailableError: If the body has no choices.
    """
    choices = payload.get("choices") or []
    if not choices:
        raise UpstreamUnavailableError(
            "upstream completion contained no choices",
            operation="chat_completion",
        )

    choice = choices[0]
    message = choice.get("message") or {}
    usage = payload.get("usage") or {}
    return ChatCompletionResult(
        content=message.get("content") or "",
        role=message.get("role") or "assistant",
        finish_reason=choice.get("finish_reason") or None,
        prompt_tokens=usage.get("prompt_tokens"),
        completion_tokens=usage.get("completion_tokens"),
    )


# =============================================================================
# Stream
# =============================================================================


class SSEChatStream(ChatStream):
    """ChatStream over an open httpx streaming response carrying SSE lines."""

    def __init__(self, response: httpx.Response, model: str) -> None:
        self._response = response
        self._model = model

    def __aiter__(self) -> AsyncIterator[ChatDelta]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ChatDelta]:
        try:
            async for line in self._response.aiter_lines():
                # Skip SSE comments (": OPENROUTER PROCESSING"), event names and blanks
                if not line.startswith(SSE_DATA_PREFIX):
                    continue

                data = line[len(SSE_DATA_PREFIX):].strip()
                if data == SSE_DONE:
                    return

                try:
                    chunk = json.loads(data)
                except json.JSONDecodeError:
                    chunk = None

                if not isinstance(chunk, dict):
                    logger.warning(
                        "Skipping malformed upstream chunk",
                        operation="chat_stream",
                        model=self._model,
                        data=data[:200],
                    )
                    continue

                if "error" in chunk:
                    raise MidStreamFailureError(extract_error_message(data))

                try:
                    delta = parse_delta(chunk)
                except (AttributeError, KeyError, TypeError) as e:
                    raise MidStreamFailureError(
                        f"unexpected upstream chunk shape: {data[:200]}"
                    ) from e
                if delta is not None:
                    yield delta
        except httpx.HTTPError as e:
            raise MidStreamFailureError(f"{type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        await self._response.aclose()


# =============================================================================
# Provider
# =============================================================================


class OpenAICompatibleProvider(UpstreamProvider):
    """UpstreamProvider for OpenAI-compatible REST APIs.

    Example:
        provider = OpenAICompatibleProvider(api_key="sk-...")
        ids = await provider.list_models()
        async with await provider.open_chat_stream(messages, ids[0]) as stream:
            async for delta in stream:
                ...
        await provider.aclose()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_UPSTREAM_BASE_URL,
        connect_timeout: float = 10.0,
        idle_timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: Bearer credential for the upstream.
            base_url: API root, e.g. https://openrouter.ai/api/v1.
            connect_timeout: Seconds to establish a connection.
            idle_timeout: Max seconds between received bytes.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(idle_timeout, connect=connect_timeout),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def list_models(self) -> list[str]:
        with tracer.start_as_current_span("upstream.list_models", kind=SpanKind.CLIENT):
            try:
                response = await self._client.get(
                    MODELS_PATH, headers=inject_trace_context()
                )
            except httpx.HTTPError as e:
                raise UpstreamUnavailableError(
                    f"{type(e).__name__}: {e}", operation="list_models"
                ) from e

        if response.status_code >= 400:
            raise UpstreamUnavailableError(
                extract_error_message(response.content, response.status_code),
                operation="list_models",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                f"upstream model listing is not JSON: {e}", operation="list_models"
            ) from e

        entries = (payload.get("data") or []) if isinstance(payload, dict) else []
        return [
            entry["id"]
            for entry in entries
            if isinstance(entry, dict) and entry.get("id")
        ]

    async def chat_completion(
        self, messages: Sequence[dict[str, str]], model: str
    ) -> ChatCompletionResult:
        payload = {"model": model, "messages": list(messages), "stream": False}

        with tracer.start_as_current_span(
            "upstream.chat_completion", kind=SpanKind.CLIENT
        ) as span:
            span.set_attribute("llm.model", model)
            try:
                response = await self._client.post(
                    CHAT_COMPLETIONS_PATH, json=payload, headers=inject_trace_context()
                )
            except httpx.HTTPError as e:
                raise UpstreamUnavailableError(
                    f"{type(e).__name__}: {e}", operation="chat_completion"
                ) from e

        if response.status_code >= 400:
            raise UpstreamUnavailableError(
                extract_error_message(response.content, response.status_code),
                operation="chat_completion",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                f"upstream completion is not JSON: {e}", operation="chat_completion"
            ) from e

        if isinstance(body, dict) and "error" in body:
            raise UpstreamUnavailableError(
                extract_error_message(response.content), operation="chat_completion"
            )
        return parse_completion(body)

    async def open_chat_stream(
        self, messages: Sequence[dict[str, str]], model: str
    ) -> ChatStream:
        payload = {"model": model, "messages": list(messages), "stream": True}
        request = self._client.build_request(
            "POST",
            CHAT_COMPLETIONS_PATH,
            json=payload,
            headers={"Accept": "text/event-stream", **inject_trace_context()},
        )

        with tracer.start_as_current_span(
            "upstream.open_chat_stream", kind=SpanKind.CLIENT
        ) as span:
            span.set_attribute("llm.model", model)
            try:
                response = await self._client.send(request, stream=True)
            except httpx.HTTPError as e:
                raise UpstreamUnavailableError(
                    f"{type(e).__name__}: {e}", operation="chat_stream"
                ) from e

        if response.status_code >= 400:
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            raise UpstreamUnavailableError(
                extract_error_message(body, response.status_code),
                operation="chat_stream",
                status_code=response.status_code,
            )

        return SSEChatStream(response, model)

    async def aclose(self) -> None:
        await self._client.aclose()
