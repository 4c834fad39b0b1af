"""Chat route: POST /api/chat.

Streaming (the default when "stream" is omitted) returns
application/x-ndjson: one ChatChunk line per upstream delta followed by a
single done=true line. Non-streaming returns one complete JSON object.

Failure points:
- alias resolution (404 under the reject policy)
- opening the upstream stream (500, upstream text verbatim)
- after the 200 is committed, upstream failures become an in-band
  {"error": ...} line and the stream ends without a done chunk.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from ollama_relay.api.dependencies import get_relay_context
from ollama_relay.api.streaming import NDJSONStreamingResponse
from ollama_relay.core.logging import get_logger
from ollama_relay.models.requests import ChatRequest
from ollama_relay.models.responses import ChatResponse, ErrorResponse
from ollama_relay.providers.base import ChatStream
from ollama_relay.services.stream_translator import StreamTranslator


router = APIRouter(tags=["chat"])
logger = get_logger(__name__)


async def _ndjson_lines(
    translator: StreamTranslator,
    stream: ChatStream,
    model: str,
) -> AsyncIterator[str]:
    """Encode translated chunks as NDJSON lines, closing the stream at the end."""
    async with stream:
        async for item in translator.translate(stream, model):
            yield item.to_ndjson()


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    summary="Chat completion",
    description="Ollama-compatible chat endpoint backed by the upstream API.",
    responses={
        200: {"content": {"application/x-ndjson": {}}},
        400: {"model": ErrorResponse, "description": "Malformed request"},
        404: {"model": ErrorResponse, "description": "Model not resolved"},
        500: {"model": ErrorResponse, "description": "Upstream unavailable"},
    },
)
async def chat(request: Request, chat_request: ChatRequest) -> Response:
    """Forward a chat request upstream and translate the response.

    Raises:
        ModelNotResolvedError: Unknown alias under the reject policy.
        UpstreamUnavailableError: Upstream listing or completion failed.
    """
    context = get_relay_context(request)
    model = await context.resolver.resolve(chat_request.model)
    messages = chat_request.upstream_messages()

    if not chat_request.wants_stream:
        result = await context.provider.chat_completion(messages, model)
        response = context.translator.aggregate(result, model)
        logger.info("Chat completed", alias=chat_request.model, model=model, stream=False)
        return JSONResponse(content=response.to_wire())

    stream = await context.provider.open_chat_stream(messages, model)
    logger.info(
        "Chat stream opened",
        alias=chat_request.model,
        model=model,
        messages=len(messages),
    )
    return NDJSONStreamingResponse(
        _ndjson_lines(context.translator, stream, model),
        write_timeout=context.settings.write_timeout,
        on_close=stream.aclose,
    )
