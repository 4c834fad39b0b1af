"""Liveness routes.

Ollama clients probe GET / (and HEAD /) to detect a running server before
calling any /api route.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status
from fastapi.responses import PlainTextResponse

from ollama_relay.core.constants import LIVENESS_MESSAGE


router = APIRouter(tags=["health"])


@router.get(
    "/",
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
)
async def root() -> PlainTextResponse:
    """Return the liveness string Ollama clients look for."""
    return PlainTextResponse(LIVENESS_MESSAGE)


@router.head("/", status_code=status.HTTP_200_OK, include_in_schema=False)
async def root_head() -> Response:
    """HEAD variant of the liveness check, empty body."""
    return Response(status_code=status.HTTP_200_OK)
