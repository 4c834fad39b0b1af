"""Model listing and detail routes.

- GET /api/tags: upstream catalog reshaped into Ollama records (filtered)
- POST /api/show: stub detail object for a model
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from ollama_relay.api.dependencies import get_relay_context
from ollama_relay.core.exceptions import MalformedRequestError
from ollama_relay.models.requests import ShowRequest
from ollama_relay.models.responses import ErrorResponse, ShowResponse, TagsResponse


router = APIRouter(tags=["models"])


@router.get(
    "/api/tags",
    response_model=TagsResponse,
    response_model_exclude_none=True,
    summary="List models",
    responses={500: {"model": ErrorResponse, "description": "Upstream unavailable"}},
)
async def list_tags(request: Request) -> TagsResponse:
    """List upstream models in Ollama's /api/tags shape.

    Also refreshes the alias table used by /api/chat.
    """
    context = get_relay_context(request)
    records = await context.catalog.list_models()
    return TagsResponse(models=records)


@router.post(
    "/api/show",
    response_model=ShowResponse,
    response_model_by_alias=True,
    summary="Show model details",
    responses={400: {"model": ErrorResponse, "description": "Missing model name"}},
)
async def show_model(request: Request, show_request: ShowRequest) -> ShowResponse:
    """Return the detail stub for a model.

    Raises:
        MalformedRequestError: If no model name was given.
    """
    name = show_request.model_name
    if not name:
        raise MalformedRequestError("Model name is required", field="name")

    context = get_relay_context(request)
    return context.catalog.show_model(name)
