"""Shared helpers for route handlers."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ollama_relay.services.context import RelayContext


def get_relay_context(request: Request) -> RelayContext:
    """Get the service container from app state or raise 503.

    Raises:
        HTTPException: 503 if the application has not finished starting.
    """
    context: RelayContext | None = getattr(request.app.state, "relay", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Relay services not initialized",
        )
    return context
