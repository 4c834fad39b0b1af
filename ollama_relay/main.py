"""FastAPI application entrypoint for ollama-relay.

Patterns applied:
- asynccontextmanager lifespan (not deprecated @app.on_event)
- configure_logging(force=True) at startup overrides the import-time defaults
- Services built once per app and stored on app.state (no module globals)
- Docs disabled in production

Run with `ollama-relay [API_KEY]` or `uvicorn ollama_relay.main:app`.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ollama_relay import __version__
from ollama_relay.api.error_handlers import register_exception_handlers
from ollama_relay.api.middleware import RequestContextMiddleware
from ollama_relay.api.routes.chat import router as chat_router
from ollama_relay.api.routes.health import router as health_router
from ollama_relay.api.routes.models import router as models_router
from ollama_relay.core.config import Settings, get_settings
from ollama_relay.core.exceptions import ConfigurationError
from ollama_relay.core.logging import configure_logging, get_logger
from ollama_relay.observability.tracing import (
    TracingMiddleware,
    setup_tracing,
    shutdown_tracing,
)
from ollama_relay.providers.base import UpstreamProvider
from ollama_relay.providers.openai_compat import OpenAICompatibleProvider
from ollama_relay.services.context import RelayContext
from ollama_relay.services.model_filter import load_model_filter


# =============================================================================
# Application Metadata
# =============================================================================
APP_NAME = "ollama-relay"
APP_DESCRIPTION = "Ollama-compatible API in front of a hosted OpenAI-compatible provider"
APP_VERSION = __version__


def build_provider(settings: Settings) -> UpstreamProvider:
    """Create the upstream client from settings.

    Raises:
        ConfigurationError: If no API credential is configured.
    """
    if not settings.api_key:
        raise ConfigurationError(
            "OPENAI_API_KEY environment variable or command-line argument not set",
            setting="api_key",
        )
    return OpenAICompatibleProvider(
        api_key=settings.api_key,
        base_url=settings.upstream_base_url,
        connect_timeout=settings.upstream_connect_timeout,
        idle_timeout=settings.upstream_idle_timeout,
    )


# =============================================================================
# Application Factory
# =============================================================================
def create_app(
    settings: Settings | None = None,
    provider: UpstreamProvider | None = None,
    model_filter: frozenset[str] | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Configuration; defaults to environment-derived settings.
        provider: Upstream client; built from settings at startup if omitted.
        model_filter: Allow-list; loaded from settings.models_filter_path if omitted.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan - startup and shutdown events."""
        configure_logging(level=settings.log_level, service_name=settings.service_name, force=True)
        logger = get_logger(__name__)

        if settings.tracing_enabled:
            setup_tracing(settings.service_name, settings.otlp_endpoint)

        upstream = provider or build_provider(settings)
        app.state.relay = RelayContext.build(settings, upstream, model_filter=model_filter)

        logger.info(
            "Application starting",
            version=APP_VERSION,
            environment=settings.environment,
            host=settings.host,
            port=settings.port,
            upstream=settings.upstream_base_url,
            unresolved_model_policy=settings.unresolved_model_policy,
            model_filter=len(app.state.relay.catalog.model_filter),
        )

        try:
            yield
        finally:
            logger.info("Application shutting down")
            await upstream.aclose()
            app.state.relay = None
            if settings.tracing_enabled:
                shutdown_tracing()

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )

    app.include_router(health_router)
    app.include_router(models_router)
    app.include_router(chat_router)

    register_exception_handlers(app)

    # Last added runs first: tracing wraps the request-context middleware
    app.add_middleware(RequestContextMiddleware)
    if settings.tracing_enabled:
        app.add_middleware(TracingMiddleware)

    return app


# =============================================================================
# Command-line Entry Point
# =============================================================================
def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=APP_DESCRIPTION,
    )
    parser.add_argument(
        "api_key",
        nargs="?",
        default=None,
        help="Upstream API key (used only when OPENAI_API_KEY is not set)",
    )
    parser.add_argument("--host", default=None, help="Bind address (overrides RELAY_HOST)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (overrides RELAY_PORT)")
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace, settings: Settings) -> Settings:
    """Merge command-line arguments into settings.

    The environment credential wins; the positional argument only fills in
    when the environment provides none.
    """
    updates: dict[str, object] = {}
    if not settings.api_key and args.api_key:
        updates["api_key"] = args.api_key
    if args.host:
        updates["host"] = args.host
    if args.port:
        updates["port"] = args.port
    return settings.model_copy(update=updates) if updates else settings


def run(argv: Sequence[str] | None = None) -> None:
    """Start the relay server; exits with status 1 on a configuration error."""
    settings = resolve_settings(parse_args(argv), get_settings())
    configure_logging(level=settings.log_level, service_name=settings.service_name, force=True)
    logger = get_logger(__name__)

    try:
        provider = build_provider(settings)
        model_filter = load_model_filter(settings.models_filter_path)
    except ConfigurationError as e:
        logger.error("Invalid configuration", setting=e.setting, error=e.message)
        sys.exit(1)

    application = create_app(settings, provider=provider, model_filter=model_filter)
    uvicorn.run(application, host=settings.host, port=settings.port, log_config=None)


app = create_app()


if __name__ == "__main__":
    run()
