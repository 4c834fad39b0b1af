"""
Observability package: optional OpenTelemetry tracing for ollama-relay.
"""

from ollama_relay.observability.tracing import (
    TracingMiddleware,
    extract_trace_context,
    get_current_trace_id,
    get_tracer,
    inject_trace_context,
    setup_tracing,
    shutdown_tracing,
)

__all__ = [
    "setup_tracing",
    "shutdown_tracing",
    "TracingMiddleware",
    "get_tracer",
    "get_current_trace_id",
    "inject_trace_context",
    "extract_trace_context",
]
