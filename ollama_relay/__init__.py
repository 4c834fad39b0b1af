"""ollama-relay: Ollama-compatible API in front of a hosted completions provider.

Serves /api/tags, /api/show and /api/chat in Ollama's wire format and
forwards chat requests to an OpenAI-compatible upstream (OpenRouter by
default), translating streamed deltas into NDJSON chunks.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
