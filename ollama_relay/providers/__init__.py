"""Upstream providers for ollama-relay.

Providers:
- base: UpstreamProvider ABC, ChatStream, ChatDelta
- openai_compat: OpenAICompatibleProvider (httpx, OpenRouter by default)
"""

from ollama_relay.providers.base import (
    ChatCompletionResult,
    ChatDelta,
    ChatStream,
    UpstreamProvider,
)
from ollama_relay.providers.openai_compat import OpenAICompatibleProvider, SSEChatStream


__all__: list[str] = [
    "ChatCompletionResult",
    "ChatDelta",
    "ChatStream",
    "OpenAICompatibleProvider",
    "SSEChatStream",
    "UpstreamProvider",
]
