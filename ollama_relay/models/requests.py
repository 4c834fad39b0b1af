"""Inbound request models for the Ollama-shaped API.

Field names follow the Ollama REST API so existing clients work unchanged.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A single conversation turn.

    Attributes:
        role: Speaker role (system, user, assistant, tool).
        content: Message text.
    """

    role: str
    content: str = ""


class ChatRequest(BaseModel):
    """Request body for POST /api/chat.

    Attributes:
        model: Alias or fully-qualified upstream model id.
        messages: Conversation so far.
        stream: Stream NDJSON chunks. Ollama treats an omitted value as true.
    """

    model: str = Field(min_length=1)
    messages: list[ChatMessage]
    stream: bool | None = None

    @property
    def wants_stream(self) -> bool:
        """Whether the caller expects a streamed response."""
        return True if self.stream is None else self.stream

    def upstream_messages(self) -> list[dict[str, str]]:
        """Messages in the shape the upstream chat API expects."""
        return [message.model_dump() for message in self.messages]


class ShowRequest(BaseModel):
    """Request body for POST /api/show.

    Older clients send "name", newer ones send "model"; either is accepted.
    """

    name: str | None = None
    model: str | None = None

    @property
    def model_name(self) -> str:
        """The requested model name, empty when neither field is set."""
        return self.name or self.model or ""
