"""Base classes for upstream providers.

Defines the UpstreamProvider ABC that every remote completions backend
implements, plus the transient value types that cross the boundary.

Patterns applied:
- ABC with @abstractmethod decorator
- AsyncIterator for streaming
- Dataclasses for transient values
- PEP 604 union syntax (X | None)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from types import TracebackType


@dataclass(frozen=True)
class ChatDelta:
    """One incremental unit of a streamed completion.

    Attributes:
        content: Text fragment, possibly empty.
        role: Speaker role if the upstream reported one.
        finish_reason: Set on the delta that ends generation.
    """

    content: str = ""
    role: str | None = None
    finish_reason: str | None = None


@dataclass(frozen=True)
class ChatCompletionResult:
    """A complete, non-streamed completion.

    Attributes:
        content: Full assistant message text.
        role: Speaker role (assistant).
        finish_reason: Why generation stopped, if reported.
        prompt_tokens: Prompt token count, if reported.
        completion_tokens: Completion token count, if reported.
    """

    content: str
    role: str = "assistant"
    finish_reason: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class ChatStream(ABC):
    """An opened upstream completion stream.

    Iterate to receive ChatDelta values. The stream owns network resources
    and must be closed; use it as an async context manager.

    Iteration raises MidStreamFailureError if the upstream breaks after the
    stream was opened.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[ChatDelta]:
        ...

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying connection. Safe to call twice."""

    async def __aenter__(self) -> ChatStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class UpstreamProvider(ABC):
    """Abstract base class for the remote completions API.

    This is the "port" of a ports-and-adapters split; the
    OpenAI-compatible HTTP client is the adapter.

    Example:
        class MyProvider(UpstreamProvider):
            async def list_models(self):
                return ["vendor/model"]
            ...
    """

    @abstractmethod
    async def list_models(self) -> list[str]:
        """Fetch the upstream catalog.

        Returns:
            Fully-qualified model ids in upstream listing order.

        Raises:
            UpstreamUnavailableError: If the listing cannot be fetched.
        """
        ...

    @abstractmethod
    async def chat_completion(
        self, messages: Sequence[dict[str, str]], model: str
    ) -> ChatCompletionResult:
        """Run a non-streaming completion.

        Raises:
            UpstreamUnavailableError: If the upstream rejects or cannot be reached.
        """
        ...

    @abstractmethod
    async def open_chat_stream(
        self, messages: Sequence[dict[str, str]], model: str
    ) -> ChatStream:
        """Open a streaming completion.

        The returned stream has already received a successful status from
        the upstream, so errors after this point are mid-stream failures.

        Raises:
            UpstreamUnavailableError: If the stream cannot be established.
        """
        ...

    async def aclose(self) -> None:  # noqa: B027
        """Release provider resources. Default implementation does nothing."""
