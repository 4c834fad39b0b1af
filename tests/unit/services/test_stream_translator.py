"""Unit tests for StreamTranslator.

Drives translate() with in-memory delta streams and checks the chunk
sequence clients receive.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest

from ollama_relay.models.responses import ChatChunk, ChatDone, ChatResponse, StreamError
from ollama_relay.providers.base import ChatCompletionResult, ChatDelta
from ollama_relay.providers.openai_compat import OpenAICompatibleProvider
from ollama_relay.services.stream_translator import StreamTranslator
from tests.unit.providers.mock_provider import MockChatStream


# =============================================================================
# Constants (S1192: Avoid duplicated string literals)
# =============================================================================

MODEL = "openai/gpt-4o"


async def collect(translator: StreamTranslator, deltas: list[ChatDelta], fail_after: int | None = None) -> list:
    stream = MockChatStream(deltas, fail_after=fail_after)
    return [item async for item in translator.translate(stream, MODEL)]


@pytest.fixture
def translator() -> StreamTranslator:
    return StreamTranslator()


# =============================================================================
# TestTranslate
# =============================================================================


class TestTranslate:
    """Test the STREAMING -> DONE translation."""

    @pytest.mark.asyncio
    async def test_three_deltas_produce_four_chunks(self, translator: StreamTranslator) -> None:
        """Deltas He, llo and an empty stop delta become four chunks."""
        items = await collect(
            translator,
            [
                ChatDelta(content="He", role="assistant"),
                ChatDelta(content="llo"),
                ChatDelta(content="", finish_reason="stop"),
            ],
        )

        assert len(items) == 4
        assert [type(i) for i in items] == [ChatChunk, ChatChunk, ChatChunk, ChatDone]
        assert [i.message.content for i in items[:3]] == ["He", "llo", ""]
        assert all(i.done is False for i in items[:3])
        assert items[3].done is True
        assert items[3].finish_reason == "stop"

    @pytest.mark.asyncio
    async def test_concatenated_content_matches_upstream(self, translator: StreamTranslator) -> None:
        deltas = [ChatDelta(content=part) for part in ("The ", "quick ", "fox")]

        items = await collect(translator, deltas)

        text = "".join(i.message.content for i in items if isinstance(i, ChatChunk))
        assert text == "The quick fox"

    @pytest.mark.asyncio
    async def test_every_chunk_carries_model_and_assistant_role(
        self, translator: StreamTranslator
    ) -> None:
        items = await collect(translator, [ChatDelta(content="a", role="user")])

        assert items[0].model == MODEL
        assert items[0].message.role == "assistant"
        assert items[1].model == MODEL

    @pytest.mark.asyncio
    async def test_finish_reason_defaults_to_stop(self, translator: StreamTranslator) -> None:
        """No finish reason from upstream still ends with "stop"."""
        items = await collect(translator, [ChatDelta(content="hi")])

        assert items[-1].finish_reason == "stop"
        assert items[-1].done_reason == "stop"

    @pytest.mark.asyncio
    async def test_last_finish_reason_wins(self, translator: StreamTranslator) -> None:
        items = await collect(
            translator,
            [
                ChatDelta(content="a", finish_reason="stop"),
                ChatDelta(content="b", finish_reason="length"),
                ChatDelta(content="c"),
            ],
        )

        assert items[-1].finish_reason == "length"

    @pytest.mark.asyncio
    async def test_empty_stream_yields_only_done(self, translator: StreamTranslator) -> None:
        items = await collect(translator, [])

        assert len(items) == 1
        assert isinstance(items[0], ChatDone)

    @pytest.mark.asyncio
    async def test_exactly_one_done_chunk(self, translator: StreamTranslator) -> None:
        items = await collect(translator, [ChatDelta(content=str(n)) for n in range(20)])

        assert sum(1 for i in items if i.done is True) == 1
        assert items[-1].done is True

    @pytest.mark.asyncio
    async def test_done_chunk_zero_counts(self, translator: StreamTranslator) -> None:
        """Timing and count keys exist with zero values."""
        wire = (await collect(translator, []))[0].to_wire()

        for key in (
            "total_duration",
            "load_duration",
            "prompt_eval_count",
            "eval_count",
            "eval_duration",
        ):
            assert wire[key] == 0

    @pytest.mark.asyncio
    async def test_mid_stream_failure_yields_error_and_stops(
        self, translator: StreamTranslator
    ) -> None:
        """Chunks already sent stand; an error line replaces the done chunk."""
        deltas = [ChatDelta(content="a"), ChatDelta(content="b"), ChatDelta(content="c")]

        items = await collect(translator, deltas, fail_after=2)

        assert [type(i) for i in items] == [ChatChunk, ChatChunk, StreamError]
        assert items[-1].error == "Stream error: connection reset by peer"
        assert not any(isinstance(i, ChatDone) for i in items)

    @pytest.mark.asyncio
    async def test_failure_before_first_delta(self, translator: StreamTranslator) -> None:
        items = await collect(translator, [ChatDelta(content="a")], fail_after=0)

        assert len(items) == 1
        assert isinstance(items[0], StreamError)

    @pytest.mark.asyncio
    async def test_unexpected_upstream_chunk_yields_error_line(
        self, translator: StreamTranslator
    ) -> None:
        """A wrongly shaped SSE chunk from the real provider ends in an error line."""
        body = (
            'data: {"choices": [{"delta": {"content": "He"}}]}\n\n'
            'data: 123\n\n'
            'data: {"choices": {"x": 1}}\n\n'
        ).encode()
        provider = OpenAICompatibleProvider(
            api_key="sk-test",
            base_url="https://upstream.test/api/v1",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body)),
        )

        async with await provider.open_chat_stream([], MODEL) as stream:
            items = [item async for item in translator.translate(stream, MODEL)]
        await provider.aclose()

        assert [type(i) for i in items] == [ChatChunk, StreamError]
        assert items[0].message.content == "He"
        assert items[1].error.startswith("Stream error: unexpected upstream chunk shape")

    @pytest.mark.asyncio
    async def test_chunks_yielded_without_buffering(self, translator: StreamTranslator) -> None:
        """The first chunk is available before the upstream finishes."""
        produced: list[str] = []

        async def deltas() -> AsyncIterator[ChatDelta]:
            for part in ("one", "two"):
                produced.append(part)
                yield ChatDelta(content=part)

        iterator = translator.translate(deltas(), MODEL).__aiter__()
        first = await iterator.__anext__()

        assert first.message.content == "one"
        assert produced == ["one"]
        await iterator.aclose()

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self, translator: StreamTranslator) -> None:
        async def deltas() -> AsyncIterator[ChatDelta]:
            yield ChatDelta(content="a")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            [item async for item in translator.translate(deltas(), MODEL)]


# =============================================================================
# TestWireFormat
# =============================================================================


class TestWireFormat:
    """Test the NDJSON shape of translated items."""

    def test_chunk_line_is_single_json_object(self, translator: StreamTranslator) -> None:
        line = translator.chunk_for(ChatDelta(content="hi\nthere"), MODEL).to_ndjson()

        assert line.endswith("\n")
        assert line.count("\n") == 1

    def test_done_line_omits_message(self, translator: StreamTranslator) -> None:
        wire = translator.done_for(MODEL, "length").to_wire()

        assert "message" not in wire
        assert wire["done"] is True
        assert wire["finish_reason"] == "length"
        assert wire["done_reason"] == "length"

    def test_error_line_shape(self) -> None:
        assert StreamError(error="Stream error: x").to_wire() == {"error": "Stream error: x"}


# =============================================================================
# TestAggregate
# =============================================================================


class TestAggregate:
    """Test non-streaming aggregation."""

    def test_aggregate_builds_single_response(self, translator: StreamTranslator) -> None:
        result = ChatCompletionResult(
            content="Hello",
            finish_reason="length",
            prompt_tokens=7,
            completion_tokens=2,
        )

        response = translator.aggregate(result, MODEL)

        assert isinstance(response, ChatResponse)
        assert response.done is True
        assert response.message.content == "Hello"
        assert response.message.role == "assistant"
        assert response.finish_reason == "length"
        assert response.prompt_eval_count == 7
        assert response.eval_count == 2

    def test_aggregate_defaults(self, translator: StreamTranslator) -> None:
        response = translator.aggregate(ChatCompletionResult(content=""), MODEL)

        assert response.finish_reason == "stop"
        assert response.prompt_eval_count == 0
        assert response.eval_count == 0
