"""Outbound response models for the Ollama-shaped API.

All models serialize through pydantic with None-valued fields omitted, so
optional fields disappear from the wire instead of showing up as null.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from ollama_relay.core.constants import (
    ASSISTANT_ROLE,
    STUB_ARCHITECTURE,
    STUB_CONTEXT_LENGTH,
    STUB_LICENSE,
    STUB_MODEL_DIGEST,
    STUB_MODEL_FAMILY,
    STUB_MODEL_FORMAT,
    STUB_MODEL_SIZE,
    STUB_PARAMETER_COUNT,
    STUB_PARAMETER_SIZE,
    STUB_QUANTIZATION_LEVEL,
    STUB_SHOW_PARAMETER_SIZE,
    STUB_SYSTEM,
)


def utc_timestamp() -> str:
    """Current time as an RFC 3339 string with second precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="seconds")
        .replace("+00:00", "Z")
    )


class WireModel(BaseModel):
    """Base for every record written to clients."""

    def to_wire(self) -> dict[str, object]:
        """JSON-compatible dict with None fields omitted."""
        return self.model_dump(mode="json", exclude_none=True, by_alias=True)

    def to_ndjson(self) -> str:
        """Serialize as one NDJSON line (object followed by a newline)."""
        return self.model_dump_json(exclude_none=True, by_alias=True) + "\n"


# =============================================================================
# /api/tags
# =============================================================================


class ModelDetails(WireModel):
    """Cosmetic model details. Clients check presence, not values."""

    parent_model: str = ""
    format: str = STUB_MODEL_FORMAT
    family: str = STUB_MODEL_FAMILY
    families: list[str] = Field(default_factory=lambda: [STUB_MODEL_FAMILY])
    parameter_size: str = STUB_PARAMETER_SIZE
    quantization_level: str = STUB_QUANTIZATION_LEVEL


class ModelRecord(WireModel):
    """One entry of the /api/tags listing.

    Attributes:
        name: Display name (last "/" segment of the upstream id).
        model: Same as name; the value clients send back to /api/chat.
        modified_at: Listing fetch time.
        size: Constant stub.
        digest: Constant stub.
        details: Constant stub details.
        fully_qualified_id: Upstream id; kept for callers, never serialized.
    """

    name: str
    model: str | None = None
    modified_at: str | None = None
    size: int | None = STUB_MODEL_SIZE
    digest: str | None = STUB_MODEL_DIGEST
    details: ModelDetails = Field(default_factory=ModelDetails)
    fully_qualified_id: str = Field(default="", exclude=True)


class TagsResponse(WireModel):
    """Response for GET /api/tags."""

    models: list[ModelRecord] = Field(default_factory=list)


# =============================================================================
# /api/show
# =============================================================================


class ShowDetails(WireModel):
    format: str = STUB_MODEL_FORMAT
    parameter_size: str = STUB_SHOW_PARAMETER_SIZE
    quantization_level: str = STUB_QUANTIZATION_LEVEL


class ShowModelInfo(WireModel):
    architecture: str = STUB_ARCHITECTURE
    context_length: int = STUB_CONTEXT_LENGTH
    parameter_count: int = STUB_PARAMETER_COUNT


class ShowResponse(WireModel):
    """Stub response for POST /api/show."""

    license: str = STUB_LICENSE
    system: str = STUB_SYSTEM
    modified_at: str = Field(default_factory=utc_timestamp, serialization_alias="modifiedAt")
    details: ShowDetails = Field(default_factory=ShowDetails)
    model_info: ShowModelInfo = Field(default_factory=ShowModelInfo)


# =============================================================================
# /api/chat
# =============================================================================


class ChunkMessage(WireModel):
    role: str = ASSISTANT_ROLE
    content: str = ""


class ChatChunk(WireModel):
    """Non-terminal streaming chunk, one per upstream delta."""

    model: str
    created_at: str = Field(default_factory=utc_timestamp)
    message: ChunkMessage
    done: bool = False


class ChatDone(WireModel):
    """Terminal streaming chunk.

    Timing and count fields are zero: the upstream does not report them
    per stream, and clients only require the keys to exist.
    """

    model: str
    created_at: str = Field(default_factory=utc_timestamp)
    done: bool = True
    finish_reason: str
    done_reason: str | None = None
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = 0
    eval_count: int = 0
    eval_duration: int = 0


class ChatResponse(ChatDone):
    """Complete, non-streaming /api/chat response."""

    message: ChunkMessage


class StreamError(WireModel):
    """In-band error line written when the upstream fails mid-stream."""

    error: str


# =============================================================================
# Errors
# =============================================================================


class ErrorResponse(WireModel):
    """Error body for every failing route.

    Attributes:
        error: Human-readable message (the key Ollama clients read).
        code: Machine-readable error code.
    """

    error: str
    code: str | None = None
