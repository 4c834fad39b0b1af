"""Model listing reshaper.

Turns the upstream catalog into Ollama /api/tags records and serves the
/api/show stub. Listing models is also what refreshes the alias table: both
come from the same upstream call.
"""

from __future__ import annotations

from collections.abc import Iterable

from ollama_relay.core.constants import MODEL_NAME_SEPARATOR
from ollama_relay.core.logging import get_logger
from ollama_relay.models.responses import (
    ModelRecord,
    ShowResponse,
    utc_timestamp,
)
from ollama_relay.services.model_resolver import ModelResolver


logger = get_logger(__name__)


def display_name(full_id: str) -> str:
    """Short name for a fully-qualified id: its last "/" segment.

    Ids without a separator are returned unchanged.
    """
    return full_id.rsplit(MODEL_NAME_SEPARATOR, 1)[-1]


def build_records(ids: Iterable[str], modified_at: str | None = None) -> list[ModelRecord]:
    """Reshape fully-qualified ids into listing records with stub metadata.

    Args:
        ids: Upstream ids in listing order.
        modified_at: Timestamp stamped on every record (defaults to now).
    """
    stamp = modified_at or utc_timestamp()
    records = []
    for full_id in ids:
        name = display_name(full_id)
        records.append(
            ModelRecord(
                name=name,
                model=name,
                modified_at=stamp,
                fully_qualified_id=full_id,
            )
        )
    return records


def apply_filter(records: list[ModelRecord], allowed: frozenset[str]) -> list[ModelRecord]:
    """Keep records whose display name is allowed. An empty set allows all."""
    if not allowed:
        return records
    return [record for record in records if record.name in allowed]


class ModelCatalog:
    """Serves the model listing and detail routes.

    Attributes:
        model_filter: Allowed display names; empty means no filtering.
    """

    def __init__(
        self,
        resolver: ModelResolver,
        model_filter: frozenset[str] = frozenset(),
    ) -> None:
        self._resolver = resolver
        self.model_filter = model_filter

    async def list_models(self) -> list[ModelRecord]:
        """Fetch, reshape and filter the upstream catalog.

        Refreshes the alias table from the full, unfiltered listing.

        Raises:
            UpstreamUnavailableError: If the upstream listing fails.
        """
        table = await self._resolver.refresh()
        records = build_records(table.ids)
        visible = apply_filter(records, self.model_filter)
        logger.debug(
            "Listed models",
            upstream=len(records),
            visible=len(visible),
            filtered=bool(self.model_filter),
        )
        return visible

    def show_model(self, name: str) -> ShowResponse:
        """Detail stub for a model.

        The upstream exposes no per-model metadata, so the same stub is
        returned for every name.
        """
        logger.debug("Serving model detail stub", model=name)
        return ShowResponse()
