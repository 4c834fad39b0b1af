"""Model alias resolution.

Maps the short model names clients send ("gpt-4o") to the upstream's
fully-qualified ids ("openai/gpt-4o") using a cached copy of the upstream
catalog.

Concurrency model:
- The catalog is held in an immutable AliasTable snapshot.
- A refresh builds a complete new snapshot and publishes it with a single
  attribute assignment; readers never lock and read the attribute once per
  lookup, so they see either the old table or the new one, never a mix.
- Refreshers are serialized by an asyncio.Lock that readers never touch.
  Concurrent first-time resolutions share one fetch.

Known limitation: when several ids share a suffix, the first one in upstream
listing order wins. Upstream reordering can change the result between
refreshes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from ollama_relay.core.exceptions import ModelNotResolvedError
from ollama_relay.core.logging import get_logger
from ollama_relay.providers.base import UpstreamProvider


logger = get_logger(__name__)

UnresolvedPolicy = Literal["passthrough", "reject"]


# =============================================================================
# Alias Table
# =============================================================================


@dataclass(frozen=True)
class AliasTable:
    """Immutable snapshot of the upstream catalog.

    Attributes:
        ids: Fully-qualified model ids in upstream listing order.
    """

    ids: tuple[str, ...] = ()
    _members: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_members", frozenset(self.ids))

    @classmethod
    def build(cls, ids: Iterable[str]) -> AliasTable:
        return cls(ids=tuple(ids))

    @property
    def is_empty(self) -> bool:
        return not self.ids

    def match(self, alias: str) -> str | None:
        """Look up an alias: exact match first, then first suffix match.

        Args:
            alias: Short or fully-qualified model name.

        Returns:
            The matching fully-qualified id, or None.
        """
        if alias in self._members:
            return alias
        for full_id in self.ids:
            if full_id.endswith(alias):
                return full_id
        return None


# =============================================================================
# Resolver
# =============================================================================


class ModelResolver:
    """Resolves model aliases against a cached upstream catalog.

    Example:
        resolver = ModelResolver(provider)
        full_id = await resolver.resolve("gpt-4o")  # "openai/gpt-4o"
    """

    def __init__(
        self,
        provider: UpstreamProvider,
        unresolved_policy: UnresolvedPolicy = "passthrough",
    ) -> None:
        """Initialize the resolver.

        Args:
            provider: Source of the upstream catalog.
            unresolved_policy: "passthrough" returns unknown aliases unchanged,
                "reject" raises ModelNotResolvedError.
        """
        self._provider = provider
        self._unresolved_policy = unresolved_policy
        self._table = AliasTable()
        self._refresh_lock = asyncio.Lock()

    @property
    def table(self) -> AliasTable:
        """The currently published snapshot."""
        return self._table

    @property
    def unresolved_policy(self) -> UnresolvedPolicy:
        return self._unresolved_policy

    def publish(self, ids: Iterable[str]) -> AliasTable:
        """Build a new snapshot from ids and swap it in.

        Returns:
            The newly published table.
        """
        table = AliasTable.build(ids)
        self._table = table
        return table

    async def refresh(self) -> AliasTable:
        """Fetch the upstream catalog and publish it.

        Raises:
            UpstreamUnavailableError: If the listing fails; the previous
                table stays published.
        """
        async with self._refresh_lock:
            return await self._fetch_and_publish()

    async def _fetch_and_publish(self) -> AliasTable:
        ids = await self._provider.list_models()
        table = self.publish(ids)
        logger.debug("Alias table refreshed", models=len(table.ids))
        return table

    async def _ensure_loaded(self) -> AliasTable:
        table = self._table
        if not table.is_empty:
            return table

        async with self._refresh_lock:
            # Another request may have refreshed while we waited
            table = self._table
            if table.is_empty:
                table = await self._fetch_and_publish()
        return table

    async def resolve(self, alias: str) -> str:
        """Map an alias to a fully-qualified upstream model id.

        Args:
            alias: Model name as sent by the client.

        Returns:
            The fully-qualified id, or the alias itself under the
            pass-through policy when nothing matches.

        Raises:
            ModelNotResolvedError: Nothing matched and the policy is "reject".
            UpstreamUnavailableError: The table was empty and the refresh failed.
        """
        table = await self._ensure_loaded()
        resolved = table.match(alias)
        if resolved is not None:
            return resolved

        if self._unresolved_policy == "reject":
            raise ModelNotResolvedError(
                f"model alias '{alias}' not found", model=alias
            )

        logger.debug("Passing unknown model alias through", model=alias)
        return alias
