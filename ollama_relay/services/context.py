"""Per-application service container.

Built once at startup and stored on app.state; route handlers read their
collaborators from it instead of from module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ollama_relay.core.config import Settings
from ollama_relay.providers.base import UpstreamProvider
from ollama_relay.services.model_catalog import ModelCatalog
from ollama_relay.services.model_filter import load_model_filter
from ollama_relay.services.model_resolver import ModelResolver
from ollama_relay.services.stream_translator import StreamTranslator


@dataclass
class RelayContext:
    """Everything a request handler needs.

    Attributes:
        settings: Active configuration.
        provider: Upstream completions API client.
        resolver: Alias resolver shared by all requests.
        catalog: Model listing reshaper.
        translator: Streaming response translator.
    """

    settings: Settings
    provider: UpstreamProvider
    resolver: ModelResolver
    catalog: ModelCatalog
    translator: StreamTranslator = field(default_factory=StreamTranslator)

    @classmethod
    def build(
        cls,
        settings: Settings,
        provider: UpstreamProvider,
        model_filter: frozenset[str] | None = None,
    ) -> RelayContext:
        """Wire the services together.

        Args:
            settings: Active configuration.
            provider: Upstream client.
            model_filter: Allow-list; loaded from settings.models_filter_path
                when not given.

        Raises:
            ConfigurationError: If the filter file exists but is unreadable.
        """
        if model_filter is None:
            model_filter = load_model_filter(settings.models_filter_path)

        resolver = ModelResolver(
            provider,
            unresolved_policy=settings.unresolved_model_policy,
        )
        return cls(
            settings=settings,
            provider=provider,
            resolver=resolver,
            catalog=ModelCatalog(resolver, model_filter=model_filter),
        )
