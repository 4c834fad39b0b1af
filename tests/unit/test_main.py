"""Tests for the application factory and command-line entry point.

Tests verify:
- create_app() wires routes, handlers and services
- The lifespan builds services on startup and releases them on shutdown
- CLI credential precedence and startup failure exit status
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ollama_relay import main
from ollama_relay.core.config import Settings
from ollama_relay.core.exceptions import ConfigurationError
from ollama_relay.main import build_provider, create_app, parse_args, resolve_settings, run
from ollama_relay.providers.openai_compat import OpenAICompatibleProvider
from ollama_relay.services.context import RelayContext
from tests.unit.providers.mock_provider import MockProvider


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(api_key="sk-test", models_filter_path=str(tmp_path / "missing"))


class TestAppInstance:
    """Test FastAPI app instance creation."""

    def test_module_app_is_fastapi_instance(self) -> None:
        assert isinstance(main.app, FastAPI)
        assert main.app.title == "ollama-relay"

    def test_routes_registered(self, settings: Settings) -> None:
        app = create_app(settings, provider=MockProvider())
        paths = {getattr(route, "path", None) for route in app.routes}

        assert {"/", "/api/tags", "/api/show", "/api/chat"} <= paths

    def test_docs_disabled_in_production(self, tmp_path: Path) -> None:
        settings = Settings(
            api_key="sk-test",
            environment="production",
            models_filter_path=str(tmp_path / "missing"),
        )

        assert create_app(settings, provider=MockProvider()).docs_url is None


class TestAppLifespan:
    """Test FastAPI lifespan context manager."""

    def test_services_built_on_startup(self, settings: Settings) -> None:
        provider = MockProvider()
        app = create_app(settings, provider=provider, model_filter=frozenset({"gpt-4o"}))

        with TestClient(app):
            context = app.state.relay
            assert isinstance(context, RelayContext)
            assert context.provider is provider
            assert context.catalog.model_filter == {"gpt-4o"}
            assert context.resolver.unresolved_policy == "passthrough"

    def test_provider_closed_on_shutdown(self, settings: Settings) -> None:
        provider = MockProvider()
        app = create_app(settings, provider=provider)

        with TestClient(app):
            assert not provider.closed

        assert provider.closed
        assert app.state.relay is None

    def test_filter_loaded_from_settings_path(self, tmp_path: Path) -> None:
        filter_path = tmp_path / "models-filter"
        filter_path.write_text("gpt-4o\nclaude-3.5-sonnet\n", encoding="utf-8")
        settings = Settings(api_key="sk-test", models_filter_path=str(filter_path))
        app = create_app(settings, provider=MockProvider())

        with TestClient(app):
            assert app.state.relay.catalog.model_filter == {"gpt-4o", "claude-3.5-sonnet"}

    def test_startup_fails_without_credential(self, tmp_path: Path) -> None:
        settings = Settings(api_key=None, models_filter_path=str(tmp_path / "missing"))
        app = create_app(settings)

        with pytest.raises(ConfigurationError):
            with TestClient(app):
                pass


class TestBuildProvider:
    """Test build_provider()."""

    def test_requires_api_key(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            build_provider(Settings(api_key=None))

        assert exc_info.value.setting == "api_key"
        assert "OPENAI_API_KEY" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_builds_openai_compatible_provider(self) -> None:
        provider = build_provider(
            Settings(api_key="sk-test", upstream_base_url="https://example.test/v1/")
        )

        assert isinstance(provider, OpenAICompatibleProvider)
        assert provider.base_url == "https://example.test/v1"
        await provider.aclose()


class TestCommandLine:
    """Test argument parsing and settings precedence."""

    def test_parse_args_defaults(self) -> None:
        args = parse_args([])

        assert args.api_key is None
        assert args.host is None
        assert args.port is None

    def test_parse_args_values(self) -> None:
        args = parse_args(["sk-arg", "--host", "127.0.0.1", "--port", "8080"])

        assert args.api_key == "sk-arg"
        assert args.host == "127.0.0.1"
        assert args.port == 8080

    def test_argument_fills_missing_credential(self) -> None:
        resolved = resolve_settings(parse_args(["sk-arg"]), Settings(api_key=None))

        assert resolved.api_key == "sk-arg"

    def test_environment_credential_wins(self) -> None:
        resolved = resolve_settings(parse_args(["sk-arg"]), Settings(api_key="sk-env"))

        assert resolved.api_key == "sk-env"

    def test_host_and_port_override(self) -> None:
        resolved = resolve_settings(
            parse_args(["--host", "127.0.0.1", "--port", "11435"]),
            Settings(api_key="sk-env"),
        )

        assert resolved.host == "127.0.0.1"
        assert resolved.port == 11435

    def test_no_arguments_returns_same_settings(self) -> None:
        settings = Settings(api_key="sk-env")

        assert resolve_settings(parse_args([]), settings) is settings


class TestRun:
    """Test run() startup behavior."""

    def test_exits_1_without_credential(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        settings = Settings(api_key=None, models_filter_path=str(tmp_path / "missing"))
        monkeypatch.setattr(main, "get_settings", lambda: settings)
        serve = MagicMock()
        monkeypatch.setattr(main.uvicorn, "run", serve)

        with pytest.raises(SystemExit) as exc_info:
            run([])

        assert exc_info.value.code == 1
        serve.assert_not_called()

    def test_exits_1_on_unreadable_filter(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        settings = Settings(api_key="sk-test", models_filter_path=str(tmp_path))
        monkeypatch.setattr(main, "get_settings", lambda: settings)
        monkeypatch.setattr(main.uvicorn, "run", MagicMock())

        with pytest.raises(SystemExit) as exc_info:
            run([])

        assert exc_info.value.code == 1

    def test_serves_with_argument_credential(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        settings = Settings(api_key=None, models_filter_path=str(tmp_path / "missing"))
        monkeypatch.setattr(main, "get_settings", lambda: settings)
        serve = MagicMock()
        monkeypatch.setattr(main.uvicorn, "run", serve)

        run(["sk-arg", "--port", "11500"])

        serve.assert_called_once()
        application = serve.call_args.args[0]
        assert isinstance(application, FastAPI)
        assert serve.call_args.kwargs["port"] == 11500
        assert serve.call_args.kwargs["host"] == "0.0.0.0"
