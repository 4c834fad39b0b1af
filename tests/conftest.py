"""pytest configuration and fixtures for ollama-relay tests.

Fixtures build the real application around an in-memory MockProvider, so
route tests exercise resolver, catalog and translator end to end.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import TYPE_CHECKING, Any

import pytest
from fastapi.testclient import TestClient

from ollama_relay.core.config import Settings
from tests.unit.providers.mock_provider import MockProvider


if TYPE_CHECKING:
    from fastapi import FastAPI

# =============================================================================
# Constants
# =============================================================================

TEST_API_KEY = "sk-test-key"
MODEL_GPT4O = "openai/gpt-4o"
MODEL_SONNET = "anthropic/claude-3.5-sonnet"


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (real upstream)")


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Any) -> Settings:
    """Settings isolated from the environment and the working directory."""
    return Settings(
        api_key=TEST_API_KEY,
        log_level="DEBUG",
        models_filter_path=str(tmp_path / "models-filter"),
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    """In-memory upstream with two models and a three-delta stream."""
    return MockProvider(catalog=[MODEL_GPT4O, MODEL_SONNET])


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def app(test_settings: Settings, mock_provider: MockProvider) -> FastAPI:
    """Application wired to the mock provider, no model filter."""
    from ollama_relay.main import create_app

    return create_app(test_settings, provider=mock_provider, model_filter=frozenset())


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """TestClient with lifespan running (services on app.state)."""
    with TestClient(app) as test_client:
        yield test_client
