"""Unit tests for model allow-list loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from ollama_relay.core.exceptions import ConfigurationError
from ollama_relay.services.model_filter import load_model_filter, parse_model_filter


class TestParseModelFilter:
    """Test parse_model_filter()."""

    def test_one_alias_per_line(self) -> None:
        assert parse_model_filter("gpt-4o\nclaude-3.5-sonnet\n") == {"gpt-4o", "claude-3.5-sonnet"}

    def test_lines_trimmed_and_blanks_skipped(self) -> None:
        text = "  gpt-4o  \n\n\t\n llama-3-70b\r\n"

        assert parse_model_filter(text) == {"gpt-4o", "llama-3-70b"}

    def test_empty_text(self) -> None:
        assert parse_model_filter("") == frozenset()


class TestLoadModelFilter:
    """Test load_model_filter()."""

    def test_loads_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "models-filter"
        path.write_text("gpt-4o\nclaude-3.5-sonnet\n", encoding="utf-8")

        assert load_model_filter(path) == {"gpt-4o", "claude-3.5-sonnet"}

    def test_missing_file_disables_filtering(self, tmp_path: Path) -> None:
        """No file means an empty allow-list (everything visible)."""
        assert load_model_filter(tmp_path / "absent") == frozenset()

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        path = tmp_path / "models-filter"
        path.write_text("gpt-4o", encoding="utf-8")

        assert load_model_filter(str(path)) == {"gpt-4o"}

    def test_unreadable_path_raises_configuration_error(self, tmp_path: Path) -> None:
        """A directory in place of the file is a startup error."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_model_filter(tmp_path)

        assert exc_info.value.setting == "models_filter_path"

    def test_undecodable_file_raises_configuration_error(self, tmp_path: Path) -> None:
        path = tmp_path / "models-filter"
        path.write_bytes(b"\xff\xfe\xfa")

        with pytest.raises(ConfigurationError):
            load_model_filter(path)
