"""Model allow-list loading.

The filter file holds one model alias per line. Lines are trimmed and blank
lines ignored. A missing file means "no filtering"; any other read failure
is a configuration error and stops startup.
"""

from __future__ import annotations

from pathlib import Path

from ollama_relay.core.exceptions import ConfigurationError
from ollama_relay.core.logging import get_logger


logger = get_logger(__name__)


def parse_model_filter(text: str) -> frozenset[str]:
    """Parse filter file contents into a set of aliases."""
    return frozenset(line.strip() for line in text.splitlines() if line.strip())


def load_model_filter(path: str | Path) -> frozenset[str]:
    """Load the model allow-list from disk.

    Args:
        path: Location of the filter file.

    Returns:
        Allowed display names; empty when the file does not exist.

    Raises:
        ConfigurationError: If the file exists but cannot be read.
    """
    filter_path = Path(path)
    try:
        text = filter_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("Model filter file not found, skipping model filtering", path=str(filter_path))
        return frozenset()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Error loading model filter", path=str(filter_path), error=str(e))
        raise ConfigurationError(
            f"Cannot read model filter file '{filter_path}': {e}",
            setting="models_filter_path",
        ) from e

    allowed = parse_model_filter(text)
    logger.info("Loaded model filter", path=str(filter_path), models=sorted(allowed))
    return allowed
