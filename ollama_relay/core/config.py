"""Core configuration module for ollama-relay.

Loads settings from RELAY_* prefixed environment variables using Pydantic Settings.
The upstream credential is read from OPENAI_API_KEY (or RELAY_API_KEY).

Patterns applied:
- pydantic-settings BaseSettings (Pydantic v2 split)
- env_prefix = "RELAY_" for namespace isolation
- @field_validator + @classmethod (Pydantic v2 pattern)
- @lru_cache for singleton pattern
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from ollama_relay.core.constants import (
    DEFAULT_HOST,
    DEFAULT_MODELS_FILTER_PATH,
    DEFAULT_PORT,
    DEFAULT_SERVICE_NAME,
    DEFAULT_UPSTREAM_BASE_URL,
)


class Settings(BaseSettings):
    """Application settings loaded from RELAY_* environment variables.

    Example: RELAY_PORT=11435, RELAY_LOG_LEVEL=DEBUG

    Attributes:
        service_name: Service identifier for logging.
        host: Bind address. Default: 0.0.0.0.
        port: HTTP port (1-65535). Default: 11434.
        environment: Deployment environment. Default: development.
        log_level: Logging verbosity. Default: INFO.
        api_key: Upstream API credential (OPENAI_API_KEY or RELAY_API_KEY).
        upstream_base_url: Root URL of the OpenAI-compatible upstream.
        models_filter_path: Allow-list file, one alias per line.
        unresolved_model_policy: "passthrough" or "reject" for unknown aliases.
        upstream_connect_timeout: Seconds to establish an upstream connection.
        upstream_idle_timeout: Max seconds between upstream bytes.
        write_timeout: Max seconds for one outbound chunk write (0 disables).
        tracing_enabled: Enable OpenTelemetry spans.
        otlp_endpoint: Optional OTLP exporter endpoint.
    """

    # =========================================================================
    # Core Settings
    # =========================================================================
    service_name: str = Field(
        default=DEFAULT_SERVICE_NAME,
        description="Service name for identification",
    )
    host: str = Field(
        default=DEFAULT_HOST,
        description="HTTP server bind address",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        description="HTTP server port",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Upstream Settings
    # =========================================================================
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_API_KEY", "OPENAI_API_KEY"),
        description="Credential for the upstream completions API",
    )
    upstream_base_url: str = Field(
        default=DEFAULT_UPSTREAM_BASE_URL,
        description="Base URL of the OpenAI-compatible upstream API",
    )
    upstream_connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed to connect to the upstream",
    )
    upstream_idle_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Max seconds to wait for the next upstream bytes",
    )
    write_timeout: float = Field(
        default=30.0,
        ge=0,
        description="Max seconds for a single outbound chunk write (0 disables)",
    )

    # =========================================================================
    # Model Resolution
    # =========================================================================
    models_filter_path: str = Field(
        default=DEFAULT_MODELS_FILTER_PATH,
        description="Path to the model allow-list file",
    )
    unresolved_model_policy: Literal["passthrough", "reject"] = Field(
        default="passthrough",
        description="Pass unknown aliases through or reject them with 404",
    )

    # =========================================================================
    # Observability
    # =========================================================================
    tracing_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry request and upstream spans",
    )
    otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP gRPC exporter endpoint (console exporter if unset)",
    )

    model_config = {
        "env_prefix": "RELAY_",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level to uppercase.

        Raises:
            ValueError: If log level is not valid.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            msg = f"log_level must be one of {valid_levels}, got '{v}'"
            raise ValueError(msg)
        return normalized

    @field_validator("upstream_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the upstream root so paths can be appended with '/'."""
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get singleton Settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()
