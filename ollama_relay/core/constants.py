"""Constants for ollama-relay.

Service defaults plus the fixed stub values reported for every model.
The upstream catalog carries no size, digest or quantization data; clients
only check that these fields are present, so constant values are served.
"""

# =============================================================================
# Service Defaults
# =============================================================================

DEFAULT_SERVICE_NAME = "ollama-relay"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 11434  # Ollama's default port
DEFAULT_UPSTREAM_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODELS_FILTER_PATH = "models-filter"

LIVENESS_MESSAGE = "Ollama is running"


# =============================================================================
# Wire Format
# =============================================================================

NDJSON_CONTENT_TYPE = "application/x-ndjson"
ASSISTANT_ROLE = "assistant"
DEFAULT_FINISH_REASON = "stop"
MODEL_NAME_SEPARATOR = "/"


# =============================================================================
# Model Listing Stubs (/api/tags)
# =============================================================================

STUB_MODEL_SIZE = 270898672
STUB_MODEL_DIGEST = "9077fe9d2ae1a4a41a868836b56b8163731a8fe16621397028c2c76f838c6907"
STUB_MODEL_FORMAT = "gguf"
STUB_MODEL_FAMILY = "claude"
STUB_PARAMETER_SIZE = "175B"
STUB_QUANTIZATION_LEVEL = "Q4_K_M"


# =============================================================================
# Model Detail Stubs (/api/show)
# =============================================================================

STUB_LICENSE = "STUB License"
STUB_SYSTEM = "STUB SYSTEM"
STUB_SHOW_PARAMETER_SIZE = "200B"
STUB_ARCHITECTURE = "STUB"
STUB_CONTEXT_LENGTH = 200000
STUB_PARAMETER_COUNT = 200_000_000_000
