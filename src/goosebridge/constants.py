"""Shared constants for the goose bridge."""

from __future__ import annotations

#: Default name of the goose binary (resolved on PATH).
DEFAULT_BIN_PATH = "goose"

#: Default wall-clock budget for a single call, in milliseconds.
DEFAULT_TIMEOUT_MS = 600_000

#: Model id meaning "use goose's own configured provider and model".
LOCAL_MODEL_ID = "goose"

#: Base flags that put ``goose run`` into line-delimited JSON output mode.
BASE_RUN_ARGS: tuple[str, ...] = ("run", "--output-format", "stream-json")

#: Env var that keeps goose from prompting for keyring / interactive setup.
ENV_DISABLE_KEYRING = "GOOSE_DISABLE_KEYRING"

#: Env vars selecting the upstream provider and model.
ENV_PROVIDER = "GOOSE_PROVIDER"
ENV_MODEL = "GOOSE_MODEL"

#: Env var capping the number of agent turns.
ENV_MAX_TURNS = "GOOSE_MAX_TURNS"

#: Env var pointing at a goosebridge config file outside the working directory.
ENV_CONFIG_PATH = "GOOSEBRIDGE_CONFIG"

#: Upstream providers goose can be pointed at.
PROVIDERS: tuple[str, ...] = (
    "anthropic",
    "openai",
    "google",
    "xai",
    "groq",
    "openrouter",
    "databricks",
    "ollama",
)

#: Provider -> API key env var.  ``None`` means no key is required.
API_KEY_ENV_VARS: dict[str, str | None] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "xai": "XAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "databricks": "DATABRICKS_TOKEN",
    "ollama": None,
}

#: Shortcut name -> ``provider/model`` id.
GOOSE_MODELS: dict[str, str] = {
    "claude-sonnet-4-5": "anthropic/claude-sonnet-4-5",
    "claude-opus-4-1": "anthropic/claude-opus-4-1",
    "gpt-4o": "openai/gpt-4o",
    "gpt-4.1": "openai/gpt-4.1",
    "gemini-2.5-pro": "google/gemini-2.5-pro",
    "gemini-2.5-flash": "google/gemini-2.5-flash",
    "grok-3": "xai/grok-3",
    "llama3.2": "ollama/llama3.2",
}

#: Canonical finish reason reported for every completed stream.
FINISH_REASON_STOP = "stop"

#: Tool name reported when a tool result cannot be matched to its call.
UNKNOWN_TOOL_NAME = "unknown"
