"""Pydantic v2 models for bridge settings and goosebridge.yaml."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from goosebridge.constants import DEFAULT_BIN_PATH, DEFAULT_TIMEOUT_MS, LOCAL_MODEL_ID

_PROVIDER_RE = re.compile(r"^[a-z0-9_-]+$")
_MODEL_ID_RE = re.compile(r"^[a-zA-Z0-9_.:-]+(/[a-zA-Z0-9_.:/-]+)?$")


class GooseSettings(BaseModel):
    """Per-model settings for the goose CLI bridge.

    Provider-level defaults and model-level overrides are both expressed
    with this model and merged with :meth:`merged`.
    """

    model_config = ConfigDict(extra="forbid")

    bin_path: str = Field(
        default=DEFAULT_BIN_PATH,
        description="Path to the goose binary",
    )
    args: list[str] = Field(
        default_factory=list,
        description="Extra CLI arguments appended verbatim, e.g. ['--profile', 'x']",
    )
    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        description="Wall-clock budget for one call in milliseconds",
    )
    session_name: str | None = Field(
        default=None,
        description="Named goose session (adds --name)",
    )
    resume: bool = Field(
        default=False,
        description="Resume the named session (adds --resume)",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for the goose process",
    )
    provider: str | None = Field(
        default=None,
        description="Upstream provider, e.g. 'anthropic' (sets GOOSE_PROVIDER)",
    )
    model: str | None = Field(
        default=None,
        description="Upstream model name (sets GOOSE_MODEL)",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key exported under the provider's env var",
    )
    max_turns: int | None = Field(
        default=None,
        ge=1,
        description="Turn budget for the agent (sets GOOSE_MAX_TURNS)",
    )
    audience: Literal["user", "assistant"] = Field(
        default="user",
        description="Audience used to filter tool result content",
    )
    cwd: str | None = Field(
        default=None,
        description="Working directory for the goose process",
    )

    @model_validator(mode="after")
    def _validate_provider_pair(self) -> GooseSettings:
        if self.provider is not None and not _PROVIDER_RE.match(self.provider):
            msg = f"Invalid provider name '{self.provider}'"
            raise ValueError(msg)
        if (self.provider is None) != (self.model is None):
            msg = "Settings 'provider' and 'model' must be given together"
            raise ValueError(msg)
        return self

    def merged(self, **overrides: object) -> GooseSettings:
        """Return a copy with *overrides* applied and re-validated."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return GooseSettings.model_validate(data)


class BridgeConfig(BaseModel):
    """Top-level goosebridge.yaml configuration."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1", description="Config schema version")
    model: str = Field(
        default=LOCAL_MODEL_ID,
        description="'goose' for goose's own config, or 'provider/model'",
    )
    settings: GooseSettings = Field(
        default_factory=GooseSettings,
        description="Default settings for every call",
    )

    @model_validator(mode="after")
    def _validate_model_id(self) -> BridgeConfig:
        if not _MODEL_ID_RE.match(self.model):
            msg = (
                f"Invalid model id '{self.model}' — "
                "expected 'goose' or 'provider/model-name'"
            )
            raise ValueError(msg)
        return self
