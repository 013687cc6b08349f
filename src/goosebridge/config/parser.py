"""Locate and load goosebridge.yaml.

Lookup order: an explicit path, then ``$GOOSEBRIDGE_CONFIG``, then
``goosebridge.yaml`` / ``goosebridge.yml`` in the working directory.
A ``.env`` beside the chosen file (or in the working directory when no
file is used) is loaded without overriding variables already set.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from goosebridge.config.models import BridgeConfig
from goosebridge.constants import ENV_CONFIG_PATH

CONFIG_NAMES: tuple[str, ...] = ("goosebridge.yaml", "goosebridge.yml")
DEFAULT_CONFIG_NAME = CONFIG_NAMES[0]


class ConfigError(Exception):
    """User-facing configuration error."""


def find_config(directory: Path | None = None) -> Path | None:
    """Return the config file to use when none is given explicitly.

    Raises:
        ConfigError: ``$GOOSEBRIDGE_CONFIG`` names a file that does not exist.
    """
    from_env = os.environ.get(ENV_CONFIG_PATH)
    if from_env:
        candidate = Path(from_env).expanduser()
        if not candidate.is_file():
            msg = f"Config file not found: {candidate} (from ${ENV_CONFIG_PATH})"
            raise ConfigError(msg)
        return candidate

    directory = directory or Path.cwd()
    for name in CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None, *, required: bool = False) -> BridgeConfig:
    """Load and validate the bridge configuration.

    With no *path* the file is looked up via :func:`find_config`; if none
    exists the defaults are returned, or :class:`ConfigError` is raised
    when *required* is set.
    """
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config()
        if config_path is None:
            if required:
                raise ConfigError(
                    f"No {DEFAULT_CONFIG_NAME} found in {Path.cwd()}. "
                    "Run `goosebridge init` to create one."
                )
            _load_dotenv_beside(Path.cwd())
            return BridgeConfig()

    data = parse_config_text(_read_text(config_path), config_path.name)
    _load_dotenv_beside(config_path.parent)
    try:
        return BridgeConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(format_validation_error(exc)) from exc


def parse_config_text(text: str, source: str = DEFAULT_CONFIG_NAME) -> dict[str, Any]:
    """Parse YAML *text* into a mapping; an empty document is ``{}``."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" (line {mark.line + 1}, column {mark.column + 1})" if mark else ""
        raise ConfigError(f"Invalid YAML in {source}{where}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a YAML mapping in {source}, got {type(data).__name__}"
        )
    return data


def format_validation_error(exc: ValidationError) -> str:
    """Render pydantic errors as one ``settings.timeout_ms: ...`` line each."""
    lines = ["Config validation failed:"]
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "<root>"
        if err["type"] == "missing":
            detail = "This field is required"
        elif err["type"] == "extra_forbidden":
            detail = "Unknown setting"
        else:
            detail = err["msg"]
        lines.append(f"  {field}: {detail}")
    return "\n".join(lines)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file: {exc}") from exc


def _load_dotenv_beside(directory: Path) -> None:
    env_file = directory / ".env"
    if env_file.is_file():
        load_dotenv(env_file, override=False)
