"""Tests for goosebridge config models and parser."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
import yaml
from pydantic import ValidationError

from goosebridge.config.models import BridgeConfig, GooseSettings
from goosebridge.config.parser import (
    ConfigError,
    find_config,
    format_validation_error,
    load_config,
    parse_config_text,
)
from goosebridge.constants import ENV_CONFIG_PATH

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: Any) -> Path:
    """Write *data* as YAML and return the file path."""
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


# ===================================================================
# Model validation tests
# ===================================================================


class TestGooseSettingsDefaults:
    def test_defaults(self) -> None:
        s = GooseSettings()
        assert s.bin_path == "goose"
        assert s.args == []
        assert s.timeout_ms == 600_000
        assert s.session_name is None
        assert s.resume is False
        assert s.env == {}
        assert s.audience == "user"


class TestGooseSettingsValidation:
    def test_provider_requires_model(self) -> None:
        with pytest.raises(ValidationError, match="together"):
            GooseSettings(provider="openai")

    def test_model_requires_provider(self) -> None:
        with pytest.raises(ValidationError):
            GooseSettings(model="gpt-4o")

    def test_provider_pair_valid(self) -> None:
        s = GooseSettings(provider="openai", model="gpt-4o")
        assert (s.provider, s.model) == ("openai", "gpt-4o")

    @pytest.mark.parametrize("provider", ["Open AI", "open/ai", ""])
    def test_invalid_provider_name(self, provider: str) -> None:
        with pytest.raises(ValidationError):
            GooseSettings(provider=provider, model="m")

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            GooseSettings(timeout_ms=0)

    def test_max_turns_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            GooseSettings(max_turns=0)

    def test_bad_audience(self) -> None:
        with pytest.raises(ValidationError):
            GooseSettings(audience="everyone")

    def test_unknown_field(self) -> None:
        with pytest.raises(ValidationError):
            GooseSettings(temperature=0.1)

    def test_api_key_hidden(self) -> None:
        s = GooseSettings(api_key="sk-secret")
        assert "sk-secret" not in repr(s)
        assert s.api_key is not None
        assert s.api_key.get_secret_value() == "sk-secret"


class TestMerged:
    def test_overrides_applied(self) -> None:
        base = GooseSettings(timeout_ms=1_000, args=["--a"])
        merged = base.merged(timeout_ms=2_000)
        assert merged.timeout_ms == 2_000
        assert merged.args == ["--a"]
        assert base.timeout_ms == 1_000

    def test_none_ignored(self) -> None:
        assert GooseSettings(session_name="s").merged(session_name=None).session_name == "s"

    def test_api_key_survives(self) -> None:
        merged = GooseSettings(api_key="k").merged(max_turns=2)
        assert merged.api_key is not None
        assert merged.api_key.get_secret_value() == "k"

    def test_revalidated(self) -> None:
        with pytest.raises(ValidationError):
            GooseSettings().merged(provider="openai")


class TestBridgeConfig:
    def test_defaults(self) -> None:
        cfg = BridgeConfig()
        assert cfg.version == "1"
        assert cfg.model == "goose"

    @pytest.mark.parametrize(
        "model",
        ["goose", "anthropic/claude-sonnet-4-5", "ollama/llama3.2:8b", "gpt-4o"],
    )
    def test_valid_model_ids(self, model: str) -> None:
        assert BridgeConfig(model=model).model == model

    @pytest.mark.parametrize("model", ["", "has space/x", "/leading"])
    def test_invalid_model_ids(self, model: str) -> None:
        with pytest.raises(ValidationError):
            BridgeConfig(model=model)


# ===================================================================
# Parser tests
# ===================================================================


class TestLoadConfig:
    @pytest.fixture(autouse=True)
    def _no_config_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(ENV_CONFIG_PATH, raising=False)

    def test_explicit_path(self, tmp_path: Path) -> None:
        cfg_file = _write_yaml(
            tmp_path / "goosebridge.yaml",
            {"model": "openai/gpt-4o", "settings": {"timeout_ms": 5000}},
        )
        cfg = load_config(cfg_file)
        assert cfg.model == "openai/gpt-4o"
        assert cfg.settings.timeout_ms == 5000

    def test_default_path(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        _write_yaml(tmp_path / "goosebridge.yaml", {"model": "goose"})
        assert load_config().model == "goose"

    def test_no_file_returns_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config() == BridgeConfig()

    def test_no_file_required(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError, match="goosebridge init"):
            load_config(required=True)

    def test_explicit_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        cfg_file = tmp_path / "goosebridge.yaml"
        cfg_file.write_text("", encoding="utf-8")
        assert load_config(cfg_file) == BridgeConfig()

    def test_invalid_yaml_reports_position(self, tmp_path: Path) -> None:
        bad = tmp_path / "goosebridge.yaml"
        bad.write_text("model: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(bad)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        bad = _write_yaml(tmp_path / "goosebridge.yaml", ["a", "b"])
        with pytest.raises(ConfigError, match="mapping"):
            load_config(bad)

    def test_validation_error_is_friendly(self, tmp_path: Path) -> None:
        cfg_file = _write_yaml(
            tmp_path / "goosebridge.yaml", {"settings": {"timeout_ms": "soon"}}
        )
        with pytest.raises(ConfigError) as exc_info:
            load_config(cfg_file)
        text = str(exc_info.value)
        assert "Config validation failed" in text
        assert "timeout_ms" in text

    def test_unknown_key(self, tmp_path: Path) -> None:
        cfg_file = _write_yaml(tmp_path / "goosebridge.yaml", {"team": "x"})
        with pytest.raises(ConfigError):
            load_config(cfg_file)


class TestFindConfig:
    @pytest.fixture(autouse=True)
    def _no_config_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(ENV_CONFIG_PATH, raising=False)

    def test_none_when_absent(self, tmp_path: Path) -> None:
        assert find_config(tmp_path) is None

    def test_yml_extension(self, tmp_path: Path) -> None:
        cfg_file = _write_yaml(tmp_path / "goosebridge.yml", {"model": "goose"})
        assert find_config(tmp_path) == cfg_file

    def test_yaml_preferred_over_yml(self, tmp_path: Path) -> None:
        _write_yaml(tmp_path / "goosebridge.yml", {"model": "goose"})
        preferred = _write_yaml(tmp_path / "goosebridge.yaml", {"model": "goose"})
        assert find_config(tmp_path) == preferred

    def test_env_var_wins(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_yaml(tmp_path / "goosebridge.yaml", {"model": "goose"})
        elsewhere = _write_yaml(tmp_path / "other.yaml", {"model": "openai/gpt-4o"})
        monkeypatch.setenv(ENV_CONFIG_PATH, str(elsewhere))
        monkeypatch.chdir(tmp_path)
        assert find_config(tmp_path) == elsewhere
        assert load_config().model == "openai/gpt-4o"

    def test_env_var_missing_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(ENV_CONFIG_PATH, str(tmp_path / "gone.yaml"))
        with pytest.raises(ConfigError, match=ENV_CONFIG_PATH):
            find_config(tmp_path)


class TestParseHelpers:
    def test_parse_empty(self) -> None:
        assert parse_config_text("") == {}

    def test_parse_names_source(self) -> None:
        with pytest.raises(ConfigError, match="custom.yaml"):
            parse_config_text("- a\n", "custom.yaml")

    def test_format_lists_every_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            BridgeConfig.model_validate(
                {"team": "x", "settings": {"timeout_ms": "soon"}}
            )
        text = format_validation_error(exc_info.value)
        assert text.startswith("Config validation failed:")
        assert "  team: Unknown setting" in text
        assert "settings.timeout_ms:" in text


class TestEnvLoading:
    def test_loads_env_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GOOSEBRIDGE_TEST_KEY", "placeholder")
        monkeypatch.delenv("GOOSEBRIDGE_TEST_KEY")
        (tmp_path / ".env").write_text(
            "GOOSEBRIDGE_TEST_KEY=secret123\n", encoding="utf-8"
        )
        _write_yaml(tmp_path / "goosebridge.yaml", {"model": "goose"})
        load_config(tmp_path / "goosebridge.yaml")
        assert os.environ.get("GOOSEBRIDGE_TEST_KEY") == "secret123"

    def test_existing_env_not_overridden(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GOOSEBRIDGE_TEST_KEY", "from-shell")
        (tmp_path / ".env").write_text(
            "GOOSEBRIDGE_TEST_KEY=from-file\n", encoding="utf-8"
        )
        _write_yaml(tmp_path / "goosebridge.yaml", {"model": "goose"})
        load_config(tmp_path / "goosebridge.yaml")
        assert os.environ["GOOSEBRIDGE_TEST_KEY"] == "from-shell"

    def test_no_env_is_fine(self, tmp_path: Path) -> None:
        cfg_file = _write_yaml(tmp_path / "goosebridge.yaml", {"model": "goose"})
        assert load_config(cfg_file).model == "goose"
