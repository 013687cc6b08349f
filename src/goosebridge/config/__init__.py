"""Configuration models and parser for goosebridge.yaml."""

from goosebridge.config.models import BridgeConfig, GooseSettings
from goosebridge.config.parser import ConfigError, load_config

__all__ = [
    "BridgeConfig",
    "ConfigError",
    "GooseSettings",
    "load_config",
]
