"""Helpers shared by the goosebridge subcommands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from goosebridge.config.models import BridgeConfig
from goosebridge.config.parser import ConfigError, load_config

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(verbose: bool) -> None:
    """Route library logs to stderr; DEBUG with ``--verbose``."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def load_or_exit(config_file: str | None) -> BridgeConfig:
    """Load the config, printing ``Error: ...`` and exiting 1 on failure."""
    try:
        return load_config(Path(config_file) if config_file else None)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


config_option = click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to goosebridge.yaml (default: ./goosebridge.yaml if present).",
)
verbose_option = click.option(
    "-v", "--verbose", is_flag=True, help="Enable debug logging on stderr."
)
