"""goosebridge init — scaffold a goosebridge.yaml in the current directory."""

from __future__ import annotations

from pathlib import Path

import click

from goosebridge.config.parser import DEFAULT_CONFIG_NAME
from goosebridge.constants import API_KEY_ENV_VARS

ENV_EXAMPLE_FILENAME = ".env.example"

TEMPLATE_YAML = """\
# goosebridge configuration
version: "1"

# Model id: 'goose' uses goose's own configured provider and model,
# 'provider/model' overrides it (sets GOOSE_PROVIDER / GOOSE_MODEL).
model: goose
# model: anthropic/claude-sonnet-4-5

settings:
  # Path to the goose binary (default: 'goose' on PATH)
  bin_path: goose

  # Wall-clock budget per call in milliseconds
  timeout_ms: 600000

  # Named session; add `resume: true` to continue it
  # session_name: my-project
  # resume: true

  # Cap the number of agent turns (GOOSE_MAX_TURNS)
  # max_turns: 50

  # Extra CLI arguments appended to every `goose run`
  # args: ["--with-builtin", "developer"]

  # Extra environment variables for the goose process
  # env:
  #   GOOSE_TEMPERATURE: "0.2"
"""


def _env_example() -> str:
    lines = [
        "# API keys for the providers goose can use.",
        "# Copy this file to .env and fill in the keys you need.",
        "# goosebridge loads .env from the directory of goosebridge.yaml.",
        "",
    ]
    lines.extend(f"{var}=" for var in API_KEY_ENV_VARS.values() if var is not None)
    return "\n".join(lines) + "\n"


TEMPLATE_ENV_EXAMPLE = _env_example()


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help=f"Overwrite an existing {DEFAULT_CONFIG_NAME}.",
)
def init(force: bool) -> None:
    """Create goosebridge.yaml and .env.example in the current directory."""
    cwd = Path.cwd()
    config_path = cwd / DEFAULT_CONFIG_NAME
    env_example_path = cwd / ENV_EXAMPLE_FILENAME

    if config_path.exists() and not force:
        raise click.ClickException(
            f"{DEFAULT_CONFIG_NAME} already exists. Use --force to overwrite."
        )

    try:
        config_path.write_text(TEMPLATE_YAML, encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(
            f"Cannot write {DEFAULT_CONFIG_NAME}: {exc}"
        ) from exc
    click.echo(f"  Created {DEFAULT_CONFIG_NAME}")

    if not env_example_path.exists() or force:
        try:
            env_example_path.write_text(TEMPLATE_ENV_EXAMPLE, encoding="utf-8")
        except OSError as exc:
            raise click.ClickException(
                f"Cannot write {ENV_EXAMPLE_FILENAME}: {exc}"
            ) from exc
        click.echo(f"  Created {ENV_EXAMPLE_FILENAME}")
    else:
        click.echo(f"  Skipped {ENV_EXAMPLE_FILENAME} (already exists)")

    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Copy .env.example to .env and add your API key")
    click.echo('  2. Run `goosebridge run "hello"`')
