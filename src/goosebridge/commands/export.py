"""goosebridge export — print a goose session as JSON chat messages."""

from __future__ import annotations

import asyncio
import json

import click

from goosebridge.bridge.errors import GooseError
from goosebridge.commands._common import (
    config_option,
    load_or_exit,
    setup_logging,
    verbose_option,
)
from goosebridge.session.convert import convert_messages
from goosebridge.session.export import export_session_raw


@click.command()
@click.argument("name")
@click.option(
    "--audience",
    type=click.Choice(["user", "assistant"]),
    default="user",
    show_default=True,
    help="Drop content not meant for this audience.",
)
@click.option("--raw", is_flag=True, help="Print goose's own message format.")
@config_option
@verbose_option
def export(
    name: str, audience: str, raw: bool, config_file: str | None, verbose: bool
) -> None:
    """Export goose session NAME as JSON."""
    setup_logging(verbose)
    config = load_or_exit(config_file)

    try:
        messages = asyncio.run(
            export_session_raw(name, bin_path=config.settings.bin_path)
        )
    except GooseError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if raw:
        payload = [
            m.model_dump(mode="json", by_alias=True, exclude_none=True)
            for m in messages
        ]
    else:
        payload = convert_messages(messages, audience)  # type: ignore[arg-type]
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
