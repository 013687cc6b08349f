"""goosebridge run — send one prompt to goose and print the answer."""

from __future__ import annotations

import asyncio
import contextlib
import json

import click
from pydantic import ValidationError

from goosebridge.bridge.errors import GooseError
from goosebridge.bridge.model import GooseLanguageModel
from goosebridge.bridge.parts import (
    ErrorPart,
    Finish,
    TextDelta,
    TextEnd,
    ToolCall,
    ToolResult,
)
from goosebridge.commands._common import (
    config_option,
    load_or_exit,
    setup_logging,
    verbose_option,
)
from goosebridge.provider import GooseProvider, NoSuchModelError

#: Characters of a tool result echoed to stderr.
_RESULT_PREVIEW_CHARS = 200


@click.command()
@click.argument("prompt")
@click.option("--system", "system_prompt", default=None, help="System prompt.")
@click.option(
    "-m",
    "--model",
    "model_id",
    default=None,
    help="'goose' or 'provider/model' (default: from config).",
)
@click.option("--session", "session_name", default=None, help="Named goose session.")
@click.option("--resume", is_flag=True, help="Resume the named session.")
@click.option(
    "--timeout",
    "timeout_ms",
    type=click.IntRange(min=1),
    default=None,
    help="Timeout in milliseconds.",
)
@click.option(
    "--max-turns",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of agent turns.",
)
@click.option(
    "--stream/--no-stream",
    default=True,
    help="Stream text as it arrives (default) or print it at the end.",
)
@config_option
@verbose_option
def run(
    prompt: str,
    system_prompt: str | None,
    model_id: str | None,
    session_name: str | None,
    resume: bool,
    timeout_ms: int | None,
    max_turns: int | None,
    stream: bool,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Run PROMPT through goose and print the response."""
    setup_logging(verbose)
    config = load_or_exit(config_file)

    provider = GooseProvider(config.settings)
    try:
        model = provider(
            model_id or config.model,
            session_name=session_name,
            resume=True if resume else None,
            timeout_ms=timeout_ms,
            max_turns=max_turns,
        )
    except (NoSuchModelError, ValidationError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    runner = _stream if stream else _generate
    try:
        asyncio.run(runner(model, prompt, system_prompt))
    except GooseError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


async def _stream(
    model: GooseLanguageModel, prompt: str, system_prompt: str | None
) -> None:
    async with contextlib.aclosing(model.stream(prompt, system=system_prompt)) as parts:
        async for part in parts:
            if isinstance(part, TextDelta):
                click.echo(part.text, nl=False)
            elif isinstance(part, TextEnd):
                click.echo()
            elif isinstance(part, ToolCall):
                click.echo(
                    click.style(f"  → {part.name} {part.arguments_json}", fg="cyan"),
                    err=True,
                )
            elif isinstance(part, ToolResult):
                _echo_tool_result(part)
            elif isinstance(part, ErrorPart):
                if part.error is not None:
                    raise part.error
                raise GooseError(part.message)
            elif isinstance(part, Finish) and part.usage.total_tokens:
                click.echo(
                    click.style(f"  ({part.usage.total_tokens} tokens)", dim=True),
                    err=True,
                )


async def _generate(
    model: GooseLanguageModel, prompt: str, system_prompt: str | None
) -> None:
    result = await model.generate(prompt, system=system_prompt)
    for call in result.tool_calls:
        click.echo(
            click.style(f"  → {call.name} {call.arguments_json}", fg="cyan"), err=True
        )
    for warning in result.warnings:
        click.echo(click.style(f"  ⚠ {warning}", fg="yellow"), err=True)
    click.echo(result.text)


def _echo_tool_result(part: ToolResult) -> None:
    output = part.output
    if len(output) > _RESULT_PREVIEW_CHARS:
        output = output[:_RESULT_PREVIEW_CHARS] + "…"
    color = "red" if part.is_error else "green"
    label = "error" if part.is_error else "ok"
    click.echo(
        click.style(f"  ← {part.name} [{label}] {json.dumps(output)}", fg=color),
        err=True,
    )
