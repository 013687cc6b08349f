"""Session export through ``goose session export``."""

from __future__ import annotations

import json
import logging
import os

from goosebridge.bridge.cancel import CancellationToken
from goosebridge.bridge.errors import ErrorKind, GooseError
from goosebridge.bridge.events import Audience, Message, parse_messages
from goosebridge.bridge.process import ProcessSupervisor
from goosebridge.constants import DEFAULT_BIN_PATH, ENV_DISABLE_KEYRING
from goosebridge.session.convert import ModelMessage, convert_messages

logger = logging.getLogger(__name__)

#: Default budget for an export call, in milliseconds.
_EXPORT_TIMEOUT_MS = 60_000

#: A whole session export may arrive as a single line.
_EXPORT_MAX_LINE_BYTES = 64 * 1024 * 1024


class SessionExportError(GooseError):
    """goose produced output that is not a session export."""

    kind = ErrorKind.UPSTREAM


def export_args(name: str) -> list[str]:
    """Arguments for exporting session *name* as JSON."""
    return ["session", "export", "--name", name, "--format", "json"]


async def export_session_raw(
    name: str,
    *,
    bin_path: str = DEFAULT_BIN_PATH,
    timeout_ms: int = _EXPORT_TIMEOUT_MS,
    cancellation: CancellationToken | None = None,
) -> list[Message]:
    """Return the raw messages of goose session *name*.

    goose is reaped (with its process group) before this returns or
    raises, including when the awaiting task is cancelled.

    Raises:
        SpawnError: goose could not be started.
        AbortedError: *cancellation* fired before goose finished.
        CallTimeoutError: the export took longer than *timeout_ms*.
        ProcessError: goose exited non-zero (e.g. unknown session).
        SessionExportError: the output was not a JSON session export.
    """
    args = export_args(name)
    env = {**os.environ, ENV_DISABLE_KEYRING: "1"}
    logger.debug("Exporting goose session %r: %s %s", name, bin_path, args)

    async with ProcessSupervisor(
        bin_path,
        args,
        timeout_ms=timeout_ms,
        env=env,
        cancellation=cancellation,
        max_line_bytes=_EXPORT_MAX_LINE_BYTES,
        log=logger,
    ) as supervisor:
        output = "\n".join([line async for line in supervisor.lines()])
        await supervisor.wait()

    try:
        session = json.loads(output)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON from goose session export: {exc.msg}"
        raise SessionExportError(msg, bin_path=bin_path, args=args) from exc

    if not isinstance(session, dict):
        msg = "Expected a JSON object from goose session export"
        raise SessionExportError(msg, bin_path=bin_path, args=args)

    return parse_messages(session.get("conversation") or [])


async def export_session(
    name: str,
    audience: Audience = "user",
    *,
    bin_path: str = DEFAULT_BIN_PATH,
    timeout_ms: int = _EXPORT_TIMEOUT_MS,
    cancellation: CancellationToken | None = None,
) -> list[ModelMessage]:
    """Export goose session *name* as chat messages filtered for *audience*."""
    messages = await export_session_raw(
        name, bin_path=bin_path, timeout_ms=timeout_ms, cancellation=cancellation
    )
    return convert_messages(messages, audience)
