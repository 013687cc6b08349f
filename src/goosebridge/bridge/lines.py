"""Newline-delimited reader for subprocess stdout."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

#: Bytes requested per read from the pipe.
_CHUNK_SIZE = 64 * 1024

#: Maximum bytes per JSONL line from subprocess stdout (1 MB).
MAX_LINE_BYTES = 1_048_576


def _decode(raw: bytes | bytearray) -> str:
    return bytes(raw).decode("utf-8", errors="replace").rstrip("\r")


async def iter_lines(
    stream: asyncio.StreamReader,
    *,
    max_line_bytes: int = MAX_LINE_BYTES,
    log: logging.Logger | None = None,
) -> AsyncIterator[str]:
    """Yield each non-blank line of *stream* without its newline.

    Incomplete fragments are buffered across reads.  A final line with
    no trailing newline is still yielded at EOF.  Lines longer than
    *max_line_bytes* are dropped with a warning.
    """
    log = log or logger
    buffer = bytearray()
    discarding = False

    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)

        while (idx := buffer.find(b"\n")) >= 0:
            raw = buffer[:idx]
            del buffer[: idx + 1]
            if discarding:
                # Tail of an oversized line.
                discarding = False
                continue
            if len(raw) > max_line_bytes:
                log.warning("stdout line exceeds %d bytes, skipping", max_line_bytes)
                continue
            line = _decode(raw)
            if line.strip():
                yield line

        if len(buffer) > max_line_bytes:
            log.warning("stdout line exceeds %d bytes, skipping", max_line_bytes)
            buffer.clear()
            discarding = True

    if buffer and not discarding:
        line = _decode(buffer)
        if line.strip():
            yield line
