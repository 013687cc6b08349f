"""Process supervisor — owns one goose subprocess for the duration of a call."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from collections.abc import AsyncIterator, Mapping
from types import TracebackType

from goosebridge.bridge.cancel import CancellationToken
from goosebridge.bridge.errors import (
    AbortedError,
    CallTimeoutError,
    GooseError,
    ProcessError,
    SpawnError,
)
from goosebridge.bridge.helpers import format_stderr_preview
from goosebridge.bridge.lines import MAX_LINE_BYTES, iter_lines

logger = logging.getLogger(__name__)

#: Seconds to wait after SIGTERM before SIGKILL.
_SIGTERM_WAIT = 3.0

#: Seconds allowed for draining leftover stdout during teardown.
_DRAIN_WAIT = 2.0

#: Bytes of stderr retained in memory (oldest bytes are dropped).
_STDERR_KEEP_BYTES = 64 * 1024

#: Signal the whole process group (goose spawns extension processes).
_USE_PROCESS_GROUP = os.name == "posix"


class ProcessSupervisor:
    """Spawn goose, enforce timeout and cancellation, reap exactly once.

    Used as an async context manager::

        async with ProcessSupervisor(bin_path, args, timeout_ms=60_000) as sup:
            async for line in sup.lines():
                ...
            await sup.wait()

    Entering checks the cancellation token (raising :class:`AbortedError`
    without spawning), starts the process, and arms a watcher that races
    the end of the call against the timeout and the token.  The call ends
    when stdout and stderr are drained and goose has exited, so extension
    processes that outlive goose and keep its pipes open are still subject
    to the timeout.  Leaving always signals the whole process group and
    reaps goose, whichever way the block exits.
    """

    def __init__(
        self,
        bin_path: str,
        args: list[str],
        *,
        timeout_ms: int,
        env: Mapping[str, str] | None = None,
        cancellation: CancellationToken | None = None,
        cwd: str | None = None,
        max_line_bytes: int = MAX_LINE_BYTES,
        log: logging.Logger | None = None,
    ) -> None:
        self._bin_path = bin_path
        self._args = list(args)
        self._timeout_ms = timeout_ms
        self._env = dict(env) if env is not None else None
        self._cancellation = cancellation
        self._cwd = cwd
        self._max_line_bytes = max_line_bytes
        self._log = log or logger

        self._process: asyncio.subprocess.Process | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[str] | None = None
        self._failure: GooseError | None = None
        self._drained = asyncio.Event()
        self._closed = False

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def pid(self) -> int | None:
        """PID of the running subprocess, or ``None`` when none is alive."""
        if self._process is None or self._process.returncode is not None:
            return None
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def failure(self) -> GooseError | None:
        """Timeout/abort recorded by the watcher, if any."""
        return self._failure

    def _error_kwargs(self) -> dict[str, object]:
        return {"bin_path": self._bin_path, "args": self._args}

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> ProcessSupervisor:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self) -> None:
        """Spawn the subprocess and arm the timeout/cancellation watcher."""
        if self._cancellation is not None and self._cancellation.cancelled:
            raise AbortedError(self._cancellation.reason, **self._error_kwargs())

        self._log.debug(
            "Spawning Goose CLI: %s %s", self._bin_path, " ".join(self._args)
        )
        try:
            self._process = await asyncio.create_subprocess_exec(
                self._bin_path,
                *self._args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
                cwd=self._cwd,
                start_new_session=_USE_PROCESS_GROUP,
            )
        except FileNotFoundError as exc:
            self._closed = True
            msg = (
                f"Failed to spawn Goose CLI: '{self._bin_path}' not found. "
                "Make sure goose is installed and on your PATH."
            )
            raise SpawnError(msg, **self._error_kwargs()) from exc
        except OSError as exc:
            self._closed = True
            msg = f"Failed to spawn Goose CLI: {exc}"
            raise SpawnError(msg, **self._error_kwargs()) from exc

        self._stderr_task = asyncio.create_task(self._collect_stderr())
        self._watch_task = asyncio.create_task(self._watch())

    async def close(self) -> None:
        """Tear down: stop the watcher, kill the group, drain pipes, reap.

        Idempotent; runs its body once no matter how many exit paths call it.
        """
        if self._closed:
            return
        self._closed = True

        proc = self._process
        if proc is None:
            return

        self._log.debug("Tearing down Goose CLI (pid %d)", proc.pid)
        await self._terminate(graceful=False)

        for task in (self._watch_task, self._stderr_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        # Drain any remaining stdout so the transport can close.
        if proc.stdout is not None and not proc.stdout.at_eof():
            with contextlib.suppress(Exception):
                await asyncio.wait_for(proc.stdout.read(), timeout=_DRAIN_WAIT)

        await proc.wait()

    # ------------------------------------------------------------------ #
    # Output
    # ------------------------------------------------------------------ #

    async def lines(self) -> AsyncIterator[str]:
        """Yield stdout lines until EOF, stopping early on timeout/abort."""
        proc = self._require_process()
        if proc.stdout is None:
            return
        reader = iter_lines(
            proc.stdout, max_line_bytes=self._max_line_bytes, log=self._log
        )
        async with contextlib.aclosing(reader) as it:
            async for line in it:
                if self._failure is not None:
                    raise self._failure
                yield line
        if self._failure is not None:
            raise self._failure

    async def wait(self) -> int:
        """Wait for exit and translate the outcome.

        Raises the recorded timeout/abort error if the watcher fired,
        otherwise :class:`ProcessError` for a non-zero exit.
        """
        proc = self._require_process()
        returncode = await proc.wait()

        # A child holding stderr open keeps the watcher armed until it is
        # killed, so this cannot outlive the timeout.
        stderr_text = ""
        if self._stderr_task is not None:
            stderr_text = await self._stderr_task

        self._drained.set()
        if self._watch_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._watch_task
        if self._failure is not None:
            raise self._failure

        if returncode != 0:
            preview = format_stderr_preview(stderr_text)
            self._log.error(
                "Goose CLI exited with code %d.%s",
                returncode,
                f" Stderr:\n  {preview}" if preview else "",
            )
            raise ProcessError(returncode, stderr_text, **self._error_kwargs())
        return returncode

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _require_process(self) -> asyncio.subprocess.Process:
        if self._process is None:
            msg = "ProcessSupervisor has not been started"
            raise RuntimeError(msg)
        return self._process

    async def _collect_stderr(self) -> str:
        proc = self._require_process()
        if proc.stderr is None:
            return ""
        kept = bytearray()
        while True:
            chunk = await proc.stderr.read(4096)
            if not chunk:
                break
            kept.extend(chunk)
            if len(kept) > _STDERR_KEEP_BYTES:
                del kept[: len(kept) - _STDERR_KEEP_BYTES]
        return kept.decode(errors="replace").strip()

    async def _watch(self) -> None:
        """Race the end of the call against the timeout and the token."""
        proc = self._require_process()
        done_task = asyncio.create_task(self._drained.wait())
        waiters: set[asyncio.Task[object]] = {done_task}
        cancel_task: asyncio.Task[None] | None = None
        if self._cancellation is not None:
            cancel_task = asyncio.create_task(self._cancellation.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self._timeout_ms / 1000,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        if done_task in done:
            return

        if cancel_task is not None and cancel_task in done:
            assert self._cancellation is not None
            self._log.debug("Goose CLI (pid %d) aborted by caller", proc.pid)
            self._failure = AbortedError(
                self._cancellation.reason, **self._error_kwargs()
            )
            await self._terminate(graceful=True)
        else:
            self._log.warning(
                "Goose CLI (pid %d) timed out after %dms", proc.pid, self._timeout_ms
            )
            self._failure = CallTimeoutError(self._timeout_ms, **self._error_kwargs())
            await self._terminate(graceful=False)

    async def _terminate(self, *, graceful: bool) -> None:
        """SIGTERM (when *graceful*) -> wait -> SIGKILL -> reap.

        The group is signalled even after goose itself has exited, since
        its extension processes may still be running.
        """
        proc = self._require_process()
        if graceful:
            self._send_signal(force=False)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(proc.wait(), timeout=_SIGTERM_WAIT)
        self._send_signal(force=True)
        await proc.wait()

    def _send_signal(self, *, force: bool) -> None:
        proc = self._require_process()
        with contextlib.suppress(ProcessLookupError, PermissionError):
            if _USE_PROCESS_GROUP:
                os.killpg(proc.pid, signal.SIGKILL if force else signal.SIGTERM)
            elif proc.returncode is not None:
                return
            elif force:
                proc.kill()
            else:
                proc.terminate()
