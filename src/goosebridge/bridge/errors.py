"""Error taxonomy for goose CLI calls.

Every call-level failure is raised as a :class:`GooseError` subclass that
carries an :class:`ErrorRecord`.  The record keeps the binary path and the
argument list so the failing invocation can be reproduced by hand.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

#: Max characters of stderr kept on a ProcessError.
_STDERR_TAIL_CHARS = 2048


class ErrorKind(enum.StrEnum):
    """Kinds of call-level failure."""

    SPAWN = "spawn_error"
    TIMEOUT = "timeout_error"
    ABORTED = "aborted_error"
    PROCESS = "process_error"
    UPSTREAM = "upstream_error"


@dataclass(frozen=True)
class ErrorContext:
    """Enough of the invocation to reproduce it."""

    bin_path: str
    args: tuple[str, ...] = ()
    exit_code: int | None = None
    stderr_tail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"bin_path": self.bin_path, "args": list(self.args)}
        if self.exit_code is not None:
            data["exit_code"] = self.exit_code
        if self.stderr_tail is not None:
            data["stderr_tail"] = self.stderr_tail
        return data


@dataclass(frozen=True)
class ErrorRecord:
    """Uniform description of a failed call."""

    kind: ErrorKind
    message: str
    retryable: bool
    context: ErrorContext = field(default_factory=lambda: ErrorContext("goose"))

    @property
    def url(self) -> str:
        """Pseudo-URL identifying the binary, e.g. ``goose:///usr/bin/goose``."""
        return f"goose://{self.context.bin_path}"


class GooseError(Exception):
    """Base class for every call-level goose failure."""

    kind: ErrorKind = ErrorKind.PROCESS
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        bin_path: str = "goose",
        args: list[str] | tuple[str, ...] = (),
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if stderr is not None:
            stderr = stderr[-_STDERR_TAIL_CHARS:]
        self.record = ErrorRecord(
            kind=self.kind,
            message=message,
            retryable=self.retryable,
            context=ErrorContext(
                bin_path=bin_path,
                args=tuple(args),
                exit_code=exit_code,
                stderr_tail=stderr,
            ),
        )

    @property
    def context(self) -> ErrorContext:
        return self.record.context


class SpawnError(GooseError):
    """The goose binary could not be launched."""

    kind = ErrorKind.SPAWN


class CallTimeoutError(GooseError, TimeoutError):
    """The call exceeded its wall-clock budget."""

    kind = ErrorKind.TIMEOUT
    retryable = True

    def __init__(self, timeout_ms: int, **kwargs: Any) -> None:
        super().__init__(f"Goose CLI timed out after {timeout_ms}ms", **kwargs)
        self.timeout_ms = timeout_ms


class AbortedError(GooseError):
    """The caller cancelled the call."""

    kind = ErrorKind.ABORTED

    def __init__(self, message: str = "Request aborted", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ProcessError(GooseError):
    """goose exited with a non-zero status."""

    kind = ErrorKind.PROCESS

    def __init__(self, exit_code: int, stderr: str, **kwargs: Any) -> None:
        super().__init__(
            f"Goose CLI error: exited with code {exit_code}",
            exit_code=exit_code,
            stderr=stderr,
            **kwargs,
        )

    @property
    def exit_code(self) -> int | None:
        return self.context.exit_code

    @property
    def stderr(self) -> str:
        return self.context.stderr_tail or ""


class UpstreamError(GooseError):
    """goose reported an ``error`` event on its output stream."""

    kind = ErrorKind.UPSTREAM


def classify(
    exc: BaseException,
    bin_path: str = "goose",
    args: list[str] | tuple[str, ...] = (),
) -> GooseError:
    """Map *exc* onto the goose error taxonomy.

    Already-classified errors are returned unchanged.
    """
    if isinstance(exc, GooseError):
        return exc
    if isinstance(exc, OSError):
        return SpawnError(
            f"Failed to spawn Goose CLI: {exc}", bin_path=bin_path, args=args
        )
    error = GooseError(f"Goose CLI error: {exc}", bin_path=bin_path, args=args)
    error.__cause__ = exc
    return error
