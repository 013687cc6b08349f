"""Immutable description of one generation call."""

from __future__ import annotations

from dataclasses import dataclass, field

from goosebridge.bridge.cancel import CancellationToken
from goosebridge.constants import DEFAULT_TIMEOUT_MS


@dataclass(frozen=True)
class SessionDirectives:
    """Which goose session to use and whether to resume it."""

    name: str | None = None
    resume: bool = False


@dataclass(frozen=True)
class GenerationRequest:
    """Everything needed to run goose once."""

    user_prompt: str
    system_prompt: str | None = None
    session: SessionDirectives = field(default_factory=SessionDirectives)
    extra_args: tuple[str, ...] = ()
    cancellation: CancellationToken | None = field(default=None, compare=False)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
