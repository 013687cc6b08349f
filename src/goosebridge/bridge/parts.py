"""Caller-facing generation parts and results."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, ClassVar

from goosebridge.bridge.errors import ErrorKind, GooseError


@dataclass(frozen=True)
class Usage:
    """Token counts for a single call."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class _Part:
    type: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form, e.g. for JSON or SSE serialization."""
        data = dataclasses.asdict(self)
        return {"type": self.type, **data}


@dataclass(frozen=True)
class TextStart(_Part):
    type: ClassVar[str] = "text-start"

    id: str


@dataclass(frozen=True)
class TextDelta(_Part):
    type: ClassVar[str] = "text-delta"

    id: str
    text: str


@dataclass(frozen=True)
class TextEnd(_Part):
    type: ClassVar[str] = "text-end"

    id: str


@dataclass(frozen=True)
class ToolCall(_Part):
    """A tool invocation requested by the agent."""

    type: ClassVar[str] = "tool-call"

    id: str
    name: str
    arguments_json: str


@dataclass(frozen=True)
class ToolResult(_Part):
    """The (audience-filtered) output of a tool invocation."""

    type: ClassVar[str] = "tool-result"

    id: str
    name: str
    output: str
    is_error: bool = False


@dataclass(frozen=True)
class Finish(_Part):
    type: ClassVar[str] = "finish"

    reason: str
    usage: Usage = field(default_factory=Usage)


@dataclass(frozen=True)
class ErrorPart(_Part):
    """Terminal error part of a stream."""

    type: ClassVar[str] = "error"

    kind: ErrorKind
    message: str
    retryable: bool = False
    error: GooseError | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_error(cls, error: GooseError) -> ErrorPart:
        return cls(
            kind=error.kind,
            message=error.message,
            retryable=error.retryable,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "kind": str(self.kind),
            "message": self.message,
            "retryable": self.retryable,
        }


GenerationPart = (
    TextStart | TextDelta | TextEnd | ToolCall | ToolResult | Finish | ErrorPart
)


@dataclass
class GenerateResult:
    """Aggregate result of a non-streaming call."""

    text: str
    finish_reason: str
    usage: Usage = field(default_factory=Usage)
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
