"""Process bridge — goose subprocess to generation parts."""

from goosebridge.bridge.cancel import CancellationToken
from goosebridge.bridge.errors import (
    AbortedError,
    CallTimeoutError,
    ErrorKind,
    ErrorRecord,
    GooseError,
    ProcessError,
    SpawnError,
    UpstreamError,
    classify,
)
from goosebridge.bridge.model import GooseLanguageModel
from goosebridge.bridge.parts import (
    ErrorPart,
    Finish,
    GenerateResult,
    GenerationPart,
    TextDelta,
    TextEnd,
    TextStart,
    ToolCall,
    ToolResult,
    Usage,
)

__all__ = [
    "AbortedError",
    "CallTimeoutError",
    "CancellationToken",
    "ErrorKind",
    "ErrorPart",
    "ErrorRecord",
    "Finish",
    "GenerateResult",
    "GenerationPart",
    "GooseError",
    "GooseLanguageModel",
    "ProcessError",
    "SpawnError",
    "TextDelta",
    "TextEnd",
    "TextStart",
    "ToolCall",
    "ToolResult",
    "UpstreamError",
    "Usage",
    "classify",
]
