"""goosebridge — drive the goose CLI agent as a streaming language model."""

__version__ = "0.1.0"

from goosebridge.bridge import (
    AbortedError,
    CallTimeoutError,
    CancellationToken,
    ErrorKind,
    ErrorPart,
    Finish,
    GenerateResult,
    GenerationPart,
    GooseError,
    GooseLanguageModel,
    ProcessError,
    SpawnError,
    TextDelta,
    TextEnd,
    TextStart,
    ToolCall,
    ToolResult,
    UpstreamError,
    Usage,
)
from goosebridge.config import GooseSettings
from goosebridge.constants import API_KEY_ENV_VARS, GOOSE_MODELS, PROVIDERS
from goosebridge.provider import GooseProvider, NoSuchModelError, create_goose, goose
from goosebridge.session import (
    SessionExportError,
    convert_messages,
    export_session,
    export_session_raw,
)

__all__ = [
    "API_KEY_ENV_VARS",
    "GOOSE_MODELS",
    "PROVIDERS",
    "AbortedError",
    "CallTimeoutError",
    "CancellationToken",
    "ErrorKind",
    "ErrorPart",
    "Finish",
    "GenerateResult",
    "GenerationPart",
    "GooseError",
    "GooseLanguageModel",
    "GooseProvider",
    "GooseSettings",
    "NoSuchModelError",
    "ProcessError",
    "SessionExportError",
    "SpawnError",
    "TextDelta",
    "TextEnd",
    "TextStart",
    "ToolCall",
    "ToolResult",
    "UpstreamError",
    "Usage",
    "__version__",
    "convert_messages",
    "create_goose",
    "export_session",
    "export_session_raw",
    "goose",
]
