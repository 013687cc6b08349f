"""Session export — replay goose conversations as chat messages."""

from goosebridge.session.convert import ModelMessage, convert_message, convert_messages
from goosebridge.session.export import (
    SessionExportError,
    export_session,
    export_session_raw,
)

__all__ = [
    "ModelMessage",
    "SessionExportError",
    "convert_message",
    "convert_messages",
    "export_session",
    "export_session_raw",
]
