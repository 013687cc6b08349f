"""Small shared helpers for the bridge."""

from __future__ import annotations

from goosebridge.constants import GOOSE_MODELS, LOCAL_MODEL_ID


def format_stderr_preview(stderr_text: str, max_lines: int = 5) -> str:
    """Extract and format the last N non-empty lines from stderr output."""
    lines = [line for line in stderr_text.split("\n") if line.strip()]
    last = lines[-max_lines:] if len(lines) > max_lines else lines
    return "\n  ".join(last)


def split_model_id(model_id: str) -> tuple[str, str] | None:
    """Split ``provider/model`` into its halves.

    Returns ``None`` for the local ``goose`` id and for ids without a
    provider prefix; shortcut names from ``GOOSE_MODELS`` are expanded.
    """
    model_id = GOOSE_MODELS.get(model_id, model_id)
    if model_id == LOCAL_MODEL_ID or "/" not in model_id:
        return None
    provider, _, model = model_id.partition("/")
    if not provider or not model:
        return None
    return provider, model
