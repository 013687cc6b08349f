"""Convert exported goose messages into caller-facing chat messages."""

from __future__ import annotations

from typing import Any

from goosebridge.bridge.events import (
    Audience,
    Message,
    TextContent,
    ToolRequestContent,
    ToolResponseContent,
    extract_tool_result_text,
    is_visible_to,
)
from goosebridge.bridge.translator import generate_id
from goosebridge.constants import UNKNOWN_TOOL_NAME

ModelMessage = dict[str, Any]


def _text_part(item: TextContent) -> dict[str, Any]:
    return {"type": "text", "text": item.text}


def _tool_call_part(item: ToolRequestContent) -> dict[str, Any] | None:
    # A request with a toolCall key is kept even when the call itself failed.
    if "tool_call" not in item.model_fields_set:
        return None
    value = item.tool_call.value if item.tool_call is not None else None
    return {
        "type": "tool-call",
        "tool_call_id": item.id or generate_id(),
        "tool_name": value.name if value is not None else UNKNOWN_TOOL_NAME,
        "input": value.arguments if value is not None else {},
    }


def _tool_result_part(item: ToolResponseContent, audience: Audience) -> dict[str, Any]:
    result = item.tool_result
    value = result.value if result is not None else None
    if value is not None:
        output = extract_tool_result_text(value.content, audience)
    else:
        output = (result.error if result is not None else None) or ""
    # The export does not link results back to their calls.
    return {
        "type": "tool-result",
        "tool_call_id": item.id or generate_id(),
        "tool_name": UNKNOWN_TOOL_NAME,
        "output": {"type": "text", "value": output},
    }


def _convert_assistant(message: Message, audience: Audience) -> list[ModelMessage]:
    content: list[dict[str, Any]] = []
    for item in message.content:
        if not is_visible_to(item, audience):
            continue
        if isinstance(item, TextContent) and item.text:
            content.append(_text_part(item))
        elif isinstance(item, ToolRequestContent):
            part = _tool_call_part(item)
            if part is not None:
                content.append(part)
    if not content:
        return []
    return [{"role": "assistant", "content": content}]


def _convert_user(message: Message, audience: Audience) -> list[ModelMessage]:
    text_parts: list[dict[str, Any]] = []
    tool_results: list[dict[str, Any]] = []
    for item in message.content:
        if not is_visible_to(item, audience):
            continue
        if isinstance(item, TextContent) and item.text:
            text_parts.append(_text_part(item))
        elif isinstance(item, ToolResponseContent) and item.tool_result is not None:
            tool_results.append(_tool_result_part(item, audience))

    messages: list[ModelMessage] = []
    if text_parts:
        messages.append({"role": "user", "content": text_parts})
    if tool_results:
        messages.append({"role": "tool", "content": tool_results})
    return messages


def convert_message(message: Message, audience: Audience = "user") -> list[ModelMessage]:
    """Convert one goose message; a user message may become two messages."""
    if message.role == "assistant":
        return _convert_assistant(message, audience)
    return _convert_user(message, audience)


def convert_messages(
    messages: list[Message], audience: Audience = "user"
) -> list[ModelMessage]:
    """Convert a whole exported conversation, dropping empty messages.

    Entries with roles other than ``user``/``assistant`` never reach this
    function; :func:`~goosebridge.bridge.events.parse_messages` drops them.
    """
    result: list[ModelMessage] = []
    for message in messages:
        result.extend(convert_message(message, audience))
    return result
