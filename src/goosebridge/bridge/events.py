"""Pydantic v2 models for the goose ``stream-json`` output and its decoder."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

from goosebridge.constants import UNKNOWN_TOOL_NAME

Audience = Literal["user", "assistant"]


class _WireModel(BaseModel):
    """Base for records produced by goose; unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


# ------------------------------------------------------------------ #
# Content items
# ------------------------------------------------------------------ #


class Annotations(_WireModel):
    """Audience/priority annotations attached to a content item."""

    audience: list[str] | None = Field(
        default=None,
        description="Consumers allowed to see the item (absent = everyone)",
    )
    priority: float | None = None

    @field_validator("audience", mode="before")
    @classmethod
    def _drop_malformed_audience(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [entry for entry in value if isinstance(entry, str)]

    @field_validator("priority", mode="before")
    @classmethod
    def _drop_malformed_priority(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
        return value


class ToolCallValue(_WireModel):
    name: str = UNKNOWN_TOOL_NAME
    arguments: Any = Field(default_factory=dict)


class ToolCallEnvelope(_WireModel):
    status: str = "success"
    value: ToolCallValue | None = None
    error: str | None = None


class ResultItem(BaseModel):
    """One entry of a tool result's content list (text, resource, image, ...)."""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str = "text"
    text: str | None = None
    resource: dict[str, Any] | None = None
    annotations: Annotations | None = None


class ToolResultValue(_WireModel):
    content: list[ResultItem] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    @field_validator("content", mode="wrap")
    @classmethod
    def _drop_bad_items(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        if not isinstance(value, list):
            return handler(value)
        kept: list[ResultItem] = []
        for raw in value:
            try:
                kept.extend(handler([raw]))
            except ValidationError:
                continue
        return kept


class ToolResultEnvelope(_WireModel):
    status: str = "success"
    value: ToolResultValue | None = None
    error: str | None = None


class TextContent(_WireModel):
    type: Literal["text"] = "text"
    text: str | None = None
    annotations: Annotations | None = None


class ToolRequestContent(_WireModel):
    type: Literal["toolRequest"] = "toolRequest"
    id: str = ""
    tool_call: ToolCallEnvelope | None = Field(default=None, alias="toolCall")
    annotations: Annotations | None = None


class ToolResponseContent(_WireModel):
    type: Literal["toolResponse"] = "toolResponse"
    id: str = ""
    tool_result: ToolResultEnvelope | None = Field(default=None, alias="toolResult")
    annotations: Annotations | None = None


class OtherContent(BaseModel):
    """Any content type the bridge does not translate (thinking, images, ...)."""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str
    annotations: Annotations | None = None


_CONTENT_TAGS = {"text", "toolRequest", "toolResponse"}


def _content_discriminator(v: Any) -> str:
    if isinstance(v, dict):
        tag = v.get("type")
    else:
        tag = getattr(v, "type", None)
    return tag if tag in _CONTENT_TAGS else "other"


ContentItem = Annotated[
    Annotated[TextContent, Tag("text")]
    | Annotated[ToolRequestContent, Tag("toolRequest")]
    | Annotated[ToolResponseContent, Tag("toolResponse")]
    | Annotated[OtherContent, Tag("other")],
    Discriminator(_content_discriminator),
]
"""Discriminated union of message content items."""


class Message(_WireModel):
    """A conversation message as goose emits and exports it."""

    id: str | None = None
    role: Literal["assistant", "user"]
    created: int | None = None
    content: list[ContentItem] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    @field_validator("content", mode="wrap")
    @classmethod
    def _salvage_items(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        """Validate items one by one; a malformed item becomes OtherContent."""
        if not isinstance(value, list):
            return handler(value)
        items: list[Any] = []
        for raw in value:
            try:
                items.extend(handler([raw]))
            except ValidationError:
                if isinstance(raw, dict):
                    items.append(OtherContent(type=str(raw.get("type"))))
        return items


# ------------------------------------------------------------------ #
# Stream events
# ------------------------------------------------------------------ #


class MessageEvent(_WireModel):
    type: Literal["message"] = "message"
    message: Message


class CompleteEvent(_WireModel):
    type: Literal["complete"] = "complete"
    total_tokens: int | None = None


class ErrorEvent(_WireModel):
    type: Literal["error"] = "error"
    error: str | None = None


class NotificationEvent(_WireModel):
    """Informational event (extension logs, progress); never translated."""

    type: Literal["notification"] = "notification"
    extension_id: str | None = None
    log: dict[str, Any] | None = None


class UnparseableEvent(BaseModel):
    """A stdout line that could not be decoded into a known event."""

    model_config = ConfigDict(frozen=True)

    type: Literal["unparseable"] = "unparseable"
    raw: str
    reason: str


_StreamEvent = Annotated[
    MessageEvent | CompleteEvent | ErrorEvent | NotificationEvent,
    Field(discriminator="type"),
]

DecodedEvent = (
    MessageEvent | CompleteEvent | ErrorEvent | NotificationEvent | UnparseableEvent
)

_EVENT_TYPES = {"message", "complete", "error", "notification"}
_event_adapter: TypeAdapter[Any] = TypeAdapter(_StreamEvent)
_message_adapter: TypeAdapter[list[Message]] = TypeAdapter(list[Message])

#: Max characters of a bad line kept on an UnparseableEvent.
_RAW_PREVIEW_CHARS = 200


def decode_line(line: str) -> DecodedEvent:
    """Decode one stdout line.

    Never raises: anything that is not a well-formed known event comes
    back as an :class:`UnparseableEvent` carrying the reason.
    """
    raw = line[:_RAW_PREVIEW_CHARS]
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        return UnparseableEvent(raw=raw, reason=f"invalid JSON: {exc.msg}")

    if not isinstance(data, dict):
        return UnparseableEvent(
            raw=raw, reason=f"expected a JSON object, got {type(data).__name__}"
        )

    event_type = data.get("type")
    if event_type not in _EVENT_TYPES:
        return UnparseableEvent(raw=raw, reason=f"unknown event type {event_type!r}")

    try:
        return _event_adapter.validate_python(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(s) for s in first["loc"])
        return UnparseableEvent(
            raw=raw,
            reason=f"invalid {event_type} event at {loc or '<root>'}: {first['msg']}",
        )


def parse_messages(data: Any) -> list[Message]:
    """Validate a list of exported messages, dropping entries that do not fit."""
    if not isinstance(data, list):
        return []
    messages: list[Message] = []
    for entry in data:
        try:
            messages.extend(_message_adapter.validate_python([entry]))
        except ValidationError:
            continue
    return messages


# ------------------------------------------------------------------ #
# Audience filtering
# ------------------------------------------------------------------ #


def is_visible_to(item: Any, audience: Audience) -> bool:
    """Whether *item* should be shown to *audience*.

    Items without an audience annotation are visible to everyone.
    """
    annotations = getattr(item, "annotations", None)
    if annotations is None or annotations.audience is None:
        return True
    return audience in annotations.audience


def _result_item_text(item: ResultItem) -> str:
    if item.type == "text" and item.text:
        return item.text
    if item.type == "resource" and item.resource and item.resource.get("text"):
        return str(item.resource["text"])
    return json.dumps(item.model_dump(exclude_none=True), default=str)


def extract_tool_result_text(
    content: list[ResultItem] | None, audience: Audience
) -> str:
    """Join the audience-visible parts of a tool result into one string."""
    if not content:
        return ""
    return "\n".join(
        _result_item_text(item) for item in content if is_visible_to(item, audience)
    )
