"""Stream translator — turns decoded goose events into generation parts."""

from __future__ import annotations

import enum
import json
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from goosebridge.bridge.errors import GooseError
from goosebridge.bridge.events import (
    Audience,
    CompleteEvent,
    DecodedEvent,
    ErrorEvent,
    MessageEvent,
    TextContent,
    ToolRequestContent,
    ToolResponseContent,
    UnparseableEvent,
    extract_tool_result_text,
)
from goosebridge.bridge.parts import (
    ErrorPart,
    Finish,
    GenerationPart,
    TextDelta,
    TextEnd,
    TextStart,
    ToolCall,
    ToolResult,
    Usage,
)
from goosebridge.constants import FINISH_REASON_STOP, UNKNOWN_TOOL_NAME

logger = logging.getLogger(__name__)


def generate_id() -> str:
    """Fresh identifier for text segments and id-less tool calls."""
    return uuid.uuid4().hex[:16]


class Phase(enum.Enum):
    IDLE = "idle"
    TEXT_OPEN = "text_open"
    TOOL_PENDING = "tool_pending"
    FINISHED = "finished"


@dataclass
class TranslatorState:
    """Mutable per-call state; owned by exactly one translator."""

    phase: Phase = Phase.IDLE
    open_text_id: str | None = None
    tool_names: dict[str, str] = field(default_factory=dict)
    pending_tools: set[str] = field(default_factory=set)

    @property
    def text_active(self) -> bool:
        return self.open_text_id is not None


class StreamTranslator:
    """State machine ``Idle -> TextOpen -> ToolPending -> Finished``.

    Invariants:

    * at most one text segment is open at a time;
    * an open segment is closed before a ``ToolCall``, before ``Finish``
      and before a terminal ``ErrorPart``;
    * nothing is emitted once the stream is finished.
    """

    def __init__(
        self,
        audience: Audience = "user",
        *,
        id_factory: Callable[[], str] = generate_id,
        log: logging.Logger | None = None,
    ) -> None:
        self._audience: Audience = audience
        self._new_id = id_factory
        self._log = log or logger
        self.state = TranslatorState()

    @property
    def finished(self) -> bool:
        return self.state.phase is Phase.FINISHED

    # ------------------------------------------------------------------ #
    # Event intake
    # ------------------------------------------------------------------ #

    def feed(self, event: DecodedEvent) -> list[GenerationPart]:
        """Translate one decoded event into zero or more parts.

        ``error`` events are not translated here; the caller turns them
        into an :class:`UpstreamError` and calls :meth:`fail`.
        """
        if self.finished:
            return []

        if isinstance(event, MessageEvent):
            return self._on_message(event)
        if isinstance(event, CompleteEvent):
            return self._on_complete(event)
        if isinstance(event, ErrorEvent):
            msg = "error events must be handled by the caller"
            raise TypeError(msg)
        if isinstance(event, UnparseableEvent):
            self._log.warning("Skipping unparseable line (%s)", event.reason)
        # Notifications carry nothing for the caller.
        return []

    def finish(self) -> list[GenerationPart]:
        """End a stream that stopped without a ``complete`` event."""
        if self.finished:
            return []
        parts = self._close_text()
        parts.append(Finish(reason=FINISH_REASON_STOP, usage=Usage()))
        self.state.phase = Phase.FINISHED
        return parts

    def fail(self, error: GooseError) -> list[GenerationPart]:
        """Terminate the stream with a single ``ErrorPart``."""
        if self.finished:
            return []
        parts = self._close_text()
        parts.append(ErrorPart.from_error(error))
        self.state.phase = Phase.FINISHED
        return parts

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def _on_message(self, event: MessageEvent) -> list[GenerationPart]:
        message = event.message
        parts: list[GenerationPart] = []

        for item in message.content:
            if message.role == "assistant":
                if isinstance(item, TextContent):
                    parts.extend(self._on_text(item))
                elif isinstance(item, ToolRequestContent):
                    parts.extend(self._on_tool_request(item))
            elif isinstance(item, ToolResponseContent):
                parts.extend(self._on_tool_response(item))

        return parts

    def _on_text(self, item: TextContent) -> list[GenerationPart]:
        if not item.text:
            return []
        parts: list[GenerationPart] = []
        if self.state.open_text_id is None:
            self.state.open_text_id = self._new_id()
            parts.append(TextStart(id=self.state.open_text_id))
        self.state.phase = Phase.TEXT_OPEN
        parts.append(TextDelta(id=self.state.open_text_id, text=item.text))
        return parts

    def _on_tool_request(self, item: ToolRequestContent) -> list[GenerationPart]:
        call = item.tool_call
        if call is None or call.value is None:
            self._log.warning(
                "Skipping tool request %s without a call (%s)",
                item.id or "<no id>",
                call.error if call is not None else "missing toolCall",
            )
            return []

        parts = self._close_text()
        call_id = item.id or self._new_id()
        name = call.value.name
        self.state.tool_names[call_id] = name
        self.state.pending_tools.add(call_id)
        self.state.phase = Phase.TOOL_PENDING
        parts.append(
            ToolCall(
                id=call_id,
                name=name,
                arguments_json=json.dumps(call.value.arguments, default=str),
            )
        )
        return parts

    def _on_tool_response(self, item: ToolResponseContent) -> list[GenerationPart]:
        result = item.tool_result
        if result is None:
            return []

        call_id = item.id or self._new_id()
        if result.value is not None:
            output = extract_tool_result_text(result.value.content, self._audience)
            is_error = result.value.is_error or result.status == "error"
        else:
            output = result.error or ""
            is_error = True

        self.state.pending_tools.discard(call_id)
        if not self.state.pending_tools and self.state.phase is Phase.TOOL_PENDING:
            self.state.phase = Phase.IDLE

        return [
            ToolResult(
                id=call_id,
                name=self.state.tool_names.get(call_id, UNKNOWN_TOOL_NAME),
                output=output,
                is_error=is_error,
            )
        ]

    def _on_complete(self, event: CompleteEvent) -> list[GenerationPart]:
        parts = self._close_text()
        usage = Usage(output_tokens=event.total_tokens or 0)
        parts.append(Finish(reason=FINISH_REASON_STOP, usage=usage))
        self.state.phase = Phase.FINISHED
        return parts

    def _close_text(self) -> list[GenerationPart]:
        text_id = self.state.open_text_id
        if text_id is None:
            return []
        self.state.open_text_id = None
        if self.state.phase is Phase.TEXT_OPEN:
            self.state.phase = Phase.IDLE
        return [TextEnd(id=text_id)]
