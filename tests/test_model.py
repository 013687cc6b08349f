"""End-to-end tests for GooseLanguageModel against a fake goose script."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest

from builders import (
    FakeGoose,
    complete,
    message,
    recorded_args,
    recorded_env,
    text_item,
    tool_request,
    tool_response,
)
from goosebridge.bridge.cancel import CancellationToken
from goosebridge.bridge.errors import (
    AbortedError,
    ErrorKind,
    ProcessError,
    SpawnError,
    UpstreamError,
)
from goosebridge.bridge.model import GooseLanguageModel
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
from goosebridge.config.models import GooseSettings

# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #

HELLO = [
    message("assistant", text_item("Hello")),
    message("assistant", text_item(", world")),
    complete(12),
]


def _model(script: Path, model_id: str = "goose", **settings) -> GooseLanguageModel:
    return GooseLanguageModel(
        model_id, GooseSettings(bin_path=str(script), **settings)
    )


async def _collect(model: GooseLanguageModel, prompt="hi", **kwargs) -> list[GenerationPart]:
    return [part async for part in model.stream(prompt, **kwargs)]


def _types(parts: list[GenerationPart]) -> list[type]:
    return [type(p) for p in parts]


# ------------------------------------------------------------------ #
# Streaming
# ------------------------------------------------------------------ #


class TestStream:
    async def test_text_then_finish(self, fake_goose: FakeGoose) -> None:
        parts = await _collect(_model(fake_goose(HELLO)))
        assert _types(parts) == [TextStart, TextDelta, TextDelta, TextEnd, Finish]
        assert "".join(p.text for p in parts if isinstance(p, TextDelta)) == "Hello, world"
        assert parts[-1] == Finish(reason="stop", usage=Usage(output_tokens=12))

    async def test_malformed_lines_skipped(
        self, fake_goose: FakeGoose, caplog: pytest.LogCaptureFixture
    ) -> None:
        lines = [HELLO[0], "this is not json", '{"type": "mystery"}', *HELLO[1:]]
        with caplog.at_level(logging.WARNING):
            parts = await _collect(_model(fake_goose(lines)))
        assert _types(parts) == [TextStart, TextDelta, TextDelta, TextEnd, Finish]
        assert "Failed to parse stream line" in caplog.text

    async def test_tool_round_trip(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(
            [
                message("assistant", text_item("Checking")),
                message("assistant", tool_request("t1", "shell", {"command": "ls"})),
                message("user", tool_response("t1", [text_item("a.txt")])),
                message("assistant", text_item("Found a.txt")),
                complete(),
            ]
        )
        parts = await _collect(_model(script))
        assert _types(parts) == [
            TextStart,
            TextDelta,
            TextEnd,
            ToolCall,
            ToolResult,
            TextStart,
            TextDelta,
            TextEnd,
            Finish,
        ]
        result = parts[4]
        assert isinstance(result, ToolResult)
        assert result.name == "shell"
        assert result.output == "a.txt"

    async def test_missing_complete_still_finishes(self, fake_goose: FakeGoose) -> None:
        parts = await _collect(_model(fake_goose([HELLO[0]])))
        assert parts[-2:] == [
            TextEnd(id=parts[0].id),
            Finish(reason="stop", usage=Usage()),
        ]

    async def test_error_event(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(
            [
                message("assistant", text_item("partial")),
                {"type": "error", "error": "provider overloaded"},
                complete(),
            ]
        )
        parts = await _collect(_model(script))
        assert _types(parts) == [TextStart, TextDelta, TextEnd, ErrorPart]
        error = parts[-1]
        assert error.kind is ErrorKind.UPSTREAM
        assert error.message == "provider overloaded"
        assert isinstance(error.error, UpstreamError)

    async def test_error_event_without_message(self, fake_goose: FakeGoose) -> None:
        parts = await _collect(_model(fake_goose([{"type": "error"}])))
        assert parts[-1].message == "Unknown error"

    async def test_non_zero_exit(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([], exit_code=3, stderr="config missing")
        parts = await _collect(_model(script))
        assert len(parts) == 1
        error = parts[0]
        assert isinstance(error, ErrorPart)
        assert error.kind is ErrorKind.PROCESS
        assert isinstance(error.error, ProcessError)
        assert error.error.exit_code == 3
        assert "config missing" in error.error.stderr

    async def test_non_zero_exit_after_complete_keeps_finish(
        self, fake_goose: FakeGoose
    ) -> None:
        script = fake_goose(HELLO, exit_code=1, stderr="session save failed")
        parts = await _collect(_model(script))
        assert isinstance(parts[-1], Finish)
        assert not any(isinstance(p, ErrorPart) for p in parts)

    async def test_missing_binary(self, tmp_path: Path) -> None:
        parts = await _collect(_model(tmp_path / "nope"))
        assert len(parts) == 1
        assert parts[0].kind is ErrorKind.SPAWN
        assert isinstance(parts[0].error, SpawnError)

    async def test_timeout(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([message("assistant", text_item("slow"))], sleep=30)
        parts = await _collect(_model(script, timeout_ms=300))
        assert _types(parts) == [TextStart, TextDelta, TextEnd, ErrorPart]
        assert parts[-1].kind is ErrorKind.TIMEOUT
        assert parts[-1].retryable is True

    async def test_call_timeout_overrides_settings(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([], sleep=30)
        parts = await _collect(_model(script), timeout_ms=200)
        assert parts[-1].kind is ErrorKind.TIMEOUT


    async def test_timeout_when_child_outlives_goose(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([{"type": "notification"}], background=20)
        parts = await asyncio.wait_for(
            _collect(_model(script, timeout_ms=500)), timeout=5
        )
        assert _types(parts) == [ErrorPart]
        assert parts[0].kind is ErrorKind.TIMEOUT

    async def test_zero_call_timeout_rejected(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(HELLO)
        model = _model(script, timeout_ms=60_000)
        with pytest.raises(ValueError, match="timeout_ms"):
            model.build_request("hi", timeout_ms=0)
        with pytest.raises(ValueError):
            await _collect(model, timeout_ms=0)
        assert not (script.parent / "args.txt").exists()

    def test_none_call_timeout_uses_settings(self, fake_goose: FakeGoose) -> None:
        model = _model(fake_goose(), timeout_ms=1_234)
        assert model.build_request("hi").timeout_ms == 1_234
        assert model.build_request("hi", timeout_ms=7).timeout_ms == 7


class TestStreamCancellation:
    async def test_pre_cancelled(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(HELLO)
        token = CancellationToken()
        token.cancel()
        parts = await _collect(_model(script), cancellation=token)
        assert len(parts) == 1
        assert parts[0].kind is ErrorKind.ABORTED
        assert not (script.parent / "args.txt").exists()

    async def test_cancel_mid_stream(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([message("assistant", text_item("working"))], sleep=30)
        token = CancellationToken()
        parts: list[GenerationPart] = []
        async for part in _model(script).stream("hi", cancellation=token):
            parts.append(part)
            if isinstance(part, TextDelta):
                token.cancel()
        assert _types(parts) == [TextStart, TextDelta, TextEnd, ErrorPart]
        assert parts[-1].kind is ErrorKind.ABORTED
        assert parts[-1].retryable is False

    async def test_early_break_reaps_process(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([message("assistant", text_item("x"))], sleep=30)
        stream = _model(script).stream("hi")
        async for _part in stream:
            break
        await asyncio.wait_for(stream.aclose(), timeout=10)


# ------------------------------------------------------------------ #
# Request assembly
# ------------------------------------------------------------------ #


class TestInvocation:
    async def test_args(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(HELLO)
        model = _model(
            script,
            session_name="proj",
            resume=True,
            args=["--with-builtin", "developer"],
        )
        await _collect(model, "do it", system="be terse")
        assert recorded_args(script) == [
            "run",
            "--output-format",
            "stream-json",
            "--system",
            "be terse",
            "-t",
            "do it",
            "--name",
            "proj",
            "--resume",
            "--with-builtin",
            "developer",
        ]

    async def test_message_list_prompt(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(HELLO)
        prompt = [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": [{"type": "text", "text": "question"}]},
        ]
        await _collect(_model(script), prompt)
        args = recorded_args(script)
        assert args[args.index("--system") + 1] == "sys"
        assert args[args.index("-t") + 1] == "question"

    async def test_env(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(HELLO)
        model = _model(
            script,
            "anthropic/claude-sonnet-4-5",
            api_key="sk-ant-test",
            max_turns=3,
            env={"GB_EXTRA": "1"},
        )
        await _collect(model)
        env = recorded_env(script)
        assert env["GOOSE_DISABLE_KEYRING"] == "1"
        assert env["GOOSE_PROVIDER"] == "anthropic"
        assert env["GOOSE_MODEL"] == "claude-sonnet-4-5"
        assert env["ANTHROPIC_API_KEY"] == "sk-ant-test"
        assert env["GOOSE_MAX_TURNS"] == "3"
        assert env["GB_EXTRA"] == "1"

    def test_repr(self) -> None:
        assert repr(GooseLanguageModel("openai/gpt-4o")) == (
            "GooseLanguageModel(model_id='openai/gpt-4o')"
        )


# ------------------------------------------------------------------ #
# Non-streaming
# ------------------------------------------------------------------ #


class TestGenerate:
    async def test_aggregates(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(
            [
                message("assistant", text_item("Let me check. ")),
                message("assistant", tool_request("t1", "shell")),
                message("user", tool_response("t1", [text_item("ok")])),
                "garbage line",
                message("assistant", text_item("All good.")),
                complete(99),
            ]
        )
        result = await _model(script).generate("hi")
        assert result.text == "Let me check. All good."
        assert result.finish_reason == "stop"
        assert result.usage == Usage(output_tokens=99)
        assert [c.name for c in result.tool_calls] == ["shell"]
        assert [r.output for r in result.tool_results] == ["ok"]
        assert len(result.warnings) == 1

    async def test_error_event_raises(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([{"type": "error", "error": "bad key"}])
        with pytest.raises(UpstreamError, match="bad key"):
            await _model(script).generate("hi")

    async def test_non_zero_exit_raises(self, fake_goose: FakeGoose) -> None:
        script = fake_goose(HELLO, exit_code=2, stderr="oops")
        with pytest.raises(ProcessError) as exc_info:
            await _model(script).generate("hi")
        assert exc_info.value.exit_code == 2

    async def test_pre_cancelled_raises(self, fake_goose: FakeGoose) -> None:
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AbortedError):
            await _model(fake_goose(HELLO)).generate("hi", cancellation=token)

    async def test_missing_binary_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SpawnError):
            await _model(tmp_path / "nope").generate("hi")


class TestStreamText:
    async def test_yields_text(self, fake_goose: FakeGoose) -> None:
        chunks = [c async for c in _model(fake_goose(HELLO)).stream_text("hi")]
        assert chunks == ["Hello", ", world"]

    async def test_raises_on_error(self, fake_goose: FakeGoose) -> None:
        script = fake_goose([{"type": "error", "error": "nope"}])
        with pytest.raises(UpstreamError):
            async for _chunk in _model(script).stream_text("hi"):
                pass
