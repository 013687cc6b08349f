"""Goose CLI language model — streaming and non-streaming generation."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from goosebridge.bridge.args import build_cli_args, build_env
from goosebridge.bridge.cancel import CancellationToken
from goosebridge.bridge.errors import GooseError, UpstreamError, classify
from goosebridge.bridge.events import ErrorEvent, UnparseableEvent, decode_line
from goosebridge.bridge.parts import (
    ErrorPart,
    Finish,
    GenerateResult,
    GenerationPart,
    TextDelta,
    ToolCall,
    ToolResult,
)
from goosebridge.bridge.process import ProcessSupervisor
from goosebridge.bridge.prompt import Prompt, extract_prompt_parts
from goosebridge.bridge.request import GenerationRequest, SessionDirectives
from goosebridge.bridge.translator import StreamTranslator
from goosebridge.config.models import GooseSettings
from goosebridge.constants import FINISH_REASON_STOP, LOCAL_MODEL_ID

logger = logging.getLogger(__name__)


class GooseLanguageModel:
    """Language model backed by the ``goose`` CLI.

    Each call spawns ``goose run --output-format stream-json`` and
    translates its JSONL output into :mod:`goosebridge.bridge.parts`.

    * :meth:`stream` yields parts as they arrive and always ends with
      exactly one ``Finish`` or ``ErrorPart``.
    * :meth:`generate` runs the same pipeline to completion and returns
      a :class:`GenerateResult`, raising typed errors instead.
    """

    provider = "goose"

    def __init__(
        self,
        model_id: str = LOCAL_MODEL_ID,
        settings: GooseSettings | None = None,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self._model_id = model_id
        self._settings = settings or GooseSettings()
        self._log = log or logger

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def settings(self) -> GooseSettings:
        return self._settings

    def __repr__(self) -> str:
        return f"GooseLanguageModel(model_id={self._model_id!r})"

    # ------------------------------------------------------------------ #
    # Request assembly
    # ------------------------------------------------------------------ #

    def build_request(
        self,
        prompt: Prompt,
        *,
        system: str | None = None,
        cancellation: CancellationToken | None = None,
        timeout_ms: int | None = None,
    ) -> GenerationRequest:
        """Combine *prompt* with this model's settings into a request.

        An explicit *system* overrides any system messages in *prompt*; a
        *timeout_ms* of ``None`` falls back to the configured budget.
        """
        if timeout_ms is None:
            timeout_ms = self._settings.timeout_ms
        elif timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        parts = extract_prompt_parts(prompt)
        return GenerationRequest(
            user_prompt=parts.prompt,
            system_prompt=system if system is not None else parts.system,
            session=SessionDirectives(
                name=self._settings.session_name,
                resume=self._settings.resume,
            ),
            extra_args=tuple(self._settings.args),
            cancellation=cancellation,
            timeout_ms=timeout_ms,
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def stream(
        self,
        prompt: Prompt,
        *,
        system: str | None = None,
        cancellation: CancellationToken | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncIterator[GenerationPart]:
        """Stream generation parts for *prompt*.

        Failures are reported as a final ``ErrorPart`` (its ``error``
        attribute holds the typed exception); the subprocess has been
        reaped by the time it is yielded.
        """
        request = self.build_request(
            prompt, system=system, cancellation=cancellation, timeout_ms=timeout_ms
        )
        args = build_cli_args(request)
        translator = self._new_translator()
        self._log.debug(
            "Starting Goose CLI streaming: %s %s", self._settings.bin_path, args
        )

        try:
            async with contextlib.aclosing(
                self._pipeline(request, args, translator, strict=False)
            ) as parts:
                async for part in parts:
                    yield part
        except Exception as exc:
            error = classify(exc, self._settings.bin_path, args)
            if translator.finished:
                self._log.warning("Goose CLI failed after finishing: %s", error)
                return
            self._log.debug("Goose CLI stream failed: %s", error)
            for part in translator.fail(error):
                yield part

    async def generate(
        self,
        prompt: Prompt,
        *,
        system: str | None = None,
        cancellation: CancellationToken | None = None,
        timeout_ms: int | None = None,
    ) -> GenerateResult:
        """Run goose to completion and return the aggregated result.

        Raises:
            GooseError: one of its subclasses for every failure mode,
                including an ``error`` event from goose.
        """
        request = self.build_request(
            prompt, system=system, cancellation=cancellation, timeout_ms=timeout_ms
        )
        args = build_cli_args(request)
        translator = self._new_translator()
        self._log.debug(
            "Starting Goose CLI generation: %s %s", self._settings.bin_path, args
        )

        text: list[str] = []
        result = GenerateResult(text="", finish_reason=FINISH_REASON_STOP)
        try:
            async with contextlib.aclosing(
                self._pipeline(
                    request, args, translator, strict=True, warnings=result.warnings
                )
            ) as parts:
                async for part in parts:
                    if isinstance(part, TextDelta):
                        text.append(part.text)
                    elif isinstance(part, ToolCall):
                        result.tool_calls.append(part)
                    elif isinstance(part, ToolResult):
                        result.tool_results.append(part)
                    elif isinstance(part, Finish):
                        result.finish_reason = part.reason
                        result.usage = part.usage
        except GooseError:
            raise
        except Exception as exc:
            raise classify(exc, self._settings.bin_path, args) from exc

        result.text = "".join(text)
        return result

    async def stream_text(
        self,
        prompt: Prompt,
        *,
        system: str | None = None,
        cancellation: CancellationToken | None = None,
        timeout_ms: int | None = None,
    ) -> AsyncIterator[str]:
        """Yield only the text deltas; raise the typed error on failure."""
        async with contextlib.aclosing(
            self.stream(
                prompt, system=system, cancellation=cancellation, timeout_ms=timeout_ms
            )
        ) as parts:
            async for part in parts:
                if isinstance(part, TextDelta):
                    yield part.text
                elif isinstance(part, ErrorPart) and part.error is not None:
                    raise part.error

    # ------------------------------------------------------------------ #
    # Pipeline
    # ------------------------------------------------------------------ #

    def _new_translator(self) -> StreamTranslator:
        return StreamTranslator(self._settings.audience, log=self._log)

    async def _pipeline(
        self,
        request: GenerationRequest,
        args: list[str],
        translator: StreamTranslator,
        *,
        strict: bool,
        warnings: list[str] | None = None,
    ) -> AsyncIterator[GenerationPart]:
        """Spawn -> read lines -> decode -> translate.

        Raises ``GooseError`` subclasses.  With *strict* unset, a failed
        exit after the stream already finished is only logged.
        """
        bin_path = self._settings.bin_path
        supervisor = ProcessSupervisor(
            bin_path,
            args,
            timeout_ms=request.timeout_ms,
            env=build_env(self._settings, self._model_id),
            cancellation=request.cancellation,
            cwd=self._settings.cwd,
            log=self._log,
        )

        async with supervisor:
            async with contextlib.aclosing(supervisor.lines()) as lines:
                async for line in lines:
                    event = decode_line(line)
                    if isinstance(event, UnparseableEvent):
                        self._log.warning(
                            "Failed to parse stream line (%s): %s",
                            event.reason,
                            event.raw,
                        )
                        if warnings is not None:
                            warnings.append(f"skipped unparseable line: {event.reason}")
                        continue
                    if isinstance(event, ErrorEvent):
                        raise UpstreamError(
                            event.error or "Unknown error", bin_path=bin_path, args=args
                        )
                    self._log.debug("Stream event: %s", event.type)
                    for part in translator.feed(event):
                        yield part

            try:
                await supervisor.wait()
            except GooseError as exc:
                if strict or not translator.finished:
                    raise
                self._log.warning("Goose CLI exited badly after completing: %s", exc)

        for part in translator.finish():
            yield part
