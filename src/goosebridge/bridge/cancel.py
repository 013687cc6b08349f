"""Caller-controlled cancellation for goose calls."""

from __future__ import annotations

import asyncio


class CancellationToken:
    """One-shot cancellation signal shared between a caller and a call.

    The asyncio counterpart of an abort signal: the caller keeps the
    token and calls :meth:`cancel`; the bridge checks it before spawning
    and watches it for the lifetime of the subprocess.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "Request aborted"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Trigger cancellation.  Later calls are no-ops."""
        if self._event.is_set():
            return
        if reason:
            self._reason = reason
        self._event.set()

    def cancel_after(self, delay: float) -> asyncio.TimerHandle:
        """Schedule :meth:`cancel` on the running loop after *delay* seconds."""
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self.cancel)

    async def wait(self) -> None:
        await self._event.wait()
