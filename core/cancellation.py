"""
Cooperative cancellation for the ingestion pipeline.

A CancellationToken is created once per run and passed explicitly to every
component that suspends (HTTP calls, backoff waits). It only ever transitions
from not-cancelled to cancelled.
"""

import asyncio
import signal
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from core.exceptions import CancellationError

T = TypeVar("T")


class CancellationToken:
    """Write-once cancellation flag backed by an asyncio.Event."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self, **context) -> None:
        if self._event.is_set():
            raise CancellationError(
                f"Cancellation requested: {self.reason}",
                context=context
            )

    async def wait(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, waking early on cancellation.

        Returns:
            True if the token was cancelled before the wait elapsed
        """
        if seconds <= 0:
            return self._event.is_set()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def guard(self, start: Callable[[], Awaitable[T]], **context) -> T:
        """
        Await `start()`, abandoning it if the token fires first.

        `start` is only called when the token has not fired yet.

        Raises:
            CancellationError: If cancellation wins the race
        """
        self.raise_if_cancelled(**context)

        work = asyncio.ensure_future(start())
        stop = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, stop}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            stop.cancel()

        if not work.done():
            work.cancel()
            try:
                await work
            except asyncio.CancelledError:
                pass
            raise CancellationError(
                f"Cancellation requested: {self.reason}",
                context=context
            )

        return work.result()


def install_signal_handlers(
    token: CancellationToken,
    signals: Iterable[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
    loop: Optional[asyncio.AbstractEventLoop] = None
) -> None:
    """Cancel `token` when the process receives one of `signals`."""
    loop = loop or asyncio.get_running_loop()
    for sig in signals:
        loop.add_signal_handler(sig, token.cancel, f"received {sig.name}")
