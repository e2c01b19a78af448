"""Cancellable delays and per-accessory named timer slots."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import Any


class TimerHandle:
    """Awaitable delay that resolves to ``True`` once elapsed, ``False`` once cancelled.

    Cancelling never raises into the awaiting coroutine: callers check the
    result and abandon the rest of their sequence when it is ``False``.
    """

    def __init__(self, duration: float) -> None:
        self.duration = duration
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future[bool] = self._loop.create_future()
        self._cancelled = False
        self._timer = self._loop.call_later(max(duration, 0.0), self._resolve, True)

    def _resolve(self, elapsed: bool) -> None:
        if not self._future.done():
            self._future.set_result(elapsed)

    def cancel(self) -> None:
        # An elapsed timer whose waiter has not resumed yet must still read as cancelled.
        self._cancelled = True
        self._timer.cancel()
        self._resolve(False)

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __await__(self) -> Generator[Any, None, bool]:
        return self._wait().__await__()

    async def _wait(self) -> bool:
        elapsed = await asyncio.shield(self._future)
        return elapsed and not self._cancelled

    def __repr__(self) -> str:
        status = "pending"
        if self.done:
            status = "cancelled" if self.cancelled else "elapsed"
        return f"TimerHandle(duration={self.duration!r}, {status})"


class CancellableDelay:
    @staticmethod
    def start(duration: float) -> TimerHandle:
        return TimerHandle(duration)


class TimerSlots:
    """Named timer slots for one accessory; at most one live handle per slot."""

    def __init__(self) -> None:
        self._handles: dict[str, TimerHandle] = {}

    def start(self, slot: str, duration: float) -> TimerHandle:
        self.cancel(slot)
        handle = CancellableDelay.start(duration)
        self._handles[slot] = handle
        return handle

    def get(self, slot: str) -> TimerHandle | None:
        return self._handles.get(slot)

    def cancel(self, slot: str) -> None:
        handle = self._handles.pop(slot, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for slot in list(self._handles):
            self.cancel(slot)

    def pending(self) -> list[str]:
        return sorted(slot for slot, handle in self._handles.items() if not handle.done)
