"""Once-per-frame callback coalescing on the running event loop."""

from __future__ import annotations

import asyncio
from typing import Callable

from model_diagram.config import FRAME_INTERVAL


class FrameScheduler:
    """Runs requested callbacks at most once each on the next frame tick.

    Requests made before the tick fires are merged; a callback requested
    twice in the same frame runs once.
    """

    def __init__(self, interval: float = FRAME_INTERVAL):
        self.interval = interval
        self._callbacks: list[Callable[[], None]] = []
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def request(self, callback: Callable[[], None]) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)
        if self._handle is None:
            loop = asyncio.get_running_loop()
            self._handle = loop.call_later(self.interval, self._tick)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._callbacks.clear()

    def _tick(self) -> None:
        self._handle = None
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
