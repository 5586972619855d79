from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Cancel-and-restart timer around a single commit callback.

    Each ``push`` replaces the pending value and restarts the quiet period;
    the callback only sees the last value once ``delay_seconds`` pass with no
    further pushes.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[T], None]) -> None:
        self.delay_seconds = delay_seconds
        self.callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._value: T | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        self.cancel()
        self._value = value
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire)

    def _fire(self) -> None:
        value = self._value
        self._handle = None
        self._value = None
        self.callback(value)  # type: ignore[arg-type]

    def flush(self) -> None:
        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._value = None
