"""
Deferred-callback primitives exposed to scripts.

Callbacks are recorded but never run: a run only reflects synchronous
execution, so anything a callback would print is not part of the result.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class PendingCallback:
    timer_id: int
    callback: Callable[..., object]
    delay_ms: float
    repeat: bool
    args: tuple[object, ...]


class TimerRegistry:
    def __init__(self) -> None:
        self._pending: dict[int, PendingCallback] = {}
        self._next_id = 1

    def _register(
        self,
        callback: Callable[..., object],
        delay_ms: float,
        repeat: bool,
        args: tuple[object, ...],
    ) -> int:
        if not callable(callback):
            raise TypeError("callback must be callable")
        delay = float(delay_ms)
        timer_id = self._next_id
        self._next_id += 1
        self._pending[timer_id] = PendingCallback(
            timer_id=timer_id,
            callback=callback,
            delay_ms=max(0.0, delay),
            repeat=repeat,
            args=args,
        )
        return timer_id

    def set_timeout(self, callback: Callable[..., object], delay_ms: float = 0, *args: object) -> int:
        return self._register(callback, delay_ms, repeat=False, args=args)

    def set_interval(self, callback: Callable[..., object], delay_ms: float = 0, *args: object) -> int:
        return self._register(callback, delay_ms, repeat=True, args=args)

    def clear(self, timer_id: object) -> None:
        if isinstance(timer_id, int):
            _ = self._pending.pop(timer_id, None)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def bindings(self) -> dict[str, object]:
        return {
            "set_timeout": self.set_timeout,
            "set_interval": self.set_interval,
            "clear_timeout": self.clear,
            "clear_interval": self.clear,
        }
