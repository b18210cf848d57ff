"""
Timer abstraction used by the sequencer.

The core never touches QTimer directly so it can be driven by a manual clock
in tests. ``src.ui.common.qt_scheduler.QtScheduler`` is the production
implementation.
"""
from __future__ import annotations

from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Stop the timer. Safe to call after it fired or more than once."""

    @property
    def active(self) -> bool:
        ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once on the UI thread after ``delay_ms``."""


class TimerGroup:
    """
    Named one-shot timers owned by a single component.

    Arming a name that is already pending cancels the old timer first, so at
    most one timer per name is ever live.
    """

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler
        self._handles: dict[str, TimerHandle] = {}

    def arm(self, name: str, delay_ms: int, callback: Callable[[], None]) -> None:
        self.cancel(name)

        def fire() -> None:
            # Only drop our own entry; a re-arm may already have replaced it.
            if self._handles.get(name) is handle:
                del self._handles[name]
            callback()

        handle = self._scheduler.call_later(max(0, int(delay_ms)), fire)
        self._handles[name] = handle

    def cancel(self, name: str) -> None:
        handle = self._handles.pop(name, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self, *, keep: tuple[str, ...] = ()) -> None:
        for name in [n for n in self._handles if n not in keep]:
            self.cancel(name)

    def is_armed(self, name: str) -> bool:
        handle = self._handles.get(name)
        return handle is not None and handle.active

    def __len__(self) -> int:
        return len(self._handles)
