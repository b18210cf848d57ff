"""QTimer-backed implementation of the core Scheduler protocol."""
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer


class QtTimerHandle:
    def __init__(self, timer: QTimer):
        self._timer: Optional[QTimer] = timer

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer.deleteLater()
            self._timer = None

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def _fired(self) -> None:
        if self._timer is not None:
            self._timer.deleteLater()
            self._timer = None


class QtScheduler:
    """One-shot timers parented to ``owner`` so they die with the widget."""

    def __init__(self, owner: QObject):
        self._owner = owner

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> QtTimerHandle:
        timer = QTimer(self._owner)
        timer.setSingleShot(True)
        handle = QtTimerHandle(timer)

        def fire():
            handle._fired()
            callback()

        timer.timeout.connect(fire)
        timer.start(max(0, int(delay_ms)))
        return handle
