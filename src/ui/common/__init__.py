"""Common utilities and shared components."""

from .qt_scheduler import QtScheduler, QtTimerHandle
from .settings_dialog import SettingsDialog
from .workers import TokenWorker, WorkerPool

__all__ = [
    'QtScheduler',
    'QtTimerHandle',
    'SettingsDialog',
    'TokenWorker',
    'WorkerPool',
]
