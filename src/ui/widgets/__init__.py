"""Reusable UI widgets."""

from .notification_widgets import ToastKind, ToastNotification

__all__ = ['ToastKind', 'ToastNotification']
