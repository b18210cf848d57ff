"""Sign-in and registration."""

from .login_window import LoginWindow

__all__ = ['LoginWindow']
