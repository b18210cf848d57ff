"""
Error taxonomy shared by core services and UI.

UI code catches these at the window boundary; anything else is a bug and
propagates to the startup handler in main.py.
"""


class AppError(RuntimeError):
    """Base class for recoverable application errors."""


class ValidationError(AppError):
    """Missing required field or malformed URL in a submission."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class AuthError(AppError):
    """Bad credentials, weak password, or no signed-in user."""


class PlaybackError(AppError):
    """A media item failed to load or play."""


class ConnectivityError(AppError):
    """The media repository or auth backend could not be reached."""
