import os
import sys
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def get_resource_path(*parts: str) -> Path:
    """
    Absolute path of a file shipped next to the sources.

    e.g. get_resource_path('resources', 'icon.ico')
    """
    return PROJECT_ROOT.joinpath(*parts)


def get_data_dir() -> Path:
    """
    Directory holding the database, logs and offline media.

    ``LOOP_DISPLAY_HOME`` overrides the default of ``~/.infinite-loop-display``.
    """
    override = os.environ.get("LOOP_DISPLAY_HOME")
    base = Path(override).expanduser() if override else Path.home() / ".infinite-loop-display"
    base.mkdir(parents=True, exist_ok=True)
    return base


def get_mpv_dir() -> Optional[Path]:
    """
    Directory holding a private libmpv, if one is installed.

    ``LOOP_DISPLAY_MPV_DIR`` wins over an ``mpv/`` folder in the project root.
    """
    override = os.environ.get("LOOP_DISPLAY_MPV_DIR")
    candidate = Path(override).expanduser() if override else get_resource_path("mpv")
    return candidate if candidate.is_dir() else None


# DWMWA_USE_IMMERSIVE_DARK_MODE: 20 on Windows 10 20H1+, 19 on 1809-1909
_DARK_MODE_ATTRIBUTES = (20, 19)


def apply_windows_dark_mode(widget) -> bool:
    """
    Ask DWM for a dark title bar on ``widget``'s window. No-op off Windows.

    Returns True if one of the attributes was accepted.
    """
    if sys.platform != "win32":
        return False

    import ctypes

    try:
        set_attribute = ctypes.windll.dwmapi.DwmSetWindowAttribute
    except (AttributeError, OSError):
        return False

    hwnd = int(widget.winId())
    enabled = ctypes.c_int(1)
    for attribute in _DARK_MODE_ATTRIBUTES:
        if set_attribute(hwnd, attribute, ctypes.byref(enabled), ctypes.sizeof(enabled)) == 0:
            return True
    return False
