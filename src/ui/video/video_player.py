import os
import logging

from PyQt6.QtWidgets import QWidget, QVBoxLayout, QFrame
from PyQt6.QtCore import Qt, QTimer, pyqtSignal

from .player_controls import MPVSignals
from src.utils.file_utils import get_mpv_dir

logger = logging.getLogger(__name__)

# --------------------------------------------------
# mpv bootstrap
# --------------------------------------------------

def _setup_mpv_path():
    """Put a bundled libmpv on PATH so the mpv module can load it."""
    mpv_dir = get_mpv_dir()
    if mpv_dir is None:
        return
    mpv_dir = str(mpv_dir)
    current_path = os.environ.get("PATH", "")
    if mpv_dir not in current_path:
        os.environ["PATH"] = mpv_dir + os.pathsep + current_path
        logger.debug(f"Added bundled mpv to PATH: {mpv_dir}")


_setup_mpv_path()

import mpv  # noqa: E402


# --------------------------------------------------
# Video view
# --------------------------------------------------

class VideoView(QWidget):
    """
    Embedded mpv surface for one item at a time.

    Signals are emitted on the UI thread:
        ended: playback reached the end (never while looping)
        failed(reason): the file could not be opened or decoding failed
        ready: the file loaded and playback can start
        clicked: the surface was clicked/tapped
    """

    ended = pyqtSignal()
    failed = pyqtSignal(str)
    ready = pyqtSignal()
    clicked = pyqtSignal()

    def __init__(self, parent=None, *, volume: int = 80):
        super().__init__(parent)
        self.url = None
        self._loop = False
        self._cleanup_started = False
        self.signals = MPVSignals()

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self.video_container = QFrame(self)
        self.video_container.setAttribute(Qt.WidgetAttribute.WA_NativeWindow, True)
        self.video_container.setAttribute(Qt.WidgetAttribute.WA_DontCreateNativeAncestors, True)
        self.video_container.setStyleSheet("background-color: black;")
        layout.addWidget(self.video_container)

        self._setup_player(volume)
        self._connect_signals()

    def _setup_player(self, volume: int):
        self.player = mpv.MPV(
            wid=int(self.video_container.winId()),
            osc="no",
            input_default_bindings="no",
            input_vo_keyboard="no",
            input_cursor="no",
            keep_open="yes",
            hwdec="auto-safe",
            ytdl="yes",
            msg_level="all=no",
            cache="yes",
        )
        self.player.volume = max(0, min(100, int(volume)))  # type: ignore[attr-defined]
        self.player.observe_property("eof-reached", self._mpv_eof)
        self.player.register_event_callback(self._mpv_event)

    def _connect_signals(self):
        self.signals.eof.connect(self._on_eof)
        self.signals.loaded.connect(self.ready.emit)
        self.signals.error.connect(self.failed.emit)

    # mpv thread callbacks: only emit signals here

    def _mpv_eof(self, _, value):
        if value and not self._loop:
            self.signals.eof.emit()

    def _mpv_event(self, event):
        event_id = event.event_id.value
        if event_id == mpv.MpvEventID.FILE_LOADED:
            self.signals.loaded.emit()
        elif event_id == mpv.MpvEventID.END_FILE:
            data = event.data
            if data is not None and data.reason == mpv.MpvEventEndFile.ERROR:
                self.signals.error.emit(f"mpv error {data.error}")

    def _on_eof(self):
        if self._cleanup_started:
            return
        self.ended.emit()

    # --------------------------------------------------

    def load(self, url: str, *, loop: bool = False, paused: bool = False):
        """Start ``url`` from the beginning."""
        if self._cleanup_started:
            return
        self.url = url
        self.set_loop(loop)
        logger.info(f"Playing video {url[:80]}")
        self.player.play(url)
        self.player.pause = paused  # type: ignore[attr-defined]

    def reload(self):
        """Re-open the current url after a playback error."""
        if self.url and not self._cleanup_started:
            logger.info(f"Reloading video {self.url[:80]}")
            self.player.play(self.url)
            self.player.pause = False  # type: ignore[attr-defined]

    def set_loop(self, loop: bool):
        self._loop = loop
        self.player.loop_file = "inf" if loop else "no"

    def set_paused(self, paused: bool):
        if not self._cleanup_started and self.url:
            self.player.pause = paused  # type: ignore[attr-defined]

    def stop(self):
        self.url = None
        if not self._cleanup_started:
            self.player.command("stop")

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit()
            event.accept()
            return
        super().mousePressEvent(event)

    def cleanup(self):
        self._cleanup_started = True
        try:
            self.player.unregister_event_callback(self._mpv_event)
        except ValueError:
            pass
        self.player.terminate()
        QTimer.singleShot(0, self.deleteLater)
