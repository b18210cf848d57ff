"""
Playback control widgets.

MPVSignals carries mpv callbacks (which arrive on mpv's event thread) over to
the UI thread. PlaybackControls is the prev / play-pause / fullscreen / next
bar shown over the display surface.
"""

from PyQt6.QtCore import Qt, QObject, pyqtSignal
from PyQt6.QtWidgets import QWidget, QHBoxLayout, QPushButton
import qtawesome as qta

from src.ui.common.theme import Colors, Spacing, Styles


class MPVSignals(QObject):
    eof = pyqtSignal()
    loaded = pyqtSignal()
    error = pyqtSignal(str)


class PlaybackControls(QWidget):
    prev_requested = pyqtSignal()
    next_requested = pyqtSignal()
    play_pause_requested = pyqtSignal()
    fullscreen_requested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        self.setStyleSheet("background: transparent;")

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(Spacing.SM)

        self.prev_btn = self._button("Previous", "fa5s.step-backward", self.prev_requested)
        self.play_btn = self._button("Pause", "fa5s.pause", self.play_pause_requested)
        self.fullscreen_btn = self._button("Full screen", "fa5s.expand", self.fullscreen_requested)
        self.fullscreen_btn.setStyleSheet(Styles.button_primary())
        self.next_btn = self._button("Next", "fa5s.step-forward", self.next_requested)

        for btn in (self.prev_btn, self.play_btn, self.fullscreen_btn, self.next_btn):
            layout.addWidget(btn)

    def _button(self, text: str, icon: str, signal) -> QPushButton:
        btn = QPushButton(text)
        btn.setIcon(qta.icon(icon, color=Colors.TEXT_WHITE))
        btn.setStyleSheet(Styles.button_overlay())
        btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        btn.setCursor(Qt.CursorShape.PointingHandCursor)
        btn.clicked.connect(signal.emit)
        return btn

    def set_playing(self, playing: bool, *, enabled: bool = True):
        """Play/pause only applies to videos; images disable the button."""
        self.play_btn.setEnabled(enabled)
        self.play_btn.setText("Pause" if playing else "Play")
        self.play_btn.setIcon(qta.icon("fa5s.pause" if playing else "fa5s.play", color=Colors.TEXT_WHITE))

    def set_navigation_enabled(self, enabled: bool):
        self.prev_btn.setEnabled(enabled)
        self.next_btn.setEnabled(enabled)
