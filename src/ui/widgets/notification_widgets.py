"""
Transient notifications.

A toast has a bold title line, an optional description and a kind that
picks the icon and accent colour. Toasts raised while one is visible are
queued and shown in order, so a playback failure is not hidden by the
offline notice that follows it.
"""
from collections import deque
from enum import Enum
from typing import Deque, NamedTuple, Optional

from PyQt6.QtCore import Qt, QTimer, QPropertyAnimation, QRectF
from PyQt6.QtGui import QPainter, QColor, QPainterPath, QPen
from PyQt6.QtWidgets import QWidget, QHBoxLayout, QVBoxLayout, QLabel, QPushButton
import qtawesome as qta

from src.ui.common.theme import Colors, Fonts, Spacing

_MAX_QUEUED = 5


class ToastKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_KIND_STYLE = {
    ToastKind.INFO: ("fa5s.info-circle", Colors.ACCENT_SECONDARY, "Notice"),
    ToastKind.SUCCESS: ("fa5s.check-circle", Colors.ACCENT_SUCCESS, "Success"),
    ToastKind.WARNING: ("fa5s.wifi", Colors.ACCENT_WARNING, "Offline"),
    ToastKind.ERROR: ("fa5s.exclamation-circle", Colors.ACCENT_ERROR, "Error"),
}


class _Toast(NamedTuple):
    kind: ToastKind
    title: str
    description: str
    duration: int


class ToastNotification(QWidget):
    """
    Toast shown at the top centre of its parent.

    Uses a ToolTip window so it stays above the embedded mpv surface, which
    paints over ordinary child widgets.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("toastNotification")
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint |
            Qt.WindowType.ToolTip |
            Qt.WindowType.WindowStaysOnTopHint
        )
        self.setAttribute(Qt.WidgetAttribute.WA_ShowWithoutActivating)
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.hide()

        self._queue: Deque[_Toast] = deque()
        self._current: Optional[_Toast] = None
        self._accent = QColor(Colors.BORDER_DEFAULT)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(Spacing.LG, Spacing.MD, Spacing.LG, Spacing.MD)
        layout.setSpacing(Spacing.MD)

        self.icon_label = QLabel()
        self.icon_label.setFixedSize(Spacing.ICON_LG, Spacing.ICON_LG)
        layout.addWidget(self.icon_label, 0, Qt.AlignmentFlag.AlignTop)

        text = QVBoxLayout()
        text.setSpacing(Spacing.XXS)
        self.title_label = QLabel()
        self.title_label.setStyleSheet(
            f"color: {Colors.TEXT_PRIMARY}; font-size: {Fonts.SIZE_LG}px; "
            f"font-weight: {Fonts.WEIGHT_SEMIBOLD}; background: transparent;"
        )
        self.description_label = QLabel()
        self.description_label.setWordWrap(True)
        self.description_label.setMaximumWidth(440)
        self.description_label.setStyleSheet(
            f"color: {Colors.TEXT_SECONDARY}; font-size: {Fonts.SIZE_MD}px; background: transparent;"
        )
        text.addWidget(self.title_label)
        text.addWidget(self.description_label)
        layout.addLayout(text, 1)

        close_btn = QPushButton()
        close_btn.setIcon(qta.icon('fa5s.times', color=Colors.TEXT_SECONDARY))
        close_btn.setFixedSize(Spacing.ICON_MD, Spacing.ICON_MD)
        close_btn.setFlat(True)
        close_btn.setStyleSheet(
            f"QPushButton {{ border: none; background: transparent; }} "
            f"QPushButton:hover {{ background-color: rgba(255,255,255,0.1); border-radius: {Spacing.RADIUS_LG}px; }}"
        )
        close_btn.clicked.connect(self._dismiss)
        close_btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        layout.addWidget(close_btn, 0, Qt.AlignmentFlag.AlignTop)

        self.hide_timer = QTimer(self)
        self.hide_timer.setSingleShot(True)
        self.hide_timer.timeout.connect(self._fade_out)

        self.fade_animation = QPropertyAnimation(self, b"windowOpacity")
        self.fade_animation.setDuration(250)

    def paintEvent(self, event):
        """Rounded card with a coloured accent bar on the left edge."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        path = QPainterPath()
        rect = QRectF(0.5, 0.5, self.width() - 1, self.height() - 1)
        path.addRoundedRect(rect, Spacing.RADIUS_XL, Spacing.RADIUS_XL)
        painter.fillPath(path, QColor(Colors.BG_TERTIARY))

        painter.save()
        painter.setClipPath(path)
        painter.fillRect(QRectF(0, 0, 4, self.height()), self._accent)
        painter.restore()

        painter.setPen(QPen(QColor(Colors.BORDER_DEFAULT), 1))
        painter.drawPath(path)

    # --------------------------------------------------
    # Public API
    # --------------------------------------------------

    def notify(self, kind: ToastKind, description: str, title: Optional[str] = None, duration: int = 3000):
        """Show a toast now, or queue it behind the visible one."""
        toast = _Toast(kind, title or _KIND_STYLE[kind][2], description, duration)
        if self._current is not None:
            if len(self._queue) >= _MAX_QUEUED:
                self._queue.popleft()
            self._queue.append(toast)
            return
        self._present(toast)

    def show_message(self, message: str, title: Optional[str] = None, duration: int = 3000):
        self.notify(ToastKind.INFO, message, title, duration)

    def show_success(self, message: str, title: Optional[str] = None, duration: int = 3000):
        self.notify(ToastKind.SUCCESS, message, title, duration)

    def show_warning(self, message: str, title: Optional[str] = None, duration: int = 4000):
        self.notify(ToastKind.WARNING, message, title, duration)

    def show_error(self, message: str, title: Optional[str] = None, duration: int = 4000):
        self.notify(ToastKind.ERROR, message, title, duration)

    def clear(self):
        """Drop queued toasts and hide the visible one."""
        self._queue.clear()
        self.hide_timer.stop()
        self.fade_animation.stop()
        self._current = None
        self.hide()

    # --------------------------------------------------

    def _present(self, toast: _Toast):
        self._current = toast
        icon_name, color, _ = _KIND_STYLE[toast.kind]
        self._accent = QColor(color)
        self.title_label.setText(toast.title)
        self.description_label.setText(toast.description)
        self.description_label.setVisible(bool(toast.description))
        self.icon_label.setPixmap(qta.icon(icon_name, color=color).pixmap(Spacing.ICON_LG, Spacing.ICON_LG))

        # ToolTip windows are top-level, so position in global coordinates
        parent = self.parentWidget()
        if parent is not None:
            self.adjustSize()
            top_left = parent.mapToGlobal(parent.rect().topLeft())
            self.move(top_left.x() + (parent.width() - self.width()) // 2,
                      top_left.y() + Spacing.XXXL)

        self._disconnect_fade()
        self.setWindowOpacity(0)
        self.show()
        self.raise_()
        self.fade_animation.setStartValue(0.0)
        self.fade_animation.setEndValue(1.0)
        self.fade_animation.start()
        self.hide_timer.start(toast.duration)

    def _disconnect_fade(self):
        try:
            self.fade_animation.finished.disconnect()
        except TypeError:
            pass

    def _fade_out(self):
        self._disconnect_fade()
        self.fade_animation.setStartValue(1.0)
        self.fade_animation.setEndValue(0.0)
        self.fade_animation.finished.connect(self._dismiss)
        self.fade_animation.start()

    def _dismiss(self):
        self.hide_timer.stop()
        self._disconnect_fade()
        self.hide()
        self._current = None
        if self._queue:
            self._present(self._queue.popleft())
