"""
Top-level window.

Routes between the login, dashboard and play-mode pages based on the auth
state, and is the full-screen host for the playback sequencer.
"""
import logging
from concurrent.futures import Future
from typing import Optional

from PyQt6.QtCore import Qt, QEvent, pyqtSignal
from PyQt6.QtWidgets import QMainWindow, QStackedWidget

from src.core.dto.user import UserHandle
from src.core.errors import PlaybackError
from src.ui.auth.login_window import LoginWindow
from src.ui.common.settings_dialog import SettingsDialog
from src.ui.common.theme import Colors
from src.ui.dashboard.dashboard_window import DashboardWindow
from src.ui.player.playback_window import PlaybackWindow
from src.ui.widgets.notification_widgets import ToastNotification

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    # Auth callbacks may fire on worker threads
    _auth_changed = pyqtSignal(object)

    def __init__(self, core):
        super().__init__()
        self.core = core
        self.dashboard: Optional[DashboardWindow] = None
        self.player: Optional[PlaybackWindow] = None
        self._user: Optional[UserHandle] = None
        self._was_fullscreen = False

        self.setWindowTitle("Infinite Loop Display")
        self.resize(1280, 800)
        self.setStyleSheet(f"QMainWindow {{ background-color: {Colors.BG_PRIMARY}; }}")

        self.pages = QStackedWidget()
        self.setCentralWidget(self.pages)
        self.login = LoginWindow(core.auth)
        self.login.settings_requested.connect(self._open_settings)
        self.pages.addWidget(self.login)
        self.toast = ToastNotification(self)

        self._auth_changed.connect(self._route)
        self._unsubscribe_auth = core.auth.on_auth_change(self._auth_changed.emit)
        self._route(core.auth.current_user())

    # --------------------------------------------------
    # Routing
    # --------------------------------------------------

    def _route(self, user: Optional[UserHandle]):
        if user is None:
            self._close_player()
            self._close_dashboard()
            self._user = None
            self.login.reset()
            self.pages.setCurrentWidget(self.login)
            return
        if self._user is not None and self._user.uid == user.uid and self.dashboard is not None:
            return
        self._close_player()
        self._close_dashboard()
        self._user = user
        self._show_dashboard()

    def _show_dashboard(self):
        self.dashboard = DashboardWindow(self.core, self._user)
        self.dashboard.play_requested.connect(self._enter_play_mode)
        self.dashboard.sign_out_requested.connect(self._sign_out)
        self.dashboard.settings_requested.connect(self._open_settings)
        self.pages.addWidget(self.dashboard)
        self.pages.setCurrentWidget(self.dashboard)

    def _close_dashboard(self):
        if self.dashboard is None:
            return
        self.dashboard.shutdown()
        self.pages.removeWidget(self.dashboard)
        self.dashboard.deleteLater()
        self.dashboard = None

    def _enter_play_mode(self, start_id: str = ""):
        if self._user is None:
            return
        self._close_player()
        self.player = PlaybackWindow(self.core, self._user, self, start_id=start_id)
        self.player.closed.connect(self._leave_play_mode)
        self.player.notice.connect(self._show_notice)
        self.pages.addWidget(self.player)
        self.pages.setCurrentWidget(self.player)
        self.player.setFocus()
        self.player.start()

    def _leave_play_mode(self):
        self._close_player()
        if self.dashboard is not None:
            self.pages.setCurrentWidget(self.dashboard)
            self.dashboard.refresh()

    def _close_player(self):
        if self.player is None:
            return
        player, self.player = self.player, None
        player.shutdown()
        self.pages.removeWidget(player)
        player.deleteLater()
        if self.isFullScreen():
            self.showNormal()

    def _show_notice(self, text: str, is_error: bool):
        if is_error:
            self.toast.show_error(text)
        else:
            self.toast.show_message(text)

    def _sign_out(self):
        logger.info("Signing out")
        self.core.auth.sign_out()

    def _open_settings(self):
        SettingsDialog(self.core.db, self).exec()

    # --------------------------------------------------
    # Full-screen host
    # --------------------------------------------------

    def request_fullscreen(self) -> "Future[None]":
        future: "Future[None]" = Future()
        self.showFullScreen()
        if self.windowState() & Qt.WindowState.WindowFullScreen:
            future.set_result(None)
        else:
            future.set_exception(PlaybackError("Full-screen mode is not available"))
        return future

    def exit_fullscreen(self) -> "Future[None]":
        future: "Future[None]" = Future()
        self.showNormal()
        if self.windowState() & Qt.WindowState.WindowFullScreen:
            future.set_exception(PlaybackError("Window is still full screen"))
        else:
            future.set_result(None)
        return future

    def changeEvent(self, event):
        if event.type() == QEvent.Type.WindowStateChange:
            is_fullscreen = bool(self.windowState() & Qt.WindowState.WindowFullScreen)
            if self._was_fullscreen and not is_fullscreen and self.player is not None:
                self.player.on_host_fullscreen_exited()
            self._was_fullscreen = is_fullscreen
        super().changeEvent(event)

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape and self.isFullScreen():
            self.showNormal()
            return
        super().keyPressEvent(event)

    # --------------------------------------------------

    def closeEvent(self, event):
        logger.info("Main window closing")
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        self._close_player()
        self._close_dashboard()
        self.login.shutdown()
        super().closeEvent(event)
