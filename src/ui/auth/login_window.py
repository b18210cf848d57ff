"""
Sign-in / registration page.

The page never routes by itself: a successful sign-in fires the auth
provider's change callback and the main window switches to the dashboard.
"""
import logging

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit,
                             QPushButton, QTabBar, QFrame)
import qtawesome as qta

from src.core.auth import MIN_PASSWORD_LENGTH, check_credentials
from src.core.errors import AuthError
from src.ui.auth.auth_workers import AuthWorker
from src.ui.common.theme import Colors, Fonts, Spacing, Styles
from src.ui.common.workers import WorkerPool
from src.ui.widgets.notification_widgets import ToastNotification

logger = logging.getLogger(__name__)

_SIGN_IN_TAB = 0
_REGISTER_TAB = 1


class LoginWindow(QWidget):
    settings_requested = pyqtSignal()

    def __init__(self, auth, parent=None):
        super().__init__(parent)
        self._auth = auth
        self._workers = WorkerPool()
        self._auth_worker = None
        self._auth_token = 0
        self.toast = ToastNotification(self)
        self._build_ui()

    def _build_ui(self):
        self.setStyleSheet(f"background-color: {Colors.BG_PRIMARY};")
        outer = QVBoxLayout(self)
        outer.setContentsMargins(Spacing.XXXL, Spacing.XXXL, Spacing.XXXL, Spacing.XXXL)
        outer.addStretch(1)

        card = QFrame()
        card.setObjectName("card")
        card.setStyleSheet(Styles.CARD)
        card.setFixedWidth(Spacing.FORM_WIDTH)
        form = QVBoxLayout(card)
        form.setContentsMargins(Spacing.XXL, Spacing.XXL, Spacing.XXL, Spacing.XXL)
        form.setSpacing(Spacing.MD)

        title = QLabel("Infinite Loop Display")
        title.setStyleSheet(Styles.label(Colors.TEXT_PRIMARY, Fonts.SIZE_TITLE, Fonts.WEIGHT_BOLD))
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        form.addWidget(title)

        self.tabs = QTabBar()
        self.tabs.addTab("Sign in")
        self.tabs.addTab("Register")
        self.tabs.setExpanding(True)
        self.tabs.setDrawBase(False)
        self.tabs.currentChanged.connect(self._on_tab_changed)
        form.addWidget(self.tabs)

        self.email_input = QLineEdit()
        self.email_input.setPlaceholderText("Email")
        self.email_input.setStyleSheet(Styles.input_field())
        form.addWidget(self.email_input)

        self.password_input = QLineEdit()
        self.password_input.setPlaceholderText("Password")
        self.password_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.password_input.setStyleSheet(Styles.input_field())
        self.password_input.returnPressed.connect(self._submit)
        form.addWidget(self.password_input)

        self.hint_label = QLabel("")
        self.hint_label.setStyleSheet(Styles.label(Colors.TEXT_MUTED, Fonts.SIZE_SM))
        self.hint_label.setWordWrap(True)
        form.addWidget(self.hint_label)

        self.submit_btn = QPushButton("Sign in")
        self.submit_btn.setStyleSheet(Styles.button_primary())
        self.submit_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.submit_btn.clicked.connect(self._submit)
        form.addWidget(self.submit_btn)

        footer = QHBoxLayout()
        footer.addStretch()
        settings_btn = QPushButton("Settings")
        settings_btn.setIcon(qta.icon("fa5s.cog", color=Colors.TEXT_SECONDARY))
        settings_btn.setStyleSheet(Styles.button_flat())
        settings_btn.clicked.connect(self.settings_requested.emit)
        footer.addWidget(settings_btn)
        form.addLayout(footer)

        row = QHBoxLayout()
        row.addStretch()
        row.addWidget(card)
        row.addStretch()
        outer.addLayout(row)
        outer.addStretch(2)

    def _on_tab_changed(self, index: int):
        registering = index == _REGISTER_TAB
        self.submit_btn.setText("Create account" if registering else "Sign in")
        self.hint_label.setText(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters" if registering else ""
        )

    def _set_busy(self, busy: bool):
        self.submit_btn.setEnabled(not busy)
        self.email_input.setEnabled(not busy)
        self.password_input.setEnabled(not busy)
        self.tabs.setEnabled(not busy)

    def _submit(self):
        registering = self.tabs.currentIndex() == _REGISTER_TAB
        email = self.email_input.text()
        password = self.password_input.text()
        try:
            email = check_credentials(email, password, registering=registering)
        except AuthError as e:
            self.toast.show_error(str(e))
            return

        if self._auth_worker:
            self._workers.retire(self._auth_worker)
        self._auth_token += 1
        self._auth_worker = AuthWorker(
            token=self._auth_token,
            auth=self._auth,
            email=email,
            password=password,
            register=registering,
        )
        self._auth_worker.done.connect(self._on_auth_done)
        self._auth_worker.failed.connect(self._on_auth_failed)
        self._set_busy(True)
        self._auth_worker.start()

    def _on_auth_done(self, token: int, user):
        if token != self._auth_token:
            return
        self._set_busy(False)
        self.password_input.clear()
        logger.info(f"Authenticated as {user.email}")

    def _on_auth_failed(self, token: int, error: str):
        if token != self._auth_token:
            return
        self._set_busy(False)
        self.toast.show_error(error, title="Authentication error")

    def reset(self):
        self.password_input.clear()
        self.tabs.setCurrentIndex(_SIGN_IN_TAB)
        self._set_busy(False)

    def shutdown(self):
        if self._auth_worker:
            self._workers.retire(self._auth_worker)
            self._auth_worker = None
        self._workers.shutdown()
