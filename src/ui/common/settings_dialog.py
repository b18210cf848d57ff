"""
Settings dialog for application configuration
"""
from PyQt6.QtWidgets import (QDialog, QVBoxLayout, QHBoxLayout, QTabWidget, QWidget, QLabel,
                             QLineEdit, QPushButton, QCheckBox, QComboBox, QGroupBox,
                             QFormLayout, QMessageBox, QSpinBox)
import logging

from src.ui.common.theme import Colors, Spacing, Styles
from src.utils.logging_config import LoggerCategory, get_logging_manager

logger = logging.getLogger(__name__)

LOG_LEVELS = [
    ("DEBUG", logging.DEBUG),
    ("INFO", logging.INFO),
    ("WARNING", logging.WARNING),
    ("ERROR", logging.ERROR),
]

CATEGORY_LABELS = {
    LoggerCategory.CORE: "Core services (context, offline cache, loader)",
    LoggerCategory.AUTH: "Sign-in",
    LoggerCategory.NETWORK: "Network (HTTP, Firebase REST)",
    LoggerCategory.DATABASE: "Database operations",
    LoggerCategory.PLAYBACK: "Playback (sequencer, video and image views)",
    LoggerCategory.UI: "UI components",
}


class SettingsDialog(QDialog):
    """Edits the config table. Backend changes apply on the next start."""

    def __init__(self, db_manager, parent=None):
        super().__init__(parent)
        self.db = db_manager
        self.setWindowTitle("Settings")
        self.setObjectName("SettingsDialog")
        self.setMinimumWidth(480)
        self.setStyleSheet(f"QDialog {{ background-color: {Colors.BG_SECONDARY}; }} "
                           f"QLabel, QCheckBox, QGroupBox {{ color: {Colors.TEXT_PRIMARY}; }}")

        layout = QVBoxLayout(self)
        self.tabs = QTabWidget()
        self.tabs.addTab(self._create_playback_tab(), "Playback")
        self.tabs.addTab(self._create_backend_tab(), "Backend")
        self.tabs.addTab(self._create_logging_tab(), "Logging")
        layout.addWidget(self.tabs)

        buttons = QHBoxLayout()
        buttons.addStretch()
        cancel_btn = QPushButton("Cancel")
        cancel_btn.setStyleSheet(Styles.button_secondary())
        cancel_btn.clicked.connect(self.reject)
        save_btn = QPushButton("Save")
        save_btn.setStyleSheet(Styles.button_primary())
        save_btn.clicked.connect(self._save_settings)
        buttons.addWidget(cancel_btn)
        buttons.addWidget(save_btn)
        layout.addLayout(buttons)

        self._load_settings()

    @staticmethod
    def _spin(minimum: int, maximum: int, suffix: str = "") -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(minimum, maximum)
        if suffix:
            spin.setSuffix(suffix)
        return spin

    def _create_playback_tab(self) -> QWidget:
        widget = QWidget()
        form = QFormLayout(widget)
        form.setSpacing(Spacing.MD)

        self.image_seconds_spin = self._spin(1, 3600, " s")
        self.retry_budget_spin = self._spin(0, 20)
        self.retry_pause_spin = self._spin(100, 60000, " ms")
        self.skip_delay_spin = self._spin(0, 60000, " ms")
        self.exit_taps_spin = self._spin(2, 20)
        self.tap_reset_spin = self._spin(250, 10000, " ms")
        self.volume_spin = self._spin(0, 100, " %")
        self.start_fullscreen_check = QCheckBox("Enter full screen when play mode starts")

        form.addRow("Image display time:", self.image_seconds_spin)
        form.addRow("Video reload attempts:", self.retry_budget_spin)
        form.addRow("Reload pause:", self.retry_pause_spin)
        form.addRow("Skip failed video after:", self.skip_delay_spin)
        form.addRow("Taps to leave full screen:", self.exit_taps_spin)
        form.addRow("Tap counter reset:", self.tap_reset_spin)
        form.addRow("Video volume:", self.volume_spin)
        form.addRow(self.start_fullscreen_check)
        return widget

    def _create_backend_tab(self) -> QWidget:
        widget = QWidget()
        layout = QVBoxLayout(widget)

        self.backend_combo = QComboBox()
        self.backend_combo.addItem("Local (this computer)", "local")
        self.backend_combo.addItem("Firebase", "firebase")
        self.backend_combo.currentIndexChanged.connect(self._update_backend_fields)
        top = QFormLayout()
        top.addRow("Storage backend:", self.backend_combo)
        self.timeout_spin = self._spin(5, 300, " s")
        top.addRow("Network timeout:", self.timeout_spin)
        layout.addLayout(top)

        self.firebase_group = QGroupBox("Firebase project")
        firebase_form = QFormLayout(self.firebase_group)
        self.api_key_edit = QLineEdit()
        self.api_key_edit.setEchoMode(QLineEdit.EchoMode.Password)
        self.api_key_edit.setToolTip("Web API key (stored encrypted)")
        self.project_id_edit = QLineEdit()
        self.collection_edit = QLineEdit()
        for edit in (self.api_key_edit, self.project_id_edit, self.collection_edit):
            edit.setStyleSheet(Styles.input_field())
        firebase_form.addRow("API key:", self.api_key_edit)
        firebase_form.addRow("Project id:", self.project_id_edit)
        firebase_form.addRow("Collection:", self.collection_edit)
        layout.addWidget(self.firebase_group)

        note = QLabel("Backend changes take effect after restarting the application.")
        note.setWordWrap(True)
        note.setStyleSheet(f"color: {Colors.TEXT_MUTED};")
        layout.addWidget(note)
        layout.addStretch()
        return widget

    def _create_logging_tab(self) -> QWidget:
        widget = QWidget()
        layout = QVBoxLayout(widget)
        info_label = QLabel("Configure log levels for different subsystems. Lower levels show more detail.")
        info_label.setWordWrap(True)
        layout.addWidget(info_label)

        form = QFormLayout()
        self.log_level_combos = {}
        for category, description in CATEGORY_LABELS.items():
            combo = QComboBox()
            combo.setObjectName(f"LogLevel_{category}")
            for level_name, level_value in LOG_LEVELS:
                combo.addItem(level_name, level_value)
            self.log_level_combos[category] = combo
            form.addRow(f"{description}:", combo)
        layout.addLayout(form)
        layout.addStretch()
        return widget

    def _update_backend_fields(self):
        self.firebase_group.setEnabled(self.backend_combo.currentData() == "firebase")

    def _load_settings(self):
        """Load settings from database"""
        self.image_seconds_spin.setValue(self.db.get_int_config("image_display_seconds", 7))
        self.retry_budget_spin.setValue(self.db.get_int_config("video_retry_budget", 3))
        self.retry_pause_spin.setValue(self.db.get_int_config("video_retry_pause_ms", 1000))
        self.skip_delay_spin.setValue(self.db.get_int_config("video_skip_delay_ms", 3000))
        self.exit_taps_spin.setValue(self.db.get_int_config("fullscreen_exit_taps", 6))
        self.tap_reset_spin.setValue(self.db.get_int_config("fullscreen_tap_reset_ms", 2000))
        self.volume_spin.setValue(self.db.get_int_config("video_player_volume", 80))
        self.start_fullscreen_check.setChecked(self.db.get_bool_config("start_fullscreen", False))

        backend_index = self.backend_combo.findData(self.db.get_config("backend", "local"))
        self.backend_combo.setCurrentIndex(max(0, backend_index))
        self.timeout_spin.setValue(self.db.get_int_config("http_timeout_seconds", 30))
        self.api_key_edit.setText(self.db.get_config("firebase_api_key", ""))
        self.project_id_edit.setText(self.db.get_config("firebase_project_id", ""))
        self.collection_edit.setText(self.db.get_config("firebase_collection", "videos"))
        self._update_backend_fields()

        manager = get_logging_manager(self.db)
        for category, combo in self.log_level_combos.items():
            index = combo.findData(manager.get_category_level(category))
            if index >= 0:
                combo.setCurrentIndex(index)

    def _save_settings(self):
        """Save settings to database"""
        backend = self.backend_combo.currentData()
        api_key = self.api_key_edit.text().strip()
        project_id = self.project_id_edit.text().strip()
        if backend == "firebase" and (not api_key or not project_id):
            QMessageBox.warning(self, "Settings", "Firebase needs both an API key and a project id.")
            return

        self.db.set_config("image_display_seconds", str(self.image_seconds_spin.value()))
        self.db.set_config("video_retry_budget", str(self.retry_budget_spin.value()))
        self.db.set_config("video_retry_pause_ms", str(self.retry_pause_spin.value()))
        self.db.set_config("video_skip_delay_ms", str(self.skip_delay_spin.value()))
        self.db.set_config("fullscreen_exit_taps", str(self.exit_taps_spin.value()))
        self.db.set_config("fullscreen_tap_reset_ms", str(self.tap_reset_spin.value()))
        self.db.set_config("video_player_volume", str(self.volume_spin.value()))
        self.db.set_config("start_fullscreen", "true" if self.start_fullscreen_check.isChecked() else "false")

        self.db.set_config("backend", backend)
        self.db.set_config("http_timeout_seconds", str(self.timeout_spin.value()))
        self.db.set_config("firebase_api_key", api_key, encrypt=bool(api_key))
        self.db.set_config("firebase_project_id", project_id)
        self.db.set_config("firebase_collection", self.collection_edit.text().strip() or "videos")

        manager = get_logging_manager(self.db)
        for category, combo in self.log_level_combos.items():
            level = combo.currentData()
            if level is not None:
                manager.set_category_level(category, level)

        logger.info("Settings saved")
        self.accept()
