"""
Dashboard page: the signed-in user's media list, the submission form and the
offline-cache controls. Entering play mode and signing out are requested via
signals; the main window does the routing.
"""
import logging
from typing import List, Optional

from PyQt6.QtCore import Qt, QSize, pyqtSignal
from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
                             QListWidget, QListWidgetItem, QCheckBox, QMessageBox, QFrame)
import qtawesome as qta

from src.core.dto.media import MediaItem, MediaType
from src.core.dto.user import UserHandle
from src.ui.common.theme import Colors, Fonts, Spacing, Styles
from src.ui.common.workers import WorkerPool
from src.ui.dashboard.dashboard_workers import (ClearOfflineWorker, DeleteMediaWorker, MediaListWorker,
                                                SaveOfflineWorker, SubmitMediaWorker)
from src.ui.dashboard.media_form import MediaForm
from src.ui.widgets.notification_widgets import ToastNotification

logger = logging.getLogger(__name__)


class MediaRow(QWidget):
    play_clicked = pyqtSignal(str)
    offline_clicked = pyqtSignal(str)
    delete_clicked = pyqtSignal(str)

    def __init__(self, item: MediaItem, saved_offline: bool, parent=None):
        super().__init__(parent)
        self.item_id = item.id

        layout = QHBoxLayout(self)
        layout.setContentsMargins(Spacing.MD, Spacing.XS, Spacing.SM, Spacing.XS)
        layout.setSpacing(Spacing.SM)

        icon = QLabel()
        icon_name = "fa5s.image" if item.media_type is MediaType.IMAGE else "fa5s.film"
        icon.setPixmap(qta.icon(icon_name, color=Colors.TEXT_SECONDARY).pixmap(Spacing.ICON_SM, Spacing.ICON_SM))
        layout.addWidget(icon)

        text = QVBoxLayout()
        text.setSpacing(0)
        title = QLabel(item.title or "Untitled")
        title.setStyleSheet(Styles.label(Colors.TEXT_PRIMARY, Fonts.SIZE_MD, Fonts.WEIGHT_MEDIUM))
        detail = QLabel(f"{item.created_at:%Y-%m-%d %H:%M}  ·  {item.url}")
        detail.setStyleSheet(Styles.label(Colors.TEXT_MUTED, Fonts.SIZE_XS))
        detail.setToolTip(item.url)
        detail.setMaximumWidth(520)
        text.addWidget(title)
        text.addWidget(detail)
        layout.addLayout(text, 1)

        self.offline_btn = self._icon_button(
            "fa5s.check-circle" if saved_offline else "fa5s.download",
            "Saved offline" if saved_offline else "Save offline",
            Colors.ACCENT_SUCCESS if saved_offline else Colors.TEXT_SECONDARY,
        )
        self.offline_btn.clicked.connect(lambda: self.offline_clicked.emit(self.item_id))
        play_btn = self._icon_button("fa5s.play", "Play from here", Colors.TEXT_SECONDARY)
        play_btn.clicked.connect(lambda: self.play_clicked.emit(self.item_id))
        delete_btn = self._icon_button("fa5s.trash", "Delete", Colors.ACCENT_ERROR)
        delete_btn.clicked.connect(lambda: self.delete_clicked.emit(self.item_id))
        for btn in (self.offline_btn, play_btn, delete_btn):
            layout.addWidget(btn)

    @staticmethod
    def _icon_button(icon: str, tooltip: str, color: str) -> QPushButton:
        btn = QPushButton()
        btn.setIcon(qta.icon(icon, color=color))
        btn.setToolTip(tooltip)
        btn.setFixedSize(Spacing.CONTROL_HEIGHT, Spacing.CONTROL_HEIGHT)
        btn.setStyleSheet(Styles.button_flat())
        btn.setCursor(Qt.CursorShape.PointingHandCursor)
        return btn


class DashboardWindow(QWidget):
    play_requested = pyqtSignal(str)
    sign_out_requested = pyqtSignal()
    settings_requested = pyqtSignal()

    # Repository change callbacks arrive on worker threads
    _items_pushed = pyqtSignal(list)

    def __init__(self, core, user: UserHandle, parent=None):
        super().__init__(parent)
        self.core = core
        self.user = user
        self._items: List[MediaItem] = []
        self._workers = WorkerPool()
        self._list_worker = None
        self._list_token = 0
        self._mutation_workers = []
        self._mutation_token = 0

        self.toast = ToastNotification(self)
        self._build_ui()

        self._items_pushed.connect(self._show_items)
        self._unsubscribe = core.repository.subscribe(user.uid, self._items_pushed.emit)
        self.refresh()

    # --------------------------------------------------
    # Layout
    # --------------------------------------------------

    def _build_ui(self):
        self.setStyleSheet(f"background-color: {Colors.BG_PRIMARY};")
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        header = QFrame()
        header.setFixedHeight(Spacing.HEADER_HEIGHT)
        header.setStyleSheet(Styles.HEADER)
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(Spacing.XL, 0, Spacing.XL, 0)

        title = QLabel("Infinite Loop Display")
        title.setStyleSheet(Styles.label(Colors.TEXT_PRIMARY, Fonts.SIZE_XXL, Fonts.WEIGHT_BOLD))
        header_layout.addWidget(title)
        header_layout.addStretch()

        user_label = QLabel(self.user.email)
        user_label.setStyleSheet(Styles.label(Colors.TEXT_SECONDARY, Fonts.SIZE_SM))
        header_layout.addWidget(user_label)

        settings_btn = QPushButton()
        settings_btn.setIcon(qta.icon("fa5s.cog", color=Colors.TEXT_SECONDARY))
        settings_btn.setToolTip("Settings")
        settings_btn.setStyleSheet(Styles.button_flat())
        settings_btn.clicked.connect(self.settings_requested.emit)
        header_layout.addWidget(settings_btn)

        self.play_btn = QPushButton("Play mode")
        self.play_btn.setIcon(qta.icon("fa5s.play-circle", color=Colors.TEXT_WHITE))
        self.play_btn.setStyleSheet(Styles.button_primary())
        self.play_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.play_btn.clicked.connect(lambda: self.play_requested.emit(""))
        header_layout.addWidget(self.play_btn)

        sign_out_btn = QPushButton("Sign out")
        sign_out_btn.setStyleSheet(Styles.button_secondary())
        sign_out_btn.clicked.connect(self.sign_out_requested.emit)
        header_layout.addWidget(sign_out_btn)
        root.addWidget(header)

        body = QHBoxLayout()
        body.setContentsMargins(Spacing.XL, Spacing.XL, Spacing.XL, Spacing.XL)
        body.setSpacing(Spacing.XL)

        side = QVBoxLayout()
        side.setSpacing(Spacing.LG)
        self.form = MediaForm()
        self.form.setFixedWidth(Spacing.DASHBOARD_SIDEBAR_WIDTH)
        self.form.submitted.connect(self._submit)
        side.addWidget(self.form)
        side.addWidget(self._build_offline_panel())
        side.addStretch()
        body.addLayout(side)

        list_col = QVBoxLayout()
        list_col.setSpacing(Spacing.SM)
        list_header = QHBoxLayout()
        heading = QLabel("My media")
        heading.setStyleSheet(Styles.label(Colors.TEXT_PRIMARY, Fonts.SIZE_XXL, Fonts.WEIGHT_SEMIBOLD))
        list_header.addWidget(heading)
        list_header.addStretch()
        self.count_label = QLabel()
        self.count_label.setStyleSheet(Styles.label(Colors.TEXT_MUTED, Fonts.SIZE_SM))
        list_header.addWidget(self.count_label)
        refresh_btn = QPushButton()
        refresh_btn.setIcon(qta.icon("fa5s.sync-alt", color=Colors.TEXT_SECONDARY))
        refresh_btn.setToolTip("Refresh")
        refresh_btn.setStyleSheet(Styles.button_flat())
        refresh_btn.clicked.connect(self.refresh)
        list_header.addWidget(refresh_btn)
        list_col.addLayout(list_header)

        self.media_list = QListWidget()
        self.media_list.setStyleSheet(Styles.MEDIA_LIST)
        self.media_list.setSelectionMode(QListWidget.SelectionMode.NoSelection)
        list_col.addWidget(self.media_list, 1)

        self.empty_label = QLabel("No media yet. Add a video or image URL to get started.")
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.empty_label.setStyleSheet(Styles.label(Colors.TEXT_MUTED, Fonts.SIZE_LG))
        self.empty_label.hide()
        list_col.addWidget(self.empty_label)
        body.addLayout(list_col, 1)
        root.addLayout(body, 1)

    def _build_offline_panel(self) -> QFrame:
        panel = QFrame()
        panel.setObjectName("card")
        panel.setStyleSheet(Styles.CARD)
        panel.setFixedWidth(Spacing.DASHBOARD_SIDEBAR_WIDTH)
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(Spacing.XL, Spacing.LG, Spacing.XL, Spacing.LG)
        layout.setSpacing(Spacing.SM)

        heading = QLabel("Offline playback")
        heading.setStyleSheet(Styles.label(Colors.TEXT_PRIMARY, Fonts.SIZE_LG, Fonts.WEIGHT_SEMIBOLD))
        layout.addWidget(heading)

        self.offline_toggle = QCheckBox("Keep offline copies of all media")
        self.offline_toggle.setStyleSheet(f"color: {Colors.TEXT_PRIMARY};")
        self.offline_toggle.setChecked(self.core.db.get_bool_config("offline_storage_enabled", False))
        self.offline_toggle.toggled.connect(self._on_offline_toggled)
        layout.addWidget(self.offline_toggle)

        self.offline_status = QLabel()
        self.offline_status.setWordWrap(True)
        self.offline_status.setStyleSheet(Styles.label(Colors.TEXT_MUTED, Fonts.SIZE_XS))
        layout.addWidget(self.offline_status)

        clear_btn = QPushButton("Clear offline cache")
        clear_btn.setStyleSheet(Styles.button_secondary())
        clear_btn.clicked.connect(self._clear_offline)
        layout.addWidget(clear_btn)
        return panel

    # --------------------------------------------------
    # Listing
    # --------------------------------------------------

    def refresh(self):
        if self._list_worker:
            self._workers.retire(self._list_worker)
        self._list_token += 1
        self._list_worker = MediaListWorker(
            token=self._list_token,
            repository=self.core.repository,
            owner_id=self.user.uid,
        )
        self._list_worker.done.connect(self._on_list_loaded)
        self._list_worker.failed.connect(self._on_list_failed)
        self.count_label.setText("Loading...")
        self._list_worker.start()

    def _on_list_loaded(self, token: int, items):
        if token != self._list_token:
            return
        self._show_items(items)
        if self.offline_toggle.isChecked():
            self._save_offline([i for i in self._items if not self.core.offline_cache.has(i.id)], quiet=True)

    def _on_list_failed(self, token: int, error: str):
        if token != self._list_token:
            return
        self.count_label.setText("")
        self.toast.show_error(f"Could not load your media: {error}")

    def _show_items(self, items):
        self._items = list(items)
        self.media_list.clear()
        for item in self._items:
            row = MediaRow(item, self.core.offline_cache.has(item.id))
            row.play_clicked.connect(self.play_requested.emit)
            row.offline_clicked.connect(self._on_offline_clicked)
            row.delete_clicked.connect(self._confirm_delete)
            list_item = QListWidgetItem(self.media_list)
            list_item.setSizeHint(QSize(0, Spacing.LIST_ROW_HEIGHT))
            self.media_list.setItemWidget(list_item, row)

        count = len(self._items)
        self.count_label.setText(f"{count} item{'s' if count != 1 else ''}")
        self.empty_label.setVisible(count == 0)
        self.media_list.setVisible(count > 0)
        self.play_btn.setEnabled(count > 0)
        self._update_offline_status()

    def _item_by_id(self, item_id: str) -> Optional[MediaItem]:
        return next((i for i in self._items if i.id == item_id), None)

    # --------------------------------------------------
    # Mutations
    # --------------------------------------------------

    def _start_mutation(self, worker, on_done, on_failed=None):
        self._mutation_workers.append(worker)
        worker.done.connect(on_done)
        worker.failed.connect(on_failed or self._on_mutation_failed)
        worker.finished.connect(lambda w=worker: self._forget_mutation(w))
        worker.start()

    def _forget_mutation(self, worker):
        if worker in self._mutation_workers:
            self._mutation_workers.remove(worker)
        worker.deleteLater()

    def _next_mutation_token(self) -> int:
        self._mutation_token += 1
        return self._mutation_token

    def _submit(self, title: str, url: str, media_type: MediaType):
        self.form.set_busy(True)
        worker = SubmitMediaWorker(
            token=self._next_mutation_token(),
            repository=self.core.repository,
            owner_id=self.user.uid,
            title=title,
            url=url,
            media_type=media_type,
        )
        self._start_mutation(worker, self._on_submitted, self._on_submit_failed)

    def _on_submitted(self, _token: int, item: MediaItem):
        self.form.set_busy(False)
        self.form.reset()
        self.toast.show_success(f"Added '{item.title}'")

    def _on_submit_failed(self, _token: int, error: str):
        self.form.set_busy(False)
        self.toast.show_error(f"Could not add media: {error}")

    def _confirm_delete(self, item_id: str):
        item = self._item_by_id(item_id)
        if item is None:
            return
        answer = QMessageBox.question(
            self,
            "Delete media",
            f"Delete '{item.title}'?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if answer != QMessageBox.StandardButton.Yes:
            return
        worker = DeleteMediaWorker(
            token=self._next_mutation_token(),
            repository=self.core.repository,
            owner_id=self.user.uid,
            item_id=item_id,
        )
        self._start_mutation(worker, lambda *_: self.toast.show_success("Media deleted"))

    def _on_mutation_failed(self, _token: int, error: str):
        self.toast.show_error(error)

    # --------------------------------------------------
    # Offline cache
    # --------------------------------------------------

    def _on_offline_clicked(self, item_id: str):
        item = self._item_by_id(item_id)
        if item is not None:
            self._save_offline([item])

    def _on_offline_toggled(self, enabled: bool):
        self.core.db.set_config("offline_storage_enabled", "true" if enabled else "false")
        if enabled:
            self._save_offline([i for i in self._items if not self.core.offline_cache.has(i.id)])

    def _save_offline(self, items: List[MediaItem], quiet: bool = False):
        if not items:
            return
        self.offline_status.setText(f"Saving {len(items)} item(s) for offline playback...")
        worker = SaveOfflineWorker(
            token=self._next_mutation_token(),
            offline_cache=self.core.offline_cache,
            items=items,
        )

        def done(_token, counts):
            saved, cached = counts
            self._show_items(self._items)
            if not quiet:
                self.toast.show_success(f"Saved {saved} item(s) offline ({cached} downloaded)")

        self._start_mutation(worker, done)

    def _clear_offline(self):
        worker = ClearOfflineWorker(token=self._next_mutation_token(), offline_cache=self.core.offline_cache)

        def done(*_):
            self._show_items(self._items)
            self.toast.show_success("Offline cache cleared")

        self._start_mutation(worker, done)

    def _update_offline_status(self):
        saved = sum(1 for i in self._items if self.core.offline_cache.has(i.id))
        downloaded = len(self.core.offline_cache.cached_ids())
        self.offline_status.setText(f"{saved} of {len(self._items)} saved offline, {downloaded} file(s) on disk")

    # --------------------------------------------------

    def shutdown(self):
        """Detach from the repository and stop background work."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._list_worker:
            self._workers.retire(self._list_worker)
            self._list_worker = None
        for worker in list(self._mutation_workers):
            worker.cancel()
            worker.wait(3000)
        self._mutation_workers.clear()
        self._workers.shutdown()
