"""
Play mode.

Renders whatever the Sequencer reports as the current item and forwards
viewer signals (ended / failed / ready), control buttons and taps back into
it. The window owns no playback policy of its own.
"""
import logging
from typing import Callable, List, Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QStackedWidget
import qtawesome as qta

from src.core.dto.media import MediaItem, MediaType
from src.core.dto.user import UserHandle
from src.core.playlist_loader import LoadResult, LoadSource
from src.core.sequencer import (FullscreenHost, PlaybackState, ReloadAction, Sequencer,
                                SequencerEvent, SequencerEventKind)
from src.ui.common.qt_scheduler import QtScheduler
from src.ui.common.theme import Colors, Fonts, Spacing, Styles
from src.ui.common.workers import WorkerPool
from src.ui.images.image_view import ImageView
from src.ui.player.player_workers import PlaylistLoadWorker
from src.ui.video.player_controls import PlaybackControls
from src.ui.video.video_player import VideoView
from src.ui.widgets.notification_widgets import ToastNotification

logger = logging.getLogger(__name__)

_PAGE_MESSAGE = 0
_PAGE_VIDEO = 1
_PAGE_IMAGE = 2


class PlaybackWindow(QWidget):
    """
    Signals:
        closed: the user left play mode, or there was nothing to play
        notice(text, is_error): message to show after play mode closes
    """

    closed = pyqtSignal()
    notice = pyqtSignal(str, bool)

    def __init__(self, core, user: UserHandle, host: FullscreenHost, *, start_id: str = "", parent=None):
        super().__init__(parent)
        self.core = core
        self.user = user
        self._start_id = start_id
        self._workers = WorkerPool()
        self._load_worker: Optional[PlaylistLoadWorker] = None
        self._load_token = 0
        self._disposers: List[Callable[[], None]] = []
        self._torn_down = False

        self.sequencer = Sequencer(
            QtScheduler(self),
            config=core.sequencer_config(),
            host=host,
            resolve_local=core.offline_cache.resolve,
        )
        self._disposers.append(self.sequencer.subscribe(self._on_sequencer_event))

        self.toast = ToastNotification(self)
        self._build_ui()
        self._apply_state(self.sequencer.state)

    # --------------------------------------------------
    # Layout
    # --------------------------------------------------

    def _build_ui(self):
        self.setStyleSheet(f"background-color: {Colors.BG_BLACK};")
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        self.top_bar = QWidget()
        top = QHBoxLayout(self.top_bar)
        top.setContentsMargins(Spacing.LG, Spacing.SM, Spacing.LG, Spacing.SM)
        back_btn = QPushButton("Dashboard")
        back_btn.setIcon(qta.icon("fa5s.arrow-left", color=Colors.TEXT_WHITE))
        back_btn.setStyleSheet(Styles.button_overlay())
        back_btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        back_btn.clicked.connect(self.close_play_mode)
        top.addWidget(back_btn)
        self.title_label = QLabel()
        self.title_label.setStyleSheet(Styles.label(Colors.TEXT_WHITE, Fonts.SIZE_LG, Fonts.WEIGHT_MEDIUM))
        top.addWidget(self.title_label, 1)
        self.position_label = QLabel()
        self.position_label.setStyleSheet(Styles.label(Colors.TEXT_SECONDARY, Fonts.SIZE_SM))
        top.addWidget(self.position_label)
        root.addWidget(self.top_bar)

        self.error_banner = QLabel()
        self.error_banner.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.error_banner.setStyleSheet(Styles.ERROR_BANNER)
        self.error_banner.hide()
        root.addWidget(self.error_banner)

        self.surface = QStackedWidget()
        self.message_label = QLabel("Loading media...")
        self.message_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.message_label.setStyleSheet(Styles.label(Colors.TEXT_SECONDARY, Fonts.SIZE_XL))
        self.video_view = VideoView(volume=self.core.db.get_int_config("video_player_volume", 80))
        self.image_view = ImageView(self.core.http_client)
        self.surface.addWidget(self.message_label)
        self.surface.addWidget(self.video_view)
        self.surface.addWidget(self.image_view)
        root.addWidget(self.surface, 1)

        self.video_view.ended.connect(self.sequencer.on_media_ended)
        self.video_view.failed.connect(self.sequencer.on_media_error)
        self.video_view.ready.connect(self.sequencer.on_media_ready)
        self.video_view.clicked.connect(self.sequencer.register_tap)
        self.image_view.failed.connect(self.sequencer.on_media_error)
        self.image_view.loaded.connect(self.sequencer.on_media_ready)
        self.image_view.clicked.connect(self.sequencer.register_tap)

        bottom = QHBoxLayout()
        bottom.setContentsMargins(Spacing.LG, Spacing.SM, Spacing.LG, Spacing.SM)
        self.tap_hint = QLabel()
        self.tap_hint.setStyleSheet(Styles.TAP_HINT)
        self.tap_hint.hide()
        bottom.addWidget(self.tap_hint)
        bottom.addStretch()
        self.controls = PlaybackControls()
        self.controls.prev_requested.connect(self.sequencer.previous)
        self.controls.next_requested.connect(self.sequencer.next)
        self.controls.play_pause_requested.connect(self.sequencer.toggle_play)
        self.controls.fullscreen_requested.connect(self.sequencer.toggle_fullscreen)
        bottom.addWidget(self.controls)
        root.addLayout(bottom)

    # --------------------------------------------------
    # Loading
    # --------------------------------------------------

    def start(self):
        """Fetch the sequence for the signed-in user and begin playback."""
        self._retire_load_worker()
        self._load_token += 1
        self.message_label.setText("Loading media...")
        self.surface.setCurrentIndex(_PAGE_MESSAGE)
        self._load_worker = PlaylistLoadWorker(
            token=self._load_token,
            loader=self.core.playlist_loader,
            owner_id=self.user.uid,
        )
        self._load_worker.done.connect(self._on_playlist_loaded)
        self._load_worker.failed.connect(self._on_playlist_failed)
        self._load_worker.start()

    def _on_playlist_loaded(self, token: int, result: Optional[LoadResult]):
        if token != self._load_token or self._torn_down or result is None:
            return
        self._retire_load_worker()

        if result.is_empty:
            if result.error is not None:
                self.notice.emit("No connection and no media saved for offline playback", True)
            else:
                self.notice.emit("No media to play. Add some from the dashboard first.", False)
            self.message_label.setText("Nothing to play")
            self.close_play_mode()
            return

        if result.source is LoadSource.OFFLINE:
            self.toast.show_warning("No connection, playing media saved for offline use")

        self.sequencer.load(self._rotate_to_start(result.items))
        if self.core.db.get_bool_config("start_fullscreen", False):
            self.sequencer.enter_fullscreen()

    def _on_playlist_failed(self, token: int, error: str):
        if token != self._load_token or self._torn_down:
            return
        self._retire_load_worker()
        self.notice.emit(error, True)
        self.close_play_mode()

    def _retire_load_worker(self):
        if self._load_worker:
            self._workers.retire(self._load_worker)
            self._load_worker = None

    def _rotate_to_start(self, items):
        """Start at the item picked on the dashboard, keeping the cyclic order."""
        for index, item in enumerate(items):
            if item.id == self._start_id:
                return tuple(items[index:]) + tuple(items[:index])
        return tuple(items)

    # --------------------------------------------------
    # Sequencer events
    # --------------------------------------------------

    def _on_sequencer_event(self, event: SequencerEvent):
        if event.kind is SequencerEventKind.ITEM_CHANGED:
            self._render_current_item(event.item)
        elif event.kind is SequencerEventKind.STATE_CHANGED:
            self._apply_state(event.state)
        elif event.kind is SequencerEventKind.RELOAD_REQUESTED:
            if event.action is ReloadAction.PAUSE:
                self.video_view.set_paused(True)
            else:
                self.video_view.reload()
        elif event.kind is SequencerEventKind.PLAYBACK_FAILED:
            self.toast.show_error(event.message or "Playback failed", title="Playback error")

    def _render_current_item(self, item: Optional[MediaItem]):
        if item is None:
            self.video_view.stop()
            self.image_view.cancel()
            self.message_label.setText("Nothing to play")
            self.surface.setCurrentIndex(_PAGE_MESSAGE)
            return

        url = self.sequencer.playable_url(item)
        self.title_label.setText(item.title)
        if item.media_type is MediaType.IMAGE:
            self.video_view.stop()
            self.surface.setCurrentIndex(_PAGE_IMAGE)
            self.image_view.load(url)
        else:
            self.image_view.cancel()
            self.surface.setCurrentIndex(_PAGE_VIDEO)
            self.video_view.load(url, loop=self.sequencer.should_loop)

    def _apply_state(self, state: PlaybackState):
        item = self.sequencer.current_item
        is_video = item is not None and item.is_video

        chrome_visible = state.controls_visible and not state.is_fullscreen
        self.top_bar.setVisible(chrome_visible)
        self.controls.setVisible(chrome_visible)
        self.controls.set_playing(state.is_playing, enabled=is_video)
        self.controls.set_navigation_enabled(state.item_count > 1)
        self.controls.fullscreen_btn.setText("Exit full screen" if state.is_fullscreen else "Full screen")

        if state.item_count:
            self.position_label.setText(f"{state.current_index + 1} / {state.item_count}")

        self.error_banner.setText(state.error_message or "")
        self.error_banner.setVisible(bool(state.error_message))

        threshold = self.sequencer.config.tap_exit_threshold
        self.tap_hint.setText(f"Tap {threshold}x to exit ({state.tap_count}/{threshold})")
        self.tap_hint.setVisible(state.is_fullscreen and state.tap_count > 0)

        if is_video:
            self.video_view.set_paused(not state.is_playing)

    # --------------------------------------------------
    # Input
    # --------------------------------------------------

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.sequencer.register_tap()
        super().mousePressEvent(event)

    def keyPressEvent(self, event):
        key = event.key()
        if key == Qt.Key.Key_Right:
            self.sequencer.next()
        elif key == Qt.Key.Key_Left:
            self.sequencer.previous()
        elif key == Qt.Key.Key_Space:
            self.sequencer.toggle_play()
        elif key == Qt.Key.Key_F11:
            self.sequencer.toggle_fullscreen()
        else:
            super().keyPressEvent(event)

    def on_host_fullscreen_exited(self):
        self.sequencer.on_host_fullscreen_exited()

    # --------------------------------------------------
    # Teardown
    # --------------------------------------------------

    def close_play_mode(self):
        if self.sequencer.state.is_fullscreen:
            self.sequencer.exit_fullscreen()
        self.closed.emit()

    def shutdown(self):
        """Cancel loading, timers and listeners, then release the player."""
        if self._torn_down:
            return
        self._torn_down = True
        self._retire_load_worker()
        self._workers.shutdown()
        for dispose in self._disposers:
            dispose()
        self._disposers.clear()
        self.sequencer.dispose()
        self.image_view.cleanup()
        self.video_view.cleanup()
