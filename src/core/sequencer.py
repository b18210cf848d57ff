"""
Playback sequencer.

Owns the playlist, the position pointer and every timer that moves it:
image display time, video error retry/skip, and the full-screen tap-exit
gesture. The presentation shell renders whatever the sequencer reports and
forwards viewer signals (ended, error, ready) and user commands back in.

All methods must be called from the UI thread. Timers go through an injected
``Scheduler`` so the state machine can be driven by a manual clock in tests.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Tuple

from src.core.dto.media import MediaItem, MediaType
from src.core.media_validation import canonical_video_url, is_hosted_video_url
from src.core.scheduling import Scheduler, TimerGroup

logger = logging.getLogger(__name__)

# Timer names. Everything except the tap reset belongs to the current item.
_IMAGE_TIMER = "image_advance"
_RETRY_PAUSE_TIMER = "retry_pause"
_RETRY_RESUME_TIMER = "retry_resume"
_SKIP_TIMER = "error_skip"
_TAP_RESET_TIMER = "tap_reset"


class PlaybackPhase(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True)
class PlaybackState:
    current_index: int = 0
    is_playing: bool = False
    is_fullscreen: bool = False
    tap_count: int = 0
    error_message: Optional[str] = None
    retry_attempts: int = 0
    controls_visible: bool = True
    item_count: int = 0

    @property
    def phase(self) -> PlaybackPhase:
        if self.item_count == 0:
            return PlaybackPhase.IDLE
        if self.error_message:
            return PlaybackPhase.ERROR
        return PlaybackPhase.PLAYING if self.is_playing else PlaybackPhase.PAUSED


@dataclass(frozen=True)
class SequencerConfig:
    image_display_ms: int = 7000
    retry_budget: int = 3
    retry_pause_ms: int = 1000
    retry_resume_ms: int = 1000
    skip_delay_ms: int = 3000
    tap_exit_threshold: int = 6
    tap_reset_ms: int = 2000

    @classmethod
    def from_db(cls, db) -> "SequencerConfig":
        """Read tunables from the config table, falling back to defaults."""
        defaults = cls()
        pause_ms = db.get_int_config("video_retry_pause_ms", defaults.retry_pause_ms)
        return cls(
            image_display_ms=db.get_int_config("image_display_seconds", defaults.image_display_ms // 1000) * 1000,
            retry_budget=db.get_int_config("video_retry_budget", defaults.retry_budget),
            retry_pause_ms=pause_ms,
            retry_resume_ms=pause_ms,
            skip_delay_ms=db.get_int_config("video_skip_delay_ms", defaults.skip_delay_ms),
            tap_exit_threshold=db.get_int_config("fullscreen_exit_taps", defaults.tap_exit_threshold),
            tap_reset_ms=db.get_int_config("fullscreen_tap_reset_ms", defaults.tap_reset_ms),
        )


class SequencerEventKind(str, Enum):
    STATE_CHANGED = "state_changed"
    ITEM_CHANGED = "item_changed"
    RELOAD_REQUESTED = "reload_requested"
    PLAYBACK_FAILED = "playback_failed"


class ReloadAction(str, Enum):
    PAUSE = "pause"
    RESUME = "resume"


@dataclass(frozen=True)
class SequencerEvent:
    kind: SequencerEventKind
    state: PlaybackState
    item: Optional[MediaItem] = None
    message: Optional[str] = None
    action: Optional[ReloadAction] = None


class FullscreenHost(Protocol):
    """Window-level full-screen control. Both calls complete asynchronously."""

    def request_fullscreen(self) -> "Future[None]":
        ...

    def exit_fullscreen(self) -> "Future[None]":
        ...


Listener = Callable[[SequencerEvent], None]


class Sequencer:
    """
    Playlist state machine for the display surface.

    Phases: IDLE (no items) -> PLAYING <-> PAUSED, with ERROR reported while a
    video is being retried or skipped. Full screen is an overlay flag on top
    of PLAYING/PAUSED.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        config: Optional[SequencerConfig] = None,
        host: Optional[FullscreenHost] = None,
        resolve_local: Optional[Callable[[str], Optional[Path]]] = None,
    ):
        self._config = config or SequencerConfig()
        self._timers = TimerGroup(scheduler)
        self._host = host
        self._resolve_local = resolve_local
        self._items: Tuple[MediaItem, ...] = ()
        self._state = PlaybackState()
        self._listeners: List[Listener] = []
        self._disposed = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def config(self) -> SequencerConfig:
        return self._config

    @property
    def items(self) -> Tuple[MediaItem, ...]:
        return self._items

    @property
    def current_item(self) -> Optional[MediaItem]:
        if not self._items:
            return None
        return self._items[self._state.current_index]

    @property
    def should_loop(self) -> bool:
        """A single-item sequence loops in place instead of advancing."""
        return len(self._items) == 1

    def set_host(self, host: Optional[FullscreenHost]) -> None:
        self._host = host

    def playable_url(self, item: Optional[MediaItem] = None) -> Optional[str]:
        """
        The url to hand the viewer for ``item`` (default: current item).

        Hosted-video links are canonicalized; media present in the offline
        byte cache is served from disk.
        """
        item = item or self.current_item
        if item is None:
            return None
        if item.is_video and is_hosted_video_url(item.url):
            return canonical_video_url(item.url)
        if self._resolve_local is not None:
            local = self._resolve_local(item.url)
            if local is not None:
                return local.as_uri()
        return item.url

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a disposer that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: SequencerEventKind, **kwargs) -> None:
        event = SequencerEvent(kind=kind, state=self._state, item=self.current_item, **kwargs)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Sequencer listener failed on {kind.value}")

    def _set_state(self, **changes) -> None:
        new_state = replace(self._state, **changes)
        if new_state != self._state:
            self._state = new_state
            self._emit(SequencerEventKind.STATE_CHANGED)

    # ------------------------------------------------------------------
    # Sequence control
    # ------------------------------------------------------------------

    def load(self, sequence: Iterable[MediaItem]) -> None:
        """Replace the playlist and start from the first item."""
        if self._disposed:
            return
        self._items = tuple(sequence)
        self._timers.cancel_all()

        base = PlaybackState(
            is_fullscreen=self._state.is_fullscreen,
            controls_visible=self._state.controls_visible,
            item_count=len(self._items),
        )
        if not self._items:
            logger.info("Sequencer loaded an empty sequence - idle")
            self._state = base
            self._emit(SequencerEventKind.ITEM_CHANGED)
            self._emit(SequencerEventKind.STATE_CHANGED)
            return

        logger.info(f"Sequencer loaded {len(self._items)} item(s)")
        self._state = replace(base, is_playing=True)
        self._emit(SequencerEventKind.ITEM_CHANGED)
        self._emit(SequencerEventKind.STATE_CHANGED)
        self._arm_current_item()

    def advance(self, direction: int = 1) -> None:
        """Move one step forward (+1) or back (-1), wrapping at both ends."""
        if direction not in (1, -1):
            raise ValueError(f"direction must be +1 or -1, got {direction!r}")
        if self._disposed or not self._items:
            return

        count = len(self._items)
        new_index = (self._state.current_index + direction + count) % count
        self._timers.cancel_all(keep=(_TAP_RESET_TIMER,))
        self._state = replace(
            self._state,
            current_index=new_index,
            is_playing=True,
            error_message=None,
            retry_attempts=0,
        )
        logger.debug(f"Advanced to item {new_index + 1}/{count}")
        self._emit(SequencerEventKind.ITEM_CHANGED)
        self._emit(SequencerEventKind.STATE_CHANGED)
        self._arm_current_item()

    def next(self) -> None:
        self.advance(1)

    def previous(self) -> None:
        self.advance(-1)

    def toggle_play(self) -> None:
        """Play/pause applies to video items only."""
        item = self.current_item
        if item is None or not item.is_video:
            return
        self._set_state(is_playing=not self._state.is_playing)

    def _arm_current_item(self) -> None:
        """Arm the completion trigger for the current item's media type."""
        item = self.current_item
        if item is None or self.should_loop:
            return
        if item.media_type is MediaType.IMAGE:
            self._timers.arm(_IMAGE_TIMER, self._config.image_display_ms, self._on_image_elapsed)
        # Videos wait for on_media_ended() from the viewer.

    def _on_image_elapsed(self) -> None:
        self.advance(1)

    # ------------------------------------------------------------------
    # Viewer signals
    # ------------------------------------------------------------------

    def on_media_ended(self) -> None:
        item = self.current_item
        if item is None or not item.is_video or self.should_loop:
            return
        self.advance(1)

    def on_media_ready(self) -> None:
        """The viewer loaded the current item successfully."""
        if self._state.error_message or self._state.retry_attempts:
            self._timers.cancel(_SKIP_TIMER)
            self._set_state(error_message=None, retry_attempts=0)

    def on_media_error(self, reason: str = "") -> None:
        item = self.current_item
        if item is None:
            return

        if item.is_image:
            # The image timer keeps running; the viewer shows a placeholder.
            logger.warning(f"Image failed to load: {item.title} ({reason or 'unknown error'})")
            return

        if self._state.retry_attempts > self._config.retry_budget:
            # Already given up on this item; the skip (if any) is on its way.
            logger.debug(f"Ignoring further error on '{item.title}': {reason or 'unknown error'}")
            return

        attempts = self._state.retry_attempts + 1
        logger.warning(f"Video error on '{item.title}' attempt {attempts}: {reason or 'unknown error'}")

        if attempts <= self._config.retry_budget:
            message = self._state.error_message
            if attempts > 1:
                message = f"Error playing video: {item.title or 'Unknown'} (attempt {attempts})"
            self._set_state(retry_attempts=attempts, error_message=message)
            self._timers.arm(_RETRY_PAUSE_TIMER, self._config.retry_pause_ms, self._retry_pause)
            return

        message = f"Error playing video: {item.title or 'Unknown'}"
        self._timers.cancel(_RETRY_PAUSE_TIMER)
        self._timers.cancel(_RETRY_RESUME_TIMER)
        self._set_state(retry_attempts=attempts, error_message=message)
        self._emit(
            SequencerEventKind.PLAYBACK_FAILED,
            message=f"Could not play video: {item.title or 'Unknown'}",
        )
        if len(self._items) > 1:
            self._timers.arm(_SKIP_TIMER, self._config.skip_delay_ms, self._skip_failed_item)

    def _retry_pause(self) -> None:
        self._set_state(is_playing=False)
        self._emit(SequencerEventKind.RELOAD_REQUESTED, action=ReloadAction.PAUSE)
        self._timers.arm(_RETRY_RESUME_TIMER, self._config.retry_resume_ms, self._retry_resume)

    def _retry_resume(self) -> None:
        self._set_state(is_playing=True)
        self._emit(SequencerEventKind.RELOAD_REQUESTED, action=ReloadAction.RESUME)

    def _skip_failed_item(self) -> None:
        logger.info("Skipping item after exhausting retries")
        self.advance(1)

    # ------------------------------------------------------------------
    # Full screen
    # ------------------------------------------------------------------

    def enter_fullscreen(self) -> None:
        if self._host is None or self._state.is_fullscreen:
            return
        self._watch_host_call(self._host.request_fullscreen(), entering=True)

    def exit_fullscreen(self) -> None:
        if self._host is None or not self._state.is_fullscreen:
            return
        self._watch_host_call(self._host.exit_fullscreen(), entering=False)

    def toggle_fullscreen(self) -> None:
        if self._state.is_fullscreen:
            self.exit_fullscreen()
        else:
            self.enter_fullscreen()

    def _watch_host_call(self, future: "Future[None]", *, entering: bool) -> None:
        def done(fut: "Future[None]") -> None:
            if self._disposed:
                return
            error = fut.exception()
            if error is not None:
                verb = "enable" if entering else "exit"
                logger.error(f"Error attempting to {verb} full-screen mode: {error}")
                return
            if entering:
                self._set_state(is_fullscreen=True, controls_visible=False)
            else:
                self._mark_fullscreen_exited()

        future.add_done_callback(done)

    def on_host_fullscreen_exited(self) -> None:
        """The host left full screen on its own (Esc, window manager, ...)."""
        if self._disposed:
            return
        self._mark_fullscreen_exited()

    def _mark_fullscreen_exited(self) -> None:
        self._timers.cancel(_TAP_RESET_TIMER)
        self._set_state(is_fullscreen=False, controls_visible=True, tap_count=0)

    def register_tap(self) -> None:
        """Count a tap on the display; enough taps in a row leave full screen."""
        if self._disposed or not self._state.is_fullscreen:
            return

        count = self._state.tap_count + 1
        if count >= self._config.tap_exit_threshold:
            self._timers.cancel(_TAP_RESET_TIMER)
            self._set_state(tap_count=0)
            logger.info("Tap gesture threshold reached - leaving full screen")
            self.exit_fullscreen()
            return

        self._set_state(tap_count=count)
        self._timers.arm(_TAP_RESET_TIMER, self._config.tap_reset_ms, self._reset_taps)

    def _reset_taps(self) -> None:
        self._set_state(tap_count=0)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Cancel every timer and drop all listeners."""
        self._disposed = True
        self._timers.cancel_all()
        self._listeners.clear()

    @property
    def pending_timers(self) -> int:
        return len(self._timers)


def build_sequence(items: Sequence[MediaItem]) -> Tuple[MediaItem, ...]:
    """Inactive records are kept in the repository but not played."""
    return tuple(item for item in items if item.active)
