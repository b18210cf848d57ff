"""Play mode: the display surface driven by the sequencer."""

from .playback_window import PlaybackWindow
from .player_workers import PlaylistLoadWorker

__all__ = ['PlaybackWindow', 'PlaylistLoadWorker']
