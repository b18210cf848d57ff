"""Video player components."""

from .video_player import VideoView
from .player_controls import MPVSignals, PlaybackControls

__all__ = ['VideoView', 'MPVSignals', 'PlaybackControls']
