"""
Background worker for play-mode entry.

The playlist fetch may hit the network, so it runs off the UI thread. The
play window hands each worker a token and ignores results from stale ones.
"""
import logging

from src.core.playlist_loader import CancelToken, PlaylistLoader
from src.ui.common.workers import TokenWorker

logger = logging.getLogger(__name__)


class PlaylistLoadWorker(TokenWorker):
    """
    Signals:
        done(token, LoadResult): Emitted on success (including empty results)
        failed(token, error): Emitted when the repository refused the request
            or the load crashed
    """

    def __init__(self, *, token: int, loader: PlaylistLoader, owner_id: str):
        super().__init__(token=token)
        self._loader = loader
        self._owner_id = owner_id
        self._cancel = CancelToken()

    def cancel(self) -> None:
        super().cancel()
        self._cancel.cancel()

    def work(self):
        return self._loader.load(self._owner_id, self._cancel)
