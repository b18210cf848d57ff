"""
Builds the play-mode sequence for the signed-in user.

Called from a worker thread on every entry into play mode. A repository
outage falls back to the offline cache; an empty result is reported as such
rather than replaced with stale offline entries.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from src.core.dto.media import MediaItem
from src.core.errors import ConnectivityError
from src.core.offline_cache import OfflineCache
from src.core.repository import MediaRepository
from src.core.sequencer import build_sequence

logger = logging.getLogger(__name__)


class CancelToken:
    """Set once by the UI when the requester goes away."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class LoadSource(str, Enum):
    REMOTE = "remote"
    OFFLINE = "offline"
    EMPTY = "empty"


@dataclass(frozen=True)
class LoadResult:
    items: Tuple[MediaItem, ...]
    source: LoadSource
    error: Optional[Exception] = None

    @property
    def is_empty(self) -> bool:
        return not self.items


class PlaylistLoader:
    def __init__(self, repository: MediaRepository, offline_cache: Optional[OfflineCache] = None):
        self._repository = repository
        self._offline = offline_cache

    def load(self, owner_id: str, cancel: Optional[CancelToken] = None) -> Optional[LoadResult]:
        """
        Fetch the sequence for ``owner_id``.

        Returns None if ``cancel`` fired while the fetch was in flight.
        AuthError from the repository propagates.
        """
        try:
            items = build_sequence(self._repository.list(owner_id))
        except ConnectivityError as e:
            if cancel is not None and cancel.cancelled:
                return None
            return self._offline_fallback(e)

        if cancel is not None and cancel.cancelled:
            logger.debug("Playlist load cancelled")
            return None

        if not items:
            logger.info(f"No media for {owner_id}")
            return LoadResult(items=(), source=LoadSource.EMPTY)

        logger.info(f"Loaded {len(items)} item(s) for playback")
        return LoadResult(items=items, source=LoadSource.REMOTE)

    def _offline_fallback(self, error: ConnectivityError) -> LoadResult:
        logger.warning(f"Repository unreachable, trying offline cache: {error}")
        items: Tuple[MediaItem, ...] = ()
        if self._offline is not None:
            items = tuple(self._offline.load_all())
        if not items:
            return LoadResult(items=(), source=LoadSource.EMPTY, error=error)
        logger.info(f"Playing {len(items)} offline item(s)")
        return LoadResult(items=items, source=LoadSource.OFFLINE, error=error)
