"""
Background worker threads for dashboard operations.

Repository and offline-cache calls can block on the network, so each one
runs in a QThread.
"""
import logging
from typing import List

from src.core.dto.media import MediaItem, MediaType
from src.core.errors import ConnectivityError
from src.ui.common.workers import TokenWorker

logger = logging.getLogger(__name__)


class MediaListWorker(TokenWorker):
    """done(token, list[MediaItem])"""

    def __init__(self, *, token: int, repository, owner_id: str):
        super().__init__(token=token)
        self._repository = repository
        self._owner_id = owner_id

    def work(self):
        return self._repository.list(self._owner_id)


class SubmitMediaWorker(TokenWorker):
    """done(token, MediaItem)"""

    def __init__(self, *, token: int, repository, owner_id: str, title: str, url: str, media_type: MediaType):
        super().__init__(token=token)
        self._repository = repository
        self._owner_id = owner_id
        self._title = title
        self._url = url
        self._media_type = media_type

    def work(self):
        return self._repository.create(self._owner_id, self._title, self._url, self._media_type)


class DeleteMediaWorker(TokenWorker):
    """done(token, item_id)"""

    def __init__(self, *, token: int, repository, owner_id: str, item_id: str):
        super().__init__(token=token)
        self._repository = repository
        self._owner_id = owner_id
        self._item_id = item_id

    def work(self):
        self._repository.delete(self._item_id, self._owner_id)
        return self._item_id


class SaveOfflineWorker(TokenWorker):
    """done(token, (saved_count, bytes_cached_count))"""

    def __init__(self, *, token: int, offline_cache, items: List[MediaItem], with_bytes: bool = True):
        super().__init__(token=token)
        self._offline_cache = offline_cache
        self._items = list(items)
        self._with_bytes = with_bytes

    def work(self):
        saved = cached = 0
        for item in self._items:
            if self._cancelled:
                break
            try:
                if self._offline_cache.save_item(item, with_bytes=self._with_bytes):
                    cached += 1
            except ConnectivityError as e:
                logger.warning(f"Offline copy failed for {item.title}: {e}")
            saved += 1
        return saved, cached


class ClearOfflineWorker(TokenWorker):
    """done(token, None)"""

    def __init__(self, *, token: int, offline_cache):
        super().__init__(token=token)
        self._offline_cache = offline_cache

    def work(self):
        self._offline_cache.clear()
