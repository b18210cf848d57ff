"""
Per-user media records.

``MediaRepository`` is the contract the dashboard and the playlist loader
use. Records are filtered by owner in the backend; ordering (newest first) is
applied here so no composite index is needed remotely.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from src.core.api.base import APIError, APITransportError
from src.core.api.firebase import FirestoreClient, decode_fields, document_id
from src.core.dto.media import MediaItem, MediaType
from src.core.errors import AuthError, ConnectivityError

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[List[MediaItem]], None]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def sort_newest_first(items: List[MediaItem]) -> List[MediaItem]:
    return sorted(items, key=lambda item: item.created_at or _EPOCH, reverse=True)


class MediaRepository(ABC):
    """Contract for per-owner media storage."""

    def __init__(self):
        self._subscribers: Dict[str, List[ChangeCallback]] = {}
        self._sub_lock = threading.Lock()

    @abstractmethod
    def list(self, owner_id: str) -> List[MediaItem]:
        """Every record for ``owner_id``, newest first."""

    @abstractmethod
    def create(self, owner_id: str, title: str, url: str, media_type: MediaType) -> MediaItem:
        ...

    @abstractmethod
    def delete(self, item_id: str, owner_id: Optional[str] = None) -> None:
        ...

    def subscribe(self, owner_id: str, on_change: ChangeCallback) -> Callable[[], None]:
        """
        Call ``on_change`` with the owner's fresh list after every mutation
        made through this repository. Returns a disposer.
        """
        with self._sub_lock:
            self._subscribers.setdefault(owner_id, []).append(on_change)

        def unsubscribe() -> None:
            with self._sub_lock:
                callbacks = self._subscribers.get(owner_id, [])
                if on_change in callbacks:
                    callbacks.remove(on_change)
                if not callbacks:
                    self._subscribers.pop(owner_id, None)

        return unsubscribe

    def _notify(self, owner_id: Optional[str]) -> None:
        owners = [owner_id] if owner_id else list(self._subscribers)
        for owner in owners:
            with self._sub_lock:
                callbacks = list(self._subscribers.get(owner, []))
            if not callbacks:
                continue
            try:
                items = self.list(owner)
            except ConnectivityError as e:
                logger.warning(f"Could not refresh subscribers for {owner}: {e}")
                continue
            for callback in callbacks:
                callback(items)


class LocalMediaRepository(MediaRepository):
    """SQLite-backed records in the app database."""

    def __init__(self, db):
        super().__init__()
        self._db = db

    @staticmethod
    def _item_from_row(row: Dict) -> MediaItem:
        created = datetime.fromisoformat(row["created_at"])
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return MediaItem(
            id=row["id"],
            url=row["url"],
            title=row["title"],
            media_type=MediaType.parse(row["media_type"]),
            owner_id=row["owner_id"],
            created_at=created,
            active=bool(row["active"]),
            category=row["category"] or "",
        )

    def list(self, owner_id: str) -> List[MediaItem]:
        items = [self._item_from_row(row) for row in self._db.get_media_items(owner_id)]
        return sort_newest_first(items)

    def create(self, owner_id: str, title: str, url: str, media_type: MediaType) -> MediaItem:
        row = self._db.insert_media_item(owner_id, title, url, media_type.value)
        item = self._item_from_row(row)
        logger.info(f"Created {media_type.value} '{title}' for {owner_id}")
        self._notify(owner_id)
        return item

    def delete(self, item_id: str, owner_id: Optional[str] = None) -> None:
        if not self._db.delete_media_item(item_id, owner_id):
            logger.warning(f"Delete of unknown media item {item_id}")
        self._notify(owner_id)


class FirestoreMediaRepository(MediaRepository):
    """Records in a Firestore collection, one document per item."""

    def __init__(self, client: FirestoreClient, token_provider: Callable[..., Optional[str]],
                 *, collection: str = "videos"):
        """
        Args:
            token_provider: Returns the ID token to send; called with
                ``force_refresh=True`` after the backend rejects a token.
        """
        super().__init__()
        self._client = client
        self._token_provider = token_provider
        self.collection = collection

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, id_token=self._token_provider(), **kwargs)
        except APITransportError:
            raise
        except APIError as e:
            if e.status_code != 401:
                raise self._translate(e) from e
            logger.info("ID token rejected - refreshing and retrying once")

        try:
            return fn(*args, id_token=self._token_provider(force_refresh=True), **kwargs)
        except APITransportError:
            raise
        except APIError as e:
            raise self._translate(e) from e

    @staticmethod
    def _translate(error: APIError) -> Exception:
        if error.status_code in (401, 403):
            return AuthError("Your session has expired, please sign in again")
        return ConnectivityError(str(error))

    @staticmethod
    def _item_from_document(document: Dict) -> MediaItem:
        data = decode_fields(document.get("fields") or {})
        created = data.get("createdAt") or data.get("date")
        if not isinstance(created, datetime):
            created = _EPOCH
        return MediaItem(
            id=document_id(document),
            url=data.get("url") or "",
            title=data.get("title") or "",
            media_type=MediaType.parse(data.get("type")),
            owner_id=data.get("userId") or "",
            created_at=created,
            active=data.get("active", True) is not False,
            category=data.get("category") or "",
        )

    def list(self, owner_id: str) -> List[MediaItem]:
        documents = self._call(self._client.query_equal, self.collection, "userId", owner_id)
        items = [self._item_from_document(doc) for doc in documents]
        logger.info(f"Fetched {len(items)} media record(s) from Firestore")
        return sort_newest_first(items)

    def create(self, owner_id: str, title: str, url: str, media_type: MediaType) -> MediaItem:
        data = {
            "title": title,
            "url": url,
            "type": media_type.value,
            "userId": owner_id,
            "createdAt": datetime.now(timezone.utc),
            "active": True,
            "category": "",
        }
        document = self._call(self._client.create_document, self.collection, data)
        item = self._item_from_document(document)
        self._notify(owner_id)
        return item

    def delete(self, item_id: str, owner_id: Optional[str] = None) -> None:
        self._call(self._client.delete_document, self.collection, item_id)
        self._notify(owner_id)
