"""
Offline fallback storage for the display surface.

Two strategies sit behind one facade:

- ``UrlReferenceStore`` keeps id -> url under the ``offlineVideos`` config key.
  Playback still needs the network for the media itself, but the playlist
  survives a repository outage.
- ``ByteCacheStore`` downloads the media bytes into the app data directory and
  lists the ids it holds under ``cachedVideos``. Hosted video platforms cannot
  be fetched as raw bytes and are skipped.
"""
from __future__ import annotations

import hashlib
import logging
import shutil
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

import requests

from src.core.dto.media import MediaItem
from src.core.errors import ConnectivityError
from src.core.http_client import get_media_headers_with_referer
from src.core.media_validation import guess_media_type, is_hosted_video_url

logger = logging.getLogger(__name__)

OFFLINE_URLS_KEY = "offlineVideos"
CACHED_IDS_KEY = "cachedVideos"


class UrlReferenceStore:
    """id -> url map persisted as one JSON record."""

    def __init__(self, db):
        self._db = db
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        data = self._db.get_json_config(OFFLINE_URLS_KEY, {})
        if not isinstance(data, dict):
            logger.warning(f"Discarding malformed '{OFFLINE_URLS_KEY}' record")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def save_entry(self, media_id: str, url: str) -> None:
        with self._lock:
            entries = self._read()
            if entries.get(media_id) == url:
                return
            entries[media_id] = url
            self._db.set_json_config(OFFLINE_URLS_KEY, entries)

    def has(self, media_id: str) -> bool:
        return media_id in self._read()

    def entries(self) -> Dict[str, str]:
        return self._read()

    def clear(self) -> None:
        with self._lock:
            self._db.delete_config(OFFLINE_URLS_KEY)


class ByteCacheStore:
    """Media bytes on disk, indexed by url in the ``media_cache`` table."""

    def __init__(self, db, cache_dir: Path, *, session: Optional[requests.Session] = None,
                 timeout: int = 120):
        self._db = db
        self.cache_dir = Path(cache_dir)
        self.raw_dir = self.cache_dir / "raw"
        self.raw_dir.mkdir(parents=True, exist_ok=True)
        self._session = session or requests.Session()
        self._timeout = timeout
        self._lock = threading.Lock()

    def cached_ids(self) -> List[str]:
        ids = self._db.get_json_config(CACHED_IDS_KEY, [])
        return [str(i) for i in ids] if isinstance(ids, list) else []

    def is_cached(self, media_id: str) -> bool:
        return media_id in self.cached_ids()

    def _target_for(self, url: str) -> Path:
        suffix = Path(urlparse(url).path).suffix or ".bin"
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self.raw_dir / f"{digest}{suffix}"

    def local_path(self, url: str) -> Optional[Path]:
        """Path of the cached file for ``url``, if present on disk."""
        record = self._db.get_cached_media(url)
        if record:
            path = Path(record["file_path"])
            if path.exists():
                return path
        return None

    def cache_item(self, item: MediaItem) -> bool:
        """
        Download ``item`` unless it is already cached.

        Returns False for hosted-video links, which are never byte-cached.

        Raises:
            ConnectivityError: the download failed
        """
        if is_hosted_video_url(item.url):
            logger.info(f"Hosted videos cannot be cached for offline use: {item.title}")
            return False
        if self.is_cached(item.id) and self.local_path(item.url) is not None:
            return True

        target = self._download(item.url)
        self._db.cache_media(item.url, str(target), item.media_type.value, target.stat().st_size)

        with self._lock:
            ids = self.cached_ids()
            if item.id not in ids:
                ids.append(item.id)
                self._db.set_json_config(CACHED_IDS_KEY, ids)

        logger.info(f"Media '{item.title}' saved for offline viewing")
        return True

    def _download(self, url: str) -> Path:
        target = self._target_for(url)
        if target.exists():
            return target

        tmp = target.with_suffix(target.suffix + ".tmp")
        try:
            resp = self._session.get(
                url,
                stream=True,
                timeout=self._timeout,
                allow_redirects=True,
                headers=get_media_headers_with_referer(url),
            )
        except requests.RequestException as e:
            raise ConnectivityError(f"Failed to download media: {e}") from e

        logger.debug(f"download {url} -> {resp.url} {resp.status_code}")
        if not resp.ok:
            resp.close()
            raise ConnectivityError(f"Failed to download media: HTTP {resp.status_code}")

        try:
            with open(tmp, "wb") as f:
                for chunk in resp.iter_content(1024 * 128):
                    if chunk:
                        f.write(chunk)
            tmp.replace(target)
        except requests.RequestException as e:
            tmp.unlink(missing_ok=True)
            raise ConnectivityError(f"Download interrupted: {e}") from e
        finally:
            resp.close()
        return target

    def clear(self) -> int:
        """Delete every cached file. Returns the number of files removed."""
        removed = 0
        with self._lock:
            if self.raw_dir.exists():
                removed = sum(1 for p in self.raw_dir.iterdir() if p.is_file())
                shutil.rmtree(self.raw_dir)
            self.raw_dir.mkdir(parents=True, exist_ok=True)
            self._db.clear_media_cache()
            self._db.delete_config(CACHED_IDS_KEY)
        logger.info(f"Video cache cleared ({removed} files)")
        return removed


class OfflineCache:
    """Facade over the url-reference and byte-cache strategies."""

    def __init__(self, urls: UrlReferenceStore, files: Optional[ByteCacheStore] = None):
        self.urls = urls
        self.files = files

    def save_entry(self, media_id: str, url: str) -> None:
        """Idempotent upsert of an id -> url reference."""
        self.urls.save_entry(media_id, url)

    def has(self, media_id: str) -> bool:
        return self.urls.has(media_id)

    def save_item(self, item: MediaItem, *, with_bytes: bool = False) -> bool:
        """
        Remember ``item`` for offline playback.

        Returns True when the media bytes are available locally afterwards.
        """
        self.save_entry(item.id, item.url)
        if not with_bytes or self.files is None:
            return False
        return self.files.cache_item(item)

    def load_all(self) -> List[MediaItem]:
        """Every saved entry as a playable record with a synthesized title."""
        now = datetime.now(timezone.utc)
        items = []
        for index, (media_id, url) in enumerate(self.urls.entries().items(), start=1):
            items.append(MediaItem(
                id=media_id,
                url=url,
                title=f"Offline media {index}",
                media_type=guess_media_type(url),
                created_at=now,
            ))
        return items

    def resolve(self, url: str) -> Optional[Path]:
        """Local file for ``url`` when its bytes are cached."""
        if self.files is None:
            return None
        return self.files.local_path(url)

    def cached_ids(self) -> List[str]:
        return self.files.cached_ids() if self.files is not None else []

    def clear(self) -> None:
        self.urls.clear()
        if self.files is not None:
            self.files.clear()
