from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from src.core.api.firebase import FirebaseAuthClient, FirestoreClient
from src.core.auth import AuthProvider, FirebaseAuthProvider, LocalAuthProvider
from src.core.database import DatabaseManager
from src.core.http_client import MEDIA_HEADERS, HttpClient, create_http_client_from_settings
from src.core.offline_cache import ByteCacheStore, OfflineCache, UrlReferenceStore
from src.core.playlist_loader import PlaylistLoader
from src.core.repository import FirestoreMediaRepository, LocalMediaRepository, MediaRepository
from src.core.sequencer import SequencerConfig
from src.utils.file_utils import get_data_dir

logger = logging.getLogger(__name__)


class CacheConfig:
    """
    Centralized cache directory configuration.

    All paths are absolute and platform-independent.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize cache configuration.

        Args:
            base_dir: Base directory for all caches. Defaults to the app data directory.
        """
        self.base = Path(base_dir) if base_dir else get_data_dir()
        self.base.mkdir(parents=True, exist_ok=True)

    @property
    def media(self) -> Path:
        """Media files saved for offline playback"""
        path = self.base / "media_cache"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def logs(self) -> Path:
        path = self.base / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path


class CoreContext:
    """
    Shared Core dependencies (DB + clients + services).

    Use a single instance for app lifetime; tests build one per case with a
    temporary database and, optionally, fake collaborators.
    """

    def __init__(
        self,
        *,
        db: Optional[DatabaseManager] = None,
        session: Optional[requests.Session] = None,
        cache_config: Optional[CacheConfig] = None,
        auth: Optional[AuthProvider] = None,
        repository: Optional[MediaRepository] = None,
    ):
        self.cache = cache_config or CacheConfig()
        self.db = db or DatabaseManager(self.cache.base / "data.db")

        # Initialize database connection early so we can read settings
        if self.db.conn is None:
            self.db.connect()

        self._http_client: HttpClient = create_http_client_from_settings(self.db)
        self.session = session if session is not None else self._http_client.create_sync_session()
        timeout = self._http_client.config.timeout

        self.backend = self.db.get_config("backend", "local")
        if self.backend == "firebase":
            api_key = self.db.get_config("firebase_api_key", "")
            project_id = self.db.get_config("firebase_project_id", "")
            if not api_key or not project_id:
                logger.warning("Firebase backend selected without api key/project id - using local backend")
                self.backend = "local"

        if self.backend == "firebase":
            auth_client = FirebaseAuthClient(api_key, self.session, timeout=timeout)
            firebase_auth = auth if auth is not None else FirebaseAuthProvider(self.db, auth_client)
            self.auth: AuthProvider = firebase_auth
            token_provider = getattr(firebase_auth, "id_token", lambda force_refresh=False: None)
            self.repository: MediaRepository = repository or FirestoreMediaRepository(
                FirestoreClient(project_id, self.session, timeout=timeout),
                token_provider,
                collection=self.db.get_config("firebase_collection", "videos"),
            )
        else:
            self.auth = auth or LocalAuthProvider(self.db)
            self.repository = repository or LocalMediaRepository(self.db)
        logger.info(f"Core context using '{self.backend}' backend")

        media_session = self._http_client.create_sync_session(headers=MEDIA_HEADERS)
        self._media_session = media_session
        self.offline_cache = OfflineCache(
            UrlReferenceStore(self.db),
            ByteCacheStore(self.db, self.cache.media, session=media_session, timeout=timeout),
        )
        self.playlist_loader = PlaylistLoader(self.repository, self.offline_cache)

    @property
    def http_client(self) -> HttpClient:
        return self._http_client

    def sequencer_config(self) -> SequencerConfig:
        return SequencerConfig.from_db(self.db)

    def close(self) -> None:
        self._http_client.close()
        self._media_session.close()
        self.session.close()
        self.db.close()
