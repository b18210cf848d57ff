"""
Database schema and management for Infinite Loop Display.
Handles configuration, local media records, local accounts and the
offline byte-cache index.
"""
import sqlite3
import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Optional, Dict, List
from datetime import datetime, timezone
from cryptography.fernet import Fernet, InvalidToken
import keyring

from src.utils.file_utils import get_data_dir

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "InfiniteLoopDisplay"


class DatabaseManager:
    """Manages SQLite database operations for configuration and local storage"""

    VERSION = "1.0.0"

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize database manager

        Args:
            db_path: Path to SQLite database file. Defaults to the app data directory.
        """
        if db_path is None:
            db_path = get_data_dir() / "data.db"

        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._encryption_key = self._get_or_create_encryption_key()

    def _get_or_create_encryption_key(self) -> bytes:
        """
        Retrieve or create the encryption key from the OS credential store

        Returns:
            Fernet encryption key
        """
        key_name = "encryption_key"

        try:
            key_str = keyring.get_password(KEYRING_SERVICE, key_name)
            if key_str:
                return key_str.encode()
        except Exception as e:
            logger.warning(f"Could not retrieve encryption key: {e}")

        key = Fernet.generate_key()
        try:
            keyring.set_password(KEYRING_SERVICE, key_name, key.decode())
        except Exception as e:
            logger.error(f"Could not store encryption key: {e}")

        return key

    def _encrypt_value(self, value: str) -> str:
        """Encrypt sensitive value"""
        f = Fernet(self._encryption_key)
        return f.encrypt(value.encode()).decode()

    def _decrypt_value(self, encrypted_value: str) -> str:
        """Decrypt sensitive value"""
        f = Fernet(self._encryption_key)
        return f.decrypt(encrypted_value.encode()).decode()

    def connect(self):
        """Establish database connection"""
        self.conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=30.0
        )
        self.conn.row_factory = sqlite3.Row
        self._initialize_schema()

    def _initialize_schema(self):
        """Create database schema if not exists"""
        cursor = self.conn.cursor()

        cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='config'")
        schema_exists = cursor.fetchone() is not None

        # Configuration table
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                is_encrypted INTEGER DEFAULT 0,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Media records for the local backend
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS media_items (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                title TEXT NOT NULL,
                url TEXT NOT NULL,
                media_type TEXT NOT NULL DEFAULT 'video',
                active INTEGER DEFAULT 1,
                category TEXT DEFAULT '',
                created_at TEXT NOT NULL
            )
        """)

        # Accounts for the local backend
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS accounts (
                uid TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                salt TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Offline byte cache index
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS media_cache (
                url TEXT PRIMARY KEY,
                file_path TEXT NOT NULL,
                media_type TEXT,
                file_size INTEGER,
                cached_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                last_accessed TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                access_count INTEGER DEFAULT 1
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_media_items_owner ON media_items(owner_id)")

        self.conn.commit()
        self._set_default_config()

        if not schema_exists:
            logger.info("Database schema initialized")
        else:
            logger.debug("Database schema verified")

    def _set_default_config(self):
        """Set default configuration values"""
        defaults = {
            'app_version': self.VERSION,
            'backend': 'local',
            'firebase_api_key': '',
            'firebase_project_id': '',
            'firebase_collection': 'videos',
            'image_display_seconds': '7',
            'video_retry_budget': '3',
            'video_retry_pause_ms': '1000',
            'video_skip_delay_ms': '3000',
            'fullscreen_exit_taps': '6',
            'fullscreen_tap_reset_ms': '2000',
            'http_timeout_seconds': '30',
            'start_fullscreen': 'false',
            'video_player_volume': '80',
            'offline_storage_enabled': 'false',
        }

        cursor = self.conn.cursor()
        for key, value in defaults.items():
            cursor.execute("""
                INSERT OR IGNORE INTO config (key, value)
                VALUES (?, ?)
            """, (key, value))
        self.conn.commit()

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def get_config(self, key: str, default: Any = None) -> Any:
        """
        Retrieve configuration value

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("""
                SELECT value, is_encrypted FROM config WHERE key = ?
            """, (key,))
            row = cursor.fetchone()

        if row:
            value = row['value']
            if row['is_encrypted']:
                try:
                    value = self._decrypt_value(value)
                except InvalidToken:
                    logger.warning(f"Could not decrypt config value '{key}' - key was rotated")
                    return default
            return value
        return default

    def set_config(self, key: str, value: Any, encrypt: bool = False):
        """
        Set configuration value

        Args:
            key: Configuration key
            value: Configuration value
            encrypt: Whether to encrypt the value
        """
        str_value = str(value)
        if encrypt:
            str_value = self._encrypt_value(str_value)

        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("""
                INSERT OR REPLACE INTO config (key, value, is_encrypted, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            """, (key, str_value, 1 if encrypt else 0))
            self.conn.commit()

    def delete_config(self, key: str):
        with self._lock:
            self.conn.execute("DELETE FROM config WHERE key = ?", (key,))
            self.conn.commit()

    def get_int_config(self, key: str, default: int) -> int:
        try:
            return int(self.get_config(key, default))
        except (TypeError, ValueError):
            return default

    def get_bool_config(self, key: str, default: bool = False) -> bool:
        value = self.get_config(key, 'true' if default else 'false')
        return str(value).lower() in ('1', 'true', 'yes', 'on')

    def get_json_config(self, key: str, default: Any = None) -> Any:
        """Config value stored as a JSON document; malformed values yield ``default``."""
        raw = self.get_config(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Ignoring malformed JSON in config '{key}'")
            return default

    def set_json_config(self, key: str, value: Any, encrypt: bool = False):
        self.set_config(key, json.dumps(value, separators=(",", ":")), encrypt=encrypt)

    # ------------------------------------------------------------------
    # Local media records
    # ------------------------------------------------------------------

    def insert_media_item(self, owner_id: str, title: str, url: str, media_type: str,
                          *, category: str = '', active: bool = True,
                          created_at: Optional[datetime] = None) -> Dict:
        """
        Insert a media record and return it as a dictionary

        Args:
            owner_id: Owning user id
            title: Display title
            url: Normalized media URL
            media_type: 'video' or 'image'
        """
        created = (created_at or datetime.now(timezone.utc)).isoformat()
        item_id = uuid.uuid4().hex
        with self._lock:
            self.conn.execute("""
                INSERT INTO media_items (id, owner_id, title, url, media_type, active, category, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (item_id, owner_id, title, url, media_type, 1 if active else 0, category, created))
            self.conn.commit()
        return {
            'id': item_id,
            'owner_id': owner_id,
            'title': title,
            'url': url,
            'media_type': media_type,
            'active': 1 if active else 0,
            'category': category,
            'created_at': created,
        }

    def get_media_items(self, owner_id: str) -> List[Dict]:
        """Media records for one owner, unordered"""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM media_items WHERE owner_id = ?", (owner_id,))
            return [dict(row) for row in cursor.fetchall()]

    def delete_media_item(self, item_id: str, owner_id: Optional[str] = None) -> bool:
        """Delete a record; with ``owner_id`` only if that account owns it."""
        with self._lock:
            cursor = self.conn.cursor()
            if owner_id is None:
                cursor.execute("DELETE FROM media_items WHERE id = ?", (item_id,))
            else:
                cursor.execute("DELETE FROM media_items WHERE id = ? AND owner_id = ?", (item_id, owner_id))
            self.conn.commit()
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Local accounts
    # ------------------------------------------------------------------

    def insert_account(self, email: str, password_hash: str, salt: str) -> str:
        uid = uuid.uuid4().hex
        with self._lock:
            self.conn.execute("""
                INSERT INTO accounts (uid, email, password_hash, salt)
                VALUES (?, ?, ?, ?)
            """, (uid, email, password_hash, salt))
            self.conn.commit()
        return uid

    def get_account_by_email(self, email: str) -> Optional[Dict]:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM accounts WHERE email = ?", (email,))
            row = cursor.fetchone()
        return dict(row) if row else None

    def get_account(self, uid: str) -> Optional[Dict]:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM accounts WHERE uid = ?", (uid,))
            row = cursor.fetchone()
        return dict(row) if row else None

    # ------------------------------------------------------------------
    # Offline byte cache index
    # ------------------------------------------------------------------

    def cache_media(self, url: str, file_path: str, media_type: str, file_size: int):
        """
        Cache media file information

        Args:
            url: Original media URL
            file_path: Local file system path
            media_type: Type of media (video, image)
            file_size: File size in bytes
        """
        with self._lock:
            self.conn.execute("""
                INSERT OR REPLACE INTO media_cache
                (url, file_path, media_type, file_size, cached_at, last_accessed, access_count)
                VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP,
                        COALESCE((SELECT access_count + 1 FROM media_cache WHERE url = ?), 1))
            """, (url, file_path, media_type, file_size, url))
            self.conn.commit()

    def get_cached_media(self, url: str) -> Optional[Dict]:
        """
        Retrieve cached media information

        Args:
            url: Media URL

        Returns:
            Dictionary with cache information or None
        """
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT * FROM media_cache WHERE url = ?", (url,))
            row = cursor.fetchone()
            if row:
                cursor.execute("""
                    UPDATE media_cache
                    SET last_accessed = CURRENT_TIMESTAMP, access_count = access_count + 1
                    WHERE url = ?
                """, (url,))
                self.conn.commit()
                return dict(row)
        return None

    def clear_media_cache(self) -> int:
        """Remove every byte-cache index row. Returns the number removed."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM media_cache")
            self.conn.commit()
            deleted = cursor.rowcount
        logger.info(f"Cleared {deleted} media cache entries")
        return deleted

    def close(self):
        """Close database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None
