import sqlite3
from datetime import datetime, timezone

import pytest

from src.core.database import DatabaseManager


def raw_config_row(db, key):
    return db.conn.execute("SELECT value, is_encrypted FROM config WHERE key = ?", (key,)).fetchone()


def test_defaults_are_seeded(db):
    assert db.get_config("backend") == "local"
    assert db.get_int_config("image_display_seconds", 0) == 7
    assert db.get_int_config("fullscreen_exit_taps", 0) == 6
    assert db.get_bool_config("offline_storage_enabled", True) is False


def test_defaults_do_not_overwrite_saved_values(tmp_path):
    first = DatabaseManager(tmp_path / "data.db")
    first.connect()
    first.set_config("backend", "firebase")
    first.close()

    second = DatabaseManager(tmp_path / "data.db")
    second.connect()
    assert second.get_config("backend") == "firebase"
    second.close()


def test_encrypted_config_round_trip(db):
    db.set_config("firebase_api_key", "secret-key", encrypt=True)
    row = raw_config_row(db, "firebase_api_key")
    assert row["is_encrypted"] == 1
    assert row["value"] != "secret-key"
    assert db.get_config("firebase_api_key") == "secret-key"


def test_typed_config_helpers_fall_back(db):
    db.set_config("video_retry_budget", "lots")
    assert db.get_int_config("video_retry_budget", 3) == 3
    db.set_config("start_fullscreen", "Yes")
    assert db.get_bool_config("start_fullscreen") is True
    assert db.get_config("missing", "fallback") == "fallback"


def test_json_config(db):
    db.set_json_config("offlineVideos", {"a": "https://example.com/a.mp4"})
    assert db.get_json_config("offlineVideos") == {"a": "https://example.com/a.mp4"}

    db.set_config("broken", "{not json")
    assert db.get_json_config("broken", []) == []

    db.delete_config("offlineVideos")
    assert db.get_json_config("offlineVideos", {}) == {}


def test_media_items_are_scoped_by_owner(db):
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    row = db.insert_media_item("u1", "Intro", "https://example.com/a.mp4", "video", created_at=created)
    db.insert_media_item("u2", "Other", "https://example.com/b.png", "image", active=False)

    assert row["created_at"] == created.isoformat()
    items = db.get_media_items("u1")
    assert [item["title"] for item in items] == ["Intro"]
    assert items[0]["active"] == 1

    assert db.delete_media_item(row["id"]) is True
    assert db.delete_media_item(row["id"]) is False
    assert db.get_media_items("u1") == []


def test_delete_media_item_scoped_to_owner(db):
    row = db.insert_media_item("u1", "Intro", "https://example.com/a.mp4", "video")
    assert db.delete_media_item(row["id"], "u2") is False
    assert [item["id"] for item in db.get_media_items("u1")] == [row["id"]]
    assert db.delete_media_item(row["id"], "u1") is True


def test_accounts(db):
    uid = db.insert_account("a@example.com", "hash", "salt")
    assert db.get_account(uid)["email"] == "a@example.com"
    assert db.get_account_by_email("a@example.com")["uid"] == uid
    assert db.get_account_by_email("b@example.com") is None
    with pytest.raises(sqlite3.IntegrityError):
        db.insert_account("a@example.com", "hash", "salt")


def test_media_cache_index(db):
    db.cache_media("https://example.com/a.mp4", "/tmp/a.mp4", "video", 10)
    record = db.get_cached_media("https://example.com/a.mp4")
    assert record["file_path"] == "/tmp/a.mp4"
    assert db.get_cached_media("https://example.com/other.mp4") is None
    assert db.clear_media_cache() == 1
    assert db.get_cached_media("https://example.com/a.mp4") is None
