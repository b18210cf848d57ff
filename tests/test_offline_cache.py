from unittest.mock import MagicMock

import pytest
import requests

from src.core.dto.media import MediaType
from src.core.errors import ConnectivityError
from src.core.offline_cache import (CACHED_IDS_KEY, OFFLINE_URLS_KEY, ByteCacheStore, OfflineCache,
                                    UrlReferenceStore)


def ok_response(chunks, url="https://cdn.example.com/poster.png"):
    resp = MagicMock()
    resp.ok = True
    resp.status_code = 200
    resp.url = url
    resp.iter_content.return_value = chunks
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def files(db, tmp_path, session):
    return ByteCacheStore(db, tmp_path / "media", session=session, timeout=5)


@pytest.fixture
def cache(db, files):
    return OfflineCache(UrlReferenceStore(db), files)


def test_url_references_are_idempotent(db):
    store = UrlReferenceStore(db)
    store.save_entry("a", "https://example.com/a.mp4")
    store.save_entry("a", "https://example.com/a.mp4")
    store.save_entry("b", "https://example.com/b.png")

    assert store.has("a")
    assert not store.has("c")
    assert store.entries() == {"a": "https://example.com/a.mp4", "b": "https://example.com/b.png"}

    store.save_entry("a", "https://example.com/a2.mp4")
    assert store.entries()["a"] == "https://example.com/a2.mp4"

    store.clear()
    assert store.entries() == {}


def test_malformed_reference_record_is_ignored(db):
    db.set_config(OFFLINE_URLS_KEY, "[1, 2]")
    assert UrlReferenceStore(db).entries() == {}


def test_load_all_synthesizes_titles(cache):
    cache.save_entry("a", "https://example.com/a.mp4")
    cache.save_entry("b", "https://example.com/b.png")
    items = cache.load_all()
    assert [item.title for item in items] == ["Offline media 1", "Offline media 2"]
    assert [item.media_type for item in items] == [MediaType.VIDEO, MediaType.IMAGE]
    assert cache.has("b")


def test_cache_item_downloads_once(files, session, make_item):
    item = make_item("poster", MediaType.IMAGE, url="https://cdn.example.com/poster.png")
    session.get.return_value = ok_response([b"abc", b"", b"def"])

    assert files.cache_item(item) is True
    path = files.local_path(item.url)
    assert path is not None
    assert path.suffix == ".png"
    assert path.read_bytes() == b"abcdef"
    assert files.cached_ids() == ["poster"]

    _, kwargs = session.get.call_args
    assert kwargs["stream"] is True
    assert kwargs["headers"]["Referer"] == "https://cdn.example.com/"

    assert files.cache_item(item) is True
    assert session.get.call_count == 1


def test_hosted_video_is_not_downloaded(files, session, make_item):
    item = make_item("yt", url="https://youtu.be/dQw4w9WgXcQ")
    assert files.cache_item(item) is False
    session.get.assert_not_called()
    assert not files.is_cached("yt")


def test_http_error_raises_connectivity_error(files, session, make_item):
    resp = MagicMock()
    resp.ok = False
    resp.status_code = 404
    session.get.return_value = resp

    with pytest.raises(ConnectivityError, match="HTTP 404"):
        files.cache_item(make_item("gone"))
    assert files.cached_ids() == []


def test_transport_error_raises_connectivity_error(files, session, make_item):
    session.get.side_effect = requests.ConnectionError("offline")
    with pytest.raises(ConnectivityError):
        files.cache_item(make_item("clip"))


def test_save_item_without_bytes_only_stores_reference(cache, session, make_item):
    item = make_item("clip")
    assert cache.save_item(item) is False
    assert cache.has("clip")
    session.get.assert_not_called()


def test_resolve_and_clear(cache, db, session, make_item):
    item = make_item("clip", url="https://cdn.example.com/clip.mp4")
    session.get.return_value = ok_response([b"video"], url=item.url)

    assert cache.save_item(item, with_bytes=True) is True
    assert cache.resolve(item.url) is not None
    assert cache.resolve("https://cdn.example.com/other.mp4") is None
    assert cache.cached_ids() == ["clip"]

    assert cache.files.clear() == 1
    assert cache.resolve(item.url) is None
    assert db.get_json_config(CACHED_IDS_KEY) is None

    cache.clear()
    assert cache.load_all() == []


def test_facade_without_byte_store(db, make_item):
    cache = OfflineCache(UrlReferenceStore(db))
    assert cache.save_item(make_item("clip"), with_bytes=True) is False
    assert cache.resolve("https://cdn.example.com/clip.mp4") is None
    assert cache.cached_ids() == []
