from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from src.core.api.base import APIError, APITransportError
from src.core.dto.media import MediaType
from src.core.errors import AuthError, ConnectivityError
from src.core.repository import FirestoreMediaRepository, LocalMediaRepository

DOC_PREFIX = "projects/demo/databases/(default)/documents/videos"


def firestore_doc(doc_id, **fields):
    return {"name": f"{DOC_PREFIX}/{doc_id}", "fields": fields}


# ------------------------------------------------------------------
# Local backend
# ------------------------------------------------------------------

def test_local_list_is_newest_first_and_scoped(db):
    repo = LocalMediaRepository(db)
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    db.insert_media_item("u1", "Old", "https://example.com/old.mp4", "video", created_at=base)
    db.insert_media_item("u1", "New", "https://example.com/new.png", "image", created_at=base + timedelta(days=1))
    db.insert_media_item("u2", "Elsewhere", "https://example.com/x.mp4", "video")

    items = repo.list("u1")
    assert [item.title for item in items] == ["New", "Old"]
    assert items[0].media_type is MediaType.IMAGE
    assert items[0].created_at.tzinfo is not None


def test_local_create_and_delete_notify_subscribers(db):
    repo = LocalMediaRepository(db)
    updates = []
    dispose = repo.subscribe("u1", updates.append)

    item = repo.create("u1", "Intro", "https://example.com/intro.mp4", MediaType.VIDEO)
    assert item.owner_id == "u1"
    assert item.active
    assert [[i.id for i in update] for update in updates] == [[item.id]]

    repo.delete(item.id, "u1")
    assert updates[-1] == []

    dispose()
    repo.create("u1", "Again", "https://example.com/again.mp4", MediaType.VIDEO)
    assert len(updates) == 2


def test_local_delete_ignores_other_owners(db):
    repo = LocalMediaRepository(db)
    item = repo.create("u1", "Intro", "https://example.com/intro.mp4", MediaType.VIDEO)
    repo.delete(item.id, "u2")
    assert [i.id for i in repo.list("u1")] == [item.id]


def test_local_subscribers_only_see_their_owner(db):
    repo = LocalMediaRepository(db)
    updates = []
    repo.subscribe("u2", updates.append)
    repo.create("u1", "Intro", "https://example.com/intro.mp4", MediaType.VIDEO)
    assert updates == []


# ------------------------------------------------------------------
# Firestore backend
# ------------------------------------------------------------------

@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def tokens():
    return MagicMock(return_value="id-token")


@pytest.fixture
def remote(client, tokens):
    return FirestoreMediaRepository(client, tokens, collection="videos")


def test_firestore_list_decodes_documents(remote, client):
    client.query_equal.return_value = [
        firestore_doc(
            "old",
            title={"stringValue": "Legacy"},
            url={"stringValue": "https://example.com/legacy.mp4"},
            userId={"stringValue": "u1"},
            date={"timestampValue": "2023-06-01T10:00:00Z"},
        ),
        firestore_doc(
            "new",
            title={"stringValue": "Poster"},
            url={"stringValue": "https://example.com/poster.png"},
            type={"stringValue": "image"},
            userId={"stringValue": "u1"},
            createdAt={"timestampValue": "2024-02-03T04:05:06.123456789Z"},
            active={"booleanValue": False},
        ),
    ]

    items = remote.list("u1")
    client.query_equal.assert_called_once_with("videos", "userId", "u1", id_token="id-token")

    assert [item.id for item in items] == ["new", "old"]
    poster, legacy = items
    assert poster.media_type is MediaType.IMAGE
    assert poster.created_at == datetime(2024, 2, 3, 4, 5, 6, 123456, tzinfo=timezone.utc)
    assert poster.active is False
    assert legacy.media_type is MediaType.VIDEO
    assert legacy.created_at.year == 2023
    assert legacy.active is True


@pytest.mark.parametrize("status", [401, 403])
def test_firestore_auth_errors(remote, client, status):
    client.query_equal.side_effect = APIError("denied", status_code=status)
    with pytest.raises(AuthError):
        remote.list("u1")


def test_firestore_retries_once_with_fresh_token(remote, client, tokens):
    tokens.side_effect = lambda force_refresh=False: "id-fresh" if force_refresh else "id-stale"
    client.query_equal.side_effect = [APIError("expired", status_code=401), []]

    assert remote.list("u1") == []
    assert client.query_equal.call_count == 2
    assert client.query_equal.call_args.kwargs == {"id_token": "id-fresh"}


def test_firestore_forbidden_is_not_retried(remote, client, tokens):
    client.query_equal.side_effect = APIError("denied", status_code=403)
    with pytest.raises(AuthError):
        remote.list("u1")
    assert client.query_equal.call_count == 1
    tokens.assert_called_once_with()


def test_firestore_server_error_is_connectivity(remote, client):
    client.query_equal.side_effect = APIError("boom", status_code=503)
    with pytest.raises(ConnectivityError):
        remote.list("u1")


def test_firestore_transport_error_propagates(remote, client):
    client.query_equal.side_effect = APITransportError("unreachable")
    with pytest.raises(APITransportError):
        remote.list("u1")


def test_firestore_create_sends_fields_and_notifies(remote, client):
    created = firestore_doc(
        "abc",
        title={"stringValue": "Poster"},
        url={"stringValue": "https://example.com/poster.png"},
        type={"stringValue": "image"},
        userId={"stringValue": "u1"},
        createdAt={"timestampValue": "2024-02-03T04:05:06Z"},
    )
    client.create_document.return_value = created
    client.query_equal.return_value = [created]
    updates = []
    remote.subscribe("u1", updates.append)

    item = remote.create("u1", "Poster", "https://example.com/poster.png", MediaType.IMAGE)

    assert item.id == "abc"
    collection, data = client.create_document.call_args.args
    assert collection == "videos"
    assert data["type"] == "image"
    assert data["userId"] == "u1"
    assert data["active"] is True
    assert isinstance(data["createdAt"], datetime)
    assert [[i.id for i in update] for update in updates] == [["abc"]]


def test_firestore_delete(remote, client):
    client.query_equal.return_value = []
    remote.delete("abc", "u1")
    client.delete_document.assert_called_once_with("videos", "abc", id_token="id-token")
