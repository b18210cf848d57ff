from unittest.mock import MagicMock

import pytest

from src.core.api.base import APIError, APITransportError
from src.core.auth import SESSION_KEY, FirebaseAuthProvider, LocalAuthProvider, check_credentials
from src.core.errors import AuthError, ConnectivityError
from src.core.playlist_loader import LoadSource, PlaylistLoader
from src.core.repository import FirestoreMediaRepository


@pytest.fixture
def local_auth(db):
    return LocalAuthProvider(db, iterations=1000)


# ------------------------------------------------------------------
# Form checks
# ------------------------------------------------------------------

def test_check_credentials_normalizes_email():
    assert check_credentials("  Someone@Example.COM ", "pw") == "someone@example.com"


@pytest.mark.parametrize("email,password,registering,message", [
    ("", "secret", False, "Please fill in all fields"),
    ("a@example.com", "", False, "Please fill in all fields"),
    ("no-at-sign", "secret", False, "Please enter a valid email address"),
    ("a@", "secret", False, "Please enter a valid email address"),
    ("a@example.com", "12345", True, "Password must be at least 6 characters"),
])
def test_check_credentials_errors(email, password, registering, message):
    with pytest.raises(AuthError, match=message):
        check_credentials(email, password, registering=registering)


def test_short_password_allowed_for_sign_in():
    assert check_credentials("a@example.com", "123") == "a@example.com"


# ------------------------------------------------------------------
# Local accounts
# ------------------------------------------------------------------

def test_register_then_sign_in(local_auth):
    user = local_auth.register("Viewer@Example.com", "secret1")
    assert user.email == "viewer@example.com"
    assert local_auth.current_user() == user

    local_auth.sign_out()
    assert local_auth.current_user() is None

    again = local_auth.sign_in("viewer@example.com", "secret1")
    assert again.uid == user.uid


def test_duplicate_registration_rejected(local_auth):
    local_auth.register("a@example.com", "secret1")
    with pytest.raises(AuthError, match="An account with this email already exists"):
        local_auth.register("A@example.com", "another")


@pytest.mark.parametrize("email,password", [
    ("a@example.com", "wrong-password"),
    ("nobody@example.com", "secret1"),
])
def test_bad_credentials_share_one_message(local_auth, email, password):
    local_auth.register("a@example.com", "secret1")
    local_auth.sign_out()
    with pytest.raises(AuthError, match="Incorrect email or password"):
        local_auth.sign_in(email, password)
    assert local_auth.current_user() is None


def test_session_is_persisted_encrypted(db, local_auth):
    user = local_auth.register("a@example.com", "secret1")
    row = db.conn.execute("SELECT value, is_encrypted FROM config WHERE key = ?", (SESSION_KEY,)).fetchone()
    assert row["is_encrypted"] == 1
    assert user.uid not in row["value"]

    restored = LocalAuthProvider(db, iterations=1000).restore_session()
    assert restored == user


def test_sign_out_forgets_session(db, local_auth):
    local_auth.register("a@example.com", "secret1")
    local_auth.sign_out()
    assert db.get_config(SESSION_KEY) is None
    assert LocalAuthProvider(db).restore_session() is None


def test_session_for_deleted_account_is_discarded(db, local_auth):
    user = local_auth.register("a@example.com", "secret1")
    db.conn.execute("DELETE FROM accounts WHERE uid = ?", (user.uid,))
    db.conn.commit()
    assert LocalAuthProvider(db).restore_session() is None
    assert db.get_config(SESSION_KEY) is None


def test_auth_change_listeners(local_auth):
    seen = []
    dispose = local_auth.on_auth_change(seen.append)
    user = local_auth.register("a@example.com", "secret1")
    local_auth.sign_out()
    assert seen == [user, None]

    dispose()
    local_auth.sign_in("a@example.com", "secret1")
    assert len(seen) == 2


# ------------------------------------------------------------------
# Firebase accounts
# ------------------------------------------------------------------

SIGN_IN_PAYLOAD = {
    "localId": "uid-1",
    "email": "a@example.com",
    "idToken": "id-1",
    "refreshToken": "refresh-1",
}


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def firebase_auth(db, client):
    return FirebaseAuthProvider(db, client)


def test_firebase_sign_in(firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    user = firebase_auth.sign_in("A@example.com", "secret1")
    client.sign_in.assert_called_once_with("a@example.com", "secret1")
    assert user.uid == "uid-1"
    assert firebase_auth.id_token() == "id-1"


@pytest.mark.parametrize("code,message", [
    ("INVALID_LOGIN_CREDENTIALS", "Incorrect email or password"),
    ("EMAIL_NOT_FOUND", "Incorrect email or password"),
    ("USER_DISABLED", "Incorrect email or password"),
    ("TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled", "Too many attempts"),
])
def test_firebase_sign_in_errors(firebase_auth, client, code, message):
    client.sign_in.side_effect = APIError("rejected", status_code=400, code=code)
    with pytest.raises(AuthError, match=message):
        firebase_auth.sign_in("a@example.com", "secret1")


@pytest.mark.parametrize("code,message", [
    ("EMAIL_EXISTS", "An account with this email already exists"),
    ("WEAK_PASSWORD : Password should be at least 6 characters", "Password must be at least 6 characters"),
])
def test_firebase_register_errors(firebase_auth, client, code, message):
    client.sign_up.side_effect = APIError("rejected", status_code=400, code=code)
    with pytest.raises(AuthError, match=message):
        firebase_auth.register("a@example.com", "secret1")


def test_firebase_transport_error_propagates(firebase_auth, client):
    client.sign_in.side_effect = APITransportError("unreachable")
    with pytest.raises(APITransportError):
        firebase_auth.sign_in("a@example.com", "secret1")


def test_firebase_restore_refreshes_token(db, firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")

    client.refresh.return_value = {"localId": "uid-1", "idToken": "id-2", "refreshToken": "refresh-2"}
    restored = FirebaseAuthProvider(db, client).restore_session()
    client.refresh.assert_called_once_with("refresh-1")
    assert restored.id_token == "id-2"
    assert restored.email == "a@example.com"


def test_firebase_restore_offline_keeps_user(db, firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")

    client.refresh.side_effect = APITransportError("unreachable")
    provider = FirebaseAuthProvider(db, client)
    restored = provider.restore_session()
    assert restored.uid == "uid-1"
    assert restored.id_token is None
    assert provider.current_user() == restored
    assert db.get_config(SESSION_KEY) is not None


def test_firebase_restore_rejected_clears_session(db, firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")

    client.refresh.side_effect = APIError("rejected", status_code=400, code="TOKEN_EXPIRED")
    assert FirebaseAuthProvider(db, client).restore_session() is None
    assert db.get_config(SESSION_KEY) is None


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_firebase_token_refreshed_before_expiry(db, client):
    clock = Clock()
    provider = FirebaseAuthProvider(db, client, clock=clock)
    client.sign_in.return_value = {**SIGN_IN_PAYLOAD, "expiresIn": "3600"}
    provider.sign_in("a@example.com", "secret1")

    clock.now += 3000
    assert provider.id_token() == "id-1"
    client.refresh.assert_not_called()

    client.refresh.return_value = {"localId": "uid-1", "idToken": "id-2", "refreshToken": "refresh-2",
                                   "expiresIn": "3600"}
    clock.now += 600
    assert provider.id_token() == "id-2"
    client.refresh.assert_called_once_with("refresh-1")
    assert provider.current_user().refresh_token == "refresh-2"

    restored = FirebaseAuthProvider(db, client)
    client.refresh.return_value = {"localId": "uid-1", "idToken": "id-3", "refreshToken": "refresh-3"}
    restored.restore_session()
    client.refresh.assert_called_with("refresh-2")


def test_firebase_force_refresh(firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")
    client.refresh.return_value = {"localId": "uid-1", "idToken": "id-2", "refreshToken": "refresh-1"}
    assert firebase_auth.id_token(force_refresh=True) == "id-2"
    assert firebase_auth.id_token() == "id-2"
    assert client.refresh.call_count == 1


def test_firebase_refresh_does_not_notify_listeners(firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")
    seen = []
    firebase_auth.on_auth_change(seen.append)

    client.refresh.return_value = {"localId": "uid-1", "idToken": "id-2", "refreshToken": "refresh-1"}
    firebase_auth.id_token(force_refresh=True)
    assert seen == []


def test_firebase_revoked_refresh_token(firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")
    client.refresh.side_effect = APIError("rejected", status_code=400, code="TOKEN_EXPIRED")
    with pytest.raises(AuthError, match="session has expired"):
        firebase_auth.id_token(force_refresh=True)


def test_firebase_signed_out_has_no_token(firebase_auth, client):
    assert firebase_auth.id_token() is None
    client.refresh.assert_not_called()


def test_offline_restore_recovers_when_network_returns(db, firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")

    client.refresh.side_effect = APITransportError("unreachable")
    provider = FirebaseAuthProvider(db, client)
    assert provider.restore_session().id_token is None

    store = MagicMock()
    repository = FirestoreMediaRepository(store, provider.id_token)
    loader = PlaylistLoader(repository)

    # still offline: the token endpoint is unreachable too
    result = loader.load("uid-1")
    assert result.source is LoadSource.EMPTY
    assert isinstance(result.error, ConnectivityError)
    store.query_equal.assert_not_called()

    client.refresh.side_effect = None
    client.refresh.return_value = {"localId": "uid-1", "idToken": "id-2", "refreshToken": "refresh-1"}
    store.query_equal.return_value = [
        {"name": "projects/demo/databases/(default)/documents/videos/v1",
         "fields": {"title": {"stringValue": "Intro"}, "url": {"stringValue": "https://cdn.example.com/v1.mp4"},
                    "type": {"stringValue": "video"}, "userId": {"stringValue": "uid-1"}}},
    ]

    result = loader.load("uid-1")
    assert result.source is LoadSource.REMOTE
    assert [item.title for item in result.items] == ["Intro"]
    assert store.query_equal.call_args.kwargs == {"id_token": "id-2"}
    assert provider.current_user().id_token == "id-2"


def test_expired_token_rejected_mid_session_is_refreshed(firebase_auth, client):
    client.sign_in.return_value = SIGN_IN_PAYLOAD
    firebase_auth.sign_in("a@example.com", "secret1")

    store = MagicMock()
    store.query_equal.side_effect = [APIError("expired", status_code=401), []]
    client.refresh.return_value = {"localId": "uid-1", "idToken": "id-2", "refreshToken": "refresh-1"}

    result = PlaylistLoader(FirestoreMediaRepository(store, firebase_auth.id_token)).load("uid-1")
    assert result.source is LoadSource.EMPTY
    assert result.error is None
    assert [c.kwargs["id_token"] for c in store.query_equal.call_args_list] == ["id-1", "id-2"]
