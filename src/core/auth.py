"""
Authentication providers.

The signed-in session is persisted (encrypted) in the config table so an
unattended display comes back up logged in after a restart.
"""
from __future__ import annotations

import base64
import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, List, Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from src.core.api.base import APIError, APITransportError
from src.core.api.firebase import FirebaseAuthClient
from src.core.dto.user import UserHandle
from src.core.errors import AuthError

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"
MIN_PASSWORD_LENGTH = 6

AuthCallback = Callable[[Optional[UserHandle]], None]


def check_credentials(email: str, password: str, *, registering: bool = False) -> str:
    """Validate form input and return the normalized email."""
    email = (email or "").strip().lower()
    if not email or not password:
        raise AuthError("Please fill in all fields")
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise AuthError("Please enter a valid email address")
    if registering and len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return email


class AuthProvider(ABC):
    """Contract for sign-in backends."""

    def __init__(self, db):
        self._db = db
        self._user: Optional[UserHandle] = None
        self._listeners: List[AuthCallback] = []
        self._lock = threading.Lock()

    def current_user(self) -> Optional[UserHandle]:
        return self._user

    def on_auth_change(self, callback: AuthCallback) -> Callable[[], None]:
        """Register ``callback`` for sign-in/sign-out; returns a disposer."""
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _set_user(self, user: Optional[UserHandle]) -> None:
        self._user = user
        self._persist_session(user)
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            callback(user)

    def _persist_session(self, user: Optional[UserHandle]) -> None:
        if user is None:
            self._db.delete_config(SESSION_KEY)
            return
        self._db.set_json_config(
            SESSION_KEY,
            {"uid": user.uid, "email": user.email, "refresh_token": user.refresh_token},
            encrypt=True,
        )

    def _stored_session(self) -> Optional[dict]:
        session = self._db.get_json_config(SESSION_KEY)
        return session if isinstance(session, dict) and session.get("uid") else None

    @abstractmethod
    def restore_session(self) -> Optional[UserHandle]:
        """Reload the persisted session, if it is still valid."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> UserHandle:
        ...

    @abstractmethod
    def register(self, email: str, password: str) -> UserHandle:
        ...

    def sign_out(self) -> None:
        if self._user is not None:
            logger.info(f"Signed out {self._user.email}")
        self._set_user(None)


class LocalAuthProvider(AuthProvider):
    """Accounts stored in the app database with PBKDF2 password hashes."""

    ITERATIONS = 200_000

    def __init__(self, db, *, iterations: Optional[int] = None):
        super().__init__(db)
        self._iterations = iterations or self.ITERATIONS

    def _kdf(self, salt: bytes) -> PBKDF2HMAC:
        return PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=self._iterations)

    def _hash(self, password: str, salt: bytes) -> str:
        return base64.b64encode(self._kdf(salt).derive(password.encode("utf-8"))).decode()

    def restore_session(self) -> Optional[UserHandle]:
        session = self._stored_session()
        if session is None:
            return None
        account = self._db.get_account(session["uid"])
        if account is None:
            logger.info("Stored session refers to a deleted account - discarding")
            self._db.delete_config(SESSION_KEY)
            return None
        user = UserHandle(uid=account["uid"], email=account["email"])
        self._set_user(user)
        return user

    def register(self, email: str, password: str) -> UserHandle:
        email = check_credentials(email, password, registering=True)
        if self._db.get_account_by_email(email) is not None:
            raise AuthError("An account with this email already exists")

        salt = os.urandom(16)
        uid = self._db.insert_account(email, self._hash(password, salt), base64.b64encode(salt).decode())
        user = UserHandle(uid=uid, email=email)
        logger.info(f"Registered local account {email}")
        self._set_user(user)
        return user

    def sign_in(self, email: str, password: str) -> UserHandle:
        email = check_credentials(email, password)
        account = self._db.get_account_by_email(email)
        if account is None:
            raise AuthError("Incorrect email or password")

        salt = base64.b64decode(account["salt"])
        try:
            self._kdf(salt).verify(password.encode("utf-8"), base64.b64decode(account["password_hash"]))
        except InvalidKey as e:
            raise AuthError("Incorrect email or password") from e

        user = UserHandle(uid=account["uid"], email=account["email"])
        logger.info(f"Signed in {email}")
        self._set_user(user)
        return user


class FirebaseAuthProvider(AuthProvider):
    """Firebase email/password accounts via the Identity Toolkit REST API."""

    _CREDENTIAL_ERRORS = {
        "EMAIL_NOT_FOUND",
        "INVALID_PASSWORD",
        "INVALID_LOGIN_CREDENTIALS",
        "USER_DISABLED",
    }

    # ID tokens live for an hour; refresh a little before the deadline
    DEFAULT_TOKEN_LIFETIME = 3600
    EXPIRY_MARGIN = 60

    def __init__(self, db, client: FirebaseAuthClient, *, clock: Callable[[], float] = time.monotonic):
        super().__init__(db)
        self._client = client
        self._clock = clock
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def id_token(self, force_refresh: bool = False) -> Optional[str]:
        """
        Current ID token for Firestore calls.

        Exchanges the stored refresh token for a new ID token when there is
        none yet (offline restore), when it is about to expire, or when
        ``force_refresh`` is set after the backend rejected it.

        Raises:
            ConnectivityError: The token endpoint is unreachable.
            AuthError: The refresh token was revoked.
        """
        with self._token_lock:
            user = self._user
            if user is None:
                return None
            if not force_refresh and user.id_token and self._clock() < self._token_expires_at:
                return user.id_token
            if not user.refresh_token:
                return user.id_token
            return self._refresh_id_token(user)

    def _refresh_id_token(self, user: UserHandle) -> Optional[str]:
        try:
            payload = self._client.refresh(user.refresh_token)
        except APITransportError:
            raise
        except APIError as e:
            logger.warning(f"Token refresh rejected ({e.code or e})")
            raise AuthError("Your session has expired, please sign in again") from e

        refreshed = replace(
            user,
            id_token=payload.get("idToken"),
            refresh_token=payload.get("refreshToken") or user.refresh_token,
        )
        self._track_expiry(payload)
        # Same account, so listeners are not told about it
        self._user = refreshed
        self._persist_session(refreshed)
        logger.debug(f"Refreshed ID token for {refreshed.email}")
        return refreshed.id_token

    def _track_expiry(self, payload: dict) -> None:
        try:
            lifetime = int(payload.get("expiresIn") or self.DEFAULT_TOKEN_LIFETIME)
        except (TypeError, ValueError):
            lifetime = self.DEFAULT_TOKEN_LIFETIME
        self._token_expires_at = self._clock() + max(lifetime - self.EXPIRY_MARGIN, 0)

    def _user_from_payload(self, payload: dict, email: str = "") -> UserHandle:
        self._track_expiry(payload)
        return UserHandle(
            uid=payload["localId"],
            email=payload.get("email") or email,
            id_token=payload.get("idToken"),
            refresh_token=payload.get("refreshToken"),
        )

    def _translate(self, error: APIError) -> AuthError:
        code = (error.code or "").split(" ")[0]
        if code in self._CREDENTIAL_ERRORS:
            return AuthError("Incorrect email or password")
        if code == "EMAIL_EXISTS":
            return AuthError("An account with this email already exists")
        if code.startswith("WEAK_PASSWORD"):
            return AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if code == "TOO_MANY_ATTEMPTS_TRY_LATER":
            return AuthError("Too many attempts, please try again later")
        return AuthError(f"Authentication failed: {code or error}")

    def restore_session(self) -> Optional[UserHandle]:
        session = self._stored_session()
        if session is None or not session.get("refresh_token"):
            return None
        try:
            payload = self._client.refresh(session["refresh_token"])
        except APITransportError:
            # Offline: keep the user so the display can fall back to cached media.
            logger.warning("Auth backend unreachable - restoring session without a token")
            user = UserHandle(uid=session["uid"], email=session.get("email", ""),
                              refresh_token=session["refresh_token"])
            self._token_expires_at = 0.0
            self._user = user
            return user
        except APIError as e:
            logger.info(f"Stored session rejected ({e.code or e}) - sign in required")
            self._db.delete_config(SESSION_KEY)
            return None
        user = self._user_from_payload(payload, session.get("email", ""))
        self._set_user(user)
        return user

    def sign_in(self, email: str, password: str) -> UserHandle:
        email = check_credentials(email, password)
        try:
            payload = self._client.sign_in(email, password)
        except APITransportError:
            raise
        except APIError as e:
            raise self._translate(e) from e
        user = self._user_from_payload(payload, email)
        logger.info(f"Signed in {email}")
        self._set_user(user)
        return user

    def register(self, email: str, password: str) -> UserHandle:
        email = check_credentials(email, password, registering=True)
        try:
            payload = self._client.sign_up(email, password)
        except APITransportError:
            raise
        except APIError as e:
            raise self._translate(e) from e
        user = self._user_from_payload(payload, email)
        logger.info(f"Registered {email}")
        self._set_user(user)
        return user
