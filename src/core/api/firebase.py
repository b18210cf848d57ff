"""
Firebase REST clients: Identity Toolkit (email/password auth) and Cloud
Firestore (media records).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from src.core.api.base import APIError, BaseAPIClient

logger = logging.getLogger(__name__)


class FirebaseAuthClient(BaseAPIClient):
    """Identity Toolkit v1 + Secure Token endpoints."""

    BASE_URL = "https://identitytoolkit.googleapis.com/v1"
    TOKEN_URL = "https://securetoken.googleapis.com/v1/token"
    PLATFORM = "firebase-auth"

    def __init__(self, api_key: str, session: Optional[requests.Session] = None, *, timeout: Any = 30):
        super().__init__(session, timeout=timeout)
        self.api_key = api_key

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/accounts:signUp",
            params={"key": self.api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
        )

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/accounts:signInWithPassword",
            params={"key": self.api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
        )

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """
        Exchange a refresh token for a new id token.

        The response uses snake_case keys; they are mapped to the
        sign-in shape (idToken, refreshToken, localId).
        """
        payload = self._request(
            "POST",
            self.TOKEN_URL,
            params={"key": self.api_key},
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return {
            "idToken": payload.get("id_token"),
            "refreshToken": payload.get("refresh_token"),
            "localId": payload.get("user_id"),
            "expiresIn": payload.get("expires_in"),
        }

    def lookup(self, id_token: str) -> Dict[str, Any]:
        payload = self._request(
            "POST",
            "/accounts:lookup",
            params={"key": self.api_key},
            json={"idToken": id_token},
        )
        users = payload.get("users") or []
        if not users:
            raise APIError("firebase-auth lookup returned no user", code="USER_NOT_FOUND")
        return users[0]


# ------------------------------------------------------------------
# Firestore value encoding
# ------------------------------------------------------------------

def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        stamp = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    return {"stringValue": str(value)}


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """RFC 3339 timestamp as returned by Firestore, with up to nanosecond precision."""
    if not raw:
        return None
    text = raw.replace("Z", "+00:00")
    # fromisoformat handles at most 6 fractional digits
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits, rest = digits + rest[0], rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Unparseable timestamp: {raw}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_value(value: Dict[str, Any]) -> Any:
    if "stringValue" in value:
        return value["stringValue"]
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields") or {})
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values") or []]
    return None


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(val) for key, val in fields.items()}


def document_id(document: Dict[str, Any]) -> str:
    return document.get("name", "").rsplit("/", 1)[-1]


class FirestoreClient(BaseAPIClient):
    """Firestore v1 REST documents API for a single project."""

    PLATFORM = "firestore"

    def __init__(self, project_id: str, session: Optional[requests.Session] = None, *, timeout: Any = 30):
        super().__init__(session, timeout=timeout)
        self.project_id = project_id
        self.BASE_URL = (
            f"https://firestore.googleapis.com/v1/projects/{project_id}/databases/(default)/documents"
        )

    @staticmethod
    def _auth(id_token: Optional[str]) -> Optional[Dict[str, str]]:
        return {"Authorization": f"Bearer {id_token}"} if id_token else None

    def query_equal(self, collection: str, field: str, value: Any, *, id_token: Optional[str] = None) -> List[Dict[str, Any]]:
        """Documents in ``collection`` whose ``field`` equals ``value``."""
        body = {
            "structuredQuery": {
                "from": [{"collectionId": collection}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": field},
                        "op": "EQUAL",
                        "value": encode_value(value),
                    }
                },
            }
        }
        rows = self._request("POST", ":runQuery", json=body, headers=self._auth(id_token)) or []
        # Rows without a document only carry readTime
        return [row["document"] for row in rows if isinstance(row, dict) and "document" in row]

    def create_document(self, collection: str, data: Dict[str, Any], *, id_token: Optional[str] = None) -> Dict[str, Any]:
        body = {"fields": {key: encode_value(val) for key, val in data.items()}}
        return self._request("POST", f"/{collection}", json=body, headers=self._auth(id_token))

    def delete_document(self, collection: str, doc_id: str, *, id_token: Optional[str] = None) -> None:
        self._request("DELETE", f"/{collection}/{doc_id}", headers=self._auth(id_token))
