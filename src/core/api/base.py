"""
Base REST client for remote backends.

Platform quirks (error payload shapes, auth parameters) are normalized inside
the concrete clients; callers get plain dict/list payloads or an APIError.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Dict, Optional

import logging
import requests

from src.core.errors import ConnectivityError
from src.core.http_client import API_HEADERS


class APIError(RuntimeError):
    """Raised for platform HTTP / parsing errors."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, code: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class APITransportError(APIError, ConnectivityError):
    """The request never got an HTTP response (DNS, refused, timeout)."""


logger = logging.getLogger(__name__)


class BaseAPIClient(ABC):
    """
    Shared request helper for REST backends.

    Subclasses set BASE_URL and PLATFORM and call ``_request`` with a path
    relative to BASE_URL (or an absolute url).
    """

    BASE_URL: str
    PLATFORM: str

    def __init__(self, session: Optional[requests.Session] = None, *, timeout: Any = 30):
        self.session = session or requests.Session()
        self.timeout = timeout
        self._configure_session()

    def _configure_session(self) -> None:
        for key, value in API_HEADERS.items():
            self.session.headers.setdefault(key, value)

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.BASE_URL}{path}"

    @staticmethod
    def _error_code(resp: requests.Response) -> str:
        """Extract the platform error code from an error body, if any."""
        try:
            payload = resp.json()
        except ValueError:
            return ""
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            return str(error.get("message") or error.get("status") or "")
        if isinstance(error, str):
            return error
        return ""

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = self._url(path)
        logger.info(f"API Request: {method} {url.split('?')[0]}")

        try:
            resp = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise APITransportError(f"{self.PLATFORM} unreachable: {e}") from e
        except requests.RequestException as e:
            raise APIError(f"{self.PLATFORM} request failed: {e}") from e

        if not resp.ok:
            code = self._error_code(resp)
            raise APIError(
                f"{self.PLATFORM} API error {resp.status_code}: {code or resp.text[:200]}",
                status_code=resp.status_code,
                code=code,
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise APIError(f"{self.PLATFORM} returned invalid JSON: {e}") from e
