"""
Centralized HTTP client configuration.

Provides unified session management for both sync (requests) and async
(aiohttp) HTTP clients:
- JSON API headers for the Firebase REST endpoints
- Media headers with a Referer derived from the media url
- Timeouts read from the config table
"""

from __future__ import annotations

import logging
from typing import Dict, Optional
from urllib.parse import urlparse

import aiohttp
import requests
from aiohttp import ClientTimeout

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) InfiniteLoopDisplay/1.0"

# Headers for REST API requests (JSON in and out)
API_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Content-Type": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}

# Headers for media/file downloads
MEDIA_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "identity;q=1, *;q=0",
}


def get_media_headers_with_referer(url: str) -> dict:
    """
    Get media headers with a Referer header derived from the URL.
    Many CDNs check Referer to prevent hotlinking.
    """
    headers = MEDIA_HEADERS.copy()
    try:
        parsed = urlparse(url)
    except ValueError:
        return headers
    if parsed.scheme and parsed.hostname:
        headers["Referer"] = f"{parsed.scheme}://{parsed.hostname}/"
        headers["Origin"] = f"{parsed.scheme}://{parsed.hostname}"
    return headers


class HttpClientConfig:
    """Central HTTP client configuration."""

    def __init__(
        self,
        connect_timeout: int = 10,
        read_timeout: int = 30,
        max_connections_per_host: int = 6,
    ):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_connections_per_host = max_connections_per_host

    @property
    def timeout(self) -> tuple:
        """(connect, read) tuple for requests."""
        return (self.connect_timeout, self.read_timeout)


class HttpClient:
    """
    Centralized HTTP client factory.

    Creates and configures both sync (requests) and async (aiohttp) sessions
    with shared configuration for headers and timeouts.
    """

    def __init__(self, config: Optional[HttpClientConfig] = None):
        self.config = config or HttpClientConfig()
        self._sync_session: Optional[requests.Session] = None
        self._async_session: Optional[aiohttp.ClientSession] = None

    def create_sync_session(self, headers: Optional[Dict[str, str]] = None) -> requests.Session:
        """
        Create a configured requests.Session for synchronous HTTP.

        Args:
            headers: Optional headers to use (defaults to API_HEADERS)

        Returns:
            Configured requests.Session
        """
        session = requests.Session()
        session.headers.update(headers or API_HEADERS)
        self._sync_session = session
        return session

    async def get_async_session(self) -> aiohttp.ClientSession:
        """
        Shared aiohttp session for media fetched on the asyncio loop.

        Must be called from a coroutine running on the qasync loop.
        """
        if self._async_session is None or self._async_session.closed:
            timeout = ClientTimeout(
                total=None,
                sock_connect=self.config.connect_timeout,
                sock_read=self.config.read_timeout,
            )
            connector = aiohttp.TCPConnector(limit_per_host=self.config.max_connections_per_host)
            self._async_session = aiohttp.ClientSession(
                headers=MEDIA_HEADERS,
                timeout=timeout,
                connector=connector,
            )
            logger.debug("Created async media session")
        return self._async_session

    async def close_async_session(self):
        """Close the async session."""
        if self._async_session:
            await self._async_session.close()
            self._async_session = None

    def close(self):
        """Close the sync session."""
        if self._sync_session:
            self._sync_session.close()
            self._sync_session = None


def create_http_client_from_settings(db_manager) -> HttpClient:
    """
    Create HttpClient configured from database settings.

    Args:
        db_manager: DatabaseManager instance to read settings from

    Returns:
        Configured HttpClient instance
    """
    read_timeout = db_manager.get_int_config("http_timeout_seconds", 30)
    config = HttpClientConfig(
        connect_timeout=min(10, read_timeout),
        read_timeout=read_timeout,
    )
    return HttpClient(config)
