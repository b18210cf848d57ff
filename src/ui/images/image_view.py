"""
Still-image surface for the display.

Remote images are fetched with the shared aiohttp session on the qasync loop;
offline copies load straight from disk. A new ``load()`` cancels the fetch
for the previous item so a slow response never paints over a newer one.
"""
import asyncio
import logging
from typing import Optional

import aiohttp
from PyQt6.QtCore import Qt, QUrl, pyqtSignal
from PyQt6.QtGui import QPixmap
from PyQt6.QtWidgets import QLabel, QSizePolicy

from src.core.http_client import HttpClient, get_media_headers_with_referer
from src.ui.common.theme import Colors, Fonts

logger = logging.getLogger(__name__)


class ImageView(QLabel):
    loaded = pyqtSignal()
    failed = pyqtSignal(str)
    clicked = pyqtSignal()

    def __init__(self, http_client: HttpClient, parent=None):
        super().__init__(parent)
        self._http_client = http_client
        self._task: Optional[asyncio.Future] = None
        self._pixmap: Optional[QPixmap] = None
        self.url: Optional[str] = None

        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setSizePolicy(QSizePolicy.Policy.Ignored, QSizePolicy.Policy.Ignored)
        self.setStyleSheet(
            f"background-color: {Colors.BG_BLACK}; color: {Colors.TEXT_MUTED}; font-size: {Fonts.SIZE_LG}px;"
        )

    def load(self, url: str):
        self.cancel()
        self.url = url
        self._pixmap = None
        self.clear()

        qurl = QUrl(url)
        if qurl.isLocalFile():
            self._apply_bytes(url, None, qurl.toLocalFile())
            return
        self._task = asyncio.ensure_future(self._fetch(url))

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _fetch(self, url: str):
        try:
            session = await self._http_client.get_async_session()
            async with session.get(url, headers=get_media_headers_with_referer(url)) as resp:
                resp.raise_for_status()
                data = await resp.read()
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if url == self.url:
                self._show_failure(f"Image download failed: {e}")
            return
        if url == self.url:
            self._apply_bytes(url, data)

    def _apply_bytes(self, url: str, data: Optional[bytes], path: Optional[str] = None):
        pixmap = QPixmap(path) if path else QPixmap()
        if data is not None:
            pixmap.loadFromData(data)
        if pixmap.isNull():
            self._show_failure(f"Could not decode image: {url[:80]}")
            return
        self._pixmap = pixmap
        self._rescale()
        self.loaded.emit()

    def _show_failure(self, reason: str):
        logger.warning(reason)
        self._pixmap = None
        self.setText("Image unavailable")
        self.failed.emit(reason)

    def _rescale(self):
        if self._pixmap is None:
            return
        self.setPixmap(self._pixmap.scaled(
            self.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        ))

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._rescale()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit()
            event.accept()
            return
        super().mousePressEvent(event)

    def cleanup(self):
        self.cancel()
        self.url = None
