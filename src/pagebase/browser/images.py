"""Page image path resolution and load status."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

import httpx

from pagebase.config import AppConfig

log = logging.getLogger(__name__)

IMAGE_EXTENSION = ".webp"


def page_image_path(book_id: str, page_number: Any) -> str:
    if book_id in (None, "") or page_number in (None, ""):
        raise ValueError("book id and page number are required")
    return f"{book_id}/{page_number}{IMAGE_EXTENSION}"


class ImageStatus(Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class PageImage:
    """Image of the selected page: where it lives and whether it has loaded.

    ``overlay`` is the fullscreen toggle and is independent of load status.
    """

    def __init__(self, asset_root: str) -> None:
        self._asset_root = asset_root.rstrip("/")
        self._key: Optional[tuple[str, Any]] = None
        self.status = ImageStatus.LOADING
        self.overlay = False

    @property
    def key(self) -> Optional[tuple[str, Any]]:
        return self._key

    @property
    def has_target(self) -> bool:
        return self._key is not None

    @property
    def path(self) -> Optional[str]:
        if self._key is None:
            return None
        return page_image_path(*self._key)

    @property
    def url(self) -> Optional[str]:
        path = self.path
        if path is None:
            return None
        return f"{self._asset_root}/{path}"

    def set_target(self, book_id: Optional[str], page_number: Any) -> bool:
        """Point at a page; returns True if the target changed."""
        if book_id in (None, "") or page_number in (None, ""):
            key = None
        else:
            key = (book_id, page_number)
        if key == self._key:
            return False
        self._key = key
        self.status = ImageStatus.LOADING
        return True

    def mark_loaded(self, key: tuple[str, Any]) -> bool:
        return self._settle(key, ImageStatus.LOADED)

    def mark_errored(self, key: tuple[str, Any]) -> bool:
        return self._settle(key, ImageStatus.ERRORED)

    def _settle(self, key: tuple[str, Any], status: ImageStatus) -> bool:
        if key != self._key:
            log.debug("Ignoring image result for stale target %r", key)
            return False
        self.status = status
        return True

    def toggle_overlay(self) -> bool:
        self.overlay = not self.overlay
        return self.overlay


class ImageLoader:
    """Fetches page images from the asset root."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._client: Optional[httpx.AsyncClient] = None

    async def load(self, image: PageImage) -> Optional[bytes]:
        """Fetch the current target and settle its status; returns bytes if loaded."""
        key, url = image.key, image.url
        if key is None or url is None:
            return None

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.request_timeout)

        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            log.info("Page image unavailable: %s (%s)", url, type(e).__name__)
            image.mark_errored(key)
            return None

        if image.mark_loaded(key):
            return resp.content
        return None

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
