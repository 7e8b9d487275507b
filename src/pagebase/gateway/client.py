"""HTTP access to the remote page library."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from pagebase.config import AppConfig

log = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    """A request to the library API failed. ``str()`` is user-facing."""


class ResourceGateway(Protocol):
    async def list_books(self) -> Any: ...

    async def list_pages(self, book_id: str) -> Any: ...

    async def get_page_content(self, book_id: str, page_number: Any) -> Any: ...

    async def close(self) -> None: ...


class HttpGateway:
    """Library API over HTTP. Responses are returned as decoded JSON."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._config.api_base_url.rstrip("/")

    async def list_books(self) -> Any:
        return await self._get_json("/books", what="Loading books")

    async def list_pages(self, book_id: str) -> Any:
        if not book_id:
            raise GatewayError("Loading pages failed: missing book id")
        return await self._get_json(
            f"/books/{quote(str(book_id), safe='')}/pages", what="Loading pages"
        )

    async def get_page_content(self, book_id: str, page_number: Any) -> Any:
        if not book_id:
            raise GatewayError("Loading page content failed: missing book id")
        path = (
            f"/books/{quote(str(book_id), safe='')}"
            f"/pages/{quote(str(page_number), safe='')}"
        )
        return await self._get_json(path, what="Loading page content")

    async def _get_json(self, path: str, what: str) -> Any:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.request_timeout)

        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.get(url, headers={"Accept": "application/json"})
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            log.error(
                "Library API error: %s %s",
                e.response.status_code,
                e.response.text[:200],
            )
            raise GatewayError(f"{what} failed: HTTP {e.response.status_code}") from e
        except ValueError as e:
            log.error("Undecodable API response from %s: %s", url, e)
            raise GatewayError(f"{what} failed: invalid JSON response") from e
        except httpx.RequestError as e:
            log.error(
                "Library request error: %s %s -> %s",
                type(e).__name__,
                url,
                e,
            )
            raise GatewayError(f"{what} failed: {type(e).__name__} ({url})") from e

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
