"""Shared fixtures for tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Optional

import pytest

from pagebase.browser.controller import TieredSelectionController
from pagebase.config import AppConfig
from pagebase.gateway.client import GatewayError


class FakeGateway:
    """In-memory gateway answering immediately from canned data."""

    def __init__(
        self,
        books: Any = None,
        pages: Optional[dict[str, Any]] = None,
        contents: Optional[dict[tuple[str, Any], Any]] = None,
    ) -> None:
        self.books = books if books is not None else []
        self.pages = pages or {}
        self.contents = contents or {}
        self.errors: dict[str, str] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.closed = False

    async def list_books(self) -> Any:
        self.calls.append(("list_books",))
        if "books" in self.errors:
            raise GatewayError(self.errors["books"])
        return self.books

    async def list_pages(self, book_id: str) -> Any:
        self.calls.append(("list_pages", book_id))
        if "pages" in self.errors:
            raise GatewayError(self.errors["pages"])
        return self.pages.get(book_id, [])

    async def get_page_content(self, book_id: str, page_number: Any) -> Any:
        self.calls.append(("get_page_content", book_id, page_number))
        if "content" in self.errors:
            raise GatewayError(self.errors["content"])
        return self.contents.get((book_id, page_number))

    async def close(self) -> None:
        self.closed = True

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]


class ControlledGateway:
    """Gateway whose calls stay pending until the test resolves them."""

    def __init__(self) -> None:
        self.pending: list[tuple[tuple[Any, ...], asyncio.Future]] = []

    async def _wait(self, *call: Any) -> Any:
        future = asyncio.get_running_loop().create_future()
        self.pending.append((call, future))
        return await future

    async def list_books(self) -> Any:
        return await self._wait("list_books")

    async def list_pages(self, book_id: str) -> Any:
        return await self._wait("list_pages", book_id)

    async def get_page_content(self, book_id: str, page_number: Any) -> Any:
        return await self._wait("get_page_content", book_id, page_number)

    async def close(self) -> None:
        pass

    def futures_for(self, *call: Any) -> list[asyncio.Future]:
        return [future for pending_call, future in self.pending if pending_call == call]

    def future_for(self, *call: Any) -> asyncio.Future:
        futures = self.futures_for(*call)
        if not futures:
            raise LookupError(f"No call {call!r}")
        return futures[-1]


async def settle(rounds: int = 5) -> None:
    """Let completed futures propagate through the controller's tasks."""
    for _ in range(rounds):
        await asyncio.sleep(0)


BOOKS = [
    {"id": "b1", "original_book_title": "Bhagavad Gita"},
    {"_id": "b2", "title": "amrta"},
    {"book_id": "b3", "english_book_title": "1984"},
    {"id": "b4", "name": "Gita"},
]


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(
        books=BOOKS,
        pages={
            "b1": [
                {"page_number": "3", "page_label": "iii"},
                {"page_number": "1"},
                {"page_number": "2"},
            ],
            "b2": {"page_maps": [{"page_number": 10}, {"page_number": 5}]},
            "b4": [],
        },
        contents={
            ("b1", "1"): {"text": "First verse"},
            ("b1", "2"): {"text": "Second verse"},
            ("b2", 5): {"text": "amrta five"},
        },
    )


@pytest.fixture
def controller(gateway: FakeGateway) -> TieredSelectionController:
    return TieredSelectionController(gateway)


@pytest.fixture
def controlled() -> ControlledGateway:
    return ControlledGateway()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def clean_env():
    """Drop PAGEBASE_* variables before and after a test (load_dotenv writes them)."""

    def _clear() -> None:
        for name in list(os.environ):
            if name.startswith("PAGEBASE_"):
                del os.environ[name]

    _clear()
    yield
    _clear()
