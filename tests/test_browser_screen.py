"""Tests for the browser screen and its rendering helpers."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from conftest import FakeGateway
from textual.widgets import ListItem, ListView

from pagebase.app import PagebaseApp
from pagebase.config import AppConfig
from pagebase.library.models import TierState
from pagebase.ui.screens.browser_screen import (
    BrowserScreen,
    format_content,
    tier_status,
)


class TestFormatContent:
    def test_none(self):
        assert format_content(None) == ""

    def test_string(self):
        assert format_content("plain text") == "plain text"

    def test_mapping(self):
        text = format_content({"verse": "om", "meaning": "line 1\nline 2", "n": 3})
        assert text == "verse: om\n\nmeaning:\nline 1\nline 2\n\nn: 3"

    def test_nested(self):
        text = format_content({"words": ["a", "b"]})
        assert text.startswith("words:\n[")
        assert '"a"' in text

    def test_list(self):
        assert format_content(["one", {"k": "v"}]) == "one\n\nk: v"


class TestTierStatus:
    def test_loading(self):
        assert tier_status(TierState(loading=True), "pages", "p") == "Loading pages..."

    def test_error_mentions_retry_key(self):
        text = tier_status(TierState(error="bad [b]markup"), "books", "b")
        assert text.startswith("Error: bad \\[b]markup")
        assert "\\[b]" in text

    def test_ready(self):
        assert tier_status(TierState(data=()), "books", "b") is None


class TestBrowserScreen:
    @pytest.mark.asyncio
    async def test_browse_book_and_page(self, tmp_path: Path, gateway: FakeGateway):
        config = AppConfig(data_dir=tmp_path / "data", config_dir=tmp_path / "config")
        app = PagebaseApp(config=config, gateway=gateway)

        with patch.object(app.image_loader, "load", AsyncMock(return_value=b"img")):
            async with app.run_test() as pilot:
                await app.controller.wait_idle()
                await pilot.pause()
                assert isinstance(app.screen, BrowserScreen)
                assert app.controller.state.books.loading is False

                app.controller.select_book({"id": "b1"})
                await app.controller.wait_idle()
                await pilot.pause()

                assert app.image.key == ("b1", "1")
                assert app.controller.state.content.data == {"text": "First verse"}

                await pilot.press("f")
                await pilot.pause()
                assert app.image.overlay is True
                await pilot.press("escape")
                await pilot.pause()
                assert app.image.overlay is False

    @pytest.mark.asyncio
    async def test_retitled_books_rebuild_list(self, tmp_path: Path):
        config = AppConfig(data_dir=tmp_path / "data", config_dir=tmp_path / "config")
        gateway = FakeGateway(books=[{"id": "1", "title": "Alpha"}])
        app = PagebaseApp(config=config, gateway=gateway)

        async with app.run_test() as pilot:
            await app.controller.wait_idle()
            await app.workers.wait_for_complete()
            await pilot.pause()

            gateway.books = [{"id": "1", "title": "Avatar"}]
            app.controller.retry("books")
            await app.controller.wait_idle()
            await app.workers.wait_for_complete()
            await pilot.pause()

            items = app.screen.query_one("#book-list", ListView).query(ListItem)
            assert [item.data.title for item in items] == ["Avatar"]
