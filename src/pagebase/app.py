"""Pagebase - terminal browser for scanned book pages."""

from __future__ import annotations

import logging
import sys

from textual.app import App

from pagebase.browser.controller import TieredSelectionController
from pagebase.browser.images import ImageLoader, PageImage
from pagebase.config import AppConfig, load_config
from pagebase.gateway.client import HttpGateway, ResourceGateway
from pagebase.ui.screens.browser_screen import BrowserScreen
from pagebase.ui.themes import APP_CSS


class PagebaseApp(App):
    """Browse books, pick a page, view its scan alongside its content."""

    TITLE = "Pagebase"
    CSS = APP_CSS

    def __init__(
        self,
        config: AppConfig | None = None,
        gateway: ResourceGateway | None = None,
    ) -> None:
        super().__init__()
        self.config = config or load_config()
        self.gateway = gateway or HttpGateway(self.config)
        self.controller = TieredSelectionController(
            self.gateway, default_bucket=self.config.default_bucket
        )
        self.image = PageImage(self.config.asset_root)
        self.image_loader = ImageLoader(self.config)

    def on_mount(self) -> None:
        self.push_screen(BrowserScreen())

    async def action_quit(self) -> None:
        await self.controller.aclose()
        await self.image_loader.close()
        self.exit()


def _setup_logging(config: AppConfig) -> None:
    handler = logging.FileHandler(config.log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("pagebase")
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)


def main() -> None:
    config = load_config()
    if len(sys.argv) > 1:
        config.api_base_url = sys.argv[1]
    _setup_logging(config)

    app = PagebaseApp(config=config)
    app.run()


if __name__ == "__main__":
    main()
