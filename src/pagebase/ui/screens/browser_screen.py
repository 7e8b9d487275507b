from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Mapping, Optional

from rich.markup import escape
from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Footer, Header, Input, Label, ListItem, ListView, Static

from pagebase.browser.controller import BrowserState
from pagebase.browser.images import ImageStatus
from pagebase.library.models import Book, Page, Tier, TierState

if TYPE_CHECKING:
    from pagebase.app import PagebaseApp


def format_content(payload: Any) -> str:
    """Render an opaque page content payload as plain text."""
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, Mapping):
        blocks: list[str] = []
        for key, value in payload.items():
            if isinstance(value, (Mapping, list, tuple)):
                nested = json.dumps(value, ensure_ascii=False, indent=2, default=str)
                blocks.append(f"{key}:\n{nested}")
            elif isinstance(value, str) and "\n" in value:
                blocks.append(f"{key}:\n{value}")
            else:
                blocks.append(f"{key}: {value}")
        return "\n\n".join(blocks)
    if isinstance(payload, (list, tuple)):
        return "\n\n".join(format_content(item) for item in payload)
    return str(payload)


def tier_status(state: TierState, noun: str, retry_key: str) -> Optional[str]:
    """Status line for a tier, or None once it holds data without error."""
    if state.loading:
        return f"Loading {noun}..."
    if state.error:
        return f"Error: {escape(state.error)}  [b]\\[{retry_key}][/b] Retry"
    return None


class ImageOverlayScreen(ModalScreen[None]):
    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("f", "close", "Close"),
    ]

    DEFAULT_CSS = """
    ImageOverlayScreen {
        align: center middle;
        background: black 90%;
    }
    #overlay-dialog {
        width: 90%;
        height: 90%;
        padding: 1 2;
        border: solid $primary;
    }
    #overlay-image {
        height: 1fr;
        content-align: center middle;
    }
    #overlay-caption {
        width: 100%;
        text-align: center;
    }
    """

    def __init__(self, image_text: str, caption: str) -> None:
        super().__init__()
        self._image_text = image_text
        self._caption = caption

    def compose(self) -> ComposeResult:
        with Vertical(id="overlay-dialog"):
            yield Static(self._image_text, id="overlay-image", markup=False)
            yield Label(self._caption, id="overlay-caption", markup=False)

    def action_close(self) -> None:
        self.dismiss(None)


class BrowserScreen(Screen):
    BINDINGS = [
        Binding("slash", "focus_search", "Search"),
        Binding("left_square_bracket", "prev_bucket", "<Tab"),
        Binding("right_square_bracket", "next_bucket", "Tab>"),
        Binding("b", "retry('books')", "Retry books", show=False),
        Binding("p", "retry('pages')", "Retry pages", show=False),
        Binding("c", "retry('content')", "Retry content", show=False),
        Binding("f", "toggle_overlay", "Fullscreen"),
        Binding("q", "quit_app", "Quit"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._unsubscribe = None
        self._shown_books: Optional[tuple[Book, ...]] = None
        self._shown_pages: Optional[tuple[Page, ...]] = None
        self._image_size: Optional[int] = None

    @property
    def pb(self) -> PagebaseApp:
        return self.app  # type: ignore[return-value]

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="browser-header")
        yield Input(placeholder="Search books... (Esc to clear)", id="search-input")
        yield Static("", id="bucket-tabs")
        with Horizontal(id="browser-body"):
            with Vertical(id="book-panel"):
                yield Static("Select a Book", classes="panel-title")
                yield Static("", id="book-status", classes="panel-status")
                yield ListView(id="book-list")
            with Vertical(id="page-panel"):
                yield Static("Pages", classes="panel-title")
                yield Static("", id="page-status", classes="panel-status")
                yield ListView(id="page-list")
            yield Static("", id="image-panel")
            yield Static("", id="content-panel")
        yield Footer()

    def on_mount(self) -> None:
        controller = self.pb.controller
        self._unsubscribe = controller.subscribe(self._apply_state)
        controller.start()
        self.query_one("#book-list", ListView).focus()

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    # ── Rendering ──────────────────────────────

    def _apply_state(self, state: BrowserState) -> None:
        self._show_header(state)
        self._show_books(state)
        self._show_pages(state)
        self._show_image(state)
        self._show_content(state)

    def _show_header(self, state: BrowserState) -> None:
        parts = [" Pure Bhakti Base", escape(state.view.summary)]
        book = state.selection.book
        if book:
            parts.append(f"Book: {escape(book.title)}")
        page = state.selection.page
        if page:
            parts.append(escape(page.label))
        self.query_one("#browser-header", Static).update("  │  ".join(parts))

    def _show_books(self, state: BrowserState) -> None:
        view = state.view
        tabs = self.query_one("#bucket-tabs", Static)
        tabs.set_class(view.searching, "hidden")
        tabs.update(
            "  ".join(
                f"[reverse] {key} ({count}) [/reverse]"
                if key == view.active_bucket
                else f"{escape(key)} ({count})"
                for key, count in view.bucket_counts.items()
            )
        )

        status = self.query_one("#book-status", Static)
        message = tier_status(state.books, "books", "b")
        status.set_class(bool(state.books.error), "error")
        if message is None:
            message = escape(view.summary if view.displayed else view.empty_message)
        status.update(message)

        # Books compare by id only, so a retitled list must be caught by identity.
        if view.displayed is not self._shown_books:
            self._shown_books = view.displayed
            self._rebuild_books(view.displayed)
        else:
            self._mark_selected("#book-list", state.selection.book_id)

    def _show_pages(self, state: BrowserState) -> None:
        status = self.query_one("#page-status", Static)
        message = tier_status(state.pages, "pages", "p")
        status.set_class(bool(state.pages.error), "error")
        if message is None:
            if state.selection.book is None:
                message = "Select a book"
            elif not state.pages.data:
                message = "No pages"
            else:
                message = f"{len(state.pages.data)} pages"
        status.update(message)

        pages = state.pages.data
        page = state.selection.page
        if pages is not self._shown_pages:
            self._shown_pages = pages
            self._rebuild_pages(tuple(pages or ()))
        else:
            self._mark_selected("#page-list", page)

    def _show_image(self, state: BrowserState) -> None:
        image = self.pb.image
        page = state.selection.page
        changed = image.set_target(
            state.selection.book_id, page.page_number if page else None
        )
        if changed:
            self._image_size = None
            if image.has_target:
                self._load_image()
        self._show_image_panel()

    def _show_image_panel(self) -> None:
        image = self.pb.image
        panel = self.query_one("#image-panel", Static)
        page = self.pb.controller.state.selection.page
        if not image.has_target or page is None:
            panel.update(
                "Select a page to view image\n\n"
                "Choose a book and page from the left panel"
            )
        elif image.status is ImageStatus.LOADING:
            panel.update("Loading image...")
        elif image.status is ImageStatus.ERRORED:
            panel.update(f"Image not found\n\n{escape(image.path or '')}")
        else:
            size = f"{self._image_size / 1024:.0f} KiB" if self._image_size else ""
            panel.update(
                f"[b]Image View from the Original Book for Page Label - "
                f"{escape(page.label)}[/b]\n\n{escape(image.url or '')}\n{size}"
            )

    def _show_content(self, state: BrowserState) -> None:
        panel = self.query_one("#content-panel", Static)
        message = tier_status(state.content, "content", "c")
        if message is not None:
            panel.update(message)
        elif state.selection.page is None:
            panel.update("Select a page to view content")
        elif state.content.data is None:
            panel.update("No content for this page")
        else:
            panel.update(escape(format_content(state.content.data)))

    @work(exclusive=True, group="book-list")
    async def _rebuild_books(self, books: tuple[Book, ...]) -> None:
        book_list = self.query_one("#book-list", ListView)
        await book_list.clear()
        items = []
        for book in books:
            item = ListItem(Static(book.title, markup=False), classes="book-item")
            item.data = book  # type: ignore[attr-defined]
            items.append(item)
        await book_list.extend(items)
        self._mark_selected("#book-list", self.pb.controller.state.selection.book_id)

    @work(exclusive=True, group="page-list")
    async def _rebuild_pages(self, pages: tuple[Page, ...]) -> None:
        page_list = self.query_one("#page-list", ListView)
        await page_list.clear()
        items = []
        for page in pages:
            item = ListItem(Static(page.label, markup=False), classes="page-item")
            item.data = page  # type: ignore[attr-defined]
            items.append(item)
        await page_list.extend(items)
        self._mark_selected("#page-list", self.pb.controller.state.selection.page)

    def _mark_selected(self, list_id: str, selected: Any) -> None:
        for item in self.query_one(list_id, ListView).query(ListItem):
            data = getattr(item, "data", None)
            key = data.id if isinstance(data, Book) else data
            item.set_class(selected is not None and key == selected, "selected")

    @work(exclusive=True, group="image")
    async def _load_image(self) -> None:
        data = await self.pb.image_loader.load(self.pb.image)
        self._image_size = len(data) if data else None
        self._show_image_panel()

    # ── Intents ────────────────────────────────

    @on(ListView.Selected, "#book-list")
    def on_book_selected(self, event: ListView.Selected) -> None:
        book = getattr(event.item, "data", None)
        if book is not None:
            self.pb.controller.select_book(book)

    @on(ListView.Selected, "#page-list")
    def on_page_selected(self, event: ListView.Selected) -> None:
        page = getattr(event.item, "data", None)
        if page is not None:
            self.pb.controller.select_page(page)

    @on(Input.Changed, "#search-input")
    def on_search_changed(self, event: Input.Changed) -> None:
        self.pb.controller.set_search_term(event.value)

    @on(Input.Submitted, "#search-input")
    def on_search_submitted(self, event: Input.Submitted) -> None:
        self.query_one("#book-list", ListView).focus()

    def on_key(self, event) -> None:
        search = self.query_one("#search-input", Input)
        if search.has_focus and event.key == "escape":
            search.value = ""
            self.query_one("#book-list", ListView).focus()
            event.stop()
            event.prevent_default()

    def action_focus_search(self) -> None:
        self.query_one("#search-input", Input).focus()

    def _step_bucket(self, step: int) -> None:
        view = self.pb.controller.state.view
        keys = view.bucket_keys
        if not keys or view.searching:
            return
        if view.active_bucket in keys:
            idx = (keys.index(view.active_bucket) + step) % len(keys)
        else:
            idx = 0 if step > 0 else len(keys) - 1
        self.pb.controller.set_active_bucket(keys[idx])

    def action_prev_bucket(self) -> None:
        self._step_bucket(-1)

    def action_next_bucket(self) -> None:
        self._step_bucket(1)

    def action_retry(self, tier: str) -> None:
        self.pb.controller.retry(Tier(tier))

    def action_toggle_overlay(self) -> None:
        image = self.pb.image
        page = self.pb.controller.state.selection.page
        if not image.has_target or page is None:
            self.notify("Select a page first", severity="warning")
            return
        if not image.toggle_overlay():
            return
        book_id = self.pb.controller.state.selection.book_id
        self.app.push_screen(
            ImageOverlayScreen(image.url or "", f"{page.label} - Book {book_id}"),
            callback=self._on_overlay_closed,
        )

    def _on_overlay_closed(self, _result: None) -> None:
        if self.pb.image.overlay:
            self.pb.image.toggle_overlay()

    async def action_quit_app(self) -> None:
        await self.pb.action_quit()
