"""Cascading Books -> Pages -> Content selection state machine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Coroutine, Mapping, Optional

from pagebase.gateway.client import ResourceGateway
from pagebase.library.index import BookView, build_view
from pagebase.library.models import Book, Page, Selection, Tier, TierState
from pagebase.library.normalize import default_page, normalize_books, normalize_pages

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrowserState:
    """Immutable snapshot published after every transition."""

    books: TierState
    pages: TierState
    content: TierState
    selection: Selection
    search_term: str
    active_bucket: str
    view: BookView


Listener = Callable[[BrowserState], None]


@dataclass(frozen=True)
class _Ticket:
    tier: Tier
    generation: int
    key: Any  # selection key the fetch was issued for


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class TieredSelectionController:
    """Owns the selection and the three tier states.

    Every mutation goes through a named transition, and every transition ends
    by publishing a fresh ``BrowserState``. Fetches run as asyncio tasks on
    the running loop, so transitions must be invoked from inside it. A fetch
    result is applied only if no newer fetch was issued for its tier and the
    selection still matches the key it was issued for.
    """

    def __init__(self, gateway: ResourceGateway, default_bucket: str = "A") -> None:
        self._gateway = gateway
        self._books = TierState.empty_list(loading=True)
        self._pages = TierState.empty_list()
        self._content = TierState()
        self._selection = Selection()
        self._search_term = ""
        self._active_bucket = default_bucket
        self._generations = {tier: 0 for tier in Tier}
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Listener] = []
        self._view_key: Optional[tuple[Any, str, str]] = None  # books data by identity
        self._view: Optional[BookView] = None
        self._state = self._snapshot()

    # ── Publication ────────────────────────────────────────

    @property
    def state(self) -> BrowserState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _current_view(self) -> BookView:
        key = (self._books.data, self._search_term, self._active_bucket)
        cached = self._view_key
        if (
            self._view is None
            or cached is None
            or cached[0] is not key[0]
            or cached[1:] != key[1:]
        ):
            self._view = build_view(
                self._books.data or (), self._search_term, self._active_bucket
            )
            self._view_key = key
        return self._view

    def _snapshot(self) -> BrowserState:
        return BrowserState(
            books=self._books,
            pages=self._pages,
            content=self._content,
            selection=self._selection,
            search_term=self._search_term,
            active_bucket=self._active_bucket,
            view=self._current_view(),
        )

    def _publish(self) -> None:
        self._state = self._snapshot()
        for listener in list(self._listeners):
            listener(self._state)

    # ── Intents ────────────────────────────────────────────

    def start(self) -> None:
        """Issue the initial books fetch."""
        self._fetch_books()
        self._publish()

    def select_book(self, book_like: Book | Mapping[str, Any] | None) -> None:
        if book_like is None:
            self.clear_book()
            return

        record = book_like.record if isinstance(book_like, Book) else book_like
        book = Book.from_record(record)
        if not book.id and isinstance(book_like, Book):
            book = book_like
        if not book.id:
            log.warning("Ignoring book selection without an id: %r", book.title)
            return

        self._selection = Selection(book=book, page=None)
        self._reset_content()
        self._fetch_pages()
        self._publish()

    def clear_book(self) -> None:
        self._selection = Selection()
        self._invalidate(Tier.PAGES)
        self._pages = TierState.empty_list()
        self._reset_content()
        self._publish()

    def select_page(self, page: Optional[Page]) -> None:
        if page is None:
            self.clear_page()
            return
        if self._selection.book is None:
            log.warning("Ignoring page selection with no book selected")
            return
        if self._pages.loading or page not in (self._pages.data or ()):
            log.warning(
                "Ignoring page %r not loaded for book %s", page, self._selection.book_id
            )
            return
        self._apply_page(page)
        self._publish()

    def clear_page(self) -> None:
        self._selection = replace(self._selection, page=None)
        self._reset_content()
        self._publish()

    def retry(self, tier: Tier | str) -> None:
        parsed = Tier.parse(tier)
        if parsed is None:
            log.warning("Ignoring retry for unknown tier %r", tier)
            return

        if parsed is Tier.BOOKS:
            self._fetch_books()
        elif parsed is Tier.PAGES:
            if self._selection.book is None:
                return
            self._selection = replace(self._selection, page=None)
            self._reset_content()
            self._fetch_pages()
        else:
            if self._selection.page_key is None:
                return
            self._fetch_content()
        self._publish()

    def set_search_term(self, term: str) -> None:
        term = term or ""
        if term == self._search_term:
            return
        self._search_term = term
        self._publish()

    def set_active_bucket(self, key: str) -> None:
        if key == self._active_bucket:
            return
        self._active_bucket = key
        self._publish()

    # ── Fetch bookkeeping ──────────────────────────────────

    def _invalidate(self, tier: Tier) -> int:
        self._generations[tier] += 1
        return self._generations[tier]

    def _current_key(self, tier: Tier) -> Any:
        if tier is Tier.PAGES:
            return self._selection.book_id
        if tier is Tier.CONTENT:
            return self._selection.page_key
        return None

    def _is_current(self, ticket: _Ticket) -> bool:
        return (
            self._generations[ticket.tier] == ticket.generation
            and self._current_key(ticket.tier) == ticket.key
        )

    def _issue(self, tier: Tier) -> _Ticket:
        key = self._current_key(tier)
        ticket = _Ticket(tier, self._invalidate(tier), key)
        log.debug(
            "Fetching %s (key=%r, generation=%d)", tier.value, key, ticket.generation
        )
        return ticket

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _reset_content(self) -> None:
        self._invalidate(Tier.CONTENT)
        self._content = TierState()

    def _apply_page(self, page: Page) -> None:
        self._selection = replace(self._selection, page=page)
        self._fetch_content()

    def _fetch_books(self) -> None:
        self._books = TierState(data=self._books.data or (), loading=True)
        self._spawn(self._load_books(self._issue(Tier.BOOKS)))

    def _fetch_pages(self) -> None:
        self._pages = TierState.empty_list(loading=True)
        self._spawn(self._load_pages(self._issue(Tier.PAGES)))

    def _fetch_content(self) -> None:
        self._content = TierState(data=None, loading=True)
        self._spawn(self._load_content(self._issue(Tier.CONTENT)))

    def _discard(self, ticket: _Ticket) -> bool:
        if self._is_current(ticket):
            return False
        log.debug("Discarding stale %s result for %r", ticket.tier.value, ticket.key)
        return True

    # ── Fetch completions ──────────────────────────────────

    async def _load_books(self, ticket: _Ticket) -> None:
        try:
            raw = await self._gateway.list_books()
        except Exception as e:
            if self._discard(ticket):
                return
            log.warning("Loading books failed: %s", e)
            self._books = TierState(data=(), loading=False, error=_error_message(e))
            self._publish()
            return

        if self._discard(ticket):
            return
        self._books = TierState(data=normalize_books(raw), loading=False)
        log.debug("Loaded %d books", len(self._books.data))
        self._publish()

    async def _load_pages(self, ticket: _Ticket) -> None:
        try:
            raw = await self._gateway.list_pages(ticket.key)
        except Exception as e:
            if self._discard(ticket):
                return
            log.warning("Loading pages for book %s failed: %s", ticket.key, e)
            self._pages = TierState(data=(), loading=False, error=_error_message(e))
            self._publish()
            return

        if self._discard(ticket):
            return
        pages = normalize_pages(raw)
        self._pages = TierState(data=pages, loading=False)
        log.debug("Loaded %d pages for book %s", len(pages), ticket.key)

        first = default_page(pages)
        if first is not None:
            self._apply_page(first)
        self._publish()

    async def _load_content(self, ticket: _Ticket) -> None:
        book_id, page_number = ticket.key
        try:
            raw = await self._gateway.get_page_content(book_id, page_number)
        except Exception as e:
            if self._discard(ticket):
                return
            log.warning(
                "Loading content for book %s page %s failed: %s",
                book_id,
                page_number,
                e,
            )
            self._content = TierState(
                data=None, loading=False, error=_error_message(e)
            )
            self._publish()
            return

        if self._discard(ticket):
            return
        self._content = TierState(data=raw, loading=False)
        self._publish()

    # ── Lifecycle ──────────────────────────────────────────

    async def wait_idle(self) -> None:
        """Wait for in-flight fetches, including ones they trigger."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._gateway.close()
