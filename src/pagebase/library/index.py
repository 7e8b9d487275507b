"""Alphabetic grouping and live title search over the book list."""

from __future__ import annotations

import locale
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable

from .models import Book

OTHER_BUCKET = "#"

_LETTER = re.compile(r"[A-Z]")


def bucket_key(title: str) -> str:
    """Upper-cased first character of the title if it is A-Z, otherwise ``#``."""
    first = title[:1].upper()
    return first if _LETTER.fullmatch(first) else OTHER_BUCKET


def _strip_marks(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def collation_key(title: str) -> tuple[str, str, str]:
    """Sort key approximating locale collation.

    Base letters compare first, then accents, then case, each level under the
    current locale's ``strxfrm``.
    """
    folded = title.casefold()
    return (
        locale.strxfrm(_strip_marks(folded)),
        locale.strxfrm(folded),
        locale.strxfrm(title),
    )


def sort_by_title(books: Iterable[Book]) -> list[Book]:
    return sorted(books, key=lambda b: collation_key(b.title))


def group_books(books: Iterable[Book]) -> dict[str, list[Book]]:
    groups: dict[str, list[Book]] = {}
    for book in books:
        groups.setdefault(bucket_key(book.title), []).append(book)
    return {key: sort_by_title(members) for key, members in groups.items()}


def search_books(books: Iterable[Book], term: str) -> list[Book]:
    """Case-insensitive substring match on title, in original list order."""
    needle = term.lower()
    return [b for b in books if needle in b.title.lower()]


@dataclass(frozen=True)
class BookView:
    """Derived book list for display: either one bucket or search results."""

    books: tuple[Book, ...] = ()
    buckets: dict[str, tuple[Book, ...]] = field(default_factory=dict)
    bucket_keys: tuple[str, ...] = ()
    active_bucket: str = "A"
    search_term: str = ""
    displayed: tuple[Book, ...] = ()

    @property
    def searching(self) -> bool:
        return bool(self.search_term)

    @property
    def total(self) -> int:
        return len(self.books)

    @property
    def bucket_counts(self) -> dict[str, int]:
        return {key: len(self.buckets[key]) for key in self.bucket_keys}

    @property
    def summary(self) -> str:
        if not self.searching:
            return f"{self.total} books"
        n = len(self.displayed)
        return f'{n} book{"" if n == 1 else "s"} found for "{self.search_term}"'

    @property
    def empty_message(self) -> str:
        if not self.books:
            return "No books available"
        if self.searching:
            return f'No books found for "{self.search_term}"'
        return "No books in this category"


def build_view(
    books: Iterable[Book], search_term: str = "", active_bucket: str = "A"
) -> BookView:
    books = tuple(books)
    groups = group_books(books)
    buckets = {key: tuple(members) for key, members in groups.items()}

    if search_term:
        displayed = tuple(search_books(books, search_term))
    else:
        displayed = buckets.get(active_bucket, ())

    return BookView(
        books=books,
        buckets=buckets,
        bucket_keys=tuple(sorted(buckets)),
        active_bucket=active_bucket,
        search_term=search_term,
        displayed=displayed,
    )
