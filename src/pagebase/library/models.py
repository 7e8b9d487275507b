"""Data models for the remote page library."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

BOOK_ID_FIELDS = ("id", "_id", "book_id")
BOOK_TITLE_FIELDS = (
    "original_book_title",
    "english_book_title",
    "title",
    "name",
)


def _first_present(record: Mapping[str, Any], fields: tuple[str, ...]) -> str:
    for name in fields:
        value = record.get(name)
        # 0, False and "" fall through like a missing field.
        if not value:
            continue
        return str(value)
    return ""


def resolve_book_id(record: Mapping[str, Any]) -> str:
    """First non-empty of ``id``, ``_id``, ``book_id``; empty string if none."""
    return _first_present(record, BOOK_ID_FIELDS)


def resolve_book_title(record: Mapping[str, Any]) -> str:
    title = _first_present(record, BOOK_TITLE_FIELDS)
    if title:
        return title
    return f"Book {resolve_book_id(record) or 'Unknown'}"


def parse_page_number(value: Any) -> int:
    """Integer sort key for a page number; anything unparsable is 0."""
    if isinstance(value, bool):
        return 0
    try:
        if isinstance(value, float):
            return int(value)
        return int(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return 0


class Tier(str, Enum):
    BOOKS = "books"
    PAGES = "pages"
    CONTENT = "content"

    @classmethod
    def parse(cls, value: Tier | str) -> Optional[Tier]:
        if isinstance(value, Tier):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Book:
    id: str  # resolved from id / _id / book_id
    title: str = field(compare=False)
    record: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Book:
        return cls(
            id=resolve_book_id(record),
            title=resolve_book_title(record),
            record=dict(record),
        )


@dataclass(frozen=True)
class Page:
    page_number: Any  # display value, kept as the API sent it
    page_label: Optional[str] = None
    record: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Page:
        label = record.get("page_label")
        return cls(
            page_number=record.get("page_number"),
            page_label=str(label) if label not in (None, "") else None,
            record=dict(record),
        )

    @property
    def sort_key(self) -> int:
        return parse_page_number(self.page_number)

    @property
    def label(self) -> str:
        return self.page_label or f"Page {self.page_number}"


@dataclass(frozen=True)
class TierState:
    """Load state of one resource tier."""

    data: Any = None
    loading: bool = False
    error: Optional[str] = None

    @classmethod
    def empty_list(cls, loading: bool = False) -> TierState:
        return cls(data=(), loading=loading, error=None)


@dataclass(frozen=True)
class Selection:
    book: Optional[Book] = None
    page: Optional[Page] = None

    @property
    def book_id(self) -> Optional[str]:
        return self.book.id if self.book else None

    @property
    def page_key(self) -> Optional[tuple[str, Any]]:
        if self.book is None or self.page is None:
            return None
        return (self.book.id, self.page.page_number)
