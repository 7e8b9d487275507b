"""Normalization of list responses that may arrive bare or wrapped in an envelope."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .models import Book, Page

log = logging.getLogger(__name__)

BOOK_ENVELOPE_KEYS = ("books", "data")
PAGE_ENVELOPE_KEYS = ("page_maps", "pages", "data")


class Shape(Enum):
    SEQUENCE = "sequence"  # the payload itself is the list
    ENVELOPE = "envelope"  # list found under one of the envelope keys
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Unwrapped:
    shape: Shape
    items: tuple[Any, ...] = ()
    key: Optional[str] = None  # envelope key the items came from


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def unwrap(raw: Any, keys: tuple[str, ...]) -> Unwrapped:
    """Classify a response and extract its list of records.

    A bare list is used as-is. A mapping is searched for ``keys`` in order and
    the first value that is a list wins. Anything else is unrecognized and
    yields no items.
    """
    if _is_sequence(raw):
        return Unwrapped(Shape.SEQUENCE, tuple(raw))
    if isinstance(raw, Mapping):
        for key in keys:
            value = raw.get(key)
            if _is_sequence(value):
                return Unwrapped(Shape.ENVELOPE, tuple(value), key)
    return Unwrapped(Shape.UNRECOGNIZED)


def extract_books(raw: Any) -> tuple[Any, ...]:
    return unwrap(raw, BOOK_ENVELOPE_KEYS).items


def extract_pages(raw: Any) -> tuple[Any, ...]:
    return unwrap(raw, PAGE_ENVELOPE_KEYS).items


def normalize_books(raw: Any) -> tuple[Book, ...]:
    result = unwrap(raw, BOOK_ENVELOPE_KEYS)
    if result.shape is Shape.UNRECOGNIZED:
        log.debug("Unrecognized books response: %s", type(raw).__name__)

    books: list[Book] = []
    for record in result.items:
        if not isinstance(record, Mapping):
            continue
        book = Book.from_record(record)
        if not book.id:
            log.debug("Dropping book record without id: %r", book.title)
            continue
        books.append(book)
    return tuple(books)


def normalize_pages(raw: Any) -> tuple[Page, ...]:
    result = unwrap(raw, PAGE_ENVELOPE_KEYS)
    if result.shape is Shape.UNRECOGNIZED:
        log.debug("Unrecognized pages response: %s", type(raw).__name__)
    return tuple(
        Page.from_record(record)
        for record in result.items
        if isinstance(record, Mapping)
    )


def default_page(pages: tuple[Page, ...]) -> Optional[Page]:
    """Lowest-numbered page; ties keep response order. The input is not reordered."""
    if not pages:
        return None
    return sorted(pages, key=lambda p: p.sort_key)[0]
