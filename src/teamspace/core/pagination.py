"""Cursor pagination over a stable (created_at desc, id desc) ordering.

Cursors are URL-safe base64 encodings of the last-seen row's composite
sort key. List queries fetch ``limit + 1`` rows strictly after that key;
the extra row only signals that another page exists and is trimmed before
the page is returned. Because the key travels inside the cursor, the next
page never needs to read the anchor row back, so removing or deleting it
between requests does not break pagination.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar
from uuid import UUID

from teamspace.core.exceptions import BadRequestError

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_SEPARATOR = "|"


class Keyed(Protocol):
    """Anything ordered by (created_at, id)."""

    @property
    def id(self) -> UUID:
        """Row identifier."""
        ...

    @property
    def created_at(self) -> datetime:
        """Creation timestamp."""
        ...


T = TypeVar("T", bound=Keyed)


@dataclass(frozen=True)
class CursorKey:
    """Composite sort key of the last row on a page."""

    created_at: datetime
    id: UUID

    def as_tuple(self) -> tuple[datetime, UUID]:
        return (self.created_at, self.id)


@dataclass(frozen=True)
class PageInfo:
    """Position of a page within the full result set."""

    has_next_page: bool
    start_cursor: str | None
    end_cursor: str | None


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a list result."""

    data: list[T]
    page_info: PageInfo


@dataclass(frozen=True)
class PageRequest:
    """Normalized list parameters handed to repositories.

    Attributes:
        after: Decoded cursor key, or None for the first page.
        limit: Page size already clamped to [1, MAX_PAGE_SIZE].
    """

    after: CursorKey | None
    limit: int

    @property
    def fetch_size(self) -> int:
        """Rows to fetch: one more than the page size."""
        return self.limit + 1


def encode_cursor(created_at: datetime, row_id: UUID) -> str:
    """Encode a row's sort key as an opaque cursor.

    Args:
        created_at: Creation time of the last row on the page. Must be
            timezone-aware.
        row_id: Id of the last row on the page.

    Returns:
        URL-safe base64 string without padding.
    """
    plain = f"{created_at.isoformat()}{_SEPARATOR}{row_id}"
    raw = base64.urlsafe_b64encode(plain.encode("utf-8")).decode("ascii")
    return raw.rstrip("=")


def decode_cursor(cursor: str) -> CursorKey:
    """Decode a cursor back into the sort key it was made from.

    Args:
        cursor: Value previously returned as start/end cursor.

    Returns:
        The encoded (created_at, id) key.

    Raises:
        BadRequestError: If the cursor is not a valid encoding.
    """
    if not cursor or not isinstance(cursor, str):
        raise BadRequestError("Invalid cursor format")

    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
        created_part, id_part = decoded.split(_SEPARATOR)
        created_at = datetime.fromisoformat(created_part)
        row_id = UUID(id_part)
    except (binascii.Error, UnicodeError, ValueError):
        raise BadRequestError("Invalid cursor format") from None

    # Naive timestamps cannot be ordered against stored ones
    if created_at.tzinfo is None:
        raise BadRequestError("Invalid cursor format")
    # Reject alternate spellings of the same key so cursors stay canonical
    if encode_cursor(created_at, row_id) != cursor.rstrip("="):
        raise BadRequestError("Invalid cursor format")
    return CursorKey(created_at=created_at, id=row_id)


def cursor_for(row: Keyed) -> str:
    """Cursor pointing just past ``row``."""
    return encode_cursor(row.created_at, row.id)


def normalize_limit(limit: Any = None) -> int:
    """Clamp a requested page size into [1, MAX_PAGE_SIZE].

    Missing or unparseable values fall back to DEFAULT_PAGE_SIZE rather
    than raising.
    """
    if limit is None or isinstance(limit, bool):
        return DEFAULT_PAGE_SIZE
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_PAGE_SIZE
    if value < 1:
        return DEFAULT_PAGE_SIZE
    return min(value, MAX_PAGE_SIZE)


def page_request(cursor: str | None = None, limit: Any = None) -> PageRequest:
    """Build a normalized page request from raw list parameters.

    Raises:
        BadRequestError: If a cursor is supplied and malformed.
    """
    after = decode_cursor(cursor) if cursor else None
    return PageRequest(after=after, limit=normalize_limit(limit))


def build_page(rows: Sequence[T], limit: int) -> Page[T]:
    """Trim the look-ahead row and compute page info.

    Args:
        rows: Up to ``limit + 1`` rows in list order.
        limit: Requested page size.

    Returns:
        The page with cursors for its first and last rows.
    """
    has_next_page = len(rows) > limit
    data = list(rows[:limit])
    return Page(
        data=data,
        page_info=PageInfo(
            has_next_page=has_next_page,
            start_cursor=cursor_for(data[0]) if data else None,
            end_cursor=cursor_for(data[-1]) if data else None,
        ),
    )
