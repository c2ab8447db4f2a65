"""
Data types shared by the record store.
"""

import enum
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional


class Domain(str, enum.Enum):
    """The record domains that share the note collection."""
    BOOK = "book"
    TRANSACTION = "transaction"
    GOAL = "goal"
    JOURNAL = "journal"
    MEDITATION = "meditation"
    DETOX = "detox"


def utc_now() -> str:
    """Current UTC timestamp in ISO format, with microseconds.

    Microsecond resolution keeps ``updated_date`` ordering stable for
    writes that land within the same second.
    """
    return datetime.now(timezone.utc).isoformat()


def parse_utc_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Accepts naive timestamps (assumed UTC) and 'Z' or '+00:00' suffixes.
    """
    ts = ts.replace("Z", "+00:00")
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def today() -> str:
    """Today's local date as YYYY-MM-DD."""
    return date.today().isoformat()


@dataclass
class Note:
    """
    A generic document from the note collection.

    The store assigns ``id``, ``created_by`` and both timestamps; callers
    only ever supply ``title``, ``content`` and ``is_pinned``.
    """
    id: str
    title: str
    content: str
    created_by: str = ""
    created_date: str = ""
    updated_date: str = ""
    is_pinned: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Note":
        """Build a Note from a wire/JSON dict, tolerating missing optional keys."""
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            content=data.get("content") or "",
            created_by=data.get("created_by") or "",
            created_date=data.get("created_date") or "",
            updated_date=data.get("updated_date") or "",
            is_pinned=bool(data.get("is_pinned", False)),
        )


@dataclass(frozen=True)
class EncodedNote:
    """The ``title``/``content`` pair a typed record encodes to."""
    title: str
    content: str


def parse_sort(sort: Optional[str]) -> tuple[str, bool]:
    """Split a sort spec like ``-updated_date`` into (field, descending)."""
    if not sort:
        return "updated_date", True
    if sort.startswith("-"):
        return sort[1:], True
    return sort, False
