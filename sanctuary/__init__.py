"""
Sanctuary

Typed personal records (books, finances, goals, journal, meditation,
digital detox) stored in a single generic note collection.

Quick Start:
    from sanctuary import Sanctuary, Book

    with Sanctuary() as s:  # uses ~/.sanctuary/
        book = s.books.save(Book(title="Dune", author="Herbert", total_pages=412))
        s.books.update_field(book.id, "current_page", 412)  # -> finished
        print(s.books.stats())

CLI Usage:
    sanctuary books add "Dune" "Herbert" --pages 412
    sanctuary finance add expense 12.50 "Lunch" --category food
    sanctuary overview --json

Default Store:
    ~/.sanctuary/ (created automatically).
    Override with SANCTUARY_STORE_PATH or an explicit path.

Environment Variables:
    SANCTUARY_STORE_PATH  - Override default store location
    SANCTUARY_OWNER       - Identity recorded on new notes
    SANCTUARY_API_URL     - Hosted note API (with SANCTUARY_API_KEY)
    SANCTUARY_API_KEY     - Bearer token for the hosted note API
"""

from .api import Overview, Sanctuary
from .errors import (
    DecodeError,
    NotFoundError,
    OperationFailed,
    ReservedTitleError,
    SanctuaryError,
    ValidationError,
)
from .records import Book, DetoxSession, Goal, JournalEntry, MeditationSession, Transaction, UserNote
from .tags import DEFAULT_REGISTRY, TagRegistry
from .types import Domain, Note

__version__ = "0.1.0"
__all__ = [
    "Sanctuary",
    "Overview",
    "Book",
    "Transaction",
    "Goal",
    "JournalEntry",
    "MeditationSession",
    "DetoxSession",
    "UserNote",
    "Note",
    "Domain",
    "TagRegistry",
    "DEFAULT_REGISTRY",
    "SanctuaryError",
    "ValidationError",
    "ReservedTitleError",
    "DecodeError",
    "NotFoundError",
    "OperationFailed",
]
