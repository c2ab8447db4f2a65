"""
Typed records stored in the note collection.

Each record borrows ``id`` from its backing note. ``id`` takes no part in
equality, so a record read back from the store compares equal to the one
that was saved.
"""

from dataclasses import dataclass, field
from typing import Optional


BOOK_STATUSES = ("want_to_read", "reading", "finished", "paused")

# Reading lifecycle. Any state may jump straight to "finished" by
# completing the pages or rating the book. Nothing guards edits back out.
BOOK_TRANSITIONS: dict[str, frozenset[str]] = {
    "want_to_read": frozenset({"reading", "finished"}),
    "reading": frozenset({"paused", "finished"}),
    "paused": frozenset({"reading", "finished"}),
    "finished": frozenset(),
}

GENRES = (
    "fiction", "non-fiction", "biography", "science",
    "history", "philosophy", "business", "self-help",
)

MAX_RATING = 5

TRANSACTION_TYPES = ("income", "expense")

CATEGORIES: dict[str, tuple[str, ...]] = {
    "expense": ("food", "transport", "utilities", "entertainment", "shopping", "health", "other"),
    "income": ("salary", "freelance", "investment", "gift", "other"),
}

GOAL_STATUSES = ("not_started", "in_progress", "paused", "finished")

# Detox sessions this short are never persisted
MIN_DETOX_SECONDS = 5


@dataclass
class Book:
    title: str
    author: str
    total_pages: int = 0
    current_page: int = 0
    status: str = "want_to_read"
    rating: int = 0
    notes: str = ""
    genre: str = "fiction"
    date_added: str = ""
    id: Optional[str] = field(default=None, compare=False)

    @property
    def progress(self) -> float:
        """Percent of pages read, 0 when the page count is unknown."""
        if self.total_pages <= 0:
            return 0.0
        return self.current_page / self.total_pages * 100


@dataclass
class Transaction:
    type: str
    amount: float
    category: str
    description: str
    date: str = ""
    id: Optional[str] = field(default=None, compare=False)


@dataclass
class Goal:
    title: str
    status: str = "not_started"
    progress: int = 0
    description: str = ""
    target_date: str = ""
    id: Optional[str] = field(default=None, compare=False)


@dataclass
class JournalEntry:
    title: str
    content: str
    date: str = ""
    mood: str = ""
    id: Optional[str] = field(default=None, compare=False)


@dataclass
class MeditationSession:
    duration: int
    date: str = ""
    technique: str = "box_breathing"
    id: Optional[str] = field(default=None, compare=False)


@dataclass
class DetoxSession:
    start_time: str
    end_time: str
    duration_seconds: int
    id: Optional[str] = field(default=None, compare=False)


@dataclass
class UserNote:
    """A plain note: any note whose title carries no registered tag."""
    title: str
    content: str = ""
    is_pinned: bool = False
    created_date: str = field(default="", compare=False)
    updated_date: str = field(default="", compare=False)
    id: Optional[str] = field(default=None, compare=False)
