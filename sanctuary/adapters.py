"""
Domain adapters: validation, invariants and CRUD for each record type.

One adapter per domain, all sharing a note store and query router. Every
save re-encodes the whole record and replaces the note's title and
content; there are no partial updates and no version checks, so the last
write wins.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Generic, Iterable, Optional, TypeVar, Union

from . import aggregates
from .codec import build_serializers, serializer_for, Serializer
from .errors import DecodeError, ReservedTitleError, ValidationError
from .protocol import DEFAULT_SORT, NoteStoreProtocol
from .records import (
    BOOK_STATUSES,
    CATEGORIES,
    GOAL_STATUSES,
    MAX_RATING,
    MIN_DETOX_SECONDS,
    TRANSACTION_TYPES,
    Book,
    DetoxSession,
    Goal,
    JournalEntry,
    MeditationSession,
    Transaction,
    UserNote,
)
from .router import QueryRouter
from .tags import DEFAULT_REGISTRY
from .types import Domain, Note, parse_utc_timestamp, today, utc_now

logger = logging.getLogger(__name__)

R = TypeVar("R")


# -----------------------------------------------------------------------------
# Field normalization helpers
# -----------------------------------------------------------------------------

def _to_int(value, default: int = 0) -> int:
    """Parse an int leniently; unparseable input becomes ``default``."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return default


def _to_float(value) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        result = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (ValueError, TypeError):
        return None
    return result if math.isfinite(result) else None


def _clamp(value: int, low: int, high: int) -> int:
    return min(max(low, value), high)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _require(value, field: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field)


def _require_choice(value: str, choices: Iterable[str], field: str) -> None:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(
            f"{field} must be one of {', '.join(choices)} (got {value!r})", field
        )


def _as_timestamp(value: Union[str, datetime]) -> datetime:
    """Aware UTC datetime; naive input is taken as UTC."""
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    else:
        dt = parse_utc_timestamp(value)
    return dt.astimezone(timezone.utc)


def derive_book_status(status: str, current_page: int, total_pages: int, rating: int) -> str:
    """Completing the pages or rating the book marks it finished."""
    if (total_pages > 0 and current_page >= total_pages) or rating > 0:
        return "finished"
    return status


def detox_duration(start_time: Union[str, datetime], end_time: Union[str, datetime]) -> int:
    """Whole seconds between two timestamps, rounded half up."""
    elapsed = (_as_timestamp(end_time) - _as_timestamp(start_time)).total_seconds()
    return _round_half_up(elapsed)


# -----------------------------------------------------------------------------
# Generic adapter
# -----------------------------------------------------------------------------

class RecordAdapter(Generic[R]):
    """
    CRUD for one typed domain over the shared note collection.

    Subclasses set ``domain`` and override the hooks:
    - ``normalize``: validate and normalize before every save
    - ``on_read``: defensive clamping of records read from the store
    - ``summarize``: the domain's aggregate
    """

    domain: Domain

    def __init__(self, store: NoteStoreProtocol, router: Optional[QueryRouter] = None):
        self._store = store
        self._router = router if router is not None else QueryRouter(store)
        if self._router.registry is DEFAULT_REGISTRY:
            self.serializer: Serializer = serializer_for(self.domain)
        else:
            self.serializer = build_serializers(self._router.registry)[self.domain]

    # -- hooks --

    def normalize(self, record: R) -> R:
        return record

    def on_read(self, record: R) -> R:
        return record

    def summarize(self, records: list[R]):
        raise NotImplementedError

    # -- operations --

    def list(self, sort: str = DEFAULT_SORT) -> list[R]:
        """Decoded records of this domain, malformed notes skipped."""
        notes = self._router.fetch_by_tag(self.domain, sort)
        return [self.on_read(r) for r in self._router.decode_all(notes, self.serializer)]

    def get(self, id: str) -> R:
        """
        Read one record.

        Raises:
            NotFoundError: no note with this id
            DecodeError: the note is malformed or belongs to another domain
        """
        note = self._store.get(id)
        if not self._owns(note):
            raise DecodeError(f"Note {id} is not a {self.domain.value} record", id)
        return self.on_read(self.serializer.decode(note))

    def _owns(self, note: Note) -> bool:
        return self._router.registry.matches_any(note.title) == self.domain

    def save(self, record: R) -> R:
        """
        Validate, normalize, encode and store a record.

        Creates a note when ``record.id`` is None, otherwise replaces the
        existing note's title and content.

        Returns:
            The stored record, carrying its id

        Raises:
            ValidationError: before anything is written
            NotFoundError: ``record.id`` names no note
        """
        record = self.normalize(record)
        encoded = self.serializer.encode(record)
        if record.id is not None and not self._owns(self._store.get(record.id)):
            raise ValidationError(
                f"Note {record.id} is not a {self.domain.value} record", "id"
            )
        if record.id is None:
            note = self._store.create(encoded.title, encoded.content)
            logger.info("Created %s %s: %s", self.domain.value, note.id, encoded.title)
        else:
            note = self._store.update(record.id, title=encoded.title, content=encoded.content)
            logger.info("Updated %s %s: %s", self.domain.value, note.id, encoded.title)
        return replace(record, id=note.id)

    def delete(self, id: str) -> None:
        """
        Delete a record's note.

        Raises:
            NotFoundError: no note with this id
            ValidationError: the note belongs to another domain
        """
        if not self._owns(self._store.get(id)):
            raise ValidationError(f"Note {id} is not a {self.domain.value} record", "id")
        self._store.delete(id)
        logger.info("Deleted %s %s", self.domain.value, id)

    def update_field(self, id: str, field: str, value) -> R:
        """
        Change one field and save the whole record.

        ``field`` may be the attribute name (``current_page``) or the
        payload key (``currentPage``). Cross-field invariants are applied
        by ``normalize`` on the way through ``save``.
        """
        try:
            spec = self.serializer.field(field)
        except KeyError as e:
            raise ValidationError(str(e.args[0]), field) from None
        record = self.get(id)
        return self.save(replace(record, **{spec.name: value}))

    def stats(self, records: Optional[list[R]] = None):
        """Aggregate over ``records``, or over a fresh listing."""
        return self.summarize(self.list() if records is None else records)


# -----------------------------------------------------------------------------
# Domains
# -----------------------------------------------------------------------------

class BookAdapter(RecordAdapter[Book]):
    """Reading list."""

    domain = Domain.BOOK

    def normalize(self, book: Book) -> Book:
        _require(book.title, "title")
        _require(book.author, "author")
        _require_choice(book.status, BOOK_STATUSES, "status")

        total = max(0, _to_int(book.total_pages))
        current = _clamp(_to_int(book.current_page), 0, total)
        rating = _clamp(_to_int(book.rating), 0, MAX_RATING)
        return replace(
            book,
            total_pages=total,
            current_page=current,
            rating=rating,
            status=derive_book_status(book.status, current, total, rating),
            notes=book.notes or "",
            genre=book.genre or "fiction",
            date_added=book.date_added or utc_now(),
        )

    def on_read(self, book: Book) -> Book:
        total = max(0, book.total_pages)
        current = _clamp(book.current_page, 0, total)
        rating = _clamp(book.rating, 0, MAX_RATING)
        status = derive_book_status(book.status, current, total, rating)
        clamped = (total, current, rating, status)
        if clamped == (book.total_pages, book.current_page, book.rating, book.status):
            return book
        logger.debug("Clamped book %s on read", book.id)
        return replace(book, total_pages=total, current_page=current, rating=rating, status=status)

    def summarize(self, records: list[Book]) -> aggregates.BookStats:
        return aggregates.book_stats(records)

    def add_pages(self, id: str, pages: int = 10) -> Book:
        """Advance the current page, clamped to the page count."""
        book = self.get(id)
        return self.save(replace(book, current_page=book.current_page + pages))

    def finish(self, id: str) -> Book:
        book = self.get(id)
        return self.save(replace(book, current_page=book.total_pages, status="finished"))

    def rate(self, id: str, stars: int) -> Book:
        """Rate a book; any rating marks it finished."""
        return self.update_field(id, "rating", stars)

    @staticmethod
    def filter_by_status(books: list[Book], status: str = "all") -> list[Book]:
        if status == "all":
            return list(books)
        return [b for b in books if b.status == status]


class TransactionAdapter(RecordAdapter[Transaction]):
    """Income and expenses."""

    domain = Domain.TRANSACTION

    def normalize(self, t: Transaction) -> Transaction:
        _require_choice(t.type, TRANSACTION_TYPES, "type")
        amount = _to_float(t.amount)
        if amount is None or amount <= 0:
            raise ValidationError("amount must be a positive number", "amount")
        _require(t.description, "description")
        category = t.category or CATEGORIES[t.type][0]
        _require_choice(category, CATEGORIES[t.type], "category")
        return replace(t, amount=amount, category=category, date=t.date or today())

    def summarize(self, records: list[Transaction]) -> aggregates.TransactionStats:
        return aggregates.transaction_stats(records)

    def recent(self, limit: int = 10) -> list[Transaction]:
        return self.list()[:limit]

    @staticmethod
    def categories_for(type: str) -> tuple[str, ...]:
        return CATEGORIES[type]


class GoalAdapter(RecordAdapter[Goal]):
    """Goals with percentage progress."""

    domain = Domain.GOAL

    def normalize(self, goal: Goal) -> Goal:
        _require(goal.title, "title")
        _require_choice(goal.status, GOAL_STATUSES, "status")
        progress = _clamp(_to_int(goal.progress), 0, 100)
        status = "finished" if progress == 100 else goal.status
        return replace(goal, progress=progress, status=status)

    def on_read(self, goal: Goal) -> Goal:
        progress = _clamp(goal.progress, 0, 100)
        status = "finished" if progress == 100 else goal.status
        if (progress, status) == (goal.progress, goal.status):
            return goal
        return replace(goal, progress=progress, status=status)

    def summarize(self, records: list[Goal]) -> aggregates.GoalStats:
        return aggregates.goal_stats(records)

    def active(self, limit: int = 2) -> list[Goal]:
        """In-progress goals for the dashboard."""
        return aggregates.active_goals(self.list(), limit)


class JournalAdapter(RecordAdapter[JournalEntry]):
    domain = Domain.JOURNAL

    def normalize(self, entry: JournalEntry) -> JournalEntry:
        _require(entry.title, "title")
        _require(entry.content, "content")
        return replace(entry, date=entry.date or today())

    def summarize(self, records: list[JournalEntry]) -> aggregates.JournalStats:
        return aggregates.journal_stats(records)


class MeditationAdapter(RecordAdapter[MeditationSession]):
    domain = Domain.MEDITATION

    def normalize(self, session: MeditationSession) -> MeditationSession:
        duration = _to_int(session.duration)
        if duration <= 0:
            raise ValidationError("duration must be a positive number of minutes", "duration")
        return replace(
            session,
            duration=duration,
            date=session.date or today(),
            technique=session.technique or "box_breathing",
        )

    def summarize(self, records: list[MeditationSession]) -> aggregates.MeditationStats:
        return aggregates.meditation_stats(records)


class DetoxAdapter(RecordAdapter[DetoxSession]):
    """
    Digital detox sessions.

    ``duration_seconds`` is always recomputed from the timestamps, and
    sessions of MIN_DETOX_SECONDS or less are never stored.
    """

    domain = Domain.DETOX

    def normalize(self, session: DetoxSession) -> DetoxSession:
        _require(session.start_time, "start_time")
        _require(session.end_time, "end_time")
        try:
            duration = detox_duration(session.start_time, session.end_time)
        except ValueError as e:
            raise ValidationError(f"Invalid session timestamps: {e}", "start_time") from e
        if duration <= MIN_DETOX_SECONDS:
            raise ValidationError(
                f"Sessions must last more than {MIN_DETOX_SECONDS} seconds (got {duration})",
                "duration_seconds",
            )
        return replace(session, duration_seconds=duration)

    def summarize(self, records: list[DetoxSession]) -> aggregates.DetoxStats:
        return aggregates.detox_stats(records)

    def record_session(
        self,
        start_time: Union[str, datetime],
        end_time: Union[str, datetime],
    ) -> Optional[DetoxSession]:
        """
        Store a finished session.

        Returns:
            The stored session, or None if it was too short to keep
        """
        start = _as_timestamp(start_time)
        end = _as_timestamp(end_time)
        duration = detox_duration(start, end)
        if duration <= MIN_DETOX_SECONDS:
            logger.debug("Discarding %ds detox session", duration)
            return None
        return self.save(DetoxSession(
            start_time=start.isoformat(),
            end_time=end.isoformat(),
            duration_seconds=duration,
        ))


# -----------------------------------------------------------------------------
# Plain notes
# -----------------------------------------------------------------------------

def _to_user_note(note: Note) -> UserNote:
    return UserNote(
        id=note.id,
        title=note.title,
        content=note.content,
        is_pinned=note.is_pinned,
        created_date=note.created_date,
        updated_date=note.updated_date,
    )


class NotesAdapter:
    """
    User-authored notes: everything no domain tag claims.

    Titles that start with a domain tag are rejected, since the note
    would otherwise be read back as a typed record.
    """

    def __init__(self, store: NoteStoreProtocol, router: Optional[QueryRouter] = None):
        self._store = store
        self._router = router if router is not None else QueryRouter(store)

    def _check_title(self, title: str) -> None:
        _require(title, "title")
        domain = self._router.registry.matches_any(title)
        if domain is not None:
            raise ReservedTitleError(
                f"Titles starting with {self._router.registry.prefix_for(domain)!r} "
                f"are reserved for {domain.value} records",
                "title",
            )

    def _get_plain(self, id: str) -> Note:
        note = self._store.get(id)
        if self._router.registry.is_reserved(note.title):
            raise ValidationError(f"Note {id} is a typed record, not a plain note", "id")
        return note

    def list(self, search: Optional[str] = None, sort: str = DEFAULT_SORT) -> list[UserNote]:
        """Plain notes, optionally filtered by a case-insensitive search term."""
        notes = [_to_user_note(n) for n in self._router.fetch_untagged(sort)]
        if search:
            term = search.lower()
            notes = [n for n in notes if term in n.title.lower() or term in n.content.lower()]
        return notes

    def get(self, id: str) -> UserNote:
        return _to_user_note(self._get_plain(id))

    def create(self, title: str, content: str = "", *, is_pinned: bool = False) -> UserNote:
        self._check_title(title)
        note = self._store.create(title, content, is_pinned=is_pinned)
        logger.info("Created note %s", note.id)
        return _to_user_note(note)

    def update(self, id: str, title: str, content: str) -> UserNote:
        self._check_title(title)
        self._get_plain(id)
        return _to_user_note(self._store.update(id, title=title, content=content))

    def toggle_pin(self, id: str) -> UserNote:
        note = self._get_plain(id)
        return _to_user_note(self._store.update(id, is_pinned=not note.is_pinned))

    def quick_note(self, content: str) -> UserNote:
        """Capture a note titled with the local time."""
        _require(content, "content")
        title = f"Quick Note: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        return self.create(title, content)

    def delete(self, id: str) -> None:
        self._get_plain(id)
        self._store.delete(id)
        logger.info("Deleted note %s", id)
