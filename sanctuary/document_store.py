"""
Note store using SQLite.

Local implementation of the generic note collection. Each row is one
note with an opaque title and content; the store knows nothing about
typed records or tags beyond the title regex used by ``filter``.
"""

from __future__ import annotations

import logging
import re
import sqlite3
import uuid
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator, Optional

from .errors import NotFoundError, OperationFailed
from .protocol import DEFAULT_SORT, SORT_FIELDS, NoteQuery
from .types import Note, parse_sort, utc_now

logger = logging.getLogger(__name__)

# Columns callers may constrain with NoteQuery.equals
_EQUALITY_FIELDS = frozenset({
    "id", "title", "content", "created_by", "created_date", "updated_date", "is_pinned",
})

# Columns callers may change with update()
_UPDATABLE_FIELDS = frozenset({"title", "content", "is_pinned"})

_COLUMNS = "id, title, content, created_by, created_date, updated_date, is_pinned"


@lru_cache(maxsize=64)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def _regexp(pattern: str, value: Optional[str]) -> bool:
    """SQLite REGEXP hook: ``value REGEXP pattern``."""
    if value is None:
        return False
    return _compile(pattern).search(value) is not None


def _row_to_note(row: sqlite3.Row) -> Note:
    return Note(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        created_by=row["created_by"],
        created_date=row["created_date"],
        updated_date=row["updated_date"],
        is_pinned=bool(row["is_pinned"]),
    )


class NoteStore:
    """
    SQLite-backed note collection.

    Every write is a single statement followed by a commit, so a failed
    write leaves the previous state untouched.
    """

    def __init__(self, store_path: Path, owner: str = "local"):
        """
        Args:
            store_path: Path to SQLite database file
            owner: Identity recorded as ``created_by`` on new notes
        """
        self._db_path = store_path
        self._owner = owner
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.create_function("REGEXP", 2, _regexp, deterministic=True)

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS notes (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                content TEXT NOT NULL DEFAULT '',
                created_by TEXT NOT NULL DEFAULT '',
                created_date TEXT NOT NULL,
                updated_date TEXT NOT NULL,
                is_pinned INTEGER NOT NULL DEFAULT 0
            )
        """)

        # Index for the default sort
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_notes_updated
            ON notes(updated_date)
        """)

        self._conn.commit()

    @property
    def owner(self) -> str:
        return self._owner

    @contextmanager
    def _guard(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Translate SQLite failures into OperationFailed."""
        if self._conn is None:
            raise OperationFailed(f"{operation}: note store is closed")
        try:
            yield self._conn
        except sqlite3.Error as e:
            self._conn.rollback()
            raise OperationFailed(f"{operation} failed: {e}") from e

    @staticmethod
    def _order_by(sort: str) -> str:
        field, descending = parse_sort(sort)
        if field not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {field!r}")
        direction = "DESC" if descending else "ASC"
        # rowid breaks ties between notes written in the same instant
        return f"ORDER BY {field} {direction}, rowid {direction}"

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(self, title: str, content: str, *, is_pinned: bool = False) -> Note:
        """
        Insert a new note.

        Assigns id, created_by and timestamps.

        Returns:
            The stored Note
        """
        note = Note(
            id=uuid.uuid4().hex,
            title=title,
            content=content,
            created_by=self._owner,
            created_date=utc_now(),
            is_pinned=is_pinned,
        )
        note.updated_date = note.created_date

        with self._guard("create") as conn:
            conn.execute(f"""
                INSERT INTO notes ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (note.id, note.title, note.content, note.created_by,
                  note.created_date, note.updated_date, int(note.is_pinned)))
            conn.commit()

        logger.debug("Created note %s", note.id)
        return note

    def update(self, id: str, **fields: Any) -> Note:
        """
        Replace fields of an existing note. Always bumps updated_date.

        Args:
            id: Note identifier
            **fields: Any of title, content, is_pinned

        Returns:
            The updated Note

        Raises:
            NotFoundError: No note with this id
            ValueError: Unknown field name
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        values = dict(fields)
        if "is_pinned" in values:
            values["is_pinned"] = int(bool(values["is_pinned"]))
        values["updated_date"] = utc_now()
        assignments = ", ".join(f"{k} = ?" for k in values)

        with self._guard("update") as conn:
            cursor = conn.execute(
                f"UPDATE notes SET {assignments} WHERE id = ?",
                (*values.values(), id),
            )
            conn.commit()

        if cursor.rowcount == 0:
            raise NotFoundError(id)
        return self.get(id)

    def delete(self, id: str) -> None:
        """
        Delete a note. Immediate, no tombstone.

        Raises:
            NotFoundError: No note with this id
        """
        with self._guard("delete") as conn:
            cursor = conn.execute("DELETE FROM notes WHERE id = ?", (id,))
            conn.commit()

        if cursor.rowcount == 0:
            raise NotFoundError(id)
        logger.debug("Deleted note %s", id)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, id: str) -> Note:
        """
        Get a note by id.

        Raises:
            NotFoundError: No note with this id
        """
        with self._guard("get") as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM notes WHERE id = ?", (id,)
            ).fetchone()

        if row is None:
            raise NotFoundError(id)
        return _row_to_note(row)

    def list(self, sort: str = DEFAULT_SORT) -> list[Note]:
        """All notes in the store."""
        return self.filter(NoteQuery(), sort)

    def filter(self, query: NoteQuery, sort: str = DEFAULT_SORT) -> list[Note]:
        """
        Notes matching every equality constraint and the title pattern.

        Args:
            query: Equality constraints plus optional (negated) title regex
            sort: Field name, ``-`` prefix for descending

        Returns:
            Matching notes in sort order
        """
        clauses: list[str] = []
        params: list[Any] = []

        for key, value in query.equals.items():
            if key not in _EQUALITY_FIELDS:
                raise ValueError(f"Cannot filter on field: {key!r}")
            clauses.append(f"{key} = ?")
            params.append(int(value) if isinstance(value, bool) else value)

        if query.title_pattern is not None:
            match = "title REGEXP ?"
            clauses.append(f"NOT ({match})" if query.negate else match)
            params.append(query.title_pattern)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"SELECT {_COLUMNS} FROM notes {where} {self._order_by(sort)}"

        with self._guard("filter") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_note(row) for row in rows]

    def count(self) -> int:
        """Count all notes."""
        with self._guard("count") as conn:
            return conn.execute("SELECT COUNT(*) FROM notes").fetchone()[0]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()
