"""
Shared pytest fixtures for sanctuary tests.

Provides a temporary SQLite note store and an in-memory store whose
title filtering can be loosened to exercise client-side checks.
"""

import re
import uuid
from pathlib import Path
from typing import Any

import pytest

from sanctuary.api import Sanctuary
from sanctuary.document_store import NoteStore
from sanctuary.errors import NotFoundError, OperationFailed
from sanctuary.protocol import NoteQuery
from sanctuary.router import QueryRouter
from sanctuary.types import Note, parse_sort, utc_now

OWNER = "alice@example.com"


class MemoryNoteStore:
    """
    In-memory note collection.

    With ``honor_title_pattern=False`` the title regex is ignored, like a
    backend that silently drops an unsupported operator.
    """

    def __init__(self, owner: str = OWNER, honor_title_pattern: bool = True):
        self._owner = owner
        self.honor_title_pattern = honor_title_pattern
        self.notes: dict[str, Note] = {}
        self.calls: list[str] = []

    @property
    def owner(self) -> str:
        return self._owner

    def add_raw(self, title: str, content: str, created_by: str = OWNER) -> Note:
        """Insert a note directly, bypassing any adapter."""
        now = utc_now()
        note = Note(id=uuid.uuid4().hex, title=title, content=content,
                    created_by=created_by, created_date=now, updated_date=now)
        self.notes[note.id] = note
        return note

    def create(self, title: str, content: str, *, is_pinned: bool = False) -> Note:
        self.calls.append("create")
        note = self.add_raw(title, content, self._owner)
        note.is_pinned = is_pinned
        return note

    def get(self, id: str) -> Note:
        self.calls.append("get")
        if id not in self.notes:
            raise NotFoundError(id)
        return self.notes[id]

    def list(self, sort: str = "-updated_date") -> list:
        return self.filter(NoteQuery(), sort)

    def filter(self, query: NoteQuery, sort: str = "-updated_date") -> list:
        self.calls.append("filter")
        results = []
        for note in self.notes.values():
            if any(getattr(note, k) != v for k, v in query.equals.items()):
                continue
            if self.honor_title_pattern and query.title_pattern is not None:
                matched = re.search(query.title_pattern, note.title) is not None
                if matched == query.negate:
                    continue
            results.append(note)
        field, descending = parse_sort(sort)
        return sorted(results, key=lambda n: getattr(n, field), reverse=descending)

    def update(self, id: str, **fields: Any) -> Note:
        self.calls.append("update")
        note = self.get(id)
        for key, value in fields.items():
            setattr(note, key, value)
        note.updated_date = utc_now()
        return note

    def delete(self, id: str) -> None:
        self.calls.append("delete")
        if self.notes.pop(id, None) is None:
            raise NotFoundError(id)

    def close(self) -> None:
        pass


class FailingNoteStore(MemoryNoteStore):
    """Store whose writes fail, as if the backend were unreachable."""

    def create(self, title: str, content: str, *, is_pinned: bool = False) -> Note:
        raise OperationFailed("backend unavailable")

    def update(self, id: str, **fields: Any) -> Note:
        raise OperationFailed("backend unavailable")


@pytest.fixture
def store(tmp_path: Path):
    """A fresh SQLite note store owned by OWNER."""
    s = NoteStore(tmp_path / "notes.db", owner=OWNER)
    yield s
    s.close()


@pytest.fixture
def memory_store() -> MemoryNoteStore:
    return MemoryNoteStore()


@pytest.fixture
def router(store) -> QueryRouter:
    return QueryRouter(store)


@pytest.fixture
def sanctuary(store) -> Sanctuary:
    """Sanctuary over the temporary SQLite store."""
    return Sanctuary(store=store)
