"""
Protocol definition for note storage backends.

The record store treats the note collection as a black box. Implemented by:
- NoteStore (local SQLite)
- RemoteNoteStore (HTTP client to a hosted note-entity API)
- Anything registered under the ``sanctuary.backends`` entry point group
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from .types import Note

# Sortable note fields
SORT_FIELDS = frozenset({"created_date", "updated_date", "title"})

DEFAULT_SORT = "-updated_date"


@dataclass(frozen=True)
class NoteQuery:
    """
    Filter request for ``NoteStoreProtocol.filter``.

    Attributes:
        equals: field -> value equality constraints (e.g. created_by)
        title_pattern: regex the title must match (anchored by the caller)
        negate: if True, the title must NOT match ``title_pattern``
    """
    equals: dict[str, Any] = field(default_factory=dict)
    title_pattern: Optional[str] = None
    negate: bool = False

    def to_mongo(self) -> dict[str, Any]:
        """Render as a Mongo-style query document for HTTP backends."""
        query: dict[str, Any] = dict(self.equals)
        if self.title_pattern is not None:
            regex = {"$regex": self.title_pattern}
            query["title"] = {"$not": regex} if self.negate else regex
        return query


@runtime_checkable
class NoteStoreProtocol(Protocol):
    """
    Generic note collection: opaque ``title`` and ``content`` per document.

    Errors:
        NotFoundError: get/update/delete of an unknown id
        OperationFailed: the backend itself failed
    """

    @property
    def owner(self) -> str: ...

    def create(
        self,
        title: str,
        content: str,
        *,
        is_pinned: bool = False,
    ) -> Note: ...

    def get(self, id: str) -> Note: ...

    def list(self, sort: str = DEFAULT_SORT) -> list[Note]: ...

    def filter(
        self,
        query: NoteQuery,
        sort: str = DEFAULT_SORT,
    ) -> list[Note]: ...

    def update(self, id: str, **fields: Any) -> Note: ...

    def delete(self, id: str) -> None: ...

    def close(self) -> None: ...
