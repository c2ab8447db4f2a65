"""
Query router: builds note-store filters for domain and plain-note views.

Each call re-fetches from the store; nothing is cached.
"""

import logging
from typing import Optional

from .codec import Serializer
from .errors import DecodeError
from .protocol import DEFAULT_SORT, NoteQuery, NoteStoreProtocol
from .tags import DEFAULT_REGISTRY, TagRegistry
from .types import Domain, Note

logger = logging.getLogger(__name__)


class QueryRouter:
    """Routes domain and plain-note listings to the note store."""

    def __init__(self, store: NoteStoreProtocol, registry: TagRegistry = DEFAULT_REGISTRY):
        self._store = store
        self._registry = registry

    @property
    def registry(self) -> TagRegistry:
        return self._registry

    def fetch_by_tag(self, domain: Domain, sort: str = DEFAULT_SORT) -> list[Note]:
        """
        Notes whose title starts with the domain's tag.

        The store filters by prefix; the registry re-checks each title so
        that a loose backend match never leaks another domain's notes.
        """
        query = NoteQuery(title_pattern=self._registry.tag_pattern(domain))
        notes = self._store.filter(query, sort)
        return [n for n in notes if self._registry.matches_any(n.title) == domain]

    def fetch_untagged(
        self,
        sort: str = DEFAULT_SORT,
        owner: Optional[str] = None,
    ) -> list[Note]:
        """
        Notes owned by ``owner`` whose title starts with no registered tag.

        Args:
            sort: Sort spec, ``-`` prefix for descending
            owner: created_by to scope to (default: the store's owner)
        """
        query = NoteQuery(
            equals={"created_by": owner if owner is not None else self._store.owner},
            title_pattern=self._registry.exclusion_pattern().pattern,
            negate=True,
        )
        notes = self._store.filter(query, sort)
        return [n for n in notes if not self._registry.is_reserved(n.title)]

    def decode_all(self, notes: list[Note], serializer: Serializer) -> list:
        """
        Decode notes, dropping any whose content is malformed.

        A malformed note never fails the listing; it is logged and skipped.
        """
        records = []
        for note in notes:
            try:
                records.append(serializer.decode(note))
            except DecodeError as e:
                logger.warning(
                    "Skipping malformed %s note %s: %s",
                    serializer.domain.value, note.id, e,
                )
        return records
