"""
Core API for the typed record store.

This is the minimal working implementation focused on:
- Opening the configured note store
- One adapter per domain plus plain notes
- The dashboard overview
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from . import aggregates
from .adapters import (
    BookAdapter,
    DetoxAdapter,
    GoalAdapter,
    JournalAdapter,
    MeditationAdapter,
    NotesAdapter,
    TransactionAdapter,
)
from .backend import create_store
from .config import StoreConfig, load_or_create_config
from .logging_config import configure_ops_log, remove_ops_log
from .protocol import NoteStoreProtocol
from .records import Goal
from .router import QueryRouter
from .tags import DEFAULT_REGISTRY, TagRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Overview:
    """Dashboard summary across all domains."""
    books: aggregates.BookStats
    finance: aggregates.TransactionStats
    goals: aggregates.GoalStats
    meditation: aggregates.MeditationStats
    detox: aggregates.DetoxStats
    journal: aggregates.JournalStats
    active_goals: list[Goal] = field(default_factory=list)


class Sanctuary:
    """
    Personal dashboard records over a single note collection.

    Either opens the store named by the configuration in ``store_path``
    (default ``~/.sanctuary``), or wraps an already-open ``store``.
    """

    def __init__(
        self,
        store_path: Optional[Path] = None,
        *,
        store: Optional[NoteStoreProtocol] = None,
        registry: TagRegistry = DEFAULT_REGISTRY,
    ):
        self.config: Optional[StoreConfig] = None
        self._ops_handler: Optional[logging.Handler] = None

        if store is None:
            self.config = load_or_create_config(store_path)
            if self.config.backend == "local":
                self._ops_handler = configure_ops_log(self.config.path)
            store = create_store(self.config)
            logger.debug(
                "Opened %s store at %s (owner=%s)",
                self.config.backend, self.config.path, self.config.owner,
            )
        self._store = store

        self.router = QueryRouter(store, registry)
        self.books = BookAdapter(store, self.router)
        self.finance = TransactionAdapter(store, self.router)
        self.goals = GoalAdapter(store, self.router)
        self.journal = JournalAdapter(store, self.router)
        self.meditation = MeditationAdapter(store, self.router)
        self.detox = DetoxAdapter(store, self.router)
        self.notes = NotesAdapter(store, self.router)

    @property
    def store(self) -> NoteStoreProtocol:
        return self._store

    def overview(self, active_goal_limit: int = 2) -> Overview:
        """Fresh statistics for every domain. Each domain is listed once."""
        goals = self.goals.list()
        return Overview(
            books=self.books.stats(),
            finance=self.finance.stats(),
            goals=self.goals.stats(goals),
            meditation=self.meditation.stats(),
            detox=self.detox.stats(),
            journal=self.journal.stats(),
            active_goals=aggregates.active_goals(goals, active_goal_limit),
        )

    def close(self) -> None:
        """Close the note store and detach the ops log."""
        self._store.close()
        if self._ops_handler is not None:
            remove_ops_log(self._ops_handler)
            self._ops_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
