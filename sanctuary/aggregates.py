"""
Aggregation engine: summary statistics over decoded record sets.

Every reducer is a pure function, total over the empty sequence and
independent of input order. Aggregates are recomputed on each load and
never stored.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .records import Book, DetoxSession, Goal, JournalEntry, MeditationSession, Transaction


@dataclass(frozen=True)
class BookStats:
    total: int = 0
    reading: int = 0
    finished: int = 0
    pages_read: int = 0


@dataclass(frozen=True)
class TransactionStats:
    total_income: float = 0.0
    total_expense: float = 0.0
    balance: float = 0.0
    expense_by_category: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class DetoxStats:
    total_time: int = 0
    session_count: int = 0
    longest_session: int = 0


@dataclass(frozen=True)
class GoalStats:
    total: int = 0
    in_progress: int = 0
    finished: int = 0
    average_progress: float = 0.0


@dataclass(frozen=True)
class MeditationStats:
    total_minutes: int = 0
    session_count: int = 0
    longest_session: int = 0


@dataclass(frozen=True)
class JournalStats:
    total: int = 0
    days: int = 0


def book_stats(books: Iterable[Book]) -> BookStats:
    books = list(books)
    return BookStats(
        total=len(books),
        reading=sum(1 for b in books if b.status == "reading"),
        finished=sum(1 for b in books if b.status == "finished"),
        pages_read=sum(b.current_page or 0 for b in books),
    )


def transaction_stats(transactions: Iterable[Transaction]) -> TransactionStats:
    income = 0.0
    expense = 0.0
    by_category: Counter = Counter()
    for t in transactions:
        if t.type == "income":
            income += t.amount
        elif t.type == "expense":
            expense += t.amount
            by_category[t.category] += t.amount
    return TransactionStats(
        total_income=income,
        total_expense=expense,
        balance=income - expense,
        expense_by_category=dict(sorted(by_category.items())),
    )


def detox_stats(sessions: Iterable[DetoxSession]) -> DetoxStats:
    durations = [s.duration_seconds for s in sessions]
    return DetoxStats(
        total_time=sum(durations),
        session_count=len(durations),
        longest_session=max(durations, default=0),
    )


def goal_stats(goals: Iterable[Goal]) -> GoalStats:
    goals = list(goals)
    average = sum(g.progress for g in goals) / len(goals) if goals else 0.0
    return GoalStats(
        total=len(goals),
        in_progress=sum(1 for g in goals if g.status == "in_progress"),
        finished=sum(1 for g in goals if g.status == "finished"),
        average_progress=average,
    )


def meditation_stats(sessions: Iterable[MeditationSession]) -> MeditationStats:
    durations = [s.duration for s in sessions]
    return MeditationStats(
        total_minutes=sum(durations),
        session_count=len(durations),
        longest_session=max(durations, default=0),
    )


def journal_stats(entries: Iterable[JournalEntry]) -> JournalStats:
    entries = list(entries)
    return JournalStats(
        total=len(entries),
        days=len({e.date for e in entries if e.date}),
    )


def active_goals(goals: Sequence[Goal], limit: int = 2) -> list[Goal]:
    """In-progress goals, in the given order, for the dashboard widget."""
    return [g for g in goals if g.status == "in_progress"][:limit]
