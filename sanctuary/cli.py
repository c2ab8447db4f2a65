"""
CLI interface for the personal record store.

Usage:
    sanctuary books add "Dune" "Frank Herbert" --pages 412
    sanctuary books progress <id> 120
    sanctuary finance summary
    sanctuary overview
"""

import json
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Iterator, Optional

import typer
from typing_extensions import Annotated

from .api import Sanctuary
from .codec import format_elapsed
from .errors import SanctuaryError
from .logging_config import enable_debug_mode
from .records import (
    BOOK_STATUSES,
    GENRES,
    Book,
    DetoxSession,
    Goal,
    JournalEntry,
    MeditationSession,
    Transaction,
    UserNote,
)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"sanctuary {version('sanctuary-notes')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    if value is not None:
        _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="sanctuary",
    help="Personal records (books, finance, goals, journal, meditation, detox) in a note store.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
books_app = typer.Typer(help="Reading list.", no_args_is_help=True)
finance_app = typer.Typer(help="Income and expenses.", no_args_is_help=True)
goals_app = typer.Typer(help="Goals and progress.", no_args_is_help=True)
journal_app = typer.Typer(help="Journal entries.", no_args_is_help=True)
meditation_app = typer.Typer(help="Meditation sessions.", no_args_is_help=True)
detox_app = typer.Typer(help="Digital detox sessions.", no_args_is_help=True)
notes_app = typer.Typer(help="Plain notes.", no_args_is_help=True)

app.add_typer(books_app, name="books")
app.add_typer(finance_app, name="finance")
app.add_typer(goals_app, name="goals")
app.add_typer(journal_app, name="journal")
app.add_typer(meditation_app, name="meditation")
app.add_typer(detox_app, name="detox")
app.add_typer(notes_app, name="notes")


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="SANCTUARY_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Personal records in a note store."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

IdArgument = Annotated[str, typer.Argument(help="Record id")]


def _get_sanctuary() -> Sanctuary:
    """Open the store, handling errors gracefully."""
    import atexit

    try:
        s = Sanctuary(_get_store_override())
    except (SanctuaryError, ValueError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    atexit.register(s.close)
    return s


@contextmanager
def _errors() -> Iterator[None]:
    """Report record store errors as a one-line message and exit 1."""
    try:
        yield
    except SanctuaryError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _to_jsonable(value):
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    return value


def _format_line(record) -> str:
    """One-line text rendering of a record."""
    if isinstance(record, Book):
        pages = (
            f" {record.current_page}/{record.total_pages}p ({record.progress:.0f}%)"
            if record.total_pages else ""
        )
        stars = f" {'*' * record.rating}" if record.rating else ""
        return f"{record.id}  {record.title} by {record.author}  [{record.status}]{pages}{stars}"
    if isinstance(record, Transaction):
        sign = "+" if record.type == "income" else "-"
        return f"{record.id}  {record.date}  {sign}{record.amount:.2f}  {record.category}  {record.description}"
    if isinstance(record, Goal):
        return f"{record.id}  {record.title}  [{record.status}] {record.progress}%"
    if isinstance(record, JournalEntry):
        return f"{record.id}  {record.date}  {record.title}"
    if isinstance(record, MeditationSession):
        return f"{record.id}  {record.date}  {record.duration} min  {record.technique}"
    if isinstance(record, DetoxSession):
        return f"{record.id}  {record.end_time[:10]}  {format_elapsed(record.duration_seconds)}"
    if isinstance(record, UserNote):
        pin = "* " if record.is_pinned else ""
        return f"{record.id}  {pin}{record.title}"
    return str(record)


def _echo(value, empty: str = "Nothing found.") -> None:
    if _get_json_output():
        typer.echo(json.dumps(_to_jsonable(value), indent=2, ensure_ascii=False))
        return
    if isinstance(value, list):
        if not value:
            typer.echo(empty)
        for item in value:
            typer.echo(_format_line(item))
    elif is_dataclass(value) and not hasattr(value, "id"):
        for key, v in asdict(value).items():
            typer.echo(f"{key}: {v}")
    else:
        typer.echo(_format_line(value))


# -----------------------------------------------------------------------------
# Books
# -----------------------------------------------------------------------------

@books_app.command("list")
def books_list(
    status: Annotated[str, typer.Option(
        "--status",
        help=f"Filter by status: all, {', '.join(BOOK_STATUSES)}",
    )] = "all",
):
    """List books, most recently updated first."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.books.filter_by_status(s.books.list(), status), empty="No books found.")


@books_app.command("add")
def books_add(
    title: str,
    author: str,
    pages: Annotated[int, typer.Option("--pages", "-p", help="Total pages")] = 0,
    current: Annotated[int, typer.Option("--current", "-c", help="Current page")] = 0,
    status: Annotated[str, typer.Option("--status")] = "want_to_read",
    genre: Annotated[str, typer.Option("--genre", help=f"One of: {', '.join(GENRES)}")] = "fiction",
    notes: Annotated[str, typer.Option("--notes")] = "",
):
    """Add a book to the reading list."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.books.save(Book(
            title=title, author=author, total_pages=pages, current_page=current,
            status=status, genre=genre, notes=notes,
        )))


@books_app.command("progress")
def books_progress(id: IdArgument, page: int):
    """Set the current page (clamped to the page count)."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.books.update_field(id, "current_page", page))


@books_app.command("finish")
def books_finish(id: IdArgument):
    """Mark a book as read to the last page."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.books.finish(id))


@books_app.command("rate")
def books_rate(id: IdArgument, stars: Annotated[int, typer.Argument(min=1, max=5)]):
    """Rate a book 1-5 stars (marks it finished)."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.books.rate(id, stars))


@books_app.command("delete")
def books_delete(id: IdArgument):
    """Delete a book."""
    s = _get_sanctuary()
    with _errors():
        s.books.delete(id)
    typer.echo(f"Deleted {id}")


@books_app.command("stats")
def books_stats():
    """Reading statistics."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.books.stats())


# -----------------------------------------------------------------------------
# Finance
# -----------------------------------------------------------------------------

@finance_app.command("list")
def finance_list(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum results")] = 10,
):
    """Recent transactions."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.finance.recent(limit), empty="No transactions yet.")


@finance_app.command("add")
def finance_add(
    type: Annotated[str, typer.Argument(help="income or expense")],
    amount: float,
    description: str,
    category: Annotated[str, typer.Option("--category", "-c")] = "",
    date: Annotated[str, typer.Option("--date", help="YYYY-MM-DD (default today)")] = "",
):
    """Record a transaction."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.finance.save(Transaction(
            type=type, amount=amount, category=category, description=description, date=date,
        )))


@finance_app.command("summary")
def finance_summary():
    """Total income, expenses and balance."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.finance.stats())


# -----------------------------------------------------------------------------
# Goals, journal, meditation
# -----------------------------------------------------------------------------

@goals_app.command("list")
def goals_list():
    """List goals."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.goals.list(), empty="No goals yet.")


@goals_app.command("add")
def goals_add(
    title: str,
    status: Annotated[str, typer.Option("--status")] = "not_started",
    progress: Annotated[int, typer.Option("--progress")] = 0,
    description: Annotated[str, typer.Option("--description")] = "",
):
    """Add a goal."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.goals.save(Goal(title=title, status=status, progress=progress, description=description)))


@goals_app.command("progress")
def goals_progress(id: IdArgument, percent: int):
    """Set goal progress (0-100)."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.goals.update_field(id, "progress", percent))


@journal_app.command("list")
def journal_list():
    """List journal entries."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.journal.list(), empty="No entries yet.")


@journal_app.command("add")
def journal_add(
    title: str,
    content: str,
    mood: Annotated[str, typer.Option("--mood")] = "",
):
    """Write a journal entry."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.journal.save(JournalEntry(title=title, content=content, mood=mood)))


@meditation_app.command("list")
def meditation_list():
    """List meditation sessions."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.meditation.list(), empty="No sessions yet.")


@meditation_app.command("log")
def meditation_log(
    minutes: int,
    technique: Annotated[str, typer.Option("--technique", "-t")] = "box_breathing",
):
    """Log a meditation session."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.meditation.save(MeditationSession(duration=minutes, technique=technique)))


# -----------------------------------------------------------------------------
# Detox
# -----------------------------------------------------------------------------

@detox_app.command("list")
def detox_list():
    """List detox sessions."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.detox.list(), empty="No sessions recorded yet.")


@detox_app.command("record")
def detox_record(
    start: Annotated[str, typer.Argument(help="Start time (ISO 8601)")],
    end: Annotated[str, typer.Argument(help="End time (ISO 8601)")],
):
    """Record a finished detox session. Sessions of 5s or less are discarded."""
    s = _get_sanctuary()
    with _errors():
        try:
            session = s.detox.record_session(start, end)
        except ValueError as e:
            typer.echo(f"Error: invalid timestamp: {e}", err=True)
            raise typer.Exit(1)
    if session is None:
        typer.echo("Session too short, not saved.")
        return
    _echo(session)


@detox_app.command("stats")
def detox_stats():
    """Total, count and longest detox session."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.detox.stats())


# -----------------------------------------------------------------------------
# Plain notes
# -----------------------------------------------------------------------------

@notes_app.command("list")
def notes_list(
    search: Annotated[Optional[str], typer.Option("--search", "-q", help="Filter by text")] = None,
):
    """List plain notes (no record tags)."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.notes.list(search=search), empty="No notes yet.")


@notes_app.command("add")
def notes_add(title: str, content: Annotated[str, typer.Argument()] = ""):
    """Create a note."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.notes.create(title, content))


@notes_app.command("quick")
def notes_quick(content: str):
    """Capture a quick note titled with the current time."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.notes.quick_note(content))


@notes_app.command("pin")
def notes_pin(id: IdArgument):
    """Toggle a note's pin."""
    s = _get_sanctuary()
    with _errors():
        _echo(s.notes.toggle_pin(id))


@notes_app.command("delete")
def notes_delete(id: IdArgument):
    """Delete a note."""
    s = _get_sanctuary()
    with _errors():
        s.notes.delete(id)
    typer.echo(f"Deleted {id}")


# -----------------------------------------------------------------------------
# Overview
# -----------------------------------------------------------------------------

@app.command()
def overview():
    """Statistics across every domain."""
    s = _get_sanctuary()
    with _errors():
        ov = s.overview()
    if _get_json_output():
        typer.echo(json.dumps(asdict(ov), indent=2, ensure_ascii=False))
        return
    typer.echo(f"Books:      {ov.books.total} total, {ov.books.reading} reading, "
               f"{ov.books.finished} finished, {ov.books.pages_read} pages read")
    typer.echo(f"Finance:    income {ov.finance.total_income:.2f}, expenses "
               f"{ov.finance.total_expense:.2f}, balance {ov.finance.balance:.2f}")
    typer.echo(f"Goals:      {ov.goals.in_progress} in progress, {ov.goals.finished} finished")
    typer.echo(f"Meditation: {ov.meditation.session_count} sessions, {ov.meditation.total_minutes} min")
    typer.echo(f"Detox:      {ov.detox.session_count} sessions, {format_elapsed(ov.detox.total_time)} total")
    typer.echo(f"Journal:    {ov.journal.total} entries")
    for goal in ov.active_goals:
        typer.echo(f"  > {goal.title} {goal.progress}%")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="sanctuary CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
