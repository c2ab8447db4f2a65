"""
Error taxonomy for the record store, plus error logging for the CLI.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class SanctuaryError(Exception):
    """Base class for record store errors."""


class ValidationError(SanctuaryError, ValueError):
    """A record failed validation on save. Raised before any store call."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class ReservedTitleError(ValidationError):
    """A plain note title starts with a reserved domain tag."""


class DecodeError(SanctuaryError):
    """A note's content could not be decoded into a typed record."""

    def __init__(self, message: str, note_id: str = ""):
        super().__init__(message)
        self.note_id = note_id


class NotFoundError(SanctuaryError, KeyError):
    """The store has no note with the requested id."""

    def __init__(self, note_id: str):
        super().__init__(note_id)
        self.note_id = note_id

    def __str__(self) -> str:
        return f"Note not found: {self.note_id}"


class OperationFailed(SanctuaryError):
    """The note store itself failed (I/O, network, availability)."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting SANCTUARY_STORE_PATH."""
    store = os.environ.get("SANCTUARY_STORE_PATH")
    if store:
        return Path(store) / "sanctuary-errors.log"
    return Path.home() / ".sanctuary" / "sanctuary-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write(f" {type(exc).__name__}: {exc}\n")
            f.write(traceback.format_exc())
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
