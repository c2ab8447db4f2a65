"""
Record codec: typed records <-> note ``title``/``content`` pairs.

``content`` is the JSON of every record field and is the only thing the
decoder reads. ``title`` is the domain tag followed by a human-readable
summary for list views; it is never parsed back.

Payload keys keep the camelCase names used by notes written by the web
dashboard (``totalPages``, ``dateAdded``), so both can share a store.
"""

import json
from dataclasses import dataclass
from datetime import timezone
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from .errors import DecodeError
from .records import (
    Book,
    DetoxSession,
    Goal,
    JournalEntry,
    MeditationSession,
    Transaction,
)
from .tags import DEFAULT_REGISTRY, TagRegistry
from .types import Domain, EncodedNote, Note, parse_utc_timestamp

R = TypeVar("R")


@dataclass(frozen=True)
class FieldSpec:
    """One record field: attribute name, payload key, value type."""
    name: str
    kind: type
    key: str = ""
    required: bool = False

    @property
    def payload_key(self) -> str:
        return self.key or self.name


def format_elapsed(seconds: int) -> str:
    """Format a duration as HH:MM:SS."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def _coerce(spec: FieldSpec, value: Any) -> Any:
    """Check a decoded JSON value against the field type.

    Raises TypeError for values of the wrong type. Integral floats are
    accepted for int fields and ints for float fields, since JSON does
    not distinguish them reliably.
    """
    if spec.kind is bool:
        if isinstance(value, bool):
            return value
    elif spec.kind is int:
        if isinstance(value, bool):
            pass
        elif isinstance(value, int):
            return value
        elif isinstance(value, float) and value.is_integer():
            return int(value)
    elif spec.kind is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif spec.kind is str:
        if isinstance(value, str):
            return value
    raise TypeError(
        f"{spec.payload_key}: expected {spec.kind.__name__}, got {type(value).__name__}"
    )


class Serializer(Generic[R]):
    """
    Bidirectional mapping between one record type and a note.

    Both operations are pure functions of their input.
    """

    def __init__(
        self,
        domain: Domain,
        record_type: type,
        fields: list[FieldSpec],
        summary: Callable[[Any], str],
        registry: TagRegistry = DEFAULT_REGISTRY,
    ):
        self.domain = domain
        self.record_type = record_type
        self.fields = fields
        self._summary = summary
        self._registry = registry
        self._by_name = {}
        for spec in fields:
            self._by_name[spec.name] = spec
            self._by_name[spec.payload_key] = spec

    @property
    def tag(self) -> str:
        return self._registry.prefix_for(self.domain)

    def field(self, name: str) -> FieldSpec:
        """Look up a field by attribute name or payload key."""
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(
                f"{self.record_type.__name__} has no field {name!r}"
            ) from None

    def title_for(self, record: R) -> str:
        return f"{self.tag} {self._summary(record)}"

    def to_payload(self, record: R) -> dict[str, Any]:
        return {spec.payload_key: getattr(record, spec.name) for spec in self.fields}

    def encode(self, record: R) -> EncodedNote:
        """Encode a record. Deterministic: field order is declaration order."""
        content = json.dumps(self.to_payload(record), ensure_ascii=False)
        return EncodedNote(title=self.title_for(record), content=content)

    def decode(self, source: Union[Note, str]) -> R:
        """
        Decode a note (or a bare content string) into a record.

        Raises:
            DecodeError: content is not a JSON object, or a required
                field is missing or any field has the wrong type
        """
        note_id: Optional[str] = None
        if isinstance(source, Note):
            note_id = source.id
            content = source.content
        else:
            content = source

        try:
            payload = json.loads(content)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid JSON content: {e}", note_id or "") from e
        if not isinstance(payload, dict):
            raise DecodeError(
                f"Expected a JSON object, got {type(payload).__name__}", note_id or ""
            )

        kwargs: dict[str, Any] = {}
        for spec in self.fields:
            value = payload.get(spec.payload_key)
            if value is None:
                if spec.required:
                    raise DecodeError(
                        f"Missing required field {spec.payload_key!r}", note_id or ""
                    )
                continue
            try:
                kwargs[spec.name] = _coerce(spec, value)
            except TypeError as e:
                raise DecodeError(str(e), note_id or "") from e

        record = self.record_type(**kwargs)
        record.id = note_id
        return record


# -----------------------------------------------------------------------------
# Per-domain serializers
# -----------------------------------------------------------------------------

def _book_summary(b: Book) -> str:
    return f"{b.title} by {b.author}"


def _transaction_summary(t: Transaction) -> str:
    return f"{t.type} - {t.description}"


def _meditation_summary(m: MeditationSession) -> str:
    return f"{m.technique} - {m.duration} min"


def _utc_date(timestamp: str) -> str:
    try:
        return parse_utc_timestamp(timestamp).astimezone(timezone.utc).date().isoformat()
    except ValueError:
        return timestamp[:10]


def _detox_summary(d: DetoxSession) -> str:
    return f"{format_elapsed(d.duration_seconds)} - {_utc_date(d.end_time)}"


def build_serializers(registry: TagRegistry = DEFAULT_REGISTRY) -> dict[Domain, Serializer]:
    """Build the serializer for every domain against a tag registry."""
    return {
        Domain.BOOK: Serializer(Domain.BOOK, Book, [
            FieldSpec("title", str, required=True),
            FieldSpec("author", str, required=True),
            FieldSpec("total_pages", int, "totalPages"),
            FieldSpec("current_page", int, "currentPage"),
            FieldSpec("status", str),
            FieldSpec("rating", int),
            FieldSpec("notes", str),
            FieldSpec("genre", str),
            FieldSpec("date_added", str, "dateAdded"),
        ], _book_summary, registry),
        Domain.TRANSACTION: Serializer(Domain.TRANSACTION, Transaction, [
            FieldSpec("type", str, required=True),
            FieldSpec("amount", float, required=True),
            FieldSpec("category", str, required=True),
            FieldSpec("description", str, required=True),
            FieldSpec("date", str),
        ], _transaction_summary, registry),
        Domain.GOAL: Serializer(Domain.GOAL, Goal, [
            FieldSpec("title", str, required=True),
            FieldSpec("status", str),
            FieldSpec("progress", int),
            FieldSpec("description", str),
            FieldSpec("target_date", str, "targetDate"),
        ], lambda g: g.title, registry),
        Domain.JOURNAL: Serializer(Domain.JOURNAL, JournalEntry, [
            FieldSpec("title", str, required=True),
            FieldSpec("content", str, required=True),
            FieldSpec("date", str),
            FieldSpec("mood", str),
        ], lambda j: j.title, registry),
        Domain.MEDITATION: Serializer(Domain.MEDITATION, MeditationSession, [
            FieldSpec("duration", int, required=True),
            FieldSpec("date", str),
            FieldSpec("technique", str),
        ], _meditation_summary, registry),
        Domain.DETOX: Serializer(Domain.DETOX, DetoxSession, [
            FieldSpec("start_time", str, required=True),
            FieldSpec("end_time", str, required=True),
            FieldSpec("duration_seconds", int, required=True),
        ], _detox_summary, registry),
    }


SERIALIZERS = build_serializers()


def serializer_for(domain: Domain) -> Serializer:
    """Serializer for a domain under the default tag registry."""
    return SERIALIZERS[domain]
