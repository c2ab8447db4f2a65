"""End-to-end tests for the sanctuary CLI."""

import json

import pytest
from typer.testing import CliRunner

from sanctuary.cli import app


runner = CliRunner()


@pytest.fixture
def cli(tmp_path, monkeypatch):
    """Invoke the CLI against a fresh local store."""
    for var in ("SANCTUARY_STORE_PATH", "SANCTUARY_API_URL", "SANCTUARY_API_KEY", "SANCTUARY_OWNER"):
        monkeypatch.delenv(var, raising=False)
    store = tmp_path / "store"

    def invoke(*args):
        return runner.invoke(app, ["--store", str(store), *args])

    return invoke


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestBooks:
    def test_add_progress_finish(self, cli):
        book = _json(cli("--json", "books", "add", "Dune", "Herbert", "--pages", "412"))
        assert book["status"] == "want_to_read"

        result = cli("books", "progress", book["id"], "412")
        assert result.exit_code == 0
        assert "[finished]" in result.output
        assert "412/412p (100%)" in result.output

        listed = _json(cli("--json", "books", "list", "--status", "finished"))
        assert [b["title"] for b in listed] == ["Dune"]

    def test_rate_out_of_range(self, cli):
        book = _json(cli("--json", "books", "add", "Dune", "Herbert"))
        assert cli("books", "rate", book["id"], "6").exit_code != 0

    def test_missing_book(self, cli):
        result = cli("books", "finish", "nope")
        assert result.exit_code == 1
        assert "Note not found: nope" in result.output

    def test_validation_error_message(self, cli):
        result = cli("books", "add", "Dune", "Herbert", "--status", "lost")
        assert result.exit_code == 1
        assert "status must be one of" in result.output

    def test_empty_list(self, cli):
        assert "No books found." in cli("books", "list").output


class TestFinance:
    def test_summary(self, cli):
        cli("finance", "add", "income", "1000", "March pay", "--category", "salary")
        cli("finance", "add", "expense", "300", "Groceries", "--category", "food")
        summary = _json(cli("--json", "finance", "summary"))
        assert summary["balance"] == 700
        assert summary["expense_by_category"] == {"food": 300}


class TestDetox:
    def test_short_session_discarded(self, cli):
        result = cli("detox", "record", "2024-03-01T10:00:00Z", "2024-03-01T10:00:03Z")
        assert result.exit_code == 0
        assert "too short" in result.output
        assert _json(cli("--json", "detox", "list")) == []

    def test_session_recorded(self, cli):
        session = _json(cli("--json", "detox", "record",
                            "2024-03-01T10:00:00Z", "2024-03-01T10:00:06Z"))
        assert session["duration_seconds"] == 6

    def test_bad_timestamp(self, cli):
        result = cli("detox", "record", "yesterday", "today")
        assert result.exit_code == 1
        assert "invalid timestamp" in result.output


class TestNotes:
    def test_reserved_title_rejected(self, cli):
        result = cli("notes", "add", "BOOK: fake")
        assert result.exit_code == 1
        assert "reserved" in result.output

    def test_notes_exclude_records(self, cli):
        cli("books", "add", "Dune", "Herbert")
        cli("notes", "add", "Groceries", "milk")
        notes = _json(cli("--json", "notes", "list"))
        assert [n["title"] for n in notes] == ["Groceries"]


class TestOverview:
    def test_overview(self, cli):
        cli("goals", "add", "Run", "--status", "in_progress", "--progress", "40")
        cli("meditation", "log", "15")
        cli("journal", "add", "Monday", "Quiet day.")
        ov = _json(cli("--json", "overview"))
        assert ov["goals"]["in_progress"] == 1
        assert ov["meditation"]["total_minutes"] == 15
        assert ov["journal"]["total"] == 1
        assert [g["title"] for g in ov["active_goals"]] == ["Run"]

    def test_text_overview(self, cli):
        result = cli("overview")
        assert result.exit_code == 0
        assert "Books:" in result.output
