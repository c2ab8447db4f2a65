"""Tests for sanctuary.remote: HTTP client for the hosted note API."""

import json
from unittest.mock import MagicMock, patch

import pytest
import httpx

from sanctuary.errors import NotFoundError, OperationFailed
from sanctuary.protocol import NoteQuery, NoteStoreProtocol
from sanctuary.remote import ENTITY_PATH, MAX_RETRIES, RemoteNoteStore
from sanctuary.router import QueryRouter
from sanctuary.types import Domain


def _note(id="n1", title="Groceries", content="", **extra):
    data = {
        "id": id,
        "title": title,
        "content": content,
        "created_by": "alice@example.com",
        "created_date": "2024-03-01T10:00:00Z",
        "updated_date": "2024-03-01T10:00:00Z",
        "is_pinned": False,
    }
    data.update(extra)
    return data


class FakeResponse:
    """Minimal httpx.Response stand-in."""

    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    def json(self):
        if self._json is None:
            return json.loads(self.text)
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"{self.status_code}",
                request=httpx.Request("GET", "https://test"),
                response=self,
            )


@pytest.fixture
def mock_client():
    """RemoteNoteStore with a mocked httpx.Client."""
    with patch("sanctuary.remote.httpx.Client") as MockClient:
        client_instance = MagicMock()
        MockClient.return_value = client_instance
        store = RemoteNoteStore("https://api.example.com", "test-key", owner="alice@example.com")
        yield store, client_instance


class TestHTTPSEnforcement:
    def test_allows_https(self):
        with patch("sanctuary.remote.httpx.Client"):
            store = RemoteNoteStore("https://api.example.com/", "key")
            assert store._api_url == "https://api.example.com"

    def test_allows_localhost(self):
        with patch("sanctuary.remote.httpx.Client"):
            store = RemoteNoteStore("http://localhost:8000", "key")
            assert store._api_url == "http://localhost:8000"

    def test_rejects_plain_http(self):
        with pytest.raises(ValueError, match="must use HTTPS"):
            RemoteNoteStore("http://api.example.com", "key")

    def test_sends_bearer_token(self):
        with patch("sanctuary.remote.httpx.Client") as MockClient:
            RemoteNoteStore("https://api.example.com", "secret")
            headers = MockClient.call_args.kwargs["headers"]
            assert headers["Authorization"] == "Bearer secret"


class TestWrites:
    def test_create(self, mock_client):
        store, http = mock_client
        http.request.return_value = FakeResponse(json_data=_note(title="Ideas"))

        note = store.create("Ideas", "", is_pinned=False)

        assert note.id == "n1"
        assert note.title == "Ideas"
        http.request.assert_called_once_with("POST", ENTITY_PATH, json={
            "title": "Ideas", "content": "", "is_pinned": False,
        })

    def test_update(self, mock_client):
        store, http = mock_client
        http.request.return_value = FakeResponse(json_data=_note(title="New"))

        assert store.update("n1", title="New").title == "New"
        http.request.assert_called_once_with(
            "PUT", f"{ENTITY_PATH}/n1", json={"title": "New"}
        )

    def test_update_missing(self, mock_client):
        store, http = mock_client
        http.request.return_value = FakeResponse(status_code=404, text="not found")
        with pytest.raises(NotFoundError):
            store.update("gone", title="x")

    def test_delete(self, mock_client):
        store, http = mock_client
        http.request.return_value = FakeResponse(status_code=204)
        store.delete("n1")
        http.request.assert_called_once_with("DELETE", f"{ENTITY_PATH}/n1")

    def test_server_error_is_operation_failed(self, mock_client):
        store, http = mock_client
        http.request.return_value = FakeResponse(status_code=500, text="boom")
        with pytest.raises(OperationFailed, match="500"):
            store.create("x", "")

    def test_writes_are_not_retried(self, mock_client):
        store, http = mock_client
        http.request.side_effect = httpx.ConnectError("refused")
        with pytest.raises(OperationFailed):
            store.create("x", "")
        assert http.request.call_count == 1

    @pytest.mark.parametrize("call", [
        lambda store: store.create("x", ""),
        lambda store: store.update("n1", title="x"),
    ])
    def test_non_json_write_response(self, mock_client, call):
        store, http = mock_client
        http.request.return_value = FakeResponse(text="<html>gateway</html>")
        with pytest.raises(OperationFailed, match="non-JSON"):
            call(store)

    def test_write_response_without_id(self, mock_client):
        store, http = mock_client
        http.request.return_value = FakeResponse(json_data={"title": "x"})
        with pytest.raises(OperationFailed, match="Malformed"):
            store.create("x", "")


class TestReads:
    def test_get(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(json_data=_note())
        assert store.get("n1").title == "Groceries"
        http.get.assert_called_once_with(f"{ENTITY_PATH}/n1")

    def test_get_missing(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(status_code=404)
        with pytest.raises(NotFoundError):
            store.get("gone")

    def test_list_sends_sort(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(json_data=[_note("a"), _note("b")])
        assert [n.id for n in store.list(sort="title")] == ["a", "b"]
        http.get.assert_called_once_with(ENTITY_PATH, params={"sort": "title"})

    def test_filter_sends_mongo_query(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(json_data={"items": [_note()]})

        store.filter(NoteQuery(equals={"created_by": "alice@example.com"},
                               title_pattern="^BOOK:", negate=True))

        params = http.get.call_args.kwargs["params"]
        assert json.loads(params["q"]) == {
            "created_by": "alice@example.com",
            "title": {"$not": {"$regex": "^BOOK:"}},
        }
        assert params["sort"] == "-updated_date"

    def test_malformed_listing(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(json_data=[{"title": "no id"}])
        with pytest.raises(OperationFailed, match="Malformed"):
            store.list()

    def test_client_error_not_retried(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(status_code=401, text="bad key")
        with patch("sanctuary.remote.time.sleep") as sleep:
            with pytest.raises(OperationFailed, match="401"):
                store.list()
        assert http.get.call_count == 1
        sleep.assert_not_called()

    def test_non_json_listing(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(text="<html>gateway</html>")
        with patch("sanctuary.remote.time.sleep") as sleep:
            with pytest.raises(OperationFailed, match="non-JSON"):
                store.list()
        sleep.assert_not_called()

    def test_listing_of_wrong_shape(self, mock_client):
        store, http = mock_client
        http.get.return_value = FakeResponse(json_data=42)
        with pytest.raises(OperationFailed, match="Malformed"):
            store.list()


class TestRetry:
    def test_retries_transient_errors(self, mock_client):
        store, http = mock_client
        http.get.side_effect = [
            httpx.ConnectError("refused"),
            FakeResponse(status_code=503),
            FakeResponse(json_data=[_note()]),
        ]
        with patch("sanctuary.remote.time.sleep") as sleep:
            notes = store.list()
        assert len(notes) == 1
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    def test_gives_up_after_max_retries(self, mock_client):
        store, http = mock_client
        http.get.side_effect = httpx.ReadTimeout("slow")
        with patch("sanctuary.remote.time.sleep"):
            with pytest.raises(OperationFailed, match="after"):
                store.list()
        assert http.get.call_count == MAX_RETRIES

    @pytest.mark.parametrize("error", [
        httpx.ReadError("connection reset"),
        httpx.RemoteProtocolError("peer closed connection"),
    ])
    def test_other_transport_errors_retried(self, mock_client, error):
        store, http = mock_client
        http.get.side_effect = [error, FakeResponse(json_data=_note())]
        with patch("sanctuary.remote.time.sleep"):
            assert store.get("n1").id == "n1"
        assert http.get.call_count == 2

    def test_persistent_read_error_is_operation_failed(self, mock_client):
        store, http = mock_client
        http.get.side_effect = httpx.ReadError("connection reset")
        with patch("sanctuary.remote.time.sleep"):
            with pytest.raises(OperationFailed, match="after"):
                store.get("n1")
        assert http.get.call_count == MAX_RETRIES


class TestAsNoteStore:
    def test_satisfies_protocol(self, mock_client):
        store, _ = mock_client
        assert isinstance(store, NoteStoreProtocol)

    def test_router_rechecks_remote_results(self, mock_client):
        store, http = mock_client
        # A backend that ignores $regex returns everything
        http.get.return_value = FakeResponse(json_data=[
            _note("a", "BOOK: Dune by Herbert"),
            _note("b", "Groceries"),
        ])
        router = QueryRouter(store)
        assert [n.id for n in router.fetch_by_tag(Domain.BOOK)] == ["a"]
        assert [n.id for n in router.fetch_untagged()] == ["b"]
