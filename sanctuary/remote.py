"""
HTTP client for a hosted note-entity API.

Speaks the entity REST shape used by the web dashboard's backend:

    GET    /entities/Note?q=<json query>&sort=-updated_date
    GET    /entities/Note/{id}
    POST   /entities/Note
    PUT    /entities/Note/{id}
    DELETE /entities/Note/{id}

Queries are Mongo-style documents (``{"title": {"$regex": "^BOOK:"}}``).
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from .errors import NotFoundError, OperationFailed
from .protocol import DEFAULT_SORT, NoteQuery
from .types import Note

logger = logging.getLogger(__name__)

# Retry config for idempotent reads
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 1.0  # seconds

DEFAULT_TIMEOUT = 30.0

ENTITY_PATH = "/entities/Note"


class RemoteNoteStore:
    """Note collection backed by the hosted entity API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        owner: str = "",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._api_url = api_url.rstrip("/")
        self._owner = owner

        # Refuse non-HTTPS for remote APIs (bearer token would be sent in cleartext)
        if not self._api_url.startswith("https://"):
            from urllib.parse import urlparse
            host = urlparse(self._api_url).hostname or ""
            if host not in ("localhost", "127.0.0.1", "::1"):
                raise ValueError(
                    f"Note API URL must use HTTPS (got {self._api_url}). "
                    "Use HTTPS to protect API credentials, or use localhost for local development."
                )

        self._client = httpx.Client(
            base_url=self._api_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    @property
    def owner(self) -> str:
        return self._owner

    def _request(self, method: str, path: str, *, note_id: str = "", **kwargs) -> httpx.Response:
        """Send one request, mapping failures onto the store error types."""
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404 and note_id:
                raise NotFoundError(note_id) from e
            raise OperationFailed(
                f"{method} {path} rejected: {e.response.status_code} {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise OperationFailed(f"{method} {path} failed: {e}") from e

    def _read(self, path: str, *, note_id: str = "", **kwargs) -> Any:
        """GET with retries on transient errors (5xx and transport failures)."""
        last_error: Exception | None = None
        for attempt in range(MAX_RETRIES):
            try:
                resp = self._client.get(path, **kwargs)
                if resp.status_code == 404 and note_id:
                    raise NotFoundError(note_id)
                resp.raise_for_status()
                return self._json(resp, f"GET {path}")
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise OperationFailed(
                        f"GET {path} rejected: {e.response.status_code} {e.response.text}"
                    ) from e
                last_error = e
            except httpx.TransportError as e:
                last_error = e

            if attempt < MAX_RETRIES - 1:
                delay = RETRY_BACKOFF_BASE * (2 ** attempt)
                logger.info(
                    "GET %s attempt %d failed, retrying in %.1fs: %s",
                    path, attempt + 1, delay, last_error,
                )
                time.sleep(delay)

        raise OperationFailed(
            f"GET {path} failed after {MAX_RETRIES} attempts: {last_error}"
        ) from last_error

    @staticmethod
    def _json(resp: httpx.Response, what: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise OperationFailed(f"{what} returned a non-JSON body: {e}") from e

    @staticmethod
    def _note(data: Any) -> Note:
        try:
            return Note.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise OperationFailed(f"Malformed note: {e}") from e

    @staticmethod
    def _notes(data: Any) -> list[Note]:
        try:
            items = data.get("items", []) if isinstance(data, dict) else data
            return [Note.from_dict(item) for item in items]
        except (KeyError, TypeError, AttributeError) as e:
            raise OperationFailed(f"Malformed note listing: {e}") from e

    # -- Write operations --

    def create(self, title: str, content: str, *, is_pinned: bool = False) -> Note:
        resp = self._request("POST", ENTITY_PATH, json={
            "title": title,
            "content": content,
            "is_pinned": is_pinned,
        })
        return self._note(self._json(resp, f"POST {ENTITY_PATH}"))

    def update(self, id: str, **fields: Any) -> Note:
        resp = self._request("PUT", f"{ENTITY_PATH}/{id}", note_id=id, json=fields)
        return self._note(self._json(resp, f"PUT {ENTITY_PATH}/{id}"))

    def delete(self, id: str) -> None:
        self._request("DELETE", f"{ENTITY_PATH}/{id}", note_id=id)

    # -- Read operations --

    def get(self, id: str) -> Note:
        return self._note(self._read(f"{ENTITY_PATH}/{id}", note_id=id))

    def list(self, sort: str = DEFAULT_SORT) -> list[Note]:
        return self._notes(self._read(ENTITY_PATH, params={"sort": sort}))

    def filter(self, query: NoteQuery, sort: str = DEFAULT_SORT) -> list[Note]:
        params = {"q": json.dumps(query.to_mongo()), "sort": sort}
        return self._notes(self._read(ENTITY_PATH, params=params))

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()
