"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
Keeps the deployment small (avoids grpcio / firebase-admin).
All HTTP calls use httpx.AsyncClient so they do not block the event loop.
All writes go through documents:commit so server timestamps and
preconditions (exists / updateTime) apply atomically with the field changes.
"""

from __future__ import annotations

import asyncio
import json
import secrets
import string
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import httpx

from app.infrastructure.exceptions import (
    DocumentExistsError,
    DocumentNotFoundError,
    FirestoreError,
    FirestoreIndexError,
    FirestorePermissionError,
    FirestoreUnavailableError,
    PreconditionFailedError,
)
from app.infrastructure.firebase._rest_encoding import (
    DocumentRef,
    _encode_value,
    decode_fields,
    encode_document,
    parse_timestamp,
    split_transforms,
)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
_BASE = "https://firestore.googleapis.com/v1"

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits
_AUTO_ID_LENGTH = 20

DESCENDING = "DESCENDING"
ASCENDING = "ASCENDING"
DOCUMENT_ID = "__name__"


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore and Identity Toolkit."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE, _CLOUD_PLATFORM_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


def auto_id() -> str:
    """Return a 20-character random document id, as the Firestore SDKs generate."""
    return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(_AUTO_ID_LENGTH))


def _error_status(resp: httpx.Response) -> tuple[str, str]:
    """Return (status, message) from a Google API error body."""
    try:
        body = resp.json()
    except ValueError:
        return "", resp.text
    if isinstance(body, list):
        body = body[0] if body and isinstance(body[0], dict) else {}
    err = body.get("error", {}) if isinstance(body, dict) else {}
    if not isinstance(err, dict):
        return "", str(err)
    return err.get("status", ""), err.get("message", "")


def _raise_for_status(resp: httpx.Response, *, is_query: bool) -> None:
    status, message = _error_status(resp)
    code = resp.status_code
    if code == 409 and status == "ALREADY_EXISTS":
        raise DocumentExistsError(message or "Document already exists", code, status)
    if code == 404:
        raise DocumentNotFoundError(message or "Document not found", code, status)
    if code in (401, 403):
        raise FirestorePermissionError(message or "Permission denied", code, status)
    if status == "FAILED_PRECONDITION":
        if is_query:
            raise FirestoreIndexError(message or "Query requires an index", code, status)
        raise PreconditionFailedError(message or "Precondition failed", code, status)
    if code == 409:
        # ABORTED: contention on the document; callers treat it like a stale precondition.
        raise PreconditionFailedError(message or "Write aborted", code, status)
    if code >= 500 or code == 429:
        raise FirestoreUnavailableError(message or f"Firestore returned {code}", code, status)
    raise FirestoreError(message or f"Firestore returned {code}", code, status)


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
    *,
    missing_ok: bool = False,
    is_query: bool = False,
) -> Any:
    """Perform async HTTP request to Firestore REST API.

    404 returns None when missing_ok (reads and deletes); otherwise raises.
    Transport failures raise FirestoreUnavailableError.
    """
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    try:
        if method == "GET":
            resp = await client.get(url, headers=headers)
        elif method == "PATCH":
            resp = await client.patch(url, headers=headers, json=body)
        elif method == "POST":
            resp = await client.post(url, headers=headers, json=body)
        elif method == "DELETE":
            resp = await client.delete(url, headers=headers)
        else:
            raise ValueError(f"Unsupported method: {method!r}")
    except httpx.TransportError as e:
        raise FirestoreUnavailableError(f"Firestore request failed: {e}") from e
    if resp.status_code == 404 and missing_ok:
        return None
    if resp.status_code not in (200, 204):
        _raise_for_status(resp, is_query=is_query)
    if method == "DELETE":
        return {}
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


def _snapshot_from_document(doc: dict) -> DocumentSnapshot:
    name = doc.get("name", "")
    return DocumentSnapshot(
        name.split("/")[-1] if name else "",
        decode_fields(doc.get("fields")),
        name=name,
        update_time=doc.get("updateTime"),
    )


class DocumentSnapshot:
    """Snapshot of a document (id + data + update time).

    update_time is the raw RFC 3339 string from the server; pass it back
    unchanged as a write precondition.
    """

    def __init__(
        self,
        id_: str,
        data: dict,
        *,
        name: str = "",
        update_time: str | None = None,
    ):
        self.id = id_
        self.name = name
        self.update_time = update_time
        self._data = data

    def to_dict(self) -> dict:
        return self._data

    def get(self, field: str, default: Any = None) -> Any:
        return self._data.get(field, default)


class DocumentReference:
    """Reference to a single document; matches firestore API style."""

    def __init__(self, client: "FirestoreRESTClient", path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path.split("/")[-1]

    @property
    def path(self) -> str:
        return self._path

    async def get(self) -> DocumentSnapshot | None:
        """Fetch the document; returns None if not found."""
        url = f"{_BASE}/{self._path}"
        out = await _request_async(
            self._client._http,
            url,
            access_token=await self._client.get_token(),
            missing_ok=True,
        )
        if not out:
            return None
        return _snapshot_from_document(out)

    async def create(self, data: dict[str, Any]) -> str | None:
        """Create the document; raises DocumentExistsError if it already exists.

        Returns:
            The server update time of the new document.
        """
        return await self._client.commit_write(self._path, data, precondition={"exists": False})

    async def set(self, data: dict[str, Any]) -> str | None:
        """Create or overwrite the document (full replace)."""
        return await self._client.commit_write(self._path, data)

    async def update(
        self,
        data: dict[str, Any],
        *,
        update_time: str | None = None,
    ) -> str | None:
        """Update only the given fields of an existing document.

        Args:
            data: Fields to write; SERVER_TIMESTAMP values become server transforms.
            update_time: When set, the write succeeds only if the stored document
                still has this update time (optimistic concurrency).

        Raises:
            DocumentNotFoundError: Document does not exist.
            PreconditionFailedError: update_time no longer matches.
        """
        precondition = {"updateTime": update_time} if update_time else {"exists": True}
        return await self._client.commit_write(
            self._path, data, precondition=precondition, mask=list(data)
        )

    async def delete(self) -> None:
        """Delete the document. Idempotent if document is already missing (404)."""
        url = f"{_BASE}/{self._path}"
        await _request_async(
            self._client._http,
            url,
            method="DELETE",
            access_token=await self._client.get_token(),
            missing_ok=True,
        )


_OP_MAP: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "in": "IN",
    "not-in": "NOT_IN",
    "array_contains": "ARRAY_CONTAINS",
    "array-contains": "ARRAY_CONTAINS",
    "array_contains_any": "ARRAY_CONTAINS_ANY",
    "array-contains-any": "ARRAY_CONTAINS_ANY",
}


class Query:
    """Fluent, immutable query builder for a collection.

    Runs via runQuery (filter/order/cursor/limit on server) or
    runAggregationQuery (count). Each builder call returns a new Query.
    """

    def __init__(
        self,
        client: "FirestoreRESTClient",
        parent: str,
        collection_id: str,
    ):
        self._client = client
        self._parent = parent
        self._collection_id = collection_id
        self._filters: list[tuple[str, str, Any]] = []
        self._orders: list[tuple[str, str]] = []
        self._start_after: list[Any] | None = None
        self._limit: int | None = None

    def _copy(self) -> "Query":
        q = Query(self._client, self._parent, self._collection_id)
        q._filters = list(self._filters)
        q._orders = list(self._orders)
        q._start_after = self._start_after
        q._limit = self._limit
        return q

    @property
    def collection_id(self) -> str:
        return self._collection_id

    def where(self, field: str, op: str, value: Any) -> "Query":
        q = self._copy()
        q._filters.append((field, _OP_MAP.get(op, op), value))
        return q

    def order_by(self, field: str, direction: str = ASCENDING) -> "Query":
        q = self._copy()
        q._orders.append((field, direction))
        return q

    def start_after(self, values: list[Any]) -> "Query":
        """Resume after the row whose order-by values equal ``values``.

        Pass DocumentRef for a ``__name__`` ordering; plain ids are expanded.
        """
        q = self._copy()
        q._start_after = list(values)
        return q

    def limit(self, n: int | None) -> "Query":
        q = self._copy()
        q._limit = n
        return q

    def _encode_cursor_value(self, field: str, value: Any) -> dict:
        if field == DOCUMENT_ID and isinstance(value, str):
            value = DocumentRef(f"{self._parent}/{self._collection_id}/{value}")
        return _encode_value(value)

    def to_structured_query(self) -> dict[str, Any]:
        """Return the StructuredQuery body for this query."""
        structured: dict[str, Any] = {
            "from": [{"collectionId": self._collection_id}],
        }
        field_filters = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": op,
                    "value": _encode_value(value),
                }
            }
            for field, op, value in self._filters
        ]
        if len(field_filters) == 1:
            structured["where"] = field_filters[0]
        elif field_filters:
            structured["where"] = {
                "compositeFilter": {"op": "AND", "filters": field_filters}
            }
        if self._orders:
            structured["orderBy"] = [
                {"field": {"fieldPath": field}, "direction": direction}
                for field, direction in self._orders
            ]
        if self._start_after is not None:
            fields = [field for field, _ in self._orders]
            structured["startAt"] = {
                "values": [
                    self._encode_cursor_value(field, value)
                    for field, value in zip(fields, self._start_after)
                ],
                "before": False,
            }
        if self._limit:
            structured["limit"] = self._limit
        return structured

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Execute the query and yield document snapshots."""
        url = f"{_BASE}/{self._parent}:runQuery"
        body = {"structuredQuery": self.to_structured_query()}
        resp = await _request_async(
            self._client._http,
            url,
            method="POST",
            body=body,
            access_token=await self._client.get_token(),
            is_query=True,
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        for item in items:
            if "document" not in item:
                continue
            yield _snapshot_from_document(item["document"])

    async def get(self) -> list[DocumentSnapshot]:
        """Execute the query and return all snapshots."""
        return [snapshot async for snapshot in self.stream()]

    async def count(self) -> int:
        """Return the number of matching documents (server-side COUNT aggregation)."""
        url = f"{_BASE}/{self._parent}:runAggregationQuery"
        body = {
            "structuredAggregationQuery": {
                "structuredQuery": self.to_structured_query(),
                "aggregations": [{"alias": "count", "count": {}}],
            }
        }
        resp = await _request_async(
            self._client._http,
            url,
            method="POST",
            body=body,
            access_token=await self._client.get_token(),
            is_query=True,
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        for item in items:
            fields = item.get("result", {}).get("aggregateFields", {})
            if "count" in fields:
                return int(fields["count"].get("integerValue", 0))
        return 0


class CollectionReference:
    """Reference to a collection; matches firestore API style."""

    def __init__(self, client: "FirestoreRESTClient", path: str):
        self._client = client
        self._path = path.rstrip("/")

    @property
    def id(self) -> str:
        return self._path.split("/")[-1]

    def document(self, document_id: str) -> DocumentReference:
        return DocumentReference(self._client, f"{self._path}/{document_id}")

    async def add(self, data: dict[str, Any]) -> tuple[str, DocumentReference]:
        """Create a document with an auto-generated id.

        Returns:
            (server update time, reference to the new document).
        """
        ref = self.document(auto_id())
        update_time = await ref.create(data)
        return update_time or "", ref

    def query(self) -> Query:
        """Return an unfiltered query over the collection."""
        parent = self._path.rsplit("/", 1)[0]
        return Query(self._client, parent, self.id)

    def where(self, field: str, op: str, value: Any) -> Query:
        """Start a query with a filter. Chain .order_by(), .start_after(), .limit(), then .stream()."""
        return self.query().where(field, op, value)

    def order_by(self, field: str, direction: str = ASCENDING) -> Query:
        return self.query().order_by(field, direction)

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Yield every document in the collection."""
        async for snapshot in self.query().stream():
            yield snapshot


class FirestoreRESTClient:
    """Lightweight Firestore client using REST API (no firebase-admin)."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._database = f"projects/{project_id}/databases/(default)"
        self._prefix = f"{self._database}/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=30.0)
        self._owns_http = http_client is None

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def credentials(self):
        return self._credentials

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str | None:
        """Return a valid access token; refreshes in thread pool to avoid blocking."""
        if self._credentials is None:
            return None
        return await asyncio.to_thread(_get_access_token, self._credentials)

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, f"{self._prefix}/{collection_id}")

    async def commit_write(
        self,
        path: str,
        data: dict[str, Any],
        *,
        precondition: dict[str, Any] | None = None,
        mask: list[str] | None = None,
    ) -> str | None:
        """Commit a single update Write with optional precondition and field mask.

        Returns:
            The write's server update time (RFC 3339), when reported.
        """
        plain, transforms = split_transforms(data)
        write: dict[str, Any] = {"update": {"name": path, **encode_document(plain)}}
        if mask is not None:
            write["updateMask"] = {"fieldPaths": [f for f in mask if f in plain]}
        if transforms:
            write["updateTransforms"] = transforms
        if precondition:
            write["currentDocument"] = precondition
        url = f"{_BASE}/{self._database}/documents:commit"
        out = await _request_async(
            self._http,
            url,
            method="POST",
            body={"writes": [write]},
            access_token=await self.get_token(),
        )
        results = (out or {}).get("writeResults") or [{}]
        return results[0].get("updateTime") or (out or {}).get("commitTime")


def parse_update_time(raw: str | None) -> datetime | None:
    """Return a datetime for a server update time string, or None."""
    if not raw:
        return None
    return parse_timestamp(raw)
