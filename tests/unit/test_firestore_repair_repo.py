"""FirestoreRepairRepository guarded writes against a mocked Firestore REST API.

The handler below keeps one ticket document and honours the updateTime
precondition on commit, so races with another client can be staged by
changing the document between our read and our write.
"""

import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from app.domain.enums import RepairStatus
from app.domain.exceptions import (
    ConcurrentModificationException,
    InvalidStatusTransitionException,
    ResourceNotFoundException,
    StorePermissionException,
    StoreUnavailableException,
)
from app.infrastructure.firebase._rest_client import FirestoreRESTClient
from app.infrastructure.firebase._rest_encoding import decode_fields, encode_document
from app.infrastructure.firebase.repositories import FirestoreRepairRepository

DOC_PATH = "projects/demo/databases/(default)/documents/repairs/r1"
T0 = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def _stamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class FakeFirestore:
    """One document, optimistic concurrency on updateTime, optional interference."""

    def __init__(self) -> None:
        self.data = {
            "orderNumber": "RP-1-1",
            "description": "Broken lock",
            "location": "Gate",
            "submitterName": "johnsmith1",
            "submitterEmail": "johnsmith1@repairportal.com",
            "submitterUid": "user-uid",
            "imageUrls": [],
            "status": "pending",
            "createdAt": T0,
            "followUpActions": [],
        }
        self.clock = T0
        self.update_time = _stamp(T0)
        self.commits = 0
        # Called before each commit is checked: lets a test act as another client.
        self.before_commit = None
        self.fail_status: int | None = None

    def _bump(self) -> None:
        self.clock += timedelta(seconds=1)
        self.update_time = _stamp(self.clock)

    def apply(self, fields: dict, transforms: list[dict] = ()) -> None:
        self.data.update(fields)
        for t in transforms:
            self.data[t["fieldPath"]] = self.clock
        self._bump()

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"error": {"status": "X", "message": "nope"}})
        path = request.url.path
        if request.method == "GET" and path.endswith("/repairs/r1"):
            return httpx.Response(
                200,
                json={"name": DOC_PATH, "updateTime": self.update_time, **encode_document(self.data)},
            )
        if request.method == "GET":
            return httpx.Response(404, json={"error": {"status": "NOT_FOUND", "message": "missing"}})
        if path.endswith("documents:commit"):
            self.commits += 1
            if self.before_commit is not None:
                self.before_commit(self)
            (write,) = json.loads(request.content)["writes"]
            expected = write.get("currentDocument", {}).get("updateTime")
            if expected is not None and expected != self.update_time:
                return httpx.Response(
                    400,
                    json={"error": {"status": "FAILED_PRECONDITION", "message": "stale"}},
                )
            fields = decode_fields(write["update"].get("fields"))
            self.apply(fields, write.get("updateTransforms", []))
            return httpx.Response(200, json={"writeResults": [{"updateTime": self.update_time}]})
        return httpx.Response(500)


@pytest.fixture
def store() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def repo(store: FakeFirestore) -> FirestoreRepairRepository:
    http = httpx.AsyncClient(transport=httpx.MockTransport(store.handler))
    client = FirestoreRESTClient("demo", None, http_client=http)
    return FirestoreRepairRepository(client, max_retries=3)


async def test_get_maps_document(repo) -> None:
    ticket = await repo.get("r1")
    assert ticket.id == "r1"
    assert ticket.order_number == "RP-1-1"
    assert ticket.status is RepairStatus.PENDING
    assert ticket.created_at == T0
    assert await repo.get("other") is None


async def test_complete_sets_server_time_and_reason(repo, store) -> None:
    ticket = await repo.set_status("r1", RepairStatus.COMPLETED, "  Fixed ")
    assert ticket.status is RepairStatus.COMPLETED
    assert ticket.completion_reason == "Fixed"
    assert ticket.completed_at == T0
    assert store.commits == 1


async def test_cancel_racing_completion_is_rejected(repo, store) -> None:
    """Another client completes the ticket between our read and our write."""

    def complete_first(s: FakeFirestore) -> None:
        if s.commits == 1:
            s.apply({"status": "completed", "completionReason": "done elsewhere"})

    store.before_commit = complete_first
    with pytest.raises(InvalidStatusTransitionException):
        await repo.set_status("r1", RepairStatus.CANCELLED, "no longer needed")
    assert store.data["status"] == "completed"
    assert store.data["completionReason"] == "done elsewhere"
    assert "cancellationReason" not in store.data


async def test_concurrent_follow_ups_both_kept(repo, store) -> None:
    def other_note_first(s: FakeFirestore) -> None:
        if s.commits == 1:
            s.apply({"followUpActions": [*s.data["followUpActions"], "Called locksmith"]})

    store.before_commit = other_note_first
    ticket = await repo.append_follow_up("r1", "Ordered new lock")
    assert ticket.follow_up_actions == ["Called locksmith", "Ordered new lock"]
    assert store.commits == 2


async def test_gives_up_after_retries(repo, store) -> None:
    store.before_commit = lambda s: s._bump()
    with pytest.raises(ConcurrentModificationException):
        await repo.append_follow_up("r1", "note")
    assert store.commits == 3


async def test_missing_ticket(repo) -> None:
    with pytest.raises(ResourceNotFoundException):
        await repo.set_status("nope", RepairStatus.COMPLETED, None)


@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [(403, StorePermissionException), (503, StoreUnavailableException)],
)
async def test_store_errors_translated(repo, store, status_code, error_type) -> None:
    store.fail_status = status_code
    with pytest.raises(error_type):
        await repo.get("r1")
