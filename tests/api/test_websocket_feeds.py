"""WebSocket live feeds over Starlette's TestClient.

TestClient runs the app on its own event loop, so these tests build their
own hub and fakes instead of the async conftest fixtures. New tickets are
swapped into the fake store (a new dict, since the hub reads it from another
thread) and picked up by the hub's polling.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.api.v1.dependencies import (
    get_hub,
    get_identity_provider_optional,
    get_repair_repo,
    get_user_repo,
)
from app.domain.entities.repair_ticket import RepairTicket
from app.infrastructure.firebase.live_query import LiveQueryHub
from app.main import app
from tests.fakes import BASE_TIME, FakeIdentityProvider, FakeRepairRepository, FakeUserRepository


def _ticket(n: int) -> RepairTicket:
    return RepairTicket(
        id=f"r{n:04d}",
        order_number=f"RP-{n}",
        description=f"Ticket {n}",
        location="Block A",
        submitter_name="johnsmith1",
        submitter_email="johnsmith1@repairportal.com",
        submitter_uid="user-uid",
        created_at=BASE_TIME + timedelta(minutes=n),
    )


@pytest.fixture
def feeds(identity: FakeIdentityProvider):
    hub = LiveQueryHub(poll_seconds=0.05)
    repairs = FakeRepairRepository(hub)
    users = FakeUserRepository(hub)
    app.dependency_overrides[get_identity_provider_optional] = lambda: identity
    app.dependency_overrides[get_repair_repo] = lambda: repairs
    app.dependency_overrides[get_user_repo] = lambda: users
    app.dependency_overrides[get_hub] = lambda: hub
    try:
        yield TestClient(app), repairs
    finally:
        app.dependency_overrides.clear()


def test_repairs_feed_pushes_changes(feeds) -> None:
    client, repairs = feeds
    repairs.tickets["r0001"] = _ticket(1)
    with client.websocket_connect("/api/v1/ws/repairs?token=token-admin-uid") as ws:
        first = ws.receive_json()
        assert first["type"] == "snapshot"
        assert [t["id"] for t in first["items"]] == ["r0001"]

        repairs.tickets = {**repairs.tickets, "r0002": _ticket(2)}
        second = ws.receive_json()
        assert [t["id"] for t in second["items"]] == ["r0002", "r0001"]


def test_repairs_feed_reports_store_errors(feeds) -> None:
    client, repairs = feeds
    repairs.fail_reads = True
    with client.websocket_connect("/api/v1/ws/repairs?token=token-admin-uid") as ws:
        message = ws.receive_json()
        assert message["type"] == "error"
        assert message["message"]


def test_users_feed_lists_profiles(feeds) -> None:
    client, _ = feeds
    with client.websocket_connect("/api/v1/ws/users?token=token-admin-uid") as ws:
        assert ws.receive_json() == {"type": "snapshot", "items": []}


@pytest.mark.parametrize(
    "url",
    [
        "/api/v1/ws/repairs",
        "/api/v1/ws/repairs?token=forged",
        "/api/v1/ws/repairs?token=token-user-uid",
        "/api/v1/ws/users?token=token-user-uid",
    ],
)
def test_feed_rejected(feeds, url: str) -> None:
    """Missing or bad tokens and non-admin callers get a policy-violation close."""
    client, _ = feeds
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(url) as ws:
            ws.receive_json()
    assert exc_info.value.code == 1008
