"""Tests for /api/v1/repairs: submission with photos, triage, listing and export."""

import pytest
from httpx import AsyncClient

from app.core.config import get_settings
from app.domain.entities.repair_ticket import RepairTicket
from app.domain.enums import RepairStatus
from tests.conftest import USER_EMAIL

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


async def _seed(repo, count: int = 1, **overrides) -> list[RepairTicket]:
    created = []
    for i in range(count):
        fields = {
            "id": None,
            "order_number": f"RP-{i}",
            "description": f"Broken chair {i}",
            "location": "Room 101",
            "submitter_name": "johnsmith1",
            "submitter_email": USER_EMAIL,
            "submitter_uid": "user-uid",
        }
        fields.update(overrides)
        created.append(await repo.create(RepairTicket(**fields)))
    return created


class TestSubmit:
    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/repairs", data={"description": "Leak", "location": "Kitchen"}
        )
        assert response.status_code == 401

    async def test_submit_without_photos(
        self, client: AsyncClient, portal_user, user_headers, repair_repo
    ) -> None:
        response = await client.post(
            "/api/v1/repairs",
            data={"description": "  Leaking tap ", "location": "Kitchen"},
            headers=user_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["description"] == "Leaking tap"
        assert data["submitter_name"] == "johnsmith1"
        assert data["submitter_email"] == USER_EMAIL
        assert data["image_urls"] == []
        assert data["order_number"].startswith("RP-")
        assert data["id"] in repair_repo.tickets

    async def test_submit_with_photos_served_back(
        self, client: AsyncClient, portal_user, user_headers
    ) -> None:
        response = await client.post(
            "/api/v1/repairs",
            data={"description": "Cracked window", "location": "Hall"},
            files=[
                ("photos", ("first.jpg", JPEG, "image/jpeg")),
                ("photos", ("second.png", b"\x89PNG-fake", "image/png")),
            ],
            headers=user_headers,
        )
        assert response.status_code == 201
        urls = response.json()["image_urls"]
        assert len(urls) == 2
        assert urls[0].endswith("-first.jpg")
        assert urls[1].endswith("-second.png")

        photo = await client.get(urls[0])
        assert photo.status_code == 200
        assert photo.content == JPEG
        assert photo.headers["content-type"].startswith("image/jpeg")

    async def test_blank_location_uploads_nothing(
        self, client: AsyncClient, portal_user, user_headers, storage, repair_repo
    ) -> None:
        response = await client.post(
            "/api/v1/repairs",
            data={"description": "Cracked window", "location": "   "},
            files=[("photos", ("first.jpg", JPEG, "image/jpeg"))],
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Location is required"
        assert not any(storage.storage_root.rglob("*.jpg"))
        assert repair_repo.tickets == {}

    async def test_non_image_rejected(self, client: AsyncClient, portal_user, user_headers) -> None:
        response = await client.post(
            "/api/v1/repairs",
            data={"description": "Door", "location": "Gate"},
            files=[("photos", ("notes.txt", b"hello", "text/plain"))],
            headers=user_headers,
        )
        assert response.status_code == 400

    async def test_oversized_photo_rejected(
        self, client: AsyncClient, portal_user, user_headers, storage, repair_repo, monkeypatch
    ) -> None:
        monkeypatch.setattr(get_settings(), "max_upload_size", 4)
        response = await client.post(
            "/api/v1/repairs",
            data={"description": "Door", "location": "Gate"},
            files=[("photos", ("door.jpg", JPEG, "image/jpeg"))],
            headers=user_headers,
        )
        assert response.status_code == 400
        assert "exceeds" in response.json()["message"]
        assert not any(storage.storage_root.rglob("*.jpg"))
        assert repair_repo.tickets == {}

    async def test_store_failure_removes_uploaded_photos(
        self, client: AsyncClient, portal_user, user_headers, storage, repair_repo
    ) -> None:
        repair_repo.fail_creates = True
        response = await client.post(
            "/api/v1/repairs",
            data={"description": "Cracked window", "location": "Hall"},
            files=[("photos", ("first.jpg", JPEG, "image/jpeg"))],
            headers=user_headers,
        )
        assert response.status_code == 503
        assert not any(storage.storage_root.rglob("*.jpg"))


class TestTriage:
    async def test_complete_then_complete_again(
        self, client: AsyncClient, repair_repo, admin_headers
    ) -> None:
        (ticket,) = await _seed(repair_repo)
        first = await client.post(
            f"/api/v1/repairs/{ticket.id}/complete", json={"reason": "Replaced"}, headers=admin_headers
        )
        assert first.status_code == 200
        assert first.json()["status"] == "completed"
        assert first.json()["completion_reason"] == "Replaced"
        assert first.json()["completed_at"] is not None

        again = await client.post(f"/api/v1/repairs/{ticket.id}/cancel", headers=admin_headers)
        assert again.status_code == 409
        assert again.json()["error"] == "INVALID_STATUS_TRANSITION"
        assert repair_repo.tickets[ticket.id].status is RepairStatus.COMPLETED

    async def test_cancel_without_body(self, client: AsyncClient, repair_repo, admin_headers) -> None:
        (ticket,) = await _seed(repair_repo)
        response = await client.post(f"/api/v1/repairs/{ticket.id}/cancel", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["cancellation_reason"] is None

    async def test_users_cannot_triage(
        self, client: AsyncClient, repair_repo, portal_user, user_headers
    ) -> None:
        (ticket,) = await _seed(repair_repo)
        response = await client.post(f"/api/v1/repairs/{ticket.id}/complete", headers=user_headers)
        assert response.status_code == 403
        assert repair_repo.tickets[ticket.id].is_pending

    async def test_missing_ticket(self, client: AsyncClient, admin_headers) -> None:
        response = await client.post("/api/v1/repairs/nope/complete", headers=admin_headers)
        assert response.status_code == 404

    async def test_follow_ups_accumulate(self, client: AsyncClient, repair_repo, admin_headers) -> None:
        (ticket,) = await _seed(repair_repo)
        for note in ("Ordered part", "Technician booked"):
            response = await client.post(
                f"/api/v1/repairs/{ticket.id}/follow-ups", json={"note": note}, headers=admin_headers
            )
            assert response.status_code == 200
        assert response.json()["follow_up_actions"] == ["Ordered part", "Technician booked"]

    async def test_follow_up_on_closed_ticket(
        self, client: AsyncClient, repair_repo, admin_headers
    ) -> None:
        (ticket,) = await _seed(repair_repo)
        await client.post(f"/api/v1/repairs/{ticket.id}/cancel", headers=admin_headers)
        response = await client.post(
            f"/api/v1/repairs/{ticket.id}/follow-ups", json={"note": "late"}, headers=admin_headers
        )
        assert response.status_code == 409


class TestRead:
    async def test_get_own_and_foreign(
        self, client: AsyncClient, repair_repo, portal_user, user_headers
    ) -> None:
        (own,) = await _seed(repair_repo)
        (foreign,) = await _seed(repair_repo, submitter_uid="someone-else")
        assert (await client.get(f"/api/v1/repairs/{own.id}", headers=user_headers)).status_code == 200
        response = await client.get(f"/api/v1/repairs/{foreign.id}", headers=user_headers)
        assert response.status_code == 403

    async def test_mine_newest_first(
        self, client: AsyncClient, repair_repo, portal_user, user_headers
    ) -> None:
        tickets = await _seed(repair_repo, 2)
        await _seed(repair_repo, submitter_uid="someone-else")
        response = await client.get("/api/v1/repairs/mine", headers=user_headers)
        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == [tickets[1].id, tickets[0].id]

    async def test_list_requires_admin(self, client: AsyncClient, portal_user, user_headers) -> None:
        response = await client.get("/api/v1/repairs", headers=user_headers)
        assert response.status_code == 403

    async def test_list_pages_with_cursor(
        self, client: AsyncClient, repair_repo, admin_headers, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(get_settings(), "repairs_page_size", 2)
        tickets = await _seed(repair_repo, 3)
        first = (await client.get("/api/v1/repairs", headers=admin_headers)).json()
        assert [t["id"] for t in first["items"]] == [tickets[2].id, tickets[1].id]
        assert first["has_more"] is True

        second = (
            await client.get(
                "/api/v1/repairs", params={"cursor": first["next_cursor"]}, headers=admin_headers
            )
        ).json()
        assert [t["id"] for t in second["items"]] == [tickets[0].id]
        assert second["has_more"] is False
        assert second["next_cursor"] is None

    async def test_list_other_status_tab(
        self, client: AsyncClient, repair_repo, admin_headers
    ) -> None:
        tickets = await _seed(repair_repo, 2)
        await client.post(f"/api/v1/repairs/{tickets[0].id}/complete", headers=admin_headers)
        response = await client.get(
            "/api/v1/repairs", params={"status": "completed"}, headers=admin_headers
        )
        assert [t["id"] for t in response.json()["items"]] == [tickets[0].id]

    async def test_search_returns_every_match(
        self, client: AsyncClient, repair_repo, admin_headers
    ) -> None:
        await _seed(repair_repo, 2)
        await _seed(repair_repo, location="Boiler room")
        response = await client.get(
            "/api/v1/repairs", params={"search": "boiler"}, headers=admin_headers
        )
        data = response.json()
        assert [t["location"] for t in data["items"]] == ["Boiler room"]
        assert data["next_cursor"] is None

    async def test_bad_cursor_returns_400(self, client: AsyncClient, admin_headers) -> None:
        response = await client.get(
            "/api/v1/repairs", params={"cursor": "not-a-cursor"}, headers=admin_headers
        )
        assert response.status_code == 400

    async def test_counts(self, client: AsyncClient, repair_repo, admin_headers) -> None:
        tickets = await _seed(repair_repo, 3)
        await client.post(f"/api/v1/repairs/{tickets[0].id}/cancel", headers=admin_headers)
        response = await client.get("/api/v1/repairs/counts", headers=admin_headers)
        assert response.json() == {"pending": 2, "completed": 0, "cancelled": 1, "total": 3}


class TestExport:
    async def test_export_csv(self, client: AsyncClient, repair_repo, admin_headers) -> None:
        await _seed(repair_repo, 2)
        response = await client.get(
            "/api/v1/repairs/export",
            params={"start_date": "2025-03-01", "end_date": "2025-03-01"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == (
            'attachment; filename="repair-requests-all-2025-03-01-to-2025-03-01.csv"'
        )
        lines = response.text.split("\n")
        assert lines[0].startswith("Order Number,Status,")
        assert len(lines) == 3

    async def test_export_needs_both_dates(self, client: AsyncClient, admin_headers) -> None:
        response = await client.get(
            "/api/v1/repairs/export", params={"start_date": "2025-03-01"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Please select both start and end dates"

    async def test_export_with_nothing_in_range(
        self, client: AsyncClient, repair_repo, admin_headers
    ) -> None:
        await _seed(repair_repo)
        response = await client.get(
            "/api/v1/repairs/export",
            params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "NO_RECORDS_TO_EXPORT"
