"""Legacy /api user routes and the /functions callables, in their own response shapes."""

import pytest
from httpx import AsyncClient

from tests.conftest import EMAIL_DOMAIN


class TestLegacyCreateUser:
    async def test_requires_token(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/create-user",
            json={"username": "maryjane7", "department": "IT", "password": "Secret#123"},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "User must be authenticated"}

    async def test_requires_admin(self, client: AsyncClient, user_headers) -> None:
        response = await client.post(
            "/api/create-user",
            json={"username": "maryjane7", "department": "IT", "password": "Secret#123"},
            headers=user_headers,
        )
        assert response.status_code == 403
        assert "error" in response.json()

    async def test_missing_fields(self, client: AsyncClient, admin_headers) -> None:
        response = await client.post(
            "/api/create-user", json={"username": "maryjane7"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json() == {
            "error": "Missing required fields: username, department, or password"
        }

    async def test_creates_account_and_profile(
        self, client: AsyncClient, admin_headers, identity, user_repo
    ) -> None:
        response = await client.post(
            "/api/create-user",
            json={
                "username": "maryjane7",
                "department": "IT",
                "password": "Secret#123",
                "createdBy": "front-desk",
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "User created successfully"
        assert data["email"] == f"maryjane7@{EMAIL_DOMAIN}"
        assert identity.passwords[data["uid"]] == "Secret#123"
        (profile,) = user_repo.users.values()
        assert profile.created_by == "front-desk"
        assert profile.is_first_login is True

    async def test_free_text_username_is_sanitized_into_email(
        self, client: AsyncClient, admin_headers, identity, user_repo
    ) -> None:
        response = await client.post(
            "/api/create-user",
            json={"username": "O'Brien  José", "department": "IT", "password": "Secret#123"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["email"] == f"obrienjose@{EMAIL_DOMAIN}"
        assert identity.accounts[response.json()["uid"]].email == f"obrienjose@{EMAIL_DOMAIN}"
        (profile,) = user_repo.users.values()
        assert profile.username == "O'Brien  José"
        assert profile.email == f"obrienjose@{EMAIL_DOMAIN}"

    async def test_username_without_usable_characters(
        self, client: AsyncClient, admin_headers, user_repo
    ) -> None:
        response = await client.post(
            "/api/create-user",
            json={"username": "'!?", "department": "IT", "password": "Secret#123"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Username must contain at least one letter or digit"}
        assert not user_repo.users

    async def test_duplicate(self, client: AsyncClient, admin_headers) -> None:
        body = {"username": "maryjane7", "department": "IT", "password": "Secret#123"}
        await client.post("/api/create-user", json=body, headers=admin_headers)
        response = await client.post("/api/create-user", json=body, headers=admin_headers)
        assert response.status_code == 409
        assert response.json() == {"error": "A user with this username already exists"}


class TestLegacyDeleteUser:
    async def test_deletes_account_only(
        self, client: AsyncClient, portal_user, admin_headers, identity, user_repo
    ) -> None:
        response = await client.delete("/api/delete-user/user-uid", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "User deleted from Authentication"}
        assert "user-uid" not in identity.accounts
        assert portal_user.id in user_repo.users

    async def test_unknown_account(self, client: AsyncClient, admin_headers) -> None:
        response = await client.delete("/api/delete-user/nobody", headers=admin_headers)
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to delete user"

    async def test_requires_admin(self, client: AsyncClient, user_headers, identity) -> None:
        response = await client.delete("/api/delete-user/admin-uid", headers=user_headers)
        assert response.status_code == 403
        assert "admin-uid" in identity.accounts


class TestCallables:
    async def test_unauthenticated(self, client: AsyncClient) -> None:
        response = await client.post("/functions/deleteUser", json={"data": {"uid": "user-uid"}})
        assert response.status_code == 401
        assert response.json()["error"]["status"] == "UNAUTHENTICATED"

    async def test_permission_denied_before_validation(
        self, client: AsyncClient, user_headers
    ) -> None:
        response = await client.post("/functions/createUser", json={"data": {}}, headers=user_headers)
        assert response.status_code == 403
        assert response.json()["error"]["status"] == "PERMISSION_DENIED"

    @pytest.mark.parametrize(
        ("name", "data", "message"),
        [
            ("createUser", {"username": "maryjane7"}, "Missing username or password"),
            ("deleteUser", {}, "Missing user ID"),
            ("resetUserPassword", {"uid": "user-uid"}, "Missing user ID or password"),
        ],
    )
    async def test_invalid_argument(
        self, client: AsyncClient, admin_headers, name: str, data: dict, message: str
    ) -> None:
        response = await client.post(f"/functions/{name}", json={"data": data}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json() == {"error": {"status": "INVALID_ARGUMENT", "message": message}}

    async def test_create_user(self, client: AsyncClient, admin_headers, identity) -> None:
        response = await client.post(
            "/functions/createUser",
            json={"data": {"username": "maryjane7", "password": "Secret#123"}},
            headers=admin_headers,
        )
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["email"] == f"maryjane7@{EMAIL_DOMAIN}"
        assert result["uid"] in identity.accounts

    async def test_create_existing(self, client: AsyncClient, admin_headers) -> None:
        response = await client.post(
            "/functions/createUser",
            json={"data": {"username": "johnsmith1", "password": "Secret#123"}},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"]["status"] == "ALREADY_EXISTS"

    async def test_reset_password(self, client: AsyncClient, admin_headers, identity) -> None:
        response = await client.post(
            "/functions/resetUserPassword",
            json={"data": {"uid": "user-uid", "password": "Fresh#4567"}},
            headers=admin_headers,
        )
        assert response.json() == {
            "result": {"success": True, "message": "Password reset successfully"}
        }
        assert identity.passwords["user-uid"] == "Fresh#4567"

    async def test_delete_unknown(self, client: AsyncClient, admin_headers) -> None:
        response = await client.post(
            "/functions/deleteUser", json={"data": {"uid": "nobody"}}, headers=admin_headers
        )
        assert response.status_code == 404
        assert response.json()["error"]["status"] == "NOT_FOUND"
