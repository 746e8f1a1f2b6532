"""Tests for auth endpoints: sign-in, throttling, /me and password change."""

from httpx import AsyncClient

from app.core.limiter import LOGIN_PER_IDENTIFIER_LIMIT
from tests.conftest import USER_EMAIL, USER_PASSWORD


async def test_login_missing_body_returns_422(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/login", json={})
    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_login_with_username(client: AsyncClient, portal_user, user_repo) -> None:
    """First sign-in returns a token and asks for a password change."""
    response = await client.post(
        "/api/v1/auth/login", json={"username": "JohnSmith1", "password": USER_PASSWORD}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id_token"] == "token-user-uid"
    assert data["token_type"] == "bearer"
    assert data["must_change_password"] is True
    assert data["user"]["username"] == "johnsmith1"
    assert data["user"]["email"] == USER_EMAIL
    assert (await user_repo.get(portal_user.id)).last_login is not None


async def test_login_with_email(client: AsyncClient, portal_user) -> None:
    response = await client.post(
        "/api/v1/auth/login", json={"username": USER_EMAIL, "password": USER_PASSWORD}
    )
    assert response.status_code == 200


async def test_login_wrong_password_returns_401(client: AsyncClient, portal_user) -> None:
    response = await client.post(
        "/api/v1/auth/login", json={"username": "johnsmith1", "password": "wrong"}
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid username or password"


async def test_login_without_profile_returns_401(client: AsyncClient) -> None:
    """An identity account with no portal profile cannot sign in."""
    response = await client.post(
        "/api/v1/auth/login", json={"username": "johnsmith1", "password": USER_PASSWORD}
    )
    assert response.status_code == 401
    assert response.json()["message"] == "User not found"


async def test_login_throttled_per_username(client: AsyncClient, portal_user) -> None:
    for _ in range(LOGIN_PER_IDENTIFIER_LIMIT):
        await client.post("/api/v1/auth/login", json={"username": "johnsmith1", "password": "x"})
    response = await client.post(
        "/api/v1/auth/login", json={"username": "johnsmith1", "password": USER_PASSWORD}
    )
    assert response.status_code == 429
    assert response.json()["error"] == "TOO_MANY_ATTEMPTS"


async def test_me_requires_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


async def test_me_rejects_bad_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer forged"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


async def test_me_for_user(client: AsyncClient, portal_user, user_headers) -> None:
    response = await client.get("/api/v1/auth/me", headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["uid"] == "user-uid"
    assert data["is_admin"] is False
    assert data["user"]["department"] == "Maintenance"


async def test_me_for_admin_without_profile(client: AsyncClient, admin_headers) -> None:
    response = await client.get("/api/v1/auth/me", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["is_admin"] is True
    assert data["user"] is None


async def test_change_password_clears_first_login(
    client: AsyncClient, portal_user, user_repo, user_headers, identity
) -> None:
    response = await client.post(
        "/api/v1/auth/password",
        json={"new_password": "N3w!Password", "confirm_password": "N3w!Password"},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert response.json()["id_token"] == "token-user-uid-renewed"
    assert identity.passwords["user-uid"] == "N3w!Password"
    assert (await user_repo.get(portal_user.id)).is_first_login is False


async def test_change_password_mismatch_returns_400(
    client: AsyncClient, portal_user, user_headers, identity
) -> None:
    response = await client.post(
        "/api/v1/auth/password",
        json={"new_password": "N3w!Password", "confirm_password": "N3w!Passw0rd"},
        headers=user_headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Passwords do not match"
    assert identity.passwords["user-uid"] == USER_PASSWORD


async def test_token_without_identity_service_returns_503(bare_client: AsyncClient) -> None:
    response = await bare_client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer token-user-uid"}
    )
    assert response.status_code == 503
