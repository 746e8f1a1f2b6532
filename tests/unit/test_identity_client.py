"""FirebaseIdentityClient against a mocked Identity Toolkit (httpx.MockTransport)."""

import json
from unittest.mock import patch

import httpx
import pytest

from app.infrastructure.exceptions import (
    AccountNotFoundError,
    EmailExistsError,
    IdentityProviderError,
    InvalidCredentialsError,
    InvalidTokenError,
    TooManyAttemptsError,
)
from app.infrastructure.firebase.identity import FirebaseIdentityClient


def _error(message: str, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"error": {"code": status, "message": message}})


def _client(handler) -> FirebaseIdentityClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirebaseIdentityClient("demo-project", None, web_api_key="web-key", http_client=http)


@pytest.fixture(autouse=True)
def _service_account_token():
    with patch(
        "app.infrastructure.firebase._rest_client._get_access_token", return_value="sa-token"
    ):
        yield


async def test_create_account_sends_admin_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"localId": "uid-1", "email": "maryjane7@repairportal.com"})

    account = await _client(handler).create_account(
        "maryjane7@repairportal.com", "TempPass123!", display_name="maryjane7"
    )
    assert account.uid == "uid-1"
    request = seen[0]
    assert request.url.path == "/v1/projects/demo-project/accounts"
    assert request.headers["Authorization"] == "Bearer sa-token"
    assert json.loads(request.content) == {
        "email": "maryjane7@repairportal.com",
        "password": "TempPass123!",
        "displayName": "maryjane7",
    }


@pytest.mark.parametrize(
    ("message", "error_type"),
    [
        ("EMAIL_EXISTS", EmailExistsError),
        ("USER_NOT_FOUND", AccountNotFoundError),
        ("TOO_MANY_ATTEMPTS_TRY_LATER : Access blocked", TooManyAttemptsError),
        ("WEAK_PASSWORD : Password should be at least 6 characters", IdentityProviderError),
    ],
)
async def test_admin_errors_translated(message: str, error_type: type) -> None:
    client = _client(lambda request: _error(message))
    with pytest.raises(error_type) as exc_info:
        await client.create_account("a@b.c", "pw")
    assert exc_info.value.code == message.split(" ", 1)[0]


async def test_sign_in_uses_web_api_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"localId": "uid-1", "email": "a@b.c", "idToken": "id-tok", "expiresIn": "3600"},
        )

    result = await _client(handler).sign_in_with_password("a@b.c", "pw")
    assert result.id_token == "id-tok"
    assert result.expires_in == 3600
    assert seen[0].url.path == "/v1/accounts:signInWithPassword"
    assert seen[0].url.params["key"] == "web-key"
    assert "Authorization" not in seen[0].headers


@pytest.mark.parametrize("message", ["INVALID_LOGIN_CREDENTIALS", "INVALID_PASSWORD", "USER_DISABLED"])
async def test_bad_credentials(message: str) -> None:
    with pytest.raises(InvalidCredentialsError):
        await _client(lambda request: _error(message)).sign_in_with_password("a@b.c", "pw")


async def test_sign_in_without_web_key() -> None:
    client = FirebaseIdentityClient(
        "demo-project",
        None,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))),
    )
    with pytest.raises(IdentityProviderError, match="FIREBASE_WEB_API_KEY"):
        await client.sign_in_with_password("a@b.c", "pw")


async def test_change_password_with_stale_login() -> None:
    client = _client(lambda request: _error("CREDENTIAL_TOO_OLD_LOGIN_AGAIN"))
    with pytest.raises(InvalidTokenError):
        await client.change_own_password("old-token", "N3w!Password")


async def test_list_accounts_follows_pages() -> None:
    pages = {
        None: {
            "users": [
                {"localId": "a", "email": "a@x", "customAttributes": json.dumps({"admin": True})}
            ],
            "nextPageToken": "p2",
        },
        "p2": {"users": [{"localId": "b", "email": "b@x", "customAttributes": "{broken"}]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=pages[request.url.params.get("nextPageToken")])

    accounts = [a async for a in _client(handler).list_accounts()]
    assert [a.uid for a in accounts] == ["a", "b"]
    assert accounts[0].is_admin
    assert accounts[1].custom_claims == {}


async def test_transport_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    with pytest.raises(IdentityProviderError, match="request failed"):
        await _client(handler).delete_account("uid-1")
