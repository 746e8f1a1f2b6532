"""Firebase Authentication client over the Identity Toolkit REST API.

Admin operations (create / delete / update / list accounts) authenticate with
the service account's OAuth token. Password sign-in and self-service password
changes use the project's Web API key, exactly as the browser SDK does.
ID tokens are verified with google-auth (Google's public certificates).
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.infrastructure.exceptions import (
    AccountNotFoundError,
    EmailExistsError,
    IdentityProviderError,
    InvalidCredentialsError,
    InvalidTokenError,
    TooManyAttemptsError,
)
from app.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

_BASE = "https://identitytoolkit.googleapis.com/v1"
_LIST_PAGE_SIZE = 1000

_NOT_FOUND_CODES = frozenset({"USER_NOT_FOUND", "EMAIL_NOT_FOUND"})
_BAD_CREDENTIAL_CODES = frozenset(
    {"INVALID_PASSWORD", "INVALID_LOGIN_CREDENTIALS", "EMAIL_NOT_FOUND", "USER_DISABLED"}
)


@dataclass(frozen=True)
class IdentityAccount:
    """An identity-provider account (subset of the Identity Toolkit UserInfo)."""

    uid: str
    email: str | None
    display_name: str | None = None
    disabled: bool = False
    custom_claims: dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.custom_claims.get("admin") is True


@dataclass(frozen=True)
class SignInResult:
    """Tokens returned by password sign-in."""

    uid: str
    email: str
    id_token: str
    refresh_token: str
    expires_in: int


def _error_code(resp: httpx.Response) -> tuple[str, str]:
    """Return (code, message) from an Identity Toolkit error body.

    Messages look like ``EMAIL_EXISTS`` or ``WEAK_PASSWORD : Password should be ...``.
    """
    try:
        message = resp.json().get("error", {}).get("message", "")
    except ValueError:
        message = resp.text
    code = message.split(" ", 1)[0].strip() if message else ""
    return code, message


def _raise_for_identity_error(resp: httpx.Response) -> None:
    code, message = _error_code(resp)
    if code == "EMAIL_EXISTS" or code == "DUPLICATE_EMAIL":
        raise EmailExistsError(message, code)
    if code in _NOT_FOUND_CODES:
        raise AccountNotFoundError(message, code)
    if code.startswith("TOO_MANY_ATTEMPTS"):
        raise TooManyAttemptsError(message, code)
    if code in ("INVALID_ID_TOKEN", "TOKEN_EXPIRED", "CREDENTIAL_TOO_OLD_LOGIN_AGAIN"):
        raise InvalidTokenError(message, code)
    raise IdentityProviderError(message or f"Identity Toolkit returned {resp.status_code}", code)


def _account_from_user_info(info: dict[str, Any]) -> IdentityAccount:
    raw_claims = info.get("customAttributes")
    claims: dict[str, Any] = {}
    if raw_claims:
        try:
            claims = json.loads(raw_claims)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed customAttributes for %s", info.get("localId"))
    return IdentityAccount(
        uid=info["localId"],
        email=info.get("email"),
        display_name=info.get("displayName"),
        disabled=bool(info.get("disabled", False)),
        custom_claims=claims,
    )


def _verify_id_token_sync(token: str, project_id: str) -> dict[str, Any]:
    from google.auth.transport.requests import Request
    from google.oauth2 import id_token

    return id_token.verify_firebase_token(token, Request(), audience=project_id)


class FirebaseIdentityClient:
    """Async Identity Toolkit client (admin + password sign-in).

    The Firestore client's credentials and project id are reused; pass
    an httpx.AsyncClient to share a connection pool or to mock in tests.
    """

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        web_api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self._web_api_key = web_api_key
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=30.0)
        self._owns_http = http_client is None

    @property
    def project_id(self) -> str:
        return self._project_id

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _admin_post(self, action: str, body: dict[str, Any]) -> dict[str, Any]:
        from app.infrastructure.firebase._rest_client import _get_access_token

        token = await asyncio.to_thread(_get_access_token, self._credentials)
        url = f"{_BASE}/projects/{self._project_id}/accounts{action}"
        try:
            resp = await self._http.post(
                url, json=body, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.TransportError as e:
            raise IdentityProviderError(f"Identity Toolkit request failed: {e}") from e
        if resp.status_code != 200:
            _raise_for_identity_error(resp)
        return resp.json() if resp.content else {}

    async def _public_post(self, action: str, body: dict[str, Any]) -> dict[str, Any]:
        if not self._web_api_key:
            raise IdentityProviderError(
                "FIREBASE_WEB_API_KEY is required for password sign-in", "CONFIGURATION"
            )
        url = f"{_BASE}/accounts:{action}"
        try:
            resp = await self._http.post(url, params={"key": self._web_api_key}, json=body)
        except httpx.TransportError as e:
            raise IdentityProviderError(f"Identity Toolkit request failed: {e}") from e
        if resp.status_code != 200:
            code, message = _error_code(resp)
            if code in _BAD_CREDENTIAL_CODES:
                raise InvalidCredentialsError(message, code)
            _raise_for_identity_error(resp)
        return resp.json()

    @traced("identity.create_account")
    async def create_account(
        self, email: str, password: str, display_name: str | None = None
    ) -> IdentityAccount:
        """Create an e-mail/password account.

        Raises:
            EmailExistsError: An account already uses the e-mail.
        """
        body: dict[str, Any] = {"email": email, "password": password}
        if display_name:
            body["displayName"] = display_name
        out = await self._admin_post("", body)
        logger.info("Identity account created: %s", email)
        return IdentityAccount(uid=out["localId"], email=out.get("email", email), display_name=display_name)

    @traced("identity.delete_account")
    async def delete_account(self, uid: str) -> None:
        """Delete an account.

        Raises:
            AccountNotFoundError: No account with the uid.
        """
        await self._admin_post(":delete", {"localId": uid})
        logger.info("Identity account deleted: %s", uid)

    @traced("identity.set_password")
    async def set_password(self, uid: str, password: str) -> None:
        """Set an account's password (admin reset)."""
        await self._admin_post(":update", {"localId": uid, "password": password})
        logger.info("Identity account password reset: %s", uid)

    async def set_custom_claims(self, uid: str, claims: dict[str, Any]) -> None:
        """Replace an account's custom claims (e.g. {"admin": true})."""
        await self._admin_post(
            ":update", {"localId": uid, "customAttributes": json.dumps(claims)}
        )

    async def get_account(self, uid: str) -> IdentityAccount | None:
        """Return the account or None when it does not exist."""
        out = await self._admin_post(":lookup", {"localId": [uid]})
        users = out.get("users") or []
        return _account_from_user_info(users[0]) if users else None

    async def list_accounts(self) -> AsyncIterator[IdentityAccount]:
        """Yield every account in the project (paged batchGet)."""
        from app.infrastructure.firebase._rest_client import _get_access_token

        page_token: str | None = None
        url = f"{_BASE}/projects/{self._project_id}/accounts:batchGet"
        while True:
            token = await asyncio.to_thread(_get_access_token, self._credentials)
            params: dict[str, Any] = {"maxResults": _LIST_PAGE_SIZE}
            if page_token:
                params["nextPageToken"] = page_token
            try:
                resp = await self._http.get(
                    url, params=params, headers={"Authorization": f"Bearer {token}"}
                )
            except httpx.TransportError as e:
                raise IdentityProviderError(f"Identity Toolkit request failed: {e}") from e
            if resp.status_code != 200:
                _raise_for_identity_error(resp)
            out = resp.json()
            for info in out.get("users") or []:
                yield _account_from_user_info(info)
            page_token = out.get("nextPageToken")
            if not page_token:
                return

    @traced("identity.sign_in")
    async def sign_in_with_password(self, email: str, password: str) -> SignInResult:
        """Password sign-in; returns an ID token for the account.

        Raises:
            InvalidCredentialsError: Unknown e-mail, wrong password or disabled account.
            TooManyAttemptsError: Provider throttled the account.
        """
        out = await self._public_post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return SignInResult(
            uid=out["localId"],
            email=out.get("email", email),
            id_token=out["idToken"],
            refresh_token=out.get("refreshToken", ""),
            expires_in=int(out.get("expiresIn", 3600)),
        )

    async def change_own_password(self, id_token: str, new_password: str) -> str:
        """Change the signed-in user's password; returns the fresh ID token.

        Raises:
            InvalidTokenError: Token expired or sign-in too old (re-login required).
        """
        out = await self._public_post(
            "update",
            {"idToken": id_token, "password": new_password, "returnSecureToken": True},
        )
        return out.get("idToken", id_token)

    async def verify_id_token(self, token: str) -> dict[str, Any]:
        """Verify a Firebase ID token and return its claims.

        Raises:
            InvalidTokenError: Signature, expiry, audience or issuer check failed.
        """
        try:
            claims = await asyncio.to_thread(_verify_id_token_sync, token, self._project_id)
        except ValueError as e:
            raise InvalidTokenError(str(e), "INVALID_ID_TOKEN") from e
        if not claims or not claims.get("sub"):
            raise InvalidTokenError("ID token has no subject", "INVALID_ID_TOKEN")
        return claims
