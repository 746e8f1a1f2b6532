"""Privileged callable functions: /functions/createUser, deleteUser, resetUserPassword.

Speaks the Firebase callable protocol so the existing admin client can call
them unchanged: the request body is ``{"data": {...}}``, success is
``{"result": {...}}`` and failure is ``{"error": {"status", "message"}}``
with the matching HTTP status. The caller's ID token is the bearer token.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials

from app.api.v1.dependencies import (
    bearer_scheme,
    get_identity_functions,
    get_identity_provider_optional,
    resolve_session,
)
from app.application.dtos.session import Session
from app.application.interfaces.services import IIdentityProvider
from app.application.services.identity_functions import IdentityFunctions, require_admin
from app.domain.exceptions import PortalException, ValidationException
from app.schemas.functions import CallableRequest

logger = logging.getLogger(__name__)

router = APIRouter()

# error_code -> (callable status, HTTP status)
_CALLABLE_STATUS: dict[str, tuple[str, int]] = {
    "VALIDATION_ERROR": ("INVALID_ARGUMENT", 400),
    "AUTHENTICATION_ERROR": ("UNAUTHENTICATED", 401),
    "PERMISSION_DENIED": ("PERMISSION_DENIED", 403),
    "ACCOUNT_NOT_FOUND": ("NOT_FOUND", 404),
    "RESOURCE_NOT_FOUND": ("NOT_FOUND", 404),
    "ACCOUNT_ALREADY_EXISTS": ("ALREADY_EXISTS", 409),
    "TOO_MANY_ATTEMPTS": ("RESOURCE_EXHAUSTED", 429),
    "STORE_UNAVAILABLE": ("UNAVAILABLE", 503),
}
_INTERNAL = ("INTERNAL", 500)

Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]
Identity = Annotated[IIdentityProvider | None, Depends(get_identity_provider_optional)]
Functions = Annotated[IdentityFunctions, Depends(get_identity_functions)]


def callable_error(exc: PortalException) -> JSONResponse:
    status, http_status = _CALLABLE_STATUS.get(exc.error_code, _INTERNAL)
    return JSONResponse(
        status_code=http_status,
        content={"error": {"status": status, "message": exc.message}},
    )


def _require(data: dict[str, Any], *names: str, message: str) -> list[str]:
    values = [data.get(n) for n in names]
    if not all(isinstance(v, str) and v for v in values):
        raise ValidationException(message)
    return values


async def _call(
    name: str,
    credentials: HTTPAuthorizationCredentials | None,
    identity: IIdentityProvider | None,
    handler: Callable[[Session], Awaitable[dict[str, Any]]],
) -> JSONResponse:
    try:
        session = await resolve_session(identity, credentials.credentials if credentials else None)
        require_admin(session, name)
        result = await handler(session)
    except PortalException as e:
        if e.error_code not in _CALLABLE_STATUS:
            logger.error("Callable %s failed: %s", name, e.message)
        return callable_error(e)
    return JSONResponse(content={"result": result})


def _data(body: CallableRequest | None) -> dict[str, Any]:
    return body.data if body is not None else {}


@router.post("/createUser")
async def create_user(
    credentials: Credentials,
    identity: Identity,
    functions: Functions,
    body: CallableRequest | None = None,
):
    """``{username, password}`` -> ``{uid, email}``."""
    data = _data(body)

    async def handler(session: Session) -> dict[str, Any]:
        username, password = _require(
            data, "username", "password", message="Missing username or password"
        )
        created = await functions.create_identity(session, username, password)
        return {"uid": created.uid, "email": created.email}

    return await _call("createUser", credentials, identity, handler)


@router.post("/deleteUser")
async def delete_user(
    credentials: Credentials,
    identity: Identity,
    functions: Functions,
    body: CallableRequest | None = None,
):
    """``{uid}`` -> ``{success, message}``."""
    data = _data(body)

    async def handler(session: Session) -> dict[str, Any]:
        (uid,) = _require(data, "uid", message="Missing user ID")
        await functions.delete_identity(session, uid)
        return {"success": True, "message": "User deleted successfully"}

    return await _call("deleteUser", credentials, identity, handler)


@router.post("/resetUserPassword")
async def reset_user_password(
    credentials: Credentials,
    identity: Identity,
    functions: Functions,
    body: CallableRequest | None = None,
):
    """``{uid, password}`` -> ``{success, message}``."""
    data = _data(body)

    async def handler(session: Session) -> dict[str, Any]:
        uid, password = _require(data, "uid", "password", message="Missing user ID or password")
        await functions.reset_password(session, uid, password)
        return {"success": True, "message": "Password reset successfully"}

    return await _call("resetUserPassword", credentials, identity, handler)
