"""Legacy user-management surface under /api, kept for older admin clients.

Responses keep the old shapes: ``{success, message, ...}`` on success and
``{error}`` / ``{error, details}`` on failure. Unlike the old server these
routes require an admin bearer token. CORS on /api/* allows any origin
(see app.middleware.cors).
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials

from app.api.v1.dependencies import (
    bearer_scheme,
    get_identity_functions,
    get_identity_provider_optional,
    get_user_service,
    resolve_session,
)
from app.application.interfaces.services import IIdentityProvider
from app.application.services.identity_functions import IdentityFunctions, require_admin
from app.application.services.user_service import UserService
from app.core.exception_handlers import status_for
from app.domain.exceptions import (
    AccountAlreadyExistsException,
    AuthenticationException,
    AuthorizationException,
    PortalException,
    ValidationException,
)
from app.schemas.functions import LegacyCreateUserRequest
from app.schemas.health import LegacyHealthResponse
from app.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]
Identity = Annotated[IIdentityProvider | None, Depends(get_identity_provider_optional)]


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    content = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _auth_error(exc: PortalException) -> JSONResponse | None:
    if isinstance(exc, (AuthenticationException, AuthorizationException)):
        return _error(status_for(exc), exc.message)
    return None


@router.get("/health", response_model=LegacyHealthResponse)
def legacy_health() -> LegacyHealthResponse:
    return LegacyHealthResponse(timestamp=utc_now().isoformat().replace("+00:00", "Z"))


@router.post("/create-user", status_code=201)
async def legacy_create_user(
    body: LegacyCreateUserRequest,
    credentials: Credentials,
    identity: Identity,
    users: Annotated[UserService, Depends(get_user_service)],
):
    """Create identity account and profile document.

    The username is not held to the portal username rules; it is only
    sanitized into the e-mail local part.
    """
    try:
        session = require_admin(
            await resolve_session(identity, credentials.credentials if credentials else None),
            "create",
        )
    except PortalException as e:
        return _auth_error(e) or _error(500, "Failed to create user", e.message)

    if not body.username or not body.department or not body.password:
        return _error(400, "Missing required fields: username, department, or password")
    try:
        user = await users.create_user(
            session,
            body.username,
            body.department,
            password=body.password,
            created_by=body.created_by,
            enforce_username_policy=False,
        )
    except AccountAlreadyExistsException:
        return _error(409, "A user with this username already exists")
    except ValidationException as e:
        return _error(400, e.message)
    except PortalException as e:
        logger.error("Legacy create-user failed: %s", e.message)
        return _error(500, "Failed to create user", e.message)
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "User created successfully",
            "uid": user.uid,
            "email": user.email,
        },
    )


@router.delete("/delete-user/{uid}")
async def legacy_delete_user(
    uid: str,
    credentials: Credentials,
    identity: Identity,
    functions: Annotated[IdentityFunctions, Depends(get_identity_functions)],
):
    """Delete the identity account only; the profile document is left to the caller."""
    try:
        session = await resolve_session(identity, credentials.credentials if credentials else None)
        await functions.delete_identity(session, uid)
    except PortalException as e:
        auth = _auth_error(e)
        if auth is not None:
            return auth
        logger.error("Legacy delete-user failed for %s: %s", uid, e.message)
        return _error(500, "Failed to delete user", e.message)
    return {"success": True, "message": "User deleted from Authentication"}
