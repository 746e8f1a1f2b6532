"""Auth API: password sign-in, password change and the current session."""

from fastapi import APIRouter, Request

from app.api.v1.dependencies import SessionDep, UserServiceDep
from app.core.limiter import check_login_rate_per_identifier, limit_auth, limit_writes
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    SessionResponse,
    TokenResponse,
)
from app.schemas.user import UserResponse

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@limit_auth
async def login(request: Request, body: LoginRequest, users: UserServiceDep):
    """Sign in with username (or e-mail) and password.

    The returned id_token goes in ``Authorization: Bearer``. When
    must_change_password is true the client must call POST /auth/password
    before anything else.
    """
    check_login_rate_per_identifier(body.username)
    result = await users.login(body.username, body.password)
    return LoginResponse(
        id_token=result.id_token,
        expires_in=result.expires_in,
        user=UserResponse.model_validate(result.user),
        must_change_password=result.must_change_password,
    )


@router.post("/password", response_model=TokenResponse)
@limit_writes
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    session: SessionDep,
    users: UserServiceDep,
):
    """Change the caller's password and clear the first-login flag."""
    token = await users.change_password(session, body.new_password, body.confirm_password)
    return TokenResponse(id_token=token)


@router.get("/me", response_model=SessionResponse)
async def me(session: SessionDep, users: UserServiceDep):
    """Current caller and their portal profile (None for admins without one)."""
    profile = await users.profile_for(session)
    return SessionResponse(
        uid=session.uid,
        email=session.email,
        is_admin=session.is_admin,
        user=UserResponse.model_validate(profile) if profile else None,
    )
