"""Auth API schemas."""

from pydantic import BaseModel, Field

from app.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Username (or full e-mail) and password."""

    username: str = Field(..., min_length=1, description="Username or e-mail")
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """ID token for the Authorization header plus the signed-in profile."""

    id_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
    must_change_password: bool


class ChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Fresh ID token issued after a password change."""

    id_token: str
    token_type: str = "bearer"


class SessionResponse(BaseModel):
    """Response for GET /auth/me."""

    uid: str
    email: str | None
    is_admin: bool
    user: UserResponse | None = None
