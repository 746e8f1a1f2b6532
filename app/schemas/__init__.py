"""Pydantic request/response schemas for the API."""

from app.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    SessionResponse,
    TokenResponse,
)
from app.schemas.functions import CallableRequest, LegacyCreateUserRequest
from app.schemas.health import HealthResponse, LegacyHealthResponse
from app.schemas.repair import (
    FollowUpRequest,
    RepairCountsResponse,
    RepairListResponse,
    RepairResponse,
    StatusChangeRequest,
)
from app.schemas.user import (
    ReconcileResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)

__all__ = [
    "CallableRequest",
    "ChangePasswordRequest",
    "FollowUpRequest",
    "HealthResponse",
    "LegacyCreateUserRequest",
    "LegacyHealthResponse",
    "LoginRequest",
    "LoginResponse",
    "ReconcileResponse",
    "RepairCountsResponse",
    "RepairListResponse",
    "RepairResponse",
    "SessionResponse",
    "StatusChangeRequest",
    "TokenResponse",
    "UserCreateRequest",
    "UserResponse",
    "UserUpdateRequest",
]
