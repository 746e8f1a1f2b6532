"""Portal user API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserCreateRequest(BaseModel):
    """Request body for creating a portal user (admin only).

    When password is omitted the account gets the default password and must
    change it at first sign-in.
    """

    username: str = Field(..., min_length=1, max_length=128)
    department: str = Field(..., min_length=1, max_length=200)
    password: str | None = Field(default=None, min_length=6)


class UserUpdateRequest(BaseModel):
    """Request body for updating a portal user (partial)."""

    username: str | None = Field(default=None, min_length=1, max_length=128)
    department: str | None = Field(default=None, min_length=1, max_length=200)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None
    uid: str
    email: str
    username: str
    department: str
    is_first_login: bool
    created_at: datetime | None = None
    created_by: str = "admin"
    last_login: datetime | None = None
    status: str = "active"


class ReconcileResponse(BaseModel):
    """Result of POST /users/reconcile."""

    model_config = ConfigDict(from_attributes=True)

    dry_run: bool
    orphan_accounts: list[str]
    orphan_documents: list[str]
    failures: list[str]
    is_clean: bool
