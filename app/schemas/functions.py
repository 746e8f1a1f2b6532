"""Callable-function protocol schemas (``{"data": ...}`` in, ``{"result": ...}`` out)."""

from typing import Any

from pydantic import BaseModel, Field


class CallableRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class CallableError(BaseModel):
    status: str
    message: str


class CallableErrorResponse(BaseModel):
    error: CallableError


class LegacyCreateUserRequest(BaseModel):
    """Body of POST /api/create-user. Missing fields are reported as 400 by the route."""

    username: str | None = None
    department: str | None = None
    password: str | None = None
    created_by: str | None = Field(default=None, alias="createdBy")
