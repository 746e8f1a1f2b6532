"""Repair ticket API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.enums import RepairStatus


class RepairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None
    order_number: str
    description: str
    location: str
    submitter_name: str
    submitter_email: str
    submitter_uid: str
    image_urls: list[str] = Field(default_factory=list)
    status: str
    created_at: datetime | None = None
    completed_at: datetime | None = None
    completion_reason: str | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    follow_up_actions: list[str] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _status_to_str(cls, v: RepairStatus | str) -> str:
        """Accept RepairStatus from the entity; serialize to str for JSON."""
        return v.value if isinstance(v, RepairStatus) else v


class RepairListResponse(BaseModel):
    """One page of tickets. next_cursor is passed back as ?cursor= for the next page."""

    items: list[RepairResponse]
    next_cursor: str | None = None
    has_more: bool = False


class RepairCountsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pending: int
    completed: int
    cancelled: int
    total: int


class StatusChangeRequest(BaseModel):
    """Optional free-text reason for completing or cancelling a ticket."""

    reason: str | None = Field(default=None, max_length=2000)


class FollowUpRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)
