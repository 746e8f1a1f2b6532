"""Repair ticket domain entity.

Represents a repair request and its pending → completed | cancelled
lifecycle, independent of persistence.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.enums import RepairStatus
from app.domain.exceptions import InvalidStatusTransitionException, ValidationException


@dataclass
class RepairTicket:
    """Domain entity for a repair ticket.

    Terminal states are immutable: once completed or cancelled, the status,
    its timestamp and its reason never change and follow-ups are rejected.
    ``created_at`` is None until the store assigns it.
    """

    id: str | None
    order_number: str
    description: str
    location: str
    submitter_name: str
    submitter_email: str
    submitter_uid: str
    image_urls: list[str] = field(default_factory=list)
    status: RepairStatus = RepairStatus.PENDING
    created_at: datetime | None = None
    completed_at: datetime | None = None
    completion_reason: str | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    follow_up_actions: list[str] = field(default_factory=list)

    def validate_new(self) -> None:
        """Validate a ticket about to be submitted. Raises ValidationException if invalid."""
        if not self.description or not self.description.strip():
            raise ValidationException("Description is required", field="description")
        if not self.location or not self.location.strip():
            raise ValidationException("Location is required", field="location")
        if self.status is not RepairStatus.PENDING:
            raise ValidationException("New repairs must be pending", field="status")

    @property
    def is_pending(self) -> bool:
        return self.status is RepairStatus.PENDING

    def ensure_can_transition(self, target: RepairStatus) -> None:
        """Raise InvalidStatusTransitionException unless status may move to target."""
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransitionException(
                self.id or "", self.status.value, target.value
            )

    def transition(self, target: RepairStatus, reason: str | None, at: datetime) -> None:
        """Move to a terminal status, stamping its timestamp and reason.

        Args:
            target: COMPLETED or CANCELLED.
            reason: Free text; blank is stored as None.
            at: Time of the transition.
        """
        self.ensure_can_transition(target)
        reason = normalize_reason(reason)
        self.status = target
        if target is RepairStatus.COMPLETED:
            self.completed_at = at
            self.completion_reason = reason
        else:
            self.cancelled_at = at
            self.cancellation_reason = reason

    def add_follow_up(self, note: str) -> None:
        """Append a follow-up note. Only pending tickets accept notes."""
        note = (note or "").strip()
        if not note:
            raise ValidationException("Follow-up action cannot be empty", field="note")
        if not self.is_pending:
            raise InvalidStatusTransitionException(
                self.id or "", self.status.value, "follow-up"
            )
        self.follow_up_actions = [*self.follow_up_actions, note]

    def date_for(self, status: RepairStatus) -> datetime | None:
        """Return the timestamp tied to a status (creation for PENDING)."""
        if status is RepairStatus.COMPLETED:
            return self.completed_at
        if status is RepairStatus.CANCELLED:
            return self.cancelled_at
        return self.created_at


def normalize_reason(reason: str | None) -> str | None:
    """Return stripped reason, or None when missing or blank."""
    if reason is None:
        return None
    reason = reason.strip()
    return reason or None


def searchable_fields(ticket: RepairTicket) -> list[str]:
    """Text the dashboard search looks through, lowercased."""
    return [
        (ticket.order_number or "").lower(),
        (ticket.description or "").lower(),
        (ticket.location or "").lower(),
        (ticket.submitter_name or "").lower(),
        " ".join(ticket.follow_up_actions).lower(),
        (ticket.completion_reason or "").lower(),
        (ticket.cancellation_reason or "").lower(),
    ]


def matches_search(ticket: RepairTicket, query: str | None) -> bool:
    """Case-insensitive substring match; a blank query matches everything."""
    if not query or not query.strip():
        return True
    needle = query.lower()
    return any(needle in text for text in searchable_fields(ticket))
