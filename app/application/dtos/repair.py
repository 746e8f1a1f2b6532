"""DTOs for repair ticket use cases (pages, cursors, counters)."""

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime

from app.domain.entities.repair_ticket import RepairTicket
from app.domain.exceptions import ValidationException


@dataclass(frozen=True)
class RepairCursor:
    """Position after the last ticket of a page: (createdAt, document id).

    The id breaks ties between tickets created in the same instant.
    """

    created_at: datetime
    id: str

    def encode(self) -> str:
        """Opaque URL-safe token for API clients."""
        raw = json.dumps({"t": self.created_at.isoformat(), "id": self.id})
        return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")

    @classmethod
    def decode(cls, token: str) -> "RepairCursor":
        """Parse a token produced by encode(). Raises ValidationException if malformed."""
        try:
            padded = token + "=" * (-len(token) % 4)
            data = json.loads(base64.urlsafe_b64decode(padded.encode()))
            return cls(created_at=datetime.fromisoformat(data["t"]), id=str(data["id"]))
        except (binascii.Error, ValueError, KeyError, TypeError) as e:
            raise ValidationException("Invalid pagination cursor", field="cursor") from e

    @classmethod
    def after(cls, ticket: RepairTicket) -> "RepairCursor | None":
        if ticket.created_at is None or ticket.id is None:
            return None
        return cls(created_at=ticket.created_at, id=ticket.id)


@dataclass(frozen=True)
class RepairPage:
    """One page of tickets; next_cursor is None on the last page."""

    items: list[RepairTicket] = field(default_factory=list)
    next_cursor: RepairCursor | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


@dataclass(frozen=True)
class RepairCounts:
    """Number of tickets per status (dashboard tabs)."""

    pending: int = 0
    completed: int = 0
    cancelled: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.completed + self.cancelled


@dataclass(frozen=True)
class NewRepair:
    """Submission form fields (photos already uploaded)."""

    description: str
    location: str
    image_urls: list[str] = field(default_factory=list)
