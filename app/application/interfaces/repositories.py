"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs or domain entities only; no infrastructure imports.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.application.dtos.repair import RepairCounts, RepairCursor, RepairPage
    from app.domain.entities.portal_user import PortalUser
    from app.domain.entities.repair_ticket import RepairTicket
    from app.domain.enums import RepairStatus


OnError = Callable[[Exception], Awaitable[None] | None]


class ISubscription(Protocol):
    """Handle returned by live queries."""

    @property
    def active(self) -> bool: ...

    def unsubscribe(self) -> None:
        """Stop deliveries. Calling it again is a no-op."""


# Repair ticket repository interface
class IRepairRepository(Protocol):
    """Protocol for the repairs collection."""

    async def create(self, ticket: RepairTicket) -> RepairTicket:
        """Insert a pending ticket; createdAt is assigned by the store."""

    async def get(self, repair_id: str) -> RepairTicket | None:
        """Return the ticket or None."""

    async def exists_order_number(self, order_number: str) -> bool:
        """Return True if any ticket already uses the order number."""

    def subscribe_by_status(
        self,
        status: RepairStatus,
        on_change: Callable[[list[RepairTicket]], Any],
        *,
        page_size: int,
        search: str | None = None,
        on_error: OnError | None = None,
    ) -> ISubscription:
        """Live first page (or, with a non-blank search, the whole filtered set)."""

    async def load_more(
        self, status: RepairStatus, cursor: RepairCursor, page_size: int
    ) -> RepairPage:
        """Next page after cursor, newest first."""

    async def first_page(self, status: RepairStatus, page_size: int) -> RepairPage:
        """First page, newest first (one-shot)."""

    async def set_status(
        self, repair_id: str, new_status: RepairStatus, reason: str | None
    ) -> RepairTicket:
        """Move a pending ticket to a terminal status."""

    async def append_follow_up(self, repair_id: str, note: str) -> RepairTicket:
        """Append a note to a pending ticket."""

    async def search_across_all(self, status: RepairStatus, text: str) -> list[RepairTicket]:
        """Every ticket with status whose searchable text contains text."""

    async def count_by_status(self) -> RepairCounts:
        """Ticket count per status."""

    async def list_by_submitter(self, uid: str) -> list[RepairTicket]:
        """Tickets submitted by uid, newest first."""


# User repository interface
class IUserRepository(Protocol):
    """Protocol for the users collection."""

    async def insert(self, user: PortalUser) -> PortalUser:
        """Create the profile document."""

    async def get(self, user_id: str) -> PortalUser | None:
        """Return user by document id."""

    async def get_by_uid(self, uid: str) -> PortalUser | None:
        """Return user by identity uid."""

    async def list_all(self) -> list[PortalUser]:
        """Every user document."""

    async def update(
        self, user_id: str, *, username: str | None = None, department: str | None = None
    ) -> PortalUser:
        """Update profile fields; the identity account is untouched."""

    async def delete(self, user_id: str) -> None:
        """Delete the profile document (missing is fine)."""

    async def mark_logged_in(self, user_id: str) -> None:
        """Stamp lastLogin with server time."""

    async def clear_first_login(self, user_id: str) -> None:
        """Set isFirstLogin false after a password change."""

    async def reset_first_login(self, user_id: str) -> None:
        """Set isFirstLogin true after an admin password reset."""

    def subscribe_all(
        self,
        on_change: Callable[[list[PortalUser]], Any],
        *,
        on_error: OnError | None = None,
    ) -> ISubscription:
        """Live query over every user document."""
