"""Repair ticket application service: submission, triage, listing and export."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from typing import Any
from zoneinfo import ZoneInfo

from app.application.dtos.repair import NewRepair, RepairCounts, RepairCursor, RepairPage
from app.application.dtos.session import Session
from app.application.interfaces.repositories import IRepairRepository, ISubscription, IUserRepository
from app.application.services.csv_export import CsvExport, export_repairs_csv
from app.application.services.identity_functions import require_admin
from app.application.services.sorting import sort_repairs
from app.domain.entities.repair_ticket import RepairTicket
from app.domain.enums import ExportDateType, RepairSortField, RepairStatus, SortOrder
from app.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    ResourceNotFoundException,
    ValidationException,
)
from app.domain.value_objects import OrderNumber
from app.shared.utils.sanitization import InputSanitizer

logger = logging.getLogger(__name__)


class RepairService:
    """Use cases over repair tickets. Triage, listing and export are admin-only."""

    def __init__(
        self,
        repairs: IRepairRepository,
        users: IUserRepository,
        *,
        page_size: int = 100,
        order_number_max_attempts: int = 3,
        export_timezone: str = "UTC",
    ) -> None:
        self._repairs = repairs
        self._users = users
        self.page_size = page_size
        self._order_number_attempts = max(1, order_number_max_attempts)
        self._export_tz = ZoneInfo(export_timezone)

    async def _new_order_number(self) -> str:
        candidate = OrderNumber.generate()
        for _ in range(self._order_number_attempts):
            if not await self._repairs.exists_order_number(candidate.value):
                return candidate.value
            logger.warning("Order number %s already used; regenerating", candidate)
            candidate = OrderNumber.generate()
        return candidate.value

    @staticmethod
    def validate_form(form: NewRepair) -> None:
        """Reject blank description or location before any photo is uploaded."""
        for name, value in (("description", form.description), ("location", form.location)):
            if not InputSanitizer.sanitize_text(value):
                raise ValidationException(f"{name.capitalize()} is required", field=name)

    async def submit(self, session: Session | None, form: NewRepair) -> RepairTicket:
        """Create a pending ticket for the signed-in user.

        The submitter fields are a snapshot of the caller's profile.
        """
        if session is None:
            raise AuthenticationException("User must be authenticated")
        profile = await self._users.get_by_uid(session.uid)
        email = session.email or (profile.email if profile else "")
        ticket = RepairTicket(
            id=None,
            order_number=await self._new_order_number(),
            description=InputSanitizer.sanitize_text(form.description),
            location=InputSanitizer.sanitize_text(form.location),
            submitter_name=profile.username if profile else (email.split("@", 1)[0] if email else ""),
            submitter_email=email,
            submitter_uid=session.uid,
            image_urls=list(form.image_urls),
        )
        ticket.validate_new()
        return await self._repairs.create(ticket)

    async def get(self, session: Session | None, repair_id: str) -> RepairTicket:
        """Admins see every ticket; users only their own."""
        if session is None:
            raise AuthenticationException("User must be authenticated")
        ticket = await self._repairs.get(repair_id)
        if ticket is None:
            raise ResourceNotFoundException("repair", repair_id)
        if not session.is_admin and ticket.submitter_uid != session.uid:
            raise AuthorizationException(resource="repair", action="read")
        return ticket

    async def my_requests(self, session: Session | None) -> list[RepairTicket]:
        if session is None:
            raise AuthenticationException("User must be authenticated")
        return await self._repairs.list_by_submitter(session.uid)

    async def list_page(
        self,
        session: Session | None,
        status: RepairStatus,
        *,
        cursor: str | None = None,
        search: str | None = None,
        sort: RepairSortField = RepairSortField.CREATED_AT,
        order: SortOrder = SortOrder.DESC,
    ) -> RepairPage:
        """First page, next page after cursor, or (with search) every match at once."""
        require_admin(session, "list", "repair")
        if search and search.strip():
            items = await self._repairs.search_across_all(status, search)
            return RepairPage(items=sort_repairs(items, sort, order), next_cursor=None)
        if cursor:
            page = await self._repairs.load_more(status, RepairCursor.decode(cursor), self.page_size)
        else:
            page = await self._repairs.first_page(status, self.page_size)
        return RepairPage(items=sort_repairs(page.items, sort, order), next_cursor=page.next_cursor)

    def subscribe(
        self,
        session: Session | None,
        status: RepairStatus,
        on_change: Callable[[list[RepairTicket]], Any],
        *,
        search: str | None = None,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> ISubscription:
        require_admin(session, "list", "repair")
        return self._repairs.subscribe_by_status(
            status, on_change, page_size=self.page_size, search=search, on_error=on_error
        )

    async def complete(self, session: Session | None, repair_id: str, reason: str | None = None) -> RepairTicket:
        require_admin(session, "complete", "repair")
        return await self._repairs.set_status(
            repair_id, RepairStatus.COMPLETED, InputSanitizer.sanitize_text(reason)
        )

    async def cancel(self, session: Session | None, repair_id: str, reason: str | None = None) -> RepairTicket:
        require_admin(session, "cancel", "repair")
        return await self._repairs.set_status(
            repair_id, RepairStatus.CANCELLED, InputSanitizer.sanitize_text(reason)
        )

    async def add_follow_up(self, session: Session | None, repair_id: str, note: str) -> RepairTicket:
        require_admin(session, "follow_up", "repair")
        return await self._repairs.append_follow_up(repair_id, InputSanitizer.sanitize_text(note))

    async def counts(self, session: Session | None) -> RepairCounts:
        require_admin(session, "list", "repair")
        return await self._repairs.count_by_status()

    async def export(
        self,
        session: Session | None,
        start_date: date | None,
        end_date: date | None,
        date_type: ExportDateType = ExportDateType.ALL,
        status: RepairStatus | None = None,
    ) -> CsvExport:
        """CSV of the tickets (optionally one status) matching the date filter."""
        require_admin(session, "export", "repair")
        statuses = [status] if status else list(RepairStatus)
        batches = await asyncio.gather(
            *(self._repairs.search_across_all(s, "") for s in statuses)
        )
        tickets = sort_repairs([t for batch in batches for t in batch])
        return export_repairs_csv(tickets, start_date, end_date, date_type, tz=self._export_tz)
