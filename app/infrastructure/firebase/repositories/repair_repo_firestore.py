"""Firestore-backed repair ticket repository (implements IRepairRepository)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from app.application.dtos.repair import RepairCounts, RepairCursor, RepairPage
from app.domain.entities.repair_ticket import RepairTicket, matches_search, normalize_reason
from app.domain.enums import RepairStatus
from app.domain.exceptions import (
    ConcurrentModificationException,
    ResourceNotFoundException,
    StoreUnavailableException,
)
from app.infrastructure.exceptions import DocumentNotFoundError, PreconditionFailedError
from app.infrastructure.firebase._rest_client import (
    DESCENDING,
    DOCUMENT_ID,
    DocumentSnapshot,
    FirestoreRESTClient,
    Query,
    parse_update_time,
)
from app.infrastructure.firebase._rest_encoding import SERVER_TIMESTAMP
from app.infrastructure.firebase.collections import COLLECTION_REPAIRS
from app.infrastructure.firebase.live_query import LiveQueryHub, Subscription
from app.infrastructure.firebase.repositories._errors import store_errors
from app.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


def _parse_status(raw: Any) -> RepairStatus:
    try:
        return RepairStatus(raw)
    except ValueError:
        logger.warning("Unknown repair status %r; treating as pending", raw)
        return RepairStatus.PENDING


def _status_fields(status: RepairStatus, reason: str | None) -> dict[str, Any]:
    if status is RepairStatus.COMPLETED:
        return {"status": status.value, "completedAt": SERVER_TIMESTAMP, "completionReason": reason}
    return {"status": status.value, "cancelledAt": SERVER_TIMESTAMP, "cancellationReason": reason}


class FirestoreRepairRepository:
    """Repair tickets in the ``repairs`` collection.

    Status changes and follow-up appends are read-modify-write commits with
    an updateTime precondition: a write racing another client's write is
    retried against the fresh document, so a terminal status is never
    overwritten and no note is lost.
    """

    def __init__(
        self,
        client: FirestoreRESTClient,
        hub: LiveQueryHub | None = None,
        *,
        max_retries: int = 5,
    ) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_REPAIRS)
        self._hub = hub
        self._max_retries = max_retries

    def _to_entity(self, snapshot: DocumentSnapshot) -> RepairTicket:
        data = snapshot.to_dict()
        return RepairTicket(
            id=snapshot.id,
            order_number=data.get("orderNumber", ""),
            description=data.get("description", ""),
            location=data.get("location", ""),
            submitter_name=data.get("submitterName", ""),
            submitter_email=data.get("submitterEmail", ""),
            submitter_uid=data.get("submitterUid", ""),
            image_urls=list(data.get("imageUrls") or []),
            status=_parse_status(data.get("status", RepairStatus.PENDING.value)),
            created_at=data.get("createdAt"),
            completed_at=data.get("completedAt"),
            completion_reason=data.get("completionReason"),
            cancelled_at=data.get("cancelledAt"),
            cancellation_reason=data.get("cancellationReason"),
            follow_up_actions=list(data.get("followUpActions") or []),
        )

    def _to_document(self, ticket: RepairTicket) -> dict[str, Any]:
        return {
            "orderNumber": ticket.order_number,
            "description": ticket.description,
            "location": ticket.location,
            "imageUrls": list(ticket.image_urls),
            "status": RepairStatus.PENDING.value,
            "createdAt": SERVER_TIMESTAMP,
            "submitterName": ticket.submitter_name,
            "submitterEmail": ticket.submitter_email,
            "submitterUid": ticket.submitter_uid,
            "followUpActions": [],
        }

    def _status_query(self, status: RepairStatus) -> Query:
        return (
            self._coll.where("status", "==", status.value)
            .order_by("createdAt", DESCENDING)
            .order_by(DOCUMENT_ID, DESCENDING)
        )

    async def _notify(self) -> None:
        if self._hub is not None:
            await self._hub.notify(COLLECTION_REPAIRS)

    async def _page(self, query: Query, page_size: int) -> RepairPage:
        with store_errors("repairs page"):
            snapshots = await query.limit(page_size).get()
        items = [self._to_entity(s) for s in snapshots]
        next_cursor = RepairCursor.after(items[-1]) if len(items) >= page_size else None
        return RepairPage(items=items, next_cursor=next_cursor)

    @traced("repairs.create")
    async def create(self, ticket: RepairTicket) -> RepairTicket:
        """Insert a pending ticket; createdAt is the commit time."""
        with store_errors("create repair"):
            update_time, ref = await self._coll.add(self._to_document(ticket))
        logger.info("Repair %s created as %s", ticket.order_number, ref.id)
        await self._notify()
        return RepairTicket(
            id=ref.id,
            order_number=ticket.order_number,
            description=ticket.description,
            location=ticket.location,
            submitter_name=ticket.submitter_name,
            submitter_email=ticket.submitter_email,
            submitter_uid=ticket.submitter_uid,
            image_urls=list(ticket.image_urls),
            created_at=parse_update_time(update_time),
        )

    async def get(self, repair_id: str) -> RepairTicket | None:
        with store_errors("get repair"):
            snapshot = await self._coll.document(repair_id).get()
        return self._to_entity(snapshot) if snapshot else None

    async def exists_order_number(self, order_number: str) -> bool:
        with store_errors("order number lookup"):
            found = await self._coll.where("orderNumber", "==", order_number).limit(1).get()
        return bool(found)

    async def first_page(self, status: RepairStatus, page_size: int) -> RepairPage:
        return await self._page(self._status_query(status), page_size)

    @traced("repairs.load_more")
    async def load_more(
        self, status: RepairStatus, cursor: RepairCursor, page_size: int
    ) -> RepairPage:
        """Next page strictly after cursor (createdAt, id), newest first."""
        query = self._status_query(status).start_after([cursor.created_at, cursor.id])
        return await self._page(query, page_size)

    async def search_across_all(self, status: RepairStatus, text: str) -> list[RepairTicket]:
        """Every ticket with the status, filtered locally by the search text."""
        with store_errors("search repairs"):
            snapshots = await self._status_query(status).get()
        tickets = [self._to_entity(s) for s in snapshots]
        return [t for t in tickets if matches_search(t, text)]

    def subscribe_by_status(
        self,
        status: RepairStatus,
        on_change: Callable[[list[RepairTicket]], Any],
        *,
        page_size: int,
        search: str | None = None,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> Subscription[RepairTicket]:
        """Live first page for status; a non-blank search drops the limit and filters."""
        if self._hub is None:
            raise StoreUnavailableException("Live updates are not available.")
        searching = bool(search and search.strip())

        async def fetch() -> list[RepairTicket]:
            if searching:
                return await self.search_across_all(status, search or "")
            return (await self.first_page(status, page_size)).items

        return self._hub.subscribe(COLLECTION_REPAIRS, fetch, on_change, on_error)

    async def _guarded_update(
        self,
        repair_id: str,
        build: Callable[[RepairTicket], dict[str, Any]],
        operation: str,
    ) -> RepairTicket:
        ref = self._coll.document(repair_id)
        for attempt in range(1, self._max_retries + 1):
            with store_errors(operation):
                snapshot = await ref.get()
                if snapshot is None:
                    raise ResourceNotFoundException("repair", repair_id)
                fields = build(self._to_entity(snapshot))
                try:
                    await ref.update(fields, update_time=snapshot.update_time)
                except PreconditionFailedError:
                    logger.info(
                        "Repair %s changed during %s (attempt %d), retrying",
                        repair_id,
                        operation,
                        attempt,
                    )
                    continue
                except DocumentNotFoundError as e:
                    raise ResourceNotFoundException("repair", repair_id) from e
            await self._notify()
            updated = await self.get(repair_id)
            if updated is None:
                raise ResourceNotFoundException("repair", repair_id)
            return updated
        raise ConcurrentModificationException("repair", repair_id)

    @traced("repairs.set_status")
    async def set_status(
        self, repair_id: str, new_status: RepairStatus, reason: str | None
    ) -> RepairTicket:
        """Complete or cancel a pending ticket.

        Raises:
            InvalidStatusTransitionException: The stored ticket is not pending.
            ResourceNotFoundException: No such ticket.
        """
        reason = normalize_reason(reason)

        def build(ticket: RepairTicket) -> dict[str, Any]:
            ticket.ensure_can_transition(new_status)
            return _status_fields(new_status, reason)

        updated = await self._guarded_update(repair_id, build, "set status")
        logger.info("Repair %s is now %s", repair_id, new_status.value)
        return updated

    @traced("repairs.append_follow_up")
    async def append_follow_up(self, repair_id: str, note: str) -> RepairTicket:
        """Append a note while the ticket is pending."""

        def build(ticket: RepairTicket) -> dict[str, Any]:
            ticket.add_follow_up(note)
            return {"followUpActions": ticket.follow_up_actions}

        return await self._guarded_update(repair_id, build, "append follow-up")

    async def count_by_status(self) -> RepairCounts:
        with store_errors("count repairs"):
            pending, completed, cancelled = await asyncio.gather(
                *(self._coll.where("status", "==", s.value).count() for s in RepairStatus)
            )
        return RepairCounts(pending=pending, completed=completed, cancelled=cancelled)

    async def list_by_submitter(self, uid: str) -> list[RepairTicket]:
        with store_errors("list my repairs"):
            snapshots = await (
                self._coll.where("submitterUid", "==", uid)
                .order_by("createdAt", DESCENDING)
                .get()
            )
        return [self._to_entity(s) for s in snapshots]
