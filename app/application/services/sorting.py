"""Client-side ordering for dashboard tables (users and repair tickets)."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from functools import cmp_to_key
from typing import Any, TypeVar

from app.domain.entities.portal_user import PortalUser
from app.domain.entities.repair_ticket import RepairTicket
from app.domain.enums import RepairSortField, SortOrder
from app.domain.exceptions import ValidationException

T = TypeVar("T")

USER_SORT_COLUMNS: dict[str, Callable[[PortalUser], Any]] = {
    "username": lambda u: u.username,
    "email": lambda u: u.email,
    "department": lambda u: u.department,
    "isFirstLogin": lambda u: u.is_first_login,
    "createdAt": lambda u: u.created_at,
    "createdBy": lambda u: u.created_by,
    "lastLogin": lambda u: u.last_login,
    "status": lambda u: u.status,
}

REPAIR_SORT_COLUMNS: dict[RepairSortField, Callable[[RepairTicket], Any]] = {
    RepairSortField.CREATED_AT: lambda r: r.created_at,
    RepairSortField.STATUS: lambda r: r.status.value,
    RepairSortField.ORDER_NUMBER: lambda r: r.order_number,
    RepairSortField.LOCATION: lambda r: r.location,
    RepairSortField.SUBMITTER_NAME: lambda r: r.submitter_name or "",
}


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _normalize(value: Any, casefold: bool) -> Any:
    if isinstance(value, datetime):
        return value.timestamp()
    if casefold and isinstance(value, str):
        return value.lower()
    return value


def compare_values(a: Any, b: Any, *, descending: bool = False, casefold: bool = True) -> int:
    """Three-way compare; missing values sort last in either direction.

    Timestamps compare by instant and strings case-insensitively (casefold).
    """
    if _is_missing(a) and _is_missing(b):
        return 0
    if _is_missing(a):
        return 1
    if _is_missing(b):
        return -1
    a, b = _normalize(a, casefold), _normalize(b, casefold)
    result = -1 if a < b else 1 if a > b else 0
    return -result if descending else result


def _sorted(
    items: Sequence[T], key: Callable[[T], Any], order: SortOrder, casefold: bool
) -> list[T]:
    descending = order is SortOrder.DESC

    def cmp(x: T, y: T) -> int:
        return compare_values(key(x), key(y), descending=descending, casefold=casefold)

    return sorted(items, key=cmp_to_key(cmp))


def sort_users(
    users: Sequence[PortalUser], column: str | None, order: SortOrder = SortOrder.ASC
) -> list[PortalUser]:
    """Sort users by a column name as shown in the table (camelCase). None keeps store order."""
    if not column:
        return list(users)
    key = USER_SORT_COLUMNS.get(column)
    if key is None:
        raise ValidationException(f"Cannot sort users by {column!r}", field="sort")
    return _sorted(users, key, order, casefold=True)


def sort_repairs(
    tickets: Sequence[RepairTicket],
    field: RepairSortField = RepairSortField.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
) -> list[RepairTicket]:
    """Sort tickets for the dashboard; string columns compare case-sensitively."""
    return _sorted(tickets, REPAIR_SORT_COLUMNS[field], order, casefold=False)
