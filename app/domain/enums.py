"""Domain enumerations for the repair portal.

Enums represent fixed sets of domain values (ticket status, export filters).
"""

from enum import Enum


class RepairStatus(str, Enum):
    """Repair ticket lifecycle status.

    PENDING is the only initial and the only non-terminal state.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid status values as strings."""
        return [status.value for status in cls]

    @property
    def is_terminal(self) -> bool:
        return self is not RepairStatus.PENDING

    def can_transition_to(self, target: "RepairStatus") -> bool:
        """Return whether a ticket in this status may move to target."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[RepairStatus, frozenset[RepairStatus]] = {
    RepairStatus.PENDING: frozenset({RepairStatus.COMPLETED, RepairStatus.CANCELLED}),
    RepairStatus.COMPLETED: frozenset(),
    RepairStatus.CANCELLED: frozenset(),
}


class ExportDateType(str, Enum):
    """Which ticket date the CSV export range applies to."""

    ALL = "all"
    CREATED = "created"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class RepairSortField(str, Enum):
    """Columns the admin dashboard can sort tickets by."""

    CREATED_AT = "createdAt"
    STATUS = "status"
    ORDER_NUMBER = "orderNumber"
    LOCATION = "location"
    SUBMITTER_NAME = "submitterName"
