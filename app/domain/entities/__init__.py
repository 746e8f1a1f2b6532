"""Domain entities and aggregates.

Pure domain models; no persistence concerns.
"""

from app.domain.entities.portal_user import PortalUser
from app.domain.entities.repair_ticket import (
    RepairTicket,
    matches_search,
    normalize_reason,
)

__all__ = [
    "PortalUser",
    "RepairTicket",
    "matches_search",
    "normalize_reason",
]
