"""Domain layer: entities, value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.entities import PortalUser, RepairTicket
from app.domain.enums import ExportDateType, RepairStatus
from app.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    InvalidStatusTransitionException,
    PortalException,
    ResourceNotFoundException,
    ValidationException,
)
from app.domain.value_objects import OrderNumber, Username

__all__ = [
    # Entities
    "PortalUser",
    "RepairTicket",
    # Enums
    "ExportDateType",
    "RepairStatus",
    # Exceptions
    "AuthenticationException",
    "AuthorizationException",
    "InvalidStatusTransitionException",
    "PortalException",
    "ResourceNotFoundException",
    "ValidationException",
    # Value objects
    "OrderNumber",
    "Username",
]
