"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from app.infrastructure or app.api.
"""

from app.application.interfaces.repositories import (
    IRepairRepository,
    ISubscription,
    IUserRepository,
)
from app.application.interfaces.services import IIdentityProvider, IStorageService

__all__ = [
    "IIdentityProvider",
    "IRepairRepository",
    "IStorageService",
    "ISubscription",
    "IUserRepository",
]
