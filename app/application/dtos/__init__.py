"""Application DTOs (no store dependency)."""

from app.application.dtos.repair import NewRepair, RepairCounts, RepairCursor, RepairPage
from app.application.dtos.session import Session
from app.application.dtos.user import CreatedIdentity, LoginResult, ReconciliationReport

__all__ = [
    "CreatedIdentity",
    "LoginResult",
    "NewRepair",
    "ReconciliationReport",
    "RepairCounts",
    "RepairCursor",
    "RepairPage",
    "Session",
]
