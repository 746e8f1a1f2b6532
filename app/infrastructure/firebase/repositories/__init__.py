"""Firestore-backed repository implementations."""

from app.infrastructure.firebase.repositories.repair_repo_firestore import (
    FirestoreRepairRepository,
)
from app.infrastructure.firebase.repositories.user_repo_firestore import (
    FirestoreUserRepository,
)

__all__ = [
    "FirestoreRepairRepository",
    "FirestoreUserRepository",
]
