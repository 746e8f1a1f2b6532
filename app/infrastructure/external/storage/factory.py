"""Builds the photo storage backend named by STORAGE_BACKEND."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.application.interfaces.services import IStorageService

if TYPE_CHECKING:
    from app.core.config import Settings


class StorageFactory:
    @staticmethod
    def create_storage_service(
        settings: "Settings | None" = None,
        credentials=None,
    ) -> IStorageService:
        """Return the configured backend.

        The firebase backend signs its requests with the service account
        credentials Firestore was initialized with.

        Raises:
            ValueError: Unknown backend, or its required setting is missing.
        """
        from app.core.config import get_settings

        s = settings or get_settings()
        backend = s.storage_backend.lower()
        if backend == "local":
            from app.infrastructure.external.storage.local_storage import LocalStorageService

            if not s.storage_root:
                raise ValueError("STORAGE_ROOT is required for local photo storage")
            return LocalStorageService(storage_root=s.storage_root, base_url=s.storage_base_url)
        if backend == "firebase":
            from app.infrastructure.external.storage.firebase_storage import FirebaseStorageService

            if not s.firebase_storage_bucket:
                raise ValueError("FIREBASE_STORAGE_BUCKET is required for Firebase photo storage")
            if credentials is None:
                raise ValueError("Firebase photo storage needs service account credentials")
            return FirebaseStorageService(s.firebase_storage_bucket, credentials)
        raise ValueError(f"Unknown storage backend {backend!r}; expected 'local' or 'firebase'")
