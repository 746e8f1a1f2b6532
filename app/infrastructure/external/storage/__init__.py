"""Photo storage backends: local filesystem and Firebase Storage."""

from app.infrastructure.external.storage.factory import StorageFactory

__all__ = ["StorageFactory"]
