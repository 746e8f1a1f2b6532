"""Service interfaces (ports) for the application layer.

Protocols define contracts for infrastructure services (DIP).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, BinaryIO, Protocol


class IIdentityProvider(Protocol):
    """Protocol for the identity provider's admin and sign-in API.

    Implementations raise the app.infrastructure.exceptions identity errors
    (EmailExistsError, AccountNotFoundError, InvalidCredentialsError, ...).
    """

    async def create_account(self, email: str, password: str, display_name: str | None = None) -> Any:
        """Create an account; returns an object with uid and email."""

    async def delete_account(self, uid: str) -> None:
        """Delete an account."""

    async def set_password(self, uid: str, password: str) -> None:
        """Set an account's password (admin)."""

    def list_accounts(self) -> AsyncIterator[Any]:
        """Yield every account (uid, email, is_admin)."""

    async def sign_in_with_password(self, email: str, password: str) -> Any:
        """Return uid, email, id_token and expires_in on success."""

    async def change_own_password(self, id_token: str, new_password: str) -> str:
        """Change the caller's password; return a fresh ID token."""

    async def verify_id_token(self, token: str) -> dict[str, Any]:
        """Return verified token claims."""


class IStorageService(Protocol):
    """Protocol for photo storage backends (local filesystem, Firebase Storage)."""

    async def upload(self, file_data: BinaryIO, storage_ref: str, content_type: str) -> str:
        """Store the object and return its public URL."""

    def download(self, storage_ref: str) -> AsyncIterator[bytes]:
        """Stream the object's bytes."""

    async def delete(self, storage_ref: str) -> bool:
        """Delete the object. Returns True if deleted, False if not found."""

    async def exists(self, storage_ref: str) -> bool:
        """Return True if the object exists."""
