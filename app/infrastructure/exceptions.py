"""Infrastructure exceptions for the document store, identity provider and photo storage.

Firestore and identity errors are plain exceptions carrying the provider's
status; repositories and services translate them into domain exceptions.
Storage errors extend PortalException so presentation can map them to HTTP
responses directly.
"""

from app.domain.exceptions import PortalException


class FirestoreError(Exception):
    """Firestore REST call failed.

    Attributes:
        status_code: HTTP status returned by the API.
        status: gRPC-style status string from the error body (e.g. PERMISSION_DENIED).
    """

    def __init__(self, message: str, status_code: int = 0, status: str = "") -> None:
        self.status_code = status_code
        self.status = status
        super().__init__(message)


class DocumentExistsError(FirestoreError):
    """Raised when createDocument returns 409 (document ID already exists)."""


class DocumentNotFoundError(FirestoreError):
    """Write required an existing document but none was found."""


class PreconditionFailedError(FirestoreError):
    """Commit precondition (exists / updateTime) did not hold."""


class FirestorePermissionError(FirestoreError):
    """Security rules or IAM denied the operation."""


class FirestoreIndexError(FirestoreError):
    """Query needs a composite index (FAILED_PRECONDITION on runQuery)."""


class FirestoreUnavailableError(FirestoreError):
    """Network failure, timeout, 5xx, or client not configured."""


class IdentityProviderError(Exception):
    """Identity Toolkit call failed.

    Attributes:
        code: Error code from the API body (e.g. EMAIL_EXISTS, USER_NOT_FOUND).
    """

    def __init__(self, message: str, code: str = "") -> None:
        self.code = code
        super().__init__(message)


class EmailExistsError(IdentityProviderError):
    """An account with the e-mail already exists."""


class AccountNotFoundError(IdentityProviderError):
    """No account with the uid / e-mail."""


class InvalidCredentialsError(IdentityProviderError):
    """Password sign-in rejected (wrong password, unknown e-mail, disabled)."""


class TooManyAttemptsError(IdentityProviderError):
    """Sign-in temporarily blocked by the provider."""


class InvalidTokenError(IdentityProviderError):
    """ID token missing, malformed, expired, or for another project."""


class StorageException(PortalException):
    """Base exception for photo storage operations."""


class StorageUploadError(StorageException):
    """File upload failed."""

    def __init__(self, file_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to upload file: {file_path}",
            "STORAGE_UPLOAD_ERROR",
            {"file_path": file_path, "reason": reason},
        )


class StorageNotFoundError(StorageException):
    """File or object not found in storage."""

    def __init__(self, file_path: str) -> None:
        super().__init__(
            f"File not found: {file_path}",
            "STORAGE_NOT_FOUND",
            {"file_path": file_path},
        )


class StoragePermissionError(StorageException):
    """Path escapes the storage root."""

    def __init__(self, file_path: str, operation: str) -> None:
        super().__init__(
            f"Permission denied for {operation} on {file_path}",
            "STORAGE_PERMISSION_ERROR",
            {"file_path": file_path, "operation": operation},
        )
