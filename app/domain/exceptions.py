"""Domain exceptions for the repair portal.

Defines domain-level exceptions that represent business rule violations and
the store/identity failures the user sees. These exceptions are independent of
infrastructure concerns. Presentation layer maps them to HTTP responses in
exception handlers.
"""

from typing import Any


class PortalException(Exception):
    """Base exception for all repair portal errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(PortalException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationException(PortalException):
    """Raised when authentication fails (e.g. invalid credentials or token)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class AuthorizationException(PortalException):
    """Raised when the caller lacks the role required for the operation."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional resource, action, and message.

        Args:
            resource: Optional resource type (e.g. 'user', 'repair').
            action: Optional action that was attempted (e.g. 'create', 'delete').
            message: Human-readable message; default used when resource/action omitted.
        """
        if resource and action:
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(PortalException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'repair', 'user').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class AccountAlreadyExistsException(PortalException):
    """Raised when the derived e-mail already has an identity account."""

    def __init__(self, email: str) -> None:
        super().__init__(
            "A user with this username already exists",
            "ACCOUNT_ALREADY_EXISTS",
            {"email": email},
        )


class AccountNotFoundException(PortalException):
    """Raised when deleting or updating an identity account that does not exist."""

    def __init__(self, uid: str) -> None:
        super().__init__(
            "User not found",
            "ACCOUNT_NOT_FOUND",
            {"uid": uid},
        )


class InvalidStatusTransitionException(PortalException):
    """Raised when a ticket status write would leave a terminal state."""

    def __init__(self, repair_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot change repair {repair_id} from {current} to {target}",
            "INVALID_STATUS_TRANSITION",
            {"repair_id": repair_id, "current_status": current, "target_status": target},
        )


class ConcurrentModificationException(PortalException):
    """Raised when optimistic-concurrency retries are exhausted."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} {resource_id} was modified concurrently; try again.",
            "CONCURRENT_MODIFICATION",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class StorePermissionException(PortalException):
    """Raised when the document store rejects an operation for lack of rights."""

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message, "STORE_PERMISSION_DENIED")


class StoreIndexMissingException(PortalException):
    """Raised when a query needs a composite index that is not ready yet."""

    def __init__(self) -> None:
        super().__init__(
            "Database index is being created. This is a one-time setup that takes "
            "1-2 minutes. Please try again in a moment.",
            "STORE_INDEX_MISSING",
        )


class StoreUnavailableException(PortalException):
    """Raised when the store is unreachable, unconfigured, or temporarily failing."""

    def __init__(self, message: str = "The service is temporarily unavailable. Please try again.") -> None:
        super().__init__(message, "STORE_UNAVAILABLE")


class ExportDatesMissingException(PortalException):
    """Raised when an export is requested without both range dates."""

    def __init__(self) -> None:
        super().__init__(
            "Please select both start and end dates",
            "VALIDATION_ERROR",
            {"field": "start_date/end_date"},
        )


class NoRecordsToExportException(PortalException):
    """Raised when the export filter matches no tickets."""

    def __init__(self) -> None:
        super().__init__(
            "No records found for the selected date range",
            "NO_RECORDS_TO_EXPORT",
        )


class TooManyAttemptsException(PortalException):
    """Raised when the identity provider throttles sign-in for the account."""

    def __init__(self) -> None:
        super().__init__(
            "Too many failed login attempts. Please try again later.",
            "TOO_MANY_ATTEMPTS",
        )


class IdentityProviderException(PortalException):
    """Raised when an identity-provider call fails for a reason the user cannot fix."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message, "IDENTITY_PROVIDER_ERROR", {"code": code} if code else {})
