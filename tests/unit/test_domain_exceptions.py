"""Tests for domain exceptions (error_code, message, details) and their HTTP status mapping."""

from app.core.exception_handlers import status_for
from app.domain.exceptions import (
    AccountAlreadyExistsException,
    AuthenticationException,
    AuthorizationException,
    ConcurrentModificationException,
    ExportDatesMissingException,
    InvalidStatusTransitionException,
    NoRecordsToExportException,
    PortalException,
    ResourceNotFoundException,
    StoreIndexMissingException,
    StoreUnavailableException,
    TooManyAttemptsException,
    ValidationException,
)
from app.infrastructure.exceptions import StorageNotFoundError


def test_portal_exception_default_error_code() -> None:
    """Base PortalException uses class name as error_code when not provided."""
    exc = PortalException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "PortalException"
    assert exc.details == {}


def test_to_dict_shape() -> None:
    exc = ValidationException("Location is required", field="location")
    assert exc.to_dict() == {
        "error": "VALIDATION_ERROR",
        "message": "Location is required",
        "details": {"field": "location"},
    }


def test_authorization_message_names_action_and_resource() -> None:
    exc = AuthorizationException(resource="repair", action="complete")
    assert exc.message == "Permission denied: complete on repair"
    assert exc.details == {"resource": "repair", "action": "complete"}


def test_authorization_default_message() -> None:
    assert AuthorizationException().message == "Permission denied"


def test_user_facing_messages() -> None:
    assert AccountAlreadyExistsException("a@b.c").message == "A user with this username already exists"
    assert ExportDatesMissingException().message == "Please select both start and end dates"
    assert NoRecordsToExportException().message == "No records found for the selected date range"
    assert TooManyAttemptsException().message.startswith("Too many failed login attempts")


def test_status_mapping() -> None:
    """Error codes map onto the HTTP statuses the API answers with."""
    assert status_for(ValidationException("x")) == 400
    assert status_for(ExportDatesMissingException()) == 400
    assert status_for(NoRecordsToExportException()) == 400
    assert status_for(AuthenticationException()) == 401
    assert status_for(AuthorizationException()) == 403
    assert status_for(ResourceNotFoundException("repair", "r1")) == 404
    assert status_for(StorageNotFoundError("repairs/x.jpg")) == 404
    assert status_for(InvalidStatusTransitionException("r1", "completed", "cancelled")) == 409
    assert status_for(ConcurrentModificationException("repair", "r1")) == 409
    assert status_for(TooManyAttemptsException()) == 429
    assert status_for(StoreIndexMissingException()) == 503
    assert status_for(StoreUnavailableException()) == 503


def test_unknown_code_defaults_to_400() -> None:
    assert status_for(PortalException("odd", "SOMETHING_NEW")) == 400
