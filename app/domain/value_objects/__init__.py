"""Domain value objects (immutable, self-validating)."""

from app.domain.value_objects.core import (
    EMAIL_LOCAL_PART_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    OrderNumber,
    Username,
    derive_email,
    login_email,
    sanitize_email_local_part,
    validate_new_password,
    validate_username,
)

__all__ = [
    "EMAIL_LOCAL_PART_MAX_LENGTH",
    "PASSWORD_MIN_LENGTH",
    "OrderNumber",
    "Username",
    "derive_email",
    "login_email",
    "sanitize_email_local_part",
    "validate_new_password",
    "validate_username",
]
