"""Domain value objects for the repair portal.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

import random
import re
import time
import unicodedata
from dataclasses import dataclass
from typing import ClassVar

from app.domain.exceptions import ValidationException

# E-mail local parts longer than this are rejected by most providers.
EMAIL_LOCAL_PART_MAX_LENGTH = 64

_DISALLOWED_LOCAL_CHARS_RE = re.compile(r"[^a-z0-9.-]")
_EDGE_SEPARATORS_RE = re.compile(r"^[.-]+|[.-]+$")
_REPEATED_DOTS_RE = re.compile(r"\.{2,}")


def sanitize_email_local_part(raw: str) -> str:
    """Reduce free text to a safe e-mail local part.

    Lowercases, strips diacritics (NFD + drop combining marks), keeps only
    ``[a-z0-9.-]``, trims leading/trailing dots and hyphens, collapses
    repeated dots and truncates to 64 characters.
    """
    decomposed = unicodedata.normalize("NFD", raw.lower())
    without_marks = "".join(c for c in decomposed if not unicodedata.combining(c))
    cleaned = _DISALLOWED_LOCAL_CHARS_RE.sub("", without_marks)
    cleaned = _EDGE_SEPARATORS_RE.sub("", cleaned)
    cleaned = _REPEATED_DOTS_RE.sub(".", cleaned)
    # Truncation can expose a trailing separator again.
    return _EDGE_SEPARATORS_RE.sub("", cleaned[:EMAIL_LOCAL_PART_MAX_LENGTH])


def derive_email(username: str, domain: str) -> str:
    """Return the portal e-mail for a username (``<local>@<domain>``)."""
    local = sanitize_email_local_part(username)
    if not local:
        raise ValidationException(
            "Username must contain at least one letter or digit", field="username"
        )
    return f"{local}@{domain}"


@dataclass(frozen=True)
class Username:
    """Value object for a portal username.

    Usernames are trimmed, longer than 6 characters, start with an ASCII
    letter and contain only ASCII letters and digits.
    """

    value: str

    MIN_LENGTH: ClassVar[int] = 7
    FIRST_CHAR_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[a-zA-Z]")
    PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9]+$")

    def __post_init__(self) -> None:
        trimmed = self.value.strip()
        if not trimmed:
            raise ValidationException("Username cannot be empty", field="username")
        if len(trimmed) < self.MIN_LENGTH:
            raise ValidationException(
                "Username must be more than 6 characters long", field="username"
            )
        if not self.FIRST_CHAR_PATTERN.match(trimmed):
            raise ValidationException(
                "Username must start with a letter", field="username"
            )
        if not self.PATTERN.match(trimmed):
            raise ValidationException(
                "Username can only contain letters and numbers (no spaces or special characters)",
                field="username",
            )
        object.__setattr__(self, "value", trimmed)

    def email(self, domain: str) -> str:
        return derive_email(self.value, domain)

    def __str__(self) -> str:
        return self.value


def validate_username(raw: str) -> str:
    """Return the trimmed username or raise ValidationException."""
    return Username(raw).value


@dataclass(frozen=True)
class OrderNumber:
    """Human-readable ticket number: ``RP-<epoch millis>-<0..999>``.

    Not globally unique by construction; callers check for collisions.
    """

    value: str

    PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^RP-\d+-\d{1,3}$")

    def __post_init__(self) -> None:
        if not self.PATTERN.match(self.value):
            raise ValidationException(
                f"Invalid order number: {self.value!r}", field="orderNumber"
            )

    @classmethod
    def generate(cls, rng: random.Random | None = None) -> "OrderNumber":
        """Build a new order number from the current time and a random suffix."""
        millis = time.time_ns() // 1_000_000
        suffix = (rng or random).randrange(1000)
        return cls(f"RP-{millis}-{suffix}")

    def __str__(self) -> str:
        return self.value


PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARS = "!@#$%^&*"

_PASSWORD_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (
        re.compile(f"[{re.escape(PASSWORD_SPECIAL_CHARS)}]"),
        f"Password must contain at least one special character ({PASSWORD_SPECIAL_CHARS})",
    ),
)


def validate_new_password(password: str, confirm: str | None = None) -> str:
    """Check a user-chosen password against the portal policy.

    Raises:
        ValidationException: Confirmation differs, too short, or a character class is missing.
    """
    if confirm is not None and password != confirm:
        raise ValidationException("Passwords do not match", field="confirm_password")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationException(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long",
            field="password",
        )
    for pattern, message in _PASSWORD_RULES:
        if not pattern.search(password):
            raise ValidationException(message, field="password")
    return password


_WHITESPACE_RE = re.compile(r"\s+")


def login_email(identifier: str, domain: str) -> str:
    """Map a login identifier to an e-mail: e-mails pass through, usernames get the portal domain."""
    identifier = identifier.strip()
    if "@" in identifier:
        return identifier
    return f"{_WHITESPACE_RE.sub('', identifier.lower())}@{domain}"
