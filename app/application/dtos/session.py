"""Authenticated caller context, resolved per request from the bearer ID token."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Session:
    """Identity of the caller. Passed explicitly into services that need it."""

    uid: str
    email: str | None = None
    is_admin: bool = False
    claims: dict[str, Any] = field(default_factory=dict)
    id_token: str | None = field(default=None, repr=False)
