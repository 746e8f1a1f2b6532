"""Privileged identity operations (create / delete / reset password).

Every operation requires an authenticated admin caller: the ID token carries
the ``admin: true`` custom claim, or its e-mail is listed in ADMIN_EMAILS.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from app.application.dtos.session import Session
from app.application.dtos.user import CreatedIdentity
from app.application.interfaces.services import IIdentityProvider
from app.domain.exceptions import (
    AccountAlreadyExistsException,
    AccountNotFoundException,
    AuthenticationException,
    AuthorizationException,
    IdentityProviderException,
    ValidationException,
)
from app.domain.value_objects import derive_email
from app.infrastructure.exceptions import (
    AccountNotFoundError,
    EmailExistsError,
    IdentityProviderError,
)

logger = logging.getLogger(__name__)


def build_session(
    claims: dict[str, Any],
    admin_emails: Iterable[str] = (),
    id_token: str | None = None,
) -> Session:
    """Build the caller's Session from verified ID-token claims."""
    email = claims.get("email")
    admins = {e.lower() for e in admin_emails}
    is_admin = claims.get("admin") is True or bool(email and email.lower() in admins)
    return Session(
        uid=claims.get("uid") or claims["sub"],
        email=email,
        is_admin=is_admin,
        claims=claims,
        id_token=id_token,
    )


def require_admin(
    caller: Session | None, action: str | None = None, resource: str = "user"
) -> Session:
    """Return caller if it is an admin.

    Raises:
        AuthenticationException: No caller (401).
        AuthorizationException: Caller is not an admin (403).
    """
    if caller is None:
        raise AuthenticationException("User must be authenticated")
    if not caller.is_admin:
        logger.warning("Non-admin %s attempted %s", caller.uid, action or "an admin action")
        raise AuthorizationException(resource=resource, action=action)
    return caller


class IdentityFunctions:
    """Server-side user-management operations backed by the identity provider."""

    def __init__(
        self,
        identity: IIdentityProvider,
        *,
        email_domain: str,
        admin_emails: Iterable[str] = (),
    ) -> None:
        self._identity = identity
        self.email_domain = email_domain
        self._admin_emails = frozenset(e.lower() for e in admin_emails)

    def is_admin_email(self, email: str | None) -> bool:
        return bool(email) and email.lower() in self._admin_emails

    async def create_identity(
        self, caller: Session | None, username: str, password: str
    ) -> CreatedIdentity:
        """Create the account for username (display name = username).

        Raises:
            AccountAlreadyExistsException: The derived e-mail is taken.
        """
        require_admin(caller, "create")
        if not username or not password:
            raise ValidationException("Missing username or password")
        email = derive_email(username, self.email_domain)
        try:
            account = await self._identity.create_account(email, password, display_name=username)
        except EmailExistsError as e:
            raise AccountAlreadyExistsException(email) from e
        except IdentityProviderError as e:
            logger.error("Error creating user %s: %s", email, e)
            raise IdentityProviderException(str(e), e.code) from e
        logger.info("User created: %s", email)
        return CreatedIdentity(uid=account.uid, email=account.email or email)

    async def delete_identity(self, caller: Session | None, uid: str) -> None:
        """Delete the account.

        Raises:
            AccountNotFoundException: No account with uid.
        """
        require_admin(caller, "delete")
        if not uid:
            raise ValidationException("Missing user ID", field="uid")
        try:
            await self._identity.delete_account(uid)
        except AccountNotFoundError as e:
            raise AccountNotFoundException(uid) from e
        except IdentityProviderError as e:
            logger.error("Error deleting user %s: %s", uid, e)
            raise IdentityProviderException(str(e), e.code) from e
        logger.info("User deleted: %s", uid)

    async def reset_password(self, caller: Session | None, uid: str, password: str) -> None:
        require_admin(caller, "reset_password")
        if not uid or not password:
            raise ValidationException("Missing user ID or password")
        try:
            await self._identity.set_password(uid, password)
        except AccountNotFoundError as e:
            raise AccountNotFoundException(uid) from e
        except IdentityProviderError as e:
            logger.error("Error resetting password for %s: %s", uid, e)
            raise IdentityProviderException(str(e), e.code) from e
