"""User application service: portal user lifecycle, sign-in and password change.

Creating and deleting a user touches two systems (identity provider and the
users collection) with no shared transaction. Create runs identity first and
deletes the new account again if the profile insert fails; delete runs
identity first and treats an already-missing account as deleted. Anything a
crash leaves behind is found and removed by reconcile().
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from app.application.dtos.session import Session
from app.application.dtos.user import CreatedIdentity, LoginResult, ReconciliationReport
from app.application.interfaces.repositories import ISubscription, IUserRepository
from app.application.interfaces.services import IIdentityProvider
from app.application.services.identity_functions import IdentityFunctions, require_admin
from app.application.services.sorting import sort_users
from app.domain.entities.portal_user import PortalUser
from app.domain.enums import SortOrder
from app.domain.exceptions import (
    AccountNotFoundException,
    AuthenticationException,
    IdentityProviderException,
    PortalException,
    ResourceNotFoundException,
    TooManyAttemptsException,
    ValidationException,
)
from app.domain.value_objects import login_email, validate_new_password, validate_username
from app.infrastructure.exceptions import (
    AccountNotFoundError,
    IdentityProviderError,
    InvalidCredentialsError,
    InvalidTokenError,
    TooManyAttemptsError,
)
from app.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


class UserService:
    """Admin user management plus the end user's own sign-in and password change."""

    def __init__(
        self,
        users: IUserRepository,
        functions: IdentityFunctions,
        identity: IIdentityProvider,
        *,
        default_password: str,
    ) -> None:
        self._users = users
        self._functions = functions
        self._identity = identity
        self._default_password = default_password

    @property
    def email_domain(self) -> str:
        return self._functions.email_domain

    async def _get_or_404(self, user_id: str) -> PortalUser:
        user = await self._users.get(user_id)
        if user is None:
            raise ResourceNotFoundException("user", user_id)
        return user

    @traced("users.create_user")
    async def create_user(
        self,
        caller: Session | None,
        username: str,
        department: str,
        *,
        password: str | None = None,
        created_by: str | None = None,
        enforce_username_policy: bool = True,
    ) -> PortalUser:
        """Create identity account, then profile document (compensating on failure).

        Without enforce_username_policy the username is kept as typed and only
        sanitized into the e-mail local part, as older admin clients expect.

        Raises:
            ValidationException: Username breaks the policy (or has nothing
                usable for an e-mail) or department is blank.
            AccountAlreadyExistsException: Username already taken.
        """
        require_admin(caller, "create")
        if enforce_username_policy:
            username = validate_username(username)
        department = (department or "").strip()
        if not department:
            raise ValidationException("Department is required", field="department")

        created = await self._functions.create_identity(
            caller, username, password or self._default_password
        )
        profile = PortalUser(
            id=None,
            uid=created.uid,
            email=created.email,
            username=username,
            department=department,
            is_first_login=True,
            created_by=created_by or "admin",
        )
        try:
            user = await self._users.insert(profile)
        except PortalException:
            logger.error("Profile insert failed for %s; removing identity account", created.email)
            await self._compensate_create(created)
            raise
        logger.info("Portal user %s created (uid=%s)", username, created.uid)
        return user

    async def _compensate_create(self, created: CreatedIdentity) -> None:
        try:
            await self._identity.delete_account(created.uid)
        except AccountNotFoundError:
            pass
        except IdentityProviderError:
            logger.exception(
                "Compensation failed: identity account %s (%s) is orphaned until reconcile",
                created.uid,
                created.email,
            )

    async def update_user(
        self,
        caller: Session | None,
        user_id: str,
        *,
        username: str | None = None,
        department: str | None = None,
    ) -> PortalUser:
        """Update profile fields. The identity account's e-mail and display name are not changed."""
        require_admin(caller, "update")
        if username is not None:
            username = validate_username(username)
        if department is not None:
            department = department.strip()
            if not department:
                raise ValidationException("Department is required", field="department")
        return await self._users.update(user_id, username=username, department=department)

    @traced("users.delete_user")
    async def delete_user(self, caller: Session | None, user_id: str) -> None:
        """Delete identity account, then profile document."""
        require_admin(caller, "delete")
        user = await self._get_or_404(user_id)
        try:
            await self._functions.delete_identity(caller, user.uid)
        except AccountNotFoundException:
            logger.info("Identity account %s already gone; deleting profile only", user.uid)
        await self._users.delete(user_id)

    async def reset_password(self, caller: Session | None, user_id: str) -> PortalUser:
        """Set the default password and force a password change on next sign-in."""
        require_admin(caller, "reset_password")
        user = await self._get_or_404(user_id)
        await self._functions.reset_password(caller, user.uid, self._default_password)
        await self._users.reset_first_login(user_id)
        logger.info("Password reset for %s", user.username)
        return await self._get_or_404(user_id)

    async def reset_first_login(self, caller: Session | None, user_id: str) -> None:
        require_admin(caller, "update")
        await self._users.reset_first_login(user_id)

    async def list_users(
        self,
        caller: Session | None,
        sort: str | None = None,
        order: SortOrder = SortOrder.ASC,
    ) -> list[PortalUser]:
        require_admin(caller, "list")
        return sort_users(await self._users.list_all(), sort, order)

    def subscribe_users(
        self,
        caller: Session | None,
        on_change: Callable[[list[PortalUser]], Any],
        *,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> ISubscription:
        require_admin(caller, "list")
        return self._users.subscribe_all(on_change, on_error=on_error)

    @traced("users.reconcile")
    async def reconcile(self, caller: Session | None, *, dry_run: bool = False) -> ReconciliationReport:
        """Remove identity accounts without a profile and profiles without an account.

        Only accounts in the portal e-mail domain are considered; admins are
        never deleted. Running it again right after yields an empty report.
        """
        require_admin(caller, "reconcile")
        suffix = f"@{self.email_domain}".lower()
        accounts = [a async for a in self._identity.list_accounts()]
        profiles = await self._users.list_all()

        profile_uids = {p.uid for p in profiles}
        account_uids = {a.uid for a in accounts}
        report = ReconciliationReport(dry_run=dry_run)
        report.orphan_accounts = sorted(
            a.uid
            for a in accounts
            if a.email
            and a.email.lower().endswith(suffix)
            and not a.is_admin
            and not self._functions.is_admin_email(a.email)
            and a.uid not in profile_uids
        )
        report.orphan_documents = sorted(p.id for p in profiles if p.id and p.uid not in account_uids)
        if dry_run:
            return report

        for uid in report.orphan_accounts:
            try:
                await self._identity.delete_account(uid)
            except AccountNotFoundError:
                pass
            except IdentityProviderError as e:
                logger.error("Reconcile could not delete account %s: %s", uid, e)
                report.failures.append(uid)
        for doc_id in report.orphan_documents:
            try:
                await self._users.delete(doc_id)
            except PortalException as e:
                logger.error("Reconcile could not delete profile %s: %s", doc_id, e.message)
                report.failures.append(doc_id)
        logger.info(
            "Reconcile removed %d accounts and %d profiles",
            len(report.orphan_accounts),
            len(report.orphan_documents),
        )
        return report

    async def profile_for(self, session: Session) -> PortalUser | None:
        """The caller's own portal profile, if there is one."""
        return await self._users.get_by_uid(session.uid)

    @traced("users.login")
    async def login(self, identifier: str, password: str) -> LoginResult:
        """Sign in with a username or e-mail and record the login time.

        Raises:
            AuthenticationException: Bad credentials or no portal profile for the account.
            TooManyAttemptsException: The provider throttled the account.
        """
        if not identifier or not identifier.strip() or not password:
            raise ValidationException("Username and password are required")
        email = login_email(identifier, self.email_domain)
        try:
            result = await self._identity.sign_in_with_password(email, password)
        except InvalidCredentialsError as e:
            raise AuthenticationException("Invalid username or password") from e
        except AccountNotFoundError as e:
            raise AuthenticationException("User not found") from e
        except TooManyAttemptsError as e:
            raise TooManyAttemptsException() from e
        except IdentityProviderError as e:
            logger.error("Login failed for %s: %s", email, e)
            raise IdentityProviderException("Error logging in. Please try again.", e.code) from e

        user = await self._users.get_by_uid(result.uid)
        if user is None:
            logger.warning("Account %s signed in but has no portal profile", result.uid)
            raise AuthenticationException("User not found")
        await self._users.mark_logged_in(user.id or "")
        return LoginResult(id_token=result.id_token, expires_in=result.expires_in, user=user)

    async def change_password(
        self, session: Session, new_password: str, confirm_password: str | None = None
    ) -> str:
        """Change the caller's password and clear the first-login flag.

        Returns:
            A fresh ID token (the provider revokes the old one).
        """
        validate_new_password(new_password, confirm_password)
        if not session.id_token:
            raise AuthenticationException("Not authenticated")
        try:
            token = await self._identity.change_own_password(session.id_token, new_password)
        except InvalidTokenError as e:
            raise AuthenticationException(
                "For security reasons, please log out and log in again before changing your password."
            ) from e
        except IdentityProviderError as e:
            raise IdentityProviderException(str(e), e.code) from e
        user = await self._users.get_by_uid(session.uid)
        if user is not None and user.id:
            await self._users.clear_first_login(user.id)
        return token
