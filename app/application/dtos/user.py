"""DTOs for user management use cases."""

from dataclasses import dataclass, field

from app.domain.entities.portal_user import PortalUser


@dataclass(frozen=True)
class CreatedIdentity:
    """Result of creating an identity-provider account."""

    uid: str
    email: str


@dataclass(frozen=True)
class LoginResult:
    """Successful password sign-in."""

    id_token: str
    expires_in: int
    user: PortalUser

    @property
    def must_change_password(self) -> bool:
        return self.user.must_change_password


@dataclass
class ReconciliationReport:
    """Orphans found (and removed unless dry_run) by a reconciliation pass.

    orphan_accounts: identity uids with no user document.
    orphan_documents: user document ids whose uid has no identity account.
    """

    dry_run: bool
    orphan_accounts: list[str] = field(default_factory=list)
    orphan_documents: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.orphan_accounts or self.orphan_documents or self.failures)
