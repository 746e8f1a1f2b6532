"""IdentityFunctions and session helpers: admin gate, error translation."""

import pytest

from app.application.dtos.session import Session
from app.application.services.identity_functions import (
    IdentityFunctions,
    build_session,
    require_admin,
)
from app.domain.exceptions import (
    AccountAlreadyExistsException,
    AccountNotFoundException,
    AuthenticationException,
    AuthorizationException,
    IdentityProviderException,
    ValidationException,
)
from tests.fakes import FakeIdentityProvider

ADMIN = Session(uid="admin-uid", email="admin@repairportal.com", is_admin=True)
USER = Session(uid="user-uid", email="johnsmith1@repairportal.com")


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def functions(provider: FakeIdentityProvider) -> IdentityFunctions:
    return IdentityFunctions(
        provider, email_domain="repairportal.com", admin_emails=["Boss@RepairPortal.com"]
    )


class TestBuildSession:
    def test_admin_claim(self) -> None:
        session = build_session({"sub": "u1", "email": "x@y.z", "admin": True})
        assert session.uid == "u1"
        assert session.is_admin

    def test_admin_email_list_case_insensitive(self) -> None:
        session = build_session({"sub": "u1", "email": "Boss@repairportal.com"}, ["boss@RepairPortal.com"])
        assert session.is_admin

    def test_truthy_non_boolean_claim_is_not_admin(self) -> None:
        assert not build_session({"sub": "u1", "admin": "yes"}).is_admin

    def test_keeps_token(self) -> None:
        assert build_session({"uid": "u2"}, id_token="tok").id_token == "tok"


class TestRequireAdmin:
    def test_anonymous_is_401(self) -> None:
        with pytest.raises(AuthenticationException, match="must be authenticated"):
            require_admin(None)

    def test_non_admin_is_403(self) -> None:
        with pytest.raises(AuthorizationException) as exc_info:
            require_admin(USER, "complete", "repair")
        assert exc_info.value.details == {"resource": "repair", "action": "complete"}

    def test_admin_passes(self) -> None:
        assert require_admin(ADMIN) is ADMIN


async def test_create_identity_derives_email(functions, provider) -> None:
    """The account e-mail comes from the username and the portal domain."""
    created = await functions.create_identity(ADMIN, "JohnSmith1", "Secret#123")
    assert created.email == "johnsmith1@repairportal.com"
    assert provider.accounts[created.uid].display_name == "JohnSmith1"
    assert provider.passwords[created.uid] == "Secret#123"


async def test_create_identity_duplicate(functions) -> None:
    await functions.create_identity(ADMIN, "johnsmith1", "Secret#123")
    with pytest.raises(AccountAlreadyExistsException):
        await functions.create_identity(ADMIN, "JOHNSMITH1", "Other#123")


async def test_create_identity_checks_admin_before_input(functions) -> None:
    with pytest.raises(AuthorizationException):
        await functions.create_identity(USER, "", "")
    with pytest.raises(AuthenticationException):
        await functions.create_identity(None, "", "")


async def test_create_identity_missing_fields(functions) -> None:
    with pytest.raises(ValidationException, match="Missing username or password"):
        await functions.create_identity(ADMIN, "johnsmith1", "")


async def test_delete_identity_not_found(functions) -> None:
    with pytest.raises(AccountNotFoundException):
        await functions.delete_identity(ADMIN, "nope")


async def test_delete_identity_provider_failure(functions, provider) -> None:
    account = provider.add_account("x1234567@repairportal.com")
    provider.fail_deletes = True
    with pytest.raises(IdentityProviderException):
        await functions.delete_identity(ADMIN, account.uid)


async def test_reset_password(functions, provider) -> None:
    account = provider.add_account("x1234567@repairportal.com")
    await functions.reset_password(ADMIN, account.uid, "TempPass123!")
    assert provider.passwords[account.uid] == "TempPass123!"
    with pytest.raises(AccountNotFoundException):
        await functions.reset_password(ADMIN, "nope", "TempPass123!")


def test_is_admin_email(functions) -> None:
    assert functions.is_admin_email("boss@repairportal.com")
    assert not functions.is_admin_email(None)
