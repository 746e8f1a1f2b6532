"""Pytest configuration and fixtures for the repair portal.

HTTP tests run app.main:app over ASGITransport. Lifespan does not run there,
so the store, identity client, hub and storage are supplied through
dependency overrides backed by the in-memory fakes in tests/fakes.py.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.v1.dependencies import (
    get_hub,
    get_identity_provider_optional,
    get_repair_repo,
    get_storage,
    get_user_repo,
)
from app.application.dtos.session import Session
from app.core.config import get_settings
from app.core.limiter import limiter, reset_login_attempts
from app.domain.entities.portal_user import PortalUser
from app.infrastructure.external.storage.local_storage import LocalStorageService
from app.infrastructure.firebase.live_query import LiveQueryHub
from app.main import app
from tests.fakes import FakeIdentityProvider, FakeRepairRepository, FakeUserRepository

EMAIL_DOMAIN = get_settings().email_domain
ADMIN_EMAIL = f"admin@{EMAIL_DOMAIN}"
USER_EMAIL = f"johnsmith1@{EMAIL_DOMAIN}"
USER_PASSWORD = "Secret#123"


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Rate-limit counters are process-wide; start every test from zero."""
    limiter.reset()
    reset_login_attempts()
    yield
    reset_login_attempts()


@pytest.fixture
async def hub() -> LiveQueryHub:
    hub = LiveQueryHub(poll_seconds=0.05)
    yield hub
    await hub.close()


@pytest.fixture
def repair_repo(hub: LiveQueryHub) -> FakeRepairRepository:
    return FakeRepairRepository(hub)


@pytest.fixture
def user_repo(hub: LiveQueryHub) -> FakeUserRepository:
    return FakeUserRepository(hub)


@pytest.fixture
def identity() -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.add_account(ADMIN_EMAIL, "Admin#1234", admin=True, uid="admin-uid")
    provider.add_account(USER_EMAIL, USER_PASSWORD, uid="user-uid")
    return provider


@pytest.fixture
async def portal_user(user_repo: FakeUserRepository) -> PortalUser:
    """Profile document for the regular account."""
    return await user_repo.insert(
        PortalUser(
            id=None,
            uid="user-uid",
            email=USER_EMAIL,
            username="johnsmith1",
            department="Maintenance",
        )
    )


@pytest.fixture
def storage(tmp_path) -> LocalStorageService:
    return LocalStorageService(str(tmp_path / "uploads"))


@pytest.fixture
def admin_session() -> Session:
    return Session(uid="admin-uid", email=ADMIN_EMAIL, is_admin=True)


@pytest.fixture
def user_session() -> Session:
    return Session(uid="user-uid", email=USER_EMAIL, is_admin=False)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {FakeIdentityProvider.token_for('admin-uid')}"}


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {FakeIdentityProvider.token_for('user-uid')}"}


@pytest.fixture
async def client(
    hub: LiveQueryHub,
    repair_repo: FakeRepairRepository,
    user_repo: FakeUserRepository,
    identity: FakeIdentityProvider,
    storage: LocalStorageService,
) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI) wired to the fakes."""
    app.dependency_overrides[get_identity_provider_optional] = lambda: identity
    app.dependency_overrides[get_repair_repo] = lambda: repair_repo
    app.dependency_overrides[get_user_repo] = lambda: user_repo
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_storage] = lambda: storage
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def bare_client() -> AsyncClient:
    """Client without overrides: no identity client, store or storage configured."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
