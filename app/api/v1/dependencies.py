"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the caller's Session and the application
services. Services are built from the Firestore client, identity client,
live-query hub and storage that lifespan puts on app.state; routes depend
only on these functions, never on infrastructure directly. Tests override
get_identity_provider_optional, get_repair_repo, get_user_repo, get_hub and
get_storage with in-memory fakes.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.application.dtos.session import Session
from app.application.interfaces.repositories import IRepairRepository, IUserRepository
from app.application.interfaces.services import IIdentityProvider, IStorageService
from app.application.services.identity_functions import (
    IdentityFunctions,
    build_session,
    require_admin,
)
from app.application.services.photo_service import PhotoService
from app.application.services.repair_service import RepairService
from app.application.services.user_service import UserService
from app.core.config import get_settings
from app.domain.exceptions import AuthenticationException, StoreUnavailableException
from app.infrastructure.exceptions import InvalidTokenError
from app.infrastructure.firebase._rest_client import FirestoreRESTClient
from app.infrastructure.firebase.client import get_firestore_client
from app.infrastructure.firebase.live_query import LiveQueryHub
from app.infrastructure.firebase.repositories import (
    FirestoreRepairRepository,
    FirestoreUserRepository,
)

bearer_scheme = HTTPBearer(auto_error=False)


def get_firestore() -> FirestoreRESTClient:
    """Return the Firestore client or raise 503 when Firebase is not configured."""
    client = get_firestore_client()
    if client is None:
        raise StoreUnavailableException(
            "Database not configured. Set FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH."
        )
    return client


def get_hub(conn: HTTPConnection) -> LiveQueryHub | None:
    return getattr(conn.app.state, "live_query_hub", None)


def get_identity_provider_optional(conn: HTTPConnection) -> IIdentityProvider | None:
    return getattr(conn.app.state, "identity", None)


def get_identity_provider(
    identity: Annotated[IIdentityProvider | None, Depends(get_identity_provider_optional)],
) -> IIdentityProvider:
    if identity is None:
        raise StoreUnavailableException("Authentication service is not configured.")
    return identity


def get_storage(conn: HTTPConnection) -> IStorageService:
    storage = getattr(conn.app.state, "storage", None)
    if storage is None:
        raise StoreUnavailableException("Photo storage is not configured.")
    return storage


def get_repair_repo(
    client: Annotated[FirestoreRESTClient, Depends(get_firestore)],
    hub: Annotated[LiveQueryHub | None, Depends(get_hub)],
) -> IRepairRepository:
    return FirestoreRepairRepository(
        client, hub, max_retries=get_settings().follow_up_max_retries
    )


def get_user_repo(
    client: Annotated[FirestoreRESTClient, Depends(get_firestore)],
    hub: Annotated[LiveQueryHub | None, Depends(get_hub)],
) -> IUserRepository:
    return FirestoreUserRepository(client, hub)


async def resolve_session(
    identity: IIdentityProvider | None, token: str | None
) -> Session | None:
    """Verify a bearer ID token and build the caller's Session.

    Returns None when no token is given.

    Raises:
        AuthenticationException: Token invalid or expired.
        StoreUnavailableException: A token was given but no identity client is configured.
    """
    if not token:
        return None
    if identity is None:
        raise StoreUnavailableException("Authentication service is not configured.")
    try:
        claims = await identity.verify_id_token(token)
    except InvalidTokenError as e:
        raise AuthenticationException("Invalid or expired token") from e
    return build_session(claims, get_settings().admin_email_set, token)


async def get_optional_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    identity: Annotated[IIdentityProvider | None, Depends(get_identity_provider_optional)],
) -> Session | None:
    """Session for the bearer token, or None for anonymous requests."""
    return await resolve_session(identity, credentials.credentials if credentials else None)


async def get_session(
    session: Annotated[Session | None, Depends(get_optional_session)],
) -> Session:
    """Require an authenticated caller (401 otherwise)."""
    if session is None:
        raise AuthenticationException("User must be authenticated")
    return session


async def get_admin_session(
    session: Annotated[Session, Depends(get_session)],
) -> Session:
    """Require an admin caller (403 for other users)."""
    return require_admin(session)


def get_identity_functions(
    identity: Annotated[IIdentityProvider, Depends(get_identity_provider)],
) -> IdentityFunctions:
    settings = get_settings()
    return IdentityFunctions(
        identity,
        email_domain=settings.email_domain,
        admin_emails=settings.admin_email_set,
    )


def get_user_service(
    users: Annotated[IUserRepository, Depends(get_user_repo)],
    functions: Annotated[IdentityFunctions, Depends(get_identity_functions)],
    identity: Annotated[IIdentityProvider, Depends(get_identity_provider)],
) -> UserService:
    return UserService(
        users,
        functions,
        identity,
        default_password=get_settings().default_password.get_secret_value(),
    )


def get_repair_service(
    repairs: Annotated[IRepairRepository, Depends(get_repair_repo)],
    users: Annotated[IUserRepository, Depends(get_user_repo)],
) -> RepairService:
    settings = get_settings()
    return RepairService(
        repairs,
        users,
        page_size=settings.repairs_page_size,
        order_number_max_attempts=settings.order_number_max_attempts,
        export_timezone=settings.export_timezone,
    )


def get_photo_service(
    storage: Annotated[IStorageService, Depends(get_storage)],
) -> PhotoService:
    settings = get_settings()
    return PhotoService(
        storage,
        max_size=settings.max_upload_size,
        max_count=settings.max_photos_per_request,
    )


OptionalSessionDep = Annotated[Session | None, Depends(get_optional_session)]
SessionDep = Annotated[Session, Depends(get_session)]
AdminSessionDep = Annotated[Session, Depends(get_admin_session)]
RepairServiceDep = Annotated[RepairService, Depends(get_repair_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
