"""WebSocket live feeds: /ws/repairs and /ws/users.

The caller's ID token comes in the ``token`` query param. Each connection
owns one live subscription: the current result set is pushed as
``{"type": "snapshot", "items": [...]}`` whenever it changes, and a failed
refresh as ``{"type": "error", "message": ...}``. The subscription is
closed when the client disconnects.
"""

import logging
from collections.abc import Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.api.v1.dependencies import (
    get_identity_provider_optional,
    get_repair_service,
    get_user_service,
    resolve_session,
)
from app.application.dtos.session import Session
from app.application.interfaces.repositories import ISubscription
from app.application.interfaces.services import IIdentityProvider
from app.application.services.repair_service import RepairService
from app.application.services.user_service import UserService
from app.domain.enums import RepairStatus
from app.domain.exceptions import PortalException
from app.schemas.repair import RepairResponse
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def _reject_websocket(websocket: WebSocket, reason: str, code: int = 1008) -> None:
    """Accept then immediately close with code/reason so client gets a proper close frame."""
    await websocket.accept()
    await websocket.close(code=code, reason=reason)


async def _authenticate(
    websocket: WebSocket, identity: IIdentityProvider | None
) -> Session | None:
    token = websocket.query_params.get("token")
    if not token:
        await _reject_websocket(websocket, "Missing token")
        return None
    try:
        return await resolve_session(identity, token)
    except PortalException as e:
        await _reject_websocket(websocket, e.message)
        return None


def _error_message(exc: Exception) -> str:
    if isinstance(exc, PortalException):
        return exc.message
    return "Failed to load data"


async def _serve(
    websocket: WebSocket,
    open_subscription: Callable[..., ISubscription],
    serialize: Callable[[Any], dict[str, Any]],
) -> None:
    """Open the subscription, push its results, and close it on disconnect."""

    async def on_change(items: list[Any]) -> None:
        await websocket.send_json({"type": "snapshot", "items": [serialize(i) for i in items]})

    async def on_error(exc: Exception) -> None:
        await websocket.send_json({"type": "error", "message": _error_message(exc)})

    await websocket.accept()
    try:
        subscription = open_subscription(on_change, on_error=on_error)
    except PortalException as e:
        await websocket.close(code=1008, reason=e.message)
        return
    try:
        while True:
            # Inbound messages are ignored; receiving detects the disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        subscription.unsubscribe()


@router.websocket("/repairs")
async def repairs_feed(
    websocket: WebSocket,
    identity: Annotated[IIdentityProvider | None, Depends(get_identity_provider_optional)],
    repairs: Annotated[RepairService, Depends(get_repair_service)],
    status: RepairStatus = RepairStatus.PENDING,
    search: str | None = None,
):
    """Live first page of one status tab (admin only); with search, every match."""
    session = await _authenticate(websocket, identity)
    if session is None:
        return
    await _serve(
        websocket,
        lambda on_change, on_error: repairs.subscribe(
            session, status, on_change, search=search, on_error=on_error
        ),
        lambda t: RepairResponse.model_validate(t).model_dump(mode="json"),
    )


@router.websocket("/users")
async def users_feed(
    websocket: WebSocket,
    identity: Annotated[IIdentityProvider | None, Depends(get_identity_provider_optional)],
    users: Annotated[UserService, Depends(get_user_service)],
):
    """Live list of portal users (admin only)."""
    session = await _authenticate(websocket, identity)
    if session is None:
        return
    await _serve(
        websocket,
        lambda on_change, on_error: users.subscribe_users(session, on_change, on_error=on_error),
        lambda u: UserResponse.model_validate(u).model_dump(mode="json"),
    )
