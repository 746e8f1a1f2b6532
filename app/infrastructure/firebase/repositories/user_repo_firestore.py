"""Firestore-backed user repository (implements IUserRepository)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from app.domain.entities.portal_user import PortalUser
from app.domain.exceptions import ResourceNotFoundException, StoreUnavailableException
from app.infrastructure.exceptions import DocumentNotFoundError
from app.infrastructure.firebase._rest_client import DocumentSnapshot, FirestoreRESTClient, parse_update_time
from app.infrastructure.firebase._rest_encoding import SERVER_TIMESTAMP
from app.infrastructure.firebase.collections import COLLECTION_USERS
from app.infrastructure.firebase.live_query import LiveQueryHub, Subscription
from app.infrastructure.firebase.repositories._errors import store_errors
from app.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


class FirestoreUserRepository:
    """Portal user profiles in the ``users`` collection (auto ids, looked up by uid)."""

    def __init__(self, client: FirestoreRESTClient, hub: LiveQueryHub | None = None) -> None:
        self._client = client
        self._coll = client.collection(COLLECTION_USERS)
        self._hub = hub

    def _to_entity(self, snapshot: DocumentSnapshot) -> PortalUser:
        data = snapshot.to_dict()
        return PortalUser(
            id=snapshot.id,
            uid=data.get("uid", ""),
            email=data.get("email", ""),
            username=data.get("username", ""),
            department=data.get("department", ""),
            is_first_login=bool(data.get("isFirstLogin", True)),
            created_at=data.get("createdAt"),
            created_by=data.get("createdBy", "admin"),
            last_login=data.get("lastLogin"),
            status=data.get("status", "active"),
        )

    async def _notify(self) -> None:
        if self._hub is not None:
            await self._hub.notify(COLLECTION_USERS)

    async def _update_fields(self, user_id: str, fields: dict[str, Any], operation: str) -> None:
        with store_errors(operation):
            try:
                await self._coll.document(user_id).update(fields)
            except DocumentNotFoundError as e:
                raise ResourceNotFoundException("user", user_id) from e
        await self._notify()

    @traced("users.insert")
    async def insert(self, user: PortalUser) -> PortalUser:
        """Create the profile document; createdAt is the commit time."""
        with store_errors("create user"):
            update_time, ref = await self._coll.add({
                "uid": user.uid,
                "email": user.email,
                "username": user.username,
                "department": user.department,
                "isFirstLogin": user.is_first_login,
                "createdAt": SERVER_TIMESTAMP,
                "createdBy": user.created_by,
                "status": user.status,
            })
        await self._notify()
        return PortalUser(
            id=ref.id,
            uid=user.uid,
            email=user.email,
            username=user.username,
            department=user.department,
            is_first_login=user.is_first_login,
            created_at=parse_update_time(update_time),
            created_by=user.created_by,
            status=user.status,
        )

    async def get(self, user_id: str) -> PortalUser | None:
        """Return user by document id."""
        with store_errors("get user"):
            snapshot = await self._coll.document(user_id).get()
        return self._to_entity(snapshot) if snapshot else None

    async def get_by_uid(self, uid: str) -> PortalUser | None:
        """Return the user document linked to an identity uid."""
        with store_errors("get user by uid"):
            found = await self._coll.where("uid", "==", uid).limit(1).get()
        return self._to_entity(found[0]) if found else None

    async def list_all(self) -> list[PortalUser]:
        with store_errors("list users"):
            snapshots = await self._coll.query().get()
        return [self._to_entity(s) for s in snapshots]

    async def update(
        self, user_id: str, *, username: str | None = None, department: str | None = None
    ) -> PortalUser:
        """Update username and/or department. The e-mail and identity account are untouched."""
        fields: dict[str, Any] = {}
        if username is not None:
            fields["username"] = username
        if department is not None:
            fields["department"] = department
        if fields:
            await self._update_fields(user_id, fields, "update user")
        user = await self.get(user_id)
        if user is None:
            raise ResourceNotFoundException("user", user_id)
        return user

    @traced("users.delete")
    async def delete(self, user_id: str) -> None:
        with store_errors("delete user"):
            await self._coll.document(user_id).delete()
        logger.info("User document %s deleted", user_id)
        await self._notify()

    async def mark_logged_in(self, user_id: str) -> None:
        await self._update_fields(user_id, {"lastLogin": SERVER_TIMESTAMP}, "record login")

    async def clear_first_login(self, user_id: str) -> None:
        await self._update_fields(user_id, {"isFirstLogin": False}, "clear first login")

    async def reset_first_login(self, user_id: str) -> None:
        await self._update_fields(user_id, {"isFirstLogin": True}, "reset first login")

    def subscribe_all(
        self,
        on_change: Callable[[list[PortalUser]], Any],
        *,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> Subscription[PortalUser]:
        """Live query over the whole collection; callers sort client-side."""
        if self._hub is None:
            raise StoreUnavailableException("Live updates are not available.")
        return self._hub.subscribe(COLLECTION_USERS, self.list_all, on_change, on_error)
