"""User management API (admin only): thin routes delegating to UserService."""

from fastapi import APIRouter, Request, Response

from app.api.v1.dependencies import AdminSessionDep, UserServiceDep
from app.core.limiter import limit_user_admin
from app.domain.enums import SortOrder
from app.schemas.user import (
    ReconcileResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=list[UserResponse])
async def list_users(
    session: AdminSessionDep,
    users: UserServiceDep,
    sort: str | None = None,
    order: SortOrder = SortOrder.ASC,
):
    """All portal users, optionally sorted by a column (e.g. ?sort=username&order=desc)."""
    return [UserResponse.model_validate(u) for u in await users.list_users(session, sort, order)]


@router.post("", response_model=UserResponse, status_code=201)
@limit_user_admin
async def create_user(
    request: Request,
    body: UserCreateRequest,
    session: AdminSessionDep,
    users: UserServiceDep,
):
    """Create the identity account and the portal profile."""
    user = await users.create_user(
        session,
        body.username,
        body.department,
        password=body.password,
        created_by=session.email or session.uid,
    )
    return UserResponse.model_validate(user)


@router.post("/reconcile", response_model=ReconcileResponse)
@limit_user_admin
async def reconcile_users(
    request: Request,
    session: AdminSessionDep,
    users: UserServiceDep,
    dry_run: bool = False,
):
    """Remove accounts without profiles and profiles without accounts."""
    return ReconcileResponse.model_validate(await users.reconcile(session, dry_run=dry_run))


@router.patch("/{user_id}", response_model=UserResponse)
@limit_user_admin
async def update_user(
    request: Request,
    user_id: str,
    body: UserUpdateRequest,
    session: AdminSessionDep,
    users: UserServiceDep,
):
    user = await users.update_user(
        session, user_id, username=body.username, department=body.department
    )
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=204)
@limit_user_admin
async def delete_user(
    request: Request,
    user_id: str,
    session: AdminSessionDep,
    users: UserServiceDep,
):
    """Delete the identity account, then the profile."""
    await users.delete_user(session, user_id)
    return Response(status_code=204)


@router.post("/{user_id}/reset-password", response_model=UserResponse)
@limit_user_admin
async def reset_password(
    request: Request,
    user_id: str,
    session: AdminSessionDep,
    users: UserServiceDep,
):
    """Reset to the default password; the user must change it at next sign-in."""
    return UserResponse.model_validate(await users.reset_password(session, user_id))
