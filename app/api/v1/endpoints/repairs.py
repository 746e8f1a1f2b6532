"""Repair ticket API: thin routes delegating to RepairService and PhotoService."""

from dataclasses import replace
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import Response

from app.api.v1.dependencies import (
    AdminSessionDep,
    RepairServiceDep,
    SessionDep,
    get_photo_service,
)
from app.application.dtos.repair import NewRepair
from app.application.services.csv_export import CSV_MEDIA_TYPE
from app.application.services.photo_service import PhotoService, PhotoUpload
from app.core.limiter import limit_upload, limit_writes
from app.domain.enums import ExportDateType, RepairSortField, RepairStatus, SortOrder
from app.schemas.repair import (
    FollowUpRequest,
    RepairCountsResponse,
    RepairListResponse,
    RepairResponse,
    StatusChangeRequest,
)

router = APIRouter()


@router.post("", response_model=RepairResponse, status_code=201)
@limit_upload
async def submit_repair(
    request: Request,
    session: SessionDep,
    repairs: RepairServiceDep,
    photo_service: Annotated[PhotoService, Depends(get_photo_service)],
    description: str = Form(...),
    location: str = Form(...),
    photos: list[UploadFile] | None = File(default=None),
):
    """Submit a repair request with optional photos (multipart form)."""
    form = NewRepair(description=description, location=location)
    repairs.validate_form(form)
    files = [p for p in photos or [] if p.filename]
    photo_service.check_count(len(files))
    for p in files:
        photo_service.check_file(p.filename, p.content_type, p.size)
    uploads = [
        PhotoUpload(filename=p.filename, content_type=p.content_type, data=await p.read())
        for p in files
    ]
    ticket = await photo_service.attach(
        uploads, lambda urls: repairs.submit(session, replace(form, image_urls=urls))
    )
    return RepairResponse.model_validate(ticket)


@router.get("", response_model=RepairListResponse)
async def list_repairs(
    session: AdminSessionDep,
    repairs: RepairServiceDep,
    status: RepairStatus = RepairStatus.PENDING,
    cursor: str | None = None,
    search: str | None = None,
    sort: RepairSortField = RepairSortField.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
):
    """Admin dashboard tab: one page per status, or every match when searching."""
    page = await repairs.list_page(
        session, status, cursor=cursor, search=search, sort=sort, order=order
    )
    return RepairListResponse(
        items=[RepairResponse.model_validate(t) for t in page.items],
        next_cursor=page.next_cursor.encode() if page.next_cursor else None,
        has_more=page.has_more,
    )


@router.get("/mine", response_model=list[RepairResponse])
async def my_repairs(session: SessionDep, repairs: RepairServiceDep):
    """The caller's own requests, newest first."""
    return [RepairResponse.model_validate(t) for t in await repairs.my_requests(session)]


@router.get("/counts", response_model=RepairCountsResponse)
async def repair_counts(session: AdminSessionDep, repairs: RepairServiceDep):
    return RepairCountsResponse.model_validate(await repairs.counts(session))


@router.get("/export")
async def export_repairs(
    session: AdminSessionDep,
    repairs: RepairServiceDep,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
    date_type: ExportDateType = ExportDateType.ALL,
    status: RepairStatus | None = None,
):
    """Download the tickets whose chosen date falls in [start_date, end_date] as CSV."""
    export = await repairs.export(session, start_date, end_date, date_type, status)
    return Response(
        content=export.content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("/{repair_id}", response_model=RepairResponse)
async def get_repair(repair_id: str, session: SessionDep, repairs: RepairServiceDep):
    return RepairResponse.model_validate(await repairs.get(session, repair_id))


@router.post("/{repair_id}/complete", response_model=RepairResponse)
@limit_writes
async def complete_repair(
    request: Request,
    repair_id: str,
    session: AdminSessionDep,
    repairs: RepairServiceDep,
    body: StatusChangeRequest | None = None,
):
    """Mark a pending ticket completed. Terminal tickets answer 409."""
    reason = body.reason if body else None
    return RepairResponse.model_validate(await repairs.complete(session, repair_id, reason))


@router.post("/{repair_id}/cancel", response_model=RepairResponse)
@limit_writes
async def cancel_repair(
    request: Request,
    repair_id: str,
    session: AdminSessionDep,
    repairs: RepairServiceDep,
    body: StatusChangeRequest | None = None,
):
    """Mark a pending ticket cancelled. Terminal tickets answer 409."""
    reason = body.reason if body else None
    return RepairResponse.model_validate(await repairs.cancel(session, repair_id, reason))


@router.post("/{repair_id}/follow-ups", response_model=RepairResponse)
@limit_writes
async def add_follow_up(
    request: Request,
    repair_id: str,
    body: FollowUpRequest,
    session: AdminSessionDep,
    repairs: RepairServiceDep,
):
    """Append a follow-up note to a pending ticket."""
    return RepairResponse.model_validate(
        await repairs.add_follow_up(session, repair_id, body.note)
    )
