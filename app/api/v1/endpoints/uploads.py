"""Serves repair photos written by the local storage backend.

Firebase Storage photos are fetched by clients straight from their
download URL and never pass through here.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.api.v1.dependencies import get_storage
from app.application.interfaces.services import IStorageService
from app.infrastructure.exceptions import StorageNotFoundError
from app.infrastructure.external.storage.local_storage import LocalStorageService

router = APIRouter()


@router.get("/{storage_ref:path}")
async def get_upload(
    storage_ref: str,
    storage: Annotated[IStorageService, Depends(get_storage)],
):
    """Stream a stored photo. Sidecar metadata files are not served."""
    if (
        not isinstance(storage, LocalStorageService)
        or storage_ref.endswith(".meta.json")
        or not await storage.exists(storage_ref)
    ):
        raise StorageNotFoundError(storage_ref)
    return StreamingResponse(
        storage.download(storage_ref),
        media_type=await storage.content_type(storage_ref),
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
