"""Repair photo uploads: validation, naming and storage."""

from __future__ import annotations

import io
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from app.application.interfaces.services import IStorageService
from app.domain.exceptions import ValidationException
from app.shared.utils.datetime import epoch_millis
from app.shared.utils.generators import generate_cuid
from app.shared.utils.sanitization import InputSanitizer

logger = logging.getLogger(__name__)

PHOTO_PREFIX = "repairs"

T = TypeVar("T")


@dataclass(frozen=True)
class PhotoUpload:
    """One file from the submission form."""

    filename: str | None
    content_type: str | None
    data: bytes


def photo_storage_ref(filename: str | None) -> str:
    """``repairs/<epoch millis>-<cuid>-<safe name>``."""
    return f"{PHOTO_PREFIX}/{epoch_millis()}-{generate_cuid()}-{InputSanitizer.sanitize_file_name(filename)}"


class PhotoService:
    """Validates photos and stores them in order, returning their URLs."""

    def __init__(self, storage: IStorageService, *, max_size: int, max_count: int) -> None:
        self._storage = storage
        self._max_size = max_size
        self._max_count = max_count

    def check_count(self, count: int) -> None:
        if count > self._max_count:
            raise ValidationException(
                f"At most {self._max_count} photos can be attached", field="photos"
            )

    def check_file(self, filename: str | None, content_type: str | None, size: int | None) -> None:
        """Reject a non-image or an oversized file. A size of None is checked after reading."""
        if not (content_type or "").startswith("image/"):
            raise ValidationException(f"{filename or 'File'} is not an image", field="photos")
        if size is not None and size > self._max_size:
            raise ValidationException(
                f"{filename or 'File'} exceeds the {self._max_size // (1024 * 1024)} MB limit",
                field="photos",
            )

    def validate(self, photos: list[PhotoUpload]) -> None:
        self.check_count(len(photos))
        for photo in photos:
            self.check_file(photo.filename, photo.content_type, len(photo.data))

    async def _discard(self, refs: list[str]) -> None:
        for ref in refs:
            try:
                await self._storage.delete(ref)
            except Exception:
                logger.exception("Could not remove orphaned photo %s", ref)

    async def _store(self, photos: list[PhotoUpload]) -> tuple[list[str], list[str]]:
        """Upload in order; on a failed upload the earlier ones are removed again."""
        self.validate(photos)
        refs: list[str] = []
        urls: list[str] = []
        try:
            for photo in photos:
                ref = photo_storage_ref(photo.filename)
                urls.append(
                    await self._storage.upload(
                        io.BytesIO(photo.data), ref, photo.content_type or "image/jpeg"
                    )
                )
                refs.append(ref)
        except Exception:
            await self._discard(refs)
            raise
        if urls:
            logger.info("Stored %d repair photos", len(urls))
        return refs, urls

    async def upload_all(self, photos: list[PhotoUpload]) -> list[str]:
        """Upload every photo; the returned URLs keep the submission order."""
        _, urls = await self._store(photos)
        return urls

    async def attach(
        self, photos: list[PhotoUpload], create: Callable[[list[str]], Awaitable[T]]
    ) -> T:
        """Upload photos, then run create with their URLs.

        If create raises, the photos just stored are deleted before the error
        propagates, so a failed submission leaves no files behind.
        """
        refs, urls = await self._store(photos)
        try:
            return await create(urls)
        except Exception:
            if refs:
                logger.warning("Submission failed; removing %d uploaded photos", len(refs))
                await self._discard(refs)
            raise
