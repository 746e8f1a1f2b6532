"""Repair photos on the local filesystem, served back by /api/v1/uploads."""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO

import aiofiles
import aiofiles.os

from app.infrastructure.exceptions import (
    StorageNotFoundError,
    StoragePermissionError,
    StorageUploadError,
)
from app.shared.utils.datetime import utc_now

UPLOADS_ROUTE = "/api/v1/uploads"
_DEFAULT_CONTENT_TYPE = "application/octet-stream"


class LocalStorageService:
    """Photos under storage_root, each with a ``<name>.meta.json`` sidecar.

    Every ref must resolve inside storage_root. Files and sidecars are written
    to a temp file in the target directory and renamed into place, so readers
    never see a partial photo.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, storage_root: str, base_url: str | None = None) -> None:
        self.storage_root = Path(storage_root).resolve()
        self.base_url = base_url.rstrip("/") if base_url else None
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _resolve(self, storage_ref: str) -> Path:
        path = (self.storage_root / storage_ref).resolve()
        if not path.is_relative_to(self.storage_root):
            raise StoragePermissionError(storage_ref, "path_validation")
        return path

    @staticmethod
    def _sidecar(path: Path) -> Path:
        return path.with_name(path.name + ".meta.json")

    @staticmethod
    async def _write_atomic(target: Path, data: bytes) -> None:
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=".tmp_")
        os.close(fd)
        try:
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(data)
            os.chmod(tmp, 0o640)
            os.replace(tmp, target)
        finally:
            if os.path.exists(tmp):
                os.unlink(tmp)

    def public_url(self, storage_ref: str) -> str:
        path = f"{UPLOADS_ROUTE}/{storage_ref}"
        return f"{self.base_url}{path}" if self.base_url else path

    async def upload(self, file_data: BinaryIO, storage_ref: str, content_type: str) -> str:
        target = self._resolve(storage_ref)
        content = file_data.read()
        sidecar = {
            "content_type": content_type,
            "size": len(content),
            "uploaded_at": utc_now().isoformat(),
        }
        try:
            target.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
            await self._write_atomic(target, content)
            await self._write_atomic(self._sidecar(target), json.dumps(sidecar).encode())
        except OSError as e:
            raise StorageUploadError(storage_ref, str(e)) from e
        return self.public_url(storage_ref)

    async def content_type(self, storage_ref: str) -> str:
        sidecar = self._sidecar(self._resolve(storage_ref))
        if not sidecar.is_file():
            return _DEFAULT_CONTENT_TYPE
        async with aiofiles.open(sidecar) as f:
            return json.loads(await f.read()).get("content_type", _DEFAULT_CONTENT_TYPE)

    async def download(self, storage_ref: str) -> AsyncIterator[bytes]:
        path = self._resolve(storage_ref)
        if not path.is_file():
            raise StorageNotFoundError(storage_ref)
        async with aiofiles.open(path, "rb") as f:
            while chunk := await f.read(self.CHUNK_SIZE):
                yield chunk

    async def delete(self, storage_ref: str) -> bool:
        """Remove the photo and its sidecar; False when there was nothing to remove."""
        path = self._resolve(storage_ref)
        if not path.is_file():
            return False
        await aiofiles.os.remove(path)
        sidecar = self._sidecar(path)
        if sidecar.is_file():
            await aiofiles.os.remove(sidecar)
        return True

    async def exists(self, storage_ref: str) -> bool:
        try:
            return self._resolve(storage_ref).is_file()
        except StoragePermissionError:
            return False
