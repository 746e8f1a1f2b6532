"""Firebase Storage backend (Cloud Storage JSON API over httpx).

Objects are uploaded with a firebaseStorageDownloadTokens metadata entry, so
the returned URL is the same tokenized download URL the Firebase SDK's
getDownloadURL() hands out.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator
from typing import BinaryIO
from urllib.parse import quote

import httpx

from app.infrastructure.exceptions import (
    StorageNotFoundError,
    StoragePermissionError,
    StorageUploadError,
)
from app.shared.utils.generators import download_token

logger = logging.getLogger(__name__)

_UPLOAD_BASE = "https://storage.googleapis.com/upload/storage/v1"
_API_BASE = "https://storage.googleapis.com/storage/v1"
_DOWNLOAD_BASE = "https://firebasestorage.googleapis.com/v0"


def _multipart_related(metadata: dict, content: bytes, content_type: str) -> tuple[bytes, str]:
    """Encode a multipart/related body (JSON metadata part + media part)."""
    boundary = f"==={uuid.uuid4().hex}==="
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode()
    tail = f"\r\n--{boundary}--\r\n".encode()
    return head + content + tail, f"multipart/related; boundary={boundary}"


class FirebaseStorageService:
    """Photo storage in the project's Firebase Storage bucket."""

    def __init__(
        self,
        bucket: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.bucket = bucket
        self._credentials = credentials
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=60.0)
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _headers(self) -> dict[str, str]:
        from app.infrastructure.firebase._rest_client import _get_access_token

        token = await asyncio.to_thread(_get_access_token, self._credentials)
        return {"Authorization": f"Bearer {token}"}

    def download_url(self, storage_ref: str, token: str) -> str:
        return (
            f"{_DOWNLOAD_BASE}/b/{self.bucket}/o/{quote(storage_ref, safe='')}"
            f"?alt=media&token={token}"
        )

    async def upload(self, file_data: BinaryIO, storage_ref: str, content_type: str) -> str:
        """Upload and return the tokenized download URL."""
        token = download_token()
        metadata = {
            "name": storage_ref,
            "contentType": content_type,
            "metadata": {"firebaseStorageDownloadTokens": token},
        }
        body, multipart_type = _multipart_related(metadata, file_data.read(), content_type)
        headers = {**await self._headers(), "Content-Type": multipart_type}
        try:
            resp = await self._http.post(
                f"{_UPLOAD_BASE}/b/{self.bucket}/o",
                params={"uploadType": "multipart"},
                content=body,
                headers=headers,
            )
        except httpx.TransportError as e:
            raise StorageUploadError(storage_ref, str(e)) from e
        if resp.status_code in (401, 403):
            raise StoragePermissionError(storage_ref, "upload")
        if resp.status_code != 200:
            raise StorageUploadError(storage_ref, f"HTTP {resp.status_code}: {resp.text[:200]}")
        logger.info("Uploaded %s to bucket %s", storage_ref, self.bucket)
        return self.download_url(storage_ref, token)

    async def download(self, storage_ref: str) -> AsyncIterator[bytes]:
        url = f"{_API_BASE}/b/{self.bucket}/o/{quote(storage_ref, safe='')}"
        async with self._http.stream(
            "GET", url, params={"alt": "media"}, headers=await self._headers()
        ) as resp:
            if resp.status_code == 404:
                raise StorageNotFoundError(storage_ref)
            resp.raise_for_status()
            async for chunk in resp.aiter_bytes():
                yield chunk

    async def delete(self, storage_ref: str) -> bool:
        url = f"{_API_BASE}/b/{self.bucket}/o/{quote(storage_ref, safe='')}"
        resp = await self._http.delete(url, headers=await self._headers())
        if resp.status_code == 404:
            return False
        resp.raise_for_status()
        return True

    async def exists(self, storage_ref: str) -> bool:
        url = f"{_API_BASE}/b/{self.bucket}/o/{quote(storage_ref, safe='')}"
        resp = await self._http.get(url, headers=await self._headers())
        return resp.status_code == 200
