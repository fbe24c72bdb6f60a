"""Attachment stores.

Paths handed to :meth:`AttachmentStorage.upload` are relative
(``resumes/1712345678901_jane_doe.pdf``) and become the durable reference
kept on the application record. Uploads never replace an existing
object.
"""
from __future__ import annotations

import asyncio
import os
from pathlib import Path, PurePosixPath
from typing import Protocol

import aiofiles
import aiofiles.os
import httpx
import structlog

from app.config import Settings
from app.exceptions import MisconfigurationError, UpstreamServiceError
from services.forms import PDF_MEDIA_TYPE

logger = structlog.get_logger()

LIST_PAGE_SIZE = 1000


class AttachmentStorage(Protocol):
    def ensure_configured(self) -> None: ...

    async def upload(self, path: str, data: bytes, content_type: str = PDF_MEDIA_TYPE) -> str: ...

    async def list_paths(self, folder: str) -> list[str]: ...

    async def delete(self, path: str) -> None: ...


def _check_relative(path: str) -> PurePosixPath:
    relative = PurePosixPath(path)
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise ValueError(f"Refusing storage path {path!r}")
    return relative


class LocalAttachmentStorage:
    """Store attachments on the local filesystem under ``settings.storage_directory``."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.root = Path(settings.storage_directory)

    def ensure_configured(self) -> None:
        return None

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*_check_relative(path).parts)

    async def upload(self, path: str, data: bytes, content_type: str = PDF_MEDIA_TYPE) -> str:
        target = self._resolve(path)
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            # "x" fails if the object already exists
            async with aiofiles.open(target, "xb") as handle:
                await handle.write(data)
        except FileExistsError as exc:
            raise UpstreamServiceError(f"Attachment already exists at {path}") from exc
        except OSError as exc:
            raise UpstreamServiceError(f"Could not write attachment {path}: {exc}") from exc
        return path

    async def list_paths(self, folder: str) -> list[str]:
        directory = self._resolve(folder)
        if not await aiofiles.os.path.isdir(directory):
            return []
        names = await aiofiles.os.listdir(directory)
        return sorted(f"{folder}/{name}" for name in names if os.path.isfile(directory / name))

    async def delete(self, path: str) -> None:
        await aiofiles.os.remove(self._resolve(path))


class SupabaseAttachmentStorage:
    """Store attachments in a Supabase Storage bucket through its REST API."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client

    def ensure_configured(self) -> None:
        if not self.settings.supabase_url or not self.settings.supabase_service_role_key:
            raise MisconfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    @property
    def _base_url(self) -> str:
        return f"{(self.settings.supabase_url or '').rstrip('/')}/storage/v1/object"

    def _headers(self) -> dict[str, str]:
        key = self.settings.supabase_service_role_key or ""
        return {"authorization": f"Bearer {key}", "apikey": key}

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        self.ensure_configured()
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.settings.storage_timeout_seconds) as client:
                    response = await client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamServiceError(
                f"Supabase storage returned {exc.response.status_code}: {exc.response.text[:500]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(f"Supabase storage request failed: {exc!r}") from exc
        return response

    async def upload(self, path: str, data: bytes, content_type: str = PDF_MEDIA_TYPE) -> str:
        _check_relative(path)
        await self._request(
            "POST",
            f"{self._base_url}/{self.settings.storage_bucket}/{path}",
            content=data,
            headers={"content-type": content_type, "x-upsert": "false"},
        )
        return path

    async def list_paths(self, folder: str) -> list[str]:
        paths: list[str] = []
        offset = 0
        while True:
            response = await self._request(
                "POST",
                f"{self._base_url}/list/{self.settings.storage_bucket}",
                json={"prefix": folder, "limit": LIST_PAGE_SIZE, "offset": offset},
            )
            page = response.json()
            # folders come back with a null id
            paths.extend(f"{folder}/{item['name']}" for item in page if item.get("id"))
            if len(page) < LIST_PAGE_SIZE:
                return sorted(paths)
            offset += len(page)

    async def delete(self, path: str) -> None:
        _check_relative(path)
        await self._request("DELETE", f"{self._base_url}/{self.settings.storage_bucket}/{path}")


def build_storage(settings: Settings) -> AttachmentStorage:
    if settings.storage_backend == "supabase":
        return SupabaseAttachmentStorage(settings)
    return LocalAttachmentStorage(settings)


async def upload_all(
    storage: AttachmentStorage,
    uploads: list[tuple[str, bytes]],
    *,
    timeout: float,
) -> list[str]:
    """Upload several attachments concurrently; all must succeed.

    The first failure cancels the uploads still in flight.
    """

    tasks = [asyncio.ensure_future(storage.upload(path, data)) for path, data in uploads]
    try:
        return list(await asyncio.wait_for(asyncio.gather(*tasks), timeout=timeout))
    except asyncio.TimeoutError as exc:
        raise UpstreamServiceError(f"Attachment upload timed out after {timeout}s") from exc
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
