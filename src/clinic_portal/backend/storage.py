"""
clinic_portal.backend.storage

Hosted object storage client (payment receipts).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol
from urllib.parse import quote

import httpx

from clinic_portal.observability.logging import get_logger
from clinic_portal.settings import Settings

log = get_logger(__name__)


class StorageError(Exception):
    pass


class ReceiptStorage(Protocol):
    async def upload(self, *, bucket: str, path: str, content: bytes, content_type: str) -> str: ...


class StorageClient:
    def __init__(
        self,
        *,
        settings: Settings,
        http: httpx.AsyncClient,
        token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._settings = settings
        self._http = http
        self._token_provider = token_provider

    async def upload(self, *, bucket: str, path: str, content: bytes, content_type: str) -> str:
        headers = {
            "apikey": self._settings.backend_anon_key,
            "content-type": content_type,
            # Receipts are write-once; an existing object means a duplicate upload.
            "x-upsert": "false",
        }
        token = self._token_provider() if self._token_provider is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"/storage/v1/object/{quote(bucket)}/{quote(path)}"
        try:
            r = await self._http.post(url, content=content, headers=headers)
        except httpx.HTTPError as e:
            raise StorageError(f"upload failed: {e}") from e
        if r.status_code >= 400:
            raise StorageError(f"upload failed with status {r.status_code}")

        try:
            body = r.json()
        except ValueError:
            body = {}
        key = body.get("Key") if isinstance(body, dict) else None
        log.info("storage_uploaded", bucket=bucket, path=path, size=len(content))
        return str(key or f"{bucket}/{path}")
