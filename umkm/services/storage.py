from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote, urlparse

import httpx

from umkm.core.config import settings

log = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class ObjectStore(Protocol):
    bucket: str

    async def upload(self, *, path: str, data: bytes, content_type: str) -> str: ...

    def get_public_url(self, path: str) -> str: ...

    async def remove(self, paths: list[str]) -> list[str]: ...

    def path_from_url(self, url: str) -> str | None: ...


def object_path_from_url(url: str, bucket: str) -> str | None:
    """
    Recover the object path (``main/abc.jpg``) from a public URL by taking
    everything after the bucket segment. Returns None for foreign URLs.
    """
    if not url:
        return None
    parsed = urlparse(url)
    parts = [unquote(p) for p in parsed.path.split("/")]
    if bucket not in parts:
        return None
    rest = parts[parts.index(bucket) + 1 :]
    path = "/".join(p for p in rest if p)
    return path or None


class LocalObjectStore:
    """
    Filesystem object store for development and tests.
    Objects live under ``<base_dir>/<bucket>/<path>``.
    """

    def __init__(self, base_dir: str, *, bucket: str, public_base_url: str):
        self.base = Path(base_dir)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        (self.base / bucket).mkdir(parents=True, exist_ok=True)

    def resolve_path(self, path: str) -> Path:
        resolved = (self.base / self.bucket / path).resolve()
        root = (self.base / self.bucket).resolve()
        if root not in resolved.parents:
            raise StorageError(f"Path escapes bucket: {path}")
        return resolved

    async def upload(self, *, path: str, data: bytes, content_type: str) -> str:
        target = self.resolve_path(path)
        if target.exists():
            raise StorageError(f"Object already exists: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return path

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{quote(path)}"

    async def remove(self, paths: list[str]) -> list[str]:
        removed: list[str] = []
        for path in paths:
            target = self.resolve_path(path)
            if target.exists():
                target.unlink()
                removed.append(path)
        return removed

    def path_from_url(self, url: str) -> str | None:
        return object_path_from_url(url, self.bucket)


class SupabaseObjectStore:
    """
    Supabase Storage over its REST API.

    - One AsyncClient instance (connection pooling).
    - No retries; callers decide what a failure means.
    """

    def __init__(
        self,
        *,
        base_url: str,
        service_key: str,
        bucket: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Authorization": f"Bearer {service_key}", "apikey": service_key},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def upload(self, *, path: str, data: bytes, content_type: str) -> str:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"
        try:
            resp = await self._client.post(
                url,
                content=data,
                headers={
                    "Content-Type": content_type,
                    "cache-control": "max-age=3600",
                    "x-upsert": "false",
                },
            )
        except httpx.RequestError as e:
            raise StorageError(f"Upload of {path} failed: {e}") from e

        if resp.status_code >= 300:
            raise StorageError(f"Upload of {path} failed: HTTP {resp.status_code} {resp.text[:500]}")
        return path

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    async def remove(self, paths: list[str]) -> list[str]:
        if not paths:
            return []
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        try:
            resp = await self._client.request("DELETE", url, json={"prefixes": paths})
        except httpx.RequestError as e:
            raise StorageError(f"Remove failed: {e}") from e

        if resp.status_code >= 300:
            raise StorageError(f"Remove failed: HTTP {resp.status_code} {resp.text[:500]}")

        try:
            body = resp.json()
        except ValueError:
            return list(paths)
        # Supabase answers with the deleted object rows
        if isinstance(body, list):
            return [row.get("name") for row in body if isinstance(row, dict) and row.get("name")]
        return list(paths)

    def path_from_url(self, url: str) -> str | None:
        return object_path_from_url(url, self.bucket)


@lru_cache
def get_object_store() -> ObjectStore:
    if settings.storage_backend == "local":
        return LocalObjectStore(
            settings.local_storage_dir,
            bucket=settings.storage_bucket,
            public_base_url=settings.local_storage_base_url,
        )
    if settings.storage_backend == "supabase":
        return SupabaseObjectStore(
            base_url=settings.supabase_url,
            service_key=settings.supabase_service_key.get_secret_value(),
            bucket=settings.storage_bucket,
            timeout_seconds=settings.storage_timeout_seconds,
        )
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")
