from __future__ import annotations

from umkm.services.storage import LocalObjectStore, StorageError

# Upload bodies equal to this marker fail, whatever their name.
FAIL_MARKER = b"__fail_upload__"


class FlakyObjectStore:
    """
    Wraps a LocalObjectStore, records every call, and fails on demand.
    """

    def __init__(self, inner: LocalObjectStore):
        self.inner = inner
        self.bucket = inner.bucket
        self.calls: list[tuple[str, object]] = []
        self.fail_removes = False

    async def upload(self, *, path: str, data: bytes, content_type: str) -> str:
        self.calls.append(("upload", path))
        if data == FAIL_MARKER:
            raise StorageError(f"simulated upload failure for {path}")
        return await self.inner.upload(path=path, data=data, content_type=content_type)

    def get_public_url(self, path: str) -> str:
        return self.inner.get_public_url(path)

    async def remove(self, paths: list[str]) -> list[str]:
        self.calls.append(("remove", list(paths)))
        if self.fail_removes:
            raise StorageError("simulated remove failure")
        return await self.inner.remove(paths)

    def path_from_url(self, url: str) -> str | None:
        return self.inner.path_from_url(url)

    def exists(self, url: str) -> bool:
        path = self.path_from_url(url)
        return bool(path) and self.inner.resolve_path(path).exists()

    @property
    def network_calls(self) -> int:
        return len(self.calls)
