"""
Object storage for profile pictures and prompt images.

Files live under ``MEDIA_ROOT`` and are served by the app at ``MEDIA_URL``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Iterable, Protocol

from starlette.concurrency import run_in_threadpool

from promptmart.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    async def upload(self, data: bytes, filename: str, folder: str) -> dict:
        ...

    async def delete(self, storage_key: str) -> None:
        ...


class LocalObjectStore:
    def __init__(self, root: str | Path, base_url: str) -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    def _path_for(self, storage_key: str) -> Path:
        path = (self.root / PurePosixPath(storage_key)).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Invalid storage key: {storage_key}")
        return path

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def upload(self, data: bytes, filename: str, folder: str) -> dict:
        suffix = PurePosixPath(filename or "").suffix.lower() or ".bin"
        stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        storage_key = f"{folder}/{stamp}_{uuid.uuid4().hex[:12]}{suffix}"
        try:
            await run_in_threadpool(self._write, self._path_for(storage_key), data)
        except OSError as exc:
            raise StorageError() from exc
        logger.info("Stored %s (%d bytes)", storage_key, len(data))
        return {"storage_key": storage_key, "url": f"{self.base_url}/{storage_key}"}

    async def delete(self, storage_key: str) -> None:
        path = self._path_for(storage_key)
        try:
            await run_in_threadpool(path.unlink, True)
        except OSError as exc:
            raise StorageError(f"Could not delete {storage_key}") from exc
        logger.info("Deleted %s", storage_key)


async def delete_quietly(store: ObjectStore, storage_keys: Iterable[str]) -> None:
    """Best-effort teardown: failures are logged, never raised."""
    for key in storage_keys:
        try:
            await store.delete(key)
        except StorageError as exc:
            logger.warning("Could not delete stored object %s: %s", key, exc)
