"""Screenshot object storage on the local filesystem.

Paths are bucket-relative (``{customer_id}/{request_id}-{timestamp}.png``) so
the same keys work when the root points at a mounted bucket.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object cannot be written or read."""
    pass


class LocalStorage:
    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or settings.capture.storage_root)

    def _resolve(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, key: str, data: bytes) -> str:
        """Store ``data`` under ``key`` and return the key."""
        path = self._resolve(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise StorageError(f"Failed to store {key}: {e}") from e
        logger.debug(f"Stored {len(data)} bytes at {key}")
        return key

    async def get(self, key: str) -> bytes:
        path = self._resolve(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def delete(self, key: str) -> None:
        path = self._resolve(key)
        await asyncio.to_thread(path.unlink, True)
