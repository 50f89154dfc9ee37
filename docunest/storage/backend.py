"""
Blob store for encrypted document bodies.

Each document's ciphertext lives under a storage key of the form

    documents/<owner_id>/<ms timestamp>-<random>.<type>.enc

The key is recorded on the Document row. Nothing else about the on-disk
layout is visible outside this module.
"""
from functools import lru_cache
from pathlib import Path
from typing import Protocol
import logging
import secrets
import time

import aiofiles
import aiofiles.os

from docunest.config import get_settings
from docunest.errors import ConfigurationError

logger = logging.getLogger(__name__)

BLOB_SUFFIX = ".enc"
OWNER_ROOT = "documents"


def new_blob_name(file_type: str) -> str:
    """Unique stored name for a new upload: <ms timestamp>-<random>.<type>.enc"""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{file_type}{BLOB_SUFFIX}"


def owner_blob_key(owner_id: int, blob_name: str) -> str:
    return f"{OWNER_ROOT}/{owner_id}/{blob_name}"


class StorageBackend(Protocol):
    """Where ciphertext is kept. Callers only ever hold storage keys."""

    async def store(self, key: str, ciphertext: bytes) -> None:
        ...

    async def retrieve(self, key: str) -> bytes:
        """Raises FileNotFoundError when nothing is stored at key."""
        ...

    async def delete(self, key: str) -> None:
        """Removing a missing blob is not an error."""
        ...


class LocalStorageBackend:
    """
    Ciphertext on the local filesystem, one directory per owner.

    A blob is written to a ``.part`` file and renamed into place, so a
    download never reads a half-written ciphertext.
    """

    def __init__(self, root: str):
        self.base_path = Path(root).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Blob store at {self.base_path}")

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key.lstrip("/")).resolve()
        if self.base_path not in path.parents:
            raise ValueError(f"Storage key escapes the blob store: {key}")
        return path

    async def store(self, key: str, ciphertext: bytes) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        partial = path.with_name(path.name + ".part")
        async with aiofiles.open(partial, "wb") as f:
            await f.write(ciphertext)
        await aiofiles.os.replace(partial, path)

        logger.debug(f"Stored {len(ciphertext)} bytes at {key}")

    async def retrieve(self, key: str) -> bytes:
        async with aiofiles.open(self._path_for(key), "rb") as f:
            return await f.read()

    async def delete(self, key: str) -> None:
        """Remove a blob, then any owner directory it leaves empty."""
        path = self._path_for(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return
        logger.debug(f"Deleted {key}")

        for directory in path.parents:
            if directory == self.base_path:
                break
            try:
                await aiofiles.os.rmdir(directory)
            except OSError:
                # Still holds other blobs
                break


@lru_cache()
def get_storage_backend() -> StorageBackend:
    """The configured blob store (cached)."""
    settings = get_settings()
    if settings.storage_backend != "local":
        raise ConfigurationError(f"Unknown storage backend: {settings.storage_backend}")
    return LocalStorageBackend(settings.storage_local_path)
