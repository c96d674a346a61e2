"""
Filesystem object store for uploaded assets.

Keys look like ``audio/<asset id>.mp3`` and map to files under
``settings.storage_dir``. Files are served back by ``routes_files``.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from podhost.settings import get_settings

logger = logging.getLogger(__name__)


class InvalidStorageKey(ValueError):
    pass


class LocalStorage:
    def __init__(self, root: str | Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def path_for(self, key: str) -> Path:
        if not key or key.startswith("/") or ".." in Path(key).parts:
            raise InvalidStorageKey(key)
        return self.root / key

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"

    def exists(self, key: str) -> bool:
        path = self.path_for(key)
        return path.exists() and path.is_file()

    def size(self, key: str) -> int | None:
        path = self.path_for(key)
        if not path.is_file():
            return None
        return path.stat().st_size

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".part")
        tmp.write_bytes(data)
        tmp.replace(path)

    async def put(self, key: str, data: bytes) -> int:
        path = self.path_for(key)
        await asyncio.to_thread(self._write, path, data)
        logger.info("Stored %d bytes at %s", len(data), key)
        return len(data)


def get_storage() -> LocalStorage:
    settings = get_settings()
    return LocalStorage(settings.storage_dir, settings.storage_public_url)


def extension_for(file_name: str) -> str:
    """Lower-cased extension without the dot, or '' when there is none."""
    name = file_name.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    ext = name.rsplit(".", 1)[-1].lower()
    return ext if ext.isalnum() else ""


def build_storage_key(asset_type: str, asset_id: str, file_name: str) -> str:
    ext = extension_for(file_name)
    return f"{asset_type}/{asset_id}.{ext}" if ext else f"{asset_type}/{asset_id}"
