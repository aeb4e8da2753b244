from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

import httpx
from slugify import slugify

from app.core.config import settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedAsset:
    """Файл из multipart-запроса, уже прочитанный в память."""
    filename: str
    data: bytes
    content_type: Optional[str] = None


class AssetStore(Protocol):
    async def store(
        self,
        namespace: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """Сохраняет файл и возвращает его reference (путь)."""

    async def delete(self, reference: str) -> None:
        ...


def build_asset_key(namespace: str, filename: str) -> str:
    """game/spell-the-word/<id> + "cat.PNG" -> game/spell-the-word/<id>/<uuid>-cat.png"""
    path = PurePosixPath(filename or "file")
    stem = slugify(path.stem) or "file"
    suffix = path.suffix.lower()
    return f"{namespace.strip('/')}/{uuid.uuid4().hex}-{stem}{suffix}"


class LocalAssetStore:
    """Файлы на локальном диске, reference = путь относительно root."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path(self, reference: str) -> Path:
        path = (self.root / reference).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Asset reference {reference!r} escapes storage root")
        return path

    async def store(
        self,
        namespace: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        key = build_asset_key(namespace, filename)
        path = self._path(key)
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        logger.debug("Stored asset %s (%d bytes)", key, len(data))
        return key

    async def delete(self, reference: str) -> None:
        path = self._path(reference)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.warning("Asset %s already missing, skip delete", reference)


class HttpAssetStore:
    """Объектное хранилище с простым HTTP API: PUT/DELETE {base_url}/{key}."""

    def __init__(self, base_url: str, *, transport: httpx.AsyncBaseTransport | None = None, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def store(
        self,
        namespace: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        key = build_asset_key(namespace, filename)
        headers = {"Content-Type": content_type or "application/octet-stream"}
        async with self._client() as c:
            r = await c.put(f"{self.base_url}/{key}", content=data, headers=headers)
            r.raise_for_status()
        return key

    async def delete(self, reference: str) -> None:
        async with self._client() as c:
            r = await c.delete(f"{self.base_url}/{reference}")
            if r.status_code == 404:
                logger.warning("Asset %s already missing, skip delete", reference)
                return
            r.raise_for_status()


_store: AssetStore | None = None


def get_asset_store() -> AssetStore:
    """FastAPI dependency: один store на процесс, backend из настроек."""
    global _store
    if _store is None:
        if settings.STORAGE_BACKEND == "http":
            _store = HttpAssetStore(settings.STORAGE_URL)
        elif settings.STORAGE_BACKEND == "local":
            _store = LocalAssetStore(settings.STORAGE_ROOT)
        else:
            raise RuntimeError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}")
        logger.info("Asset store initialized (%s)", settings.STORAGE_BACKEND)
    return _store
