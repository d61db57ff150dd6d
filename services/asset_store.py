"""Asset store — binary storage for generated lesson images.

``LocalAssetStore`` writes under ``settings.media_dir`` and the app serves
that directory at ``settings.media_route``; ``InMemoryAssetStore`` keeps
bytes in a dict for tests.  Uploads return a publicly fetchable URL or
raise :class:`UploadFailure`.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from errors import UploadFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetEntry:
    path: str
    size: int
    url: str


def lesson_image_path(lesson_id: str, index: int, timestamp_ms: int | None = None) -> str:
    """Storage path for the *index*-th image of a lesson."""
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{lesson_id}/{ts}-image-{index}.png"


def _normalize(path: str) -> str:
    posix = PurePosixPath(path.strip().lstrip("/"))
    if not posix.parts or ".." in posix.parts:
        raise ValueError(f"Invalid asset path: {path!r}")
    return str(posix)


# ── Abstract Interface ───────────────────────────────────────


class AssetStore(ABC):
    def __init__(self, public_base_url: str = "", route: str = "/media") -> None:
        self._base = public_base_url.rstrip("/") + "/" + route.strip("/")

    def public_url(self, path: str) -> str:
        return f"{self._base}/{path}"

    @abstractmethod
    async def upload(self, data: bytes, path_hint: str) -> str:
        """Store *data* and return its public URL.  Raises :class:`UploadFailure`."""
        ...

    @abstractmethod
    async def delete(self, path: str) -> bool:
        ...

    @abstractmethod
    async def list_under_prefix(self, prefix: str) -> list[AssetEntry]:
        ...

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every asset under *prefix*; returns how many were removed."""
        removed = 0
        for entry in await self.list_under_prefix(prefix):
            if await self.delete(entry.path):
                removed += 1
        if removed:
            logger.info("Deleted %d asset(s) under %s", removed, prefix)
        return removed


# ── In-Memory Implementation ────────────────────────────────


class InMemoryAssetStore(AssetStore):
    def __init__(self, public_base_url: str = "http://assets.local", route: str = "/media") -> None:
        super().__init__(public_base_url, route)
        self._lock = threading.RLock()
        self._blobs: dict[str, bytes] = {}

    async def upload(self, data: bytes, path_hint: str) -> str:
        try:
            path = _normalize(path_hint)
        except ValueError as exc:
            raise UploadFailure(path_hint, str(exc)) from exc
        if not data:
            raise UploadFailure(path, "empty payload")
        with self._lock:
            self._blobs[path] = bytes(data)
        return self.public_url(path)

    async def delete(self, path: str) -> bool:
        with self._lock:
            return self._blobs.pop(path.lstrip("/"), None) is not None

    async def list_under_prefix(self, prefix: str) -> list[AssetEntry]:
        prefix = prefix.strip("/") + "/"
        with self._lock:
            return [
                AssetEntry(path=p, size=len(b), url=self.public_url(p))
                for p, b in sorted(self._blobs.items())
                if p.startswith(prefix)
            ]

    def get(self, path: str) -> bytes | None:
        with self._lock:
            return self._blobs.get(path)


# ── Local Filesystem Implementation ──────────────────────────


class LocalAssetStore(AssetStore):
    """Files under ``root``; blocking I/O runs in a worker thread."""

    def __init__(self, root: str | Path, public_base_url: str = "", route: str = "/media") -> None:
        super().__init__(public_base_url, route)
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root / _normalize(path)

    async def upload(self, data: bytes, path_hint: str) -> str:
        if not data:
            raise UploadFailure(path_hint, "empty payload")
        try:
            target = self._resolve(path_hint)
        except ValueError as exc:
            raise UploadFailure(path_hint, str(exc)) from exc

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise UploadFailure(path_hint, str(exc)) from exc

        rel = target.relative_to(self.root).as_posix()
        logger.info("Image uploaded: %s (%d bytes)", rel, len(data))
        return self.public_url(rel)

    async def delete(self, path: str) -> bool:
        try:
            target = self._resolve(path)
        except ValueError:
            return False

        def _unlink() -> bool:
            if not target.is_file():
                return False
            target.unlink()
            return True

        try:
            return await asyncio.to_thread(_unlink)
        except OSError:
            logger.warning("Failed to delete asset %s", path, exc_info=True)
            return False

    async def list_under_prefix(self, prefix: str) -> list[AssetEntry]:
        try:
            folder = self._resolve(prefix)
        except ValueError:
            return []

        def _scan() -> list[AssetEntry]:
            if not folder.is_dir():
                return []
            entries = []
            for file in sorted(folder.rglob("*")):
                if file.is_file():
                    rel = file.relative_to(self.root).as_posix()
                    entries.append(AssetEntry(path=rel, size=file.stat().st_size, url=self.public_url(rel)))
            return entries

        return await asyncio.to_thread(_scan)


# ── Module-level Singleton ───────────────────────────────────

_store: AssetStore | None = None


def get_asset_store() -> AssetStore:
    """Get the singleton asset store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.asset_store_type == "local":
            _store = LocalAssetStore(settings.media_dir, settings.public_base_url, settings.media_route)
            logger.info("Initialized LocalAssetStore at %s", settings.media_dir)
        else:
            _store = InMemoryAssetStore(settings.public_base_url, settings.media_route)
            logger.info("Initialized InMemoryAssetStore")
    return _store
