"""Lesson store — persistence for lesson rows.

Provides an abstract interface with an in-memory implementation and a
Redis implementation for multi-worker deployments.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

from errors import LessonNotFoundError
from models.lesson import Lesson, utcnow

logger = logging.getLogger(__name__)


def generate_lesson_id() -> str:
    return str(uuid.uuid4())


# ── Abstract Interface ───────────────────────────────────────


class LessonStore(ABC):
    """Abstract lesson store — implement for different backends."""

    @abstractmethod
    async def create(self, lesson: Lesson) -> str:
        """Insert a new row and return its id."""
        ...

    @abstractmethod
    async def update(self, lesson_id: str, **fields: Any) -> Lesson:
        """Apply a partial update.  Raises :class:`LessonNotFoundError`."""
        ...

    @abstractmethod
    async def read(self, lesson_id: str) -> Lesson | None:
        ...

    @abstractmethod
    async def delete(self, lesson_id: str) -> bool:
        """Remove a row.  Returns False when it did not exist."""
        ...

    @abstractmethod
    async def list(self, limit: int = 50, offset: int = 0) -> list[Lesson]:
        """Rows ordered by ``created_at`` descending."""
        ...


def _apply(lesson: Lesson, fields: dict[str, Any]) -> Lesson:
    data = lesson.model_dump()
    data.update(fields)
    data["updated_at"] = utcnow()
    return Lesson.model_validate(data)


# ── In-Memory Implementation ────────────────────────────────


class InMemoryLessonStore(LessonStore):
    """Lock-protected in-memory store for single-instance deployments and tests."""

    def __init__(self) -> None:
        self._rows: dict[str, Lesson] = {}
        self._lock = asyncio.Lock()

    async def create(self, lesson: Lesson) -> str:
        async with self._lock:
            self._rows[lesson.id] = lesson
        return lesson.id

    async def update(self, lesson_id: str, **fields: Any) -> Lesson:
        async with self._lock:
            current = self._rows.get(lesson_id)
            if current is None:
                raise LessonNotFoundError(lesson_id)
            updated = _apply(current, fields)
            self._rows[lesson_id] = updated
            return updated

    async def read(self, lesson_id: str) -> Lesson | None:
        return self._rows.get(lesson_id)

    async def delete(self, lesson_id: str) -> bool:
        async with self._lock:
            return self._rows.pop(lesson_id, None) is not None

    async def list(self, limit: int = 50, offset: int = 0) -> list[Lesson]:
        rows = sorted(self._rows.values(), key=lambda r: r.created_at, reverse=True)
        return rows[offset:offset + limit]

    @property
    def size(self) -> int:
        return len(self._rows)


# ── Redis Implementation ─────────────────────────────────────


class RedisLessonStore(LessonStore):
    """Redis-backed store.

    Rows are serialized as JSON under ``lesson:{id}``; a sorted set scored
    by creation time provides newest-first listing.
    """

    _KEY_PREFIX = "lesson:"
    _INDEX_KEY = "lessons:by_created"

    def __init__(self, redis_url: str = "", *, client: Any = None) -> None:
        if client is None:
            import redis.asyncio as aioredis

            client = aioredis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=10,
                socket_timeout=10,
            )
        self._redis = client

    def _key(self, lesson_id: str) -> str:
        return f"{self._KEY_PREFIX}{lesson_id}"

    async def create(self, lesson: Lesson) -> str:
        await self._redis.set(self._key(lesson.id), lesson.model_dump_json())
        await self._redis.zadd(self._INDEX_KEY, {lesson.id: lesson.created_at.timestamp()})
        return lesson.id

    async def update(self, lesson_id: str, **fields: Any) -> Lesson:
        current = await self.read(lesson_id)
        if current is None:
            raise LessonNotFoundError(lesson_id)
        updated = _apply(current, fields)
        await self._redis.set(self._key(lesson_id), updated.model_dump_json())
        return updated

    async def read(self, lesson_id: str) -> Lesson | None:
        data = await self._redis.get(self._key(lesson_id))
        if data is None:
            return None
        try:
            return Lesson.model_validate_json(data)
        except ValueError:
            logger.warning("Failed to deserialize lesson: %s", lesson_id)
            return None

    async def delete(self, lesson_id: str) -> bool:
        removed = await self._redis.delete(self._key(lesson_id))
        await self._redis.zrem(self._INDEX_KEY, lesson_id)
        return bool(removed)

    async def list(self, limit: int = 50, offset: int = 0) -> list[Lesson]:
        ids = await self._redis.zrevrange(self._INDEX_KEY, offset, offset + limit - 1)
        rows = []
        for lesson_id in ids:
            lesson = await self.read(lesson_id)
            if lesson is not None:
                rows.append(lesson)
        return rows

    async def close(self) -> None:
        await self._redis.aclose()


# ── Module-level Singleton ───────────────────────────────────

_store: LessonStore | None = None


def get_lesson_store() -> LessonStore:
    """Get the singleton lesson store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.store_type == "redis" and settings.redis_url:
            _store = RedisLessonStore(settings.redis_url)
            logger.info("Initialized RedisLessonStore")
        else:
            _store = InMemoryLessonStore()
            logger.info("Initialized InMemoryLessonStore")
    return _store
