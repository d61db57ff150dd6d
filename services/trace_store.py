"""Trace store — persistence for text and image generation traces.

Mirrors the lesson store: an abstract interface, an in-memory
implementation and a Redis implementation.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from models.trace import Trace, TraceKind

logger = logging.getLogger(__name__)


# ── Abstract Interface ───────────────────────────────────────


class TraceStore(ABC):
    """Abstract trace store — implement for different backends."""

    @abstractmethod
    async def create(self, trace: Trace) -> None:
        ...

    @abstractmethod
    async def update(self, trace: Trace) -> None:
        """Replace the stored copy of *trace* (upsert)."""
        ...

    @abstractmethod
    async def read(self, trace_id: str) -> Trace | None:
        ...

    @abstractmethod
    async def delete(self, trace_id: str) -> bool:
        ...

    @abstractmethod
    async def delete_all(self, kind: TraceKind | None = None) -> int:
        """Bulk delete; returns the number of traces removed."""
        ...

    @abstractmethod
    async def list(
        self, kind: TraceKind | None = None, limit: int = 50, offset: int = 0
    ) -> list[Trace]:
        """Traces ordered by ``created_at`` descending."""
        ...

    @abstractmethod
    async def list_by_subject(self, subject_id: str, kind: TraceKind | None = None) -> list[Trace]:
        ...


# ── In-Memory Implementation ────────────────────────────────


class InMemoryTraceStore(TraceStore):
    def __init__(self) -> None:
        self._traces: dict[str, Trace] = {}
        self._lock = asyncio.Lock()

    async def create(self, trace: Trace) -> None:
        async with self._lock:
            self._traces[trace.id] = trace.model_copy(deep=True)

    async def update(self, trace: Trace) -> None:
        async with self._lock:
            self._traces[trace.id] = trace.model_copy(deep=True)

    async def read(self, trace_id: str) -> Trace | None:
        trace = self._traces.get(trace_id)
        return trace.model_copy(deep=True) if trace else None

    async def delete(self, trace_id: str) -> bool:
        async with self._lock:
            return self._traces.pop(trace_id, None) is not None

    async def delete_all(self, kind: TraceKind | None = None) -> int:
        async with self._lock:
            doomed = [t.id for t in self._traces.values() if kind is None or t.kind == kind]
            for trace_id in doomed:
                del self._traces[trace_id]
            return len(doomed)

    def _sorted(self, kind: TraceKind | None) -> list[Trace]:
        rows = [t for t in self._traces.values() if kind is None or t.kind == kind]
        return sorted(rows, key=lambda t: t.created_at, reverse=True)

    async def list(
        self, kind: TraceKind | None = None, limit: int = 50, offset: int = 0
    ) -> list[Trace]:
        return [t.model_copy(deep=True) for t in self._sorted(kind)[offset:offset + limit]]

    async def list_by_subject(self, subject_id: str, kind: TraceKind | None = None) -> list[Trace]:
        return [t.model_copy(deep=True) for t in self._sorted(kind) if t.subject_id == subject_id]


# ── Redis Implementation ─────────────────────────────────────


class RedisTraceStore(TraceStore):
    """Redis-backed trace store.

    ``trace:{id}`` holds the JSON document; ``traces:{kind}`` is a sorted
    set scored by creation time and ``traces:subject:{id}`` a set of the
    subject's trace ids.
    """

    _KEY_PREFIX = "trace:"

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

    def _key(self, trace_id: str) -> str:
        return f"{self._KEY_PREFIX}{trace_id}"

    @staticmethod
    def _index(kind: TraceKind) -> str:
        return f"traces:{kind.value}"

    @staticmethod
    def _subject_index(subject_id: str) -> str:
        return f"traces:subject:{subject_id}"

    async def create(self, trace: Trace) -> None:
        await self._redis.set(self._key(trace.id), trace.model_dump_json())
        await self._redis.zadd(self._index(trace.kind), {trace.id: trace.created_at.timestamp()})
        await self._redis.sadd(self._subject_index(trace.subject_id), trace.id)

    async def update(self, trace: Trace) -> None:
        await self._redis.set(self._key(trace.id), trace.model_dump_json())

    async def read(self, trace_id: str) -> Trace | None:
        data = await self._redis.get(self._key(trace_id))
        if data is None:
            return None
        try:
            return Trace.model_validate_json(data)
        except ValueError:
            logger.warning("Failed to deserialize trace: %s", trace_id)
            return None

    async def delete(self, trace_id: str) -> bool:
        trace = await self.read(trace_id)
        if trace is None:
            return False
        await self._redis.delete(self._key(trace_id))
        await self._redis.zrem(self._index(trace.kind), trace_id)
        await self._redis.srem(self._subject_index(trace.subject_id), trace_id)
        return True

    async def delete_all(self, kind: TraceKind | None = None) -> int:
        kinds = [kind] if kind else list(TraceKind)
        removed = 0
        for k in kinds:
            for trace_id in await self._redis.zrange(self._index(k), 0, -1):
                if await self.delete(trace_id):
                    removed += 1
        return removed

    async def list(
        self, kind: TraceKind | None = None, limit: int = 50, offset: int = 0
    ) -> list[Trace]:
        if kind is not None:
            ids = await self._redis.zrevrange(self._index(kind), offset, offset + limit - 1)
            traces = [await self.read(i) for i in ids]
            return [t for t in traces if t is not None]

        merged: list[Trace] = []
        for k in TraceKind:
            ids = await self._redis.zrevrange(self._index(k), 0, offset + limit - 1)
            merged.extend(t for t in [await self.read(i) for i in ids] if t is not None)
        merged.sort(key=lambda t: t.created_at, reverse=True)
        return merged[offset:offset + limit]

    async def list_by_subject(self, subject_id: str, kind: TraceKind | None = None) -> list[Trace]:
        ids = await self._redis.smembers(self._subject_index(subject_id))
        traces = [t for t in [await self.read(i) for i in ids] if t is not None]
        if kind is not None:
            traces = [t for t in traces if t.kind == kind]
        return sorted(traces, key=lambda t: t.created_at, reverse=True)

    async def close(self) -> None:
        await self._redis.aclose()


# ── Module-level Singleton ───────────────────────────────────

_store: TraceStore | None = None


def get_trace_store() -> TraceStore:
    """Get the singleton trace store instance."""
    global _store
    if _store is None:
        from config.settings import get_settings

        settings = get_settings()
        if settings.store_type == "redis" and settings.redis_url:
            _store = RedisTraceStore(settings.redis_url)
            logger.info("Initialized RedisTraceStore")
        else:
            _store = InMemoryTraceStore()
            logger.info("Initialized InMemoryTraceStore")
    return _store
