"""Trace recorder — append-only lifecycle record of one generation run.

A recorder owns a single :class:`Trace`.  Attempts may be appended from
concurrent tasks (the per-hint image fan-out), so the attempt list is
guarded by an ``asyncio.Lock``.  The trace is written to the store only
at lifecycle points: ``start()``, ``complete()`` and ``fail()``.

Store failures are logged and swallowed — a broken trace backend must
never fail the lesson it observes.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any

from models.lesson import utcnow
from models.trace import Attempt, Trace, TraceKind, TraceStatus
from services.trace_store import TraceStore

logger = logging.getLogger(__name__)


def _summarize(value: Any, limit: int = 200) -> str:
    text = value if isinstance(value, str) else repr(value)
    return text if len(text) <= limit else text[:limit] + "..."


class TraceRecorder:
    """Accumulates attempts for one run and flushes them at lifecycle points.

    Usage::

        recorder = TraceRecorder(store, subject_id=lesson_id, kind=TraceKind.TEXT)
        await recorder.start({"outline": outline})
        await recorder.record_attempt("gemini", duration_ms=812, success=True)
        await recorder.complete({"contentLength": 5120}, provider_used="gemini")
    """

    def __init__(
        self,
        store: TraceStore,
        *,
        subject_id: str,
        kind: TraceKind = TraceKind.TEXT,
        trace_id: str | None = None,
    ) -> None:
        self._store = store
        self._lock = asyncio.Lock()
        self._t0 = time.monotonic()
        self.trace = Trace(
            id=trace_id or str(uuid.uuid4()),
            subject_id=subject_id,
            kind=kind,
        )

    @property
    def id(self) -> str:
        return self.trace.id

    @property
    def status(self) -> TraceStatus:
        return self.trace.status

    @property
    def attempts(self) -> list[Attempt]:
        return list(self.trace.attempts)

    # ── Lifecycle ────────────────────────────────────────────

    async def start(self, request_data: dict[str, Any] | None = None) -> Trace:
        """Create the trace in ``started`` state.  Call before any provider call."""
        self.trace.request_data = dict(request_data or {})
        self.trace.created_at = utcnow()
        self._t0 = time.monotonic()
        await self._flush("create")
        logger.debug("Trace %s started (%s, subject=%s)", self.id, self.trace.kind.value, self.trace.subject_id)
        return self.trace

    async def record_attempt(
        self,
        provider_name: str,
        *,
        model: str = "",
        request_summary: Any = "",
        response_summary: Any = None,
        error: BaseException | str | None = None,
        duration_ms: int = 0,
        success: bool = False,
    ) -> Attempt:
        """Append one attempt.  Safe to call from concurrent tasks."""
        attempt = Attempt(
            provider_name=provider_name,
            model=model,
            request_summary=_summarize(request_summary),
            response_summary=_summarize(response_summary) if response_summary is not None else None,
            error=str(error) if error is not None else None,
            duration_ms=duration_ms,
            success=success,
        )
        async with self._lock:
            if self.trace.is_terminal:
                logger.warning("Attempt recorded on terminal trace %s — ignored", self.id)
                return attempt
            self.trace.attempts.append(attempt)
            if model and model not in self.trace.models_tried:
                self.trace.models_tried.append(model)
        return attempt

    async def complete(
        self,
        response_data: dict[str, Any] | None = None,
        *,
        provider_used: str | None = None,
        fallback_providers: list[str] | None = None,
        model_used: str | None = None,
    ) -> Trace:
        async with self._lock:
            if self._finish(TraceStatus.COMPLETED):
                self.trace.response_data = response_data
                self.trace.provider_used = provider_used
                self.trace.fallback_providers = list(fallback_providers or [])
                self.trace.model_used = model_used
        await self._flush("update")
        return self.trace

    async def fail(self, error_message: str, response_data: dict[str, Any] | None = None) -> Trace:
        async with self._lock:
            if self._finish(TraceStatus.FAILED):
                self.trace.error_message = error_message
                self.trace.response_data = response_data
        await self._flush("update")
        return self.trace

    # ── Internals ────────────────────────────────────────────

    def _finish(self, status: TraceStatus) -> bool:
        if self.trace.is_terminal:
            logger.warning(
                "Trace %s already %s — ignoring transition to %s",
                self.id, self.trace.status.value, status.value,
            )
            return False
        self.trace.status = status
        self.trace.completed_at = utcnow()
        self.trace.total_duration_ms = int((time.monotonic() - self._t0) * 1000)
        return True

    async def _flush(self, op: str) -> None:
        snapshot = self.trace.model_copy(deep=True)
        try:
            if op == "create":
                await self._store.create(snapshot)
            else:
                await self._store.update(snapshot)
        except Exception:
            logger.warning("Failed to %s trace %s", op, self.id, exc_info=True)
