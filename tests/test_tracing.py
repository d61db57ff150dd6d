"""Tests for services.tracing — TraceRecorder lifecycle and concurrency."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from models.trace import TraceKind, TraceStatus
from services.trace_store import InMemoryTraceStore
from services.tracing import TraceRecorder


@pytest.mark.asyncio
async def test_start_persists_started_trace(trace_store):
    recorder = TraceRecorder(trace_store, subject_id="lesson-1")
    await recorder.start({"outline": "Rocks"})

    stored = await trace_store.read(recorder.id)
    assert stored.status == TraceStatus.STARTED
    assert stored.request_data == {"outline": "Rocks"}
    assert stored.completed_at is None


@pytest.mark.asyncio
async def test_attempts_flushed_only_at_terminal_transition(trace_store):
    recorder = TraceRecorder(trace_store, subject_id="lesson-1")
    await recorder.start()
    await recorder.record_attempt("gemini", error="boom", duration_ms=12)

    assert (await trace_store.read(recorder.id)).attempts == []

    await recorder.fail("All LLM providers failed. Last error: boom")
    stored = await trace_store.read(recorder.id)
    assert stored.status == TraceStatus.FAILED
    assert len(stored.attempts) == 1
    assert stored.attempts[0].error == "boom"
    assert stored.total_duration_ms >= 0
    assert stored.completed_at >= stored.created_at


@pytest.mark.asyncio
async def test_terminal_state_is_final(trace_store):
    recorder = TraceRecorder(trace_store, subject_id="lesson-1")
    await recorder.start()
    await recorder.complete({"ok": True}, provider_used="groq")
    await recorder.fail("late failure")
    await recorder.record_attempt("late")

    stored = await trace_store.read(recorder.id)
    assert stored.status == TraceStatus.COMPLETED
    assert stored.error_message is None
    assert stored.attempts == []


@pytest.mark.asyncio
async def test_concurrent_appends_are_all_kept(trace_store):
    recorder = TraceRecorder(trace_store, subject_id="lesson-1", kind=TraceKind.IMAGE)
    await recorder.start()

    async def hint_task(n):
        for model in ("flux", "turbo"):
            await recorder.record_attempt("pollinations", model=model, request_summary=f"hint {n}")
            await asyncio.sleep(0)

    await asyncio.gather(*(hint_task(n) for n in range(3)))
    await recorder.complete(model_used="turbo")

    stored = await trace_store.read(recorder.id)
    assert len(stored.attempts) == 6
    assert stored.models_tried == ["flux", "turbo"]
    for n in range(3):
        models = [a.model for a in stored.attempts if a.request_summary == f"hint {n}"]
        assert models == ["flux", "turbo"]


@pytest.mark.asyncio
async def test_store_failure_is_swallowed():
    store = InMemoryTraceStore()
    store.create = AsyncMock(side_effect=ConnectionError("redis down"))
    store.update = AsyncMock(side_effect=ConnectionError("redis down"))
    recorder = TraceRecorder(store, subject_id="lesson-1")

    await recorder.start()
    await recorder.complete()

    assert recorder.status == TraceStatus.COMPLETED


@pytest.mark.asyncio
async def test_long_summaries_are_truncated(trace_store):
    recorder = TraceRecorder(trace_store, subject_id="lesson-1")
    attempt = await recorder.record_attempt("gemini", request_summary="x" * 500)
    assert len(attempt.request_summary) == 203
