"""Tests for the lesson, trace and asset stores (in-memory and local backends)."""

from datetime import timedelta

import pytest

from errors import LessonNotFoundError, UploadFailure
from models.lesson import Lesson, LessonStatus, utcnow
from models.trace import Trace, TraceKind
from services.asset_store import LocalAssetStore, lesson_image_path


def _lesson(lesson_id: str, minutes_ago: int = 0) -> Lesson:
    created = utcnow() - timedelta(minutes=minutes_ago)
    return Lesson(id=lesson_id, title=lesson_id, outline=lesson_id, created_at=created)


# ── Lesson store ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_lesson_crud(lesson_store):
    await lesson_store.create(_lesson("a"))

    updated = await lesson_store.update("a", status=LessonStatus.GENERATED, content="# A")

    assert updated.status == LessonStatus.GENERATED
    assert (await lesson_store.read("a")).content == "# A"
    assert await lesson_store.delete("a") is True
    assert await lesson_store.delete("a") is False
    assert await lesson_store.read("a") is None


@pytest.mark.asyncio
async def test_lesson_update_missing_row(lesson_store):
    with pytest.raises(LessonNotFoundError):
        await lesson_store.update("missing", status=LessonStatus.ERROR)


@pytest.mark.asyncio
async def test_lesson_list_newest_first_with_paging(lesson_store):
    for i, minutes in enumerate([30, 10, 20]):
        await lesson_store.create(_lesson(f"l{i}", minutes_ago=minutes))

    assert [l.id for l in await lesson_store.list()] == ["l1", "l2", "l0"]
    assert [l.id for l in await lesson_store.list(limit=1, offset=1)] == ["l2"]


# ── Trace store ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_trace_listing_by_kind_and_subject(trace_store):
    await trace_store.create(Trace(id="t1", subject_id="a", kind=TraceKind.TEXT))
    await trace_store.create(Trace(id="t2", subject_id="a", kind=TraceKind.IMAGE))
    await trace_store.create(Trace(id="t3", subject_id="b", kind=TraceKind.TEXT))

    assert {t.id for t in await trace_store.list(kind=TraceKind.TEXT)} == {"t1", "t3"}
    assert {t.id for t in await trace_store.list_by_subject("a")} == {"t1", "t2"}
    assert [t.id for t in await trace_store.list_by_subject("a", TraceKind.IMAGE)] == ["t2"]


@pytest.mark.asyncio
async def test_trace_bulk_delete_per_kind(trace_store):
    await trace_store.create(Trace(id="t1", subject_id="a", kind=TraceKind.TEXT))
    await trace_store.create(Trace(id="t2", subject_id="a", kind=TraceKind.IMAGE))

    assert await trace_store.delete_all(TraceKind.TEXT) == 1
    assert await trace_store.read("t1") is None
    assert await trace_store.read("t2") is not None


@pytest.mark.asyncio
async def test_trace_reads_are_copies(trace_store):
    await trace_store.create(Trace(id="t1", subject_id="a"))
    copy = await trace_store.read("t1")
    copy.error_message = "mutated"

    assert (await trace_store.read("t1")).error_message is None


# ── Asset stores ─────────────────────────────────────────────


def test_lesson_image_path_format():
    assert lesson_image_path("abc", 2, 1700000000000) == "abc/1700000000000-image-2.png"


@pytest.mark.asyncio
async def test_memory_asset_upload_list_delete(asset_store):
    url = await asset_store.upload(b"png", "l1/1-image-0.png")

    assert url == "http://assets.test/media/l1/1-image-0.png"
    entries = await asset_store.list_under_prefix("l1")
    assert [e.path for e in entries] == ["l1/1-image-0.png"]
    assert await asset_store.delete_prefix("l1") == 1
    assert await asset_store.list_under_prefix("l1") == []


@pytest.mark.asyncio
async def test_memory_asset_rejects_empty_payload(asset_store):
    with pytest.raises(UploadFailure):
        await asset_store.upload(b"", "l1/x.png")


@pytest.mark.asyncio
async def test_local_asset_store_roundtrip(tmp_path):
    store = LocalAssetStore(tmp_path, "http://localhost:5000", "/media")

    url = await store.upload(b"png-bytes", "lesson-9/5-image-1.png")

    assert url == "http://localhost:5000/media/lesson-9/5-image-1.png"
    assert (tmp_path / "lesson-9" / "5-image-1.png").read_bytes() == b"png-bytes"
    assert await store.delete_prefix("lesson-9") == 1
    assert await store.list_under_prefix("lesson-9") == []


@pytest.mark.asyncio
async def test_local_asset_store_rejects_traversal(tmp_path):
    store = LocalAssetStore(tmp_path)
    with pytest.raises(UploadFailure):
        await store.upload(b"x", "../outside.png")
