"""End-to-end tests for services.lesson_pipeline with scripted providers."""

from unittest.mock import MagicMock

import pytest

from errors import InputValidationError
from models.lesson import LessonStatus
from models.request import ContentOptions, LessonCreateRequest
from models.trace import TraceKind, TraceStatus
from services.lesson_pipeline import LessonPipeline, validate_request
from services.splicer import reference_token
from services.telemetry import SafeTelemetry
from tests.conftest import LESSON_DOC, FakeImageProvider, FakeTextProvider, StaticRegistry


def _pipeline(registry, lesson_store, trace_store, asset_store, telemetry=None):
    return LessonPipeline(registry, lesson_store, trace_store, asset_store, telemetry)


def _traces(trace_store, lesson_id):
    return trace_store.list_by_subject(lesson_id)


@pytest.mark.asyncio
async def test_full_run_with_two_images(lesson_store, trace_store, asset_store):
    registry = StaticRegistry(
        text=[FakeTextProvider("gemini", content=LESSON_DOC)],
        image=[FakeImageProvider("pollinations")],
    )
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store)

    lesson = await pipeline.generate(LessonCreateRequest(outline="  Photosynthesis  "))

    assert lesson.status == LessonStatus.GENERATED
    assert lesson.provider_used == "gemini"
    assert lesson.outline == "Photosynthesis"
    assert len(lesson.generated_images) == 2
    assert lesson.degraded is False
    for record in lesson.generated_images:
        assert record.spliced is True
        assert f"]({record.url})" in lesson.content
    assert lesson.content.count("![") == 2
    assert "**Visual Aid Suggestion:** Diagram of a leaf absorbing sunlight.\n\n![" in lesson.content

    traces = await _traces(trace_store, lesson.id)
    by_kind = {t.kind: t for t in traces}
    assert by_kind[TraceKind.TEXT].status == TraceStatus.COMPLETED
    assert by_kind[TraceKind.IMAGE].status == TraceStatus.COMPLETED
    assert by_kind[TraceKind.IMAGE].provider_used == "pollinations"


@pytest.mark.asyncio
async def test_text_exhaustion_marks_error(lesson_store, trace_store, asset_store):
    registry = StaticRegistry(text=[
        FakeTextProvider("gemini", error="timeout"),
        FakeTextProvider("groq", error="invalid api key"),
    ])
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store)

    lesson = await pipeline.generate(LessonCreateRequest(outline="Fractions"))

    assert lesson.status == LessonStatus.ERROR
    assert lesson.content is None
    assert "invalid api key" in lesson.error_message

    (trace,) = await _traces(trace_store, lesson.id)
    assert trace.status == TraceStatus.FAILED
    assert "invalid api key" in trace.error_message
    assert len(trace.attempts) == 2
    assert trace.completed_at is not None
    assert trace.total_duration_ms is not None


@pytest.mark.asyncio
async def test_no_text_provider_configured(lesson_store, trace_store, asset_store):
    pipeline = _pipeline(StaticRegistry(), lesson_store, trace_store, asset_store)

    lesson = await pipeline.generate(LessonCreateRequest(outline="Fractions"))

    assert lesson.status == LessonStatus.ERROR
    (trace,) = await _traces(trace_store, lesson.id)
    assert trace.attempts == []


@pytest.mark.asyncio
async def test_all_images_fail_is_degraded_success(lesson_store, trace_store, asset_store):
    registry = StaticRegistry(
        text=[FakeTextProvider("gemini", content=LESSON_DOC)],
        image=[FakeImageProvider(failing_models=("m1",))],
    )
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store)

    lesson = await pipeline.generate(LessonCreateRequest(outline="Photosynthesis"))

    assert lesson.status == LessonStatus.GENERATED
    assert lesson.content == LESSON_DOC
    assert lesson.generated_images == []
    assert lesson.degraded is True
    assert lesson.image_generation_failed is True
    assert lesson.image_error_message

    traces = {t.kind: t for t in await _traces(trace_store, lesson.id)}
    assert traces[TraceKind.IMAGE].status == TraceStatus.FAILED


@pytest.mark.asyncio
async def test_no_hints_skips_image_stage(lesson_store, trace_store, asset_store):
    images = FakeImageProvider()
    registry = StaticRegistry(
        text=[FakeTextProvider("gemini", content="# Fractions\n\nHalves and quarters.")],
        image=[images],
    )
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store)

    lesson = await pipeline.generate(LessonCreateRequest(outline="Fractions"))

    assert lesson.status == LessonStatus.GENERATED
    assert images.calls == []
    assert lesson.degraded is False
    assert [t.kind for t in await _traces(trace_store, lesson.id)] == [TraceKind.TEXT]


@pytest.mark.asyncio
async def test_images_disabled_by_options(lesson_store, trace_store, asset_store):
    images = FakeImageProvider()
    registry = StaticRegistry(
        text=[FakeTextProvider("gemini", content=LESSON_DOC)], image=[images],
    )
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store)

    lesson = await pipeline.generate(LessonCreateRequest(
        outline="Photosynthesis",
        content_options=ContentOptions(generate_images=False),
    ))

    assert lesson.content == LESSON_DOC
    assert images.calls == []


@pytest.mark.asyncio
async def test_blank_outline_rejected_before_any_call(lesson_store, trace_store, asset_store):
    text = FakeTextProvider("gemini", content="x")
    pipeline = _pipeline(StaticRegistry(text=[text]), lesson_store, trace_store, asset_store)

    with pytest.raises(InputValidationError):
        await pipeline.generate(LessonCreateRequest(outline="   "))

    assert text.calls == []
    assert await lesson_store.list() == []


@pytest.mark.asyncio
async def test_broken_telemetry_never_fails_run(lesson_store, trace_store, asset_store):
    sink = MagicMock()
    sink.start_span.side_effect = RuntimeError("sink down")
    sink.capture_exception.side_effect = RuntimeError("sink down")
    registry = StaticRegistry(text=[FakeTextProvider("gemini", error="boom")])
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store, SafeTelemetry(sink))

    lesson = await pipeline.generate(LessonCreateRequest(outline="Fractions"))

    assert lesson.status == LessonStatus.ERROR
    sink.capture_exception.assert_called_once()


@pytest.mark.asyncio
async def test_store_failure_on_final_write_marks_error(lesson_store, trace_store, asset_store):
    sink = MagicMock()
    registry = StaticRegistry(text=[FakeTextProvider("gemini", content="# Fractions")])
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store, SafeTelemetry(sink))
    real_update = lesson_store.update

    async def flaky_update(lesson_id, **fields):
        if fields.get("status") == LessonStatus.GENERATED:
            raise ConnectionError("redis down")
        return await real_update(lesson_id, **fields)

    lesson_store.update = flaky_update
    lesson, request = await pipeline.start_lesson(LessonCreateRequest(outline="Fractions"))

    assert await pipeline.run(lesson.id, request) is None

    stored = await lesson_store.read(lesson.id)
    assert stored.status == LessonStatus.ERROR
    assert "redis down" in stored.error_message
    error, tags = sink.capture_exception.call_args.args
    assert isinstance(error, ConnectionError)
    assert tags["phase"] == "finish"


@pytest.mark.asyncio
async def test_store_down_for_every_write_does_not_raise(lesson_store, trace_store, asset_store):
    registry = StaticRegistry(text=[FakeTextProvider("gemini", content="# Fractions")])
    pipeline = _pipeline(registry, lesson_store, trace_store, asset_store)
    lesson, request = await pipeline.start_lesson(LessonCreateRequest(outline="Fractions"))

    async def broken_update(lesson_id, **fields):
        raise ConnectionError("redis down")

    lesson_store.update = broken_update

    assert await pipeline.run(lesson.id, request) is None
    assert (await lesson_store.read(lesson.id)).status == LessonStatus.GENERATING

@pytest.mark.asyncio
async def test_row_created_as_generating(lesson_store, trace_store, asset_store):
    pipeline = _pipeline(StaticRegistry(), lesson_store, trace_store, asset_store)
    long_outline = "A" * 80

    lesson, request = await pipeline.start_lesson(LessonCreateRequest(outline=long_outline))

    stored = await lesson_store.read(lesson.id)
    assert stored.status == LessonStatus.GENERATING
    assert stored.title == "A" * 50 + "..."
    assert request.outline == long_outline


def test_validate_request_trims():
    request = validate_request(LessonCreateRequest(outline="\n Volcanoes \t"))
    assert request.outline == "Volcanoes"


def test_reference_token_shape_matches_content():
    from models.image import Hint, UploadedImage

    image = UploadedImage(url="u", prompt="p", hint=Hint(text="t", matched_line="m"))
    assert reference_token(image) == "\n\n![t](u)"
