"""Lesson pipeline — outline in, stored lesson out.

Phases: validate → create row (``generating``) → text fallback → hint
extraction → parallel image generation + upload → splice → one terminal
status write (``generated`` or ``error``).

Only an exhausted text stage fails the run.  Image-stage failures are
absorbed into the ``degraded`` / ``imageGenerationFailed`` flags.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from errors import (
    AllProvidersExhausted,
    InputValidationError,
    LessonNotFoundError,
    NoProviderConfigured,
)
from models.image import Hint
from models.lesson import Lesson, LessonStatus, title_from_outline
from models.request import GenerationRequest, LessonCreateRequest
from models.trace import TraceKind
from providers.registry import ProviderRegistry
from services.asset_store import AssetStore
from services.lesson_store import LessonStore, generate_lesson_id
from services.parallel import ImageStageResult, ParallelExecutionCoordinator
from services.splicer import SpliceResult, splice_images
from services.telemetry import SafeTelemetry, get_telemetry
from services.text_generation import TextFallbackOrchestrator, TextResult
from services.trace_store import TraceStore
from services.tracing import TraceRecorder
from services.visual_aids import extract_hints

logger = logging.getLogger(__name__)


@dataclass
class ImageOutcome:
    content: str
    stage: ImageStageResult
    splice: SpliceResult | None = None


def validate_request(payload: LessonCreateRequest) -> GenerationRequest:
    """Normalize the inbound body.  Raises :class:`InputValidationError`."""
    outline = (payload.outline or "").strip()
    if not outline:
        raise InputValidationError("outline", "Lesson outline is required")
    return GenerationRequest(outline=outline, content_options=payload.content_options)


class LessonPipeline:
    def __init__(
        self,
        registry: ProviderRegistry,
        lesson_store: LessonStore,
        trace_store: TraceStore,
        asset_store: AssetStore,
        telemetry: SafeTelemetry | None = None,
    ) -> None:
        self.registry = registry
        self.lesson_store = lesson_store
        self.trace_store = trace_store
        self.asset_store = asset_store
        self.telemetry = telemetry or get_telemetry()

    # ── Entry points ─────────────────────────────────────────

    async def start_lesson(self, payload: LessonCreateRequest) -> tuple[Lesson, GenerationRequest]:
        """Validate and insert the ``generating`` row.  No provider is called."""
        request = validate_request(payload)
        lesson = Lesson(
            id=generate_lesson_id(),
            title=title_from_outline(request.outline),
            outline=request.outline,
            content_options=request.content_options,
            status=LessonStatus.GENERATING,
        )
        await self.lesson_store.create(lesson)
        logger.info("Lesson %s created: %s", lesson.id, lesson.title)
        return lesson, request

    async def generate(self, payload: LessonCreateRequest) -> Lesson:
        """Create a lesson and run generation to completion."""
        lesson, request = await self.start_lesson(payload)
        return await self.run(lesson.id, request)

    async def run(self, lesson_id: str, request: GenerationRequest) -> Lesson | None:
        """Run every phase for an existing row and write its terminal status."""
        with self.telemetry.span("lesson.generate", op="pipeline"):
            text = await self._text_stage(lesson_id, request)
            if text is None:
                return await self.lesson_store.read(lesson_id)

            images = await self._image_stage(lesson_id, request, text.content)
            return await self._finish(lesson_id, text, images)

    # ── Phases ───────────────────────────────────────────────

    async def _text_stage(self, lesson_id: str, request: GenerationRequest) -> TextResult | None:
        recorder = TraceRecorder(self.trace_store, subject_id=lesson_id, kind=TraceKind.TEXT)
        await recorder.start({
            "outline": request.outline,
            "contentOptions": request.content_options.model_dump(by_alias=True),
        })
        providers = self.registry.text_providers()

        try:
            with self.telemetry.span("lesson.text", op="llm"):
                result = await TextFallbackOrchestrator(providers).generate(request, recorder)
        except (NoProviderConfigured, AllProvidersExhausted) as exc:
            logger.error("Text generation failed for lesson %s: %s", lesson_id, exc)
            await self._fail(lesson_id, recorder, exc)
            return None
        except Exception as exc:
            logger.exception("Unexpected error generating lesson %s", lesson_id)
            await self._fail(lesson_id, recorder, exc)
            return None

        await recorder.complete(
            {"contentLength": len(result.content), "contentPreview": result.content[:200]},
            provider_used=result.provider_name,
            fallback_providers=result.fallback_providers,
        )
        return result

    async def _image_stage(
        self, lesson_id: str, request: GenerationRequest, content: str
    ) -> ImageOutcome | None:
        if not request.content_options.generate_images:
            return None

        hints = extract_hints(content)
        if not hints:
            return None

        providers = self.registry.image_providers()
        recorder = TraceRecorder(self.trace_store, subject_id=lesson_id, kind=TraceKind.IMAGE)
        await recorder.start({
            "hints": [h.text for h in hints],
            "providers": [p.name for p in providers],
        })

        try:
            with self.telemetry.span("lesson.images", op="image"):
                coordinator = ParallelExecutionCoordinator(providers, self.asset_store)
                stage = await coordinator.run(lesson_id, content, hints, recorder)
        except Exception as exc:
            logger.exception("Image stage crashed for lesson %s", lesson_id)
            self.telemetry.capture_exception(exc, lesson_id=lesson_id, phase="images")
            await recorder.fail(str(exc))
            return ImageOutcome(
                content=content,
                stage=ImageStageResult(hint_count=len(hints), error_message=str(exc)),
            )

        if not stage.uploaded:
            await recorder.fail(stage.error_message or "No images generated")
            self.telemetry.capture_message(
                "Image generation degraded", "warning",
                lesson_id=lesson_id, hints=len(hints), error=stage.error_message,
            )
            return ImageOutcome(content=content, stage=stage)

        with self.telemetry.span("lesson.splice", op="splice"):
            spliced = splice_images(content, stage.uploaded)
        await recorder.complete(
            self._image_response(hints, stage, spliced),
            provider_used=stage.provider_used,
            model_used=", ".join(stage.models_used) or None,
        )
        return ImageOutcome(content=spliced.content, stage=stage, splice=spliced)

    @staticmethod
    def _image_response(hints: list[Hint], stage: ImageStageResult, spliced: SpliceResult) -> dict:
        return {
            "hintCount": len(hints),
            "generatedCount": stage.generated_count,
            "uploadedCount": len(stage.uploaded),
            "splicedCount": len(spliced.spliced),
            "mismatches": [m.matched_line for m in spliced.mismatches],
            "providersTried": stage.providers_tried,
        }

    # ── Terminal transitions ─────────────────────────────────

    async def _finish(
        self, lesson_id: str, text: TextResult, images: ImageOutcome | None
    ) -> Lesson | None:
        fields: dict = {
            "status": LessonStatus.GENERATED,
            "content": text.content,
            "provider_used": text.provider_name,
        }
        if images is not None:
            spliced_ids = {id(img) for img in images.splice.spliced} if images.splice else set()
            fields.update(
                content=images.content,
                generated_images=[
                    img.to_record(spliced=id(img) in spliced_ids) for img in images.stage.uploaded
                ],
                degraded=images.stage.degraded,
                image_generation_failed=images.stage.degraded,
                image_error_message=images.stage.error_message if images.stage.degraded else None,
            )
        try:
            lesson = await self._update(lesson_id, **fields)
        except Exception as exc:
            logger.exception("Failed to store generated lesson %s", lesson_id)
            self.telemetry.capture_exception(exc, lesson_id=lesson_id, phase="finish")
            await self._mark_error(lesson_id, f"Failed to save generated lesson: {exc}")
            return None
        logger.info(
            "Lesson %s generated by %s (%d image(s)%s)",
            lesson_id, text.provider_name,
            len(fields.get("generated_images", [])),
            ", degraded" if fields.get("degraded") else "",
        )
        return lesson

    async def _fail(self, lesson_id: str, recorder: TraceRecorder, exc: Exception) -> None:
        await recorder.fail(str(exc))
        self.telemetry.capture_exception(exc, lesson_id=lesson_id, phase="text")
        await self._mark_error(lesson_id, str(exc))

    async def _mark_error(self, lesson_id: str, message: str) -> None:
        """Best-effort ``error`` write; a failing store is logged, not raised."""
        try:
            await self._update(lesson_id, status=LessonStatus.ERROR, error_message=message)
        except Exception:
            logger.warning("Could not mark lesson %s as failed", lesson_id, exc_info=True)

    async def _update(self, lesson_id: str, **fields) -> Lesson | None:
        try:
            return await self.lesson_store.update(lesson_id, **fields)
        except LessonNotFoundError:
            logger.warning("Lesson %s was deleted during generation", lesson_id)
            return None


# ── Module-level Singleton ───────────────────────────────────

_pipeline: LessonPipeline | None = None


def get_lesson_pipeline() -> LessonPipeline:
    global _pipeline
    if _pipeline is None:
        from providers.registry import get_provider_registry
        from services.asset_store import get_asset_store
        from services.lesson_store import get_lesson_store
        from services.trace_store import get_trace_store

        _pipeline = LessonPipeline(
            get_provider_registry(),
            get_lesson_store(),
            get_trace_store(),
            get_asset_store(),
        )
    return _pipeline
