"""Parallel execution coordinator — image generation and upload fan-out.

Stage 1 runs one :class:`ImageFallbackOrchestrator` task per hint; stage 2
uploads every generated image.  Each task is isolated: a failure drops
that item only.  When a whole provider yields zero images, the next
provider in priority order gets the full hint set.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from errors import ImageProviderExhausted, NoProviderConfigured, UploadFailure
from models.image import GeneratedImage, Hint, UploadedImage
from providers.base import ImageProvider
from services.asset_store import AssetStore, lesson_image_path
from services.image_generation import ImageFallbackOrchestrator
from services.telemetry import get_telemetry
from services.tracing import TraceRecorder

logger = logging.getLogger(__name__)


@dataclass
class ImageStageResult:
    uploaded: list[UploadedImage] = field(default_factory=list)
    provider_used: str | None = None
    models_used: list[str] = field(default_factory=list)
    providers_tried: list[str] = field(default_factory=list)
    generated_count: int = 0
    error_message: str | None = None
    hint_count: int = 0

    @property
    def degraded(self) -> bool:
        """Hints were present but no image made it through both stages."""
        return self.hint_count > 0 and not self.uploaded


def _settled(results: list, label: str) -> list:
    """Keep successful results; log failures, re-raise cancellation."""
    kept = []
    for result in results:
        if isinstance(result, (ImageProviderExhausted, UploadFailure)):
            logger.warning("%s item failed: %s", label, result)
        elif isinstance(result, Exception):
            logger.error("%s item failed unexpectedly: %s", label, result, exc_info=result)
            get_telemetry().capture_exception(result, operation=label)
        elif isinstance(result, BaseException):
            raise result
        else:
            kept.append(result)
    return kept


class ParallelExecutionCoordinator:
    def __init__(self, providers: Sequence[ImageProvider], asset_store: AssetStore) -> None:
        self.providers = list(providers)
        self.asset_store = asset_store

    async def run(
        self,
        lesson_id: str,
        document: str,
        hints: Sequence[Hint],
        recorder: TraceRecorder | None = None,
    ) -> ImageStageResult:
        result = ImageStageResult(hint_count=len(hints))
        if not hints:
            return result
        if not self.providers:
            result.error_message = str(NoProviderConfigured("image"))
            logger.warning(result.error_message)
            return result

        generated = await self._generate(document, hints, recorder, result)
        result.generated_count = len(generated)
        if not generated:
            result.error_message = (
                f"All image generation providers failed ({', '.join(result.providers_tried)})"
            )
            return result

        result.uploaded = await self._upload(lesson_id, hints, generated)
        if not result.uploaded:
            result.error_message = f"All {len(generated)} image upload(s) failed"
        logger.info(
            "Image stage done: %d hint(s), %d generated, %d uploaded",
            len(hints), len(generated), len(result.uploaded),
        )
        return result

    async def _generate(
        self,
        document: str,
        hints: Sequence[Hint],
        recorder: TraceRecorder | None,
        result: ImageStageResult,
    ) -> list[GeneratedImage]:
        for provider in self.providers:
            result.providers_tried.append(provider.name)
            orchestrator = ImageFallbackOrchestrator(provider)
            t0 = time.monotonic()
            outcomes = await asyncio.gather(
                *(orchestrator.generate(hint, document, recorder) for hint in hints),
                return_exceptions=True,
            )
            images = _settled(outcomes, f"{provider.name} generation")
            logger.info(
                "%s generated %d/%d image(s) in %dms",
                provider.name, len(images), len(hints), int((time.monotonic() - t0) * 1000),
            )
            if images:
                result.provider_used = provider.name
                result.models_used = sorted({img.model for img in images})
                return images
            logger.warning("Provider %s returned 0 images, trying next...", provider.name)
        return []

    async def _upload(
        self, lesson_id: str, hints: Sequence[Hint], images: list[GeneratedImage]
    ) -> list[UploadedImage]:
        timestamp_ms = int(time.time() * 1000)

        async def upload_one(image: GeneratedImage) -> UploadedImage:
            path = lesson_image_path(lesson_id, hints.index(image.hint), timestamp_ms)
            url = await self.asset_store.upload(image.payload, path)
            return UploadedImage(url=url, prompt=image.prompt, hint=image.hint, path=path)

        outcomes = await asyncio.gather(
            *(upload_one(image) for image in images), return_exceptions=True,
        )
        return _settled(outcomes, "upload")
