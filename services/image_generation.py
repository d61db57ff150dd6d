"""Image fallback orchestrator — one hint, one adapter, its models in order.

Exhausting every model fails only the hint at hand
(:class:`ImageProviderExhausted`); sibling hints are unaffected.
"""

from __future__ import annotations

import logging
import time

from errors import ImageProviderExhausted, ProviderCallError
from models.image import GeneratedImage, Hint
from providers.base import ImageProvider
from services.tracing import TraceRecorder
from services.visual_aids import build_image_prompt

logger = logging.getLogger(__name__)


class ImageFallbackOrchestrator:
    def __init__(self, provider: ImageProvider) -> None:
        self.provider = provider

    async def generate(
        self,
        hint: Hint,
        document: str,
        recorder: TraceRecorder | None = None,
    ) -> GeneratedImage:
        """Generate one image for *hint*, trying each backing model once.

        Raises:
            ImageProviderExhausted: every model of the adapter failed.
        """
        prompt = build_image_prompt(hint, document)
        provider = self.provider
        last_error: Exception | None = None

        logger.info(
            "Generating image with %s for '%s' (%d model(s))",
            provider.name, hint.text[:50], len(provider.models),
        )

        for model in provider.models:
            t0 = time.monotonic()
            try:
                payload = await provider.generate(prompt, model)
            except ProviderCallError as exc:
                duration_ms = int((time.monotonic() - t0) * 1000)
                last_error = exc
                logger.warning("%s model %s failed: %s", provider.name, model, exc.detail)
                if recorder is not None:
                    await recorder.record_attempt(
                        provider.name,
                        model=model,
                        request_summary=prompt,
                        error=exc,
                        duration_ms=duration_ms,
                    )
                continue

            duration_ms = int((time.monotonic() - t0) * 1000)
            logger.info("%s model %s succeeded in %dms", provider.name, model, duration_ms)
            if recorder is not None:
                await recorder.record_attempt(
                    provider.name,
                    model=model,
                    request_summary=prompt,
                    response_summary=f"Generated {len(payload)} bytes",
                    duration_ms=duration_ms,
                    success=True,
                )
            return GeneratedImage(
                payload=payload,
                prompt=prompt,
                hint=hint,
                provider=provider.name,
                model=model,
            )

        raise ImageProviderExhausted(provider.name, hint.text, last_error)
