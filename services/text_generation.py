"""Text fallback orchestrator — walks the text providers in priority order.

The first provider that returns content wins.  A :class:`ProviderCallError`
moves on to the next provider (no retry of the same one); every call is
recorded on the run's text trace.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from errors import AllProvidersExhausted, NoProviderConfigured, ProviderCallError
from models.request import GenerationRequest
from providers.base import TextProvider
from services.tracing import TraceRecorder

logger = logging.getLogger(__name__)


@dataclass
class TextResult:
    content: str
    provider_name: str
    fallback_providers: list[str] = field(default_factory=list)


class TextFallbackOrchestrator:
    def __init__(self, providers: Sequence[TextProvider]) -> None:
        self.providers = list(providers)

    async def generate(
        self,
        request: GenerationRequest,
        recorder: TraceRecorder | None = None,
    ) -> TextResult:
        """Return the first successful provider's document.

        Raises:
            NoProviderConfigured: the provider list is empty (no call is made).
            AllProvidersExhausted: every provider failed; carries the last error.
        """
        if not self.providers:
            raise NoProviderConfigured("text")

        names = [p.name for p in self.providers]
        logger.info("Text generation with %d provider(s): %s", len(names), ", ".join(names))

        last_error: Exception | None = None
        request_summary = request.summary()

        for index, provider in enumerate(self.providers, start=1):
            logger.info("Attempting %s (%d/%d)", provider.name, index, len(self.providers))
            t0 = time.monotonic()
            try:
                content = await provider.generate(request)
            except ProviderCallError as exc:
                duration_ms = int((time.monotonic() - t0) * 1000)
                last_error = exc
                logger.warning("%s failed after %dms: %s", provider.name, duration_ms, exc.detail)
                if recorder is not None:
                    await recorder.record_attempt(
                        provider.name,
                        model=exc.model,
                        request_summary=request_summary,
                        error=exc,
                        duration_ms=duration_ms,
                    )
                continue

            duration_ms = int((time.monotonic() - t0) * 1000)
            logger.info("%s succeeded in %dms (%d chars)", provider.name, duration_ms, len(content))
            if recorder is not None:
                await recorder.record_attempt(
                    provider.name,
                    model=getattr(provider, "model", ""),
                    request_summary=request_summary,
                    response_summary=f"Generated {len(content)} characters",
                    duration_ms=duration_ms,
                    success=True,
                )
            return TextResult(
                content=content,
                provider_name=provider.name,
                fallback_providers=names[1:],
            )

        raise AllProvidersExhausted(last_error, tried=names)
