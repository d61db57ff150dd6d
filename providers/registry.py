"""Provider registry — ordered, currently-available adapters per kind.

The registry is built from an injected :class:`ProviderConfig`.  Adapter
instances are created once and reused across runs, so adapter-local state
(e.g. the Stable Horde submission throttle) is shared by concurrent runs.
"""

from __future__ import annotations

import logging
from typing import Callable

import httpx

from config.llm_config import LLMConfig
from config.providers import ImageVendorConfig, ProviderConfig
from config.settings import get_settings
from providers.base import ImageProvider, TextProvider
from providers.images import (
    HuggingFaceImageProvider,
    ImageRouterProvider,
    PollinationsImageProvider,
    SeedreamImageProvider,
    StableHordeProvider,
)
from providers.polling import PollBudget
from providers.text import LiteLLMTextProvider
from providers.throttle import RequestThrottle

logger = logging.getLogger(__name__)

ImageFactory = Callable[[ImageVendorConfig, ProviderConfig, "httpx.AsyncClient | None"], ImageProvider]


def _stablehorde(vendor: ImageVendorConfig, config: ProviderConfig, http_client) -> ImageProvider:
    return StableHordeProvider(
        vendor,
        budget=PollBudget(interval=config.poll_interval, max_attempts=config.poll_max_attempts),
        throttle=RequestThrottle(config.min_request_interval),
        http_client=http_client,
        timeout=config.image_timeout,
    )


def _simple(cls: type) -> ImageFactory:
    def factory(vendor: ImageVendorConfig, config: ProviderConfig, http_client) -> ImageProvider:
        return cls(vendor, http_client=http_client, timeout=config.image_timeout)

    return factory


IMAGE_FACTORIES: dict[str, ImageFactory] = {
    "pollinations": _simple(PollinationsImageProvider),
    "imagerouter": _simple(ImageRouterProvider),
    "huggingface": _simple(HuggingFaceImageProvider),
    "stablehorde": _stablehorde,
    "seedream": _simple(SeedreamImageProvider),
}


class ProviderRegistry:
    """Builds adapters from configuration and answers "who can I call, in what order"."""

    def __init__(
        self,
        config: ProviderConfig,
        *,
        llm_config: LLMConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._text: list[TextProvider] = [
            LiteLLMTextProvider(config.text_vendors[name], llm_config)
            for name in config.text_priority
            if name in config.text_vendors
        ]
        self._image: list[ImageProvider] = [
            IMAGE_FACTORIES[name](config.image_vendors[name], config, http_client)
            for name in config.image_priority
            if name in config.image_vendors and name in IMAGE_FACTORIES
        ]

    def text_providers(self) -> list[TextProvider]:
        """Available text adapters in priority order."""
        return [p for p in self._text if p.is_available()]

    def image_providers(self) -> list[ImageProvider]:
        """Available image adapters in priority order (empty when images are disabled)."""
        if not self.config.images_enabled:
            return []
        providers = [p for p in self._image if p.is_available()]
        logger.debug("Image providers available: %s", [p.name for p in providers])
        return providers

    def describe(self) -> dict:
        """Availability summary for the listing endpoint."""
        return {
            "text": [
                {"name": p.name, "available": p.is_available(), "model": getattr(p, "model", "")}
                for p in self._text
            ],
            "image": [
                {"name": p.name, "available": p.is_available(), "models": list(p.models)}
                for p in self._image
            ],
            "imagesEnabled": self.config.images_enabled,
        }

    async def aclose(self) -> None:
        for provider in [*self._text, *self._image]:
            try:
                await provider.aclose()
            except Exception:
                logger.warning("Failed to close provider %s", provider.name, exc_info=True)


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------

_registry: ProviderRegistry | None = None


def get_provider_registry() -> ProviderRegistry:
    """Return the process-wide registry, built once from Settings."""
    global _registry
    if _registry is None:
        settings = get_settings()
        _registry = ProviderRegistry(
            ProviderConfig.from_settings(settings),
            llm_config=settings.get_default_llm_config(),
        )
        logger.info(
            "Provider registry ready — text=%s image=%s",
            [p.name for p in _registry.text_providers()],
            [p.name for p in _registry.image_providers()],
        )
    return _registry
