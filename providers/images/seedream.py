"""Volcengine Seedream image adapter.

Uses ``volcenginesdkarkruntime.AsyncArk`` with ARK_API_KEY authentication.
``client.images.generate(model, prompt, size)`` returns a URL immediately;
the image bytes are fetched from it as a second step.
"""

from __future__ import annotations

import logging
from typing import Any

from config.providers import ImageVendorConfig
from providers.images.base import HttpImageProvider

logger = logging.getLogger(__name__)


class SeedreamImageProvider(HttpImageProvider):
    name = "seedream"

    def __init__(self, vendor: ImageVendorConfig, *, ark_client: Any = None, **kwargs) -> None:
        super().__init__(vendor, **kwargs)
        self.models = [vendor.model] if vendor.model else []
        self._ark = ark_client

    def is_available(self) -> bool:
        return bool(self.api_key) and bool(self.models)

    def _get_ark_client(self):
        """Lazy-init the AsyncArk client on first use."""
        if self._ark is None:
            from volcenginesdkarkruntime import AsyncArk

            self._ark = AsyncArk(base_url=self._vendor.base_url, api_key=self.api_key)
        return self._ark

    async def generate(self, prompt: str, model: str) -> bytes:
        if not self.api_key:
            raise self.fail("ARK_API_KEY is not configured", model=model)

        client = self._get_ark_client()
        try:
            response = await client.images.generate(
                model=model,
                prompt=prompt.strip(),
                size="1024x1024",
            )
            image_url = response.data[0].url
        except Exception as exc:
            raise self.fail(f"Seedream request failed: {exc}", model=model) from exc

        if not image_url:
            raise self.fail("No image URL in response", model=model)
        return await self.fetch_bytes(image_url, model=model)
