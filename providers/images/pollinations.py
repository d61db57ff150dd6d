"""Pollinations.ai image adapter.

Free API, no key required.  Synchronous protocol: a single GET returns
the image bytes.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from providers.images.base import HttpImageProvider

logger = logging.getLogger(__name__)

BASE_URL = "https://image.pollinations.ai/prompt"


class PollinationsImageProvider(HttpImageProvider):
    name = "pollinations"
    # Best quality first, fastest last
    models = ["flux", "flux-realism", "turbo"]

    width = 1024
    height = 1024

    def is_available(self) -> bool:
        return True

    async def generate(self, prompt: str, model: str) -> bytes:
        url = f"{BASE_URL}/{quote(prompt, safe='')}"
        params = {
            "model": model,
            "width": self.width,
            "height": self.height,
            "nologo": "true",
            "enhance": "true",
        }
        response = await self.request(
            "GET", url, model=model, params=params, headers={"Accept": "image/*"},
        )
        self.check_response(response, model)
        return self.require_data(response.content, model=model)
