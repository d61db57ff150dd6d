"""ImageRouter.io image adapter.

Requires ``IMAGEROUTER_API_KEY``.  The JSON response carries either a
base64 ``image`` or a ``url`` that has to be fetched as a second step.
"""

from __future__ import annotations

import logging

from providers.images.base import NEGATIVE_PROMPT, HttpImageProvider

logger = logging.getLogger(__name__)

GENERATE_URL = "https://api.imagerouter.io/v1/generate"


class ImageRouterProvider(HttpImageProvider):
    name = "imagerouter"
    models = ["imagerouter"]

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str, model: str) -> bytes:
        if not self.api_key:
            raise self.fail("IMAGEROUTER_API_KEY is not set", model=model)

        body = {
            "prompt": prompt,
            "width": 1024,
            "height": 1024,
            "steps": 30,
            "guidance_scale": 7.5,
            "negative_prompt": NEGATIVE_PROMPT,
        }
        response = await self.request(
            "POST",
            GENERATE_URL,
            model=model,
            json=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        self.check_response(response, model)

        result = self.json(response, model)

        if result.get("image"):
            return self.decode_base64(result["image"], model=model)
        if result.get("url"):
            return await self.fetch_bytes(result["url"], model=model)
        raise self.fail("Unexpected response format", model=model)
