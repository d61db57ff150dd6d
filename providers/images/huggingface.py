"""Hugging Face Inference API image adapter.

Requires ``HUGGINGFACE_API_KEY``.  Several Stable Diffusion models are
exposed; a model that is still loading on the free tier (HTTP 503) is
reported as a failure so that the next model is tried.
"""

from __future__ import annotations

import logging

from providers.images.base import NEGATIVE_PROMPT, HttpImageProvider

logger = logging.getLogger(__name__)

INFERENCE_URL = "https://api-inference.huggingface.co/models"


class HuggingFaceImageProvider(HttpImageProvider):
    name = "huggingface"
    models = [
        "stabilityai/stable-diffusion-xl-base-1.0",
        "stabilityai/stable-diffusion-2-1",
        "runwayml/stable-diffusion-v1-5",
        "CompVis/stable-diffusion-v1-4",
        "prompthero/openjourney-v4",
        "Lykon/DreamShaper",
    ]

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str, model: str) -> bytes:
        if not self.api_key:
            raise self.fail("HUGGINGFACE_API_KEY is not set", model=model)

        body = {
            "inputs": prompt,
            "parameters": {
                "negative_prompt": NEGATIVE_PROMPT,
                "num_inference_steps": 30,
                "guidance_scale": 7.5,
            },
        }
        response = await self.request(
            "POST",
            f"{INFERENCE_URL}/{model}",
            model=model,
            json=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if response.status_code == 503 or (
            not response.is_success and "loading" in response.text.lower()
        ):
            logger.info("Model %s is loading, trying next", model)
            raise self.fail("Model loading (503)", model=model, status_code=response.status_code)

        self.check_response(response, model)
        return self.require_data(response.content, model=model)
