"""Stable Horde (AI Horde) image adapter.

Community-driven service; works anonymously, an API key raises queue
priority.  Asynchronous-job protocol:

  1. ``POST /generate/async``       → generation id
  2. ``GET  /generate/check/{id}``  → poll until ``done`` / ``faulted``
  3. ``GET  /generate/status/{id}`` → base64 ``img`` or an image URL

Submissions are self-throttled per adapter instance.
"""

from __future__ import annotations

import logging

from config.providers import ImageVendorConfig
from providers.images.base import HttpImageProvider
from providers.polling import PollBudget, poll_job
from providers.throttle import RequestThrottle

logger = logging.getLogger(__name__)

API_BASE = "https://aihorde.net/api/v2"
ANONYMOUS_KEY = "0000000000"
CLIENT_AGENT = "lesson-forge:1.0"


class StableHordeProvider(HttpImageProvider):
    name = "stablehorde"
    models = ["Deliberate"]

    def __init__(
        self,
        vendor: ImageVendorConfig,
        *,
        budget: PollBudget | None = None,
        throttle: RequestThrottle | None = None,
        **kwargs,
    ) -> None:
        super().__init__(vendor, **kwargs)
        self.budget = budget or PollBudget()
        self.throttle = throttle or RequestThrottle(1.0)

    def is_available(self) -> bool:
        # Anonymous mode is allowed (lower queue priority)
        return True

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key or ANONYMOUS_KEY,
            "Client-Agent": CLIENT_AGENT,
        }

    async def generate(self, prompt: str, model: str) -> bytes:
        if not self.api_key:
            logger.warning("No STABLEHORDE_API_KEY provided — using anonymous mode")

        await self.throttle.wait()
        job_id = await self._submit(prompt, model)
        logger.info("Stable Horde generation submitted: %s (model=%s)", job_id, model)

        async def check(attempt: int) -> bool | None:
            response = await self.request(
                "GET", f"{API_BASE}/generate/check/{job_id}", model=model, headers=self._headers(),
            )
            if not response.is_success:
                raise self.fail(
                    f"Check status failed HTTP {response.status_code}",
                    model=model,
                    status_code=response.status_code,
                )
            data = self.json(response, model)
            if data.get("faulted"):
                raise self.fail(f"Generation faulted (ID: {job_id})", model=model)
            return True if data.get("done") else None

        await poll_job(check, self.budget, provider=self.name, model=model, job_id=job_id)
        return await self._fetch_result(job_id, model)

    async def _submit(self, prompt: str, model: str) -> str:
        body = {
            "prompt": prompt,
            "params": {
                "n": 1,
                "width": 512,
                "height": 512,
                "steps": 25,
                "cfg_scale": 7.5,
                "sampler_name": "k_euler_a",
            },
            "models": [model],
            "nsfw": False,
            "censor_nsfw": True,
            "trusted_workers": False,
            "slow_workers": True,
            "shared": False,
            "r2": True,
        }
        response = await self.request(
            "POST", f"{API_BASE}/generate/async", model=model, json=body, headers=self._headers(),
        )
        if not response.is_success:
            reason = {
                400: "Validation error",
                401: "Invalid API key",
                403: "Forbidden",
                429: "Rate limit exceeded",
            }.get(response.status_code, "Submit failed")
            raise self.fail(
                f"{reason} HTTP {response.status_code}: {response.text[:200]}",
                model=model,
                status_code=response.status_code,
            )
        job_id = self.json(response, model).get("id")
        if not job_id:
            raise self.fail("No generation ID returned", model=model)
        return job_id

    async def _fetch_result(self, job_id: str, model: str) -> bytes:
        response = await self.request(
            "GET", f"{API_BASE}/generate/status/{job_id}", model=model, headers=self._headers(),
        )
        if not response.is_success:
            raise self.fail(
                f"Status fetch failed HTTP {response.status_code}",
                model=model,
                status_code=response.status_code,
            )
        generations = self.json(response, model).get("generations") or []
        if not generations:
            raise self.fail("Completed but no generations returned", model=model)

        gen = generations[0]
        img = gen.get("img") or ""
        # With r2 enabled the "img" field holds a download URL
        if img.startswith(("http://", "https://")):
            return await self.fetch_bytes(img, model=model)
        if img:
            return self.decode_base64(img, model=model)
        if gen.get("url"):
            return await self.fetch_bytes(gen["url"], model=model)
        raise self.fail("No image data nor URL in generation result", model=model)
