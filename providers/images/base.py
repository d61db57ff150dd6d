"""Shared HTTP plumbing for image adapters.

Three vendor protocol shapes are normalized here to "return raw image
bytes or raise ProviderCallError":

- synchronous request/response (bytes, base64 or a URL in the body),
- asynchronous job (submit → poll → fetch), see :mod:`providers.polling`,
- URL-returning (fetch the URL as a second step).
"""

from __future__ import annotations

import base64
import binascii
import logging

import httpx

from config.providers import ImageVendorConfig
from errors import ProviderCallError
from providers.base import ImageProvider

logger = logging.getLogger(__name__)

NEGATIVE_PROMPT = "blurry, low quality, distorted, ugly, bad anatomy, text, watermark"


class HttpImageProvider(ImageProvider):
    """Image adapter that talks to its vendor through ``httpx.AsyncClient``.

    The client is created lazily and owned by the adapter unless one is
    injected (tests pass a client built on ``httpx.MockTransport``).
    """

    def __init__(
        self,
        vendor: ImageVendorConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
    ) -> None:
        self._vendor = vendor
        self._timeout = timeout
        self._http = http_client
        self._owns_client = http_client is None

    @property
    def api_key(self) -> str:
        return self._vendor.api_key

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_client:
            await self._http.aclose()
            self._http = None

    # -- helpers -------------------------------------------------------------

    def fail(self, message: str, *, model: str = "", status_code: int | None = None) -> ProviderCallError:
        return ProviderCallError(self.name, message, model=model, status_code=status_code)

    def check_response(self, response: httpx.Response, model: str) -> None:
        """Raise :class:`ProviderCallError` for non-2xx responses."""
        if response.is_success:
            return
        text = response.text[:300] if response.text else ""
        raise self.fail(
            f"HTTP {response.status_code}: {text}",
            model=model,
            status_code=response.status_code,
        )

    def json(self, response: httpx.Response, model: str) -> dict:
        """Parse a JSON body, treating non-JSON pages as a failed call."""
        try:
            return response.json()
        except ValueError as exc:
            raise self.fail("Response is not JSON", model=model) from exc

    async def request(self, method: str, url: str, *, model: str, **kwargs) -> httpx.Response:
        """Send one HTTP request, converting transport errors to ProviderCallError."""
        try:
            return await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise self.fail(f"{type(exc).__name__}: {exc}", model=model) from exc

    async def fetch_bytes(self, url: str, *, model: str) -> bytes:
        """Second step of URL-returning protocols: download the image."""
        logger.info("%s returned URL, fetching image: %s", self.name, url[:120])
        response = await self.request("GET", url, model=model)
        if not response.is_success:
            raise self.fail(
                f"Download image failed HTTP {response.status_code}",
                model=model,
                status_code=response.status_code,
            )
        return self.require_data(response.content, model=model)

    def decode_base64(self, data: str, *, model: str) -> bytes:
        if data.startswith("data:") and "," in data:
            data = data.split(",", 1)[1]
        try:
            payload = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise self.fail(f"Invalid base64 image data: {exc}", model=model) from exc
        return self.require_data(payload, model=model)

    def require_data(self, payload: bytes, *, model: str) -> bytes:
        if not payload:
            raise self.fail("No image data in response", model=model)
        return payload
