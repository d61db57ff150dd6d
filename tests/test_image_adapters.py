"""Image adapter tests — vendor HTTP mocked with httpx.MockTransport."""

import base64
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from config.providers import ImageVendorConfig
from errors import ImageProviderExhausted, ProviderCallError, ProviderTimeoutError
from models.image import Hint
from models.trace import TraceKind
from providers.images import (
    HuggingFaceImageProvider,
    ImageRouterProvider,
    PollinationsImageProvider,
    SeedreamImageProvider,
    StableHordeProvider,
)
from providers.polling import PollBudget
from providers.throttle import RequestThrottle
from services.image_generation import ImageFallbackOrchestrator
from services.tracing import TraceRecorder

PNG = b"\x89PNG\r\n\x1a\nfake"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ── Pollinations (synchronous) ───────────────────────────────


@pytest.mark.asyncio
async def test_pollinations_returns_bytes():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=PNG)

    provider = PollinationsImageProvider(
        ImageVendorConfig(name="pollinations"), http_client=_client(handler),
    )
    data = await provider.generate("a red leaf", "flux")

    assert data == PNG
    assert seen[0].url.host == "image.pollinations.ai"
    assert seen[0].url.params["model"] == "flux"
    assert provider.is_available()


@pytest.mark.asyncio
async def test_pollinations_http_error():
    provider = PollinationsImageProvider(
        ImageVendorConfig(name="pollinations"),
        http_client=_client(lambda r: httpx.Response(500, text="overloaded")),
    )
    with pytest.raises(ProviderCallError) as exc_info:
        await provider.generate("a red leaf", "flux")
    assert exc_info.value.status_code == 500
    assert exc_info.value.model == "flux"


@pytest.mark.asyncio
async def test_transport_error_becomes_provider_error():
    def handler(request):
        raise httpx.ConnectError("dns failure", request=request)

    provider = PollinationsImageProvider(
        ImageVendorConfig(name="pollinations"), http_client=_client(handler),
    )
    with pytest.raises(ProviderCallError):
        await provider.generate("x", "turbo")


# ── ImageRouter (URL-returning) ──────────────────────────────


@pytest.mark.asyncio
async def test_imagerouter_fetches_returned_url():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.imagerouter.io":
            assert request.headers["authorization"] == "Bearer key-1"
            return httpx.Response(200, json={"url": "https://cdn.example.com/img.png"})
        return httpx.Response(200, content=PNG)

    provider = ImageRouterProvider(
        ImageVendorConfig(name="imagerouter", api_key="key-1"), http_client=_client(handler),
    )
    assert await provider.generate("x", "imagerouter") == PNG


@pytest.mark.asyncio
async def test_imagerouter_base64_payload():
    encoded = "data:image/png;base64," + base64.b64encode(PNG).decode()
    provider = ImageRouterProvider(
        ImageVendorConfig(name="imagerouter", api_key="key-1"),
        http_client=_client(lambda r: httpx.Response(200, json={"image": encoded})),
    )
    assert await provider.generate("x", "imagerouter") == PNG


def test_imagerouter_requires_key():
    assert not ImageRouterProvider(ImageVendorConfig(name="imagerouter")).is_available()


# ── Hugging Face (synchronous, several models) ───────────────


@pytest.mark.asyncio
async def test_huggingface_loading_model_fails():
    provider = HuggingFaceImageProvider(
        ImageVendorConfig(name="huggingface", api_key="hf"),
        http_client=_client(lambda r: httpx.Response(503, json={"error": "Model is loading"})),
    )
    with pytest.raises(ProviderCallError) as exc_info:
        await provider.generate("x", provider.models[0])
    assert exc_info.value.status_code == 503


# ── Stable Horde (asynchronous job) ──────────────────────────


def _horde_handler(checks_before_done: int, *, faulted: bool = False):
    state = {"checks": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/generate/async"):
            body = json.loads(request.content)
            assert body["models"] == ["Deliberate"]
            return httpx.Response(202, json={"id": "job-1"})
        if "/generate/check/" in path:
            state["checks"] += 1
            done = state["checks"] > checks_before_done
            return httpx.Response(200, json={"done": done, "faulted": faulted})
        if "/generate/status/" in path:
            return httpx.Response(
                200, json={"generations": [{"img": base64.b64encode(PNG).decode()}]},
            )
        return httpx.Response(404)

    return handler, state


def _horde(handler, max_attempts: int = 5) -> StableHordeProvider:
    return StableHordeProvider(
        ImageVendorConfig(name="stablehorde"),
        budget=PollBudget(interval=0, max_attempts=max_attempts),
        throttle=RequestThrottle(0),
        http_client=_client(handler),
    )


@pytest.mark.asyncio
async def test_stablehorde_polls_until_done():
    handler, state = _horde_handler(checks_before_done=2)
    data = await _horde(handler).generate("a comet", "Deliberate")

    assert data == PNG
    assert state["checks"] == 3


@pytest.mark.asyncio
async def test_stablehorde_budget_exhausted():
    handler, state = _horde_handler(checks_before_done=100)

    with pytest.raises(ProviderTimeoutError) as exc_info:
        await _horde(handler, max_attempts=4).generate("a comet", "Deliberate")

    assert exc_info.value.job_id == "job-1"
    assert state["checks"] == 4


@pytest.mark.asyncio
async def test_stablehorde_faulted_job():
    handler, _ = _horde_handler(checks_before_done=0, faulted=True)
    with pytest.raises(ProviderCallError, match="faulted"):
        await _horde(handler).generate("a comet", "Deliberate")


@pytest.mark.asyncio
async def test_stablehorde_rate_limited_submit():
    provider = _horde(lambda r: httpx.Response(429, text="slow down"))
    with pytest.raises(ProviderCallError, match="Rate limit"):
        await provider.generate("a comet", "Deliberate")


@pytest.mark.parametrize("step", ["/generate/async", "/generate/check/", "/generate/status/"])
@pytest.mark.asyncio
async def test_stablehorde_non_json_body_is_provider_error(step):
    ok_handler, _ = _horde_handler(checks_before_done=0)

    def handler(request: httpx.Request) -> httpx.Response:
        if step in request.url.path:
            return httpx.Response(200, text="<html>maintenance</html>")
        return ok_handler(request)

    with pytest.raises(ProviderCallError, match="not JSON") as exc_info:
        await _horde(handler).generate("a comet", "Deliberate")
    assert exc_info.value.model == "Deliberate"


@pytest.mark.asyncio
async def test_stablehorde_maintenance_page_is_traced(trace_store):
    provider = _horde(lambda r: httpx.Response(200, text="<html>maintenance</html>"))
    recorder = TraceRecorder(trace_store, subject_id="lesson-1", kind=TraceKind.IMAGE)
    hint = Hint(text="A diagram of a comet", matched_line="Visual Aid Suggestion: A diagram of a comet")

    with pytest.raises(ImageProviderExhausted):
        await ImageFallbackOrchestrator(provider).generate(hint, "# Comets", recorder)

    assert [a.model for a in recorder.attempts] == ["Deliberate"]
    assert "not JSON" in recorder.attempts[0].error

# ── Seedream (Volcengine Ark SDK, URL-returning) ─────────────


@pytest.mark.asyncio
async def test_seedream_uses_ark_then_downloads():
    ark = SimpleNamespace(images=SimpleNamespace(generate=AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(url="https://ark.example.com/1.png")]),
    )))
    provider = SeedreamImageProvider(
        ImageVendorConfig(name="seedream", api_key="ark", model="seedream-3"),
        ark_client=ark,
        http_client=_client(lambda r: httpx.Response(200, content=PNG)),
    )

    assert provider.models == ["seedream-3"]
    assert await provider.generate(" a fox ", "seedream-3") == PNG
    ark.images.generate.assert_awaited_once_with(
        model="seedream-3", prompt="a fox", size="1024x1024",
    )


def test_seedream_unavailable_without_key():
    provider = SeedreamImageProvider(ImageVendorConfig(name="seedream", model="seedream-3"))
    assert not provider.is_available()
