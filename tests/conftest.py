"""Shared pytest fixtures for the lesson generation tests.

Provides:
- ``FakeTextProvider`` / ``FakeImageProvider``: scripted adapters
- ``StaticRegistry``: registry stand-in returning fixed provider lists
- ``lesson_store`` / ``trace_store`` / ``asset_store``: fresh in-memory stores
- ``LESSON_DOC``: a generated lesson with two visual-aid lines
"""

from __future__ import annotations

import os

# Keep uploads in memory when main.py is imported by API tests
os.environ.setdefault("ASSET_STORE_TYPE", "memory")
os.environ.setdefault("STORE_TYPE", "memory")
# Use litellm's bundled cost map; its remote-fetch thread races the import
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest

from errors import ProviderCallError
from models.request import GenerationRequest
from providers.base import ImageProvider, TextProvider
from services.asset_store import InMemoryAssetStore
from services.lesson_store import InMemoryLessonStore
from services.trace_store import InMemoryTraceStore

LESSON_DOC = """# Photosynthesis: How Plants Make Food

## Learning Objectives
Students will understand how green plants turn sunlight into energy for growth.

**Visual Aid Suggestion:** Diagram of a leaf absorbing sunlight.

## Gas Exchange
Leaves take in carbon dioxide and release oxygen through tiny openings called stomata.

Visual Aid Suggestion: Chart of CO2 and O2 exchange.

## Summary
Plants are amazing food factories that power almost every food chain on Earth.
"""


class FakeTextProvider(TextProvider):
    def __init__(
        self,
        name: str,
        *,
        content: str | None = None,
        error: str | None = None,
        available: bool = True,
    ) -> None:
        self.name = name
        self.model = f"fake/{name}"
        self._content = content
        self._error = error
        self._available = available
        self.calls: list[GenerationRequest] = []

    def is_available(self) -> bool:
        return self._available

    async def generate(self, request: GenerationRequest) -> str:
        self.calls.append(request)
        if self._error is not None:
            raise ProviderCallError(self.name, self._error, model=self.model)
        return self._content or ""


class FakeImageProvider(ImageProvider):
    """Image adapter that fails for selected models or hints (matched at prompt start)."""

    def __init__(
        self,
        name: str = "fake-images",
        models: tuple[str, ...] = ("m1",),
        *,
        failing_models: tuple[str, ...] = (),
        failing_hints: tuple[str, ...] = (),
        available: bool = True,
    ) -> None:
        self.name = name
        self.models = list(models)
        self.failing_models = set(failing_models)
        self.failing_hints = failing_hints
        self._available = available
        self.calls: list[tuple[str, str]] = []

    def is_available(self) -> bool:
        return self._available

    async def generate(self, prompt: str, model: str) -> bytes:
        self.calls.append((prompt, model))
        if model in self.failing_models or any(prompt.startswith(h) for h in self.failing_hints):
            raise ProviderCallError(self.name, f"{model} refused", model=model)
        return b"\x89PNG" + prompt[:16].encode()


class StaticRegistry:
    def __init__(self, text=(), image=()) -> None:
        self._text = list(text)
        self._image = list(image)

    def text_providers(self):
        return [p for p in self._text if p.is_available()]

    def image_providers(self):
        return [p for p in self._image if p.is_available()]

    def describe(self) -> dict:
        return {
            "text": [{"name": p.name, "available": p.is_available()} for p in self._text],
            "image": [{"name": p.name, "available": p.is_available()} for p in self._image],
            "imagesEnabled": True,
        }

    async def aclose(self) -> None:
        pass


@pytest.fixture(autouse=True)
def _isolate_provider_keys(monkeypatch):
    """Keep provider API keys from the host environment out of Settings."""
    from config.settings import Settings

    for field in Settings.model_fields:
        if field.endswith("_api_key"):
            monkeypatch.delenv(field.upper(), raising=False)


@pytest.fixture
def lesson_store() -> InMemoryLessonStore:
    return InMemoryLessonStore()


@pytest.fixture
def trace_store() -> InMemoryTraceStore:
    return InMemoryTraceStore()


@pytest.fixture
def asset_store() -> InMemoryAssetStore:
    return InMemoryAssetStore("http://assets.test")


@pytest.fixture
def generation_request() -> GenerationRequest:
    return GenerationRequest(outline="Photosynthesis for grade 4")
