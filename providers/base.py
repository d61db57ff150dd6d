"""Provider adapter interfaces.

Every external generation service is wrapped in a :class:`ProviderAdapter`
exposing ``name``, ``is_available()`` and ``generate(...)``.  Adapters
return content or raise :class:`~errors.ProviderCallError`; vendor HTTP
details stay inside the adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from models.request import GenerationRequest


class ProviderAdapter(ABC):
    """Common shape of text and image adapters."""

    kind: ClassVar[str] = ""
    name: str = ""

    @abstractmethod
    def is_available(self) -> bool:
        """True when the adapter is configured well enough to be called."""
        ...

    async def aclose(self) -> None:
        """Release network resources held by the adapter (no-op by default)."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class TextProvider(ProviderAdapter):
    kind = "text"

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> str:
        """Produce the lesson document for *request*.

        Raises:
            ProviderCallError: the call failed or returned no content.
        """
        ...


class ImageProvider(ProviderAdapter):
    """Image adapter backed by one or more vendor models.

    ``models`` is tried in order by the image fallback orchestrator; each
    ``generate`` call targets exactly one of them.
    """

    kind = "image"
    models: list[str] = []

    @abstractmethod
    async def generate(self, prompt: str, model: str) -> bytes:
        """Return raw image bytes for *prompt* using *model*.

        Raises:
            ProviderCallError: the vendor failed, returned no data, or the
                polling budget of an asynchronous job ran out.
        """
        ...
