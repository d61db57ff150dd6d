"""Provider configuration snapshot.

``ProviderConfig`` is built once from :class:`Settings` at process start
and injected into the provider registry, so that "which providers are
configured" is decided in one place instead of by scattered environment
reads.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from config.settings import Settings

# Fixed priority tables: free / fast vendors first, paid vendors last.
TEXT_PRIORITY: tuple[str, ...] = (
    "gemini",
    "groq",
    "qwen",
    "huggingface",
    "ollama",
    "openai",
    "anthropic",
)

IMAGE_PRIORITY: tuple[str, ...] = (
    "pollinations",
    "imagerouter",
    "huggingface",
    "stablehorde",
    "seedream",
)

# Vendors that only accept a single user prompt (no system message).
COMBINED_PROMPT_VENDORS = frozenset({"huggingface", "ollama"})


class TextVendorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    model: str
    api_key: str = ""
    api_base: str | None = None
    requires_key: bool = True


class ImageVendorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    api_key: str = ""
    base_url: str | None = None
    model: str | None = None


class ProviderConfig(BaseModel):
    """Immutable view of every vendor the process may talk to."""

    model_config = ConfigDict(frozen=True)

    text_vendors: dict[str, TextVendorConfig]
    image_vendors: dict[str, ImageVendorConfig]
    text_priority: tuple[str, ...] = TEXT_PRIORITY
    image_priority: tuple[str, ...] = IMAGE_PRIORITY
    images_enabled: bool = True
    image_timeout: float = 120.0
    min_request_interval: float = 1.0
    poll_interval: float = 2.0
    poll_max_attempts: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderConfig:
        ollama_enabled = bool(settings.ollama_url) or settings.is_development
        text_vendors = {
            "gemini": TextVendorConfig(
                name="gemini", model=settings.gemini_model, api_key=settings.google_api_key,
            ),
            "groq": TextVendorConfig(
                name="groq", model=settings.groq_model, api_key=settings.groq_api_key,
            ),
            "qwen": TextVendorConfig(
                name="qwen", model=settings.qwen_model, api_key=settings.dashscope_api_key,
            ),
            "huggingface": TextVendorConfig(
                name="huggingface",
                model=settings.huggingface_model,
                api_key=settings.huggingface_api_key,
            ),
            "ollama": TextVendorConfig(
                name="ollama",
                model=settings.ollama_model,
                api_base=settings.ollama_url or "http://localhost:11434",
                requires_key=not ollama_enabled,
            ),
            "openai": TextVendorConfig(
                name="openai", model=settings.openai_model, api_key=settings.openai_api_key,
            ),
            "anthropic": TextVendorConfig(
                name="anthropic",
                model=settings.anthropic_model,
                api_key=settings.anthropic_api_key,
            ),
        }
        image_vendors = {
            "pollinations": ImageVendorConfig(name="pollinations"),
            "imagerouter": ImageVendorConfig(
                name="imagerouter", api_key=settings.imagerouter_api_key,
            ),
            "huggingface": ImageVendorConfig(
                name="huggingface", api_key=settings.huggingface_api_key,
            ),
            "stablehorde": ImageVendorConfig(
                name="stablehorde", api_key=settings.stablehorde_api_key,
            ),
            "seedream": ImageVendorConfig(
                name="seedream",
                api_key=settings.ark_api_key,
                base_url=settings.ark_base_url,
                model=settings.ark_image_model,
            ),
        }
        return cls(
            text_vendors=text_vendors,
            image_vendors=image_vendors,
            images_enabled=settings.images_enabled,
            image_timeout=float(settings.image_timeout),
            min_request_interval=settings.image_min_request_interval,
            poll_interval=settings.image_poll_interval,
            poll_max_attempts=settings.image_poll_max_attempts,
        )
