"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.llm_config import LLMConfig


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False
    environment: str = "production"  # "development" enables local Ollama

    # ── Text generation providers ────────────────────────────
    # Provider API keys; a provider is only offered when its key is set.
    google_api_key: str = ""
    groq_api_key: str = ""
    dashscope_api_key: str = ""
    huggingface_api_key: str = ""
    ollama_url: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # LiteLLM model identifiers, one per vendor
    gemini_model: str = "gemini/gemini-2.0-flash"
    groq_model: str = "groq/llama-3.3-70b-versatile"
    qwen_model: str = "dashscope/qwen-max"
    huggingface_model: str = "huggingface/meta-llama/Llama-3.1-8B-Instruct"
    ollama_model: str = "ollama/llama3.2"
    openai_model: str = "openai/gpt-4o-mini"
    anthropic_model: str = "anthropic/claude-3-5-haiku-latest"

    # ── LLM Generation Defaults ──────────────────────────────
    temperature: float | None = 0.7
    max_tokens: int = 4000
    top_p: float | None = None
    seed: int | None = None
    llm_request_timeout: int = 60  # seconds, applied to litellm globally
    max_concurrent_llm: int = 10  # outbound LLM calls per worker
    max_concurrent_lessons: int = 15  # in-flight POST /api/lessons per worker

    # ── Image generation providers ───────────────────────────
    images_enabled: bool = True
    imagerouter_api_key: str = ""
    stablehorde_api_key: str = ""
    ark_api_key: str = ""
    ark_base_url: str = "https://ark.cn-beijing.volces.com/api/v3"
    ark_image_model: str = "doubao-seedream-3-0-t2i-250415"
    image_timeout: int = 120  # seconds per vendor HTTP call
    image_min_request_interval: float = 1.0  # seconds between job submissions
    image_poll_interval: float = 2.0  # seconds between async-job status checks
    image_poll_max_attempts: int = 60  # ~2 minutes with the default interval

    # ── Stores ───────────────────────────────────────────────
    store_type: str = "memory"  # "memory" or "redis"
    redis_url: str = ""  # e.g. redis://:password@host:6379/0

    # ── Asset storage ────────────────────────────────────────
    asset_store_type: str = "local"  # "local" or "memory"
    media_dir: str = "data/media"
    public_base_url: str = "http://localhost:5000"
    media_route: str = "/media"

    # ── Helpers ───────────────────────────────────────────────

    def get_default_llm_config(self) -> LLMConfig:
        """Build an :class:`LLMConfig` from global .env defaults."""
        return LLMConfig(
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            seed=self.seed,
        )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
