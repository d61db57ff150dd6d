"""Text generation adapters powered by LiteLLM.

One :class:`LiteLLMTextProvider` is created per vendor.  The vendor is
selected by the LiteLLM model prefix:
    - gemini/gemini-2.0-flash
    - groq/llama-3.3-70b-versatile
    - dashscope/qwen-max
    - huggingface/meta-llama/Llama-3.1-8B-Instruct
    - ollama/llama3.2
    - openai/gpt-4o-mini
    - anthropic/claude-3-5-haiku-latest
"""

from __future__ import annotations

import logging

import litellm

from config.llm_config import LLMConfig
from config.prompts.lesson import (
    LESSON_SYSTEM_PROMPT,
    build_combined_prompt,
    build_user_prompt,
)
from config.providers import COMBINED_PROMPT_VENDORS, TextVendorConfig
from errors import ProviderCallError
from models.request import GenerationRequest
from providers.base import TextProvider
from services.concurrency import rate_limited_llm_call

logger = logging.getLogger(__name__)


class LiteLLMTextProvider(TextProvider):
    """Thin wrapper around ``litellm.acompletion()`` for one vendor.

    Accepts an optional :class:`LLMConfig` holding generation parameters
    (temperature, token cap, ...), built from Settings by the registry.
    """

    def __init__(self, vendor: TextVendorConfig, config: LLMConfig | None = None) -> None:
        self.name = vendor.name
        self._vendor = vendor
        self._config = config or LLMConfig()

    @property
    def model(self) -> str:
        return self._vendor.model

    def is_available(self) -> bool:
        if not self._vendor.requires_key:
            return True
        return bool(self._vendor.api_key)

    def build_messages(self, request: GenerationRequest) -> list[dict]:
        if self.name in COMBINED_PROMPT_VENDORS:
            return [{"role": "user", "content": build_combined_prompt(request)}]
        return [
            {"role": "system", "content": LESSON_SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(request)},
        ]

    async def generate(self, request: GenerationRequest) -> str:
        kwargs: dict = {
            "model": self._vendor.model,
            "messages": self.build_messages(request),
            **self._config.to_litellm_kwargs(),
        }
        if self._vendor.api_key:
            kwargs["api_key"] = self._vendor.api_key
        if self._vendor.api_base:
            kwargs["api_base"] = self._vendor.api_base

        try:
            response = await rate_limited_llm_call(litellm.acompletion, **kwargs)
        except Exception as exc:
            raise ProviderCallError(
                self.name,
                f"{type(exc).__name__}: {exc}",
                model=self._vendor.model,
                status_code=getattr(exc, "status_code", None),
            ) from exc

        content = _extract_content(response)
        if not content.strip():
            raise ProviderCallError(self.name, "Empty completion", model=self._vendor.model)

        logger.info("%s produced %d chars with %s", self.name, len(content), self._vendor.model)
        return content


def _extract_content(response) -> str:
    """Pull the first choice's text out of a LiteLLM ModelResponse."""
    try:
        return response.choices[0].message.content or ""
    except (AttributeError, IndexError):
        return ""
