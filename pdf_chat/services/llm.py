# =============================================================================
# LLM Providers — One Prompt In, Text Out
# =============================================================================
#
# The query pipeline sends a single grounded prompt as one user message, with
# no system prompt and no conversation history, and reads back text. Each
# provider below does exactly that against its native async SDK:
#
#   LLMProvider (Protocol)
#   ├── AnthropicProvider        — Claude via the Messages API
#   ├── OpenAICompatibleProvider — Ollama (default), OpenAI, DeepSeek, ...
#   └── get_llm_provider()       — singleton factory, reads from config
#
# Sampling settings (model, temperature, max tokens) come from config only.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from pdf_chat.config import settings

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Generated text plus the usage numbers worth logging."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int


class LLMProvider(Protocol):
    async def complete(self, prompt: str) -> LLMResponse:
        """Send `prompt` as a single user message and return the reply."""
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        from anthropic import AsyncAnthropic

        resolved_key = api_key or settings.llm_api_key or settings.anthropic_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Set LLM_API_KEY or "
                "ANTHROPIC_API_KEY in .env"
            )

        self._client = AsyncAnthropic(api_key=resolved_key)
        self.model = model or settings.llm_model
        logger.info("Initialized AnthropicProvider (model=%s)", self.model)

    async def complete(self, prompt: str) -> LLMResponse:
        response = await self._client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
        # First text block; tool-use and other block types are never requested
        text = next((b.text for b in response.content if b.type == "text"), "")
        return LLMResponse(
            content=text,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# Implementation 2: OpenAI-compatible chat completions
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Any server implementing the OpenAI chat completions contract.

    Ollama accepts any key, so a placeholder is used when a base_url is
    configured without one.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        from openai import AsyncOpenAI

        self.base_url = base_url or settings.llm_base_url
        resolved_key = api_key or settings.llm_api_key or settings.openai_api_key
        if not resolved_key:
            if not self.base_url:
                raise ValueError(
                    "No API key configured for OpenAI-compatible provider. "
                    "Set LLM_API_KEY in .env"
                )
            resolved_key = "ollama"

        client_kwargs: dict = {"api_key": resolved_key}
        if self.base_url:
            client_kwargs["base_url"] = self.base_url
        self._client = AsyncOpenAI(**client_kwargs)
        self.model = model or settings.llm_model

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self.model, self.base_url or "https://api.openai.com/v1",
        )

    async def complete(self, prompt: str) -> LLMResponse:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model or self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


_provider: AnthropicProvider | OpenAICompatibleProvider | None = None


def get_llm_provider() -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Return the configured provider (lazy singleton).

    LLM_PROVIDER=anthropic selects Claude; anything else is treated as
    OpenAI-compatible.
    """
    global _provider
    if _provider is None:
        if settings.llm_provider == "anthropic":
            _provider = AnthropicProvider()
        else:
            _provider = OpenAICompatibleProvider()
    return _provider
