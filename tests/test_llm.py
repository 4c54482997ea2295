# =============================================================================
# Unit Tests — LLM Providers
# =============================================================================
#
# The SDK clients are mocked; no model server is contacted.
# =============================================================================

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pdf_chat.config import settings
from pdf_chat.services import llm as llm_module
from pdf_chat.services.llm import (
    AnthropicProvider,
    OpenAICompatibleProvider,
    get_llm_provider,
)


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


@pytest.fixture
def no_keys():
    with patch.object(settings, "llm_api_key", None), \
            patch.object(settings, "openai_api_key", None), \
            patch.object(settings, "anthropic_api_key", None):
        yield


def _chat_response(content: str | None):
    return SimpleNamespace(
        model="llama3.2",
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
    )


class TestOpenAICompatibleProvider:
    @patch("openai.AsyncOpenAI")
    def test_local_server_gets_placeholder_key(self, mock_client_cls, no_keys):
        OpenAICompatibleProvider(base_url="http://localhost:11434/v1")

        kwargs = mock_client_cls.call_args.kwargs
        assert kwargs["api_key"] == "ollama"
        assert kwargs["base_url"] == "http://localhost:11434/v1"

    def test_no_key_and_no_base_url(self, no_keys):
        with patch.object(settings, "llm_base_url", None):
            with pytest.raises(ValueError, match="No API key"):
                OpenAICompatibleProvider()

    @patch("openai.AsyncOpenAI")
    def test_prompt_sent_as_single_user_message(self, mock_client_cls):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_chat_response("Hi"))
        mock_client_cls.return_value = client
        provider = OpenAICompatibleProvider(api_key="key", model="llama3.2")

        with patch.object(settings, "llm_temperature", 0.0):
            response = _run(provider.complete("hello"))

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "hello"}]
        assert kwargs["model"] == "llama3.2"
        assert kwargs["temperature"] == 0.0
        assert response.content == "Hi"
        assert response.input_tokens == 12

    @patch("openai.AsyncOpenAI")
    def test_empty_content_becomes_empty_string(self, mock_client_cls):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_chat_response(None))
        mock_client_cls.return_value = client
        provider = OpenAICompatibleProvider(api_key="key")

        assert _run(provider.complete("q")).content == ""


class TestAnthropicProvider:
    def test_requires_key(self, no_keys):
        with pytest.raises(ValueError, match="Anthropic"):
            AnthropicProvider()

    @patch("anthropic.AsyncAnthropic")
    def test_returns_first_text_block(self, mock_client_cls):
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=SimpleNamespace(
            model="claude-test",
            content=[
                SimpleNamespace(type="thinking", text="ignored"),
                SimpleNamespace(type="text", text="Answer"),
            ],
            usage=SimpleNamespace(input_tokens=5, output_tokens=2),
        ))
        mock_client_cls.return_value = client
        provider = AnthropicProvider(api_key="key", model="claude-test")

        response = _run(provider.complete("q"))

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "q"}]
        assert "system" not in kwargs
        assert response.content == "Answer"
        assert response.output_tokens == 2


class TestFactory:
    @pytest.fixture(autouse=True)
    def reset_singleton(self):
        with patch.object(llm_module, "_provider", None):
            yield

    @patch("anthropic.AsyncAnthropic")
    def test_anthropic(self, _mock_client_cls):
        with patch.object(settings, "llm_provider", "anthropic"), \
                patch.object(settings, "llm_api_key", "key"):
            assert isinstance(get_llm_provider(), AnthropicProvider)

    @patch("openai.AsyncOpenAI")
    def test_default_is_openai_compatible(self, _mock_client_cls):
        with patch.object(settings, "llm_provider", "openai_compatible"), \
                patch.object(settings, "llm_api_key", "key"):
            provider = get_llm_provider()

        assert isinstance(provider, OpenAICompatibleProvider)
        assert get_llm_provider() is provider
