import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from saldo.assistant.fallback import FallbackResponder
from saldo.assistant.providers import (
    SDK_MODEL_MAP,
    AnthropicCompletion,
    HuggingFaceCompletion,
    build_provider,
)
from saldo.config import Settings
from saldo.errors import UpstreamProviderError


def _settings(**kw) -> Settings:
    return Settings(telegram_bot_token="test-token-000", **kw)


def _anthropic_response(*blocks):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=t) for t in blocks])


def _hf(handler) -> HuggingFaceCompletion:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HuggingFaceCompletion("hf-key", "some/model", "https://hf.test/models/", http_client=client)


# --- selection ---


def test_no_credentials_selects_fallback():
    fallback = FallbackResponder(summary_loader=None)
    assert build_provider(_settings(), fallback=fallback) is fallback


def test_anthropic_key_selects_anthropic():
    provider = build_provider(_settings(anthropic_api_key="sk-test", hf_api_key="hf"))
    assert isinstance(provider, AnthropicCompletion)
    assert provider.model == SDK_MODEL_MAP["haiku"]


def test_hf_key_selects_huggingface():
    provider = build_provider(_settings(hf_api_key="hf"))
    assert isinstance(provider, HuggingFaceCompletion)


def test_explicit_choice_wins():
    config = _settings(anthropic_api_key="sk-test", hf_api_key="hf", completion_provider="huggingface")
    provider = build_provider(config)
    assert isinstance(provider, HuggingFaceCompletion)


def test_explicit_choice_without_credential_falls_back():
    provider = build_provider(_settings(completion_provider="anthropic"))
    assert isinstance(provider, FallbackResponder)


# --- anthropic ---


async def test_anthropic_returns_text():
    provider = AnthropicCompletion("sk-test")
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(return_value=_anthropic_response("Hello"))

    assert await provider.complete("hi", context="user: before") == "Hello"
    kwargs = provider._client.messages.create.call_args.kwargs
    assert kwargs["model"] == SDK_MODEL_MAP["haiku"]
    assert "user: before" in kwargs["messages"][0]["content"]


async def test_anthropic_without_text_raises():
    provider = AnthropicCompletion("sk-test")
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(return_value=_anthropic_response("  "))

    with pytest.raises(UpstreamProviderError):
        await provider.complete("hi")


# --- hugging face ---


async def test_hf_returns_generated_text():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"generated_text": "  Answer  "}])

    assert await _hf(handler).complete("hi") == "Answer"
    assert seen["url"] == "https://hf.test/models/some/model"
    assert seen["auth"] == "Bearer hf-key"
    assert seen["body"]["parameters"]["return_full_text"] is False


async def test_hf_http_error_raises():
    provider = _hf(lambda request: httpx.Response(503, json={"error": "loading"}))
    with pytest.raises(UpstreamProviderError):
        await provider.complete("hi")


async def test_hf_empty_text_raises():
    provider = _hf(lambda request: httpx.Response(200, json=[{"generated_text": ""}]))
    with pytest.raises(UpstreamProviderError):
        await provider.complete("hi")
