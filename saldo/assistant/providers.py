"""Text-completion providers behind the prompt gateway.

Every provider exposes ``name`` and ``async complete(prompt, context="", user_id=None) -> str``.
Which one the gateway dispatches to is decided once, from configuration, by
:func:`build_provider`.
"""

import logging
from typing import Protocol

import httpx

from saldo.config import Settings, settings
from saldo.errors import UpstreamProviderError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Saldo, a personal finance assistant. Answer briefly and concretely, "
    "in the language the user writes in. Do not invent numbers you were not given."
)

SDK_MODEL_MAP = {
    "sonnet": "claude-sonnet-4-5-20250929",
    "haiku": "claude-haiku-4-5-20251001",
    "opus": "claude-opus-4-5-20251101",
}


class CompletionProvider(Protocol):
    name: str

    async def complete(self, prompt: str, context: str = "", user_id: str | None = None) -> str: ...


def _with_context(prompt: str, context: str) -> str:
    if context:
        return f"History:\n{context}\n\nUser: {prompt}\n\nAssistant:"
    return f"User: {prompt}\n\nAssistant:"


class AnthropicCompletion:
    name = "anthropic"

    def __init__(self, api_key: str, model: str = "haiku", max_tokens: int = 500):
        self.api_key = api_key
        self.model = SDK_MODEL_MAP.get(model, model)
        self.max_tokens = max_tokens
        self._client = None

    def _get_client(self):
        if self._client is None:
            import anthropic

            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def complete(self, prompt: str, context: str = "", user_id: str | None = None) -> str:
        client = self._get_client()
        response = await client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": _with_context(prompt, context)}],
        )
        for block in response.content:
            if block.type == "text" and block.text.strip():
                return block.text
        raise UpstreamProviderError("Anthropic returned no text content")


class HuggingFaceCompletion:
    name = "huggingface"

    def __init__(
        self,
        api_key: str,
        model: str,
        api_url: str,
        max_tokens: int = 500,
        temperature: float = 0.7,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.url = f"{api_url.rstrip('/')}/{model}"
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._http_client = http_client

    async def complete(self, prompt: str, context: str = "", user_id: str | None = None) -> str:
        payload = {
            "inputs": f"{SYSTEM_PROMPT}\n\n{_with_context(prompt, context)}",
            "parameters": {
                "max_new_tokens": self.max_tokens,
                "temperature": self.temperature,
                "top_p": 0.95,
                "return_full_text": False,
            },
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._http_client is not None:
            resp = await self._http_client.post(self.url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient() as client:
                resp = await client.post(self.url, json=payload, headers=headers)

        if resp.status_code >= 400:
            raise UpstreamProviderError(f"Hugging Face API error: {resp.status_code}")

        data = resp.json()
        if isinstance(data, list) and data:
            data = data[0]
        text = data.get("generated_text") if isinstance(data, dict) else None
        if not text or not text.strip():
            raise UpstreamProviderError("Hugging Face returned no generated text")
        return text.strip()


def build_provider(config: Settings = settings, fallback: CompletionProvider | None = None) -> CompletionProvider:
    """Pick the completion provider from configuration.

    An explicit ``completion_provider`` wins; otherwise the first configured
    credential decides. With no credential the deterministic fallback is returned.
    """
    choice = (config.completion_provider or "").lower()
    if not choice:
        if config.anthropic_api_key:
            choice = "anthropic"
        elif config.hf_api_key:
            choice = "huggingface"
        else:
            choice = "fallback"

    if choice == "anthropic" and config.anthropic_api_key:
        return AnthropicCompletion(config.anthropic_api_key, config.claude_model, config.completion_max_tokens)
    if choice == "huggingface" and config.hf_api_key:
        return HuggingFaceCompletion(
            config.hf_api_key,
            config.hf_model,
            config.hf_api_url,
            max_tokens=config.completion_max_tokens,
            temperature=config.completion_temperature,
        )
    if choice != "fallback":
        logger.warning("Completion provider %r has no credential, using fallback", choice)

    if fallback is None:
        from saldo.assistant.fallback import FallbackResponder

        fallback = FallbackResponder()
    return fallback
