"""
Language Model Providers

Each provider is a descriptor with an availability check and two invocation
modes over the same request:

- ``complete``  blocking, returns the whole answer
- ``stream``    incremental, yields text fragments in order

Providers are ranked; the generator uses the first one whose credentials are
configured.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..config import Settings
from .client import GenerationError, GenerationOptions, ProviderHTTPClient

Messages = List[Dict[str, str]]


class LLMProvider(ABC):

    name: str = "abstract"

    def __init__(self, api_key: Optional[str], model: str) -> None:
        self.api_key = api_key
        self.model = model

    def is_available(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    async def complete(self, messages: Messages, options: GenerationOptions) -> str:
        ...

    @abstractmethod
    def stream(self, messages: Messages, options: GenerationOptions) -> AsyncIterator[str]:
        ...

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "model": self.model, "available": self.is_available()}


# ---------------------------------------------------------------------
# OpenAI-compatible chat completions (OpenAI, Groq)
# ---------------------------------------------------------------------

class OpenAICompatibleProvider(LLMProvider):

    def __init__(
        self,
        name: str,
        api_key: Optional[str],
        model: str,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(api_key, model)
        self.name = name
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self._transport = transport

    def _http(self) -> ProviderHTTPClient:
        return ProviderHTTPClient(
            self.name,
            {"Authorization": f"Bearer {self.api_key}"},
            transport=self._transport,
        )

    def _payload(self, messages: Messages, options: GenerationOptions, stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "stream": stream,
        }

    async def complete(self, messages: Messages, options: GenerationOptions) -> str:
        data = await self._http().post_json(self.url, self._payload(messages, options, False), options)
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise GenerationError(f"{self.name} returned an unexpected response shape") from exc

    async def stream(self, messages: Messages, options: GenerationOptions) -> AsyncIterator[str]:
        events = self._http().stream_events(self.url, self._payload(messages, options, True), options)
        async for event in events:
            for choice in event.get("choices") or []:
                text = (choice.get("delta") or {}).get("content")
                if text:
                    yield text


# ---------------------------------------------------------------------
# Anthropic messages API
# ---------------------------------------------------------------------

class AnthropicProvider(LLMProvider):

    name = "anthropic"
    url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(api_key, model)
        self._transport = transport

    def _http(self) -> ProviderHTTPClient:
        return ProviderHTTPClient(
            self.name,
            {"x-api-key": self.api_key or "", "anthropic-version": self.api_version},
            transport=self._transport,
        )

    def _payload(self, messages: Messages, options: GenerationOptions, stream: bool) -> Dict[str, Any]:
        # System instructions are a top-level field, not a message
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        return {
            "model": self.model,
            "system": system,
            "messages": [m for m in messages if m["role"] != "system"],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "stream": stream,
        }

    async def complete(self, messages: Messages, options: GenerationOptions) -> str:
        data = await self._http().post_json(self.url, self._payload(messages, options, False), options)
        blocks = data.get("content") or []
        if not isinstance(blocks, list):
            raise GenerationError("anthropic returned an unexpected response shape")
        return "".join(
            b.get("text") or ""
            for b in blocks
            if isinstance(b, dict) and b.get("type") == "text"
        )

    async def stream(self, messages: Messages, options: GenerationOptions) -> AsyncIterator[str]:
        events = self._http().stream_events(self.url, self._payload(messages, options, True), options)
        async for event in events:
            if event.get("type") == "error":
                error = event.get("error") or {}
                raise GenerationError(f"anthropic stream error: {error.get('message', 'unknown')}")
            if event.get("type") != "content_block_delta":
                continue
            text = (event.get("delta") or {}).get("text")
            if text:
                yield text


# ---------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------

def _secret(value) -> Optional[str]:
    return value.get_secret_value() if value is not None else None


def build_providers(config: Settings) -> List[LLMProvider]:
    """Providers in priority order: OpenAI, Anthropic, Groq."""
    return [
        OpenAICompatibleProvider(
            "openai",
            _secret(config.openai_api_key),
            config.openai_model,
            "https://api.openai.com/v1",
        ),
        AnthropicProvider(
            _secret(config.anthropic_api_key),
            config.anthropic_model,
        ),
        OpenAICompatibleProvider(
            "groq",
            _secret(config.groq_api_key),
            config.groq_model,
            "https://api.groq.com/openai/v1",
        ),
    ]
