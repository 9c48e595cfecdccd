"""
Answer Generator

Selects the first available provider from a ranked list (re-evaluated on
every call) and runs a two-message prompt through it, either blocking or
incrementally. For the same provider and inputs, the fragments of the
incremental mode concatenate to the blocking result.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

from ..prompts import (
    AUTH_FAILED_ANSWER,
    GENERATION_FAILED_ANSWER,
    RATE_LIMITED_ANSWER,
    build_system_prompt,
    build_user_prompt,
)
from .client import GenerationError, GenerationOptions
from .providers import LLMProvider

logger = logging.getLogger("sitechat.llm")


class NoProviderConfigured(GenerationError):
    """Raised when no provider in the ranking has credentials."""


def describe_failure(exc: GenerationError, provider: Optional[str]) -> str:
    """Turn a generation failure into the answer text shown to the user."""
    name = provider or "AI"
    message = str(exc)
    if exc.status_code == 401 or "Unauthorized" in message:
        return AUTH_FAILED_ANSWER.format(provider=name)
    if exc.status_code == 429 or "rate limit" in message.lower():
        return RATE_LIMITED_ANSWER.format(provider=name)
    return GENERATION_FAILED_ANSWER.format(message=message)


class AnswerGenerator:

    def __init__(
        self,
        providers: Sequence[LLMProvider],
        language: str = "Danish",
        options: Optional[GenerationOptions] = None,
    ) -> None:
        self.providers = list(providers)
        self.language = language
        self.options = options or GenerationOptions()

    def select_provider(self) -> Optional[LLMProvider]:
        for provider in self.providers:
            if provider.is_available():
                return provider
        return None

    def _require_provider(self) -> LLMProvider:
        provider = self.select_provider()
        if provider is None:
            raise NoProviderConfigured("no language model provider is configured")
        return provider

    def build_messages(self, query: str, context: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": build_system_prompt(self.language)},
            {"role": "user", "content": build_user_prompt(query, context)},
        ]

    async def generate(self, query: str, context: str) -> str:
        provider = self._require_provider()
        logger.info("Generating answer with %s (%s)", provider.name, provider.model)
        return await provider.complete(self.build_messages(query, context), self.options)

    async def generate_stream(self, query: str, context: str) -> AsyncIterator[str]:
        provider = self._require_provider()
        logger.info("Streaming answer with %s (%s)", provider.name, provider.model)
        async for fragment in provider.stream(self.build_messages(query, context), self.options):
            yield fragment
