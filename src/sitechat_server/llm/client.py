"""
LLM HTTP Transport

Shared request helpers for the provider implementations: JSON POSTs,
server-sent-event streaming, and uniform error translation. Every call gets
an explicit timeout; there is no unbounded wait on an upstream model.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional

import httpx

logger = logging.getLogger("sitechat.llm")

CONNECT_TIMEOUT_SECONDS = 10.0


class GenerationError(RuntimeError):
    """Raised when a provider call fails (auth, rate limit, transport)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class GenerationOptions:
    temperature: float = 0.2
    max_tokens: int = 800
    timeout: float = 60.0

    def httpx_timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout, connect=min(CONNECT_TIMEOUT_SECONDS, self.timeout))


def _error_message(body: bytes) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return body.decode("utf-8", errors="replace")[:500]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return json.dumps(data)[:500]


def _status_error(provider: str, status_code: int, body: bytes) -> GenerationError:
    return GenerationError(
        f"{provider} API error {status_code}: {_error_message(body)}",
        status_code=status_code,
    )


class ProviderHTTPClient:
    """
    Minimal async HTTP client bound to one provider.

    A fresh ``httpx.AsyncClient`` is opened per call, as elsewhere in this
    codebase; streaming calls hold it open only while fragments are pulled,
    so a consumer that stops iterating releases the upstream connection.
    """

    def __init__(
        self,
        provider: str,
        headers: Dict[str, str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.provider = provider
        self.headers = headers
        self._transport = transport

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        options: GenerationOptions,
    ) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=options.httpx_timeout(), transport=self._transport
            ) as client:
                resp = await client.post(url, json=payload, headers=self.headers)
        except httpx.HTTPError as exc:
            raise GenerationError(f"{self.provider} request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise _status_error(self.provider, resp.status_code, resp.content)
        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationError(f"{self.provider} returned a non-JSON response") from exc
        if not isinstance(data, dict):
            raise GenerationError(f"{self.provider} returned an unexpected response shape")
        return data

    async def stream_events(
        self,
        url: str,
        payload: Dict[str, Any],
        options: GenerationOptions,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield the decoded JSON payload of each ``data:`` line of an SSE
        response, stopping at ``[DONE]``. Undecodable payloads are skipped.
        """
        try:
            async with httpx.AsyncClient(
                timeout=options.httpx_timeout(), transport=self._transport
            ) as client:
                async with client.stream("POST", url, json=payload, headers=self.headers) as resp:
                    if resp.status_code >= 400:
                        body = await resp.aread()
                        raise _status_error(self.provider, resp.status_code, body)

                    async for line in resp.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break
                        try:
                            event = json.loads(data)
                        except ValueError:
                            logger.debug("Skipping undecodable %s event: %r", self.provider, data)
                            continue
                        if isinstance(event, dict):
                            yield event
        except httpx.HTTPError as exc:
            raise GenerationError(f"{self.provider} stream failed: {exc}") from exc
