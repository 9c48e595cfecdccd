"""
Chat Completion Event Stream Transcoder

Pulls the internal line protocol and republishes it as a chat-completion
server-sent-event stream:

    data: {... "delta": {"role": "assistant", "content": ""} ...}
    data: {... "delta": {"content": "<fragment>"} ...}        (per fragment)
    data: {... "delta": {}, "finish_reason": "stop" ...}
    data: [DONE]

Sources have no place in this format and are dropped. The transform is
pull-based: nothing is read from upstream until the consumer asks for the
next event, and closing the consumer closes the upstream iterator.
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any, AsyncIterable, AsyncIterator, Dict, Optional, Union

from .protocol import LineStreamDecoder, StreamEvent, TextEvent

DONE_SENTINEL = "data: [DONE]\n\n"


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False, separators=(',', ':'))}\n\n"


class CompletionChunkEncoder:
    """Formats chunk events; ``id`` and ``created`` are fixed per stream."""

    def __init__(
        self,
        model: str,
        completion_id: Optional[str] = None,
        created: Optional[int] = None,
    ) -> None:
        self.model = model
        self.completion_id = completion_id or f"chatcmpl-{uuid.uuid4().hex}"
        self.created = created if created is not None else int(time.time())

    def _chunk(self, delta: Dict[str, Any], finish_reason: Optional[str]) -> str:
        return _sse({
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
        })

    def role(self) -> str:
        return self._chunk({"role": "assistant", "content": ""}, None)

    def content(self, text: str) -> str:
        return self._chunk({"content": text}, None)

    def stop(self) -> str:
        return self._chunk({}, "stop")


async def transcode_to_chat_events(
    lines: AsyncIterable[Union[bytes, str]],
    encoder: CompletionChunkEncoder,
) -> AsyncIterator[str]:
    """
    Translate an internal line stream, chunked arbitrarily, into SSE events.
    The output always ends with the terminating chunk and the sentinel.
    """
    decoder = LineStreamDecoder()

    def render(event: StreamEvent) -> Optional[str]:
        if isinstance(event, TextEvent):
            return encoder.content(event.text)
        return None

    yield encoder.role()

    upstream = lines.__aiter__()
    try:
        async for chunk in upstream:
            for event in decoder.feed(chunk):
                rendered = render(event)
                if rendered is not None:
                    yield rendered
        for event in decoder.finish():
            rendered = render(event)
            if rendered is not None:
                yield rendered
    finally:
        aclose = getattr(upstream, "aclose", None)
        if aclose is not None:
            await aclose()

    yield encoder.stop()
    yield DONE_SENTINEL
