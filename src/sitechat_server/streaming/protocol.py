"""
Internal Line Protocol

Wire format of the streaming question endpoint. Each line is
``<tag>:<json>\\n``:

- ``8:{"sources": [...]}``  exactly once, before any text
- ``0:"fragment"``          one text fragment; fragments concatenate in order

The byte layout is kept identical to what existing clients parse, so JSON is
encoded compactly with non-ASCII characters left as-is.

Decoding is an explicit state machine::

    AWAITING_SOURCES --8--> STREAMING_TEXT --finish()--> DONE
           |                      ^
           +----------0-----------+   (sources missing; tolerated)
"""

from __future__ import annotations

import codecs
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

logger = logging.getLogger("sitechat.streaming")

TEXT_TAG = "0"
SOURCES_TAG = "8"


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def encode_sources_line(sources: Sequence[Dict[str, Any]]) -> str:
    return f"{SOURCES_TAG}:{_dumps({'sources': list(sources)})}\n"


def encode_text_line(text: str) -> str:
    return f"{TEXT_TAG}:{_dumps(text)}\n"


# ---------------------------------------------------------------------
# Typed Events
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class SourcesEvent:
    sources: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class TextEvent:
    text: str


StreamEvent = Union[SourcesEvent, TextEvent]


class DecoderState(str, enum.Enum):
    AWAITING_SOURCES = "awaiting_sources"
    STREAMING_TEXT = "streaming_text"
    DONE = "done"


# ---------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------

class LineStreamDecoder:
    """
    Single-pass, forward-only decoder for the line protocol.

    Input may be split at arbitrary byte boundaries, including inside a
    multi-byte character or in the middle of a line. Only complete lines are
    decoded; the partial tail is carried into the next ``feed``. Malformed
    lines and unknown tags are skipped.
    """

    def __init__(self) -> None:
        self.state = DecoderState.AWAITING_SOURCES
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: Union[bytes, str]) -> List[StreamEvent]:
        if self.state is DecoderState.DONE:
            raise RuntimeError("decoder already finished")

        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        *lines, self._buffer = self._buffer.split("\n")
        return self._decode_lines(lines)

    def finish(self) -> List[StreamEvent]:
        """Flush the tail (a last line without newline) and stop."""
        if self.state is DecoderState.DONE:
            return []
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        events = self._decode_lines([tail])
        self.state = DecoderState.DONE
        return events

    def _decode_lines(self, lines: List[str]) -> List[StreamEvent]:
        events: List[StreamEvent] = []
        for line in lines:
            event = self._decode_line(line.rstrip("\r"))
            if event is not None:
                events.append(event)
        return events

    def _decode_line(self, line: str):
        if not line.strip():
            return None

        tag, sep, payload = line.partition(":")
        if not sep:
            logger.debug("Skipping untagged line: %r", line[:80])
            return None

        try:
            value = json.loads(payload)
        except ValueError:
            logger.debug("Skipping malformed %s line", tag)
            return None

        if tag == SOURCES_TAG:
            if self.state is not DecoderState.AWAITING_SOURCES:
                logger.debug("Ignoring sources line after text started")
                return None
            if not isinstance(value, dict):
                return None
            self.state = DecoderState.STREAMING_TEXT
            sources = value.get("sources")
            return SourcesEvent(list(sources) if isinstance(sources, list) else [])

        if tag == TEXT_TAG:
            if not isinstance(value, str):
                return None
            self.state = DecoderState.STREAMING_TEXT
            return TextEvent(value)

        logger.debug("Skipping unknown tag %r", tag)
        return None
