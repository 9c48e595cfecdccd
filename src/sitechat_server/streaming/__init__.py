from .protocol import (
    DecoderState,
    LineStreamDecoder,
    SourcesEvent,
    StreamEvent,
    TextEvent,
    encode_sources_line,
    encode_text_line,
)
from .transcoder import DONE_SENTINEL, CompletionChunkEncoder, transcode_to_chat_events

__all__ = [
    "DONE_SENTINEL",
    "CompletionChunkEncoder",
    "DecoderState",
    "LineStreamDecoder",
    "SourcesEvent",
    "StreamEvent",
    "TextEvent",
    "encode_sources_line",
    "encode_text_line",
    "transcode_to_chat_events",
]
