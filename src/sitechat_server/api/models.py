"""
API Models for the sitechat server

This module defines the Pydantic models used for request/response validation
across the question, chat-completion and index-metadata endpoints.

Design Goals
------------
- Strong typing
- Safe defaults (no shared mutable state)
- Lenient request parsing where clients are third-party (unknown fields
  ignored), strict responses
- Forward compatibility with testing and OpenAPI generation
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ConfigDict

from ..storage.models import SiteIndexMetadata


# ---------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------

class Source(BaseModel):
    """
    A citation displayed next to an answer.
    """
    url: str
    title: str
    snippet: str

    model_config = ConfigDict(extra="forbid")


class ChatMessage(BaseModel):
    """
    Single message in a conversation. Not persisted server-side.

    Accepts the chat-completion wire shapes: any role (``developer``,
    ``tool``, ...), ``null`` content, and content given as a list of typed
    parts, of which only ``text`` parts are read.
    """
    role: str
    content: Optional[Union[str, List[Dict[str, Any]]]] = None
    sources: Optional[List[Source]] = None

    model_config = ConfigDict(extra="ignore")

    def text(self) -> str:
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "".join(
            part["text"]
            for part in self.content
            if part.get("type") == "text" and isinstance(part.get("text"), str)
        )


def last_user_message(messages: Optional[List[ChatMessage]]) -> Optional[str]:
    """Return the text of the last ``user`` message, if any."""
    for message in reversed(messages or []):
        if message.role == "user":
            return message.text()
    return None


# ---------------------------------------------------------------------
# Question Endpoint
# ---------------------------------------------------------------------

class QueryRequest(BaseModel):
    """
    Question about one imported site.

    ``query`` may be omitted, in which case the last user message is used.
    Presence of ``namespace`` and of a resolvable query is checked by the
    route so both failures share one 400 error shape.
    """
    query: Optional[str] = None
    namespace: Optional[str] = None
    messages: Optional[List[ChatMessage]] = None
    stream: bool = False

    model_config = ConfigDict(extra="ignore")

    def resolved_query(self) -> Optional[str]:
        query = self.query or last_user_message(self.messages)
        if query is None or not query.strip():
            return None
        return query


class QueryResponse(BaseModel):
    """
    Non-streaming answer.
    """
    answer: str
    sources: List[Source] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Chat Completion Compatibility Endpoint
# ---------------------------------------------------------------------

class ChatCompletionRequest(BaseModel):
    """
    Subset of the chat-completion request body that is honoured.
    Sampling parameters sent by clients are accepted and ignored.
    """
    messages: List[ChatMessage] = Field(default_factory=list)
    model: Optional[str] = None
    stream: bool = False

    model_config = ConfigDict(extra="ignore")


class CompletionMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class CompletionChoice(BaseModel):
    index: int = 0
    message: CompletionMessage
    finish_reason: Literal["stop"] = "stop"


class ChatCompletion(BaseModel):
    """
    Blocking chat-completion response object.
    """
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: List[CompletionChoice]


# ---------------------------------------------------------------------
# Index Metadata
# ---------------------------------------------------------------------

class IndexListResponse(BaseModel):
    indexes: List[SiteIndexMetadata] = Field(default_factory=list)


class IndexResponse(BaseModel):
    index: SiteIndexMetadata


class QuickPromptsUpdate(BaseModel):
    """
    Replacement quick prompts; normalized to exactly three on save.
    """
    quick_prompts: List[str] = Field(default_factory=list, alias="quickPrompts")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["updated", "deleted", "ok"]
    stored: bool = True
    error: Optional[str] = None

    model_config = ConfigDict(extra="forbid")
