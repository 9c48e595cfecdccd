"""
Chat Completion Compatibility Routes

Emulates the ``/v1/chat/completions`` wire protocol so that any client built
for it can talk to an imported site. The site is selected through the model
name: ``{model_prefix}{namespace}``.

The request is delegated to the question pipeline (last user message is the
query) and republished either as one ``chat.completion`` object or, when
streaming, as chat-completion chunk events transcoded from the internal line
protocol.

Unlike the native endpoint, a missing provider or a failed generation is an
HTTP 500 here, since these clients expect errors in the error envelope.
"""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from .dependencies import get_pipeline, get_settings
from .models import (
    ChatCompletion,
    ChatCompletionRequest,
    CompletionChoice,
    CompletionMessage,
    Source,
    last_user_message,
)
from ..config import Settings
from ..core.errors import ApiError
from ..pipeline import QueryOutcome, QueryPipeline
from ..streaming.transcoder import CompletionChunkEncoder, transcode_to_chat_events

logger = logging.getLogger("sitechat.completions")

router = APIRouter(prefix="/v1", tags=["completions"])

EVENT_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def namespace_from_model(model: str | None, prefix: str) -> str:
    if not model or not model.startswith(prefix):
        return ""
    return model[len(prefix):].strip()


def append_sources(answer: str, sources: List[Source]) -> str:
    if not sources:
        return answer
    listing = "\n".join(f"- [{s.title}]({s.url})" for s in sources)
    return f"{answer}\n\n**Sources:**\n{listing}"


@router.post(
    "/chat/completions",
    response_model=ChatCompletion,
    summary="Chat-completion compatible access to an imported site",
    status_code=status.HTTP_200_OK,
)
async def chat_completions(
    req: ChatCompletionRequest,
    pipeline: Annotated[QueryPipeline, Depends(get_pipeline)],
    config: Annotated[Settings, Depends(get_settings)],
):
    namespace = namespace_from_model(req.model, config.model_prefix)
    if not namespace:
        raise ApiError.completion_error(
            400,
            f"Invalid model name. Use the format {config.model_prefix}<namespace>",
            "invalid_request_error",
        )

    query = last_user_message(req.messages)
    if not query or not query.strip():
        raise ApiError.completion_error(
            400, "At least one user message is required", "invalid_request_error"
        )

    prepared = await pipeline.prepare(query, namespace)
    if prepared.result is not None and prepared.result.outcome is QueryOutcome.UNCONFIGURED:
        raise ApiError.completion_error(500, prepared.result.answer, "server_error")

    encoder = CompletionChunkEncoder(req.model)

    if req.stream:
        return StreamingResponse(
            transcode_to_chat_events(pipeline.stream_prepared(prepared), encoder),
            media_type="text/event-stream",
            headers=EVENT_STREAM_HEADERS,
        )

    result = await pipeline.answer_prepared(prepared)
    if result.outcome is QueryOutcome.GENERATION_FAILED:
        logger.error("Completion failed for %s: %s", namespace, result.error)
        raise ApiError.completion_error(500, result.error or result.answer, "server_error")

    return ChatCompletion(
        id=encoder.completion_id,
        created=encoder.created,
        model=req.model,
        choices=[
            CompletionChoice(
                message=CompletionMessage(content=append_sources(result.answer, result.sources)),
            )
        ],
    )
