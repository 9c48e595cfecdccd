"""
Query Routes: Site Question Answering

Native question endpoint. Answers one question about one imported site,
either as a JSON object or as the internal line protocol::

    8:{"sources":[...]}
    0:"fragment"
    0:"fragment"

Request Handling
----------------
1. Resolve the query (explicit ``query`` or the last user message).
2. Reject missing namespace or query with a 400.
3. Run the pipeline; every downstream failure becomes answer text.
"""

from typing import Annotated, Tuple

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from .dependencies import get_pipeline
from .models import QueryRequest, QueryResponse
from ..core.errors import ApiError
from ..pipeline import QueryPipeline

router = APIRouter(prefix="/api", tags=["query"])

LINE_STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def resolve_request(req: QueryRequest) -> Tuple[str, str]:
    """Return (query, namespace) or raise a 400."""
    query = req.resolved_query()
    namespace = (req.namespace or "").strip()
    if not query or not namespace:
        raise ApiError.bad_request("Both a question and a namespace are required")
    return query, namespace


@router.post(
    "/query",
    response_model=QueryResponse,
    summary="Answer a question about an imported site",
    status_code=status.HTTP_200_OK,
)
async def query(
    req: QueryRequest,
    pipeline: Annotated[QueryPipeline, Depends(get_pipeline)],
):
    """
    Parameters
    ----------
    req : QueryRequest
        Contains:
        - query: the question (optional when messages are given)
        - namespace: the site's namespace
        - messages: chat history; the last user message is the fallback query
        - stream: respond with the line protocol instead of JSON

    Returns
    -------
    QueryResponse or StreamingResponse
    """
    question, namespace = resolve_request(req)

    if req.stream:
        return StreamingResponse(
            pipeline.stream(question, namespace),
            media_type=LINE_STREAM_MEDIA_TYPE,
        )

    result = await pipeline.answer(question, namespace)
    return result.to_response()
