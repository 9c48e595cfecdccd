"""
Index Metadata Routes

Read and maintain the per-site metadata records. Storage failures never
surface as errors here: reads degrade to "no data", writes report
``stored: false`` with the failure kind.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_registry
from .models import (
    IndexListResponse,
    IndexResponse,
    OperationResult,
    QuickPromptsUpdate,
)
from ..storage import IndexRegistry, StorageErrorKind, StorageResult

router = APIRouter(prefix="/api", tags=["indexes"])


def _operation(status_name: str, result: StorageResult) -> OperationResult:
    return OperationResult(
        status=status_name,
        stored=result.ok,
        error=None if result.ok else result.kind.value,
    )


@router.get("/indexes", response_model=IndexListResponse)
async def list_indexes(
    registry: Annotated[IndexRegistry, Depends(get_registry)],
) -> IndexListResponse:
    return IndexListResponse(indexes=await registry.get_indexes())


@router.get("/indexes/{namespace}", response_model=IndexResponse)
async def get_index(
    namespace: str,
    registry: Annotated[IndexRegistry, Depends(get_registry)],
) -> IndexResponse:
    index = await registry.get_index(namespace)
    if index is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Index not found")
    return IndexResponse(index=index)


@router.delete("/indexes/{namespace}", response_model=OperationResult)
async def delete_index(
    namespace: str,
    registry: Annotated[IndexRegistry, Depends(get_registry)],
) -> OperationResult:
    return _operation("deleted", await registry.delete_index(namespace))


@router.put("/indexes/{namespace}/quick-prompts", response_model=OperationResult)
async def update_quick_prompts(
    namespace: str,
    req: QuickPromptsUpdate,
    registry: Annotated[IndexRegistry, Depends(get_registry)],
) -> OperationResult:
    result = await registry.update_quick_prompts(namespace, req.quick_prompts)
    if result.kind is StorageErrorKind.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Index not found")
    return _operation("updated", result)


@router.get("/meta/{slug}", response_model=IndexResponse)
async def get_chatbot_meta(
    slug: str,
    registry: Annotated[IndexRegistry, Depends(get_registry)],
) -> IndexResponse:
    """Public chatbot metadata, looked up by slug (or namespace)."""
    index = await registry.find_by_slug(slug)
    if index is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chatbot not found")
    return IndexResponse(index=index)
