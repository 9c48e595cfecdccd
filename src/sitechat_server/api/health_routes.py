from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import get_pipeline, get_registry
from ..pipeline import QueryPipeline
from ..storage import IndexRegistry

router = APIRouter(tags=["health"])


@router.get("/health")
def health(registry: Annotated[IndexRegistry, Depends(get_registry)]):
    return {"status": "ok", "storage": registry.backend_name}


@router.get("/debug/model")
def debug_model(pipeline: Annotated[QueryPipeline, Depends(get_pipeline)]):
    """Report which language model provider would answer the next request."""
    generator = pipeline.generator
    active = generator.select_provider()
    return {
        "active": active.name if active else None,
        "providers": [p.describe() for p in generator.providers],
    }
