"""
Site index metadata models.

These records describe one imported website. They are serialized with the
camelCase keys used by existing stores, so records written by earlier
deployments remain readable.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .quick_prompts import normalize_quick_prompts


class SiteDetails(BaseModel):
    """Presentation details captured from the site's home page."""

    title: Optional[str] = None
    description: Optional[str] = None
    favicon: Optional[str] = None
    og_image: Optional[str] = None
    quick_prompts: List[str] = Field(default_factory=normalize_quick_prompts)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize_prompts(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            raw = data.get("quickPrompts", data.get("quick_prompts"))
            data.pop("quick_prompts", None)
            data["quickPrompts"] = normalize_quick_prompts(
                raw if isinstance(raw, (list, tuple)) else None
            )
        return data


class SiteIndexMetadata(BaseModel):
    """
    Metadata for one imported website.

    ``namespace`` is both the storage key and the search-index partition key;
    ``slug`` is the public chatbot identifier and defaults to the namespace.
    """

    url: str
    namespace: str = Field(..., min_length=1)
    slug: Optional[str] = None
    pages_crawled: int = Field(default=0, ge=0)
    created_at: str
    metadata: SiteDetails = Field(default_factory=SiteDetails)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("slug"):
                data["slug"] = data.get("namespace")
            if data.get("metadata") is None:
                data["metadata"] = {}
        return data

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the JSON-compatible, camelCase storage form."""
        return self.model_dump(mode="json", by_alias=True)
