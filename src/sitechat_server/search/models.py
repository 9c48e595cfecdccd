"""
Search Index Models

Documents as stored in the shared external index, and the scored hits the
index returns for a query.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SEARCHABLE_TEXT_LENGTH = 1000
FULL_CONTENT_LENGTH = 5000
UNTITLED = "Untitled"


def make_namespace(url: str, timestamp_ms: int) -> str:
    """
    Derive a namespace from the site's hostname and the import time, e.g.
    ``https://example.com`` at 1700000000000 -> ``example-com-1700000000000``.
    """
    hostname = urlparse(url).hostname or url
    return f"{hostname.replace('.', '-')}-{timestamp_ms}"


# ---------------------------------------------------------------------
# Stored Documents
# ---------------------------------------------------------------------

class DocumentContent(BaseModel):
    """Searchable part of a stored document."""

    text: str = ""
    url: str = ""
    title: str = ""

    model_config = ConfigDict(extra="ignore")


class DocumentMetadata(BaseModel):
    """Non-searchable part of a stored document."""

    namespace: Optional[str] = None
    title: Optional[str] = None
    page_title: Optional[str] = None
    url: Optional[str] = None
    source_url: Optional[str] = Field(default=None, alias="sourceURL")
    description: Optional[str] = None
    favicon: Optional[str] = None
    og_image: Optional[str] = None
    crawl_date: Optional[str] = None
    full_content: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Document(BaseModel):
    """
    One crawled page as written to the index. Immutable: a re-import writes
    a new namespace instead of touching existing documents.
    """

    id: str
    content: DocumentContent
    metadata: DocumentMetadata

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    @classmethod
    def from_page(
        cls,
        namespace: str,
        ordinal: int,
        *,
        url: str,
        content: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        favicon: Optional[str] = None,
        og_image: Optional[str] = None,
        crawl_date: Optional[datetime] = None,
    ) -> "Document":
        """
        Build the index record for one crawled page.

        The searchable text starts with ``namespace:{namespace}`` so that a
        plain lexical query for the namespace finds every page of the site.
        """
        title = title or UNTITLED
        description = description or ""
        searchable = f"namespace:{namespace} {title} {description} {content}"
        crawl_date = crawl_date or datetime.now(timezone.utc)

        return cls(
            id=f"{namespace}-{ordinal}",
            content=DocumentContent(
                text=searchable[:SEARCHABLE_TEXT_LENGTH],
                url=url,
                title=title,
            ),
            metadata=DocumentMetadata(
                namespace=namespace,
                title=title,
                page_title=title,
                url=url,
                source_url=url,
                description=description or None,
                favicon=favicon,
                og_image=og_image,
                crawl_date=crawl_date.isoformat(),
                full_content=content[:FULL_CONTENT_LENGTH],
            ),
        )

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------
# Search Hits
# ---------------------------------------------------------------------

class SearchHit(BaseModel):
    """A document reference with the score the index assigned to it."""

    id: str = ""
    score: float = 0.0
    content: DocumentContent = Field(default_factory=DocumentContent)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)

    model_config = ConfigDict(extra="ignore")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    @property
    def title(self) -> str:
        return self.metadata.title or self.metadata.page_title or UNTITLED

    @property
    def url(self) -> str:
        return self.metadata.url or self.metadata.source_url or ""

    @property
    def description(self) -> str:
        return self.metadata.description or ""

    @property
    def body(self) -> str:
        """Long-form stored copy when present, else the searchable text."""
        return self.metadata.full_content or self.content.text or ""

    def mentions(self, needle: str) -> bool:
        """Case-insensitive containment check over text, title and url."""
        return any(
            needle in field.lower()
            for field in (self.content.text, self.content.title, self.content.url)
        )
