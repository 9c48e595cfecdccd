"""
Search Index Client

Thin async client for the external document index (Upstash Search REST
API). The index is a single corpus shared by every namespace; callers are
responsible for namespace filtering. Relevance ranking is entirely the
index's business: this client only forwards the query and parses hits.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError

from ..config import settings
from .models import Document, SearchHit

logger = logging.getLogger("sitechat.search")


class SearchIndexError(RuntimeError):
    """Raised when the document index cannot be queried or written."""


class SearchIndex(Protocol):
    async def search(
        self,
        query: str,
        limit: int,
        reranking: bool = True,
    ) -> List[SearchHit]:
        ...


class SearchIndexClient:
    """
    Client for one named index.

    Parameters
    ----------
    base_url : Optional[str]
        REST endpoint of the search database. Defaults to settings.search_url.

    token : Optional[str]
        Bearer token. Defaults to settings.search_token.

    index_name : Optional[str]
        Name of the shared index. Defaults to settings.search_index.

    timeout : Optional[float]
        HTTP timeout per request.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        index_name: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.search_url or "").rstrip("/")
        if token is None and settings.search_token is not None:
            token = settings.search_token.get_secret_value()
        self.token = token
        self.index_name = index_name or settings.search_index
        self.timeout = timeout or settings.search_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.token)

    async def _post(self, path: str, payload: Any) -> Any:
        if not self.configured:
            raise SearchIndexError("search index is not configured (SEARCH_URL / SEARCH_TOKEN)")

        url = f"{self.base_url}/{path}/{self.index_name}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.token}"},
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SearchIndexError(
                f"search index returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SearchIndexError(f"search index request failed: {exc}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise SearchIndexError("search index returned a non-JSON response") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        limit: int,
        reranking: bool = True,
    ) -> List[SearchHit]:
        """Run a scored query against the whole shared index."""
        data = await self._post(
            "search",
            {"query": query, "topK": limit, "reranking": reranking, "includeData": True},
        )

        raw_hits: Any
        if isinstance(data, dict):
            raw_hits = data.get("result") or []
        else:
            raw_hits = data or []
        if not isinstance(raw_hits, list):
            raise SearchIndexError("search index returned an unexpected response shape")

        hits: List[SearchHit] = []
        for raw in raw_hits:
            try:
                hits.append(SearchHit.model_validate(raw))
            except ValidationError:
                logger.debug("Skipping malformed hit: %r", raw)
        logger.debug("Index returned %d hits for %r", len(hits), query)
        return hits

    async def upsert(self, documents: Sequence[Document], batch_size: int = 10) -> int:
        """Write documents in batches. Returns the number written."""
        written = 0
        for start in range(0, len(documents), batch_size):
            batch = documents[start:start + batch_size]
            await self._post("upsert-data", [doc.to_record() for doc in batch])
            written += len(batch)
        return written
