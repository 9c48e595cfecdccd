"""
Namespace Retriever

Multi-tier fallback search scoped to one namespace.

The index is shared by every imported site and its namespace filtering is
unreliable, so each tier queries the whole corpus and keeps only hits whose
stored namespace equals the target exactly.

Tiers
-----
1. ``boosted``          query + " " + namespace, exact-namespace filter
2. namespace only       (only if 1 is empty) the namespace alone as the
                        query, exact-namespace filter
3. ``namespace_match``  step 2 narrowed to hits mentioning the query text
4. ``namespace_all``    (only if step 3 is empty) every step-2 hit

A namespace with indexed documents therefore always yields something.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import List

from ..search.index_client import SearchIndex, SearchIndexError
from ..search.models import SearchHit

logger = logging.getLogger("sitechat.retriever")


class RetrievalTier(str, enum.Enum):
    BOOSTED = "boosted"
    NAMESPACE_MATCH = "namespace_match"
    NAMESPACE_ALL = "namespace_all"
    NONE = "none"


@dataclass
class Retrieval:
    hits: List[SearchHit] = field(default_factory=list)
    tier: RetrievalTier = RetrievalTier.NONE

    def __bool__(self) -> bool:
        return bool(self.hits)


class NamespaceRetriever:

    def __init__(self, index: SearchIndex, max_results: int = 100) -> None:
        self.index = index
        self.max_results = max_results

    async def _search_namespace(self, query: str, namespace: str) -> List[SearchHit]:
        try:
            hits = await self.index.search(query, limit=self.max_results, reranking=True)
        except SearchIndexError:
            logger.exception("Search failed for namespace %s", namespace)
            return []
        return [hit for hit in hits if hit.namespace == namespace]

    async def retrieve(self, query: str, namespace: str) -> Retrieval:
        boosted = await self._search_namespace(f"{query} {namespace}", namespace)
        if boosted:
            return Retrieval(boosted, RetrievalTier.BOOSTED)

        logger.info("No boosted hits for namespace %s; falling back to namespace search", namespace)
        in_namespace = await self._search_namespace(namespace, namespace)
        if not in_namespace:
            return Retrieval()

        needle = query.lower()
        matching = [hit for hit in in_namespace if hit.mentions(needle)]
        if matching:
            return Retrieval(matching, RetrievalTier.NAMESPACE_MATCH)

        return Retrieval(in_namespace, RetrievalTier.NAMESPACE_ALL)
