"""
Redis storage backend.

Layout
------
- ``sitechat:indexes``            JSON list of all records, most recent first
- ``sitechat:index:{namespace}``  JSON record for point lookups
"""

from __future__ import annotations

import json
from typing import List, Optional

import redis.asyncio as redis

from .base import DEFAULT_MAX_INDEXES, StorageAdapter, upsert_capped
from .models import SiteIndexMetadata

INDEXES_KEY = "sitechat:indexes"
INDEX_KEY_PREFIX = "sitechat:index:"


def index_key(namespace: str) -> str:
    return f"{INDEX_KEY_PREFIX}{namespace}"


class RedisStorageAdapter(StorageAdapter):

    name = "redis"

    def __init__(
        self,
        client: redis.Redis,
        max_indexes: int = DEFAULT_MAX_INDEXES,
    ) -> None:
        super().__init__(max_indexes)
        self._redis = client

    @classmethod
    def from_url(
        cls,
        url: str,
        max_indexes: int = DEFAULT_MAX_INDEXES,
    ) -> "RedisStorageAdapter":
        client = redis.from_url(url, decode_responses=True)
        return cls(client, max_indexes)

    async def _write_list(self, indexes: List[SiteIndexMetadata]) -> None:
        payload = [index.to_record() for index in indexes]
        await self._redis.set(INDEXES_KEY, json.dumps(payload, ensure_ascii=False))

    async def get_indexes(self) -> List[SiteIndexMetadata]:
        raw = await self._redis.get(INDEXES_KEY)
        if not raw:
            return []
        return [SiteIndexMetadata.model_validate(item) for item in json.loads(raw)]

    async def get_index(self, namespace: str) -> Optional[SiteIndexMetadata]:
        raw = await self._redis.get(index_key(namespace))
        if not raw:
            return None
        return SiteIndexMetadata.model_validate(json.loads(raw))

    async def save_index(self, index: SiteIndexMetadata) -> None:
        await self._redis.set(
            index_key(index.namespace),
            json.dumps(index.to_record(), ensure_ascii=False),
        )
        indexes = await self.get_indexes()
        kept = upsert_capped(indexes, index, self.max_indexes)
        await self._write_list(kept)

        # Point lookups must agree with the capped list
        kept_namespaces = {i.namespace for i in kept}
        for evicted in indexes:
            if evicted.namespace not in kept_namespaces:
                await self._redis.delete(index_key(evicted.namespace))

    async def delete_index(self, namespace: str) -> None:
        await self._redis.delete(index_key(namespace))
        indexes = await self.get_indexes()
        await self._write_list([i for i in indexes if i.namespace != namespace])

    async def close(self) -> None:
        await self._redis.aclose()
