from __future__ import annotations

from typing import List, Optional

from .base import DEFAULT_MAX_INDEXES, StorageAdapter, upsert_capped
from .models import SiteIndexMetadata


class MemoryStorageAdapter(StorageAdapter):
    """
    Process-local store.

    Nothing survives a restart and nothing is shared between workers; useful
    for single-process development setups and tests.
    """

    name = "memory"

    def __init__(self, max_indexes: int = DEFAULT_MAX_INDEXES) -> None:
        super().__init__(max_indexes)
        self._indexes: List[SiteIndexMetadata] = []

    async def get_indexes(self) -> List[SiteIndexMetadata]:
        return [index.model_copy(deep=True) for index in self._indexes]

    async def get_index(self, namespace: str) -> Optional[SiteIndexMetadata]:
        for index in self._indexes:
            if index.namespace == namespace:
                return index.model_copy(deep=True)
        return None

    async def save_index(self, index: SiteIndexMetadata) -> None:
        self._indexes = upsert_capped(
            self._indexes,
            index.model_copy(deep=True),
            self.max_indexes,
        )

    async def delete_index(self, namespace: str) -> None:
        self._indexes = [i for i in self._indexes if i.namespace != namespace]
