"""
Index Registry

Caller-facing wrapper around a StorageAdapter.

Bookkeeping must never fail the user-facing operation that triggered it, so
every backend error is logged and folded into a StorageResult (writes) or an
empty answer (reads). Nothing raised by a backend escapes this class.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .base import StorageAdapter, StorageErrorKind, StorageResult
from .models import SiteIndexMetadata
from .quick_prompts import normalize_quick_prompts

logger = logging.getLogger("sitechat.storage")


class IndexRegistry:

    def __init__(self, adapter: Optional[StorageAdapter]) -> None:
        self.adapter = adapter
        self.last_result: StorageResult = StorageResult.success()

    @property
    def backend_name(self) -> Optional[str]:
        return self.adapter.name if self.adapter else None

    def _record(self, result: StorageResult) -> StorageResult:
        self.last_result = result
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_indexes(self) -> List[SiteIndexMetadata]:
        if self.adapter is None:
            self._record(StorageResult.failure(
                StorageErrorKind.UNAVAILABLE, "no storage adapter configured"
            ))
            return []
        try:
            indexes = await self.adapter.get_indexes()
        except Exception as exc:
            logger.exception("Failed to read indexes from %s storage", self.adapter.name)
            self._record(StorageResult.failure(StorageErrorKind.READ_FAILED, str(exc)))
            return []
        self._record(StorageResult.success())
        return indexes

    async def get_index(self, namespace: str) -> Optional[SiteIndexMetadata]:
        if self.adapter is None:
            self._record(StorageResult.failure(
                StorageErrorKind.UNAVAILABLE, "no storage adapter configured"
            ))
            return None
        try:
            index = await self.adapter.get_index(namespace)
        except Exception as exc:
            logger.exception("Failed to read index %s", namespace)
            self._record(StorageResult.failure(StorageErrorKind.READ_FAILED, str(exc)))
            return None
        self._record(StorageResult.success())
        return index

    async def find_by_slug(self, slug: str) -> Optional[SiteIndexMetadata]:
        """Find a site by its public slug, falling back to its namespace."""
        for index in await self.get_indexes():
            if (index.slug or index.namespace) == slug:
                return index
        return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_index(self, index: SiteIndexMetadata) -> StorageResult:
        if self.adapter is None:
            logger.warning("No storage adapter available; index %s not saved", index.namespace)
            return self._record(StorageResult.failure(
                StorageErrorKind.UNAVAILABLE, "no storage adapter configured"
            ))

        # Re-validating applies slug and quick prompt normalization
        normalized = SiteIndexMetadata.model_validate(index.to_record())
        try:
            await self.adapter.save_index(normalized)
        except Exception as exc:
            logger.exception("Failed to save index %s", index.namespace)
            return self._record(StorageResult.failure(StorageErrorKind.WRITE_FAILED, str(exc)))
        return self._record(StorageResult.success())

    async def delete_index(self, namespace: str) -> StorageResult:
        if self.adapter is None:
            logger.warning("No storage adapter available; index %s not deleted", namespace)
            return self._record(StorageResult.failure(
                StorageErrorKind.UNAVAILABLE, "no storage adapter configured"
            ))
        try:
            await self.adapter.delete_index(namespace)
        except Exception as exc:
            logger.exception("Failed to delete index %s", namespace)
            return self._record(StorageResult.failure(StorageErrorKind.WRITE_FAILED, str(exc)))
        return self._record(StorageResult.success())

    async def update_quick_prompts(
        self,
        namespace: str,
        prompts: Sequence[str],
    ) -> StorageResult:
        """Replace the quick prompts of an existing site."""
        index = await self.get_index(namespace)
        if index is None:
            if not self.last_result.ok:
                return self.last_result
            return self._record(StorageResult.failure(
                StorageErrorKind.NOT_FOUND, f"unknown namespace {namespace}"
            ))

        index.metadata.quick_prompts = normalize_quick_prompts(prompts)
        return await self.save_index(index)

    async def close(self) -> None:
        if self.adapter is None:
            return
        try:
            await self.adapter.close()
        except Exception:
            logger.exception("Failed to close %s storage", self.adapter.name)
