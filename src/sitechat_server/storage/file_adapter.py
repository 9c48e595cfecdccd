"""
Flat-file storage backend.

The whole capped list lives in one pretty-printed JSON file. File I/O runs
in a worker thread so it never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .base import DEFAULT_MAX_INDEXES, StorageAdapter, upsert_capped
from .models import SiteIndexMetadata

logger = logging.getLogger("sitechat.storage.file")


class FileStorageAdapter(StorageAdapter):

    name = "file"

    def __init__(
        self,
        path: str | Path,
        max_indexes: int = DEFAULT_MAX_INDEXES,
    ) -> None:
        super().__init__(max_indexes)
        self.path = Path(path)

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def _read_sync(self) -> List[SiteIndexMetadata]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []

        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"{self.path} does not contain a JSON list")

        indexes: List[SiteIndexMetadata] = []
        for item in data:
            try:
                indexes.append(SiteIndexMetadata.model_validate(item))
            except ValidationError:
                logger.warning("Skipping unreadable index record in %s", self.path)
        return indexes

    def _write_sync(self, indexes: List[SiteIndexMetadata]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [index.to_record() for index in indexes]
        self.path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    async def _read(self) -> List[SiteIndexMetadata]:
        return await asyncio.to_thread(self._read_sync)

    async def _write(self, indexes: List[SiteIndexMetadata]) -> None:
        await asyncio.to_thread(self._write_sync, indexes)

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def get_indexes(self) -> List[SiteIndexMetadata]:
        return await self._read()

    async def get_index(self, namespace: str) -> Optional[SiteIndexMetadata]:
        for index in await self._read():
            if index.namespace == namespace:
                return index
        return None

    async def save_index(self, index: SiteIndexMetadata) -> None:
        indexes = await self._read()
        await self._write(upsert_capped(indexes, index, self.max_indexes))

    async def delete_index(self, namespace: str) -> None:
        indexes = await self._read()
        await self._write([i for i in indexes if i.namespace != namespace])
