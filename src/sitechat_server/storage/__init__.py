"""
Site Metadata Storage

Three interchangeable backends behind one contract, selected once from
configuration at startup.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings
from .base import StorageAdapter, StorageErrorKind, StorageResult
from .file_adapter import FileStorageAdapter
from .memory_adapter import MemoryStorageAdapter
from .models import SiteDetails, SiteIndexMetadata
from .quick_prompts import DEFAULT_QUICK_PROMPTS, normalize_quick_prompts
from .redis_adapter import RedisStorageAdapter
from .registry import IndexRegistry

logger = logging.getLogger("sitechat.storage")


def create_storage_adapter(config: Settings) -> Optional[StorageAdapter]:
    """
    Build the adapter named by ``config.storage_backend``.

    ``auto`` prefers Redis when a URL is configured and otherwise uses the
    flat file. Returns None when the requested backend cannot be built.
    """
    backend = config.storage_backend
    if backend == "auto":
        backend = "redis" if config.redis_url else "file"

    try:
        if backend == "redis":
            if not config.redis_url:
                raise ValueError("storage_backend=redis requires REDIS_URL")
            adapter: StorageAdapter = RedisStorageAdapter.from_url(
                config.redis_url, config.max_indexes
            )
        elif backend == "memory":
            adapter = MemoryStorageAdapter(config.max_indexes)
        else:
            adapter = FileStorageAdapter(config.storage_path, config.max_indexes)
    except Exception:
        logger.exception("No storage adapter available (backend=%s)", backend)
        return None

    logger.info("Storage adapter initialized: %s", adapter.name)
    return adapter


def create_index_registry(config: Settings) -> IndexRegistry:
    return IndexRegistry(create_storage_adapter(config))


__all__ = [
    "DEFAULT_QUICK_PROMPTS",
    "FileStorageAdapter",
    "IndexRegistry",
    "MemoryStorageAdapter",
    "RedisStorageAdapter",
    "SiteDetails",
    "SiteIndexMetadata",
    "StorageAdapter",
    "StorageErrorKind",
    "StorageResult",
    "create_index_registry",
    "create_storage_adapter",
    "normalize_quick_prompts",
]
