"""
Storage Adapter Contract

Every backend persists the same thing: a bounded, most-recent-first list of
SiteIndexMetadata records. Backends raise on failure; the IndexRegistry is
the layer that turns those failures into StorageResult values.
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from .models import SiteIndexMetadata

DEFAULT_MAX_INDEXES = 50


class StorageErrorKind(str, enum.Enum):
    OK = "ok"
    UNAVAILABLE = "unavailable"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class StorageResult:
    """Outcome of a registry write. Never raised, always returned."""

    kind: StorageErrorKind = StorageErrorKind.OK
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is StorageErrorKind.OK

    @classmethod
    def success(cls) -> "StorageResult":
        return cls()

    @classmethod
    def failure(cls, kind: StorageErrorKind, error: str) -> "StorageResult":
        return cls(kind=kind, error=error)


def upsert_capped(
    indexes: List[SiteIndexMetadata],
    record: SiteIndexMetadata,
    max_indexes: int = DEFAULT_MAX_INDEXES,
) -> List[SiteIndexMetadata]:
    """
    Replace the record with the same namespace in place, or insert it at the
    head; then keep only the first ``max_indexes`` entries.
    """
    updated = list(indexes)
    for position, existing in enumerate(updated):
        if existing.namespace == record.namespace:
            updated[position] = record
            break
    else:
        updated.insert(0, record)
    return updated[:max_indexes]


class StorageAdapter(ABC):
    """
    Persistence contract shared by all metadata backends.

    The read-modify-write of the capped list is not atomic on any backend;
    concurrent writers resolve as last-writer-wins.
    """

    name: str = "abstract"

    def __init__(self, max_indexes: int = DEFAULT_MAX_INDEXES) -> None:
        self.max_indexes = max_indexes

    @abstractmethod
    async def get_indexes(self) -> List[SiteIndexMetadata]:
        """Return all records, most recent first."""

    @abstractmethod
    async def get_index(self, namespace: str) -> Optional[SiteIndexMetadata]:
        """Return the record for ``namespace`` or None."""

    @abstractmethod
    async def save_index(self, index: SiteIndexMetadata) -> None:
        """Upsert ``index`` by namespace, capping the list."""

    @abstractmethod
    async def delete_index(self, namespace: str) -> None:
        """Remove the record for ``namespace`` if present."""

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
