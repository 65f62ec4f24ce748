"""Interface for the persistence layer under the cache engine."""

import abc
from pathlib import Path
from typing import Optional

from simplecache.domain.models.common import CacheEntry, Payload, StorageLocation


class EntryStore(abc.ABC):
    """Abstract Base Class for storing cache entries at resolved locations.

    Implementations raise StoreError on I/O failures. Deciding what a failure
    means for the caller is left to the engine.
    """

    @abc.abstractmethod
    def write(
        self,
        location: StorageLocation,
        payload: Payload,
        expires_at: Optional[float],
        created_at: Optional[float] = None,
    ) -> None:
        """Atomically persists payload and expiry; readers never see a partial entry."""
        pass

    @abc.abstractmethod
    def read(self, location: StorageLocation, now: Optional[float] = None) -> Optional[CacheEntry]:
        """Returns the entry, or None when it is missing or expired."""
        pass

    @abc.abstractmethod
    def remove(self, location: StorageLocation) -> bool:
        """Removes the entry. Returns False if nothing was there."""
        pass

    @abc.abstractmethod
    def remove_all(self, namespace_dir: Path) -> None:
        """Removes every entry under a namespace directory. Missing dirs are fine."""
        pass

    @abc.abstractmethod
    def prune_expired(self, namespace_dir: Path, now: Optional[float] = None) -> int:
        """Deletes expired and unreadable entries, returning how many were removed."""
        pass
