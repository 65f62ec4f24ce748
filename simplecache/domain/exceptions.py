"""Error types raised by the cache engine.

InvalidArgumentError and its subclasses signal caller mistakes and always
propagate. StoreError signals an I/O failure in the entry store; the engine
converts it into a boolean/default result so a broken cache never takes the
calling application down with it.
"""

from pathlib import Path
from typing import Optional


class CacheError(Exception):
    """Base class for all cache errors."""


class InvalidArgumentError(CacheError, ValueError):
    """An argument passed to a cache operation is not legal."""


class InvalidKeyError(InvalidArgumentError):
    """A cache key is not a string, is empty, or contains reserved characters."""


class InvalidNamespaceError(InvalidArgumentError):
    """A namespace cannot be mapped safely below the storage root."""


class StoreError(CacheError):
    """The entry store failed to read, write or remove an entry."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (path: {self.path})" if self.path is not None else base
