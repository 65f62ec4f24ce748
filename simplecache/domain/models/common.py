"""Defines common Value Objects used across the cache engine.

These objects represent simple values like cache keys, namespaces and raw
payloads, plus the small structured records the engine passes between its
layers.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NewType, Optional

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are plain str/bytes at runtime.
CacheKey = NewType("CacheKey", str)      # Validated key, see core.key_validator
Namespace = NewType("Namespace", str)    # Normalized '/'-separated namespace path ('' is the root)
Payload = NewType("Payload", bytes)      # Opaque serialized value

# Counterpart of PHP_INT_MAX: a TTL this large (or larger) never expires
TTL_INFINITE = sys.maxsize

RESERVED_KEY_CHARACTERS = "{}()/\\@:"

# --- Structured Data ---

@dataclass(frozen=True)
class StorageLocation:
    """Where a single (namespace, key) pair lives on disk."""
    path: Path
    namespace: Namespace
    key: CacheKey


@dataclass
class CacheEntry:
    """The persisted unit: payload plus expiry metadata."""
    key: CacheKey
    payload: Payload
    expires_at: Optional[float]  # Unix timestamp, None means never
    created_at: float

    def is_expired(self, now: float) -> bool:
        """Checks whether the entry has passed its expiry time."""
        return self.expires_at is not None and self.expires_at <= now


@dataclass(frozen=True)
class CacheSettings:
    """Immutable per-engine configuration.

    Attributes:
        default_ttl: Seconds applied when `set` is called without a TTL.
            None (or anything >= TTL_INFINITE) means entries never expire.
        base_dir: Root directory of the file store.
        init_dir: Namespace below base_dir that this engine owns.
        gc_probability: Chance (0.0 - 1.0) of pruning expired entries after a write.
    """
    default_ttl: Optional[float] = None
    base_dir: Path = Path("cache")
    init_dir: str = ""
    gc_probability: float = 0.0
