"""simplecache: a single-node TTL file cache with a simple key/value contract.

Typical use::

    from simplecache import CacheSettings, SimpleCache

    cache = SimpleCache.from_settings(CacheSettings(base_dir="/tmp/app-cache", init_dir="catalog"))
    cache.set("menu", {"items": [1, 2, 3]}, ttl=300)
    cache.get("menu")
"""

from simplecache.core.cache_engine import CacheEngine
from simplecache.core.simple_cache import SimpleCache
from simplecache.domain.exceptions import (
    CacheError,
    InvalidArgumentError,
    InvalidKeyError,
    InvalidNamespaceError,
    StoreError,
)
from simplecache.domain.models.common import TTL_INFINITE, CacheSettings

__version__ = "1.0.0"

__all__ = [
    "CacheEngine",
    "SimpleCache",
    "CacheSettings",
    "TTL_INFINITE",
    "CacheError",
    "InvalidArgumentError",
    "InvalidKeyError",
    "InvalidNamespaceError",
    "StoreError",
]
