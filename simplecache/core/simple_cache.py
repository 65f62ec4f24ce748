"""Simple-cache adapter: the key/value contract for arbitrary Python values.

Wraps a CacheEngine (which only stores bytes) with a Serializer. Keys, TTLs and
failure handling are the engine's; this class only translates values.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from simplecache.core.cache_engine import CacheEngine, to_pairs
from simplecache.core.key_validator import validate_key, validate_keys
from simplecache.core.serializers import PickleSerializer, SerializationError, Serializer
from simplecache.domain.interfaces.cache import CacheService, Ttl
from simplecache.domain.models.common import CacheSettings

logger = logging.getLogger(__name__)

_MISSING = object()


class SimpleCache(CacheService):
    """Stores serialized Python values in a CacheEngine."""

    def __init__(self, engine: CacheEngine, serializer: Optional[Serializer] = None):
        self.engine = engine
        self.serializer = serializer or PickleSerializer()

    @classmethod
    def from_settings(cls, settings: CacheSettings, serializer: Optional[Serializer] = None) -> "SimpleCache":
        """Builds an engine for `settings` and wraps it."""
        return cls(CacheEngine(settings), serializer=serializer)

    def _decode(self, key: str, data: Any, default: Any) -> Any:
        if data is _MISSING:
            return default
        try:
            return self.serializer.loads(data)
        except SerializationError as e:
            logger.warning(f"Discarding undecodable cached value for key {key[:32]}: {e}")
            return default

    def get(self, key: str, default: Any = None) -> Any:
        return self._decode(key, self.engine.get(key, _MISSING), default)

    def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """Serializes and stores `value`.

        Raises:
            InvalidKeyError: If the key is illegal.
            SerializationError: If the value cannot be serialized.
        """
        validate_key(key)
        return self.engine.set(key, self.serializer.dumps(value), ttl=ttl)

    def delete(self, key: str) -> bool:
        return self.engine.delete(key)

    def clear(self) -> bool:
        return self.engine.clear()

    def has(self, key: str) -> bool:
        return self.engine.has(key)

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        raw = self.engine.get_multiple(keys, _MISSING)
        return {key: self._decode(key, data, default) for key, data in raw.items()}

    def set_multiple(
        self,
        values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        ttl: Ttl = None,
    ) -> bool:
        pairs = to_pairs(values)
        validate_keys([key for key, _ in pairs])
        # Serialize everything first so a bad value aborts before any write
        encoded = [(key, self.serializer.dumps(value)) for key, value in pairs]
        return self.engine.set_multiple(encoded, ttl=ttl)

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        return self.engine.delete_multiple(keys)
