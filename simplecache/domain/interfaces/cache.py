"""Interface for the key/value cache contract.

Defines the eight operations every cache implementation exposes: single
get/set/delete/has, whole-namespace clear, and the bulk variants.
"""

import abc
from datetime import timedelta
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

Ttl = Optional[Union[int, float, timedelta]]


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Fetches a value from the cache.

        Args:
            key: The unique key of this item in the cache.
            default: Value returned when the key does not exist or is expired.

        Returns:
            The cached value, or `default` on a miss.

        Raises:
            InvalidKeyError: If the key is not a legal value.
        """
        pass

    @abc.abstractmethod
    def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """Persists a value in the cache with an optional TTL.

        Args:
            key: The key of the item to store.
            value: The value to store.
            ttl: Seconds or a timedelta. None uses the implementation's default.

        Returns:
            True on success, False on failure.
        """
        pass

    @abc.abstractmethod
    def delete(self, key: str) -> bool:
        """Deletes an item by key. Returns True if an item was removed."""
        pass

    @abc.abstractmethod
    def clear(self) -> bool:
        """Wipes every key this cache owns. Returns True on success."""
        pass

    @abc.abstractmethod
    def has(self, key: str) -> bool:
        """Determines whether an unexpired item is present.

        Only use this as a hint (e.g. for cache warming): another process may
        remove or add the item right after this returns.
        """
        pass

    @abc.abstractmethod
    def get_multiple(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        """Obtains multiple items, preserving the order of `keys`.

        Raises:
            InvalidKeyError: If any key is illegal; no item is read in that case.
        """
        pass

    @abc.abstractmethod
    def set_multiple(
        self,
        values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        ttl: Ttl = None,
    ) -> bool:
        """Persists a set of key => value pairs.

        Returns True only if every write succeeded. Successful writes are not
        rolled back when another write in the batch fails.
        """
        pass

    @abc.abstractmethod
    def delete_multiple(self, keys: Iterable[str]) -> bool:
        """Deletes multiple items. Returns True if none of the removals failed."""
        pass
