"""Validation of cache keys against the simple-cache key grammar.

A legal key is a non-empty str without any of the reserved characters
``{}()/\\@:``. Validation is pure and runs before any storage access.
"""

import re
from collections.abc import Iterable as IterableABC
from typing import Any, Iterable, List

from simplecache.domain.exceptions import InvalidKeyError
from simplecache.domain.models.common import RESERVED_KEY_CHARACTERS, CacheKey

_RESERVED_PATTERN = re.compile("[" + re.escape(RESERVED_KEY_CHARACTERS) + "]")


def validate_key(key: Any) -> CacheKey:
    """Raises InvalidKeyError if `key` is not a legal cache key.

    Args:
        key: The candidate key.

    Returns:
        The same key, typed as CacheKey.
    """
    if not isinstance(key, str):
        raise InvalidKeyError(f"Invalid key: {key!r}. Key should be a string.")

    if key == "":
        raise InvalidKeyError("Invalid key. Key should not be empty.")

    if _RESERVED_PATTERN.search(key):
        raise InvalidKeyError(
            f"Invalid key: {key}. Contains (a) character(s) reserved "
            f"for future extension: {RESERVED_KEY_CHARACTERS}"
        )
    return CacheKey(key)


def validate_keys(keys: Iterable[Any]) -> List[CacheKey]:
    """Validates a whole batch of keys before any of them is used.

    A single str (or bytes) is rejected rather than iterated character by
    character.

    Raises:
        InvalidKeyError: If `keys` is not an iterable of keys, or any key is illegal.
    """
    if isinstance(keys, (str, bytes)) or not isinstance(keys, IterableABC):
        raise InvalidKeyError(
            f"Invalid keys: {keys!r}. Keys should be an iterable of strings."
        )
    return [validate_key(key) for key in keys]
