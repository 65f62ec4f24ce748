"""TTL cache engine: validate -> resolve -> store, one short transaction per call.

The engine holds no state between calls apart from its immutable settings, so
one instance can be shared freely between threads. Store failures never reach
the caller: writes report False and reads report a miss. Only invalid
arguments raise.

Known races (acceptable for a cache):
    * has() is a hint; the entry may appear or vanish right after it returns.
    * clear() racing a set() in the same namespace may or may not remove the
      freshly written entry.
"""

import dataclasses
import logging
import math
import random
import time
from collections.abc import Mapping as MappingABC
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from simplecache.core.key_validator import validate_key, validate_keys
from simplecache.core.namespace_resolver import NamespaceResolver, normalize_namespace
from simplecache.domain.exceptions import InvalidArgumentError, InvalidKeyError, StoreError
from simplecache.domain.interfaces.cache import CacheService, Ttl
from simplecache.domain.interfaces.entry_store import EntryStore
from simplecache.domain.models.common import (
    TTL_INFINITE,
    CacheKey,
    CacheSettings,
    Namespace,
    Payload,
)
from simplecache.infrastructure.cache.file_entry_store import FileEntryStore

logger = logging.getLogger(__name__)


def ttl_to_seconds(ttl: Union[int, float, timedelta]) -> Optional[float]:
    """Normalizes a TTL to seconds; None means the entry never expires.

    Raises:
        InvalidArgumentError: For booleans, NaN, or anything that is not a
            number or a timedelta.
    """
    if isinstance(ttl, bool):
        raise InvalidArgumentError(f"Invalid TTL: {ttl!r}. TTL should be seconds or a timedelta.")
    if isinstance(ttl, timedelta):
        seconds = ttl.total_seconds()
    elif isinstance(ttl, int) and ttl >= TTL_INFINITE:
        # Checked before float() so arbitrarily large ints cannot overflow
        return None
    elif isinstance(ttl, (int, float)):
        seconds = float(ttl)
    else:
        raise InvalidArgumentError(f"Invalid TTL: {ttl!r}. TTL should be seconds or a timedelta.")

    if math.isnan(seconds):
        raise InvalidArgumentError("Invalid TTL: NaN.")
    if seconds >= TTL_INFINITE:
        return None
    return seconds


def to_pairs(values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]) -> List[Tuple[Any, Any]]:
    """Accepts a mapping or an iterable of (key, value) pairs."""
    if isinstance(values, MappingABC):
        return list(values.items())
    if isinstance(values, (str, bytes)):
        raise InvalidKeyError(f"Invalid values: {values!r}. Expected a mapping or key/value pairs.")
    try:
        pairs = [tuple(item) for item in values]
    except TypeError as e:
        raise InvalidKeyError(f"Invalid values: {values!r}. Expected a mapping or key/value pairs.") from e
    for pair in pairs:
        if len(pair) != 2:
            raise InvalidArgumentError(f"Invalid key/value pair: {pair!r}.")
    return pairs


def _as_payload(value: Any) -> Payload:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Payload(bytes(value))
    raise TypeError(
        f"CacheEngine stores raw bytes, got {type(value).__name__}. "
        "Use SimpleCache to store arbitrary Python values."
    )


class CacheEngine(CacheService):
    """Single-node file cache with per-entry TTLs, scoped to one namespace."""

    def __init__(
        self,
        settings: CacheSettings,
        store: Optional[EntryStore] = None,
        resolver: Optional[NamespaceResolver] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        """Initializes the engine.

        Args:
            settings: Immutable configuration for this instance.
            store: Entry store; defaults to a FileEntryStore at settings.base_dir.
            resolver: Namespace resolver; defaults to one rooted at settings.base_dir.
            clock: Wall-clock source (epoch seconds), shared across processes.
            rng: Random source for probabilistic garbage collection.

        Raises:
            InvalidArgumentError: If the default TTL or gc probability is illegal.
            InvalidNamespaceError: If settings.init_dir cannot be mapped safely.
        """
        if not 0.0 <= settings.gc_probability <= 1.0:
            raise InvalidArgumentError(
                f"Invalid gc_probability: {settings.gc_probability!r}. Expected a value in [0, 1]."
            )
        self._settings = settings
        self._default_ttl = None if settings.default_ttl is None else ttl_to_seconds(settings.default_ttl)
        self._resolver = resolver or NamespaceResolver(settings.base_dir)
        self._store = store or FileEntryStore(self._resolver.base_dir, clock=clock)
        self._clock = clock
        self._random = rng or random.Random()
        self._namespace = normalize_namespace(settings.init_dir)
        self._namespace_dir = self._resolver.namespace_path(self._namespace)

        ttl_label = "infinite" if self._default_ttl is None else f"{self._default_ttl:g}s"
        logger.info(
            f"CacheEngine initialized. root={self._resolver.base_dir}, "
            f"namespace='{self._namespace}', default_ttl={ttl_label}"
        )

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def namespace(self) -> Namespace:
        return self._namespace

    def for_namespace(self, sub_namespace: str) -> "CacheEngine":
        """Returns an engine for a namespace nested below this one, sharing the store."""
        nested = normalize_namespace(f"{self._namespace}/{sub_namespace}")
        return CacheEngine(
            dataclasses.replace(self._settings, init_dir=nested),
            store=self._store,
            resolver=self._resolver,
            clock=self._clock,
            rng=self._random,
        )

    # --- Internal helpers ---

    def _expires_at(self, ttl: Ttl, now: float) -> Tuple[Optional[float], bool]:
        """Returns (expires_at, expire_immediately) for a caller-supplied TTL."""
        seconds = self._default_ttl if ttl is None else ttl_to_seconds(ttl)
        if seconds is None:
            return None, False
        if seconds <= 0:
            return now, True
        return now + seconds, False

    def _read_payload(self, key: CacheKey, default: Any) -> Any:
        location = self._resolver.resolve(self._namespace, key)
        try:
            entry = self._store.read(location, now=self._clock())
        except StoreError as e:
            logger.warning(f"Cache read failed for key {key[:32]}, treating as miss: {e}")
            return default
        if entry is None:
            logger.debug(f"Cache MISS for key: {key[:32]}")
            return default
        logger.debug(f"Cache HIT for key: {key[:32]}")
        return entry.payload

    def _write_payload(self, key: CacheKey, payload: Payload,
                       expires_at: Optional[float], expire_now: bool, now: float) -> bool:
        location = self._resolver.resolve(self._namespace, key)
        try:
            if expire_now:
                # An already-expired entry is indistinguishable from a missing one
                self._store.remove(location)
                logger.debug(f"Non-positive TTL, removed key: {key[:32]}")
            else:
                self._store.write(location, payload, expires_at, created_at=now)
        except StoreError as e:
            logger.error(f"Cache write failed for key {key[:32]}: {e}", exc_info=True)
            return False
        return True

    def _remove(self, key: CacheKey) -> Optional[bool]:
        """Removes one key; returns None on store failure."""
        location = self._resolver.resolve(self._namespace, key)
        try:
            return self._store.remove(location)
        except StoreError as e:
            logger.error(f"Cache delete failed for key {key[:32]}: {e}", exc_info=True)
            return None

    def _maybe_collect_garbage(self) -> None:
        probability = self._settings.gc_probability
        if probability > 0.0 and self._random.random() < probability:
            logger.debug(f"Running on-write garbage collection for namespace '{self._namespace}'")
            self.prune()

    # --- CacheService Interface Implementation ---

    def get(self, key: str, default: Any = None) -> Any:
        """Returns the payload bytes stored under `key`, or `default` on a miss."""
        return self._read_payload(validate_key(key), default)

    def set(self, key: str, value: Any, ttl: Ttl = None) -> bool:
        """Stores raw bytes under `key`.

        A TTL of zero or less expires the entry immediately (any existing entry
        is removed). A TTL of TTL_INFINITE or more never expires.
        """
        cache_key = validate_key(key)
        payload = _as_payload(value)
        now = self._clock()
        expires_at, expire_now = self._expires_at(ttl, now)
        ok = self._write_payload(cache_key, payload, expires_at, expire_now, now)
        if ok and not expire_now:
            self._maybe_collect_garbage()
        return ok

    def delete(self, key: str) -> bool:
        return bool(self._remove(validate_key(key)))

    def clear(self) -> bool:
        try:
            self._store.remove_all(self._namespace_dir)
        except StoreError as e:
            logger.error(f"Failed to clear cache namespace '{self._namespace}': {e}", exc_info=True)
            return False
        logger.info(f"Cleared cache namespace '{self._namespace}'")
        return True

    def has(self, key: str) -> bool:
        sentinel = object()
        return self._read_payload(validate_key(key), sentinel) is not sentinel

    def get_multiple(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        cache_keys = validate_keys(keys)
        return {key: self._read_payload(key, default) for key in cache_keys}

    def set_multiple(
        self,
        values: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        ttl: Ttl = None,
    ) -> bool:
        pairs = to_pairs(values)
        cache_keys = validate_keys([key for key, _ in pairs])
        payloads = [_as_payload(value) for _, value in pairs]
        now = self._clock()
        expires_at, expire_now = self._expires_at(ttl, now)

        failures = 0
        for key, payload in zip(cache_keys, payloads):
            if not self._write_payload(key, payload, expires_at, expire_now, now):
                failures += 1
        if failures:
            logger.warning(f"set_multiple: {failures}/{len(cache_keys)} writes failed")
        elif cache_keys and not expire_now:
            self._maybe_collect_garbage()
        return failures == 0

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        cache_keys = validate_keys(keys)
        results = [self._remove(key) for key in cache_keys]
        return all(result is not None for result in results)

    # --- Maintenance ---

    def prune(self) -> int:
        """Deletes expired entries in this namespace.

        Returns:
            Number of files removed, or -1 if the store failed.
        """
        try:
            return self._store.prune_expired(self._namespace_dir, now=self._clock())
        except StoreError as e:
            logger.error(f"Failed to prune cache namespace '{self._namespace}': {e}", exc_info=True)
            return -1
