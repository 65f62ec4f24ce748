"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), runs them against a
CacheEngine, and reports results through the UserInterface. Every handler
returns a process exit code: 0 on success, 1 on a miss or a failed store
operation, 2 on invalid input.
"""

import logging
from typing import Dict, List, Optional, Sequence

from simplecache.core.cache_engine import CacheEngine
from simplecache.domain.exceptions import CacheError
from simplecache.domain.interfaces.cache import Ttl
from simplecache.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2


def parse_assignments(assignments: Sequence[str]) -> Dict[str, bytes]:
    """Parses KEY=VALUE arguments, keeping their order.

    Raises:
        ValueError: If an argument has no '=' separator.
    """
    values: Dict[str, bytes] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Expected KEY=VALUE, got: {item!r}")
        values[key] = value.encode("utf-8")
    return values


class CommandHandler:
    """Handles incoming commands and delegates to the cache."""

    def __init__(self, cache: CacheEngine, ui: UserInterface):
        self.cache = cache
        self.ui = ui

    def _invalid(self, command: str, error: Exception) -> int:
        logger.debug(f"'{command}' rejected: {error}")
        self.ui.display_error(str(error))
        return EXIT_INVALID

    def handle_get(self, key: str, default: Optional[str] = None) -> int:
        logger.info(f"Handling 'get' for key: {key[:32]}")
        try:
            value = self.cache.get(key)
        except CacheError as e:
            return self._invalid("get", e)
        if value is None and default is not None:
            value = default.encode("utf-8")
        self.ui.display_value(key, value)
        return EXIT_OK if value is not None else EXIT_FAILURE

    def handle_set(self, key: str, value: str, ttl: Ttl = None) -> int:
        logger.info(f"Handling 'set' for key: {key[:32]} (ttl={ttl})")
        try:
            ok = self.cache.set(key, value.encode("utf-8"), ttl=ttl)
        except CacheError as e:
            return self._invalid("set", e)
        if not ok:
            self.ui.display_error(f"Failed to store key '{key}'.")
            return EXIT_FAILURE
        self.ui.display_info(f"Stored key '{key}'.")
        return EXIT_OK

    def handle_delete(self, key: str) -> int:
        logger.info(f"Handling 'delete' for key: {key[:32]}")
        try:
            removed = self.cache.delete(key)
        except CacheError as e:
            return self._invalid("delete", e)
        if removed:
            self.ui.display_info(f"Deleted key '{key}'.")
            return EXIT_OK
        self.ui.display_warning(f"Key '{key}' was not present.")
        return EXIT_FAILURE

    def handle_has(self, key: str) -> int:
        try:
            present = self.cache.has(key)
        except CacheError as e:
            return self._invalid("has", e)
        self.ui.display_info(f"Key '{key}' is {'present' if present else 'absent'}.")
        return EXIT_OK if present else EXIT_FAILURE

    def handle_clear(self) -> int:
        logger.info("Handling 'clear'")
        if self.cache.clear():
            self.ui.display_info("Cache cleared successfully.")
            return EXIT_OK
        self.ui.display_error("Failed to clear cache.")
        return EXIT_FAILURE

    def handle_get_many(self, keys: List[str]) -> int:
        logger.info(f"Handling 'get-many' for {len(keys)} key(s)")
        try:
            values = self.cache.get_multiple(keys)
        except CacheError as e:
            return self._invalid("get-many", e)
        self.ui.display_mapping(values)
        return EXIT_OK if all(v is not None for v in values.values()) else EXIT_FAILURE

    def handle_set_many(self, assignments: List[str], ttl: Ttl = None) -> int:
        logger.info(f"Handling 'set-many' for {len(assignments)} assignment(s)")
        try:
            values = parse_assignments(assignments)
            ok = self.cache.set_multiple(values, ttl=ttl)
        except (CacheError, ValueError) as e:
            return self._invalid("set-many", e)
        if not ok:
            self.ui.display_error("Some entries could not be stored.")
            return EXIT_FAILURE
        self.ui.display_info(f"Stored {len(values)} key(s).")
        return EXIT_OK

    def handle_delete_many(self, keys: List[str]) -> int:
        logger.info(f"Handling 'delete-many' for {len(keys)} key(s)")
        try:
            ok = self.cache.delete_multiple(keys)
        except CacheError as e:
            return self._invalid("delete-many", e)
        if not ok:
            self.ui.display_error("Some entries could not be deleted.")
            return EXIT_FAILURE
        self.ui.display_info(f"Deleted {len(keys)} key(s).")
        return EXIT_OK

    def handle_gc(self) -> int:
        logger.info("Handling 'gc'")
        removed = self.cache.prune()
        if removed < 0:
            self.ui.display_error("Garbage collection failed.")
            return EXIT_FAILURE
        self.ui.display_info(f"Removed {removed} expired entr{'y' if removed == 1 else 'ies'}.")
        return EXIT_OK
