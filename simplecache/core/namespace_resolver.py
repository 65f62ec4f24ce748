"""Maps (namespace, key) pairs to storage locations below the base directory.

Layout::

    <base_dir>/<ns segment>/.../.entries/<h[:2]>/<h>.cache

where ``h`` is the SHA-256 hex digest of the key. Namespace segments may not
start with a dot, so the ``.entries`` directory of one namespace can never be
mistaken for a nested namespace, and no key text ever reaches the path.
Uppercase letters in segments are stored as ``^`` plus the lowercase letter
(``Menu`` becomes ``^menu``) so case-insensitive file systems keep them apart.
"""

import hashlib
import logging
import os
import re
from pathlib import Path
from typing import List, Union

from simplecache.domain.exceptions import InvalidNamespaceError
from simplecache.domain.models.common import CacheKey, Namespace, StorageLocation

logger = logging.getLogger(__name__)

ENTRIES_DIR_NAME = ".entries"
ENTRY_SUFFIX = ".cache"
CASE_MARKER = "^"

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$")
_UPPERCASE = re.compile(r"[A-Z]")


def normalize_namespace(namespace: str) -> Namespace:
    """Normalizes a namespace path like '/catalog/section/' to 'catalog/section'.

    Raises:
        InvalidNamespaceError: If a segment could escape or shadow the layout.
    """
    if namespace is None:
        return Namespace("")
    if not isinstance(namespace, str):
        raise InvalidNamespaceError(f"Invalid namespace: {namespace!r}. Namespace should be a string.")

    segments = [s for s in re.split(r"[/\\]", namespace) if s]
    for segment in segments:
        if not _SEGMENT_PATTERN.match(segment):
            raise InvalidNamespaceError(
                f"Invalid namespace segment {segment!r} in {namespace!r}. "
                "Segments may contain letters, digits, '_', '-' and '.', and must not start with '.'."
            )
    return Namespace("/".join(segments))


def hash_key(key: CacheKey) -> str:
    """Returns the hex digest used as the on-disk name of a key."""
    return hashlib.sha256(key.encode("utf-8", "surrogatepass")).hexdigest()


class NamespaceResolver:
    """Resolves namespaces and keys to paths under a fixed base directory."""

    def __init__(self, base_dir: Union[str, os.PathLike]):
        # Resolved once so the mapping stays stable for the resolver's lifetime
        self.base_dir = Path(base_dir).expanduser().resolve()

    def namespace_path(self, namespace: str) -> Path:
        """Returns the directory that holds everything in `namespace`."""
        normalized = normalize_namespace(namespace)
        path = self.base_dir.joinpath(*self._segments(normalized))
        self._ensure_contained(path)
        return path

    def resolve(self, namespace: str, key: CacheKey) -> StorageLocation:
        """Maps a (namespace, key) pair to its storage location."""
        normalized = normalize_namespace(namespace)
        hashed_key = hash_key(key)
        path = (
            self.base_dir.joinpath(*self._segments(normalized))
            / ENTRIES_DIR_NAME
            / hashed_key[:2]
            / f"{hashed_key}{ENTRY_SUFFIX}"
        )
        self._ensure_contained(path)
        return StorageLocation(path=path, namespace=normalized, key=key)

    @staticmethod
    def _segments(namespace: Namespace) -> List[str]:
        """Returns the on-disk directory names of a namespace.

        Uppercase letters are written as CASE_MARKER plus the lowercase letter,
        so namespaces differing only in case stay apart on case-insensitive
        file systems. The marker never occurs in a segment, so the encoding is
        reversible.
        """
        if not namespace:
            return []
        return [_UPPERCASE.sub(lambda m: CASE_MARKER + m.group(0).lower(), s) for s in namespace.split("/")]

    def _ensure_contained(self, path: Path) -> None:
        # Catches symlinked namespace directories pointing outside the root
        real = Path(os.path.realpath(path))
        if real != self.base_dir and self.base_dir not in real.parents:
            logger.error(f"Resolved path {real} escapes cache root {self.base_dir}")
            raise InvalidNamespaceError(f"Path {path} resolves outside the cache root {self.base_dir}")
