"""Concrete implementation of the EntryStore interface on the local file system.

Each entry is one file holding a pickled record::

    {"key": str, "payload": bytes, "expires_at": float | None, "created_at": float}

Writes go to a temp file in the destination directory and are swapped in with
os.replace, so concurrent readers see either the old entry or the new one.
Records are unpickled with a restricted unpickler that refuses every global,
so a planted file cannot execute code on read.
"""

import io
import logging
import os
import pickle
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Union

from simplecache.core.namespace_resolver import ENTRIES_DIR_NAME, ENTRY_SUFFIX
from simplecache.domain.exceptions import StoreError
from simplecache.domain.interfaces.entry_store import EntryStore
from simplecache.domain.models.common import CacheEntry, CacheKey, Payload, StorageLocation

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"
# Temp files older than this belong to a writer that died mid-write
STALE_TEMP_SECONDS = 60 * 60
# A directory removed by a concurrent clear() between mkdir and mkstemp
WRITE_ATTEMPTS = 2

_RECORD_FIELDS = ("key", "payload", "expires_at", "created_at")

# Only names the store itself creates are ever deleted by clear and prune
_SHARD_NAME = re.compile(r"^[0-9a-f]{2}$")
_ENTRY_NAME = re.compile(r"^[0-9a-f]{64}" + re.escape(ENTRY_SUFFIX) + "$")
_TEMP_NAME = re.compile(r"^\.[A-Za-z0-9_]+" + re.escape(TEMP_SUFFIX) + "$")


class _CorruptEntry(Exception):
    """Raised internally when an entry file cannot be decoded."""


class _RecordUnpickler(pickle.Unpickler):
    """Unpickler that only accepts builtin containers and scalars."""

    def find_class(self, module: str, name: str) -> Any:
        raise pickle.UnpicklingError(f"Global '{module}.{name}' is not allowed in a cache record")


class FileEntryStore(EntryStore):
    """Stores entries as individual files below a root directory."""

    def __init__(self, root: Union[str, os.PathLike], clock: Callable[[], float] = time.time):
        """Initializes the store. The root directory is created lazily on first write."""
        self.root = Path(root).expanduser().resolve()
        self._clock = clock
        logger.info(f"FileEntryStore initialized at: {self.root}")

    # --- Internal helpers ---

    def _ensure_within_root(self, path: Path) -> None:
        if path != self.root and self.root not in path.parents:
            raise StoreError("Refusing to touch a path outside the cache root", path)

    @staticmethod
    def _encode(location: StorageLocation, payload: Payload, expires_at: Optional[float], created_at: float) -> bytes:
        record = {
            "key": str(location.key),
            "payload": bytes(payload),
            "expires_at": None if expires_at is None else float(expires_at),
            "created_at": float(created_at),
        }
        return pickle.dumps(record, protocol=pickle.HIGHEST_PROTOCOL)

    @staticmethod
    def _decode(data: bytes) -> CacheEntry:
        try:
            record = _RecordUnpickler(io.BytesIO(data)).load()
        except (pickle.UnpicklingError, EOFError, ValueError, TypeError,
                KeyError, IndexError, AttributeError, ImportError) as e:
            raise _CorruptEntry(str(e)) from e

        if not isinstance(record, dict) or any(field not in record for field in _RECORD_FIELDS):
            raise _CorruptEntry("record is missing required fields")
        key, payload = record["key"], record["payload"]
        expires_at, created_at = record["expires_at"], record["created_at"]
        if (not isinstance(key, str) or not isinstance(payload, bytes)
                or not isinstance(expires_at, (float, type(None)))
                or not isinstance(created_at, float)):
            raise _CorruptEntry("record fields have unexpected types")
        return CacheEntry(key=CacheKey(key), payload=Payload(payload),
                          expires_at=expires_at, created_at=created_at)

    def _load(self, path: Path) -> CacheEntry:
        """Reads and decodes one entry file.

        Raises:
            FileNotFoundError: No entry at `path`.
            _CorruptEntry: The file exists but is not a valid record.
            OSError: Any other read failure.
        """
        with open(path, "rb") as f:
            data = f.read()
        return self._decode(data)

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete unreadable cache file {path}: {e}")

    def _is_stale_temp(self, path: Path, now: float) -> bool:
        try:
            return now - path.stat().st_mtime > STALE_TEMP_SECONDS
        except OSError:
            return False

    def _write_atomic(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=TEMP_SUFFIX)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            # os.replace is atomic on POSIX and Windows for same-directory renames
            os.replace(temp_name, path)
        except OSError:
            try:
                os.unlink(temp_name)
            except OSError:
                pass  # Already renamed or removed by a concurrent clear
            raise

    # --- EntryStore Interface Implementation ---

    def write(
        self,
        location: StorageLocation,
        payload: Payload,
        expires_at: Optional[float],
        created_at: Optional[float] = None,
    ) -> None:
        path = location.path
        self._ensure_within_root(path)
        created = self._clock() if created_at is None else created_at
        try:
            data = self._encode(location, payload, expires_at, created)
        except (pickle.PicklingError, TypeError, ValueError) as e:
            raise StoreError(f"Failed to encode cache entry for key {location.key[:32]}: {e}", path) from e

        last_error: Optional[OSError] = None
        for attempt in range(1, WRITE_ATTEMPTS + 1):
            try:
                self._write_atomic(path, data)
                logger.debug(f"Wrote cache entry: key={location.key[:32]}, file={path}")
                return
            except FileNotFoundError as e:
                last_error = e
                logger.debug(f"Cache directory vanished during write (attempt {attempt}): {path.parent}")
            except OSError as e:
                raise StoreError(f"Failed to write cache entry: {e}", path) from e
        raise StoreError(f"Failed to write cache entry: {last_error}", path) from last_error

    def read(self, location: StorageLocation, now: Optional[float] = None) -> Optional[CacheEntry]:
        path = location.path
        self._ensure_within_root(path)
        try:
            entry = self._load(path)
        except FileNotFoundError:
            return None
        except _CorruptEntry as e:
            logger.warning(f"Failed to parse cache file {path}: {e}. Removing.")
            self._discard(path)
            return None
        except OSError as e:
            raise StoreError(f"Failed to read cache entry: {e}", path) from e

        if entry.key != location.key:
            logger.warning(f"Cache file {path} holds key {entry.key[:32]!r}, expected {location.key[:32]!r}")
            return None

        current = self._clock() if now is None else now
        if entry.is_expired(current):
            logger.debug(f"Cache entry expired: key={location.key[:32]}")
            return None
        return entry

    def remove(self, location: StorageLocation) -> bool:
        path = location.path
        self._ensure_within_root(path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreError(f"Failed to delete cache entry: {e}", path) from e
        logger.debug(f"Deleted cache entry: key={location.key[:32]}, file={path}")

        # Try removing the now possibly empty shard directory
        try:
            path.parent.rmdir()
        except OSError:
            pass  # Not empty, or already gone
        return True


    # --- Namespace-wide maintenance ---

    def _shard_dirs(self, namespace_dir: Path, errors: List[OSError]) -> Iterator[Path]:
        """Yields the shard directories of a namespace and of every namespace nested in it.

        Only ``.entries/<2 hex digits>`` directories are yielded; anything else
        living under the cache root is ever modified.
        """
        def on_walk_error(error: OSError) -> None:
            # A directory removed by a concurrent clear is not a failure
            if not isinstance(error, FileNotFoundError):
                errors.append(error)

        for dirpath, dirnames, _filenames in os.walk(namespace_dir, onerror=on_walk_error):
            # Namespace segments never start with a dot
            dirnames[:] = [name for name in dirnames if not name.startswith(".")]
            entries_dir = Path(dirpath) / ENTRIES_DIR_NAME
            if entries_dir.is_symlink() or not entries_dir.is_dir():
                continue
            try:
                children = sorted(entries_dir.iterdir())
            except FileNotFoundError:
                continue
            except OSError as e:
                errors.append(e)
                continue
            for child in children:
                if _SHARD_NAME.match(child.name) and child.is_dir() and not child.is_symlink():
                    yield child

    @staticmethod
    def _shard_files(shard: Path, errors: List[OSError]) -> List[Path]:
        try:
            return sorted(p for p in shard.iterdir() if p.is_file() and not p.is_symlink())
        except FileNotFoundError:
            return []
        except OSError as e:
            errors.append(e)
            return []

    @staticmethod
    def _is_entry_file(path: Path) -> bool:
        name = path.name
        return bool(_ENTRY_NAME.match(name)) and name.startswith(path.parent.name)

    @staticmethod
    def _remove_empty_shard(shard: Path) -> None:
        # rmdir only succeeds on empty directories; foreign or in-flight files keep them
        for directory in (shard, shard.parent):
            try:
                directory.rmdir()
            except OSError:
                return

    @staticmethod
    def _raise_collected(errors: List[OSError], action: str, namespace_dir: Path) -> None:
        if errors:
            first = errors[0]
            raise StoreError(f"Failed to {action} {len(errors)} path(s) under namespace: {first}",
                             Path(getattr(first, "filename", None) or namespace_dir)) from first

    def remove_all(self, namespace_dir: Path) -> None:
        self._ensure_within_root(namespace_dir)
        if not namespace_dir.exists():
            logger.debug(f"Namespace directory {namespace_dir} does not exist, nothing to clear.")
            return

        now = self._clock()
        errors: List[OSError] = []
        removed = 0
        for shard in self._shard_dirs(namespace_dir, errors):
            for file_path in self._shard_files(shard, errors):
                if _TEMP_NAME.match(file_path.name):
                    # A fresh temp file is a write in flight; leave it to its writer
                    if not self._is_stale_temp(file_path, now):
                        continue
                elif not self._is_entry_file(file_path):
                    continue
                try:
                    file_path.unlink()
                    removed += 1
                except FileNotFoundError:
                    pass
                except OSError as e:
                    errors.append(e)
            self._remove_empty_shard(shard)

        self._raise_collected(errors, "clear", namespace_dir)
        logger.info(f"Cleared {removed} cache entries under: {namespace_dir}")

    def prune_expired(self, namespace_dir: Path, now: Optional[float] = None) -> int:
        self._ensure_within_root(namespace_dir)
        if not namespace_dir.exists():
            return 0

        current = self._clock() if now is None else now
        errors: List[OSError] = []
        removed = 0
        for shard in self._shard_dirs(namespace_dir, errors):
            for file_path in self._shard_files(shard, errors):
                if _TEMP_NAME.match(file_path.name):
                    if self._is_stale_temp(file_path, current):
                        self._discard(file_path)
                        removed += 1
                    continue
                if not self._is_entry_file(file_path):
                    continue
                try:
                    before = file_path.stat()
                    entry = self._load(file_path)
                    if not entry.is_expired(current):
                        continue
                except FileNotFoundError:
                    continue
                except _CorruptEntry as e:
                    logger.warning(f"Pruning unreadable cache file {file_path}: {e}")
                except OSError as e:
                    errors.append(e)
                    continue
                # Skip files a writer replaced while we were reading them
                try:
                    after = file_path.stat()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    errors.append(e)
                    continue
                if (after.st_ino, after.st_mtime_ns) != (before.st_ino, before.st_mtime_ns):
                    continue
                self._discard(file_path)
                removed += 1
            self._remove_empty_shard(shard)

        self._raise_collected(errors, "prune", namespace_dir)
        logger.info(f"Pruned {removed} expired cache entries under: {namespace_dir}")
        return removed
