"""Persistent size cache for target directories."""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager, suppress
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Protocol

from pydantic import ValidationError

from depocleaner.errors import CacheCorruptError, CacheWriteError, from_os_error
from depocleaner.models import CacheEntry, CacheIndex, utc_now

logger = logging.getLogger(__name__)

CACHE_TEMP_PREFIX = ".cache-"
CACHE_TEMP_SUFFIX = ".tmp"


class CacheProvider(Protocol):
    """What the scanner needs from a cache."""

    def get(self, path: str) -> Optional[CacheEntry]: ...

    def set(self, path: str, entry: CacheEntry) -> None: ...

    def is_valid(self, path: str, mod_time: datetime, mod_time_ns: Optional[int] = None) -> bool: ...

    def save(self) -> None: ...


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class CacheStore:
    """
    Mapping of absolute path to last known size and modification time.

    Loaded once, mutated in memory, written to disk only by ``save()``.
    Shared by every scan worker; all access goes through a reader/writer lock.
    """

    def __init__(self, path: Path, index: Optional[CacheIndex] = None) -> None:
        self._path = Path(path)
        self._index = index or CacheIndex()
        self._lock = ReadWriteLock()
        self._dirty = False

    @classmethod
    def load(cls, path: Path, strict: bool = False) -> "CacheStore":
        """
        Open the cache file at ``path``.

        A missing file yields an empty cache. A corrupt file is logged and
        replaced by an empty cache, unless ``strict`` is set, in which case
        CacheCorruptError is raised.
        """
        path = Path(path).expanduser()
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return cls(path)
        except OSError as e:
            raise from_os_error(str(path), e) from e

        # Raw bytes: invalid UTF-8 surfaces as a ValidationError like any other corruption
        try:
            index = CacheIndex.model_validate_json(raw)
        except ValidationError as e:
            if strict:
                raise CacheCorruptError(str(path), f"cache file is corrupt: {e.error_count()} errors") from e
            logger.warning("Ignoring corrupt cache file %s; starting with an empty cache", path)
            return cls(path)

        return cls(path, index)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        with self._lock.read():
            return self._dirty

    @property
    def updated_at(self) -> Optional[datetime]:
        with self._lock.read():
            return self._index.updated_at

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._index.entries)

    def get(self, path: str) -> Optional[CacheEntry]:
        with self._lock.read():
            entry = self._index.entries.get(path)
            return entry.model_copy() if entry is not None else None

    def set(self, path: str, entry: CacheEntry) -> None:
        with self._lock.write():
            self._index.entries[path] = entry
            self._dirty = True

    def is_valid(self, path: str, mod_time: datetime, mod_time_ns: Optional[int] = None) -> bool:
        """
        True iff an entry exists and its mod time equals ``mod_time`` exactly.

        When both the entry and the caller carry the raw nanosecond mtime,
        that is compared too, so sub-microsecond changes still invalidate.
        """
        entry = self.get(path)
        if entry is None:
            return False
        if entry.mod_time != mod_time:
            return False
        if mod_time_ns is not None and entry.mod_time_ns is not None:
            return entry.mod_time_ns == mod_time_ns
        return True

    def save(self) -> None:
        """
        Write the index atomically if it changed.

        Raises:
            CacheWriteError: if the directory or temp file cannot be written
        """
        with self._lock.write():
            if not self._dirty:
                return
            self._index.updated_at = utc_now()
            payload = self._index.model_dump_json(indent=2)
            _write_atomic(self._path, payload)
            self._dirty = False
        logger.debug("Saved cache to %s", self._path)

    def clear(self) -> None:
        """Drop every entry and persist the empty cache immediately."""
        with self._lock.write():
            self._index = CacheIndex()
            self._dirty = True
        self.save()


def _write_atomic(path: Path, payload: str) -> None:
    """Write to a temp file beside ``path`` then rename it into place."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CacheWriteError(str(path.parent), f"cannot create cache directory: {e}") from e

    temp_name: Optional[str] = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=CACHE_TEMP_PREFIX,
            suffix=CACHE_TEMP_SUFFIX,
            delete=False,
        ) as handle:
            temp_name = handle.name
            handle.write(payload)
            handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, path)
    except OSError as e:
        if temp_name:
            with suppress(FileNotFoundError):
                Path(temp_name).unlink()
        raise CacheWriteError(str(path), f"cannot write cache: {e}") from e
