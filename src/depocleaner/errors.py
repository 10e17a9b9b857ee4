"""Exception hierarchy for depocleaner."""

import errno
from typing import Optional

from depocleaner.models import ErrorType, ScanError


class DepocleanerError(Exception):
    """Base class for all depocleaner failures."""

    error_type = ErrorType.IO_ERROR
    default_message = "I/O error"

    def __init__(self, path: str = "", message: Optional[str] = None) -> None:
        self.path = path
        self.message = message or self.default_message
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.path:
            return f"{self.error_type.value}: {self.message} (path: {self.path})"
        return f"{self.error_type.value}: {self.message}"

    def to_scan_error(self) -> ScanError:
        return ScanError(path=self.path, error_type=self.error_type, message=self.message)


class PermissionDeniedError(DepocleanerError):
    error_type = ErrorType.PERMISSION_DENIED
    default_message = "permission denied"


class PathNotFoundError(DepocleanerError):
    error_type = ErrorType.NOT_FOUND
    default_message = "file or directory not found"


class InvalidPathError(DepocleanerError):
    error_type = ErrorType.INVALID_PATH
    default_message = "invalid path"


class FilesystemError(DepocleanerError):
    error_type = ErrorType.IO_ERROR


class CacheCorruptError(DepocleanerError):
    error_type = ErrorType.CACHE_CORRUPT
    default_message = "cache file is corrupt"


class CacheWriteError(DepocleanerError):
    default_message = "failed to write cache"


class ConfigError(DepocleanerError):
    """Raised when configuration cannot be loaded or validated."""

    error_type = ErrorType.CONFIG_INVALID
    default_message = "invalid configuration"


def from_os_error(path: str, exc: OSError) -> DepocleanerError:
    """Map an ``OSError`` onto the error taxonomy."""
    reason = exc.strerror or str(exc)
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(path)
    if isinstance(exc, FileNotFoundError):
        return PathNotFoundError(path)
    if isinstance(exc, NotADirectoryError) or exc.errno in (errno.ENAMETOOLONG, errno.ELOOP):
        return InvalidPathError(path, reason)
    return FilesystemError(path, reason)


class ScanCancelled(Exception):
    """Raised inside an analysis when the scan's cancel event fires."""
