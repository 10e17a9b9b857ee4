"""Tests for error classification."""

import errno

from depocleaner.errors import (
    CacheCorruptError,
    ConfigError,
    FilesystemError,
    InvalidPathError,
    PathNotFoundError,
    PermissionDeniedError,
    from_os_error,
)
from depocleaner.models import ErrorType


class TestFromOsError:
    def test_permission(self):
        err = from_os_error("/p", PermissionError(errno.EACCES, "Permission denied"))
        assert isinstance(err, PermissionDeniedError)
        assert err.error_type == ErrorType.PERMISSION_DENIED

    def test_not_found(self):
        err = from_os_error("/p", FileNotFoundError(errno.ENOENT, "No such file"))
        assert isinstance(err, PathNotFoundError)

    def test_not_a_directory(self):
        err = from_os_error("/p", NotADirectoryError(errno.ENOTDIR, "Not a directory"))
        assert isinstance(err, InvalidPathError)

    def test_generic(self):
        err = from_os_error("/p", OSError(errno.EIO, "Input/output error"))
        assert isinstance(err, FilesystemError)
        assert err.message == "Input/output error"


class TestDepocleanerError:
    def test_str_includes_path(self):
        assert str(PathNotFoundError("/x")) == "NOT_FOUND: file or directory not found (path: /x)"

    def test_str_without_path(self):
        assert str(CacheCorruptError()) == "CACHE_CORRUPT: cache file is corrupt"

    def test_to_scan_error(self):
        scan_error = PermissionDeniedError("/locked").to_scan_error()
        assert scan_error.path == "/locked"
        assert scan_error.error_type == ErrorType.PERMISSION_DENIED
        assert scan_error.message == "permission denied"

    def test_config_error_label(self):
        err = ConfigError("/c.yaml", "invalid YAML")
        assert err.error_type == ErrorType.CONFIG_INVALID
        assert str(err) == "CONFIG_INVALID: invalid YAML (path: /c.yaml)"
