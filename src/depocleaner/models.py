"""Data models for depocleaner."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

CACHE_FORMAT_VERSION = "1.0"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def timestamp_from_ns(ns: int) -> datetime:
    """Convert a stat nanosecond field to an aware UTC datetime.

    Integer arithmetic only, so the same stat value always yields an equal
    datetime (truncated to microseconds).
    """
    return _EPOCH + timedelta(microseconds=ns // 1000)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class ErrorType(str, Enum):
    """Classification of filesystem and cache failures."""

    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_PATH = "INVALID_PATH"
    IO_ERROR = "IO_ERROR"
    CACHE_CORRUPT = "CACHE_CORRUPT"
    CONFIG_INVALID = "CONFIG_INVALID"


class DependencyFolder(BaseModel):
    """A discovered dependency/build-artifact directory."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the directory")
    size_bytes: int = Field(0, description="Recursive size (best-effort lower bound)")
    mod_time: datetime = Field(..., description="Directory modification time")
    access_time: datetime = Field(..., description="Last access time, falls back to mod_time")
    type: str = Field("Unknown", description="Ecosystem label, e.g. 'Node.js'")
    mod_time_ns: Optional[int] = Field(None, exclude=True, description="Raw st_mtime_ns, kept for the cache")

    @property
    def size_human(self) -> str:
        """Human-readable size string."""
        return format_size(self.size_bytes)

    def age_days(self, now: Optional[datetime] = None) -> int:
        """Whole days since the folder was last accessed."""
        now = now or utc_now()
        return max((now - self.access_time).days, 0)


class CacheEntry(BaseModel):
    """Last known measurement of a target directory."""

    path: str
    size: int
    mod_time: datetime
    # Raw st_mtime_ns; mod_time alone only has microsecond resolution
    mod_time_ns: Optional[int] = None
    last_scan: datetime = Field(default_factory=utc_now)


class CacheIndex(BaseModel):
    """The whole persisted cache document."""

    version: str = CACHE_FORMAT_VERSION
    entries: dict[str, CacheEntry] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None


class ScanError(BaseModel):
    """A per-path failure recorded during a scan."""

    path: str
    error_type: ErrorType = ErrorType.IO_ERROR
    message: str = ""


class ScanResult(BaseModel):
    """Aggregated result of scanning one root path."""

    root_path: str
    started_at: datetime = Field(default_factory=utc_now)
    duration_seconds: float = 0.0
    folders: list[DependencyFolder] = Field(default_factory=list)
    total_size: int = 0
    total_count: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    errors: list[ScanError] = Field(default_factory=list)
    cancelled: bool = False

    def add_folder(self, folder: DependencyFolder) -> None:
        self.folders.append(folder)
        self.total_size += folder.size_bytes
        self.total_count += 1

    @property
    def hit_rate(self) -> float:
        """Percentage of targets served from the cache."""
        lookups = self.cache_hits + self.cache_misses
        return (self.cache_hits / lookups) * 100 if lookups > 0 else 0.0

    @property
    def total_size_human(self) -> str:
        return format_size(self.total_size)

    def sorted_by_size(self) -> list[DependencyFolder]:
        """Folders largest first."""
        return sorted(self.folders, key=lambda f: f.size_bytes, reverse=True)


class FailedOp(BaseModel):
    """A deletion that did not succeed."""

    path: str
    reason: str


class CleanupResult(BaseModel):
    """Result of deleting a set of folders."""

    deleted: list[str] = Field(default_factory=list)
    failed: list[FailedOp] = Field(default_factory=list)
    space_reclaimed: int = Field(0, description="Bytes freed (or that would be freed)")
    dry_run: bool = Field(False, description="Whether this was a dry run")

    @property
    def success_count(self) -> int:
        return len(self.deleted)

    @property
    def failure_count(self) -> int:
        return len(self.failed)
