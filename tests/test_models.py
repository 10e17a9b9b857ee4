"""Tests for data models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from depocleaner.models import (
    CacheEntry,
    CacheIndex,
    CleanupResult,
    DependencyFolder,
    FailedOp,
    ScanResult,
    format_size,
    timestamp_from_ns,
)

WHEN = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_folder(path: str = "/p/node_modules", size: int = 100) -> DependencyFolder:
    return DependencyFolder(path=path, size_bytes=size, mod_time=WHEN, access_time=WHEN, type="Node.js")


class TestTimestampFromNs:
    def test_truncates_to_microseconds(self):
        assert timestamp_from_ns(1_500_000_999) == timestamp_from_ns(1_500_000_000)
        assert timestamp_from_ns(1_500_001_000) != timestamp_from_ns(1_500_000_000)

    def test_is_utc(self):
        ts = timestamp_from_ns(0)
        assert ts == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert ts.tzinfo is not None


class TestFormatSize:
    def test_units(self):
        assert format_size(500) == "500 B"
        assert format_size(5000) == "5.0 KB"
        assert format_size(5_000_000) == "5.0 MB"
        assert format_size(5_000_000_000) == "5.0 GB"


class TestDependencyFolder:
    def test_frozen(self):
        folder = make_folder()
        with pytest.raises(ValidationError):
            folder.size_bytes = 1

    def test_size_human(self):
        assert make_folder(size=2_500_000).size_human == "2.5 MB"

    def test_age_days(self):
        assert make_folder().age_days(WHEN + timedelta(days=3, hours=5)) == 3
        assert make_folder().age_days(WHEN - timedelta(days=1)) == 0


class TestScanResult:
    def test_add_folder_accumulates(self):
        result = ScanResult(root_path="/p")
        result.add_folder(make_folder("/a/node_modules", 10))
        result.add_folder(make_folder("/b/.venv", 25))

        assert result.total_count == 2
        assert result.total_size == 35
        assert [f.path for f in result.sorted_by_size()] == ["/b/.venv", "/a/node_modules"]

    def test_hit_rate(self):
        assert ScanResult(root_path="/p").hit_rate == 0.0
        assert ScanResult(root_path="/p", cache_hits=3, cache_misses=1).hit_rate == 75.0


class TestCacheIndex:
    def test_json_round_trip_preserves_mod_time(self):
        mod_time = timestamp_from_ns(1_700_000_000_123_456_789)
        index = CacheIndex(entries={"/p": CacheEntry(path="/p", size=1, mod_time=mod_time)})

        restored = CacheIndex.model_validate_json(index.model_dump_json())

        assert restored.version == "1.0"
        assert restored.entries["/p"].mod_time == mod_time


class TestCleanupResult:
    def test_counts(self):
        result = CleanupResult(deleted=["/a", "/b"], failed=[FailedOp(path="/c", reason="x")])
        assert result.success_count == 2
        assert result.failure_count == 1
