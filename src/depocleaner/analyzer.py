"""Size and staleness analysis for target directories."""

import logging
import os
import stat
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from depocleaner.categories import classify_type
from depocleaner.errors import InvalidPathError, ScanCancelled, from_os_error
from depocleaner.models import DependencyFolder, timestamp_from_ns

logger = logging.getLogger(__name__)


def resolve_access_time(st: os.stat_result) -> datetime:
    """
    Last access time from stat metadata.

    Falls back to the modification time when the platform does not report
    an access time (missing field, or zero on some network filesystems).
    """
    atime_ns = getattr(st, "st_atime_ns", 0)
    if not atime_ns:
        return timestamp_from_ns(st.st_mtime_ns)
    return timestamp_from_ns(atime_ns)


def calculate_size(path: Path, cancel: Optional[threading.Event] = None) -> tuple[int, int]:
    """
    Sum the sizes of every non-directory entry beneath ``path``.

    Symlinks are counted by their own size and never followed. Entries that
    cannot be read are skipped, so the returned size is a lower bound.

    Args:
        path: Directory to measure
        cancel: Checked before each directory; raises ScanCancelled once set

    Returns:
        Tuple of (total_bytes, skipped_entries)
    """
    total_size = 0
    skipped = 0
    stack = [path]

    while stack:
        if cancel is not None and cancel.is_set():
            raise ScanCancelled(str(path))

        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(Path(entry.path))
                        else:
                            total_size += entry.stat(follow_symlinks=False).st_size
                    except OSError as e:
                        skipped += 1
                        logger.debug("Skipping unreadable entry %s: %s", entry.path, e)
        except OSError as e:
            skipped += 1
            logger.debug("Skipping unreadable directory %s: %s", current, e)

    return total_size, skipped


class Analyzer:
    """Measures a single target directory. Stateless and thread-safe."""

    def analyze(self, path: str, cancel: Optional[threading.Event] = None) -> DependencyFolder:
        """
        Inspect a target directory.

        Args:
            path: Absolute path of the directory
            cancel: Optional event that aborts the measurement

        Returns:
            DependencyFolder with size, times and ecosystem label

        Raises:
            DepocleanerError: if the directory itself cannot be stat'd
            ScanCancelled: if ``cancel`` fires mid-measurement
        """
        try:
            st = os.stat(path, follow_symlinks=False)
        except OSError as e:
            raise from_os_error(path, e) from e

        if not stat.S_ISDIR(st.st_mode):
            raise InvalidPathError(path, "not a directory")

        size, skipped = calculate_size(Path(path), cancel)
        if skipped:
            logger.debug("Size of %s is a lower bound (%d entries skipped)", path, skipped)

        return DependencyFolder(
            path=path,
            size_bytes=size,
            mod_time=timestamp_from_ns(st.st_mtime_ns),
            access_time=resolve_access_time(st),
            type=classify_type(os.path.basename(path)),
            mod_time_ns=st.st_mtime_ns,
        )
