"""Deletion of selected dependency folders, with safety checks."""

import logging
import os
import shutil
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional

from depocleaner.categories import is_target
from depocleaner.models import CleanupResult, DependencyFolder, FailedOp

logger = logging.getLogger(__name__)

# Paths that should NEVER be deleted, even if their name looks like a target
BLOCKED_PATHS = [
    "/",
    "~",
    "/System",
    "/Library",
    "/Applications",
    "/usr",
    "/bin",
    "/sbin",
    "/var",
    "/etc",
    "/private",
    "/Users",
    "/home",
]


def is_path_safe(path: Path) -> bool:
    """
    Check if a path is safe to delete.

    Only absolute paths whose basename is a known target directory, and which
    are not themselves a protected location, may be removed.
    """
    if not path.is_absolute():
        return False

    path_str = os.path.normpath(str(path))
    for blocked in BLOCKED_PATHS:
        if path_str == os.path.normpath(os.path.expanduser(blocked)):
            return False

    return is_target(path.name)


def delete_path(path: Path, dry_run: bool = False) -> Optional[str]:
    """
    Remove a directory tree.

    Returns:
        None on success, otherwise an error message
    """
    if not path.exists():
        return "path no longer exists"

    if not is_path_safe(path):
        return "refusing to delete protected or non-target path"

    if dry_run:
        logger.info("DRY RUN: would delete %s", path)
        return None

    try:
        shutil.rmtree(path)
    except PermissionError as e:
        return f"Permission denied: {e}"
    except OSError as e:
        return f"OS error: {e}"
    return None


class Cleaner:
    """Deletes folders in parallel and reports per-path outcomes."""

    def __init__(self, dry_run: bool = False, max_workers: int = 4) -> None:
        self.dry_run = dry_run
        self.max_workers = max_workers

    def clean(
        self,
        folders: list[DependencyFolder],
        cancel: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[DependencyFolder, Optional[str]], None]] = None,
    ) -> CleanupResult:
        """
        Delete every folder in ``folders``.

        Args:
            folders: Folders chosen for removal
            cancel: Folders not yet started are skipped once this is set
            progress_callback: Optional callback(folder, error) per folder

        Returns:
            CleanupResult with deleted paths, failures and bytes reclaimed
        """
        result = CleanupResult(dry_run=self.dry_run)
        if not folders:
            return result

        def remove(folder: DependencyFolder) -> Optional[str]:
            if cancel is not None and cancel.is_set():
                return "cancelled"
            return delete_path(Path(folder.path), self.dry_run)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_folder = {executor.submit(remove, f): f for f in folders}

            for future in as_completed(future_to_folder):
                folder = future_to_folder[future]
                try:
                    error = future.result()
                except Exception as e:
                    error = str(e)

                if error:
                    result.failed.append(FailedOp(path=folder.path, reason=error))
                    logger.error("Failed to delete %s: %s", folder.path, error)
                else:
                    result.deleted.append(folder.path)
                    result.space_reclaimed += folder.size_bytes
                    if not self.dry_run:
                        logger.info("Deleted %s (%d bytes)", folder.path, folder.size_bytes)

                if progress_callback:
                    progress_callback(folder, error)

        return result
