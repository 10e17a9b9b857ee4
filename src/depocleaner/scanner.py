"""Concurrent scanning for dependency folders."""

import logging
import os
import queue
import stat
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Optional, Union

from depocleaner.analyzer import Analyzer, resolve_access_time
from depocleaner.cache import CacheProvider
from depocleaner.categories import classify_type, is_target
from depocleaner.config import ScannerConfig
from depocleaner.errors import (
    DepocleanerError,
    FilesystemError,
    InvalidPathError,
    ScanCancelled,
    from_os_error,
)
from depocleaner.models import (
    CacheEntry,
    DependencyFolder,
    ErrorType,
    ScanError,
    ScanResult,
    timestamp_from_ns,
    utc_now,
)

logger = logging.getLogger(__name__)

# How long an idle worker waits on the queue before re-checking walk/cancel state
WORKER_POLL_INTERVAL = 0.05

_DONE = object()

ScanEvent = Union[DependencyFolder, ScanError, object]


def expand_path(path: str) -> str:
    """Expand ~ and environment variables and make the path absolute."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path)))


def _is_under(path: str, ancestor: str) -> bool:
    return path == ancestor or path.startswith(ancestor.rstrip(os.sep) + os.sep)


class _ScanRun:
    """
    State for one call to ``Scanner.scan``.

    One walker thread feeds a bounded work queue drained by a fixed pool of
    worker threads. Folders and errors flow through a single event queue to
    the aggregating (calling) thread, which stops at the ``_DONE`` sentinel
    posted once the walker and every worker have returned.
    """

    def __init__(
        self,
        scanner: "Scanner",
        root: str,
        cancel: threading.Event,
    ) -> None:
        self.scanner = scanner
        self.root = root
        self.cancel = cancel
        self.work: "queue.Queue[str]" = queue.Queue(maxsize=scanner.config.workers * 2)
        self.events: "queue.Queue[ScanEvent]" = queue.Queue()
        self.walk_done = threading.Event()
        # An ignore entry containing the root would hide the whole walk; drop it
        self.ignored = tuple(p for p in scanner.ignored_paths if not _is_under(root, p))
        # Touched only by the walker thread, read after it is joined
        self.hits = 0
        self.misses = 0

    def execute(
        self,
        result: ScanResult,
        progress_callback: Optional[Callable[[DependencyFolder], None]] = None,
    ) -> None:
        workers = self.scanner.config.workers
        walker = threading.Thread(target=self._walk, name="depocleaner-walker", daemon=True)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="depocleaner-worker") as executor:
            futures = [executor.submit(self._worker) for _ in range(workers)]
            walker.start()

            def close_when_done() -> None:
                walker.join()
                wait(futures)
                self.events.put(_DONE)

            threading.Thread(target=close_when_done, name="depocleaner-closer", daemon=True).start()
            try:
                self._aggregate(result, progress_callback)
            except BaseException:
                # e.g. KeyboardInterrupt: stop the pool so shutdown does not hang
                self.cancel.set()
                raise

            for future in futures:
                exc = future.exception()
                if exc is not None:
                    logger.error("Scan worker crashed: %s", exc)

        walker.join()
        result.cache_hits = self.hits
        result.cache_misses = self.misses

    # -- walker --------------------------------------------------------------

    def _walk(self) -> None:
        try:
            self._walk_tree()
        except Exception:
            logger.exception("Filesystem walk of %s failed", self.root)
            self.events.put(FilesystemError(self.root, "filesystem walk failed").to_scan_error())
        finally:
            self.walk_done.set()
            logger.debug("Filesystem walk of %s finished", self.root)

    def _walk_tree(self) -> None:
        config = self.scanner.config

        if is_target(os.path.basename(self.root)):
            self._resolve_target(self.root, os.stat(self.root, follow_symlinks=False))
            return

        stack: list[tuple[str, int]] = [(self.root, 0)]
        while stack:
            if self.cancel.is_set():
                logger.info("Scan cancelled; walk stopped")
                return

            current, depth = stack.pop()
            child_depth = depth + 1
            if config.max_depth and child_depth > config.max_depth:
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                self._emit_error(from_os_error(current, e))
                continue

            for entry in entries:
                if self.cancel.is_set():
                    logger.info("Scan cancelled; walk stopped")
                    return

                try:
                    if not entry.is_dir(follow_symlinks=False):
                        continue
                except OSError:
                    continue

                if any(_is_under(entry.path, p) for p in self.ignored):
                    logger.debug("Ignoring %s", entry.path)
                    continue

                if is_target(entry.name):
                    try:
                        st = entry.stat(follow_symlinks=False)
                    except OSError as e:
                        self._emit_error(from_os_error(entry.path, e))
                        continue
                    # Targets are leaves: never descend into them
                    self._resolve_target(entry.path, st)
                else:
                    stack.append((entry.path, child_depth))

    def _resolve_target(self, path: str, st: os.stat_result) -> None:
        cache = self.scanner.cache
        mod_time = timestamp_from_ns(st.st_mtime_ns)

        if cache is not None and cache.is_valid(path, mod_time, st.st_mtime_ns):
            cached = cache.get(path)
            if cached is not None:
                self.hits += 1
                self.events.put(
                    DependencyFolder(
                        path=path,
                        size_bytes=cached.size,
                        mod_time=cached.mod_time,
                        access_time=resolve_access_time(st),
                        type=classify_type(os.path.basename(path)),
                        mod_time_ns=st.st_mtime_ns,
                    )
                )
                return

        self.misses += 1
        self._dispatch(path)

    def _dispatch(self, path: str) -> None:
        """Queue ``path`` for a worker, or analyze it here if every worker is busy."""
        try:
            self.work.put_nowait(path)
        except queue.Full:
            logger.debug("Work queue full; analyzing %s on the walker thread", path)
            self._analyze(path)

    # -- workers -------------------------------------------------------------

    def _worker(self) -> None:
        while not self.cancel.is_set():
            try:
                path = self.work.get(timeout=WORKER_POLL_INTERVAL)
            except queue.Empty:
                if self.walk_done.is_set() and self.work.empty():
                    return
                continue

            if self.cancel.is_set():
                return
            self._analyze(path)

    def _analyze(self, path: str) -> None:
        try:
            folder = self.scanner.analyzer.analyze(path, self.cancel)
        except ScanCancelled:
            return
        except DepocleanerError as e:
            self._emit_error(e)
            return
        except Exception as e:
            logger.exception("Unexpected error analyzing %s", path)
            self._emit_error(FilesystemError(path, str(e)))
            return

        cache = self.scanner.cache
        if cache is not None:
            cache.set(
                path,
                CacheEntry(
                    path=path,
                    size=folder.size_bytes,
                    mod_time=folder.mod_time,
                    mod_time_ns=folder.mod_time_ns,
                    last_scan=utc_now(),
                ),
            )
        self.events.put(folder)

    def _emit_error(self, error: DepocleanerError) -> None:
        self.events.put(error.to_scan_error())

    # -- aggregation ---------------------------------------------------------

    def _aggregate(
        self,
        result: ScanResult,
        progress_callback: Optional[Callable[[DependencyFolder], None]],
    ) -> None:
        while True:
            event = self.events.get()
            if event is _DONE:
                return
            if isinstance(event, ScanError):
                _log_scan_error(event)
                result.errors.append(event)
            elif isinstance(event, DependencyFolder):
                result.add_folder(event)
                if progress_callback:
                    progress_callback(event)


def _log_scan_error(error: ScanError) -> None:
    if error.error_type == ErrorType.PERMISSION_DENIED:
        logger.warning("Skipping inaccessible path: %s", error.path)
    elif error.error_type == ErrorType.NOT_FOUND:
        logger.warning("Path not found: %s", error.path)
    else:
        logger.warning("Error scanning path %s: %s", error.path, error.message)


class Scanner:
    """
    Finds target directories under a root and measures them in parallel.

    Args:
        config: Worker count, max depth and ignore list
        cache: Optional cache; when None every target is measured afresh
        analyzer: Size analyzer (replaceable for tests)
        save_cache: Flush the cache to disk once at the end of each scan
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        cache: Optional[CacheProvider] = None,
        analyzer: Optional[Analyzer] = None,
        save_cache: bool = True,
    ) -> None:
        self.config = config or ScannerConfig()
        self.cache = cache
        self.analyzer = analyzer or Analyzer()
        self.save_cache = save_cache
        self.ignored_paths = tuple(expand_path(p) for p in self.config.ignore_paths)

    def scan(
        self,
        root_path: str,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
        progress_callback: Optional[Callable[[DependencyFolder], None]] = None,
    ) -> ScanResult:
        """
        Scan ``root_path`` for dependency folders.

        Per-path failures are collected in ``ScanResult.errors`` and never
        abort the scan. Setting ``cancel`` (or hitting ``timeout`` seconds)
        stops the walk and the workers; whatever was aggregated so far is
        returned with ``cancelled=True``.

        Args:
            root_path: Directory to scan (may contain ~)
            cancel: Event that cancels the scan when set
            timeout: Optional scan-wide deadline in seconds
            progress_callback: Optional callback(folder) for each result

        Returns:
            ScanResult for the scan

        Raises:
            DepocleanerError: if the root itself cannot be read
        """
        root = expand_path(root_path)
        _check_root(root)

        cancel = cancel or threading.Event()
        timer: Optional[threading.Timer] = None
        if timeout is not None:
            timer = threading.Timer(timeout, cancel.set)
            timer.daemon = True
            timer.start()

        logger.info("Scanning %s with %d workers", root, self.config.workers)
        result = ScanResult(root_path=root, started_at=utc_now())
        started = time.monotonic()
        try:
            _ScanRun(self, root, cancel).execute(result, progress_callback)
        finally:
            if timer is not None:
                timer.cancel()

        result.duration_seconds = time.monotonic() - started
        result.cancelled = cancel.is_set()

        if self.cache is not None and self.save_cache:
            try:
                self.cache.save()
            except DepocleanerError as e:
                logger.warning("Failed to save cache: %s", e)

        logger.info(
            "Scan of %s found %d folders (%d bytes) in %.2fs; %d errors",
            root,
            result.total_count,
            result.total_size,
            result.duration_seconds,
            len(result.errors),
        )
        return result


def _check_root(root: str) -> None:
    """Raise if the walk cannot start at ``root``."""
    try:
        st = os.stat(root)
        if not stat.S_ISDIR(st.st_mode):
            raise InvalidPathError(root, "scan root is not a directory")
        with os.scandir(root):
            pass
    except OSError as e:
        raise from_os_error(root, e) from e
