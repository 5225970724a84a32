"""Workspace aggregator and statistics engine.

Drives document validation across many files in fixed-size concurrent
batches, folds the results into ``ProcessingStats``, supports cooperative
cancellation and changed-only scans, and feeds the unused-dependency
analysis from the per-file import lists it records.
"""

import itertools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from importvalidator.analysis.unused import UnusedDependencyAnalyzer
from importvalidator.config import ValidatorConfig
from importvalidator.models import (
    FileState,
    ImportResult,
    ProcessingStats,
    ScanState,
    UnusedDependency,
    now_millis,
)
from importvalidator.parsers.base import SAFE_FILE_ERRORS, ScanError
from importvalidator.parsers.npm.manifest import ProjectMembershipIndex
from importvalidator.runtime.validator import DocumentValidator
from importvalidator.storage import CacheStore
from importvalidator.utils.files import file_mtime, read_source

logger = logging.getLogger("importvalidator.runtime.aggregator")

FILES_NAMESPACE = "files"
STATS_NAMESPACE = "stats"
STATS_KEY = "current"

ProgressCallback = Callable[[int, int], None]
CountKey = Tuple[str, str, str]


def _file_key(path: Path) -> str:
    """Absolute, symlink-free key so one file is tracked under one name."""
    return str(Path(path).resolve())


def _document_key(document_id: str) -> str:
    if Path(document_id).is_file():
        return _file_key(Path(document_id))
    return document_id


class WorkspaceAggregator:
    """Accumulates validation statistics across a workspace.

    File counters (``total_files``, ``processed_files``, ``skipped_files``,
    ``unchanged_files``, ``error_files``) describe the latest scan. Import
    counters accumulate for the whole session, each
    ``(file, import_name, kind)`` tuple counted once, until
    ``reset_stats``.
    """

    def __init__(
        self,
        config: ValidatorConfig,
        validator: DocumentValidator,
        membership: Optional[ProjectMembershipIndex] = None,
        store: Optional[CacheStore] = None,
        read_text: Callable[[Path], str] = read_source,
        get_mtime: Callable[[Path], float] = file_mtime,
    ) -> None:
        self.config = config
        self.validator = validator
        self.membership = membership if membership is not None else ProjectMembershipIndex()
        self._store = store
        self._read_text = read_text
        self._get_mtime = get_mtime

        self._stats_lock = threading.Lock()
        self._scan_lock = threading.Lock()
        self._queue_lock = threading.Lock()
        self._cancel_event = threading.Event()

        self._in_flight: Set[str] = set()
        self._counted: Set[CountKey] = set()
        self._file_states: Dict[str, FileState] = {}
        self._stats = ProcessingStats()
        self.state = ScanState.IDLE

        if store is not None:
            self._load_persisted()

    # ==========================================================================
    # Scanning
    # ==========================================================================

    def scan(
        self,
        candidate_files: Iterable[Path],
        force_reprocess: bool = False,
        only_changed: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ProcessingStats:
        """Validate a set of workspace files.

        Args:
            candidate_files: Files to validate; at most ``max_files`` are
                taken.
            force_reprocess: Ignore cached document results.
            only_changed: Skip files unchanged since they were last
                processed.
            progress_callback: Called with ``(done, total)`` after each batch.

        Returns:
            ProcessingStats: Snapshot of the statistics when the scan ended.
            A scan requested while another runs returns the current
            statistics without doing any work.

        Raises:
            ScanError: If the candidate files cannot be enumerated.
        """
        if not self._scan_lock.acquire(blocking=False):
            logger.info("Scan already in progress, returning current stats")
            return self.get_stats()

        try:
            self._cancel_event.clear()
            self.state = ScanState.SCANNING
            started = time.monotonic()

            try:
                files = list(itertools.islice(candidate_files, self.config.max_files))
            except OSError as e:
                self.state = ScanState.FAILED
                raise ScanError(f"Cannot enumerate candidate files: {e}") from e
            except ScanError:
                self.state = ScanState.FAILED
                raise

            with self._stats_lock:
                stats = self._stats
                stats.total_files = len(files)
                stats.processed_files = 0
                stats.skipped_files = 0
                stats.unchanged_files = 0
                stats.error_files = []
                stats.processing_percentage = 0

            if only_changed and not force_reprocess:
                files = self._filter_changed(files)

            logger.info("Scanning %d file(s) in batches of %d", len(files), self.config.batch_size)
            cancelled = self._run_batches(files, force_reprocess, progress_callback)

            with self._stats_lock:
                self._stats.processing_time_ms = (time.monotonic() - started) * 1000.0
                self._stats.last_updated = datetime.now(timezone.utc)
                if not cancelled:
                    self._stats.processing_percentage = 100
            self._persist_stats()

            self.state = ScanState.CANCELLED if cancelled else ScanState.COMPLETED
            snapshot = self.get_stats()
            logger.info(
                "Scan %s: %d processed, %d skipped, %d unchanged, %d imports (%d invalid)",
                self.state.value,
                snapshot.processed_files,
                snapshot.skipped_files,
                snapshot.unchanged_files,
                snapshot.total_imports,
                snapshot.invalid_imports,
            )
            return snapshot
        except ScanError:
            raise
        except Exception:
            self.state = ScanState.FAILED
            logger.exception("Workspace scan failed")
            raise
        finally:
            self._scan_lock.release()

    def _run_batches(
        self,
        files: List[Path],
        force_reprocess: bool,
        progress_callback: Optional[ProgressCallback],
    ) -> bool:
        """Process ``files`` batch by batch. Returns True if cancelled."""
        if not files:
            return False

        batch_size = self.config.batch_size
        total = len(files)
        done = 0

        with ThreadPoolExecutor(max_workers=batch_size, thread_name_prefix="scan") as executor:
            for start in range(0, total, batch_size):
                if self._cancel_event.is_set():
                    logger.info("Scan cancelled after %d/%d file(s)", done, total)
                    return True

                batch = files[start : start + batch_size]
                futures = [
                    executor.submit(self._process_scheduled, path, force_reprocess)
                    for path in batch
                ]
                done += sum(1 for future in futures if future.result())

                with self._stats_lock:
                    self._stats.processing_percentage = int(done * 100 / total)
                    self._stats.last_updated = datetime.now(timezone.utc)
                self._persist_stats()

                if progress_callback is not None:
                    progress_callback(done, total)

        return self._cancel_event.is_set() and done < total

    def _process_scheduled(self, path: Path, force_reprocess: bool) -> bool:
        """Process one scheduled file. Returns False when cancellation skipped it."""
        if self._cancel_event.is_set():
            return False
        self._process_file(path, force_reprocess)
        return True

    def _filter_changed(self, files: List[Path]) -> List[Path]:
        changed = []
        for path in files:
            state = self._file_states.get(_file_key(path))
            if state is None:
                changed.append(path)
                continue
            try:
                mtime = self._get_mtime(path)
            except OSError:
                changed.append(path)
                continue
            if mtime > state.mtime:
                changed.append(path)

        unchanged = len(files) - len(changed)
        with self._stats_lock:
            self._stats.unchanged_files += unchanged
        logger.info("%d changed file(s), %d unchanged", len(changed), unchanged)
        return changed

    def cancel(self) -> None:
        """Stop admitting new work. In-flight files finish normally."""
        if self.state is ScanState.SCANNING:
            logger.info("Cancellation requested")
        self._cancel_event.set()

    @property
    def is_scanning(self) -> bool:
        return self.state is ScanState.SCANNING

    # ==========================================================================
    # Single files and documents
    # ==========================================================================

    def validate_file(
        self, path: Path, force_reprocess: bool = False
    ) -> Optional[List[ImportResult]]:
        """Validate one file and fold its results into the statistics.

        Returns:
            Optional[List[ImportResult]]: Results, or None when the file is
            already being processed or could not be processed.
        """
        return self._process_file(Path(path), force_reprocess)

    def validate_document(self, source_text: str, document_id: str) -> List[ImportResult]:
        """Validate in-memory text (e.g. an unsaved editor buffer) and count it."""
        key = _document_key(document_id)
        results = self.validator.validate_document(source_text, key)
        try:
            mtime = self._get_mtime(Path(key))
        except OSError:
            mtime = 0.0
        self._record(key, mtime, results, count_file=False)
        return results

    def _process_file(self, path: Path, force_reprocess: bool) -> Optional[List[ImportResult]]:
        key = _file_key(path)
        with self._queue_lock:
            if key in self._in_flight:
                logger.debug("%s is already being processed, skipping", key)
                return None
            self._in_flight.add(key)

        try:
            mtime = self._get_mtime(path)
            state = self._file_states.get(key)
            results = None
            if not force_reprocess and state is not None and state.mtime == mtime:
                results = self.validator.get_cached(key)

            if results is None:
                self.validator.invalidate(key)
                text = self._read_text(path)
                results = self.validator.validate_document(text, key, use_cache=False)

            self._record(key, mtime, results, count_file=True)
            return results
        except SAFE_FILE_ERRORS as e:
            logger.warning("Failed to process %s: %s", key, e)
            self._mark_failed(key)
            return None
        except Exception:
            logger.exception("Unexpected error processing %s", key)
            self._mark_failed(key)
            return None
        finally:
            with self._queue_lock:
                self._in_flight.discard(key)

    def _mark_failed(self, key: str) -> None:
        with self._stats_lock:
            self._stats.skipped_files += 1
            if key not in self._stats.error_files:
                self._stats.error_files.append(key)

    def _record(
        self, key: str, mtime: float, results: List[ImportResult], count_file: bool
    ) -> None:
        state = FileState(mtime, sorted({result.import_name for result in results}))
        with self._stats_lock:
            self._file_states[key] = state
            for result in results:
                self._count_result(key, result)
            if count_file:
                self._stats.processed_files += 1
            if key in self._stats.error_files:
                self._stats.error_files.remove(key)
            self._stats.last_updated = datetime.now(timezone.utc)

        if self._store is not None:
            self._store.set(FILES_NAMESPACE, key, state.to_dict(), now_millis())

    def _count_result(self, key: str, result: ImportResult) -> None:
        """Count one result unless its tuple was already counted. Caller holds the lock."""
        count_key = (key, result.import_name, result.kind.value)
        if count_key in self._counted:
            return
        self._counted.add(count_key)

        stats = self._stats
        stats.total_imports += 1
        if result.exists_on_registry:
            stats.valid_imports += 1
        elif not result.is_framework_package:
            stats.invalid_imports += 1
        if result.is_framework_package:
            stats.framework_imports += 1
        if result.is_project_dependency:
            stats.project_imports += 1

    # ==========================================================================
    # Statistics
    # ==========================================================================

    def get_stats(self) -> ProcessingStats:
        with self._stats_lock:
            return self._stats.copy()

    def get_error_files(self) -> List[str]:
        with self._stats_lock:
            return list(self._stats.error_files)

    def reset_stats(self) -> None:
        """Zero every counter and forget which imports were counted."""
        with self._stats_lock:
            self._stats = ProcessingStats()
            self._counted.clear()
        self._persist_stats()
        logger.info("Statistics reset")

    def recalculate_stats(self) -> ProcessingStats:
        """Rebuild the import counters from cached per-file results.

        Files whose cached results have expired no longer contribute.
        """
        with self._stats_lock:
            self._recount_locked()
        self._persist_stats()
        return self.get_stats()

    def _recount_locked(self) -> None:
        stats = self._stats
        stats.total_imports = 0
        stats.valid_imports = 0
        stats.invalid_imports = 0
        stats.framework_imports = 0
        stats.project_imports = 0
        self._counted.clear()
        for key in list(self._file_states):
            for result in self.validator.get_cached(key) or []:
                self._count_result(key, result)
        stats.last_updated = datetime.now(timezone.utc)

    def get_all_imports(self) -> Set[str]:
        """Root package names imported anywhere in the validated files."""
        with self._stats_lock:
            states = list(self._file_states.values())
        names: Set[str] = set()
        for state in states:
            names.update(state.import_names)
        return names

    def get_file_imports(self, path: str) -> List[ImportResult]:
        return self.validator.get_cached(_document_key(str(path))) or []

    def prune_missing_files(self) -> List[str]:
        """Forget per-file state for files deleted since they were validated.

        Only absolute keys are checked; in-memory documents identified by a
        bare name or URI are kept.

        Returns:
            List[str]: Keys that were dropped.
        """
        with self._stats_lock:
            keys = [key for key in self._file_states if Path(key).is_absolute()]

        missing = []
        for key in keys:
            try:
                self._get_mtime(Path(key))
            except OSError:
                missing.append(key)
        if not missing:
            return []

        with self._stats_lock:
            for key in missing:
                self._file_states.pop(key, None)
        for key in missing:
            self.validator.invalidate(key)
            if self._store is not None:
                self._store.delete(FILES_NAMESPACE, key)
        logger.info("Dropped state for %d deleted file(s)", len(missing))
        return missing

    # ==========================================================================
    # Unused dependencies
    # ==========================================================================

    def find_unused_dependency_details(self) -> List[UnusedDependency]:
        self.prune_missing_files()
        self.membership.reload()
        return UnusedDependencyAnalyzer(self.membership).analyze(self.get_all_imports())

    def find_unused_dependencies(self) -> Dict[str, str]:
        """Declared dependencies never imported by any validated file.

        Returns:
            Dict[str, str]: Package name -> declared version.
        """
        return {dep.name: dep.version for dep in self.find_unused_dependency_details()}

    # ==========================================================================
    # Persistence
    # ==========================================================================

    def clear_caches(self) -> None:
        """Drop cached document results, per-file state and statistics."""
        self.validator.clear_cache()
        with self._stats_lock:
            self._file_states.clear()
        if self._store is not None:
            self._store.clear(FILES_NAMESPACE)
        self.reset_stats()

    def _persist_stats(self) -> None:
        if self._store is None:
            return
        snapshot = self.get_stats()
        self._store.set(STATS_NAMESPACE, STATS_KEY, snapshot.to_dict(), now_millis())

    def _load_persisted(self) -> None:
        for key, data, _ in self._store.items(FILES_NAMESPACE):
            self._file_states[key] = FileState.from_dict(data)

        persisted = self._store.get(STATS_NAMESPACE, STATS_KEY)
        if persisted is not None:
            self._stats = ProcessingStats.from_dict(persisted[0])
        # Rebuild the counted set so a new scan never counts restored imports twice.
        self._recount_locked()
        logger.debug(
            "Restored %d file state(s) and statistics from %s",
            len(self._file_states),
            self._store.db_path,
        )
