"""Library-facing service that wires the validation pipeline together.

``ImportValidatorService`` owns one instance of every component (registry
client, membership index, document validator, workspace aggregator) and
the optional persistent store, and exposes the operations the CLI and
other front ends call.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

import requests

from importvalidator.config import ValidatorConfig
from importvalidator.models import (
    ImportResult,
    ManifestChange,
    PackageMetadata,
    ProcessingStats,
    ScanState,
    UnusedDependency,
    now_millis,
)
from importvalidator.parsers.base import ScanError
from importvalidator.parsers.npm.manifest import ManifestProvider, ProjectMembershipIndex
from importvalidator.parsers.npm.registry import RegistryClient
from importvalidator.parsers.npm.specifier import classify
from importvalidator.runtime.aggregator import ProgressCallback, WorkspaceAggregator
from importvalidator.runtime.validator import DocumentValidator, diagnostic_severity
from importvalidator.storage import CacheStore
from importvalidator.utils.scanner import find_manifests, list_candidate_files

logger = logging.getLogger("importvalidator.runtime.api")


class ImportValidatorService:
    """Entry point for validating npm imports in a workspace."""

    def __init__(
        self,
        workspace_root: Optional[Path] = None,
        config: Optional[ValidatorConfig] = None,
        store: Optional[CacheStore] = None,
        session: Optional[requests.Session] = None,
        manifest_provider: Optional[ManifestProvider] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        """Create the service.

        Args:
            workspace_root: Root used for candidate-file and manifest
                discovery. Optional when only documents are validated.
            config: Validator configuration. Defaults to built-in defaults.
            store: Persistent cache store. When omitted and
                ``config.cache_dir`` is set, one is opened there.
            session: HTTP session for registry requests.
            manifest_provider: Overrides manifest discovery.
            sleep: Retry backoff sleep, injectable for tests.
            clock: Epoch-millisecond clock, injectable for tests.
        """
        self.workspace_root = Path(workspace_root).resolve() if workspace_root else None
        self.config = config or ValidatorConfig.default()

        if store is None and self.config.cache_dir:
            store = CacheStore.in_directory(Path(self.config.cache_dir).expanduser())
        self.store = store

        if manifest_provider is None and self.workspace_root is not None:
            root = self.workspace_root
            manifest_provider = lambda: find_manifests(root)  # noqa: E731
        self.membership = ProjectMembershipIndex(manifest_provider)
        if manifest_provider is not None:
            self.reload_manifests()

        self.registry = RegistryClient(
            self.config,
            membership=self.membership,
            session=session,
            store=store,
            sleep=sleep,
            clock=clock,
        )
        self.validator = DocumentValidator(
            self.config, self.registry, self.membership, store=store, clock=clock
        )
        self.aggregator = WorkspaceAggregator(
            self.config, self.validator, self.membership, store=store
        )

    # ==========================================================================
    # Validation
    # ==========================================================================

    def validate_document(self, source_text: str, document_id: str) -> List[ImportResult]:
        """Validate in-memory source text identified by ``document_id``."""
        return self.aggregator.validate_document(source_text, document_id)

    def validate_file(
        self, path: Path, force_reprocess: bool = False
    ) -> Optional[List[ImportResult]]:
        """Validate one file on disk.

        Returns:
            Optional[List[ImportResult]]: None when the file could not be
            processed (see ``get_error_files``) or is already in flight.
        """
        return self.aggregator.validate_file(Path(path), force_reprocess)

    def list_candidate_files(self) -> List[Path]:
        if self.workspace_root is None:
            raise ScanError("No workspace root configured")
        return list_candidate_files(
            self.workspace_root,
            self.config.include_patterns,
            self.config.exclude_patterns,
            max_files=self.config.max_files,
        )

    def scan_workspace(
        self,
        only_changed: bool = False,
        force_reprocess: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        candidate_files: Optional[Iterable[Path]] = None,
    ) -> ProcessingStats:
        """Validate every candidate file in the workspace.

        Raises:
            ScanError: If the workspace cannot be enumerated.
        """
        if self.aggregator.is_scanning:
            return self.aggregator.get_stats()
        if candidate_files is None:
            candidate_files = self.list_candidate_files()
        self.reload_manifests()
        return self.aggregator.scan(
            candidate_files,
            force_reprocess=force_reprocess,
            only_changed=only_changed,
            progress_callback=progress_callback,
        )

    def cancel_scan(self) -> None:
        self.aggregator.cancel()

    @property
    def scan_state(self) -> ScanState:
        return self.aggregator.state

    def severity_for(self, result: ImportResult) -> Optional[str]:
        return diagnostic_severity(result, self.config)

    # ==========================================================================
    # Statistics and queries
    # ==========================================================================

    def get_stats(self) -> ProcessingStats:
        return self.aggregator.get_stats()

    def get_error_files(self) -> List[str]:
        return self.aggregator.get_error_files()

    def reset_stats(self) -> None:
        self.aggregator.reset_stats()

    def recalculate_stats(self) -> ProcessingStats:
        return self.aggregator.recalculate_stats()

    def get_all_imports(self) -> Set[str]:
        return self.aggregator.get_all_imports()

    def get_file_imports(self, path: str) -> List[ImportResult]:
        return self.aggregator.get_file_imports(path)

    def get_package_info(self, name: str) -> Optional[PackageMetadata]:
        """Registry metadata for one package, None if it does not exist."""
        return self.registry.get_package_info(name)

    # ==========================================================================
    # Manifests and unused dependencies
    # ==========================================================================

    def reload_manifests(self) -> int:
        try:
            return self.membership.reload()
        except ScanError as e:
            logger.warning("Manifest discovery failed: %s", e)
            return len(self.membership)

    def on_manifest_changed(self, path: Path, change: ManifestChange) -> None:
        """Rebuild the membership index after a manifest changed.

        Cached document results carry project-membership flags, so they are
        dropped as well.
        """
        try:
            self.membership.notify_manifest_changed(Path(path), change)
        except ScanError as e:
            logger.warning("Manifest discovery failed: %s", e)
        self.validator.clear_cache()

    def find_unused_dependencies(self) -> Dict[str, str]:
        return self.aggregator.find_unused_dependencies()

    def find_unused_dependency_details(self) -> List[UnusedDependency]:
        return self.aggregator.find_unused_dependency_details()

    def remove_dependencies(self, names: Iterable[str]) -> Dict[Path, List[str]]:
        """Remove dependencies from the manifests that declare them."""
        removed = self.membership.remove_dependencies(list(names))
        if removed:
            self.validator.clear_cache()
        return removed

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def clear_caches(self) -> None:
        """Clear document, existence and per-file caches plus statistics."""
        self.aggregator.clear_caches()
        self.registry.clear_cache()
        classify.cache_clear()
        logger.info("All caches cleared")

    def close(self) -> None:
        self.registry.close()
        if self.store is not None:
            self.store.close_all()

    def __enter__(self) -> "ImportValidatorService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
