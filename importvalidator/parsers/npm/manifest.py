"""Project-membership index built from package.json manifests.

Unions the dependency maps of every manifest in the workspace into one
name -> declared version index. The index is always rebuilt wholesale;
change notifications trigger a full reload rather than a patch.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set

from importvalidator.models import DependencyType, ManifestChange
from importvalidator.parsers.base import IO_ERRORS, ConfigurationError

logger = logging.getLogger("importvalidator.parsers.npm.manifest")

DEPENDENCY_FIELDS = (
    DependencyType.DEPENDENCIES,
    DependencyType.DEV_DEPENDENCIES,
    DependencyType.PEER_DEPENDENCIES,
    DependencyType.OPTIONAL_DEPENDENCIES,
)

ManifestProvider = Callable[[], Sequence[Path]]


@dataclass
class DeclaredDependency:
    """One package name as declared across the workspace manifests."""

    name: str
    version: str
    dependency_type: DependencyType
    manifests: List[Path] = field(default_factory=list)
    dependency_types: Set[DependencyType] = field(default_factory=set)


def load_manifest(path: Path) -> Dict[str, object]:
    """Load and sanity-check one package.json.

    Args:
        path: Manifest path.

    Returns:
        Dict: Parsed manifest object.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or not an
            object.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    except IO_ERRORS as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} does not contain a JSON object")
    return data


class ProjectMembershipIndex:
    """Name -> declared version map across every workspace manifest.

    Readers never block on a reload: a new index is built off to the side
    and swapped in under a short lock.
    """

    def __init__(self, manifest_provider: Optional[ManifestProvider] = None) -> None:
        """Initialize the index.

        Args:
            manifest_provider: Callable returning the current manifest paths.
                Without one, ``reload`` needs explicit paths.
        """
        self._provider = manifest_provider
        self._lock = threading.Lock()
        self._entries: Dict[str, DeclaredDependency] = {}
        self._manifests: List[Path] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_project_dependency(self, name: str) -> bool:
        return name in self._entries

    def declared_version(self, name: str) -> Optional[str]:
        entry = self._entries.get(name)
        return entry.version if entry else None

    def get(self, name: str) -> Optional[DeclaredDependency]:
        return self._entries.get(name)

    def versions(self) -> Dict[str, str]:
        """Return a copy of the name -> declared version mapping."""
        return {name: entry.version for name, entry in self._entries.items()}

    def entries(self) -> List[DeclaredDependency]:
        return list(self._entries.values())

    def peer_names(self) -> Set[str]:
        """Names declared as a peer dependency in at least one manifest."""
        return {
            name
            for name, entry in self._entries.items()
            if DependencyType.PEER_DEPENDENCIES in entry.dependency_types
        }

    @property
    def manifests(self) -> List[Path]:
        return list(self._manifests)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    # ------------------------------------------------------------------
    # Rebuild
    # ------------------------------------------------------------------

    def reload(self, manifest_paths: Optional[Sequence[Path]] = None) -> int:
        """Rebuild the index from scratch.

        Args:
            manifest_paths: Manifests to read, in discovery order. Defaults
                to the injected provider.

        Returns:
            int: Number of distinct package names indexed.
        """
        if manifest_paths is None:
            manifest_paths = self._provider() if self._provider else self._manifests

        entries: Dict[str, DeclaredDependency] = {}
        loaded: List[Path] = []

        for path in manifest_paths:
            try:
                manifest = load_manifest(path)
            except ConfigurationError as e:
                logger.warning("Skipping manifest: %s", e)
                continue
            loaded.append(Path(path))
            self._merge_manifest(entries, manifest, Path(path))

        with self._lock:
            self._entries = entries
            self._manifests = loaded

        logger.info(
            "Indexed %d dependencies from %d manifest(s)", len(entries), len(loaded)
        )
        return len(entries)

    def _merge_manifest(
        self,
        entries: Dict[str, DeclaredDependency],
        manifest: Dict[str, object],
        path: Path,
    ) -> None:
        for dep_type in DEPENDENCY_FIELDS:
            deps = manifest.get(dep_type.value)
            if not isinstance(deps, dict):
                continue
            for name, version in deps.items():
                version_str = version if isinstance(version, str) else str(version)
                entry = entries.get(name)
                if entry is None:
                    entry = DeclaredDependency(name, version_str, dep_type)
                    entries[name] = entry
                else:
                    # Last discovered declaration wins.
                    entry.version = version_str
                    entry.dependency_type = dep_type
                entry.dependency_types.add(dep_type)
                if path not in entry.manifests:
                    entry.manifests.append(path)

    def notify_manifest_changed(self, path: Path, change: ManifestChange) -> int:
        """Handle a manifest create/change/delete notification.

        Every kind of change triggers a full rebuild.
        """
        logger.debug("Manifest %s: %s, rebuilding index", change.value, path)
        if self._provider is not None:
            return self.reload()

        manifests = [m for m in self._manifests if m != Path(path)]
        if change is not ManifestChange.DELETED:
            manifests.append(Path(path))
        return self.reload(manifests)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def remove_dependencies(self, names: Sequence[str]) -> Dict[Path, List[str]]:
        """Delete dependencies from every manifest that declares them.

        Peer dependencies are left untouched. The index is rebuilt
        afterwards.

        Args:
            names: Package names to remove.

        Returns:
            Dict[Path, List[str]]: Removed names per rewritten manifest.
        """
        targets = set(names)
        removed: Dict[Path, List[str]] = {}

        for path in list(self._manifests):
            try:
                manifest = load_manifest(path)
            except ConfigurationError as e:
                logger.warning("Cannot edit manifest: %s", e)
                continue

            dropped: List[str] = []
            for dep_type in DEPENDENCY_FIELDS:
                if dep_type is DependencyType.PEER_DEPENDENCIES:
                    continue
                deps = manifest.get(dep_type.value)
                if not isinstance(deps, dict):
                    continue
                for name in sorted(targets.intersection(deps)):
                    del deps[name]
                    dropped.append(name)

            if not dropped:
                continue
            try:
                path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
            except OSError as e:
                logger.error("Failed to write %s: %s", path, e)
                continue
            removed[path] = dropped
            logger.info("Removed %s from %s", ", ".join(dropped), path)

        if removed:
            self.reload(self._manifests)
        return removed
