"""Canonical data models for import validation.

Every record that crosses a component boundary (parser -> classifier ->
registry -> validator -> aggregator) is defined here. Records that are
persisted by the cache store expose ``to_dict()`` / ``from_dict()`` so the
store only ever sees plain JSON-compatible mappings.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


# =============================================================================
# Enums
# =============================================================================


class SyntaxKind(str, Enum):
    """Syntactic form an import was written in."""

    ES_IMPORT = "import"
    COMMONJS_REQUIRE = "require"
    TYPE_IMPORT = "type-import"


class SpecifierKind(str, Enum):
    """Outcome of specifier classification."""

    LOCAL = "local"
    EXTERNAL = "external"


class ScanState(str, Enum):
    """Lifecycle of a workspace scan."""

    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class DependencyType(str, Enum):
    """Manifest dependency classes that feed the membership index."""

    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    PEER_DEPENDENCIES = "peerDependencies"
    OPTIONAL_DEPENDENCIES = "optionalDependencies"


class ManifestChange(str, Enum):
    """Change notifications for manifest files."""

    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


def now_millis() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


# =============================================================================
# Parser / classifier records
# =============================================================================


@dataclass(frozen=True)
class SourceSpan:
    """Location of an import in its document.

    Lines are zero-based, columns are byte offsets within the line, which is
    what tree-sitter points report and what editors accept for ranges.
    """

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_col": self.start_col,
            "end_line": self.end_line,
            "end_col": self.end_col,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceSpan":
        return cls(
            start_line=int(data["start_line"]),
            start_col=int(data["start_col"]),
            end_line=int(data["end_line"]),
            end_col=int(data["end_col"]),
        )


@dataclass(frozen=True)
class ImportOccurrence:
    """A raw import found by the source parser, before classification."""

    specifier: str
    span: SourceSpan
    kind: SyntaxKind


@dataclass(frozen=True)
class Classification:
    """Tagged result of classifying a specifier.

    ``package_name`` is set only for external specifiers and always holds the
    root package name (``pkg`` or ``@scope/pkg``).
    """

    kind: SpecifierKind
    package_name: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.kind is SpecifierKind.LOCAL

    @property
    def is_external(self) -> bool:
        return self.kind is SpecifierKind.EXTERNAL

    @classmethod
    def local(cls) -> "Classification":
        return cls(SpecifierKind.LOCAL)

    @classmethod
    def external(cls, package_name: str) -> "Classification":
        return cls(SpecifierKind.EXTERNAL, package_name)


# =============================================================================
# Registry records
# =============================================================================


@dataclass(frozen=True)
class PackageMetadata:
    """Registry metadata for a package. Immutable once constructed."""

    name: str
    latest_version: str = ""
    description: str = ""
    homepage: str = ""
    repository_url: str = ""
    license: str = "Unknown"
    author: str = ""
    keywords: Tuple[str, ...] = ()
    monthly_downloads: int = 0
    is_project_dependency: bool = False

    @classmethod
    def minimal(cls, name: str, declared_version: str) -> "PackageMetadata":
        """Build the synthetic record used when a declared dependency cannot
        be fetched from the registry."""
        return cls(
            name=name,
            latest_version=declared_version,
            description="Package found in project dependencies",
            license="Unknown",
            monthly_downloads=0,
            is_project_dependency=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "latest_version": self.latest_version,
            "description": self.description,
            "homepage": self.homepage,
            "repository_url": self.repository_url,
            "license": self.license,
            "author": self.author,
            "keywords": list(self.keywords),
            "monthly_downloads": self.monthly_downloads,
            "is_project_dependency": self.is_project_dependency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageMetadata":
        return cls(
            name=data["name"],
            latest_version=data.get("latest_version", ""),
            description=data.get("description", ""),
            homepage=data.get("homepage", ""),
            repository_url=data.get("repository_url", ""),
            license=data.get("license", "Unknown"),
            author=data.get("author", ""),
            keywords=tuple(data.get("keywords") or ()),
            monthly_downloads=int(data.get("monthly_downloads", 0)),
            is_project_dependency=bool(data.get("is_project_dependency", False)),
        )


@dataclass(frozen=True)
class ExistenceRecord:
    """Value stored in the existence cache.

    Metadata is intentionally absent: download counts and descriptions
    change, so they are refetched when needed.
    """

    exists: bool
    is_project_dependency: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {"exists": self.exists, "is_project_dependency": self.is_project_dependency}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExistenceRecord":
        return cls(
            exists=bool(data["exists"]),
            is_project_dependency=bool(data.get("is_project_dependency", False)),
        )


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one package name against the registry."""

    exists: bool
    metadata: Optional[PackageMetadata] = None


# =============================================================================
# Validation output
# =============================================================================


@dataclass(frozen=True)
class ImportResult:
    """Validation result for one import occurrence."""

    import_name: str
    span: SourceSpan
    exists_on_registry: bool
    package_metadata: Optional[PackageMetadata]
    kind: SyntaxKind
    is_framework_package: bool = False
    is_project_dependency: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "import_name": self.import_name,
            "span": self.span.to_dict(),
            "exists_on_registry": self.exists_on_registry,
            "package_metadata": (
                self.package_metadata.to_dict() if self.package_metadata else None
            ),
            "kind": self.kind.value,
            "is_framework_package": self.is_framework_package,
            "is_project_dependency": self.is_project_dependency,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportResult":
        metadata = data.get("package_metadata")
        return cls(
            import_name=data["import_name"],
            span=SourceSpan.from_dict(data["span"]),
            exists_on_registry=bool(data["exists_on_registry"]),
            package_metadata=PackageMetadata.from_dict(metadata) if metadata else None,
            kind=SyntaxKind(data["kind"]),
            is_framework_package=bool(data.get("is_framework_package", False)),
            is_project_dependency=bool(data.get("is_project_dependency", False)),
        )


# =============================================================================
# Caching
# =============================================================================


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value stamped with the epoch-millis time it was stored."""

    value: T
    timestamp: int

    def is_fresh(self, now_ms: int, timeout_seconds: float) -> bool:
        """Entries are valid while ``now - timestamp < timeout``."""
        return now_ms - self.timestamp < timeout_seconds * 1000


# =============================================================================
# Statistics and reports
# =============================================================================


@dataclass
class ProcessingStats:
    """Counters accumulated by the workspace aggregator."""

    total_files: int = 0
    processed_files: int = 0
    skipped_files: int = 0
    unchanged_files: int = 0
    total_imports: int = 0
    valid_imports: int = 0
    invalid_imports: int = 0
    framework_imports: int = 0
    project_imports: int = 0
    processing_time_ms: float = 0.0
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processing_percentage: int = 0
    error_files: List[str] = field(default_factory=list)

    def copy(self) -> "ProcessingStats":
        return ProcessingStats.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "processed_files": self.processed_files,
            "skipped_files": self.skipped_files,
            "unchanged_files": self.unchanged_files,
            "total_imports": self.total_imports,
            "valid_imports": self.valid_imports,
            "invalid_imports": self.invalid_imports,
            "framework_imports": self.framework_imports,
            "project_imports": self.project_imports,
            "processing_time_ms": self.processing_time_ms,
            "last_updated": self.last_updated.isoformat(),
            "processing_percentage": self.processing_percentage,
            "error_files": list(self.error_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessingStats":
        last_updated = data.get("last_updated")
        return cls(
            total_files=int(data.get("total_files", 0)),
            processed_files=int(data.get("processed_files", 0)),
            skipped_files=int(data.get("skipped_files", 0)),
            unchanged_files=int(data.get("unchanged_files", 0)),
            total_imports=int(data.get("total_imports", 0)),
            valid_imports=int(data.get("valid_imports", 0)),
            invalid_imports=int(data.get("invalid_imports", 0)),
            framework_imports=int(data.get("framework_imports", 0)),
            project_imports=int(data.get("project_imports", 0)),
            processing_time_ms=float(data.get("processing_time_ms", 0.0)),
            last_updated=(
                datetime.fromisoformat(last_updated)
                if last_updated
                else datetime.now(timezone.utc)
            ),
            processing_percentage=int(data.get("processing_percentage", 0)),
            error_files=list(data.get("error_files") or []),
        )


@dataclass
class UnusedDependency:
    """Detailed unused-dependency entry."""

    name: str
    version: str
    dependency_type: DependencyType
    manifests: List[str] = field(default_factory=list)


@dataclass
class FileState:
    """Per-file bookkeeping used for changed-only scans and unused analysis."""

    mtime: float
    import_names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"mtime": self.mtime, "import_names": list(self.import_names)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileState":
        return cls(
            mtime=float(data.get("mtime", 0.0)),
            import_names=list(data.get("import_names") or []),
        )
