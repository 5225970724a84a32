"""Data models shared by the parser, registry and runtime packages."""

from .schema import (
    CacheEntry,
    Classification,
    DependencyType,
    ExistenceRecord,
    FileState,
    ImportOccurrence,
    ImportResult,
    ManifestChange,
    PackageMetadata,
    ProcessingStats,
    Resolution,
    ScanState,
    SourceSpan,
    SpecifierKind,
    SyntaxKind,
    UnusedDependency,
    now_millis,
)

__all__ = [
    "CacheEntry",
    "Classification",
    "DependencyType",
    "ExistenceRecord",
    "FileState",
    "ImportOccurrence",
    "ImportResult",
    "ManifestChange",
    "PackageMetadata",
    "ProcessingStats",
    "Resolution",
    "ScanState",
    "SourceSpan",
    "SpecifierKind",
    "SyntaxKind",
    "UnusedDependency",
    "now_millis",
]
