"""Filesystem utilities for importvalidator."""

from .files import file_mtime, read_source
from .scanner import find_manifests, list_candidate_files, load_gitignore_patterns, scan_files

__all__ = [
    "file_mtime",
    "find_manifests",
    "list_candidate_files",
    "load_gitignore_patterns",
    "read_source",
    "scan_files",
]
