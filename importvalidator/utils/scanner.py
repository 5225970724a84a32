"""Workspace file enumeration using scandir and a generator pattern.

Supplies the candidate source files for workspace scans and the manifest
paths for the project-membership index.
"""

import fnmatch
import itertools
import logging
import os
from pathlib import Path
from typing import Generator, Iterable, List, Optional

from importvalidator.config.defaults import MANIFEST_FILENAME
from importvalidator.parsers.base import ScanError

logger = logging.getLogger("importvalidator.utils.scanner")

# Always pruned, whatever the configuration says.
ALWAYS_IGNORED = [".git", ".svn", ".hg", "node_modules/"]


def load_gitignore_patterns(root_path: Path) -> List[str]:
    """Load patterns from .gitignore in the root path.

    Negated entries (``!pattern``) are dropped; the scanner only prunes.
    """
    gitignore = root_path / ".gitignore"
    patterns: List[str] = []
    if not gitignore.is_file():
        return patterns
    try:
        with open(gitignore, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith(("#", "!")):
                    patterns.append(line.lstrip("/"))
    except OSError as exc:
        logger.debug("Failed to read .gitignore at %s: %s", gitignore, exc)
    return patterns


def is_excluded(rel_path: str, is_dir: bool, patterns: Iterable[str]) -> bool:
    """Check a workspace-relative POSIX path against exclude globs.

    Patterns ending in ``/`` only match directories; every pattern matches
    at any depth.
    """
    name = rel_path.rsplit("/", 1)[-1]
    for pattern in patterns:
        if pattern.endswith("/"):
            if not is_dir:
                continue
            pattern = pattern.rstrip("/")
        if (
            fnmatch.fnmatch(name, pattern)
            or fnmatch.fnmatch(rel_path, pattern)
            or fnmatch.fnmatch(rel_path, f"**/{pattern}")
        ):
            return True
    return False


def scan_files(
    root_path: Path,
    patterns: List[str],
    ignore_patterns: Optional[List[str]] = None,
) -> Generator[Path, None, None]:
    """Scan files matching patterns, respecting ignores.

    Args:
        root_path: Root directory to scan.
        patterns: Glob patterns to include (e.g. ['*.ts', 'package.json']).
        ignore_patterns: Glob patterns to prune.

    Yields:
        Path objects for matching files, in deterministic order.

    Raises:
        ScanError: If the root itself cannot be listed.
    """
    root_path = root_path.resolve()
    ignores = list(ignore_patterns or []) + ALWAYS_IGNORED

    try:
        root_entries = sorted(os.scandir(root_path), key=lambda e: e.name)
    except OSError as exc:
        raise ScanError(f"Cannot enumerate workspace {root_path}: {exc}") from exc

    pending = [(root_path, root_entries)]
    while pending:
        current_dir, entries = pending.pop()
        subdirs = []

        for entry in entries:
            path = Path(entry.path)
            rel = path.relative_to(root_path).as_posix()
            is_dir = entry.is_dir(follow_symlinks=False)

            if is_excluded(rel, is_dir, ignores):
                continue

            if is_dir:
                subdirs.append(path)
                continue

            if any(
                fnmatch.fnmatch(entry.name, pattern) or fnmatch.fnmatch(rel, pattern)
                for pattern in patterns
            ):
                yield path

        # Reversed so subdirectories are visited in name order.
        for subdir in reversed(subdirs):
            try:
                sub_entries = sorted(os.scandir(subdir), key=lambda e: e.name)
            except OSError as exc:
                logger.debug("Skipping unreadable directory %s: %s", subdir, exc)
                continue
            pending.append((subdir, sub_entries))


def list_candidate_files(
    root_path: Path,
    include_patterns: List[str],
    exclude_patterns: List[str],
    max_files: Optional[int] = None,
    use_gitignore: bool = True,
) -> List[Path]:
    """List source files for a workspace scan.

    Args:
        root_path: Workspace root.
        include_patterns: Globs selecting source files.
        exclude_patterns: Globs excluded from the scan.
        max_files: Optional cap on the number of returned files.
        use_gitignore: Also prune entries from the root ``.gitignore``.

    Returns:
        List[Path]: Candidate files, at most ``max_files`` of them.
    """
    ignores = list(exclude_patterns)
    if use_gitignore:
        ignores.extend(load_gitignore_patterns(root_path))

    files = scan_files(root_path, include_patterns, ignores)
    if max_files is not None:
        files = itertools.islice(files, max_files)
    result = list(files)
    logger.debug("Found %d candidate files under %s", len(result), root_path)
    return result


def find_manifests(root_path: Path) -> List[Path]:
    """Return every package.json under ``root_path`` outside node_modules."""
    return list(scan_files(root_path, [MANIFEST_FILENAME]))
