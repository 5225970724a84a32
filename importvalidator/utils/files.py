"""Helpers for reading workspace files."""

import logging
from pathlib import Path

logger = logging.getLogger("importvalidator.utils.files")


def read_source(path: Path) -> str:
    """Read a source file as text.

    Falls back to latin-1 for files that are not valid UTF-8, so a stray
    byte never hides a file's imports.

    Raises:
        OSError: If the file cannot be read.
    """
    data = Path(path).read_bytes()
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("%s is not valid UTF-8, decoding as latin-1", path)
        return data.decode("latin-1")


def file_mtime(path: Path) -> float:
    """Return the modification time of ``path`` in seconds."""
    return Path(path).stat().st_mtime
