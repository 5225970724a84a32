"""Base code-parser interface and the shared exception hierarchy.

Every component of the validation pipeline raises subclasses of
``RecoverableError`` for expected failure conditions. Callers handle them by
skipping the current item (import, manifest, file) and continuing.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import requests

from importvalidator.models import ImportOccurrence

logger = logging.getLogger("importvalidator.parsers.base")


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================

class RecoverableError(Exception):
    """Base class for recoverable business errors.

    These errors indicate expected failure conditions that can be handled
    gracefully by skipping the current item and continuing processing.
    """
    pass


class ConfigurationError(RecoverableError):
    """Configuration file error - can skip current target and continue.

    Raised when a manifest (package.json) or a validator configuration file
    is malformed or contains invalid data.
    """
    pass


class ParseError(RecoverableError):
    """Source code parsing error - can skip current file and continue.

    Raised when a source code file cannot be parsed due to syntax errors
    or unsupported constructs.
    """
    pass


class FetchError(RecoverableError):
    """Registry lookup error - can skip current package and continue."""

    def __init__(self, package_name: str, message: str) -> None:
        super().__init__(f"{package_name}: {message}")
        self.package_name = package_name


class PackageNotFoundError(FetchError):
    """The registry answered definitively that the package does not exist.

    Never retried.
    """
    pass


class TransientFetchError(FetchError):
    """Timeout, connection failure or unexpected status; eligible for retry."""

    def __init__(
        self,
        package_name: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(package_name, message)
        self.status_code = status_code


class ScanError(RecoverableError):
    """The workspace could not be enumerated at all."""
    pass


# =============================================================================
# Exception Categories for Graceful Handling
# =============================================================================

# Network failures that a retry may cure.
TRANSIENT_NETWORK_ERRORS = (
    requests.Timeout,
    requests.ConnectionError,
)

# I/O errors - recoverable (file not found, permission denied, etc.)
IO_ERRORS = (
    OSError,
    UnicodeDecodeError,
)

# Expected per-file failures; anything else is logged with a traceback.
SAFE_FILE_ERRORS = IO_ERRORS + (RecoverableError, ValueError)


class BaseCodeParser(ABC):
    """Base class for code file parsers.

    Code parsers turn source text into an ordered list of raw import
    occurrences. ``parse`` must be safe to call from several threads at
    once and must never raise for malformed input.
    """

    NAME: str = "base_code"
    ECOSYSTEM: str = "base"
    SUFFIXES: List[str] = []

    @abstractmethod
    def parse(
        self, source_text: str, file_path: Optional[Path] = None
    ) -> List[ImportOccurrence]:
        """Extract import occurrences from source text.

        Args:
            source_text: Full text of the document.
            file_path: Optional path, used to pick a grammar.

        Returns:
            List[ImportOccurrence]: Occurrences in source order.
        """
        raise NotImplementedError

    def can_handle_file(self, file_path: Path) -> bool:
        """Check if this parser can handle the given file.

        Args:
            file_path: Path to file to check.

        Returns:
            bool: True if file extension matches SUFFIXES.
        """
        return file_path.suffix.lower() in self.SUFFIXES
