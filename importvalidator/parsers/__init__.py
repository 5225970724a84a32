"""Parsers package.

Source parsing, specifier classification and the npm registry engine.
"""

from importvalidator.parsers.base import (
    BaseCodeParser,
    ConfigurationError,
    FetchError,
    PackageNotFoundError,
    ParseError,
    RecoverableError,
    ScanError,
    TransientFetchError,
)

__all__ = [
    "BaseCodeParser",
    "ConfigurationError",
    "FetchError",
    "PackageNotFoundError",
    "ParseError",
    "RecoverableError",
    "ScanError",
    "TransientFetchError",
]
