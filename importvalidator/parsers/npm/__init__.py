"""NPM ecosystem package.

This package provides import validation for Node.js/npm projects,
including:
- JavaScript/TypeScript code parsing for import/require extraction
- Specifier classification (local code vs npm packages)
- Framework package detection
- package.json membership indexing
- npm registry lookups
"""

from importvalidator.parsers.npm.code_parser import NpmCodeParser
from importvalidator.parsers.npm.frameworks import is_framework
from importvalidator.parsers.npm.manifest import ProjectMembershipIndex
from importvalidator.parsers.npm.registry import RegistryClient
from importvalidator.parsers.npm.specifier import classify, extract_package_name

__all__ = [
    "NpmCodeParser",
    "ProjectMembershipIndex",
    "RegistryClient",
    "classify",
    "extract_package_name",
    "is_framework",
]
