"""Module specifier classification for JavaScript/TypeScript imports.

Decides whether a specifier refers to project code (relative paths, path
aliases, Node built-ins, URLs) or to an installable npm package, and
normalizes package references to their root package name.
"""

import logging
from functools import lru_cache
from typing import Iterable, Tuple

from importvalidator.config.defaults import COMMON_PATH_ALIASES, NODE_BUILTIN_MODULES
from importvalidator.models import Classification

logger = logging.getLogger("importvalidator.parsers.npm.specifier")


def extract_package_name(specifier: str) -> str:
    """Extract package name from import specifier.

    Args:
        specifier: Import specifier (e.g., 'lodash/fp', '@scope/pkg/sub').

    Returns:
        str: Root package name ('lodash', '@scope/pkg').
    """
    parts = specifier.strip().split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return "/".join(parts[:2])
    return parts[0]


def normalize_aliases(aliases: Iterable[str]) -> Tuple[str, ...]:
    """Turn a configured alias list into the hashable form ``classify`` caches on."""
    return tuple(alias.strip() for alias in aliases if alias and alias.strip())


def _matches_alias(specifier: str, alias: str) -> bool:
    # 'src/' and '~' are plain prefixes; '@app' must not swallow '@apple/x'.
    if alias.endswith("/") or not alias[-1].isalnum():
        return specifier.startswith(alias)
    return specifier == alias or specifier.startswith(alias + "/")


@lru_cache(maxsize=4096)
def classify(
    specifier: str, path_aliases: Tuple[str, ...] = COMMON_PATH_ALIASES
) -> Classification:
    """Classify a module specifier as local code or an external package.

    Args:
        specifier: Raw specifier string from an import or require.
        path_aliases: Alias prefixes that resolve to project code.

    Returns:
        Classification: ``LOCAL`` or ``EXTERNAL`` with the root package name.
    """
    spec = specifier.strip()

    if not spec or spec.startswith((".", "/", "#")):
        return Classification.local()

    # node:fs, http://cdn/..., virtual:module. npm names never contain ':'.
    if ":" in spec:
        return Classification.local()

    for alias in path_aliases:
        if _matches_alias(spec, alias):
            return Classification.local()

    if spec.startswith("@"):
        scope, sep, rest = spec.partition("/")
        # '@components' or '@/utils' style aliases, not a scoped package.
        if not sep or scope == "@" or not rest:
            return Classification.local()
        return Classification.external(extract_package_name(spec))

    root = extract_package_name(spec)
    if root in NODE_BUILTIN_MODULES:
        return Classification.local()

    return Classification.external(root)
