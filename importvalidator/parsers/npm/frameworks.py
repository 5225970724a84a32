"""Framework package detection.

Framework packages get their own diagnostic severity and are never counted
as invalid imports, whether or not the registry knows them.
"""

import logging
import re
from functools import lru_cache
from typing import FrozenSet, Iterable, Pattern, Tuple

from importvalidator.config.defaults import COMMON_FRAMEWORKS, FRAMEWORK_PREFIXES

logger = logging.getLogger("importvalidator.parsers.npm.frameworks")

_FRAMEWORK_NAMES: FrozenSet[str] = frozenset(COMMON_FRAMEWORKS)
_FRAMEWORK_SCOPES: Tuple[str, ...] = tuple(
    sorted({name.split("/")[0] + "/" for name in COMMON_FRAMEWORKS if name.startswith("@")})
)


@lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> Pattern[str]:
    """Translate a ``*`` glob into an anchored regular expression."""
    parts = [re.escape(part) for part in pattern.split("*")]
    return re.compile("^" + ".*".join(parts) + "$")


def matches_ignore_list(name: str, ignore_list: Iterable[str]) -> bool:
    """Check a package name against user-configured framework overrides.

    Args:
        name: Root package name.
        ignore_list: Exact names or ``*`` wildcard patterns.

    Returns:
        bool: True if any entry matches.
    """
    for entry in ignore_list:
        if "*" in entry:
            if _glob_to_regex(entry).match(name):
                return True
        elif entry == name:
            return True
    return False


def is_framework(name: str, ignore_list: Iterable[str] = ()) -> bool:
    """Check whether a package is a known framework package.

    Args:
        name: Root package name.
        ignore_list: User-configured framework overrides.

    Returns:
        bool: True for curated names, curated scopes, user overrides and
        framework prefixes.
    """
    if name in _FRAMEWORK_NAMES:
        return True
    if name.startswith("@") and name.startswith(_FRAMEWORK_SCOPES):
        return True
    if matches_ignore_list(name, ignore_list):
        return True
    return name.startswith(FRAMEWORK_PREFIXES)
