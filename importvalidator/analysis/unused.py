"""Unused dependency detection.

A dependency is unused when no validated file imports it. Peer
dependencies and tooling that is normally never imported from source
(type declarations, linters, bundler plugins) are never reported.
"""

import logging
from typing import Dict, Iterable, List, Set

from importvalidator.config.defaults import (
    COMMON_DEV_TOOLS,
    DEV_TOOL_INFIXES,
    DEV_TOOL_PREFIXES,
    DEV_TOOL_SUBSTRINGS,
    DEV_TOOL_SUFFIXES,
)
from importvalidator.models import UnusedDependency
from importvalidator.parsers.npm.manifest import ProjectMembershipIndex

logger = logging.getLogger("importvalidator.analysis.unused")


def is_dev_tool(name: str) -> bool:
    """Check a package name against the dev-tool skip list.

    Args:
        name: Package name.

    Returns:
        bool: True for known tools, ``@types/``-style scopes, tool-name
        substrings and loader/plugin/preset suffixes or infixes such as
        ``rollup-plugin-terser``.
    """
    if name in COMMON_DEV_TOOLS:
        return True
    if name.startswith(DEV_TOOL_PREFIXES) or name.endswith(DEV_TOOL_SUFFIXES):
        return True
    return any(fragment in name for fragment in DEV_TOOL_INFIXES + DEV_TOOL_SUBSTRINGS)


class UnusedDependencyAnalyzer:
    """Compares manifest declarations against observed imports."""

    def __init__(self, membership: ProjectMembershipIndex) -> None:
        """Initialize unused dependency analyzer.

        Args:
            membership: Project-membership index to check.
        """
        self.membership = membership

    def analyze(self, imported_names: Iterable[str]) -> List[UnusedDependency]:
        """Find declared dependencies that are never imported.

        Args:
            imported_names: Root package names observed across the workspace.

        Returns:
            List[UnusedDependency]: Unused entries sorted by name.
        """
        imported: Set[str] = set(imported_names)
        peers = self.membership.peer_names()

        unused = []
        for entry in self.membership.entries():
            if entry.name in imported or entry.name in peers:
                continue
            if is_dev_tool(entry.name):
                continue
            unused.append(
                UnusedDependency(
                    name=entry.name,
                    version=entry.version,
                    dependency_type=entry.dependency_type,
                    manifests=[str(path) for path in entry.manifests],
                )
            )

        unused.sort(key=lambda dep: dep.name)
        logger.info(
            "Found %d unused dependencies out of %d declared",
            len(unused),
            len(self.membership),
        )
        return unused

    def find_unused(self, imported_names: Iterable[str]) -> Dict[str, str]:
        """Return the unused dependency report as name -> declared version."""
        return {dep.name: dep.version for dep in self.analyze(imported_names)}
