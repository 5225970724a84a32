"""Unused command: report (and optionally remove) unused dependencies."""

import json
import logging
from pathlib import Path

from importvalidator.cli.common import RECOVERABLE_CLI_ERRORS, build_service, console, report_error
from importvalidator.runtime.display import render_unused

logger = logging.getLogger("importvalidator.cli.unused")


def unused_command(args) -> int:
    """Execute unused command.

    Scans changed files first so the import inventory is current, then
    compares it against every package.json under the root.
    """
    try:
        return _unused_command_impl(args)
    except RECOVERABLE_CLI_ERRORS as e:
        return report_error("unused", e)


def _unused_command_impl(args) -> int:
    root = Path(args.root).resolve()

    with build_service(args, root) as service:
        service.scan_workspace(only_changed=True)
        unused = service.find_unused_dependency_details()

        if args.json:
            report = {dep.name: dep.version for dep in unused}
            console.out(json.dumps(report, indent=2), highlight=False)
        else:
            render_unused(console, unused)

        if args.remove and unused:
            removed = service.remove_dependencies(dep.name for dep in unused)
            for manifest, names in removed.items():
                console.print(f"Removed {', '.join(names)} from {manifest}", highlight=False)

    return 0
