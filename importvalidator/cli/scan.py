"""Scan command implementation."""

import json
import logging
from pathlib import Path

from importvalidator.cli.common import (
    RECOVERABLE_CLI_ERRORS,
    build_service,
    console,
    error_console,
    report_error,
)
from importvalidator.models import ScanState
from importvalidator.runtime.display import render_stats
from importvalidator.runtime.progress import ScanProgress

logger = logging.getLogger("importvalidator.cli.scan")


def scan_command(args) -> int:
    """Execute scan command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        int: Exit code.
    """
    try:
        return _scan_command_impl(args)
    except RECOVERABLE_CLI_ERRORS as e:
        return report_error("scan", e)


def _scan_command_impl(args) -> int:
    root = Path(args.root).resolve()
    logger.debug("Scanning workspace %s", root)

    with build_service(args, root) as service:
        progress = ScanProgress(error_console, enabled=not args.json)
        try:
            with progress.display():
                stats = service.scan_workspace(
                    only_changed=args.changed,
                    force_reprocess=args.force,
                    progress_callback=progress.update,
                )
        except KeyboardInterrupt:
            service.cancel_scan()
            error_console.print("Scan interrupted", style="yellow")
            return 130

        if args.json:
            payload = stats.to_dict()
            payload["state"] = service.scan_state.value
            console.out(json.dumps(payload, indent=2), highlight=False)
        else:
            render_stats(console, stats)

    return 0 if service.scan_state is ScanState.COMPLETED else 1
