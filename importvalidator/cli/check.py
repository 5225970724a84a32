"""Check command: validate the imports of individual files."""

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
from importvalidator.runtime.display import render_results

logger = logging.getLogger("importvalidator.cli.check")


def check_command(args) -> int:
    """Execute check command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        int: 1 if any import has error severity or a file failed, else 0.
    """
    try:
        return _check_command_impl(args)
    except RECOVERABLE_CLI_ERRORS as e:
        return report_error("check", e)


def _check_command_impl(args) -> int:
    root = Path(args.root).resolve() if getattr(args, "root", None) else Path.cwd()
    files = [Path(f).resolve() for f in args.files]

    with build_service(args, root) as service:
        failed = False
        report = {}

        for path in files:
            results = service.validate_file(path, force_reprocess=getattr(args, "force", False))
            if results is None:
                failed = True
                error_console.print(f"Could not validate {path}", style="red", highlight=False)
                continue

            severities = [service.severity_for(result) for result in results]
            if "error" in severities:
                failed = True

            if args.json:
                report[str(path)] = [
                    dict(result.to_dict(), severity=severity)
                    for result, severity in zip(results, severities)
                ]
            elif results:
                render_results(console, str(path), results, service.severity_for)
            else:
                console.print(f"{path}: no external imports", style="dim", highlight=False)

        if args.json:
            console.out(json.dumps(report, indent=2), highlight=False)

    logger.debug("check finished, failed=%s", failed)
    return 1 if failed else 0
