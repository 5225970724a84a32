"""Info command: show registry metadata for one package."""

import json
import logging

from importvalidator.cli.common import (
    RECOVERABLE_CLI_ERRORS,
    build_service,
    console,
    error_console,
    report_error,
)
from importvalidator.runtime.display import render_package

logger = logging.getLogger("importvalidator.cli.info")


def info_command(args) -> int:
    try:
        return _info_command_impl(args)
    except RECOVERABLE_CLI_ERRORS as e:
        return report_error("info", e)


def _info_command_impl(args) -> int:
    with build_service(args) as service:
        metadata = service.get_package_info(args.package)

    if metadata is None:
        error_console.print(f"{args.package} was not found on the registry", style="red", highlight=False)
        return 1

    if args.json:
        console.out(json.dumps(metadata.to_dict(), indent=2), highlight=False)
    else:
        render_package(console, metadata)
    return 0
