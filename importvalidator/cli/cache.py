"""clear-cache command."""

import logging

from importvalidator.cli.common import RECOVERABLE_CLI_ERRORS, build_service, console, report_error

logger = logging.getLogger("importvalidator.cli.cache")


def clear_cache_command(args) -> int:
    """Drop every cached document, existence verdict, file state and statistic."""
    try:
        with build_service(args) as service:
            service.clear_caches()
            location = service.store.db_path if service.store is not None else None
    except RECOVERABLE_CLI_ERRORS as e:
        return report_error("clear-cache", e)

    console.print(f"Cache cleared ({location})" if location else "Cache cleared", highlight=False)
    return 0
