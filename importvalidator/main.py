"""Main CLI entry point for importvalidator.

Provides commands: check, scan, unused, info, clear-cache
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from importvalidator import __version__
from importvalidator.cli.cache import clear_cache_command
from importvalidator.cli.check import check_command
from importvalidator.cli.scan import scan_command
from importvalidator.cli.unused import unused_command
from importvalidator.cli.info import info_command

logger = logging.getLogger("importvalidator.cli")


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        log_file: Also write plain-text logs to this file.
        console: Rich Console instance for coordinated output (optional).
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )
    handlers: List[logging.Handler] = [handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(name)s] [%(levelname)s] %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if log_file else level,
        format="[%(name)s] [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )
    handler.setLevel(level)
    # urllib3 connection chatter drowns out the registry retry messages.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        help=(
            "Validator configuration. Can be a path to a TOML/JSON file or an "
            "inline TOML/JSON string. Defaults to importvalidator.toml in the "
            "workspace root when present, otherwise built-in defaults."
        ),
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON instead of tables",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="importvalidator",
        description="Importvalidator - npm import validation for JavaScript/TypeScript",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--cache-dir",
        help=(
            "Directory for the persistent cache database. Defaults to "
            ".importvalidator_cache in the current working directory."
        ),
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Keep caches in memory only for this run",
    )
    parser.add_argument(
        "--log-file",
        help="Output log to file (optional). When specified, logs are written to this file in addition to console.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    check_parser = subparsers.add_parser("check", help="Validate the imports of specific files")
    check_parser.add_argument("files", nargs="+", help="Source files to validate")
    check_parser.add_argument(
        "--root",
        help="Workspace root used for package.json discovery (default: current directory)",
    )
    check_parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore cached results for the given files",
    )
    _add_common_options(check_parser)

    scan_parser = subparsers.add_parser("scan", help="Validate every source file in a workspace")
    scan_parser.add_argument("root", help="Workspace root directory")
    scan_parser.add_argument(
        "--changed",
        action="store_true",
        help="Only process files modified since the last scan",
    )
    scan_parser.add_argument(
        "--force",
        action="store_true",
        help="Reprocess files even when cached results are fresh",
    )
    _add_common_options(scan_parser)

    unused_parser = subparsers.add_parser(
        "unused", help="List declared dependencies that are never imported"
    )
    unused_parser.add_argument("root", help="Workspace root directory")
    unused_parser.add_argument(
        "--remove",
        action="store_true",
        help="Remove the unused dependencies from their package.json files",
    )
    _add_common_options(unused_parser)

    info_parser = subparsers.add_parser("info", help="Show registry metadata for a package")
    info_parser.add_argument("package", help="Package name, e.g. lodash or @scope/pkg")
    _add_common_options(info_parser)

    cache_parser = subparsers.add_parser("clear-cache", help="Delete all cached results")
    cache_parser.add_argument("-c", "--config", help="Validator configuration file or string")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, getattr(args, "log_file", None))

    # Dispatch to subcommand
    if args.command == "check":
        return check_command(args)
    elif args.command == "scan":
        return scan_command(args)
    elif args.command == "unused":
        return unused_command(args)
    elif args.command == "info":
        return info_command(args)
    elif args.command == "clear-cache":
        return clear_cache_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
