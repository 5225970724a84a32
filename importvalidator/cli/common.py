"""Shared helpers for CLI commands."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.text import Text

from importvalidator.config import ValidatorConfig
from importvalidator.parsers.base import RecoverableError
from importvalidator.runtime.api import ImportValidatorService
from importvalidator.runtime.config_loader import find_config_file, load_validator_config

logger = logging.getLogger("importvalidator.cli.common")

DEFAULT_CACHE_DIR = ".importvalidator_cache"

# Errors a command reports and turns into exit code 1 instead of a traceback.
RECOVERABLE_CLI_ERRORS = (
    RecoverableError,
    json.JSONDecodeError,
    OSError,
    sqlite3.Error,
    ValueError,
)

console = Console()
error_console = Console(stderr=True)


def load_config(args, root: Optional[Path] = None) -> ValidatorConfig:
    """Load configuration from ``--config`` or a config file under ``root``.

    ``--cache-dir`` overrides the configured cache directory; without either
    the cache lives in ``.importvalidator_cache`` under the current directory.
    """
    source = getattr(args, "config", None)
    if source is None and root is not None:
        source = find_config_file(root)
    config = load_validator_config(source)

    cache_dir = getattr(args, "cache_dir", None) or config.cache_dir or DEFAULT_CACHE_DIR
    if getattr(args, "no_cache", False):
        cache_dir = None
    return config.model_copy(update={"cache_dir": cache_dir})


def build_service(args, root: Optional[Path] = None) -> ImportValidatorService:
    config = load_config(args, root)
    logger.debug("Using cache directory %s", config.cache_dir)
    return ImportValidatorService(workspace_root=root, config=config)


def report_error(command: str, error: Exception) -> int:
    message = Text(f"{command} failed: ", style="bold red")
    message.append(str(error))
    error_console.print(message)
    logger.debug("%s failed", command, exc_info=True)
    return 1
