"""Helpers for loading validator configuration from TOML/JSON sources.

This module provides a single entry point `load_validator_config`
that accepts various configuration sources:

* None -> default ValidatorConfig
* dict -> ValidatorConfig.from_dict
* Path / path-like string -> load .toml/.json from filesystem
* Inline JSON/TOML strings

Settings may sit at the top level or under an ``[importvalidator]`` table.
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from importvalidator.config import ValidatorConfig
from importvalidator.parsers.base import ConfigurationError

logger = logging.getLogger("importvalidator.runtime.config_loader")

ConfigSource = Union[str, Path, Dict[str, Any], None]

SECTION_NAME = "importvalidator"
CONFIG_FILENAMES = ("importvalidator.toml", ".importvalidator.toml", ".importvalidator.json")


def _detect_format(text: str) -> str:
    return "json" if text.lstrip().startswith(("{", "[")) else "toml"


def _parse(text: str, fmt: str, origin: str) -> Dict[str, Any]:
    try:
        data = json.loads(text) if fmt == "json" else tomllib.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid {fmt.upper()} in {origin}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Top-level configuration in {origin} must be a mapping")
    section = data.get(SECTION_NAME)
    if isinstance(section, dict):
        return section
    return data


def _build(data: Dict[str, Any], origin: str) -> ValidatorConfig:
    try:
        return ValidatorConfig.from_dict(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {origin}: {e}") from e


def load_validator_config(source: ConfigSource) -> ValidatorConfig:
    """Load ValidatorConfig from various configuration sources.

    Args:
        source: One of:
            * None: returns ValidatorConfig.default()
            * dict: treated as already-parsed configuration mapping
            * str/Path: either a filesystem path to a .toml/.json file,
              or an inline TOML/JSON string (auto-detected)

    Returns:
        ValidatorConfig instance.

    Raises:
        ConfigurationError: If the source cannot be read, parsed or
            validated.
    """
    if source is None:
        logger.debug("No config source provided; using default ValidatorConfig")
        return ValidatorConfig.default()

    if isinstance(source, dict):
        logger.debug("Loading ValidatorConfig from provided dict")
        return _build(source, "<dict>")

    if not isinstance(source, (str, Path)):
        raise TypeError(f"Unsupported config source type: {type(source)!r}")

    path = Path(source)
    if isinstance(source, Path) or (len(str(source)) < 4096 and path.is_file()):
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
        suffix = path.suffix.lower()
        if suffix in {".toml", ".tml"}:
            fmt = "toml"
        elif suffix == ".json":
            fmt = "json"
        else:
            fmt = _detect_format(text)
        logger.info("Loading configuration from file: %s (fmt=%s)", path, fmt)
        return _build(_parse(text, fmt, str(path)), str(path))

    text = str(source)
    fmt = _detect_format(text)
    logger.info("Loading configuration from inline %s string", fmt)
    return _build(_parse(text, fmt, "<inline>"), "<inline>")


def find_config_file(root: Path) -> Optional[Path]:
    """Return the first known configuration file directly under ``root``."""
    for name in CONFIG_FILENAMES:
        candidate = Path(root) / name
        if candidate.is_file():
            return candidate
    return None


__all__ = ["find_config_file", "load_validator_config"]
