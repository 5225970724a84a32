"""Configuration schema and validation for importvalidator."""

from .schema import VALID_SEVERITIES, ValidatorConfig

__all__ = [
    "VALID_SEVERITIES",
    "ValidatorConfig",
]
