"""Configuration schema definitions using Pydantic for validation.

All settings the validation core reads are collected in one
``ValidatorConfig`` snapshot that is passed into the components at
construction time. Using Pydantic ensures configuration errors are caught
early with clear error messages.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from importvalidator.config.defaults import (
    COMMON_PATH_ALIASES,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
)

VALID_SEVERITIES = {"error", "warning", "info", "hint"}


class ValidatorConfig(BaseModel):
    """Top-level configuration for import validation.

    Attributes:
        cache_timeout: Lifetime of cache entries (seconds).
        max_files: Maximum number of files admitted to one workspace scan.
        batch_size: Files validated concurrently per scan batch.
        request_timeout: Per-request registry timeout (seconds).
        retry_count: Maximum attempts for a registry metadata request.
        retry_delay_ms: Delay before the first retry (milliseconds).
        backoff_factor: Multiplier applied to the delay after each retry.
        max_concurrent_lookups: Registry lookups in flight per document.
        registry_url: Base URL of the package registry.
        downloads_url: Base URL of the download statistics API.
        user_agent: User-Agent header sent with registry requests.
        ignored_packages: User framework overrides (exact names or ``*`` globs).
        path_aliases: Specifier prefixes treated as local code.
        include_patterns: Glob patterns selecting candidate source files.
        exclude_patterns: Glob patterns excluded from workspace scans.
        severity_level: Severity reported for imports missing from the registry.
        framework_severity_level: Severity reported for missing framework imports.
        cache_dir: Directory holding the persistent cache database.
    """

    cache_timeout: int = Field(default=86400, ge=0)
    max_files: int = Field(default=1000, ge=1)
    batch_size: int = Field(default=20, ge=1, le=256)
    request_timeout: float = Field(default=10.0, gt=0.0, le=300.0)
    retry_count: int = Field(default=3, ge=1, le=10)
    retry_delay_ms: int = Field(default=1000, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    max_concurrent_lookups: int = Field(default=8, ge=1, le=64)
    registry_url: str = "https://registry.npmjs.org"
    downloads_url: str = "https://api.npmjs.org/downloads"
    user_agent: str = "importvalidator"
    ignored_packages: List[str] = Field(default_factory=list)
    path_aliases: List[str] = Field(default_factory=lambda: list(COMMON_PATH_ALIASES))
    include_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS)
    )
    exclude_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS)
    )
    severity_level: str = "warning"
    framework_severity_level: str = "info"
    cache_dir: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("severity_level", "framework_severity_level")
    @classmethod
    def validate_severity(cls, v: str) -> str:
        """Validate that severity levels are known diagnostic levels."""
        level = v.lower()
        if level not in VALID_SEVERITIES:
            raise ValueError(
                f"Invalid severity '{v}'. Valid severities: {sorted(VALID_SEVERITIES)}"
            )
        return level

    @field_validator("path_aliases", "ignored_packages")
    @classmethod
    def validate_non_empty_entries(cls, v: List[str]) -> List[str]:
        """Reject blank entries, which would match every specifier."""
        for entry in v:
            if not entry or not entry.strip():
                raise ValueError("entries must be non-empty strings")
        return v

    @field_validator("registry_url", "downloads_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000.0

    @classmethod
    def default(cls) -> "ValidatorConfig":
        return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatorConfig":
        """Create configuration from dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            ValidatorConfig instance.

        Raises:
            ValidationError: If configuration is invalid.
        """
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
