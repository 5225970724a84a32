"""importvalidator: validate npm imports in JavaScript/TypeScript sources."""

__version__ = "0.1.0"
