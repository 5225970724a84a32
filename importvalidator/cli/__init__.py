"""Command-line interface for importvalidator."""
