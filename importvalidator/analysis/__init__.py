"""Workspace-level analyses built on validation results."""
