"""CLI command groups for kbase."""
