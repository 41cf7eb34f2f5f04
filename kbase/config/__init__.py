"""Configuration for kbase."""
