"""Shared helpers for kbase."""
