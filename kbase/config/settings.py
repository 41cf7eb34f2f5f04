"""Configuration utilities for kbase."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..models.types import Author
from .constants import (
    BUSY_TIMEOUT_SECONDS,
    CONFIG_FILENAME,
    DEFAULT_DB_FILENAME,
    DEFAULT_EDITOR,
    KBASE_CONFIG_DIR,
    REFRESH_INTERVAL_SECONDS,
    UNKNOWN_IDENTITY,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "editor": None,
    "refresh_interval": REFRESH_INTERVAL_SECONDS,
    "busy_timeout": BUSY_TIMEOUT_SECONDS,
}


def get_config_path() -> Path:
    """Get path to the optional YAML config file."""
    return KBASE_CONFIG_DIR / CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from ``config.yaml``.

    Missing keys fall back to defaults. A missing file is not an error; an
    unreadable or malformed one is logged and ignored.
    """
    path = path or get_config_path()
    if not path.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load config {path}: {e}")
        return DEFAULT_CONFIG.copy()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {path}: expected a mapping, got {type(data).__name__}")
        return DEFAULT_CONFIG.copy()

    config = DEFAULT_CONFIG.copy()
    for key in DEFAULT_CONFIG:
        if key in data and data[key] is not None:
            config[key] = data[key]
    return config


def get_db_path() -> Path:
    """Get the database path.

    Resolution order: ``KB_TEST_DB`` (set by the test suite so tests never
    touch the real database), ``KB_PATH``, then ``~/.config/kbase/knowledge.db``.
    The parent directory is created if needed.
    """
    test_db = os.environ.get("KB_TEST_DB")
    if test_db:
        return Path(test_db)

    kb_path = os.environ.get("KB_PATH")
    path = Path(kb_path).expanduser() if kb_path else KBASE_CONFIG_DIR / DEFAULT_DB_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def get_identity(user: Optional[str] = None, agent: Optional[str] = None) -> Author:
    """Resolve who is performing an operation.

    Explicit values win, then ``KB_USER``/``USER`` and ``KB_AGENT``.
    """
    resolved_user = user or os.environ.get("KB_USER") or os.environ.get("USER") or UNKNOWN_IDENTITY
    resolved_agent = agent or os.environ.get("KB_AGENT") or UNKNOWN_IDENTITY
    return Author(user=resolved_user, agent=resolved_agent)


def get_editor(config: Optional[Dict[str, Any]] = None) -> str:
    """Get the editor command used by the browser."""
    config = config if config is not None else load_config()
    return (
        config.get("editor")
        or os.environ.get("EDITOR")
        or os.environ.get("VISUAL")
        or DEFAULT_EDITOR
    )


def get_refresh_interval(config: Optional[Dict[str, Any]] = None) -> float:
    """Seconds of idle time before the browser re-queries its view."""
    config = config if config is not None else load_config()
    try:
        return float(config.get("refresh_interval", REFRESH_INTERVAL_SECONDS))
    except (TypeError, ValueError):
        logger.warning(f"Invalid refresh_interval {config.get('refresh_interval')!r}, using default")
        return REFRESH_INTERVAL_SECONDS


def get_busy_timeout(config: Optional[Dict[str, Any]] = None) -> float:
    """Seconds a write waits for another process's lock before failing."""
    config = config if config is not None else load_config()
    try:
        return float(config.get("busy_timeout", BUSY_TIMEOUT_SECONDS))
    except (TypeError, ValueError):
        logger.warning(f"Invalid busy_timeout {config.get('busy_timeout')!r}, using default")
        return BUSY_TIMEOUT_SECONDS
