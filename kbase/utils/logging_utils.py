"""Logging setup for kbase.

Modules use the standard pattern and leave configuration to the entry point:

    import logging
    logger = logging.getLogger(__name__)

The browser owns the terminal, so its logs go to a rotating file. The CLI
logs warnings (or everything, with ``--verbose``) to stderr.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Max log file size: 5MB, keep 2 backups
_MAX_LOG_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 2

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_tui_logging(log_dir: Optional[Path] = None) -> logging.Logger:
    """Send logs to ``tui.log`` so nothing is written over the browser.

    The root logger stays at WARNING to keep third-party noise out; the
    ``kbase`` loggers are let through at INFO.
    """
    log_dir = log_dir or Path.home() / ".config" / "kbase"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_dir / "tui.log", maxBytes=_MAX_LOG_BYTES, backupCount=_BACKUP_COUNT
        )
    except OSError as e:
        # Logging is what failed, so report it the only way left
        print(f"Warning: TUI logging setup failed: {e}", file=sys.stderr)
        return logging.getLogger("kbase")

    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, logging.StreamHandler) and not isinstance(
            existing, logging.FileHandler
        ):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    kbase_logger = logging.getLogger("kbase")
    kbase_logger.setLevel(logging.INFO)
    return kbase_logger


def setup_cli_logging(verbose: bool = False) -> None:
    """Log to stderr: warnings by default, debug output with ``verbose``."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format=_FORMAT if verbose else "%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("kbase").setLevel(level)
