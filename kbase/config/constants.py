"""
Centralized constants for kbase.

Values that govern storage contention, the browser event loop and the edit
session live here so that behaviour can be tuned in one place.
"""

from pathlib import Path

# =============================================================================
# PATHS
# =============================================================================

KBASE_CONFIG_DIR = Path.home() / ".config" / "kbase"
DEFAULT_DB_FILENAME = "knowledge.db"
CONFIG_FILENAME = "config.yaml"

# =============================================================================
# STORAGE
# =============================================================================

BUSY_TIMEOUT_SECONDS = 5.0  # Bounded wait for a competing writer's lock
APPEND_SEPARATOR = "\n"  # Joins existing content and appended text

# =============================================================================
# BROWSER EVENT LOOP (in seconds)
# =============================================================================

REFRESH_INTERVAL_SECONDS = 2.0  # Idle time before the current view is re-queried
INPUT_POLL_SECONDS = 0.1  # How often the idle-refresh timer checks the clock

# =============================================================================
# EDIT SESSION
# =============================================================================

AUDIT_LABEL = "human-edited"  # Added to every document saved from the browser
DEFAULT_EDITOR = "vi"
SCRATCH_FILE_PREFIX = "kbase-"

# =============================================================================
# IDENTITY
# =============================================================================

UNKNOWN_IDENTITY = "unknown"


