"""Database migration system for kbase."""

import logging
import sqlite3
from typing import Callable

logger = logging.getLogger(__name__)


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get the current schema version, or 0 for a fresh database."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY,
            applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
        )
        """
    )
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0


def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))


def migration_001_initial_schema(conn: sqlite3.Connection) -> None:
    """Create spaces, pages, labels and links."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS spaces (
            id TEXT PRIMARY KEY,
            slug TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS pages (
            id TEXT PRIMARY KEY,
            space_id TEXT NOT NULL REFERENCES spaces(id),
            parent_id TEXT REFERENCES pages(id),
            title TEXT NOT NULL,
            page_type TEXT NOT NULL CHECK (page_type IN (
                'decision', 'architecture', 'session-log',
                'reference', 'troubleshooting', 'runbook'
            )),
            content TEXT NOT NULL DEFAULT '',
            sections TEXT,
            created_by_user TEXT NOT NULL,
            created_by_agent TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            version INTEGER NOT NULL DEFAULT 1
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS labels (
            page_id TEXT NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
            label TEXT NOT NULL,
            PRIMARY KEY (page_id, label)
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS links (
            source_id TEXT NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
            target_id TEXT NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
            relation TEXT NOT NULL DEFAULT 'relates-to' CHECK (relation IN (
                'relates-to', 'supersedes', 'depends-on', 'elaborates'
            )),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (source_id, target_id)
        )
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_pages_space ON pages(space_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_pages_type ON pages(page_type)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_pages_parent ON pages(parent_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_labels_label ON labels(label)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_links_target ON links(target_id)")


def migration_002_add_fts(conn: sqlite3.Connection) -> None:
    """Add the FTS5 index over page title and content."""
    conn.execute(
        """
        CREATE VIRTUAL TABLE IF NOT EXISTS pages_fts USING fts5(
            title, content, content='pages', content_rowid='rowid'
        )
        """
    )
    conn.execute(
        """
        CREATE TRIGGER IF NOT EXISTS pages_ai AFTER INSERT ON pages BEGIN
            INSERT INTO pages_fts(rowid, title, content)
            VALUES (new.rowid, new.title, new.content);
        END
        """
    )
    conn.execute(
        """
        CREATE TRIGGER IF NOT EXISTS pages_ad AFTER DELETE ON pages BEGIN
            INSERT INTO pages_fts(pages_fts, rowid, title, content)
            VALUES ('delete', old.rowid, old.title, old.content);
        END
        """
    )
    conn.execute(
        """
        CREATE TRIGGER IF NOT EXISTS pages_au AFTER UPDATE ON pages BEGIN
            INSERT INTO pages_fts(pages_fts, rowid, title, content)
            VALUES ('delete', old.rowid, old.title, old.content);
            INSERT INTO pages_fts(rowid, title, content)
            VALUES (new.rowid, new.title, new.content);
        END
        """
    )
    # Index rows that predate the table
    conn.execute("INSERT INTO pages_fts(pages_fts) VALUES ('rebuild')")


MIGRATIONS: list[tuple[int, str, Callable[[sqlite3.Connection], None]]] = [
    (1, "Create spaces, pages, labels and links", migration_001_initial_schema),
    (2, "Add full-text search", migration_002_add_fts),
]


def run_migrations(conn: sqlite3.Connection) -> int:
    """Apply every pending migration, each in its own transaction.

    Safe to call from several processes at once: the version is re-read
    after taking the write lock. Returns the resulting schema version.
    """
    current_version = get_schema_version(conn)
    for version, description, migration_func in MIGRATIONS:
        if version <= current_version:
            continue
        conn.execute("BEGIN IMMEDIATE")
        try:
            if get_schema_version(conn) >= version:
                conn.execute("COMMIT")
                continue
            logger.info(f"Running migration {version}: {description}")
            migration_func(conn)
            set_schema_version(conn, version)
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        current_version = version
    return get_schema_version(conn)
