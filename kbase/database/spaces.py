"""Space operations for kbase."""

import logging
import sqlite3
import uuid

from ..exceptions import NotFoundError, StorageError
from ..models.types import Space
from .connection import DatabaseConnection, utc_now

logger = logging.getLogger(__name__)


def create_space(db: DatabaseConnection, slug: str, name: str, description: str = "") -> Space:
    """Create a space. A duplicate slug raises ``StorageError``."""
    now = utc_now()
    space = Space(
        id=str(uuid.uuid4()),
        slug=slug,
        name=name,
        description=description,
        created_at=now,
        updated_at=now,
    )
    try:
        with db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO spaces (id, slug, name, description, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (space.id, space.slug, space.name, space.description, now, now),
            )
    except StorageError as e:
        if isinstance(e.__cause__, sqlite3.IntegrityError):
            raise StorageError(f"Space slug already exists: {slug}") from e.__cause__
        raise
    logger.info(f"Created space {slug} ({space.id})")
    return space


def get_space(db: DatabaseConnection, space_id: str) -> Space:
    with db.read() as conn:
        row = conn.execute("SELECT * FROM spaces WHERE id = ?", (space_id,)).fetchone()
    if row is None:
        raise NotFoundError("Space", space_id)
    return Space.from_row(row)


def get_space_by_slug(db: DatabaseConnection, slug: str) -> Space:
    with db.read() as conn:
        row = conn.execute("SELECT * FROM spaces WHERE slug = ?", (slug,)).fetchone()
    if row is None:
        raise NotFoundError("Space", slug)
    return Space.from_row(row)


def list_spaces(db: DatabaseConnection) -> list[Space]:
    """All spaces, newest first."""
    with db.read() as conn:
        rows = conn.execute("SELECT * FROM spaces ORDER BY created_at DESC").fetchall()
    return [Space.from_row(row) for row in rows]


def delete_space(db: DatabaseConnection, slug: str) -> None:
    """Delete an empty space.

    Documents are not cascaded: a space that still owns documents fails
    with ``StorageError`` and nothing is removed.
    """
    with db.transaction() as conn:
        row = conn.execute("SELECT id FROM spaces WHERE slug = ?", (slug,)).fetchone()
        if row is None:
            raise NotFoundError("Space", slug)
        try:
            conn.execute("DELETE FROM spaces WHERE id = ?", (row["id"],))
        except sqlite3.IntegrityError as e:
            raise StorageError(f"Space '{slug}' still has pages; delete them first") from e
    logger.info(f"Deleted space {slug}")
