"""Typed links between documents.

Links are an edge relation; the links of a document are every edge where it
is the source or the target.
"""

import logging
import sqlite3

from ..exceptions import InvalidInputError, NotFoundError, StorageError
from ..models.types import Link, LinkRelation
from .connection import DatabaseConnection, utc_now

logger = logging.getLogger(__name__)


def create_link(
    db: DatabaseConnection,
    source_id: str,
    target_id: str,
    relation: LinkRelation = LinkRelation.RELATES_TO,
) -> Link:
    """Link two documents. Only one link may exist per ordered pair."""
    if source_id == target_id:
        raise InvalidInputError("Cannot link a page to itself", document_id=source_id)

    now = utc_now()
    try:
        with db.transaction() as conn:
            for doc_id in (source_id, target_id):
                if conn.execute("SELECT 1 FROM pages WHERE id = ?", (doc_id,)).fetchone() is None:
                    raise NotFoundError("Page", doc_id)
            conn.execute(
                """
                INSERT INTO links (source_id, target_id, relation, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (source_id, target_id, relation.value, now, now),
            )
    except StorageError as e:
        if isinstance(e.__cause__, sqlite3.IntegrityError):
            raise StorageError(
                f"Link already exists: {source_id} -> {target_id}"
            ) from e.__cause__
        raise

    logger.info(f"Linked {source_id} -{relation}-> {target_id}")
    return Link(source_id, target_id, relation, now, now)


def list_links(db: DatabaseConnection, doc_id: str) -> list[Link]:
    """Edges where the document is the source or the target."""
    with db.read() as conn:
        if conn.execute("SELECT 1 FROM pages WHERE id = ?", (doc_id,)).fetchone() is None:
            raise NotFoundError("Page", doc_id)
        rows = conn.execute(
            """
            SELECT * FROM links
            WHERE source_id = ? OR target_id = ?
            ORDER BY created_at
            """,
            (doc_id, doc_id),
        ).fetchall()
    return [Link.from_row(row) for row in rows]


def delete_link(db: DatabaseConnection, source_id: str, target_id: str) -> None:
    with db.transaction() as conn:
        cursor = conn.execute(
            "DELETE FROM links WHERE source_id = ? AND target_id = ?", (source_id, target_id)
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Link", f"{source_id} -> {target_id}")
