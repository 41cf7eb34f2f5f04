"""Label operations for kbase.

Labels are stored verbatim and are not versioned: changing them never
bumps the document's version.
"""

import logging
import sqlite3
from collections.abc import Iterable

from ..exceptions import InvalidInputError, NotFoundError, StorageError
from .connection import DatabaseConnection
from .documents import insert_labels_with_conn

logger = logging.getLogger(__name__)


def _require_document(conn: sqlite3.Connection, doc_id: str) -> None:
    if conn.execute("SELECT 1 FROM pages WHERE id = ?", (doc_id,)).fetchone() is None:
        raise NotFoundError("Page", doc_id)


def get_labels(db: DatabaseConnection, doc_id: str) -> list[str]:
    """Labels of a document, sorted."""
    with db.read() as conn:
        _require_document(conn, doc_id)
        rows = conn.execute(
            "SELECT label FROM labels WHERE page_id = ? ORDER BY label", (doc_id,)
        ).fetchall()
    return [row["label"] for row in rows]


def set_labels(db: DatabaseConnection, doc_id: str, labels: Iterable[str]) -> list[str]:
    """Replace a document's labels as one unit.

    A duplicate in ``labels`` rolls back and the previous set survives.
    """
    labels = list(labels)
    try:
        with db.transaction() as conn:
            _require_document(conn, doc_id)
            conn.execute("DELETE FROM labels WHERE page_id = ?", (doc_id,))
            insert_labels_with_conn(conn, doc_id, labels)
    except StorageError as e:
        if isinstance(e.__cause__, sqlite3.IntegrityError):
            raise StorageError(f"Duplicate label in {labels!r}", document_id=doc_id) from e.__cause__
        raise
    logger.debug(f"Set labels on {doc_id}: {labels}")
    return sorted(labels)


def add_label(db: DatabaseConnection, doc_id: str, label: str) -> None:
    """Attach a label; adding one that is already there is a no-op."""
    if not label:
        raise InvalidInputError("Labels cannot be empty", document_id=doc_id)
    with db.transaction() as conn:
        _require_document(conn, doc_id)
        conn.execute(
            "INSERT OR IGNORE INTO labels (page_id, label) VALUES (?, ?)", (doc_id, label)
        )


def remove_label(db: DatabaseConnection, doc_id: str, label: str) -> bool:
    """Detach a label. Returns False if the document did not carry it."""
    with db.transaction() as conn:
        _require_document(conn, doc_id)
        cursor = conn.execute(
            "DELETE FROM labels WHERE page_id = ? AND label = ?", (doc_id, label)
        )
    return cursor.rowcount > 0
