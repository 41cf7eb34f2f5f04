"""Document operations for kbase.

Every mutation of title, content or sections bumps ``version`` by exactly
one in the same statement that writes the change. A caller that passes
``expected_version`` only wins if nobody else has written since it read.
"""

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from ..config.constants import APPEND_SEPARATOR
from ..exceptions import InvalidInputError, NotFoundError, StorageError, VersionConflictError
from ..models.documents import Document, DocumentType, sections_to_content, validate_sections
from ..models.types import Author
from .connection import DatabaseConnection, utc_now

logger = logging.getLogger(__name__)


def _labels_by_document(conn: sqlite3.Connection, ids: list[str]) -> dict[str, list[str]]:
    labels: dict[str, list[str]] = {doc_id: [] for doc_id in ids}
    if not ids:
        return labels
    placeholders = ",".join("?" * len(ids))
    rows = conn.execute(
        f"SELECT page_id, label FROM labels WHERE page_id IN ({placeholders}) ORDER BY label",
        ids,
    ).fetchall()
    for row in rows:
        labels[row["page_id"]].append(row["label"])
    return labels


def documents_from_rows(conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Document]:
    """Build documents from ``pages`` rows with their labels attached."""
    labels = _labels_by_document(conn, [row["id"] for row in rows])
    return [Document.from_row(row, labels[row["id"]]) for row in rows]


def get_document_with_conn(conn: sqlite3.Connection, doc_id: str) -> Document:
    row = conn.execute("SELECT * FROM pages WHERE id = ?", (doc_id,)).fetchone()
    if row is None:
        raise NotFoundError("Page", doc_id)
    return documents_from_rows(conn, [row])[0]


def get_document(db: DatabaseConnection, doc_id: str) -> Document:
    """Get a document by id with its labels."""
    with db.read() as conn:
        return get_document_with_conn(conn, doc_id)


def insert_labels_with_conn(conn: sqlite3.Connection, doc_id: str, labels: Iterable[str]) -> None:
    """Insert label rows; a duplicate raises ``sqlite3.IntegrityError``."""
    for label in labels:
        if not label:
            raise InvalidInputError("Labels cannot be empty", document_id=doc_id)
        conn.execute("INSERT INTO labels (page_id, label) VALUES (?, ?)", (doc_id, label))


def create_document(
    db: DatabaseConnection,
    space_id: str,
    title: str,
    doc_type: DocumentType,
    content: str = "",
    *,
    author: Author,
    parent_id: Optional[str] = None,
    sections: Optional[Mapping[str, Any]] = None,
    labels: Iterable[str] = (),
) -> Document:
    """Create a document at version 1.

    With sections and no content, the content is derived from the sections.
    The document row and all label rows commit together: a duplicate label
    leaves no trace of the document.
    """
    if sections is not None:
        for warning in validate_sections(sections, doc_type):
            logger.info(f"Creating '{title}': {warning}")
        if not content:
            content = sections_to_content(sections, doc_type)

    doc_id = str(uuid.uuid4())
    now = utc_now()
    labels = list(labels)
    try:
        with db.transaction() as conn:
            if conn.execute("SELECT 1 FROM spaces WHERE id = ?", (space_id,)).fetchone() is None:
                raise NotFoundError("Space", space_id)
            if parent_id is not None:
                parent = conn.execute(
                    "SELECT space_id FROM pages WHERE id = ?", (parent_id,)
                ).fetchone()
                if parent is None:
                    raise NotFoundError("Page", parent_id)
                if parent["space_id"] != space_id:
                    raise InvalidInputError(
                        "Parent page belongs to a different space", parent_id=parent_id
                    )
            conn.execute(
                """
                INSERT INTO pages (
                    id, space_id, parent_id, title, page_type, content, sections,
                    created_by_user, created_by_agent, created_at, updated_at, version
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
                """,
                (
                    doc_id,
                    space_id,
                    parent_id,
                    title,
                    doc_type.value,
                    content,
                    json.dumps(dict(sections)) if sections is not None else None,
                    author.user,
                    author.agent,
                    now,
                    now,
                ),
            )
            insert_labels_with_conn(conn, doc_id, labels)
            document = get_document_with_conn(conn, doc_id)
    except StorageError as e:
        if isinstance(e.__cause__, sqlite3.IntegrityError):
            raise StorageError(f"Could not create page '{title}': {e.__cause__}") from e.__cause__
        raise

    logger.info(f"Created page {doc_id} '{title}' in space {space_id}")
    return document


def update_document(
    db: DatabaseConnection,
    doc_id: str,
    *,
    title: Optional[str] = None,
    content: Optional[str] = None,
    sections: Optional[Mapping[str, Any]] = None,
    expected_version: Optional[int] = None,
) -> Document:
    """Update a document with one conditional statement.

    Fields left as None are kept. Sections, when given, are stored and the
    content re-derived from them; content given on its own replaces the
    sections with none. ``expected_version=None`` means last writer wins.

    Raises:
        NotFoundError: no document with this id.
        VersionConflictError: the document moved past ``expected_version``.
    """
    assignments = ["version = version + 1", "updated_at = ?"]
    params: list[Any] = [utc_now()]

    with db.transaction() as conn:
        if title is not None:
            assignments.append("title = ?")
            params.append(title)

        if sections is not None:
            row = conn.execute("SELECT page_type FROM pages WHERE id = ?", (doc_id,)).fetchone()
            if row is None:
                raise NotFoundError("Page", doc_id)
            doc_type = DocumentType(row["page_type"])
            for warning in validate_sections(sections, doc_type):
                logger.info(f"Updating {doc_id}: {warning}")
            assignments.extend(["content = ?", "sections = ?"])
            params.extend([sections_to_content(sections, doc_type), json.dumps(dict(sections))])
        elif content is not None:
            assignments.extend(["content = ?", "sections = NULL"])
            params.append(content)

        sql = f"UPDATE pages SET {', '.join(assignments)} WHERE id = ?"
        params.append(doc_id)
        if expected_version is not None:
            sql += " AND version = ?"
            params.append(expected_version)

        cursor = conn.execute(sql, params)
        if cursor.rowcount == 0:
            row = conn.execute("SELECT version FROM pages WHERE id = ?", (doc_id,)).fetchone()
            if row is None:
                raise NotFoundError("Page", doc_id)
            logger.info(
                f"Version conflict on {doc_id}: expected {expected_version}, found {row['version']}"
            )
            raise VersionConflictError(expected_version, row["version"], document_id=doc_id)

        return get_document_with_conn(conn, doc_id)


def append_to_document(db: DatabaseConnection, doc_id: str, text: str) -> Document:
    """Append text in a single statement so concurrent appends never clobber.

    Existing content is joined to ``text`` with a newline unless it is empty.
    """
    with db.transaction() as conn:
        cursor = conn.execute(
            """
            UPDATE pages
            SET content = CASE WHEN content = '' THEN ? ELSE content || ? || ? END,
                sections = NULL,
                version = version + 1,
                updated_at = ?
            WHERE id = ?
            """,
            (text, APPEND_SEPARATOR, text, utc_now(), doc_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Page", doc_id)
        return get_document_with_conn(conn, doc_id)


def delete_document(db: DatabaseConnection, doc_id: str) -> None:
    """Delete a document; its labels and links go with it.

    A document that is still the parent of others cannot be deleted.
    """
    try:
        with db.transaction() as conn:
            cursor = conn.execute("DELETE FROM pages WHERE id = ?", (doc_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Page", doc_id)
    except StorageError as e:
        if isinstance(e.__cause__, sqlite3.IntegrityError):
            raise StorageError(
                f"Page {doc_id} still has child pages; delete them first"
            ) from e.__cause__
        raise
    logger.info(f"Deleted page {doc_id}")


def list_documents(
    db: DatabaseConnection,
    space_id: Optional[str] = None,
    doc_type: Optional[DocumentType] = None,
    label: Optional[str] = None,
    created_by_user: Optional[str] = None,
    created_by_agent: Optional[str] = None,
) -> list[Document]:
    """List documents matching every given filter, newest first."""
    conditions = []
    params: list[Any] = []
    if space_id is not None:
        conditions.append("p.space_id = ?")
        params.append(space_id)
    if doc_type is not None:
        conditions.append("p.page_type = ?")
        params.append(doc_type.value)
    if label is not None:
        conditions.append("EXISTS (SELECT 1 FROM labels l WHERE l.page_id = p.id AND l.label = ?)")
        params.append(label)
    if created_by_user is not None:
        conditions.append("p.created_by_user = ?")
        params.append(created_by_user)
    if created_by_agent is not None:
        conditions.append("p.created_by_agent = ?")
        params.append(created_by_agent)

    sql = "SELECT p.* FROM pages p"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += " ORDER BY p.created_at DESC"

    with db.read() as conn:
        return documents_from_rows(conn, conn.execute(sql, params).fetchall())


def list_top_level_documents(db: DatabaseConnection, space_id: str) -> list[Document]:
    """Documents in a space with no parent, by title."""
    with db.read() as conn:
        rows = conn.execute(
            """
            SELECT * FROM pages
            WHERE space_id = ? AND parent_id IS NULL
            ORDER BY title COLLATE NOCASE
            """,
            (space_id,),
        ).fetchall()
        return documents_from_rows(conn, rows)


def list_child_documents(db: DatabaseConnection, parent_id: str) -> list[Document]:
    """Direct children of a document, by title."""
    with db.read() as conn:
        rows = conn.execute(
            "SELECT * FROM pages WHERE parent_id = ? ORDER BY title COLLATE NOCASE",
            (parent_id,),
        ).fetchall()
        return documents_from_rows(conn, rows)


def has_children(db: DatabaseConnection, doc_id: str) -> bool:
    with db.read() as conn:
        row = conn.execute("SELECT 1 FROM pages WHERE parent_id = ? LIMIT 1", (doc_id,)).fetchone()
    return row is not None
