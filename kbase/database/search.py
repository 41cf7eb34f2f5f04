"""Full-text search and metadata filtering over documents.

With a query, matching and ranking come from the FTS5 index and each
result carries an excerpt around the first occurrence of the query. Without
one, only the metadata filters apply and excerpts are empty.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..models.documents import DocumentType, SearchResult
from .connection import DatabaseConnection
from .documents import documents_from_rows

logger = logging.getLogger(__name__)

EXCERPT_CONTEXT = 40
EXCERPT_FALLBACK_LENGTH = 100


@dataclass
class SearchFilters:
    space_id: Optional[str] = None
    doc_type: Optional[DocumentType] = None
    label: Optional[str] = None
    created_by_agent: Optional[str] = None
    section: Optional[str] = None


def quote_fts_query(query: str) -> str:
    """Quote a query as one FTS5 phrase so hyphens and colons stay literal."""
    return '"' + query.replace('"', '""') + '"'


def make_excerpt(text: str, query: str) -> str:
    """Roughly 100 characters of ``text`` centred on the first match."""
    needle = query.strip('"').lower()
    pos = text.lower().find(needle) if needle else -1
    if pos == -1:
        if len(text) > EXCERPT_FALLBACK_LENGTH:
            return text[:EXCERPT_FALLBACK_LENGTH] + "..."
        return text

    start = max(pos - EXCERPT_CONTEXT, 0)
    end = min(pos + len(needle) + EXCERPT_CONTEXT, len(text))
    excerpt = text[start:end]
    if start > 0:
        excerpt = "..." + excerpt
    if end < len(text):
        excerpt += "..."
    return excerpt


def search_documents(
    db: DatabaseConnection,
    query: Optional[str] = None,
    filters: Optional[SearchFilters] = None,
) -> list[SearchResult]:
    """Search documents. No match is an empty list, not an error."""
    filters = filters or SearchFilters()
    query = query.strip() if query else None

    conditions = []
    params: list[Any] = []
    if query:
        sql = (
            "SELECT p.* FROM pages_fts"
            " JOIN pages p ON p.rowid = pages_fts.rowid"
        )
        conditions.append("pages_fts MATCH ?")
        params.append(quote_fts_query(query))
    else:
        sql = "SELECT p.* FROM pages p"

    if filters.space_id is not None:
        conditions.append("p.space_id = ?")
        params.append(filters.space_id)
    if filters.doc_type is not None:
        conditions.append("p.page_type = ?")
        params.append(filters.doc_type.value)
    if filters.label is not None:
        conditions.append("EXISTS (SELECT 1 FROM labels l WHERE l.page_id = p.id AND l.label = ?)")
        params.append(filters.label)
    if filters.created_by_agent is not None:
        conditions.append("p.created_by_agent = ?")
        params.append(filters.created_by_agent)
    if filters.section is not None:
        conditions.append("json_extract(p.sections, ?) IS NOT NULL")
        params.append(f"$.{filters.section}")

    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += " ORDER BY pages_fts.rank" if query else " ORDER BY p.created_at DESC"

    with db.read() as conn:
        documents = documents_from_rows(conn, conn.execute(sql, params).fetchall())

    results = []
    for document in documents:
        excerpt = ""
        if query:
            text = document.content
            if filters.section and document.sections:
                section_text = document.sections.get(filters.section)
                if isinstance(section_text, str):
                    text = section_text
            excerpt = make_excerpt(text, query)
        results.append(SearchResult(document=document, excerpt=excerpt))

    logger.debug(f"Search {query!r} returned {len(results)} results")
    return results
