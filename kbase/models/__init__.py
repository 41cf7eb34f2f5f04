"""Data types for kbase."""

from .documents import (
    Document,
    DocumentType,
    SearchResult,
    SectionDef,
    parse_sections,
    sections_to_content,
    validate_sections,
)
from .types import Author, Link, LinkRelation, Space

__all__ = [
    "Author",
    "Document",
    "DocumentType",
    "Link",
    "LinkRelation",
    "SearchResult",
    "SectionDef",
    "Space",
    "parse_sections",
    "sections_to_content",
    "validate_sections",
]
