"""
Database package for kbase

Store operations are module-level functions that take a shared
``DatabaseConnection`` as their first argument.
"""

from .connection import DatabaseConnection
from .documents import (
    append_to_document,
    create_document,
    delete_document,
    get_document,
    has_children,
    list_child_documents,
    list_documents,
    list_top_level_documents,
    update_document,
)
from .labels import add_label, get_labels, remove_label, set_labels
from .links import create_link, delete_link, list_links
from .search import SearchFilters, search_documents
from .spaces import create_space, delete_space, get_space, get_space_by_slug, list_spaces

__all__ = [
    "DatabaseConnection",
    "SearchFilters",
    "add_label",
    "append_to_document",
    "create_document",
    "create_link",
    "create_space",
    "delete_document",
    "delete_link",
    "delete_space",
    "get_document",
    "get_labels",
    "get_space",
    "get_space_by_slug",
    "has_children",
    "list_child_documents",
    "list_documents",
    "list_links",
    "list_spaces",
    "list_top_level_documents",
    "remove_label",
    "search_documents",
    "set_labels",
    "update_document",
]
