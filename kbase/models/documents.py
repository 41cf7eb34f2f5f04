"""Documents, their closed set of types, and structured sections.

Each ``DocumentType`` carries an ordered section schema of
``(key, display name, required)`` triples. Freeform types carry none.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from ..exceptions import InvalidInputError
from .types import Author


@dataclass(frozen=True)
class SectionDef:
    """One section of a document type's schema."""

    key: str
    name: str
    required: bool


class DocumentType(str, Enum):
    DECISION = "decision"
    ARCHITECTURE = "architecture"
    SESSION_LOG = "session-log"
    REFERENCE = "reference"
    TROUBLESHOOTING = "troubleshooting"
    RUNBOOK = "runbook"

    def __str__(self) -> str:
        return self.value

    def section_schema(self) -> Optional[tuple[SectionDef, ...]]:
        """Ordered section schema, or None for freeform types."""
        return SECTION_SCHEMAS.get(self)

    @classmethod
    def parse(cls, value: str) -> DocumentType:
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise InvalidInputError(f"Unknown document type '{value}'. Valid types: {valid}") from None


SECTION_SCHEMAS: dict[DocumentType, tuple[SectionDef, ...]] = {
    DocumentType.DECISION: (
        SectionDef("context", "Context", True),
        SectionDef("options_considered", "Options Considered", True),
        SectionDef("decision", "Decision", True),
        SectionDef("consequences", "Consequences", False),
    ),
    DocumentType.ARCHITECTURE: (
        SectionDef("context", "Context", True),
        SectionDef("design", "Design", True),
        SectionDef("rationale", "Rationale", False),
        SectionDef("constraints", "Constraints", False),
    ),
    DocumentType.TROUBLESHOOTING: (
        SectionDef("problem", "Problem", True),
        SectionDef("diagnosis", "Diagnosis", True),
        SectionDef("solution", "Solution", True),
    ),
    DocumentType.RUNBOOK: (
        SectionDef("prerequisites", "Prerequisites", False),
        SectionDef("steps", "Steps", True),
        SectionDef("rollback", "Rollback", False),
    ),
}


def heading_for_key(key: str) -> str:
    """``options_considered`` -> ``Options Considered``."""
    return " ".join(word[:1].upper() + word[1:] for word in key.replace("_", " ").split())


def ordered_section_keys(sections: Mapping[str, Any], doc_type: DocumentType) -> list[tuple[str, str]]:
    """Return ``(key, heading)`` pairs in canonical render order.

    Schema keys come first in schema order, then any unrecognised keys
    alphabetically. Freeform types are fully alphabetical.
    """
    schema = doc_type.section_schema()
    if schema is None:
        return [(key, heading_for_key(key)) for key in sorted(sections)]

    known = {d.key for d in schema}
    ordered = [(d.key, d.name) for d in schema if d.key in sections]
    ordered.extend((key, heading_for_key(key)) for key in sorted(sections) if key not in known)
    return ordered


def sections_to_content(sections: Any, doc_type: DocumentType) -> str:
    """Flatten structured sections into markdown content.

    Non-string values are skipped and a non-mapping yields an empty string.
    """
    if not isinstance(sections, Mapping):
        return ""

    parts = []
    for key, heading in ordered_section_keys(sections, doc_type):
        text = sections[key]
        if isinstance(text, str):
            parts.append(f"## {heading}\n{text}")
    return "\n\n".join(parts)


def validate_sections(sections: Mapping[str, Any], doc_type: DocumentType) -> list[str]:
    """Return warnings for unknown or missing required sections.

    These never block a write.
    """
    schema = doc_type.section_schema()
    if schema is None:
        return []

    warnings = []
    known = {d.key for d in schema}
    for key in sections:
        if key not in known:
            warnings.append(f"unknown section '{key}' for document type '{doc_type}'")
    for d in schema:
        if d.required and d.key not in sections:
            warnings.append(f"missing required section '{d.key}' for document type '{doc_type}'")
    return warnings


def parse_sections(text: str) -> dict[str, Any]:
    """Parse a JSON object of sections supplied by a caller."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Sections are not valid JSON: {e}") from e
    if not isinstance(value, dict):
        raise InvalidInputError("Sections must be a JSON object mapping keys to text")
    return value


@dataclass
class Document:
    """A knowledge document ("page").

    ``version`` starts at 1 and is the only concurrency token. ``labels`` are
    populated on read; they are not stored on the row.
    """

    id: str
    space_id: str
    parent_id: Optional[str]
    title: str
    doc_type: DocumentType
    content: str
    sections: Optional[dict[str, Any]]
    created_by: Author
    created_at: str
    updated_at: str
    version: int
    labels: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: sqlite3.Row, labels: Optional[list[str]] = None) -> Document:
        sections = None
        if row["sections"]:
            try:
                sections = json.loads(row["sections"])
            except json.JSONDecodeError:
                sections = None
        return cls(
            id=row["id"],
            space_id=row["space_id"],
            parent_id=row["parent_id"],
            title=row["title"],
            doc_type=DocumentType(row["page_type"]),
            content=row["content"],
            sections=sections if isinstance(sections, dict) else None,
            created_by=Author(user=row["created_by_user"], agent=row["created_by_agent"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            version=row["version"],
            labels=list(labels or []),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "space_id": self.space_id,
            "parent_id": self.parent_id,
            "title": self.title,
            "type": self.doc_type.value,
            "content": self.content,
            "created_by_user": self.created_by.user,
            "created_by_agent": self.created_by.agent,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "version": self.version,
            "labels": list(self.labels),
        }
        if self.sections is not None:
            data["sections"] = self.sections
        return data


@dataclass
class SearchResult:
    """A document returned by search plus the excerpt around the match."""

    document: Document
    excerpt: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {**self.document.to_dict(), "excerpt": self.excerpt}
