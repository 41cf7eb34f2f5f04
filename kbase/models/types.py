"""Plain data types shared by the store, the CLI and the browser."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Author:
    """Identity of whoever performs an operation: a person and the tool acting for them."""

    user: str
    agent: str


@dataclass
class Space:
    """A top-level organizational unit owning a tree of documents."""

    id: str
    slug: str
    name: str
    description: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Space:
        return cls(
            id=row["id"],
            slug=row["slug"],
            name=row["name"],
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class LinkRelation(str, Enum):
    """The kind of directed relationship between two documents."""

    RELATES_TO = "relates-to"
    SUPERSEDES = "supersedes"
    DEPENDS_ON = "depends-on"
    ELABORATES = "elaborates"

    def __str__(self) -> str:
        return self.value


@dataclass
class Link:
    """A typed edge from ``source_id`` to ``target_id``."""

    source_id: str
    target_id: str
    relation: LinkRelation
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Link:
        return cls(
            source_id=row["source_id"],
            target_id=row["target_id"],
            relation=LinkRelation(row["relation"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "relation": self.relation.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
