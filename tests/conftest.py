"""Shared pytest fixtures for kbase tests."""

import pytest

from kbase.config import settings
from kbase.database import DatabaseConnection, create_document, create_space
from kbase.models.documents import DocumentType
from kbase.models.types import Author


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from the real config directory and identity variables."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr(settings, "KBASE_CONFIG_DIR", config_dir)
    for var in ("KB_PATH", "KB_USER", "KB_AGENT", "EDITOR", "VISUAL"):
        monkeypatch.delenv(var, raising=False)
    return config_dir


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Path of a fresh database file, also exported as KB_TEST_DB."""
    path = tmp_path / "knowledge.db"
    monkeypatch.setenv("KB_TEST_DB", str(path))
    return path


@pytest.fixture
def db(db_path):
    """A migrated database on a temporary file."""
    conn = DatabaseConnection(db_path, busy_timeout=5.0)
    conn.ensure_schema()
    yield conn
    conn.close()


@pytest.fixture
def author():
    return Author(user="tester", agent="pytest")


@pytest.fixture
def space(db):
    return create_space(db, "eng", "Engineering", "Engineering notes")


@pytest.fixture
def make_document(db, space, author):
    """Factory for documents in the default space."""

    def _make(title="Note", doc_type=DocumentType.REFERENCE, content="", **kwargs):
        space_id = kwargs.pop("space_id", space.id)
        return create_document(db, space_id, title, doc_type, content, author=author, **kwargs)

    return _make
