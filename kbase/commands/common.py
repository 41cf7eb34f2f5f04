"""Helpers shared by the CLI commands."""

import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from ..config.settings import get_identity
from ..database import DatabaseConnection
from ..exceptions import KbError
from ..models.types import Author
from ..utils.output import print_error

# Set by the top-level callback from --user/--agent
_identity_overrides: dict[str, Optional[str]] = {"user": None, "agent": None}


def set_identity_overrides(user: Optional[str], agent: Optional[str]) -> None:
    _identity_overrides["user"] = user
    _identity_overrides["agent"] = agent


def get_author() -> Author:
    return get_identity(_identity_overrides["user"], _identity_overrides["agent"])


@contextmanager
def open_db() -> Iterator[DatabaseConnection]:
    """Open the knowledge base, apply migrations and close it afterwards.

    Any ``KbError`` raised inside the block is printed and turned into exit
    status 1.
    """
    db = DatabaseConnection()
    try:
        db.ensure_schema()
        yield db
    except KbError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    finally:
        db.close()


def read_stdin_if_piped() -> str:
    """Content piped into the command, or an empty string at a terminal."""
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    return sys.stdin.read()
