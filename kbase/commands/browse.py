"""Interactive browser command for kbase."""

from typing import Optional

import typer

from ..ui.document_browser import run_browser
from .common import open_db


def browse(
    editor: Optional[str] = typer.Option(
        None, "--editor", "-e", help="Editor command (defaults to $EDITOR)"
    ),
):
    """Browse spaces and pages in the terminal"""
    with open_db() as db:
        run_browser(db, editor=editor)
