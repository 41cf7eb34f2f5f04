"""Shared console output utilities."""

import json
from typing import Any

from rich.console import Console
from rich.markup import escape

# Shared console instances for all CLI output
console = Console()
err_console = Console(stderr=True)


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout.

    Dataclass-like objects must be converted with ``to_dict()`` first;
    anything else that is not serializable is rendered with ``str``.
    """
    print(json.dumps(data, indent=2, default=str))


def print_error(message: str) -> None:
    err_console.print(f"[red]Error: {escape(message)}[/red]")


def print_warning(message: str) -> None:
    err_console.print(f"[yellow]Warning: {escape(message)}[/yellow]")
