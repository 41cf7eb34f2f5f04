#!/usr/bin/env python3
"""
Main CLI entry point for kbase
"""

from typing import Optional

import typer

from kbase import __version__
from kbase.commands import links, pages, spaces
from kbase.commands.browse import browse
from kbase.commands.common import set_identity_overrides
from kbase.commands.search import search
from kbase.utils.logging_utils import setup_cli_logging

app = typer.Typer(
    name="kb",
    help="A local knowledge base shared by people and agents",
    no_args_is_help=True,
)


@app.callback()
def main(
    user: Optional[str] = typer.Option(
        None, "--user", help="Who is writing (default: $KB_USER, then $USER)"
    ),
    agent: Optional[str] = typer.Option(
        None, "--agent", help="Tool writing on their behalf (default: $KB_AGENT)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """
    kb - local knowledge base

    Pages live in spaces, carry labels and typed links, and are safe to
    edit from several processes at once.

    [bold]Examples:[/bold]

        [cyan]kb space create infra "Infrastructure"[/cyan]
        [cyan]kb page create "Use WAL mode" --space infra --type decision --sections '{"context": "..."}'[/cyan]
        [cyan]kb search "busy timeout"[/cyan]
        [cyan]kb browse[/cyan]
    """
    set_identity_overrides(user, agent)
    setup_cli_logging(verbose)


@app.command()
def version():
    """Show kbase version"""
    typer.echo(f"kbase version {__version__}")


app.add_typer(spaces.app, name="space")
app.add_typer(pages.app, name="page")
app.add_typer(links.app, name="link")
app.command("search")(search)
app.command("browse")(browse)


def run():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    run()
