"""Link commands for kbase.

All link commands live under `kb link <subcommand>`.
"""

import typer
from rich.table import Table

from ..database import create_link, delete_link, list_links
from ..models.types import LinkRelation
from ..utils.output import console, print_json
from .common import open_db

app = typer.Typer(help="Manage typed links between pages")


@app.command("create")
def create(
    source: str = typer.Argument(..., help="Source page ID"),
    target: str = typer.Argument(..., help="Target page ID"),
    relation: LinkRelation = typer.Option(
        LinkRelation.RELATES_TO, "--relation", "-r", help="Kind of relationship"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Link one page to another"""
    with open_db() as db:
        link = create_link(db, source, target, relation)

    if json_output:
        print_json(link.to_dict())
        return
    console.print(f"[green]✅ Linked[/green] {source} [magenta]{relation}[/magenta] {target}")


@app.command("list")
def list_cmd(
    doc_id: str = typer.Argument(..., help="Page ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List links from and to a page"""
    with open_db() as db:
        links = list_links(db, doc_id)

    if json_output:
        print_json([link.to_dict() for link in links])
        return
    if not links:
        console.print("[yellow]No links found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Direction")
    table.add_column("Relation", style="magenta")
    table.add_column("Page", style="cyan")
    for link in links:
        if link.source_id == doc_id:
            table.add_row("->", str(link.relation), link.target_id)
        else:
            table.add_row("<-", str(link.relation), link.source_id)
    console.print(table)


@app.command("delete")
def delete(
    source: str = typer.Argument(..., help="Source page ID"),
    target: str = typer.Argument(..., help="Target page ID"),
):
    """Remove the link from SOURCE to TARGET"""
    with open_db() as db:
        delete_link(db, source, target)
    console.print(f"[green]✅ Removed link[/green] {source} -> {target}")
