"""Search command for kbase."""

from typing import Optional

import typer
from rich.table import Table

from ..database import SearchFilters, get_space_by_slug, search_documents
from ..models.documents import DocumentType
from ..utils.output import console, print_json
from .common import open_db


def search(
    query: Optional[str] = typer.Argument(None, help="Full-text query (omit to filter only)"),
    space: Optional[str] = typer.Option(None, "--space", "-s", help="Only pages in this space"),
    doc_type: Optional[DocumentType] = typer.Option(None, "--type", "-t", help="Only this page type"),
    label: Optional[str] = typer.Option(None, "--label", "-l", help="Only pages with this label"),
    agent: Optional[str] = typer.Option(None, "--agent", help="Only pages created by this agent"),
    section: Optional[str] = typer.Option(
        None, "--section", help="Only pages with this section; excerpt from it"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Search pages by text and metadata"""
    with open_db() as db:
        filters = SearchFilters(
            space_id=get_space_by_slug(db, space).id if space else None,
            doc_type=doc_type,
            label=label,
            created_by_agent=agent,
            section=section,
        )
        results = search_documents(db, query, filters)

    if json_output:
        print_json([result.to_dict() for result in results])
        return
    if not results:
        console.print("[yellow]No results found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title")
    table.add_column("Type", style="magenta")
    table.add_column("Excerpt", style="dim")
    for result in results:
        doc = result.document
        table.add_row(doc.id[:8], doc.title, str(doc.doc_type), result.excerpt)
    console.print(table)
