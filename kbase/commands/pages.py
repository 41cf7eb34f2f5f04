"""Page commands for kbase.

All page commands live under `kb page <subcommand>`; label management is
the nested `kb page label` group.
"""

from typing import Optional

import typer
from rich.markdown import Markdown
from rich.table import Table

from ..database import (
    add_label,
    append_to_document,
    create_document,
    delete_document,
    get_document,
    get_labels,
    get_space_by_slug,
    list_documents,
    remove_label,
    set_labels,
    update_document,
)
from ..models.documents import Document, DocumentType, parse_sections, validate_sections
from ..utils.output import console, print_error, print_json, print_warning
from .common import get_author, open_db, read_stdin_if_piped

app = typer.Typer(help="Manage pages")
label_app = typer.Typer(help="Manage page labels")
app.add_typer(label_app, name="label")


def _print_document(doc: Document) -> None:
    console.print(f"[bold]{doc.title}[/bold] [dim]({doc.doc_type})[/dim]")
    console.print(f"[dim]ID:[/dim]      {doc.id}")
    if doc.parent_id:
        console.print(f"[dim]Parent:[/dim]  {doc.parent_id}")
    if doc.labels:
        console.print(f"[dim]Labels:[/dim]  [cyan]{', '.join(doc.labels)}[/cyan]")
    console.print(f"[dim]Author:[/dim]  {doc.created_by.user} / {doc.created_by.agent}")
    console.print(f"[dim]Updated:[/dim] {doc.updated_at}")
    console.print(f"[dim]Version:[/dim] {doc.version}")
    if doc.content:
        console.print()
        console.print(Markdown(doc.content))


@app.command("create")
def create(
    title: str = typer.Argument(..., help="Page title"),
    space: str = typer.Option(..., "--space", "-s", help="Slug of the owning space"),
    doc_type: DocumentType = typer.Option(DocumentType.REFERENCE, "--type", "-t", help="Page type"),
    content: Optional[str] = typer.Option(
        None, "--content", "-c", help="Markdown content (read from stdin when piped)"
    ),
    sections: Optional[str] = typer.Option(
        None, "--sections", help="JSON object of section key -> text"
    ),
    parent: Optional[str] = typer.Option(None, "--parent", "-p", help="Parent page ID"),
    labels: Optional[list[str]] = typer.Option(None, "--label", "-l", help="Label (repeatable)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Create a page"""
    parsed_sections = None
    with open_db() as db:
        if sections is not None:
            parsed_sections = parse_sections(sections)
            for warning in validate_sections(parsed_sections, doc_type):
                print_warning(warning)
        if content is None and parsed_sections is None:
            content = read_stdin_if_piped()

        owner = get_space_by_slug(db, space)
        doc = create_document(
            db,
            owner.id,
            title,
            doc_type,
            content or "",
            author=get_author(),
            parent_id=parent,
            sections=parsed_sections,
            labels=labels or [],
        )

    if json_output:
        print_json(doc.to_dict())
        return
    console.print(f"[green]✅ Created page[/green] [cyan]{doc.id}[/cyan] '{doc.title}'")


@app.command("get")
def get(
    doc_id: str = typer.Argument(..., help="Page ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show a page"""
    with open_db() as db:
        doc = get_document(db, doc_id)

    if json_output:
        print_json(doc.to_dict())
        return
    _print_document(doc)


@app.command("update")
def update(
    doc_id: str = typer.Argument(..., help="Page ID"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="New content"),
    sections: Optional[str] = typer.Option(
        None, "--sections", help="JSON object of section key -> text"
    ),
    expected_version: Optional[int] = typer.Option(
        None,
        "--expected-version",
        "-V",
        help="Only write if the page is still at this version",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Update a page's title, content or sections"""
    with open_db() as db:
        parsed_sections = parse_sections(sections) if sections is not None else None
        doc = update_document(
            db,
            doc_id,
            title=title,
            content=content,
            sections=parsed_sections,
            expected_version=expected_version,
        )

    if json_output:
        print_json(doc.to_dict())
        return
    console.print(f"[green]✅ Updated[/green] [cyan]{doc.id}[/cyan] (version {doc.version})")


@app.command("append")
def append(
    doc_id: str = typer.Argument(..., help="Page ID"),
    text: Optional[str] = typer.Argument(None, help="Text to append (read from stdin when omitted)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Append text to a page"""
    if text is None:
        text = read_stdin_if_piped()
    if not text:
        print_error("Nothing to append")
        raise typer.Exit(1)

    with open_db() as db:
        doc = append_to_document(db, doc_id, text)

    if json_output:
        print_json(doc.to_dict())
        return
    console.print(f"[green]✅ Appended to[/green] [cyan]{doc.id}[/cyan] (version {doc.version})")


@app.command("delete")
def delete(
    doc_id: str = typer.Argument(..., help="Page ID"),
):
    """Delete a page with its labels and links"""
    with open_db() as db:
        delete_document(db, doc_id)
    console.print(f"[green]✅ Deleted page[/green] [cyan]{doc_id}[/cyan]")


@app.command("list")
def list_cmd(
    space: Optional[str] = typer.Option(None, "--space", "-s", help="Filter by space slug"),
    doc_type: Optional[DocumentType] = typer.Option(None, "--type", "-t", help="Filter by type"),
    label: Optional[str] = typer.Option(None, "--label", "-l", help="Filter by label"),
    user: Optional[str] = typer.Option(None, "--user", help="Filter by creating user"),
    agent: Optional[str] = typer.Option(None, "--agent", help="Filter by creating agent"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List pages, newest first"""
    with open_db() as db:
        space_id = get_space_by_slug(db, space).id if space else None
        docs = list_documents(
            db,
            space_id=space_id,
            doc_type=doc_type,
            label=label,
            created_by_user=user,
            created_by_agent=agent,
        )

    if json_output:
        print_json([doc.to_dict() for doc in docs])
        return
    if not docs:
        console.print("[yellow]No pages found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title")
    table.add_column("Type", style="magenta")
    table.add_column("Labels", style="cyan")
    table.add_column("v", justify="right")
    for doc in docs:
        table.add_row(doc.id[:8], doc.title, str(doc.doc_type), ", ".join(doc.labels), str(doc.version))
    console.print(table)


@app.command("schema")
def schema(
    doc_type: DocumentType = typer.Argument(..., help="Page type"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the sections a page type expects"""
    section_defs = doc_type.section_schema() or ()

    if json_output:
        print_json(
            {
                "type": doc_type.value,
                "sections": [
                    {"key": d.key, "name": d.name, "required": d.required} for d in section_defs
                ],
            }
        )
        return
    if not section_defs:
        console.print(f"[dim]'{doc_type}' pages are freeform: any section keys are accepted[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan", title=str(doc_type))
    table.add_column("Key", style="cyan")
    table.add_column("Heading")
    table.add_column("Required")
    for d in section_defs:
        table.add_row(d.key, d.name, "yes" if d.required else "")
    console.print(table)


@label_app.command("add")
def label_add(
    doc_id: str = typer.Argument(..., help="Page ID"),
    labels: list[str] = typer.Argument(..., help="Labels to add"),
):
    """Add labels to a page (already present labels are kept)"""
    with open_db() as db:
        for label in labels:
            add_label(db, doc_id, label)
        current = get_labels(db, doc_id)
    console.print(f"[dim]Labels:[/dim] [cyan]{', '.join(current)}[/cyan]")


@label_app.command("remove")
def label_remove(
    doc_id: str = typer.Argument(..., help="Page ID"),
    labels: list[str] = typer.Argument(..., help="Labels to remove"),
):
    """Remove labels from a page"""
    with open_db() as db:
        for label in labels:
            if not remove_label(db, doc_id, label):
                print_warning(f"Page {doc_id} has no label '{label}'")
        current = get_labels(db, doc_id)
    console.print(f"[dim]Labels:[/dim] [cyan]{', '.join(current)}[/cyan]")


@label_app.command("set")
def label_set(
    doc_id: str = typer.Argument(..., help="Page ID"),
    labels: Optional[list[str]] = typer.Argument(None, help="The complete new label set"),
):
    """Replace all labels on a page"""
    with open_db() as db:
        current = set_labels(db, doc_id, labels or [])
    console.print(f"[dim]Labels:[/dim] [cyan]{', '.join(current)}[/cyan]")


@label_app.command("list")
def label_list(
    doc_id: str = typer.Argument(..., help="Page ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List a page's labels"""
    with open_db() as db:
        current = get_labels(db, doc_id)

    if json_output:
        print_json(current)
        return
    for label in current:
        console.print(label)
