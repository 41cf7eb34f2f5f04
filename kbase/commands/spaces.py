"""Space management commands for kbase.

All space commands live under `kb space <subcommand>`.
"""

import typer
from rich.table import Table

from ..database import create_space, delete_space, get_space_by_slug, list_spaces
from ..utils.output import console, print_json
from .common import open_db

app = typer.Typer(help="Manage spaces")


@app.command("create")
def create(
    slug: str = typer.Argument(..., help="Unique short name, e.g. 'infra'"),
    name: str = typer.Argument(..., help="Display name"),
    description: str = typer.Option("", "--description", "-d", help="Free-text description"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Create a space"""
    with open_db() as db:
        space = create_space(db, slug, name, description)

    if json_output:
        print_json(space.to_dict())
        return
    console.print(f"[green]✅ Created space[/green] [cyan]{space.slug}[/cyan] ({space.id})")


@app.command("list")
def list_cmd(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List spaces, newest first"""
    with open_db() as db:
        spaces = list_spaces(db)

    if json_output:
        print_json([space.to_dict() for space in spaces])
        return
    if not spaces:
        console.print("[yellow]No spaces found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Slug", style="cyan")
    table.add_column("Name")
    table.add_column("Description", style="dim")
    table.add_column("Created", style="dim")
    for space in spaces:
        table.add_row(space.slug, space.name, space.description, space.created_at[:10])
    console.print(table)


@app.command("get")
def get(
    slug: str = typer.Argument(..., help="Space slug"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show one space"""
    with open_db() as db:
        space = get_space_by_slug(db, slug)

    if json_output:
        print_json(space.to_dict())
        return
    console.print(f"[bold]{space.name}[/bold] ([cyan]{space.slug}[/cyan])")
    console.print(f"[dim]ID:[/dim]      {space.id}")
    console.print(f"[dim]Created:[/dim] {space.created_at}")
    console.print(f"[dim]Updated:[/dim] {space.updated_at}")
    if space.description:
        console.print(f"\n{space.description}")


@app.command("delete")
def delete(
    slug: str = typer.Argument(..., help="Space slug"),
):
    """Delete an empty space"""
    with open_db() as db:
        delete_space(db, slug)
    console.print(f"[green]✅ Deleted space[/green] [cyan]{slug}[/cyan]")
