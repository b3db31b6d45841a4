# ABOUTME: The `bookfeed ls` command for listing the books of a Calibre library.
# ABOUTME: Displays a Rich table of the books the catalog would contain.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookfeed.cli.options import library_argument
from bookfeed.core.entries import format_series_index
from bookfeed.db.connection import LibraryNotFoundError, open_library
from bookfeed.db.store import LibraryStore


@click.command("ls")
@library_argument
@click.option(
    "--series",
    "series_filter",
    default=None,
    help="Only books of this series.",
)
@click.option(
    "--tag",
    "tag_filter",
    default=None,
    help="Only books with this tag.",
)
def ls(library: Path, series_filter: str | None, tag_filter: str | None) -> None:
    """List the books of a Calibre LIBRARY folder."""
    console = Console()
    try:
        conn = open_library(library)
    except LibraryNotFoundError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    try:
        model = LibraryStore(conn).load()
    finally:
        conn.close()

    books = sorted(model.books, key=lambda b: int(b.id) if b.id.isdigit() else 0)
    if series_filter:
        books = [b for b in books if b.series and b.series.name.lower() == series_filter.lower()]
    if tag_filter:
        books = [b for b in books if any(t.name.lower() == tag_filter.lower() for t in b.tags)]

    if not books:
        console.print("[yellow]No books in the library.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Series")
    table.add_column("Formats")

    for book in books:
        series_display = ""
        if book.series:
            series_display = book.series.name
            if book.series_index:
                series_display += f" #{format_series_index(book.series_index)}"

        table.add_row(
            book.id,
            book.title,
            book.authors_text or "[dim]unknown[/dim]",
            series_display,
            ", ".join(f.format.name for f in book.files),
        )

    console.print(table)
    console.print(f"\n[dim]{len(books)} book(s)[/dim]")
