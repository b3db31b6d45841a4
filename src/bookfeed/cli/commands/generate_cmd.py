# ABOUTME: The `bookfeed generate` command that writes a library's OPDS catalog.
# ABOUTME: Loads the library and profile, runs generation with progress, and reports the outcome.

from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from bookfeed.cli.options import (
    configure_logging,
    library_argument,
    log_level_option,
    profile_option,
)
from bookfeed.config.profile import ProfileError, load_profile
from bookfeed.core import naming
from bookfeed.core.catalog import generate_catalog
from bookfeed.core.paginate import EntryBuildError
from bookfeed.db.connection import LibraryNotFoundError, open_library
from bookfeed.db.store import LibraryStore
from bookfeed.output.images import (
    RESIZED_COVER_FILENAME,
    THUMBNAIL_FILENAME,
    PillowImageManager,
    write_default_cover,
)
from bookfeed.output.search_index import SearchIndex
from bookfeed.output.writer import DuplicatePageError, FeedWriter, MemoryWriter

DEFAULT_CATALOG_DIR = "catalog"


def _make_progress(console: Console) -> Progress:
    """Create a Rich spinner counting generated items."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        TextColumn("{task.completed} items"),
        console=console,
        transient=True,
    )


@click.command()
@library_argument
@profile_option
@click.option(
    "-o",
    "--output",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help=f"Catalog folder (default: LIBRARY/{DEFAULT_CATALOG_DIR}).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Generate in memory without writing any file.",
)
@log_level_option
def generate(
    library: Path,
    profile_path: Path | None,
    output_dir: Path | None,
    dry_run: bool,
    log_level: str,
) -> None:
    """Generate the OPDS catalog of a Calibre LIBRARY folder."""
    console = Console()
    configure_logging(log_level, console)

    try:
        profile = load_profile(profile_path)
        conn = open_library(library)
    except (ProfileError, LibraryNotFoundError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    try:
        model = LibraryStore(conn).load()
    finally:
        conn.close()

    if output_dir is None:
        output_dir = library / DEFAULT_CATALOG_DIR

    if dry_run:
        writer = MemoryWriter()
        thumbnails = covers = None
        index = None
    else:
        writer = FeedWriter(output_dir)
        write_default_cover(output_dir / naming.DEFAULT_IMAGE_FILENAME)
        thumbnails = PillowImageManager(
            THUMBNAIL_FILENAME, profile.thumbnail_height, output_dir / ".thumbnail_height"
        )
        covers = PillowImageManager(
            RESIZED_COVER_FILENAME, profile.cover_height, output_dir / ".cover_height"
        )
        index = SearchIndex() if profile.generate_index else None

    console.print(
        f"Generating catalog of [bold]{len(model.books)}[/bold] book(s)"
        + (" [dim](dry run)[/dim]" if dry_run else f" into {output_dir}")
    )

    with _make_progress(console) as progress:
        task = progress.add_task("Generating", total=None)

        def tick() -> bool:
            progress.advance(task)
            return True

        try:
            result = generate_catalog(
                model,
                profile,
                writer,
                cover_manager=covers,
                thumbnail_manager=thumbnails,
                index_sink=index,
                library_root=library,
                now=datetime.now(timezone.utc),
                should_continue=tick,
            )
        except (EntryBuildError, DuplicatePageError) as exc:
            progress.stop()
            console.print(f"[red]Catalog generation failed:[/red] {exc}")
            raise SystemExit(1) from exc

    if index is not None:
        index.export_json(output_dir)

    if result.cancelled:
        console.print("[yellow]Generation cancelled; the catalog is incomplete.[/yellow]")

    console.print(
        f"[green]{result.pages}[/green] page(s), "
        f"[green]{result.books}[/green] book(s), "
        f"[{'yellow' if result.warnings else 'dim'}]{result.warnings} warning(s)[/]"
    )
