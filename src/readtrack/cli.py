"""Command-line interface for readtrack.

Built with Typer for commands and Rich for output.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import get_config
from .db import get_db
from .db.schemas import BookCreate, BookStatus
from .imports import IMPORTERS, BookImportError, KindleClippingsImporter

# Create the main app
app = typer.Typer(
    name="readtrack",
    help="Import, deduplicate and manage your reading history.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
import_app = typer.Typer(help="Import books from reading apps.")
app.add_typer(import_app, name="import")

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def setup_logging(level: str) -> None:
    """Route library logging through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def format_book_table(books: list, title: str = "Books") -> Table:
    """Create a rich table for displaying books."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Status", style="yellow")
    table.add_column("Rating", justify="center")
    table.add_column("Source")

    for book in books:
        rating = "★" * book.rating + "☆" * (5 - book.rating) if book.rating else "-"
        table.add_row(
            book.id[:8],
            book.title,
            ", ".join(book.authors),
            book.status.value,
            rating,
            book.source.value,
        )

    return table


def _read_candidates(source: str, file: Path) -> list[BookCreate]:
    config = get_config()
    if source == "kobo" and config.has_gemini_config():
        from .api import GeminiParser

        importer = IMPORTERS[source](fallback=GeminiParser(config.gemini_api_key))
    else:
        importer = IMPORTERS[source]()
    return importer.parse_file(file)


def _classify(books: list[BookCreate]) -> list[BookCreate]:
    from .api import Entry, GeminiParser, GoogleBooksClient, GoogleBooksLookup, classify_entries
    from .imports import apply_classification

    config = get_config()
    if config.has_gemini_config():
        lookup = GeminiParser(config.gemini_api_key)
    else:
        lookup = GoogleBooksLookup(GoogleBooksClient(api_key=config.google_books_api_key))

    entries = [Entry(title=b.title, author=", ".join(b.authors)) for b in books]
    with console.status("Classifying entries..."):
        labels = classify_entries(entries, lookup)
    return apply_classification(books, labels)


def _enrich(books: list[BookCreate]) -> list[BookCreate]:
    from .api import GoogleBooksClient, batch_enrich_books

    config = get_config()
    client = GoogleBooksClient(api_key=config.google_books_api_key)
    return batch_enrich_books(books, client=client, delay=config.enrich_delay, show_progress=True)


def run_import(
    source: str,
    file: Path,
    dry_run: bool = False,
    enrich: bool = False,
    classify: bool = False,
    yes: bool = False,
) -> None:
    """Parse, optionally classify and enrich, preview, then load."""
    from .etl import bulk_add_books
    from .etl.interactive import show_import_preview, show_import_results

    config = get_config()

    try:
        books = _read_candidates(source, file)
    except BookImportError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not books:
        print_warning(f"No books found in {file}")
        return

    if classify:
        books = _classify(books)
    if enrich:
        books = _enrich(books)

    proceed = show_import_preview(books, source, confirm=not (yes or dry_run))
    if dry_run:
        console.print("[dim]Dry run: no changes were made to the database[/dim]")
        return
    if not proceed:
        console.print("[yellow]Import cancelled[/yellow]")
        return

    result = bulk_add_books(
        books,
        db=get_db(str(config.db_path)),
        owner_id=config.owner_id,
        batch_size=config.insert_batch_size,
        show_progress=True,
    )
    show_import_results(result)

    if result.errors:
        raise typer.Exit(1)


# ============================================================================
# Import Commands
# ============================================================================


FILE_ARGUMENT = typer.Argument(..., help="Path to the export file")
DRY_RUN_OPTION = typer.Option(False, "--dry-run", "-n", help="Preview without importing")
ENRICH_OPTION = typer.Option(False, "--enrich", "-e", help="Fill missing metadata from Google Books")
YES_OPTION = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt")


@import_app.command("goodreads")
def import_goodreads_cmd(
    file: Path = FILE_ARGUMENT,
    dry_run: bool = DRY_RUN_OPTION,
    enrich: bool = ENRICH_OPTION,
    yes: bool = YES_OPTION,
) -> None:
    """Import books from a Goodreads library export."""
    run_import("goodreads", file, dry_run=dry_run, enrich=enrich, yes=yes)


@import_app.command("libby")
def import_libby_cmd(
    file: Path = FILE_ARGUMENT,
    dry_run: bool = DRY_RUN_OPTION,
    enrich: bool = ENRICH_OPTION,
    yes: bool = YES_OPTION,
) -> None:
    """Import borrowing history from a Libby timeline export."""
    run_import("libby", file, dry_run=dry_run, enrich=enrich, yes=yes)


@import_app.command("kindle")
def import_kindle_cmd(
    file: Path = FILE_ARGUMENT,
    dry_run: bool = DRY_RUN_OPTION,
    enrich: bool = ENRICH_OPTION,
    yes: bool = YES_OPTION,
) -> None:
    """Import owned titles from a pasted Kindle library list."""
    run_import("kindle", file, dry_run=dry_run, enrich=enrich, yes=yes)


@import_app.command("kobo")
def import_kobo_cmd(
    file: Path = FILE_ARGUMENT,
    dry_run: bool = DRY_RUN_OPTION,
    enrich: bool = ENRICH_OPTION,
    yes: bool = YES_OPTION,
) -> None:
    """Import a pasted Kobo library table."""
    run_import("kobo", file, dry_run=dry_run, enrich=enrich, yes=yes)


@import_app.command("readwise")
def import_readwise_cmd(
    file: Path = FILE_ARGUMENT,
    dry_run: bool = DRY_RUN_OPTION,
    enrich: bool = ENRICH_OPTION,
    classify: bool = typer.Option(
        False, "--classify", "-c", help="Separate podcasts and articles from books"
    ),
    yes: bool = YES_OPTION,
) -> None:
    """Import highlighted books from a Readwise export."""
    run_import("readwise", file, dry_run=dry_run, enrich=enrich, classify=classify, yes=yes)


@import_app.command("clippings")
def import_clippings_cmd(file: Path = FILE_ARGUMENT) -> None:
    """Attach Kindle highlights to books already in the library."""
    from .etl import apply_highlights
    from .etl.interactive import show_highlight_results

    config = get_config()
    db = get_db(str(config.db_path))

    try:
        bundles = KindleClippingsImporter().parse_file(file)
    except BookImportError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not bundles:
        print_warning(f"No highlights found in {file}")
        return

    result = apply_highlights(bundles, db.list_books(config.owner_id), db=db)
    show_highlight_results(result)


# ============================================================================
# Library Commands
# ============================================================================


@app.command("list")
def list_books(
    status: Optional[BookStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max books to show"),
) -> None:
    """List books, optionally filtered by status."""
    config = get_config()
    books = get_db(str(config.db_path)).list_books(config.owner_id)

    if status:
        books = [b for b in books if b.status == status]
        title = f"Books - {status.value}"
    else:
        title = "All Books"

    if not books:
        console.print("[dim]No books found.[/dim]")
        return

    console.print(format_book_table(books[:limit], title=title))
    if len(books) > limit:
        console.print(f"[dim]Showing {limit} of {len(books)} books[/dim]")


@app.command()
def duplicates() -> None:
    """Find books in the library that look like the same book."""
    from .etl import find_duplicate_groups
    from .etl.interactive import show_duplicate_groups

    config = get_config()
    groups = find_duplicate_groups(get_db(str(config.db_path)).list_books(config.owner_id))
    show_duplicate_groups(groups)


@app.command()
def status(
    ids: list[str] = typer.Argument(..., help="Book IDs"),
    new_status: BookStatus = typer.Option(..., "--status", "-s", help="Status to set"),
) -> None:
    """Set the status of one or more books."""
    from .etl import bulk_update_status

    config = get_config()
    updated = bulk_update_status(
        ids,
        new_status,
        db=get_db(str(config.db_path)),
        owner_id=config.owner_id,
        batch_size=config.update_batch_size,
    )
    print_success(f"Updated {updated} of {len(ids)} books to {new_status.value}")


@app.command()
def delete(
    ids: list[str] = typer.Argument(..., help="Book IDs"),
    yes: bool = YES_OPTION,
) -> None:
    """Delete one or more books."""
    from .etl import bulk_delete_books

    if not yes and not typer.confirm(f"Delete {len(ids)} books?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    config = get_config()
    deleted = bulk_delete_books(
        ids,
        db=get_db(str(config.db_path)),
        owner_id=config.owner_id,
        batch_size=config.update_batch_size,
    )
    print_success(f"Deleted {deleted} books")


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"readtrack version {__version__}")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging and validate configuration."""
    config = get_config()
    setup_logging("DEBUG" if verbose else config.log_level)

    for problem in config.validate():
        print_warning(problem)


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
