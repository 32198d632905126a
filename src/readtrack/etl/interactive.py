"""Rich terminal output for import previews, results and duplicate reports."""

from collections import Counter
from typing import Sequence

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table
from thefuzz import fuzz

from ..db.schemas import BookCreate, DuplicateGroup
from .load import HighlightImportResult, ImportResult

console = Console()

SAMPLE_SIZE = 10
MAX_ERRORS_SHOWN = 20


def _authors(book) -> str:
    return ", ".join(book.authors)


def show_import_preview(books: Sequence[BookCreate], source: str, confirm: bool = True) -> bool:
    """Show candidates about to be imported and optionally confirm.

    Args:
        books: Deduplicated candidates
        source: Importer name, for the heading
        confirm: Ask before proceeding

    Returns:
        True if the import should proceed
    """
    console.print("\n" + "=" * 60)
    console.print(f"[bold]IMPORT PREVIEW[/bold] ({source})")
    console.print("=" * 60 + "\n")

    console.print(f"Books to import: [green]{len(books)}[/green]")

    status_counts = Counter(book.status.value for book in books)
    if status_counts:
        console.print("\n[bold]By Status:[/bold]")
        for status, count in sorted(status_counts.items()):
            console.print(f"  {status}: {count}")

    sample_table = Table(show_header=True)
    sample_table.add_column("Title", width=35)
    sample_table.add_column("Author", width=25)
    sample_table.add_column("Status", width=12)
    sample_table.add_column("Source", width=10)

    for book in books[:SAMPLE_SIZE]:
        sample_table.add_row(
            book.title[:35],
            _authors(book)[:25],
            book.status.value,
            book.source.value,
        )

    if len(books) > SAMPLE_SIZE:
        sample_table.add_row(f"... and {len(books) - SAMPLE_SIZE} more", "", "", "")

    console.print(sample_table)

    if not confirm:
        return True
    console.print()
    return Confirm.ask("Proceed with import?", default=True)


def show_import_results(result: ImportResult) -> None:
    """Show results after an import completes."""
    console.print("\n" + "=" * 60)
    console.print("[bold]IMPORT COMPLETE[/bold]")
    console.print("=" * 60 + "\n")

    console.print(f"[green]Added: {result.added}[/green]")
    if result.skipped:
        console.print(f"[yellow]Already in library: {result.skipped}[/yellow]")
    if result.merged:
        console.print(f"[cyan]Merged within import: {result.merged}[/cyan]")

    if result.errors:
        console.print(f"\n[red]Failed batches: {len(result.errors)}[/red]")
        for error in result.errors[:MAX_ERRORS_SHOWN]:
            console.print(f"  [red]{error}[/red]")
        if len(result.errors) > MAX_ERRORS_SHOWN:
            console.print(f"  ... and {len(result.errors) - MAX_ERRORS_SHOWN} more")


def show_highlight_results(result: HighlightImportResult) -> None:
    """Show how many clipping bundles found a home in the library."""
    console.print(
        f"[green]Matched {result.matched} books[/green] "
        f"({result.total_highlights} highlights)"
    )
    if result.unmatched_books:
        console.print(f"[yellow]No library match for {result.unmatched} books:[/yellow]")
        for title in result.unmatched_books:
            console.print(f"  {title}")


def title_similarity_percent(group: DuplicateGroup) -> int:
    """Lowest pairwise title similarity to the first book, 0-100."""
    first = group.books[0].title
    return min(fuzz.ratio(first.lower(), other.title.lower()) for other in group.books)


def show_duplicate_groups(groups: Sequence[DuplicateGroup]) -> None:
    """Display duplicate groups found in the library."""
    if not groups:
        console.print("[green]No duplicates found.[/green]")
        return

    table = Table(title=f"Possible Duplicates ({len(groups)} groups)", show_header=True)
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="dim", width=10)
    table.add_column("Title", width=40)
    table.add_column("Author", width=25)
    table.add_column("Source", width=10)
    table.add_column("Similarity", justify="right", width=10)

    for number, group in enumerate(groups, 1):
        similarity = f"{title_similarity_percent(group)}%"
        for i, book in enumerate(group.books):
            table.add_row(
                str(number) if i == 0 else "",
                book.id[:8],
                book.title[:40],
                _authors(book)[:25],
                book.source.value,
                similarity if i == 0 else "",
            )

    console.print(table)
