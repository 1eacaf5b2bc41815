"""Export command implementations (EPUB, print/PDF, library bundle)."""

import logging
import webbrowser
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from manuscript_export.core.epub_builder import EpubBuilder
from manuscript_export.core.filename import build_export_base_name
from manuscript_export.core.print_builder import PrintDocumentBuilder
from manuscript_export.core.project_io import (
    LIBRARY_EXTENSION,
    dump_library,
    read_book_file,
    read_project_file,
)
from manuscript_export.models.book import Book
from manuscript_export.models.export import ExportOptions

log = logging.getLogger(__name__)


def default_output_path(book: Book, source: Path, suffix: str) -> Path:
    """``<Title>_<yy-mm-dd_hh-mm><suffix>`` next to the project file."""
    return source.parent / f"{build_export_base_name(book.title)}{suffix}"


def format_file_size(size_bytes: int) -> str:
    size = float(size_bytes)
    for unit in ["B", "KB", "MB"]:
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def execute_epub(
    project_path: Path,
    output_file: Path | None,
    options: ExportOptions,
    console: Console,
    quiet: bool = False,
) -> Path:
    """Execute the epub command."""
    book = read_book_file(project_path)
    builder = EpubBuilder(book, options)

    if quiet:
        data = builder.build()
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Building EPUB...", total=None)
            data = builder.build()

    # Written only after a complete build, never a partial archive
    output_file = output_file or default_output_path(book, project_path, ".epub")
    output_file.write_bytes(data)
    log.info("Wrote %s (%d bytes)", output_file, len(data))

    if quiet:
        console.print(f"[green]Exported to {output_file}[/]")
    else:
        console.print()
        console.print(
            Panel(
                f"[green]Exported {len(builder.plan)} section(s)[/]\n\n"
                f"[dim]Book:[/] {book.title}\n"
                f"[dim]Cover:[/] {'yes' if builder.has_cover else 'no'}\n"
                f"[dim]Size:[/] {format_file_size(len(data))}\n"
                f"[dim]Output file:[/] {output_file}",
                title="EPUB Export Complete",
                border_style="green",
            )
        )
    return output_file


def execute_pdf(
    project_path: Path,
    output_file: Path | None,
    options: ExportOptions,
    open_browser: bool,
    console: Console,
    quiet: bool = False,
) -> Path:
    """Execute the pdf command: write the paginated print document."""
    book = read_book_file(project_path)
    builder = PrintDocumentBuilder(book, options)

    if quiet:
        html, pagination = builder.build()
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Paginating...", total=None)
            html, pagination = builder.build()

    output_file = output_file or default_output_path(book, project_path, ".html")
    output_file.write_text(html, encoding="utf-8")
    log.info("Wrote %s (%d pages)", output_file, pagination.total_pages)

    if not quiet:
        if pagination.skipped:
            pages_line = "[dim]Contents:[/] none (pagination skipped)"
        else:
            pages_line = (
                f"[dim]Contents:[/] {len(pagination.entries)} entries, "
                f"{pagination.total_pages} pages after {pagination.passes} passes"
            )
        console.print()
        console.print(
            Panel(
                f"[green]Print document ready[/]\n\n"
                f"[dim]Book:[/] {book.title}\n"
                f"{pages_line}\n"
                f"[dim]Output file:[/] {output_file}",
                title="PDF Export",
                border_style="green",
            )
        )
    else:
        console.print(f"[green]Exported to {output_file}[/]")

    if open_browser:
        opened = webbrowser.open(output_file.resolve().as_uri())
        if not opened:
            console.print("[yellow]Could not open a browser for printing.[/]")
            console.print(
                f"[dim]Open {output_file} in a browser and choose Print > Save as PDF.[/]"
            )
        elif not quiet:
            console.print("[dim]Opened in browser; use the print dialog to save as PDF.[/]")

    return output_file


def execute_bundle(
    project_paths: list[Path],
    output_file: Path,
    console: Console,
) -> Path:
    """Combine project and library files into one library bundle."""
    books: list[Book] = []
    for path in project_paths:
        loaded = read_project_file(path)
        if isinstance(loaded, list):
            books.extend(loaded)
        else:
            books.append(loaded)

    if output_file.suffix != LIBRARY_EXTENSION:
        output_file = output_file.with_suffix(LIBRARY_EXTENSION)
    output_file.write_text(dump_library(books), encoding="utf-8")
    console.print(f"[green]Bundled {len(books)} book(s) into {output_file}[/]")
    return output_file
