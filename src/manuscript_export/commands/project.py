"""Project file command implementations (new, validate)."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from manuscript_export.core.project_io import (
    PROJECT_EXTENSION,
    dump_book,
    read_project_file,
)
from manuscript_export.models.book import Book, create_default_book


def execute_new(
    output_file: Path,
    title: str,
    author: str,
    force: bool,
    console: Console,
) -> Path:
    """Write a fresh project with a title page and a first chapter."""
    if not output_file.suffix:
        output_file = output_file.with_suffix(PROJECT_EXTENSION)
    if output_file.exists() and not force:
        raise FileExistsError(f"{output_file} already exists (use --force to overwrite)")

    book = create_default_book(title=title, author=author)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(dump_book(book), encoding="utf-8")

    console.print(
        Panel(
            f"[green]Created new project[/]\n\n"
            f"[dim]Title:[/] {book.title}\n"
            f"[dim]Author:[/] {book.author or 'Unknown'}\n"
            f"[dim]Sections:[/] {', '.join(s.title for s in book.ordered_sections())}\n"
            f"[dim]File:[/] {output_file}",
            title="New Book",
            border_style="green",
        )
    )
    return output_file


def execute_validate(project_path: Path, console: Console) -> list[Book]:
    """Validate a project or library file, reporting what it holds.

    Raises ProjectImportError on the first invalid book; nothing is reported
    as valid unless every book passes.
    """
    loaded = read_project_file(project_path)
    books = loaded if isinstance(loaded, list) else [loaded]
    kind = "Library" if isinstance(loaded, list) else "Project"

    lines = [f"[green]{kind} file is valid[/]", ""]
    for book in books:
        notes = sum(len(section.notes) for section in book.sections)
        lines.append(
            f"[bold]{book.title}[/] [dim]({len(book.sections)} sections, "
            f"{book.word_count():,} words, {notes} notes)[/]"
        )
    console.print(Panel("\n".join(lines), title="Validation", border_style="green"))
    return books
