"""Info and contents-preview command implementations."""

import asyncio
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from manuscript_export.core.pagination import PaginationResolver
from manuscript_export.core.print_builder import PrintDocumentBuilder
from manuscript_export.core.project_io import read_book_file
from manuscript_export.core.sections import SectionKind, plan_sections
from manuscript_export.models.book import Book
from manuscript_export.models.export import ExportOptions

KIND_LABELS = {
    SectionKind.NORMAL: "",
    SectionKind.EPIGRAPH: "[magenta]epigraph[/]",
    SectionKind.TITLE_PAGE: "[cyan]title page[/]",
    SectionKind.TABLE_OF_CONTENTS: "[yellow]contents[/]",
}


def _truncate(title: str, width: int = 40) -> str:
    return title[: width - 3] + "..." if len(title) > width else title


def display_book(book: Book, console: Console) -> None:
    """Book panel plus one row per section in reading order."""
    plan = plan_sections(book)
    words = book.word_count()
    progress = min(100, round(100 * words / book.word_count_goal)) if book.word_count_goal else 0

    console.print()
    console.print(
        Panel(
            f"[bold]{book.title}[/]\n\n"
            f"[dim]Author:[/] {book.author or 'Unknown'}\n"
            f"[dim]Template:[/] {book.template.value}\n"
            f"[dim]Paragraph indent:[/] {'on' if book.paragraph_indent else 'off'}\n"
            f"[dim]Chapter numbers:[/] {'on' if book.chapter_numbers else 'off'}\n"
            f"[dim]Cover:[/] {'yes' if book.cover_image else 'no'}\n\n"
            f"[dim]Words:[/] {words:,} of {book.word_count_goal:,} ({progress}%)\n"
            f"[dim]Updated:[/] {book.updated_at}",
            title="Book Information",
            border_style="green",
        )
    )

    if not plan:
        console.print("[yellow]No sections.[/]")
        return

    console.print()
    table = Table(title="Sections", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white", max_width=40)
    table.add_column("Type", style="dim")
    table.add_column("Kind")
    table.add_column("In ToC", justify="center", width=6)
    table.add_column("File", style="dim")
    table.add_column("Words", justify="right", style="green")

    for index, planned in enumerate(plan, start=1):
        section = planned.section
        section_words = section.word_count()
        table.add_row(
            str(index),
            _truncate(section.title or "(untitled)"),
            section.type.value,
            KIND_LABELS[planned.kind],
            "[green]✓[/]" if planned.toc_eligible else "[dim]—[/]",
            planned.filename,
            f"{section_words:,}" if section_words else "—",
        )

    table.add_section()
    table.add_row("", "[bold]Total[/]", "", "", "", "", f"[bold]{words:,}[/]")
    console.print(table)


def execute_info(project_path: Path, console: Console) -> None:
    """Execute the info command."""
    display_book(read_book_file(project_path), console)


def execute_toc(project_path: Path, options: ExportOptions, console: Console) -> None:
    """Preview contents entries and section start pages for print output."""
    book = read_book_file(project_path)
    builder = PrintDocumentBuilder(book, options)
    units = builder.units()

    result = asyncio.run(builder.paginate(units))
    if result.skipped:
        console.print("[yellow]Book has no table of contents section; pagination skipped.[/]")
        # Still show where each section would start
        _, positions = PaginationResolver(builder.host, 1).measure_pass(units)
    else:
        positions = result.positions

        table = Table(title=builder.toc_title, show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", width=4)
        table.add_column("Title", style="white", max_width=40)
        table.add_column("Page", justify="right", style="green")
        for entry in result.entries:
            table.add_row(
                str(entry.ordinal) if entry.ordinal is not None else "",
                _truncate(entry.title),
                str(entry.page),
            )
        console.print()
        console.print(table)

    titles = {planned.section.id: planned.section.title for planned in builder.plan}
    layout = Table(title="Page Layout", show_header=True, header_style="bold cyan")
    layout.add_column("Unit", style="white", max_width=40)
    layout.add_column("Start", justify="right", style="green")
    layout.add_column("Pages", justify="right", style="dim")
    for position in positions:
        label = titles.get(position.key, "[dim]Cover[/]")
        layout.add_row(_truncate(label or "(untitled)"), str(position.start_page), str(position.span))

    console.print()
    console.print(layout)
    if not result.skipped:
        console.print(
            f"[dim]Resolved in {result.passes} passes, {result.total_pages} pages total.[/]"
        )
