"""Verify command implementation."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from manuscript_export.core.epub_reader import verify_epub
from manuscript_export.models.export import EpubReport


def display_report(report: EpubReport, console: Console) -> None:
    status = "[green]OK[/]" if report.ok else "[red]Problems found[/]"
    mismatches = ", ".join(report.crc_mismatches) if report.crc_mismatches else "none"

    console.print()
    console.print(
        Panel(
            f"[bold]{report.title}[/]\n\n"
            f"[dim]Author(s):[/] {', '.join(report.authors) or 'Unknown'}\n"
            f"[dim]Language:[/] {report.language or 'Unknown'}\n"
            f"[dim]Identifier:[/] {report.identifier or 'Unknown'}\n\n"
            f"[dim]Archive entries:[/] {report.entry_count}\n"
            f"[dim]mimetype first:[/] {'yes' if report.mimetype_first else '[red]no[/]'}\n"
            f"[dim]CRC mismatches:[/] {mismatches}\n"
            f"[dim]Status:[/] {status}",
            title="EPUB Verification",
            border_style="green" if report.ok else "red",
        )
    )

    if report.toc:
        console.print()
        table = Table(title="Navigation", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim", width=4)
        table.add_column("Title", style="white", max_width=40)
        table.add_column("Target", style="dim")
        for index, entry in enumerate(report.toc, start=1):
            table.add_row(str(index), entry.title, entry.href)
        console.print(table)

    if report.documents:
        console.print()
        table = Table(title="Content Documents", show_header=True, header_style="bold cyan")
        table.add_column("File", style="white")
        table.add_column("Title", style="dim", max_width=40)
        table.add_column("Words", justify="right", style="green")
        for document in report.documents:
            table.add_row(document.file_name, document.title, f"{document.word_count:,}")
        console.print(table)


def execute_verify(epub_path: Path, console: Console) -> EpubReport:
    """Execute the verify command."""
    report = verify_epub(epub_path)
    display_report(report, console)
    return report
