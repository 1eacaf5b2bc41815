"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from manuscript_export.commands.export import execute_bundle, execute_epub, execute_pdf
from manuscript_export.commands.info import execute_info, execute_toc
from manuscript_export.commands.project import execute_new, execute_validate
from manuscript_export.commands.verify import execute_verify
from manuscript_export.core.project_io import LIBRARY_EXTENSION
from manuscript_export.models.export import ExportOptions

app = typer.Typer(
    name="manuscript-export",
    help="Export manuscripts to EPUB 3 and print-ready HTML for PDF.",
    add_completion=False,
)

console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging (pagination passes, archive entries)",
        ),
    ] = False,
) -> None:
    """Export manuscripts to EPUB 3 and print-ready HTML for PDF."""
    setup_logging(verbose)


ProjectArg = Annotated[
    Path,
    typer.Argument(
        help="Path to the project file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


@app.command()
def new(
    output_file: Annotated[
        Path,
        typer.Argument(help="Where to write the new project (.mbook added if no suffix)"),
    ],
    title: Annotated[
        str,
        typer.Option("--title", "-t", help="Book title"),
    ] = "Untitled Book",
    author: Annotated[
        str,
        typer.Option("--author", "-a", help="Author name"),
    ] = "",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file"),
    ] = False,
) -> None:
    """Create a new project with a title page and a first chapter."""
    try:
        execute_new(
            output_file=output_file,
            title=title,
            author=author,
            force=force,
            console=console,
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def info(project_path: ProjectArg) -> None:
    """Display book settings and its sections in reading order."""
    try:
        execute_info(project_path, console=console)
    except Exception as e:
        console.print(f"[red]Error reading file: {e}[/]")
        raise typer.Exit(1)


@app.command()
def toc(
    project_path: ProjectArg,
    passes: Annotated[
        int,
        typer.Option("--passes", help="Pagination passes", min=1),
    ] = 3,
) -> None:
    """Preview the generated table of contents and section start pages."""
    try:
        execute_toc(project_path, ExportOptions(pagination_passes=passes), console=console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def epub(
    project_path: ProjectArg,
    output_file: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output file (default: {Title}_{yy-mm-dd_hh-mm}.epub next to the project)",
        ),
    ] = None,
    language: Annotated[
        str,
        typer.Option("--language", "-l", help="Package language code"),
    ] = "en",
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress progress output"),
    ] = False,
) -> None:
    """Export the book as an EPUB 3 file."""
    try:
        execute_epub(
            project_path=project_path,
            output_file=output_file,
            options=ExportOptions(language=language),
            console=console,
            quiet=quiet,
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def pdf(
    project_path: ProjectArg,
    output_file: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output file (default: {Title}_{yy-mm-dd_hh-mm}.html next to the project)",
        ),
    ] = None,
    open_browser: Annotated[
        bool,
        typer.Option("--open", help="Open the document in a browser to print as PDF"),
    ] = False,
    auto_print: Annotated[
        bool,
        typer.Option(
            "--print/--no-print",
            help="Open the print dialog once pagination finishes",
        ),
    ] = True,
    passes: Annotated[
        int,
        typer.Option("--passes", help="Pagination passes", min=1),
    ] = 3,
    language: Annotated[
        str,
        typer.Option("--language", "-l", help="Document language code"),
    ] = "en",
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress progress output"),
    ] = False,
) -> None:
    """Write the paginated print document used for PDF export."""
    options = ExportOptions(
        language=language,
        pagination_passes=passes,
        auto_print=auto_print,
    )
    try:
        execute_pdf(
            project_path=project_path,
            output_file=output_file,
            options=options,
            open_browser=open_browser,
            console=console,
            quiet=quiet,
        )
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def bundle(
    project_paths: Annotated[
        list[Path],
        typer.Argument(
            help="Project or library files to combine",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    output_file: Annotated[
        Path,
        typer.Option("--output", "-o", help=f"Library file to write ({LIBRARY_EXTENSION})"),
    ] = Path(f"library{LIBRARY_EXTENSION}"),
) -> None:
    """Combine several books into one library file."""
    try:
        execute_bundle(project_paths, output_file, console=console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def validate(project_path: ProjectArg) -> None:
    """Check that a project or library file can be imported."""
    try:
        execute_validate(project_path, console=console)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def verify(
    epub_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the EPUB file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
) -> None:
    """Read an EPUB back and check its archive structure and navigation."""
    try:
        report = execute_verify(epub_path, console=console)
    except Exception as e:
        console.print(f"[red]Error reading file: {e}[/]")
        raise typer.Exit(1)

    if not report.ok:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
