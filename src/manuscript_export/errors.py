"""Exceptions raised by the export pipeline."""


class ManuscriptError(Exception):
    """Base error carrying a short machine-readable type."""

    def __init__(self, error_type: str, message: str):
        self.error_type = error_type
        self.message = message
        super().__init__(f"{error_type}: {message}")


class ProjectImportError(ManuscriptError):
    """Project or library file failed structural validation."""

    def __init__(self, message: str):
        super().__init__("INVALID_FILE", message)


class EmptyBookError(ManuscriptError):
    """Export requested for a book without sections."""

    def __init__(self, title: str):
        super().__init__("EMPTY_BOOK", f'"{title}" has no sections to export')


class ArchiveError(ManuscriptError):
    """Archive input violated the builder's preconditions."""

    def __init__(self, message: str):
        super().__init__("ARCHIVE", message)
