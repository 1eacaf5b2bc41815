"""Data models."""

from manuscript_export.models.book import (
    Book,
    DailyGoal,
    Note,
    Section,
    SectionType,
    Template,
    create_default_book,
)
from manuscript_export.models.document import (
    DocNode,
    EpigraphContent,
    Mark,
    NodeType,
    parse_content,
)
from manuscript_export.models.export import (
    ExportOptions,
    PagePosition,
    PaginationResult,
    TocEntry,
)

__all__ = [
    # Book models
    "Book",
    "Section",
    "SectionType",
    "Template",
    "Note",
    "DailyGoal",
    "create_default_book",
    # Document models
    "DocNode",
    "Mark",
    "NodeType",
    "EpigraphContent",
    "parse_content",
    # Export models
    "ExportOptions",
    "TocEntry",
    "PagePosition",
    "PaginationResult",
]
