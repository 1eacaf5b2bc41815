"""Data models produced and consumed by the export pipeline."""

from pydantic import BaseModel, Field


class ExportOptions(BaseModel):
    """Settings shared by the export paths."""

    language: str = "en"
    pagination_passes: int = Field(default=3, ge=1)
    px_per_inch: int = 96
    font_stylesheet_url: str = (
        "https://fonts.googleapis.com/css2?family=EB+Garamond:ital,wght@0,400;0,700;1,400"
        "&family=Lato:wght@400;700&family=Merriweather:ital,wght@0,400;0,700;1,400&display=swap"
    )
    auto_print: bool = True


class TocEntry(BaseModel):
    """One generated table of contents line."""

    title: str
    ordinal: int | None = None
    page: int


class PagePosition(BaseModel):
    """Where a layout unit lands in the printed book."""

    key: str
    start_page: int
    span: int = 1


class PaginationResult(BaseModel):
    """Output of the pagination resolver."""

    entries: list[TocEntry] = Field(default_factory=list)
    positions: list[PagePosition] = Field(default_factory=list)
    passes: int = 0
    skipped: bool = False

    @property
    def total_pages(self) -> int:
        if not self.positions:
            return 0
        last = self.positions[-1]
        return last.start_page + last.span - 1

    def start_page(self, key: str) -> int | None:
        for position in self.positions:
            if position.key == key:
                return position.start_page
        return None


class NavEntry(BaseModel):
    """Navigation entry read back from an EPUB."""

    title: str
    href: str


class ContentDocument(BaseModel):
    """Content document read back from an EPUB."""

    id: str
    file_name: str
    title: str
    word_count: int = 0


class EpubReport(BaseModel):
    """Result of verifying a generated EPUB."""

    title: str
    authors: list[str] = Field(default_factory=list)
    language: str | None = None
    identifier: str | None = None
    toc: list[NavEntry] = Field(default_factory=list)
    spine_order: list[str] = Field(default_factory=list)
    documents: list[ContentDocument] = Field(default_factory=list)
    entry_count: int = 0
    mimetype_first: bool = False
    crc_mismatches: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.mimetype_first and not self.crc_mismatches
