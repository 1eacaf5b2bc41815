"""Read a generated EPUB back with ebooklib to verify it."""

import warnings
from pathlib import Path

import ebooklib
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from ebooklib import epub

from manuscript_export.core.zip_builder import count_local_headers, crc32, read_zip_entries
from manuscript_export.errors import ArchiveError
from manuscript_export.models.export import ContentDocument, EpubReport, NavEntry

MIMETYPE_HEADER = b"PK\x03\x04"
MIMETYPE_NAME = b"mimetype"
MIMETYPE_CONTENT = b"application/epub+zip"
# Name starts right after the 30-byte local header
MIMETYPE_NAME_OFFSET = 30
MIMETYPE_CONTENT_OFFSET = MIMETYPE_NAME_OFFSET + len(MIMETYPE_NAME)


def has_mimetype_first(data: bytes) -> bool:
    """Check the fixed-offset ``mimetype`` entry readers sniff for."""
    return (
        data[:4] == MIMETYPE_HEADER
        and data[MIMETYPE_NAME_OFFSET:MIMETYPE_CONTENT_OFFSET] == MIMETYPE_NAME
        and data[MIMETYPE_CONTENT_OFFSET : MIMETYPE_CONTENT_OFFSET + len(MIMETYPE_CONTENT)]
        == MIMETYPE_CONTENT
    )


class EpubReader:
    """Inspect an EPUB file: ZIP structure first, then package contents."""

    def __init__(self, epub_path: Path):
        self.path = epub_path
        self.data = epub_path.read_bytes()

    def verify(self) -> EpubReport:
        """Check the archive structure and read back metadata and navigation."""
        stored = read_zip_entries(self.data)
        local_count = count_local_headers(self.data)
        if local_count != len(stored):
            raise ArchiveError(
                f"{local_count} local headers but {len(stored)} central directory records"
            )
        mismatches = [entry.path for entry in stored if crc32(entry.data) != entry.crc32]

        book = epub.read_epub(str(self.path))
        return EpubReport(
            title=self._first_metadata(book, "title") or "Unknown Title",
            authors=[value for value, _ in book.get_metadata("DC", "creator")],
            language=self._first_metadata(book, "language"),
            identifier=self._first_metadata(book, "identifier"),
            toc=self._get_toc(book.toc),
            spine_order=[item[0] for item in book.spine],
            documents=self._get_documents(book),
            entry_count=len(stored),
            mimetype_first=has_mimetype_first(self.data),
            crc_mismatches=mismatches,
        )

    def _first_metadata(self, book: epub.EpubBook, name: str) -> str | None:
        values = book.get_metadata("DC", name)
        return values[0][0] if values else None

    def _get_toc(self, toc_items: list) -> list[NavEntry]:
        """Flatten the navigation tree."""
        entries = []
        for item in toc_items:
            if isinstance(item, tuple):
                section, children = item
                entries.append(NavEntry(title=section.title or "Untitled", href=section.href or ""))
                entries.extend(self._get_toc(children))
            else:
                entries.append(NavEntry(title=item.title or "Untitled", href=item.href or ""))
        return entries

    def _get_documents(self, book: epub.EpubBook) -> list[ContentDocument]:
        documents = []
        for item in book.get_items_of_type(ebooklib.ITEM_DOCUMENT):
            content = item.get_content()
            # XHTML is parsed as HTML on purpose
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
                soup = BeautifulSoup(content, "lxml")
            body = soup.body or soup
            documents.append(
                ContentDocument(
                    id=item.get_id(),
                    file_name=item.get_name(),
                    title=self._extract_title(soup) or item.get_name(),
                    word_count=len(body.get_text(separator=" ", strip=True).split()),
                )
            )
        return documents

    def _extract_title(self, soup: BeautifulSoup) -> str | None:
        """Try h1, then h2, then the title tag."""
        for tag in ["h1", "h2", "title"]:
            element = soup.find(tag)
            if element:
                text = element.get_text(strip=True)
                if text:
                    return text
        return None


def verify_epub(epub_path: Path) -> EpubReport:
    """Verify an EPUB file on disk."""
    return EpubReader(epub_path).verify()
