"""Tests for EPUB packaging and read-back verification."""

import base64
import io
import re
import warnings
import zipfile

import pytest
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from factories import doc, make_book, paragraph, section

from manuscript_export.core.epub_builder import (
    EpubBuilder,
    build_epub,
    cover_extension,
    cover_mime_type,
    format_modified,
)
from manuscript_export.core.epub_reader import EpubReader, verify_epub
from manuscript_export.errors import EmptyBookError
from manuscript_export.models.export import ExportOptions

PNG_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake").decode()


def read_entry(data: bytes, path: str) -> str:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return archive.read(path).decode("utf-8")


class TestEntries:
    def test_entry_order(self, simple_book):
        paths = [entry.path for entry in EpubBuilder(simple_book).entries()]
        assert paths == [
            "mimetype",
            "META-INF/container.xml",
            "OEBPS/content.opf",
            "OEBPS/toc.ncx",
            "OEBPS/nav.xhtml",
            "OEBPS/styles/book.css",
            "OEBPS/Text/section-title.xhtml",
            "OEBPS/Text/section-ch1.xhtml",
            "OEBPS/Text/section-ch2.xhtml",
        ]

    def test_cover_entries(self, simple_book):
        book = simple_book.model_copy(update={"cover_image": PNG_URL})
        entries = {entry.path: entry for entry in EpubBuilder(book).entries()}
        assert entries["OEBPS/Images/cover.png"].data == b"\x89PNG\r\n\x1a\nfake"
        assert "OEBPS/Text/cover.xhtml" in entries
        opf = entries["OEBPS/content.opf"].data.decode()
        assert 'media-type="image/png" properties="cover-image"' in opf
        assert '<itemref idref="cover-page"/>' in opf

    def test_empty_book_rejected(self):
        with pytest.raises(EmptyBookError):
            build_epub(make_book([]))


class TestPackageDocuments:
    def test_metadata(self, simple_book):
        opf = read_entry(build_epub(simple_book, ExportOptions(language="fr")), "OEBPS/content.opf")
        assert "<dc:title>The Long Road</dc:title>" in opf
        assert "<dc:creator>A. Writer</dc:creator>" in opf
        assert "<dc:language>fr</dc:language>" in opf
        assert "urn:uuid:book-1" in opf
        assert '<meta property="dcterms:modified">2024-05-02T11:30:00Z</meta>' in opf

    def test_language_is_escaped_everywhere(self, simple_book):
        book = simple_book.model_copy(update={"cover_image": PNG_URL})
        data = build_epub(book, ExportOptions(language='en"><x'))
        for path in ["OEBPS/nav.xhtml", "OEBPS/Text/cover.xhtml", "OEBPS/Text/section-ch1.xhtml"]:
            document = read_entry(data, path)
            assert 'lang="en&quot;&gt;&lt;x"' in document, path
            assert 'en"><x' not in document, path

    def test_spine_follows_reading_order(self, book_with_toc):
        soup = BeautifulSoup(read_entry(build_epub(book_with_toc), "OEBPS/content.opf"), "xml")
        spine = [ref["idref"] for ref in soup.find("spine").find_all("itemref")]
        assert spine == [
            "section-title",
            "section-copyright",
            "section-toc",
            "section-ch1",
            "section-ch2",
            "section-ch3",
            "section-ack",
        ]

    def test_special_sections_use_templates(self, book_with_toc):
        data = build_epub(book_with_toc)
        title_page = read_entry(data, "OEBPS/Text/section-title.xhtml")
        assert "title-page-auto" in title_page
        assert 'epub:type="titlepage"' in title_page

    def test_contents_page_skips_excluded_sections(self, book_with_toc):
        toc = read_entry(build_epub(book_with_toc), "OEBPS/Text/section-toc.xhtml")
        soup = BeautifulSoup(toc, "xml")
        labels = [a.get_text() for a in soup.find_all("a")]
        assert labels == ["Chapter One", "Chapter Two", "Chapter Three", "Acknowledgements"]
        assert "Copyright" not in labels

    def test_chapter_numbers(self, book_with_toc):
        chapter = read_entry(build_epub(book_with_toc), "OEBPS/Text/section-ch2.xhtml")
        assert '<p class="chapter-number">2</p>' in chapter

    def test_content_documents_are_well_formed(self, book_with_toc):
        data = build_epub(book_with_toc)
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for name in archive.namelist():
                if name.endswith((".xhtml", ".opf", ".ncx", ".xml")):
                    soup = BeautifulSoup(archive.read(name), "xml")
                    assert soup.find() is not None, name


class TestHelpers:
    def test_cover_mime(self):
        assert cover_mime_type(PNG_URL) == "image/png"
        assert cover_mime_type("not a data url") == "image/jpeg"
        assert cover_extension("image/webp") == "webp"
        assert cover_extension("image/jpeg") == "jpg"

    def test_format_modified(self):
        assert format_modified("2024-05-02T11:30:00.123Z") == "2024-05-02T11:30:00Z"

    def test_format_modified_converts_offset_to_utc(self):
        assert format_modified("2024-05-02T23:30:00+02:00") == "2024-05-02T21:30:00Z"
        assert format_modified("2024-05-02T23:30:00-01:00") == "2024-05-03T00:30:00Z"

    def test_format_modified_naive_is_utc(self):
        assert format_modified("2024-05-02T11:30:00") == "2024-05-02T11:30:00Z"

    @pytest.mark.parametrize("timestamp", ["", "   ", "last tuesday"])
    def test_format_modified_falls_back_to_now(self, timestamp):
        value = format_modified(timestamp)
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", value)

    def test_empty_timestamps_give_valid_modified(self):
        book = make_book([section("c1", "One")], created_at="", updated_at="")
        opf = read_entry(build_epub(book), "OEBPS/content.opf")
        match = re.search(r'<meta property="dcterms:modified">([^<]*)</meta>', opf)
        assert match
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", match.group(1))

    def test_modified_uses_utc_updated_at(self):
        book = make_book([section("c1", "One")], updated_at="2024-05-02T23:30:00+02:00")
        opf = read_entry(build_epub(book), "OEBPS/content.opf")
        assert '<meta property="dcterms:modified">2024-05-02T21:30:00Z</meta>' in opf


def test_verify_round_trip(tmp_path, book_with_toc):
    epub_path = tmp_path / "book.epub"
    epub_path.write_bytes(build_epub(book_with_toc))

    report = EpubReader(epub_path).verify()

    assert report.ok
    assert report.mimetype_first
    assert report.crc_mismatches == []
    assert report.title == "The Long Road"
    assert report.authors == ["A. Writer"]
    assert report.language == "en"
    assert report.entry_count == 6 + len(book_with_toc.sections)
    assert report.spine_order[0] == "section-title"
    assert [entry.title for entry in report.toc][:4] == [
        "Title Page",
        "Copyright",
        "Contents",
        "Chapter One",
    ]
    files = {document.file_name for document in report.documents}
    assert "Text/section-ch1.xhtml" in files


def test_verify_reports_word_counts(tmp_path):
    book = make_book([section("c", "Only", content=doc(paragraph("one two three four")))])
    epub_path = tmp_path / "small.epub"
    epub_path.write_bytes(build_epub(book))
    report = verify_epub(epub_path)
    chapter = next(d for d in report.documents if d.file_name == "Text/section-c.xhtml")
    assert chapter.title == "Only"
    assert chapter.word_count == 5


def test_verify_leaves_warning_filters_alone(tmp_path, simple_book):
    epub_path = tmp_path / "book.epub"
    epub_path.write_bytes(build_epub(simple_book))
    before = list(warnings.filters)

    verify_epub(epub_path)

    assert warnings.filters == before
    assert not any(f[2] is XMLParsedAsHTMLWarning for f in warnings.filters)
