"""Tests for the stored ZIP writer."""

import io
import zipfile
import zlib

import pytest

from manuscript_export.core.epub_reader import has_mimetype_first
from manuscript_export.core.zip_builder import (
    END_OF_CENTRAL_DIR,
    ArchiveEntry,
    build_zip,
    count_local_headers,
    crc32,
    read_zip_entries,
)
from manuscript_export.errors import ArchiveError


@pytest.fixture
def entries() -> list[ArchiveEntry]:
    return [
        ArchiveEntry.text("mimetype", "application/epub+zip"),
        ArchiveEntry.text("META-INF/container.xml", "<container/>"),
        ArchiveEntry.text("OEBPS/Text/chapter.xhtml", "<p>Café — naïve</p>"),
        ArchiveEntry(path="OEBPS/Images/cover.png", data=bytes(range(256)) * 4),
        ArchiveEntry(path="OEBPS/empty.txt", data=b""),
    ]


@pytest.mark.parametrize(
    "data",
    [b"", b"a", b"123456789", b"\x00" * 1000, "ünicode".encode(), bytes(range(256))],
)
def test_crc32_matches_zlib(data):
    assert crc32(data) == zlib.crc32(data)


def test_crc32_check_value():
    assert crc32(b"123456789") == 0xCBF43926


def test_mimetype_at_fixed_offset(entries):
    data = build_zip(entries)
    assert data[:4] == b"PK\x03\x04"
    assert data[30:38] == b"mimetype"
    assert data[38:58] == b"application/epub+zip"
    assert has_mimetype_first(data)


def test_header_counts_agree(entries):
    data = build_zip(entries)
    end_pos = data.rfind(b"PK\x05\x06")
    fields = END_OF_CENTRAL_DIR.unpack_from(data, end_pos)
    recorded = fields[4]
    assert count_local_headers(data) == len(read_zip_entries(data)) == recorded == len(entries)
    assert data.count(b"PK\x01\x02") == len(entries)


def test_stored_crcs_match_content(entries):
    for stored in read_zip_entries(build_zip(entries)):
        assert crc32(stored.data) == stored.crc32


def test_read_back_preserves_order_and_bytes(entries):
    stored = read_zip_entries(build_zip(entries))
    assert [s.path for s in stored] == [e.path for e in entries]
    assert [s.data for s in stored] == [e.data for e in entries]


def test_standard_reader_accepts_archive(entries):
    with zipfile.ZipFile(io.BytesIO(build_zip(entries))) as archive:
        assert archive.testzip() is None
        assert archive.namelist() == [e.path for e in entries]
        assert all(info.compress_type == zipfile.ZIP_STORED for info in archive.infolist())
        assert archive.read("OEBPS/Text/chapter.xhtml").decode() == "<p>Café — naïve</p>"


def test_output_is_deterministic(entries):
    assert build_zip(entries) == build_zip(entries)


def test_empty_archive_rejected():
    with pytest.raises(ArchiveError):
        build_zip([])


def test_empty_path_rejected():
    with pytest.raises(ArchiveError):
        build_zip([ArchiveEntry(path="", data=b"x")])


def test_unencodable_path_rejected():
    with pytest.raises(ArchiveError):
        build_zip([ArchiveEntry(path="bad\udcff", data=b"x")])


def test_truncated_archive_rejected(entries):
    data = build_zip(entries)
    with pytest.raises(ArchiveError):
        read_zip_entries(data[:-30])


def test_missing_mimetype_detected():
    data = build_zip([ArchiveEntry.text("content.opf", "<package/>")])
    assert not has_mimetype_first(data)
