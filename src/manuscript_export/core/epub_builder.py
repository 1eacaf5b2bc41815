"""EPUB 3 packaging on top of the stored ZIP writer."""

import base64
import binascii
import logging
import re
from datetime import datetime, timezone

from manuscript_export.core.renderer import (
    escape_html,
    render_chapter_number,
    render_epigraph_block,
    render_section_body,
    render_title_page,
    render_toc_links,
)
from manuscript_export.core.sections import PlannedSection, SectionKind, plan_sections
from manuscript_export.core.styles import build_styles
from manuscript_export.core.zip_builder import ArchiveEntry, build_zip
from manuscript_export.errors import ArchiveError, EmptyBookError
from manuscript_export.models.book import Book, SectionType
from manuscript_export.models.document import parse_epigraph
from manuscript_export.models.export import ExportOptions

log = logging.getLogger(__name__)

COVER_EXTENSIONS = {
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

XHTML_HEAD = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" lang="{lang}" xml:lang="{lang}">
<head>
  <meta charset="UTF-8"/>
  <title>{title}</title>
  <link rel="stylesheet" type="text/css" href="../styles/book.css"/>
</head>
"""


def cover_mime_type(data_url: str) -> str:
    """MIME type from a data URL prefix, JPEG when absent."""
    match = re.match(r"^data:([^;,]+)[;,]", data_url)
    return match.group(1) if match else "image/jpeg"


def cover_extension(mime_type: str) -> str:
    return COVER_EXTENSIONS.get(mime_type, "jpg")


def data_url_to_bytes(data_url: str) -> bytes:
    """Decode the base64 payload of a data URL."""
    _, _, payload = data_url.partition(",")
    try:
        return base64.b64decode(payload)
    except (binascii.Error, ValueError) as e:
        raise ArchiveError("Cover image is not valid base64") from e


def format_modified(timestamp: str) -> str:
    """``dcterms:modified`` value (CCYY-MM-DDThh:mm:ssZ) from an ISO string.

    Offsets are converted to UTC and naive times are taken as UTC. An empty or
    unparseable timestamp falls back to the current time.
    """
    value = timestamp.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        if timestamp:
            log.warning("Unparseable timestamp %r, using the current time", timestamp)
        moment = datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _body_type(planned: PlannedSection) -> str:
    if planned.section.type == SectionType.FRONTMATTER:
        return "frontmatter"
    if planned.section.type == SectionType.BACKMATTER:
        return "backmatter"
    return "bodymatter"


def _section_type(planned: PlannedSection) -> str:
    if planned.kind == SectionKind.TITLE_PAGE:
        return "titlepage"
    if planned.kind == SectionKind.TABLE_OF_CONTENTS:
        return "toc"
    if planned.kind == SectionKind.EPIGRAPH:
        return "epigraph"
    return planned.section.type.value


class EpubBuilder:
    """Build an EPUB 3 archive from a book snapshot."""

    MIMETYPE = "application/epub+zip"
    OEBPS = "OEBPS"
    PACKAGE_PATH = "OEBPS/content.opf"

    def __init__(self, book: Book, options: ExportOptions | None = None):
        self.book = book
        self.options = options or ExportOptions()
        self.plan = plan_sections(book)
        self.cover_mime = cover_mime_type(book.cover_image) if book.cover_image else "image/jpeg"
        self.cover_ext = cover_extension(self.cover_mime)

    @property
    def has_cover(self) -> bool:
        return bool(self.book.cover_image)

    def entries(self) -> list[ArchiveEntry]:
        """All archive entries in write order, ``mimetype`` first."""
        if not self.plan:
            raise EmptyBookError(self.book.title)

        entries = [
            ArchiveEntry.text("mimetype", self.MIMETYPE),
            ArchiveEntry.text("META-INF/container.xml", self._container_xml()),
            ArchiveEntry.text(self.PACKAGE_PATH, self._package_opf()),
            ArchiveEntry.text(f"{self.OEBPS}/toc.ncx", self._ncx()),
            ArchiveEntry.text(f"{self.OEBPS}/nav.xhtml", self._nav_xhtml()),
            ArchiveEntry.text(
                f"{self.OEBPS}/styles/book.css",
                build_styles(self.book.template, self.book.paragraph_indent),
            ),
        ]

        if self.has_cover:
            entries.append(ArchiveEntry.text(f"{self.OEBPS}/Text/cover.xhtml", self._cover_xhtml()))
            entries.append(
                ArchiveEntry(
                    path=f"{self.OEBPS}/Images/cover.{self.cover_ext}",
                    data=data_url_to_bytes(self.book.cover_image or ""),
                )
            )

        for planned in self.plan:
            entries.append(
                ArchiveEntry.text(f"{self.OEBPS}/Text/{planned.filename}", self._section_xhtml(planned))
            )

        return entries

    def build(self) -> bytes:
        """Build the complete EPUB archive."""
        entries = self.entries()
        if entries[0].path != "mimetype":
            raise ArchiveError("mimetype must be the first archive entry")
        data = build_zip(entries)
        log.debug(
            "Built EPUB with %d entries (%d bytes) for %r",
            len(entries),
            len(data),
            self.book.title,
        )
        return data

    # =========================================================================
    # Package documents
    # =========================================================================

    def _container_xml(self) -> str:
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{self.PACKAGE_PATH}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

    def _package_opf(self) -> str:
        book = self.book
        cover_meta = ""
        cover_items = ""
        cover_spine = ""
        if self.has_cover:
            cover_meta = '\n    <meta name="cover" content="cover-image"/>'
            cover_items = (
                f'\n    <item id="cover-image" href="Images/cover.{self.cover_ext}" '
                f'media-type="{self.cover_mime}" properties="cover-image"/>'
                '\n    <item id="cover-page" href="Text/cover.xhtml" media-type="application/xhtml+xml"/>'
            )
            cover_spine = '\n    <itemref idref="cover-page"/>'

        items = "".join(
            f'\n    <item id="{p.file_stem}" href="Text/{p.filename}" media-type="application/xhtml+xml"/>'
            for p in self.plan
        )
        spine = "".join(f'\n    <itemref idref="{p.file_stem}"/>' for p in self.plan)

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<package version="3.0" xmlns="http://www.idpf.org/2007/opf" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:title>{escape_html(book.title)}</dc:title>
    <dc:creator>{escape_html(book.author or "Unknown Author")}</dc:creator>
    <dc:language>{escape_html(self.options.language)}</dc:language>
    <dc:identifier id="bookid">urn:uuid:{escape_html(book.id)}</dc:identifier>
    <meta property="dcterms:modified">{escape_html(format_modified(book.updated_at or book.created_at))}</meta>{cover_meta}
  </metadata>
  <manifest>
    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>
    <item id="css" href="styles/book.css" media-type="text/css"/>
    <item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>{cover_items}{items}
  </manifest>
  <spine toc="ncx">{cover_spine}{spine}
  </spine>
</package>"""

    def _ncx(self) -> str:
        nav_points = "".join(
            f"""
    <navPoint id="nav-{p.file_stem}" playOrder="{i}">
      <navLabel><text>{escape_html(p.section.title)}</text></navLabel>
      <content src="Text/{p.filename}"/>
    </navPoint>"""
            for i, p in enumerate(self.plan, start=1)
        )
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head>
    <meta name="dtb:uid" content="urn:uuid:{escape_html(self.book.id)}"/>
  </head>
  <docTitle><text>{escape_html(self.book.title)}</text></docTitle>
  <navMap>{nav_points}
  </navMap>
</ncx>"""

    def _nav_xhtml(self) -> str:
        items = "\n".join(
            f'      <li><a href="Text/{p.filename}">{escape_html(p.section.title)}</a></li>'
            for p in self.plan
        )
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" lang="{escape_html(self.options.language)}">
<head><title>Table of Contents</title></head>
<body>
  <nav epub:type="toc" id="toc">
    <h1>Contents</h1>
    <ol>
{items}
    </ol>
  </nav>
</body>
</html>"""

    # =========================================================================
    # Content documents
    # =========================================================================

    def _head(self, title: str) -> str:
        return XHTML_HEAD.format(lang=escape_html(self.options.language), title=escape_html(title))

    def _cover_xhtml(self) -> str:
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" lang="{escape_html(self.options.language)}">
<head>
  <meta charset="UTF-8"/>
  <title>Cover</title>
  <style>
    html, body {{ margin: 0; padding: 0; width: 100%; height: 100%; }}
    img.cover {{ width: 100%; height: 100%; object-fit: cover; display: block; }}
  </style>
</head>
<body epub:type="cover">
  <section epub:type="cover">
    <img class="cover" src="../Images/cover.{self.cover_ext}" alt="Cover"/>
  </section>
</body>
</html>"""

    def _section_body(self, planned: PlannedSection) -> str:
        if planned.kind == SectionKind.EPIGRAPH:
            return render_epigraph_block(parse_epigraph(planned.section.content))
        if planned.kind == SectionKind.TITLE_PAGE:
            return render_title_page(self.book)
        if planned.kind == SectionKind.TABLE_OF_CONTENTS:
            links = [(p.section.title, p.filename) for p in self.plan if p.toc_eligible]
            return render_toc_links(links, title=planned.section.title or "Contents")

        number = ""
        if self.book.chapter_numbers:
            number = render_chapter_number(planned.ordinal)
        return number + render_section_body(planned.section)

    def _section_xhtml(self, planned: PlannedSection) -> str:
        section = planned.section
        css_class = ' class="epigraph-section"' if planned.kind == SectionKind.EPIGRAPH else ""
        return f"""{self._head(section.title)}<body epub:type="{_body_type(planned)}">
  <section epub:type="{_section_type(planned)}"{css_class} id="{planned.file_stem}">
    {self._section_body(planned)}
  </section>
</body>
</html>"""


def build_epub(book: Book, options: ExportOptions | None = None) -> bytes:
    """Build an EPUB for ``book``; raises EmptyBookError when it has no sections."""
    return EpubBuilder(book, options).build()
