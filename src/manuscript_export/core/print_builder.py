"""Standalone print HTML for the host's PDF pipeline."""

import asyncio
import json
import logging

from manuscript_export.core.layout import LayoutHost, TextLayoutHost
from manuscript_export.core.pagination import TOC_SLOT, LayoutUnit, PaginationResolver
from manuscript_export.core.renderer import (
    escape_html,
    render_chapter_number,
    render_epigraph_block,
    render_section_body,
    render_title_page,
    render_toc,
)
from manuscript_export.core.sections import PlannedSection, SectionKind, plan_sections
from manuscript_export.core.styles import build_styles, get_template, page_geometry
from manuscript_export.errors import EmptyBookError
from manuscript_export.models.book import Book
from manuscript_export.models.document import parse_epigraph
from manuscript_export.models.export import ExportOptions, PaginationResult, TocEntry

log = logging.getLogger(__name__)

COVER_KEY = "cover"

# Runs the same passes in the print window, where real layout is available,
# then opens the print dialog.
PAGINATION_SCRIPT = """
(function () {
  var CONTENT_HEIGHT = %(content_height)s;
  var PASSES = %(passes)d;
  var SHOW_ORDINALS = %(show_ordinals)s;
  var AUTO_PRINT = %(auto_print)s;
  var TOC_TITLE = %(toc_title)s;

  function nextFrame() {
    return new Promise(function (resolve) {
      requestAnimationFrame(function () { requestAnimationFrame(resolve); });
    });
  }

  function esc(value) {
    return String(value)
      .replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;')
      .replace(/"/g, '&quot;').replace(/'/g, '&#x27;');
  }

  function measurePass() {
    var page = 1;
    var entries = [];
    document.querySelectorAll('[data-unit]').forEach(function (el) {
      var span = el.dataset.unit === 'cover'
        ? 1
        : Math.max(1, Math.ceil(el.getBoundingClientRect().height / CONTENT_HEIGHT));
      if (el.dataset.tocTitle !== undefined) {
        entries.push({
          title: el.dataset.tocTitle,
          ordinal: el.dataset.tocOrdinal ? parseInt(el.dataset.tocOrdinal, 10) : null,
          page: page
        });
      }
      page += span;
    });
    return entries;
  }

  function renderToc(entries) {
    var items = entries.map(function (entry) {
      var ordinal = SHOW_ORDINALS && entry.ordinal !== null
        ? '<span class="toc-ordinal">' + entry.ordinal + '</span>'
        : '';
      return '<li class="toc-entry">' + ordinal +
        '<span class="toc-label">' + esc(entry.title) + '</span>' +
        '<span class="toc-page">' + entry.page + '</span></li>';
    });
    return '<h1>' + esc(TOC_TITLE) + '</h1><ol class="toc-list">' + items.join('') + '</ol>';
  }

  async function run() {
    var placeholder = document.getElementById('toc-placeholder');
    if (placeholder) {
      for (var pass = 0; pass < PASSES; pass++) {
        placeholder.innerHTML = renderToc(measurePass());
        await nextFrame();
      }
    }
    if (AUTO_PRINT) {
      window.focus();
      window.print();
    }
  }

  if (document.readyState === 'complete') {
    run();
  } else {
    window.addEventListener('load', run);
  }
})();
"""


def css_string(value: str) -> str:
    """Quote a value as a CSS string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")
    return f'"{escaped}"'


def _data_attrs(planned: PlannedSection, unit: str = "section") -> str:
    attrs = f' data-unit="{unit}" data-section-id="{escape_html(planned.section.id)}"'
    if planned.toc_eligible:
        attrs += f' data-toc-title="{escape_html(planned.section.title)}"'
        if planned.ordinal is not None:
            attrs += f' data-toc-ordinal="{planned.ordinal}"'
    return attrs


class PrintDocumentBuilder:
    """Build the self-contained HTML handed to the print dialog."""

    def __init__(
        self,
        book: Book,
        options: ExportOptions | None = None,
        host: LayoutHost | None = None,
    ):
        self.book = book
        self.options = options or ExportOptions()
        self.plan = plan_sections(book)
        self.host = host or TextLayoutHost(
            book.template,
            paragraph_indent=book.paragraph_indent,
            px_per_inch=self.options.px_per_inch,
        )
        self.toc_title = "Contents"
        for planned in self.plan:
            if planned.kind == SectionKind.TABLE_OF_CONTENTS:
                self.toc_title = planned.section.title or "Contents"
                break

    # =========================================================================
    # Layout units
    # =========================================================================

    def _cover_unit(self) -> LayoutUnit:
        html = (
            f'<div class="cover-page" data-unit="{COVER_KEY}">'
            f'<img src="{escape_html(self.book.cover_image or "")}" class="cover-img" alt="Cover"/>'
            "</div>"
        )
        return LayoutUnit(key=COVER_KEY, html=html, is_cover=True)

    def _section_inner(self, planned: PlannedSection) -> str:
        if planned.kind == SectionKind.EPIGRAPH:
            return render_epigraph_block(parse_epigraph(planned.section.content))
        if planned.kind == SectionKind.TITLE_PAGE:
            return render_title_page(self.book)
        number = ""
        if self.book.chapter_numbers:
            number = render_chapter_number(planned.ordinal)
        return number + render_section_body(planned.section)

    def _section_unit(self, planned: PlannedSection) -> LayoutUnit:
        attrs = _data_attrs(planned)
        toc_title = planned.section.title if planned.toc_eligible else None

        if planned.kind == SectionKind.TABLE_OF_CONTENTS:
            shell = (
                f'<section class="chapter toc-section"{_data_attrs(planned, unit="toc")}>'
                f'<div id="toc-placeholder">{TOC_SLOT}</div>'
                "</section>"
            )
            unit = LayoutUnit(
                key=planned.section.id,
                html="",
                is_toc=True,
                toc_title=toc_title,
                ordinal=planned.ordinal,
                shell=shell,
            )
            unit.fill_toc(self.render_toc([]))
            return unit

        css_class = "chapter epigraph-section" if planned.kind == SectionKind.EPIGRAPH else "chapter"
        html = f'<section class="{css_class}"{attrs}>{self._section_inner(planned)}</section>'
        return LayoutUnit(
            key=planned.section.id,
            html=html,
            toc_title=toc_title,
            ordinal=planned.ordinal,
        )

    def units(self) -> list[LayoutUnit]:
        """Cover (when present) then every section, in reading order."""
        if not self.plan:
            raise EmptyBookError(self.book.title)
        units = []
        if self.book.cover_image:
            units.append(self._cover_unit())
        units.extend(self._section_unit(planned) for planned in self.plan)
        return units

    def render_toc(self, entries: list[TocEntry]) -> str:
        return render_toc(entries, show_ordinals=self.book.chapter_numbers, title=self.toc_title)

    # =========================================================================
    # Document
    # =========================================================================

    async def paginate(self, units: list[LayoutUnit]) -> PaginationResult:
        resolver = PaginationResolver(self.host, self.options.pagination_passes)
        return await resolver.resolve(units, self.render_toc)

    async def build_async(self) -> tuple[str, PaginationResult]:
        units = self.units()
        result = await self.paginate(units)
        log.debug(
            "Print document for %r: %d units, %d pages",
            self.book.title,
            len(units),
            result.total_pages,
        )
        return self._document(units), result

    def build(self) -> tuple[str, PaginationResult]:
        """Paginate and return ``(html, pagination)``."""
        return asyncio.run(self.build_async())

    def _script(self) -> str:
        geometry = page_geometry(self.book.template, self.options.px_per_inch)
        return PAGINATION_SCRIPT % {
            "content_height": f"{geometry.content_height:g}",
            "passes": self.options.pagination_passes,
            "show_ordinals": "true" if self.book.chapter_numbers else "false",
            "auto_print": "true" if self.options.auto_print else "false",
            "toc_title": json.dumps(self.toc_title).replace("</", "<\\/"),
        }

    def _document(self, units: list[LayoutUnit]) -> str:
        book = self.book
        spec = get_template(book.template)
        geometry = page_geometry(book.template, self.options.px_per_inch)
        width = f"{spec.page_width_in:g}in"
        height = f"{spec.page_height_in:g}in"
        css = build_styles(book.template, book.paragraph_indent)
        body = "\n".join(unit.html for unit in units)

        return f"""<!DOCTYPE html>
<html lang="{escape_html(self.options.language)}">
<head>
  <meta charset="UTF-8"/>
  <title>{escape_html(book.title)}</title>
  <link rel="preconnect" href="https://fonts.googleapis.com"/>
  <link rel="preconnect" href="https://fonts.gstatic.com" crossorigin="anonymous"/>
  <link href="{escape_html(self.options.font_stylesheet_url)}" rel="stylesheet"/>
  <style>
    @page {{
      size: {width} {height};
      margin: {spec.margin_css()};
      @top-center {{ content: {css_string(book.title)}; font-style: italic; font-size: 0.75em; color: #666; }}
      @bottom-center {{ content: counter(page); font-size: 0.8em; color: #555; }}
    }}
    @page :first {{ @top-center {{ content: none; }} @bottom-center {{ content: none; }} }}
    * {{ box-sizing: border-box; }}
    {css}
    body {{ margin: 0; padding: 0; }}

    /* Cover */
    .cover-page {{ page-break-after: always; width: 100%; height: {geometry.content_height:g}px; display: flex; align-items: center; justify-content: center; }}
    .cover-img {{ max-width: 100%; max-height: 100%; object-fit: contain; }}

    /* Sections */
    .chapter {{ page-break-before: always; }}
    .cover-page + .chapter, .chapter:first-child {{ page-break-before: avoid; }}
    .epigraph-section {{ min-height: {0.8 * geometry.content_height:g}px; }}
    .title-page-auto {{ min-height: {0.75 * geometry.content_height:g}px; }}

    @media print {{
      h1 {{ page-break-after: avoid; }}
    }}
    @media screen {{
      body {{ width: {geometry.content_width:g}px; margin: 0 auto; background: white; }}
    }}
  </style>
</head>
<body>
{body}
<script>{self._script()}</script>
</body>
</html>"""


def build_print_document(book: Book, options: ExportOptions | None = None) -> str:
    """Paginated print HTML for ``book``; raises EmptyBookError when empty."""
    html, _ = PrintDocumentBuilder(book, options).build()
    return html
