"""Deterministic text layout used to measure rendered sections.

The print document is paginated against the height each section occupies on
the page. In a browser that height comes from the layout engine; here it is
computed from template font metrics and the page's content width, so the
same fixed-point pagination runs without one.
"""

import asyncio
import math
from typing import Protocol

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from manuscript_export.core.styles import INDENT_EM, get_template, indent_applies, page_geometry
from manuscript_export.models.book import Template
from manuscript_export.models.document import NodeType

HEADING_SCALE = {"h1": None, "h2": 1.4, "h3": 1.17, "h4": 1.0, "h5": 0.83, "h6": 0.67}

# (top, bottom) margins in em of the element's own font
HEADING_MARGINS = {"h1": (2.0, 1.0), "h2": (1.5, 0.5)}
DEFAULT_HEADING_MARGINS = (1.0, 0.5)

# Paragraph classes that never take a first-line indent
UNINDENTED_CLASSES = frozenset(
    {
        "blank-paragraph",
        "chapter-number",
        "title-page-author",
        "epigraph-quote",
        "epigraph-attribution",
    }
)

PARAGRAPH_CLASS_SCALE = {
    "chapter-number": 0.85,
    "title-page-author": 0.9,
    "epigraph-attribution": 0.88,
}

PARAGRAPH_CLASS_MARGINS = {
    "chapter-number": (2.0, 0.2),
    "title-page-author": (0.0, 1.5),
    "epigraph-quote": (0.0, 0.65),
    "blank-paragraph": (0.0, 0.0),
}

# Fraction of the page content height reserved by min-height blocks
MIN_HEIGHT_CLASSES = {
    "title-page-auto": 0.75,
    "epigraph-section": 0.8,
}

LIST_INDENT_PX = 40.0
IMAGE_ASPECT = 0.75
SKIPPED = frozenset({"script", "style", "head", "title", "meta", "link"})


class LayoutHost(Protocol):
    """What the pagination resolver needs from a layout engine."""

    content_height: float

    def measure(self, html: str) -> float:
        """Rendered height in px of an HTML fragment."""
        ...

    async def next_frame(self) -> None:
        """Suspend until the host has completed a layout pass."""
        ...


def pages_for(height: float, content_height: float) -> int:
    """Pages needed for ``height`` px of content, at least one."""
    return max(1, math.ceil(round(height / content_height, 6)))


def _classes(element: Tag) -> set[str]:
    value = element.get("class") or []
    if isinstance(value, str):
        return set(value.split())
    return set(value)


class TextLayoutHost:
    """Layout host backed by template font metrics.

    Wraps text at an average glyph width, splits lines at ``<br>``, applies the
    paragraph indent rule to the first line and collapses adjacent vertical
    margins.
    """

    def __init__(
        self,
        template: Template | str,
        paragraph_indent: bool = True,
        px_per_inch: int = 96,
    ):
        self.spec = get_template(template)
        self.paragraph_indent = paragraph_indent
        geometry = page_geometry(template, px_per_inch)
        self.content_width = geometry.content_width
        self.content_height = geometry.content_height
        self.frames = 0

    async def next_frame(self) -> None:
        self.frames += 1
        await asyncio.sleep(0)

    def measure(self, html: str) -> float:
        soup = BeautifulSoup(html, "lxml")
        root = soup.body or soup
        return self._flow_height(root, self.content_width, self.spec.body_font_px)

    # =========================================================================
    # Block flow
    # =========================================================================

    def _flow_height(self, container: Tag, width: float, font_px: float) -> float:
        total = 0.0
        previous_bottom: float | None = None
        previous_name: str | None = None

        for child in container.children:
            if isinstance(child, NavigableString):
                if isinstance(child, Comment) or not child.strip():
                    continue
                block = (0.0, self._lines_height([str(child)], width, font_px), 0.0)
            elif isinstance(child, Tag):
                if child.name in SKIPPED:
                    continue
                block = self._block(child, width, font_px, previous_name)
                previous_name = child.name
            else:
                continue

            top, height, bottom = block
            if previous_bottom is None:
                total += top
            else:
                total += max(previous_bottom, top)
            total += height
            previous_bottom = bottom

        if previous_bottom is not None:
            total += previous_bottom
        return total

    def _block(
        self,
        element: Tag,
        width: float,
        font_px: float,
        previous_name: str | None,
    ) -> tuple[float, float, float]:
        name = element.name
        classes = _classes(element)

        if name == "p":
            return self._paragraph(element, classes, width, font_px, previous_name)

        if name in HEADING_SCALE:
            scale = HEADING_SCALE[name] or self.spec.title_size_em
            heading_px = font_px * scale
            top, bottom = HEADING_MARGINS.get(name, DEFAULT_HEADING_MARGINS)
            if "title-page-book-title" in classes:
                top, bottom = 0.0, 0.0
            height = self._lines_height(self._segments(element), width, heading_px)
            return top * heading_px, height, bottom * heading_px

        if name == "hr":
            # Generated "* * *" line between 2em margins
            return 2 * font_px, font_px * self.spec.line_height, 2 * font_px

        if name == "br":
            return 0.0, font_px * self.spec.line_height, 0.0

        if name == "img":
            height = min(width * IMAGE_ASPECT, self.content_height)
            return font_px, height, font_px

        if name in ("ul", "ol"):
            if "toc-list" in classes:
                return 0.0, self._flow_height(element, width, font_px), 0.0
            inner = self._flow_height(element, width - LIST_INDENT_PX, font_px)
            return font_px, inner, font_px

        if name == "li":
            if "toc-entry" in classes:
                height = self._lines_height(self._segments(element), width, font_px)
                return 0.0, height, 0.4 * font_px
            if element.find(["p", "ul", "ol", "blockquote"]) is not None:
                return 0.0, self._flow_height(element, width, font_px), 0.0
            return 0.0, self._lines_height(self._segments(element), width, font_px), 0.0

        if name == "blockquote":
            inner = self._flow_height(element, width - 4 * font_px, font_px)
            return font_px, inner, font_px

        # section, div, nav and unknown containers
        inner_width = width
        padding = 0.0
        if "epigraph-block" in classes:
            inner_width = width * 0.62
        if "epigraph-section" in classes:
            padding = 2 * 0.1 * width
        height = self._flow_height(element, inner_width, font_px) + padding
        for css_class, fraction in MIN_HEIGHT_CLASSES.items():
            if css_class in classes:
                height = max(height, fraction * self.content_height)
        return 0.0, height, 0.0

    def _paragraph(
        self,
        element: Tag,
        classes: set[str],
        width: float,
        font_px: float,
        previous_name: str | None,
    ) -> tuple[float, float, float]:
        scale = 1.0
        for css_class, value in PARAGRAPH_CLASS_SCALE.items():
            if css_class in classes:
                scale = value
        paragraph_px = font_px * scale

        top, bottom = (0.0, 0.0) if self.paragraph_indent else (0.0, 0.8)
        for css_class, margins in PARAGRAPH_CLASS_MARGINS.items():
            if css_class in classes:
                top, bottom = margins

        previous = NodeType.PARAGRAPH.value if previous_name == "p" else previous_name
        indented = not (classes & UNINDENTED_CLASSES) and indent_applies(
            previous, self.paragraph_indent
        )
        height = self._lines_height(self._segments(element), width, paragraph_px, indented)
        return top * paragraph_px, height, bottom * paragraph_px

    # =========================================================================
    # Line wrapping
    # =========================================================================

    def _segments(self, element: Tag) -> list[str]:
        """Text of ``element`` split at forced line breaks."""
        segments = [""]
        for node in element.descendants:
            if isinstance(node, Tag) and node.name == "br":
                segments.append("")
            elif isinstance(node, NavigableString) and not isinstance(node, Comment):
                segments[-1] += str(node)
        return segments

    def _lines_height(
        self,
        segments: list[str],
        width: float,
        font_px: float,
        indented: bool = False,
    ) -> float:
        char_em = self.spec.char_width_em
        per_line = max(1, int(width // (font_px * char_em)))
        indent_chars = math.ceil(INDENT_EM / char_em) if indented else 0

        lines = 0
        for i, segment in enumerate(segments):
            length = len(" ".join(segment.split()))
            if i == 0:
                length += indent_chars
            lines += max(1, math.ceil(length / per_line))
        return lines * font_px * self.spec.line_height
