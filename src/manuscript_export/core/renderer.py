"""Render document trees and special sections to HTML fragments.

Every function here is pure: the same input always yields the same markup.
Fragments are also well-formed XHTML, so the EPUB and print paths share them.
"""

import html
from collections.abc import Sequence

from manuscript_export.models.book import Book, Section
from manuscript_export.models.document import DocNode, EpigraphContent, NodeType, parse_content
from manuscript_export.models.export import TocEntry

BLANK_PARAGRAPH = '<p class="blank-paragraph"{style}>&#160;</p>'

# Mark tags from outermost to innermost
MARK_TAGS = (
    ("bold", "strong"),
    ("italic", "em"),
    ("underline", "u"),
)

ALIGNMENTS = frozenset({"left", "center", "right", "justify"})

CONTAINER_TAGS = {
    NodeType.BULLET_LIST.value: "ul",
    NodeType.ORDERED_LIST.value: "ol",
    NodeType.LIST_ITEM.value: "li",
    NodeType.BLOCKQUOTE.value: "blockquote",
}


def escape_html(text: str) -> str:
    """Escape ``& < > " '`` for text and attribute values."""
    return html.escape(text, quote=True)


def render_text(node: DocNode) -> str:
    """Escape a text run and wrap it in its marks.

    Nesting is fixed (strong > em > u) whatever order the marks are stored in.
    """
    result = escape_html(node.text or "")
    if not result:
        return ""
    present = {mark.type for mark in node.marks}
    for mark_type, tag in reversed(MARK_TAGS):
        if mark_type in present:
            result = f"<{tag}>{result}</{tag}>"
    return result


def _align_style(node: DocNode) -> str:
    align = node.attrs.get("textAlign")
    if isinstance(align, str) and align in ALIGNMENTS:
        return f' style="text-align: {align};"'
    return ""


def _heading_level(node: DocNode) -> int:
    level = node.attrs.get("level")
    if isinstance(level, bool) or not isinstance(level, int):
        return 2
    return min(max(level, 1), 6)


def render_nodes(nodes: Sequence[DocNode]) -> str:
    return "".join(render_node(node) for node in nodes)


def render_node(node: DocNode) -> str:
    """Render one node and its subtree."""
    node_type = node.type

    if node_type == NodeType.TEXT.value:
        return render_text(node)

    content = render_nodes(node.children)

    if node_type == NodeType.PARAGRAPH.value:
        style = _align_style(node)
        if not content:
            return BLANK_PARAGRAPH.format(style=style)
        return f"<p{style}>{content}</p>"

    if node_type == NodeType.HEADING.value:
        level = _heading_level(node)
        return f"<h{level}{_align_style(node)}>{content}</h{level}>"

    if node_type in CONTAINER_TAGS:
        tag = CONTAINER_TAGS[node_type]
        return f"<{tag}>{content}</{tag}>"

    if node_type == NodeType.HORIZONTAL_RULE.value:
        return '<hr class="scene-break"/>'

    if node_type == NodeType.HARD_BREAK.value:
        return "<br/>"

    if node_type == NodeType.IMAGE.value:
        src = node.attrs.get("src") or ""
        alt = node.attrs.get("alt") or ""
        return f'<img src="{escape_html(str(src))}" alt="{escape_html(str(alt))}"/>'

    # doc root and unknown types
    if content:
        return content
    return escape_html(node.text or "")


def render_document(doc: DocNode | None) -> str:
    """Render a parsed section document; empty documents keep one blank line."""
    if doc is None:
        return BLANK_PARAGRAPH.format(style="")
    body = render_node(doc)
    return body or BLANK_PARAGRAPH.format(style="")


# =============================================================================
# Section templates
# =============================================================================


def render_section_body(section: Section, include_heading: bool = True) -> str:
    """Heading plus rendered content of a normal section."""
    heading = f"<h1>{escape_html(section.title)}</h1>" if include_heading else ""
    parsed = parse_content(section.content)
    if isinstance(parsed, EpigraphContent):
        return heading + render_epigraph_block(parsed)
    return heading + render_document(parsed)


def render_chapter_number(ordinal: int | None) -> str:
    if ordinal is None:
        return ""
    return f'<p class="chapter-number">{ordinal}</p>'


def render_title_page(book: Book) -> str:
    author = book.author.strip()
    author_html = f'<p class="title-page-author">{escape_html(author)}</p>' if author else ""
    return (
        '<section class="title-page-auto">'
        f"{author_html}"
        f'<h1 class="title-page-book-title">{escape_html(book.title)}</h1>'
        "</section>"
    )


def render_epigraph_block(data: EpigraphContent) -> str:
    attribution = f"\u2014\u2009{escape_html(data.attribution)}" if data.attribution else ""
    return (
        '<div class="epigraph-block">'
        f'<p class="epigraph-quote">{escape_html(data.quote)}</p>'
        f'<p class="epigraph-attribution">{attribution}</p>'
        "</div>"
    )


def render_toc(
    entries: Sequence[TocEntry],
    show_ordinals: bool = False,
    title: str = "Contents",
) -> str:
    """Contents list with page numbers, as filled into the ToC placeholder."""
    items = []
    for entry in entries:
        ordinal = ""
        if show_ordinals and entry.ordinal is not None:
            ordinal = f'<span class="toc-ordinal">{entry.ordinal}</span>'
        items.append(
            '<li class="toc-entry">'
            f"{ordinal}"
            f'<span class="toc-label">{escape_html(entry.title)}</span>'
            f'<span class="toc-page">{entry.page}</span>'
            "</li>"
        )
    return f'<h1>{escape_html(title)}</h1><ol class="toc-list">{"".join(items)}</ol>'


def render_toc_links(links: Sequence[tuple[str, str]], title: str = "Contents") -> str:
    """Contents list of (title, href) links, for reflowable output."""
    items = "".join(
        f'<li class="toc-entry"><a href="{escape_html(href)}">{escape_html(label)}</a></li>'
        for label, href in links
    )
    return f'<h1>{escape_html(title)}</h1><ol class="toc-list">{items}</ol>'
