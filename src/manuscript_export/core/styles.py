"""Per-template typography and the shared book stylesheet."""

from dataclasses import dataclass

from manuscript_export.models.book import Template
from manuscript_export.models.document import NodeType

# Assumed root font size for em-based template sizes
BASE_FONT_PX = 16.0

# First-line indent applied to continuing paragraphs
INDENT_EM = 1.5


@dataclass(frozen=True)
class TemplateSpec:
    """Fixed typographic bundle for one template."""

    body_font: str
    title_font: str
    title_extra: str
    title_size_em: float
    body_size_em: float
    line_height: float
    page_width_in: float
    page_height_in: float
    # top, right, bottom, left
    margins_in: tuple[float, float, float, float]
    # Average advance width of a body glyph, used for text measurement
    char_width_em: float

    @property
    def body_font_px(self) -> float:
        return self.body_size_em * BASE_FONT_PX

    def margin_css(self) -> str:
        top, right, bottom, left = self.margins_in
        if top == bottom and right == left:
            if top == right:
                return f"{_fmt(top)}in"
            return f"{_fmt(top)}in {_fmt(right)}in"
        return " ".join(f"{_fmt(m)}in" for m in self.margins_in)


TEMPLATES: dict[Template, TemplateSpec] = {
    Template.REEDSY: TemplateSpec(
        body_font="Merriweather, Georgia, serif",
        title_font="Lato, Arial, sans-serif",
        title_extra="text-transform: uppercase; letter-spacing: 0.05em; font-weight: 700;",
        title_size_em=1.9,
        body_size_em=1.1,
        line_height=1.7,
        page_width_in=6.0,
        page_height_in=9.0,
        margins_in=(0.9, 1.1, 0.9, 1.1),
        char_width_em=0.55,
    ),
    Template.CLASSIC: TemplateSpec(
        body_font="Times New Roman, Times, serif",
        title_font="Times New Roman, Times, serif",
        title_extra="text-transform: uppercase; letter-spacing: 0.1em; font-weight: 700;",
        title_size_em=1.8,
        body_size_em=1.2,
        line_height=2.0,
        page_width_in=8.5,
        page_height_in=11.0,
        margins_in=(1.0, 1.0, 1.0, 1.0),
        char_width_em=0.45,
    ),
    Template.ROMANCE: TemplateSpec(
        body_font='Garamond, "EB Garamond", Georgia, serif',
        title_font='Garamond, "EB Garamond", Georgia, serif',
        title_extra="font-style: italic; font-weight: 400; letter-spacing: 0.02em;",
        title_size_em=2.1,
        body_size_em=1.05,
        line_height=1.6,
        page_width_in=6.0,
        page_height_in=9.0,
        margins_in=(0.85, 1.0, 0.85, 1.0),
        char_width_em=0.43,
    ),
}


@dataclass(frozen=True)
class PageGeometry:
    """Printable area of one page in device-independent pixels."""

    content_width: float
    content_height: float


def _fmt(value: float) -> str:
    return f"{value:g}"


def get_template(template: Template | str) -> TemplateSpec:
    return TEMPLATES[Template(template)]


def page_geometry(template: Template | str, px_per_inch: int = 96) -> PageGeometry:
    """Content box of a page: page size minus margins."""
    spec = get_template(template)
    top, right, bottom, left = spec.margins_in
    return PageGeometry(
        content_width=(spec.page_width_in - left - right) * px_per_inch,
        content_height=(spec.page_height_in - top - bottom) * px_per_inch,
    )


# =============================================================================
# Paragraph indentation rule
# =============================================================================


def indent_applies(previous_sibling: str | None, enabled: bool) -> bool:
    """Whether a paragraph gets a first-line indent.

    Only a paragraph directly preceded by another paragraph is indented. The
    first paragraph of a container and paragraphs after headings, scene breaks,
    blockquotes or lists start flush.
    """
    return enabled and previous_sibling == NodeType.PARAGRAPH.value


def _paragraph_css(paragraph_indent: bool) -> str:
    if paragraph_indent:
        return (
            "p { text-indent: 0; margin: 0; }\n"
            f"p + p {{ text-indent: {_fmt(INDENT_EM)}em; }}\n"
            "h1 + p, h2 + p, h3 + p, h4 + p, h5 + p, h6 + p, hr + p, hr.scene-break + p, "
            "blockquote + p, ul + p, ol + p { text-indent: 0; }"
        )
    return "p { text-indent: 0; margin: 0 0 0.8em 0; }"


def build_styles(template: Template | str, paragraph_indent: bool = True) -> str:
    """Build the book stylesheet for a template."""
    spec = get_template(template)
    return f"""
body {{ font-family: {spec.body_font}; font-size: {_fmt(spec.body_size_em)}em; line-height: {_fmt(spec.line_height)}; margin: 1.5em 2em; color: #1a1a1a; text-align: justify; hyphens: auto; }}
h1 {{ font-family: {spec.title_font}; font-size: {_fmt(spec.title_size_em)}em; text-align: center; margin: 2em auto 1em; {spec.title_extra} }}
h2 {{ font-size: 1.4em; margin: 1.5em 0 0.5em; }}
{_paragraph_css(paragraph_indent)}
p.blank-paragraph {{ text-indent: 0 !important; margin: 0; }}
blockquote {{ margin: 1em 2em; font-style: italic; }}
hr.scene-break {{ border: none; text-align: center; margin: 2em auto; }}
hr.scene-break::after {{ content: "* * *"; font-style: normal; }}
img {{ max-width: 100%; height: auto; display: block; margin: 1em auto; }}

/* Chapter number */
.chapter-number {{ text-align: center; font-size: 0.85em; color: #9ca3af; letter-spacing: 0.12em; margin: 2em 0 0.2em 0; text-indent: 0 !important; }}

/* Title page */
.title-page-auto {{ min-height: 75vh; display: flex; flex-direction: column; justify-content: center; align-items: center; text-align: center; }}
.title-page-author {{ margin: 0 0 1.5em 0; text-transform: uppercase; letter-spacing: 0.08em; font-size: 0.9em; color: #57534e; text-indent: 0 !important; }}
.title-page-book-title {{ margin: 0; }}

/* Epigraph */
.epigraph-section {{ display: flex; flex-direction: column; justify-content: center; min-height: 80vh; padding: 10% 0; }}
.epigraph-block {{ margin-left: 22%; max-width: 62%; }}
.epigraph-quote {{ font-style: italic; text-indent: 0 !important; margin: 0 0 0.65em 0; }}
.epigraph-attribution {{ text-align: right; font-style: normal; font-size: 0.88em; color: #57534e; text-indent: 0 !important; margin: 0; }}

/* Table of contents */
.toc-list {{ list-style: none; margin: 0; padding: 0; }}
.toc-entry {{ display: flex; align-items: baseline; margin: 0 0 0.4em 0; text-align: left; }}
.toc-entry a {{ color: inherit; text-decoration: none; }}
.toc-ordinal {{ margin-right: 0.6em; color: #57534e; }}
.toc-label {{ flex: 1; }}
.toc-page {{ margin-left: 1em; font-variant-numeric: tabular-nums; }}
"""
