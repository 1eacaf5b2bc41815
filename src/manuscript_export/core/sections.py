"""Classify sections and plan their order for export."""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from manuscript_export.models.book import Book, Section, SectionType
from manuscript_export.models.document import content_tag

log = logging.getLogger(__name__)


class SectionKind(str, Enum):
    """How a section is rendered."""

    NORMAL = "normal"
    EPIGRAPH = "epigraph"
    TITLE_PAGE = "title_page"
    TABLE_OF_CONTENTS = "table_of_contents"


# Content discriminators written by the editor
CONTENT_TAGS = {
    "epigraph": SectionKind.EPIGRAPH,
    "titlePage": SectionKind.TITLE_PAGE,
    "tableOfContents": SectionKind.TABLE_OF_CONTENTS,
}

# Front matter titles with dedicated templates
SPECIAL_TITLES = {
    "epigraph": SectionKind.EPIGRAPH,
    "title page": SectionKind.TITLE_PAGE,
    "table of contents": SectionKind.TABLE_OF_CONTENTS,
    "contents": SectionKind.TABLE_OF_CONTENTS,
}

# Front/back matter never listed in the generated contents
TOC_EXCLUDED_TITLES = frozenset(
    {
        "half title",
        "half title page",
        "title page",
        "copyright",
        "dedication",
        "epigraph",
        "table of contents",
        "contents",
    }
)


def normalize_title(title: str) -> str:
    return title.strip().lower()


def classify_section(section: Section) -> SectionKind:
    """Decide how a section renders.

    A content tag wins, so a retitled or moved section keeps its template;
    otherwise a front matter title match applies. The result depends only on
    the section itself.
    """
    tag = content_tag(section.content)
    if tag in CONTENT_TAGS:
        return CONTENT_TAGS[tag]
    if section.type == SectionType.FRONTMATTER:
        return SPECIAL_TITLES.get(normalize_title(section.title), SectionKind.NORMAL)
    return SectionKind.NORMAL


def is_toc_eligible(section: Section, kind: SectionKind | None = None) -> bool:
    """Whether a section is listed in the generated table of contents.

    Special sections never are, whatever their type; other chapters always are.
    """
    if kind is None:
        kind = classify_section(section)
    if kind != SectionKind.NORMAL:
        return False
    if section.type == SectionType.CHAPTER:
        return True
    return normalize_title(section.title) not in TOC_EXCLUDED_TITLES


@dataclass(frozen=True)
class PlannedSection:
    """A section with everything derived from it once per export."""

    section: Section
    kind: SectionKind
    ordinal: int | None
    toc_eligible: bool
    file_stem: str

    @property
    def filename(self) -> str:
        return f"{self.file_stem}.xhtml"


def _safe_stem(section_id: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_-]+", "_", section_id).strip("_")
    return f"section-{cleaned or 'untitled'}"


def plan_sections(book: Book) -> list[PlannedSection]:
    """Classify the book's sections in reading order.

    Chapter ordinals count every chapter regardless of contents eligibility.
    File stems derive from section ids; colliding stems get a numeric suffix.
    """
    planned = []
    used_stems: set[str] = set()
    chapter_count = 0

    for section in book.ordered_sections():
        kind = classify_section(section)
        ordinal = None
        if section.type == SectionType.CHAPTER:
            chapter_count += 1
            ordinal = chapter_count

        stem = _safe_stem(section.id)
        if stem in used_stems:
            suffix = 2
            while f"{stem}-{suffix}" in used_stems:
                suffix += 1
            log.warning("Duplicate section id %r, writing it as %s-%d", section.id, stem, suffix)
            stem = f"{stem}-{suffix}"
        used_stems.add(stem)

        planned.append(
            PlannedSection(
                section=section,
                kind=kind,
                ordinal=ordinal,
                toc_eligible=is_toc_eligible(section, kind),
                file_stem=stem,
            )
        )

    return planned
