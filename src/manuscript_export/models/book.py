"""Data models for the book aggregate (sections, notes, goals)."""

import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from manuscript_export.models.document import DocNode, count_words, extract_text, parse_content


class SectionType(str, Enum):
    """Position of a section in the book."""

    FRONTMATTER = "frontmatter"
    CHAPTER = "chapter"
    BACKMATTER = "backmatter"


class Template(str, Enum):
    """Named typesetting presets."""

    REEDSY = "reedsy"
    CLASSIC = "classic"
    ROMANCE = "romance"


class _CamelModel(BaseModel):
    """Base for models serialized with the editor's camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Note(_CamelModel):
    """Sticky note attached to a section. Carried through exports untouched."""

    id: str
    content: str
    pinned: bool = False
    color: Literal["yellow", "blue", "green", "pink"] = "yellow"
    created_at: str = ""


class Section(_CamelModel):
    """One front matter page, chapter or back matter page."""

    id: str
    type: SectionType
    title: str
    subtitle: str | None = None
    # Serialized document tree, epigraph payload, or legacy plain text
    content: str = ""
    order: int = 0
    notes: list[Note] = Field(default_factory=list)

    def word_count(self) -> int:
        parsed = parse_content(self.content)
        if isinstance(parsed, DocNode):
            return count_words(extract_text(parsed))
        if parsed is None:
            return 0
        return count_words(parsed.quote)


class DailyGoal(_CamelModel):
    """Words written on one day against that day's target."""

    date: str
    target: int
    words_written: int = 0


class Book(_CamelModel):
    """Complete manuscript."""

    id: str
    title: str
    author: str = ""
    template: Template = Template.REEDSY
    sections: list[Section] = Field(default_factory=list)
    cover_image: str | None = None  # base64 data URL
    paragraph_indent: bool = True  # False = spaced paragraphs
    chapter_numbers: bool = False
    daily_goal: int = 1000
    word_count_goal: int = 80000
    goal_history: list[DailyGoal] = Field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def ordered_sections(self) -> list[Section]:
        """Sections in reading order (by ``order``, ties by list position)."""
        indexed = sorted(enumerate(self.sections), key=lambda pair: (pair[1].order, pair[0]))
        return [section for _, section in indexed]

    def word_count(self) -> int:
        return sum(section.word_count() for section in self.sections)


def generate_id() -> str:
    """Short random id in the editor's format (random base36 + time base36)."""
    alphabet = "0123456789abcdefghijklmnopqrstuvwxyz"
    random_part = "".join(secrets.choice(alphabet) for _ in range(9))
    millis = int(time.time() * 1000)
    time_part = ""
    while millis:
        millis, rem = divmod(millis, 36)
        time_part = alphabet[rem] + time_part
    return random_part + time_part


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def create_default_book(title: str = "Untitled Book", author: str = "") -> Book:
    """New book with a title page and a first chapter."""
    now = utc_now_iso()
    return Book(
        id=generate_id(),
        title=title,
        author=author,
        sections=[
            Section(id=generate_id(), type=SectionType.FRONTMATTER, title="Title Page", order=0),
            Section(id=generate_id(), type=SectionType.CHAPTER, title="Chapter One", order=1),
        ],
        created_at=now,
        updated_at=now,
    )
