"""Shared fixtures."""

import json

import pytest
from factories import doc, long_paragraphs, make_book, paragraph, scene_break, section

from manuscript_export.models.book import Book, Note, SectionType

FRONT = SectionType.FRONTMATTER
BACK = SectionType.BACKMATTER


@pytest.fixture
def simple_book() -> Book:
    """Title page plus two chapters, no contents page."""
    return make_book(
        [
            section("title", "Title Page", FRONT, order=0),
            section(
                "ch1",
                "Chapter One",
                content=doc(
                    paragraph("It was a cold morning."),
                    paragraph("Nobody spoke."),
                    scene_break(),
                    paragraph("Later, the rain came."),
                ),
                order=1,
            ),
            section("ch2", "Chapter Two", content=doc(paragraph("The end.")), order=2),
        ]
    )


@pytest.fixture
def book_with_toc() -> Book:
    """Front matter with Copyright and a contents page, three chapters, back matter."""
    return make_book(
        [
            section("title", "Title Page", FRONT, order=0),
            section("copyright", "Copyright", FRONT, content=long_paragraphs(30), order=1),
            section(
                "toc",
                "Contents",
                FRONT,
                content=json.dumps({"__type": "tableOfContents"}),
                order=2,
            ),
            section("ch1", "Chapter One", content=long_paragraphs(25), order=3),
            section("ch2", "Chapter Two", content=long_paragraphs(4), order=4),
            section("ch3", "Chapter Three", content=long_paragraphs(40), order=5),
            section("ack", "Acknowledgements", BACK, content=long_paragraphs(2), order=6),
        ],
        chapter_numbers=True,
    )


@pytest.fixture
def book_with_notes(simple_book: Book) -> Book:
    chapter = simple_book.sections[1].model_copy(
        update={"notes": [Note(id="n1", content="Check dates", pinned=True, color="blue")]}
    )
    sections = [simple_book.sections[0], chapter, simple_book.sections[2]]
    return simple_book.model_copy(update={"sections": sections})
