"""Tests for special-section classification and export planning."""

import json
import logging

import pytest
from factories import make_book, section

from manuscript_export.core.sections import (
    SectionKind,
    classify_section,
    is_toc_eligible,
    plan_sections,
)
from manuscript_export.models.book import SectionType

FRONT = SectionType.FRONTMATTER
BACK = SectionType.BACKMATTER


def tagged(tag: str) -> str:
    return json.dumps({"__type": tag})


class TestClassification:
    @pytest.mark.parametrize(
        "title,kind",
        [
            ("Title Page", SectionKind.TITLE_PAGE),
            ("  EPIGRAPH ", SectionKind.EPIGRAPH),
            ("Table of Contents", SectionKind.TABLE_OF_CONTENTS),
            ("contents", SectionKind.TABLE_OF_CONTENTS),
            ("Dedication", SectionKind.NORMAL),
        ],
    )
    def test_front_matter_titles(self, title, kind):
        assert classify_section(section("s", title, FRONT)) == kind

    def test_title_match_only_applies_to_front_matter(self):
        assert classify_section(section("s", "Contents", SectionType.CHAPTER)) == SectionKind.NORMAL
        assert classify_section(section("s", "Epigraph", BACK)) == SectionKind.NORMAL

    def test_content_tag_wins_over_title(self):
        retitled = section("s", "A Few Words", FRONT, content=tagged("epigraph"))
        assert classify_section(retitled) == SectionKind.EPIGRAPH
        moved = section("s", "Chapter Nine", SectionType.CHAPTER, content=tagged("titlePage"))
        assert classify_section(moved) == SectionKind.TITLE_PAGE

    def test_unknown_tag_falls_back_to_title(self):
        s = section("s", "Contents", FRONT, content=tagged("somethingNew"))
        assert classify_section(s) == SectionKind.TABLE_OF_CONTENTS

    def test_classification_is_idempotent(self, book_with_toc):
        first = [classify_section(s) for s in book_with_toc.sections]
        second = [classify_section(s) for s in book_with_toc.sections]
        assert first == second
        assert plan_sections(book_with_toc) == plan_sections(book_with_toc)


class TestTocEligibility:
    @pytest.mark.parametrize(
        "title",
        ["Copyright", "COPYRIGHT", " copyright ", "Half Title", "Dedication", "Title Page"],
    )
    def test_excluded_front_matter(self, title):
        assert not is_toc_eligible(section("s", title, FRONT))

    def test_chapters_always_listed(self):
        assert is_toc_eligible(section("s", "Copyright", SectionType.CHAPTER))

    def test_other_matter_listed(self):
        assert is_toc_eligible(section("s", "Prologue", FRONT))
        assert is_toc_eligible(section("s", "Acknowledgements", BACK))

    def test_special_content_never_listed(self):
        assert not is_toc_eligible(section("s", "Opening", FRONT, content=tagged("epigraph")))

    @pytest.mark.parametrize("tag", ["tableOfContents", "epigraph", "titlePage"])
    def test_tagged_chapter_never_listed(self, tag):
        assert not is_toc_eligible(section("s", "Whatever", content=tagged(tag)))

    def test_contents_chapter_does_not_list_itself(self):
        book = make_book(
            [
                section("toc", "Whatever", order=0, content=tagged("tableOfContents")),
                section("one", "One", order=1),
            ]
        )
        plan = plan_sections(book)
        assert plan[0].kind == SectionKind.TABLE_OF_CONTENTS
        assert [p.section.title for p in plan if p.toc_eligible] == ["One"]
        assert [p.ordinal for p in plan] == [1, 2]


class TestPlan:
    def test_reading_order_and_ordinals(self):
        book = make_book(
            [
                section("c2", "Two", order=3),
                section("t", "Title Page", FRONT, order=0),
                section("c1", "One", order=1),
                section("b", "Afterword", BACK, order=4),
                section("c1b", "Interlude", order=2),
            ]
        )
        plan = plan_sections(book)
        assert [p.section.id for p in plan] == ["t", "c1", "c1b", "c2", "b"]
        assert [p.ordinal for p in plan] == [None, 1, 2, 3, None]

    def test_equal_order_keeps_list_position(self):
        book = make_book([section("a", "A"), section("b", "B"), section("c", "C")])
        assert [p.section.id for p in plan_sections(book)] == ["a", "b", "c"]

    def test_filenames_come_from_ids(self):
        book = make_book([section("a/b c", "Chapter", order=0)])
        assert plan_sections(book)[0].filename == "section-a_b_c.xhtml"

    def test_duplicate_ids_get_distinct_files(self, caplog):
        book = make_book(
            [section("same", "One", order=0), section("same", "Two", order=1), section("same", "Three", order=2)]
        )
        with caplog.at_level(logging.WARNING):
            plan = plan_sections(book)
        assert [p.file_stem for p in plan] == ["section-same", "section-same-2", "section-same-3"]
        assert "Duplicate section id" in caplog.text

    def test_same_titles_do_not_collide(self):
        book = make_book([section("x1", "Chapter", order=0), section("x2", "Chapter", order=1)])
        stems = [p.file_stem for p in plan_sections(book)]
        assert len(set(stems)) == 2
