"""Tests for project and library files."""

import json
import logging

import pytest

from manuscript_export.core.project_io import (
    SCHEMA_VERSION,
    dump_book,
    dump_library,
    load_book,
    load_project,
    migrate,
    validate_book,
)
from manuscript_export.errors import ProjectImportError
from manuscript_export.models.book import Template, create_default_book


def raw_book(**overrides) -> dict:
    data = {
        "id": "b1",
        "title": "Draft",
        "sections": [
            {"id": "s1", "type": "chapter", "title": "One", "content": "", "order": 0},
        ],
    }
    data.update(overrides)
    return data


class TestRoundTrip:
    def test_book_survives_round_trip(self, book_with_toc):
        assert load_book(dump_book(book_with_toc)) == book_with_toc

    def test_notes_survive_round_trip(self, book_with_notes):
        loaded = load_book(dump_book(book_with_notes))
        assert loaded.sections[1].notes == book_with_notes.sections[1].notes

    def test_dump_uses_camel_case(self, simple_book):
        data = json.loads(dump_book(simple_book))
        assert data["paragraphIndent"] is True
        assert data["wordCountGoal"] == 80000
        assert data["schemaVersion"] == SCHEMA_VERSION
        assert "paragraph_indent" not in data

    def test_updated_at_is_preserved(self, simple_book):
        assert load_book(dump_book(simple_book)).updated_at == "2024-05-02T11:30:00.000Z"

    def test_library_round_trip(self, simple_book, book_with_toc):
        loaded = load_project(dump_library([simple_book, book_with_toc]))
        assert loaded == [simple_book, book_with_toc]

    def test_default_book(self):
        book = create_default_book(title="New")
        assert [s.title for s in book.ordered_sections()] == ["Title Page", "Chapter One"]
        assert load_book(dump_book(book)) == book


class TestValidation:
    def test_not_json(self):
        with pytest.raises(ProjectImportError, match="not valid JSON"):
            load_project("{nope")

    def test_missing_title(self):
        data = raw_book()
        del data["title"]
        with pytest.raises(ProjectImportError, match="missing title"):
            validate_book(data)

    def test_missing_sections(self):
        with pytest.raises(ProjectImportError, match="missing sections"):
            validate_book(raw_book(sections=None))

    def test_bad_section_type(self):
        sections = [{"id": "s1", "type": "appendix", "title": "A"}]
        with pytest.raises(ProjectImportError, match="section 1 has invalid type"):
            validate_book(raw_book(sections=sections))

    def test_section_without_id(self):
        with pytest.raises(ProjectImportError, match="missing an id"):
            validate_book(raw_book(sections=[{"type": "chapter", "title": "A"}]))

    def test_not_an_object(self):
        with pytest.raises(ProjectImportError):
            validate_book(["a", "list"])

    def test_defaults_for_optional_fields(self):
        book = validate_book(raw_book())
        assert book.author == ""
        assert book.template == Template.REEDSY
        assert book.paragraph_indent is True
        assert book.chapter_numbers is False
        assert book.daily_goal == 1000
        assert book.cover_image is None
        assert book.created_at

    def test_missing_id_is_generated(self):
        data = raw_book()
        del data["id"]
        assert validate_book(data).id

    def test_malformed_notes_are_dropped(self):
        notes = [
            {"id": "n1", "content": "keep", "color": "pink"},
            {"id": "n2"},
            {"id": "n3", "content": "bad color", "color": "purple"},
            "junk",
        ]
        sections = [{"id": "s1", "type": "chapter", "title": "A", "notes": notes}]
        book = validate_book(raw_book(sections=sections))
        assert [n.id for n in book.sections[0].notes] == ["n1"]

    def test_object_content_is_serialized(self):
        content = {"type": "doc", "content": [{"type": "paragraph"}]}
        sections = [{"id": "s1", "type": "chapter", "title": "A", "content": content}]
        book = validate_book(raw_book(sections=sections))
        assert json.loads(book.sections[0].content) == content

    def test_unknown_template_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING):
            book = validate_book(raw_book(template="gothic"))
        assert book.template == Template.REEDSY
        assert "gothic" in caplog.text

    def test_library_rejects_on_any_bad_book(self):
        text = json.dumps({"version": 1, "books": [raw_book(), raw_book(title=None)]})
        with pytest.raises(ProjectImportError, match="book 2"):
            load_project(text)

    def test_load_book_rejects_library(self):
        with pytest.raises(ProjectImportError, match="library"):
            load_book(json.dumps({"version": 1, "books": [raw_book()]}))

    def test_input_is_not_mutated(self):
        data = raw_book(sections=[{"id": "s1", "type": "chapter", "title": "A"}])
        validate_book(data)
        assert "order" not in data["sections"][0]
        assert "schemaVersion" not in data


class TestMigrations:
    def test_unversioned_data_is_upgraded(self):
        data = migrate(
            {
                "title": "Old",
                "coverImage": "",
                "sections": [{"id": "a"}, {"id": "b"}],
            }
        )
        assert data["schemaVersion"] == SCHEMA_VERSION
        assert [s["order"] for s in data["sections"]] == [0, 1]
        assert data["sections"][0]["notes"] == []
        assert data["coverImage"] is None

    def test_current_data_is_untouched(self):
        data = {"schemaVersion": SCHEMA_VERSION, "coverImage": "", "sections": [{"id": "a"}]}
        migrated = migrate(data)
        assert migrated["coverImage"] == ""
        assert "order" not in migrated["sections"][0]

    def test_partial_upgrade(self):
        data = migrate({"schemaVersion": 1, "coverImage": "", "sections": [{"id": "a"}]})
        assert data["coverImage"] is None
        assert "order" not in data["sections"][0]

    def test_old_file_loads(self):
        text = json.dumps(
            {
                "id": "old",
                "title": "Legacy",
                "coverImage": "",
                "sections": [
                    {"id": "x", "type": "chapter", "title": "Second"},
                    {"id": "y", "type": "chapter", "title": "Third"},
                ],
            }
        )
        book = load_book(text)
        assert book.cover_image is None
        assert [s.id for s in book.ordered_sections()] == ["x", "y"]
