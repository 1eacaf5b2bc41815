"""Builders for serialized section content and books used across tests."""

import json

from manuscript_export.models.book import Book, Section, SectionType


def text(value: str, *marks: str) -> dict:
    node = {"type": "text", "text": value}
    if marks:
        node["marks"] = [{"type": mark} for mark in marks]
    return node


def paragraph(*children, **attrs) -> dict:
    node = {"type": "paragraph"}
    content = [text(child) if isinstance(child, str) else child for child in children]
    if content:
        node["content"] = content
    if attrs:
        node["attrs"] = attrs
    return node


def heading(value: str, level: int = 2) -> dict:
    return {"type": "heading", "attrs": {"level": level}, "content": [text(value)]}


def scene_break() -> dict:
    return {"type": "horizontalRule"}


def hard_break() -> dict:
    return {"type": "hardBreak"}


def doc(*blocks) -> str:
    return json.dumps({"type": "doc", "content": list(blocks)})


def section(
    section_id: str,
    title: str,
    section_type: SectionType = SectionType.CHAPTER,
    content: str = "",
    order: int = 0,
) -> Section:
    return Section(id=section_id, type=section_type, title=title, content=content, order=order)


def make_book(sections: list[Section], **fields) -> Book:
    values = {
        "id": "book-1",
        "title": "The Long Road",
        "author": "A. Writer",
        "created_at": "2024-05-01T10:00:00.000Z",
        "updated_at": "2024-05-02T11:30:00.000Z",
    }
    values.update(fields)
    return Book(sections=sections, **values)


def long_paragraphs(count: int, words: int = 60) -> str:
    sentence = " ".join(f"word{i}" for i in range(words))
    return doc(*[paragraph(sentence) for _ in range(count)])
