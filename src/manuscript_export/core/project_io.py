"""Project (single book) and library (many books) JSON files."""

import copy
import json
import logging
from collections.abc import Callable, Sequence
from functools import reduce
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from manuscript_export.errors import ProjectImportError
from manuscript_export.models.book import (
    Book,
    DailyGoal,
    Note,
    SectionType,
    Template,
    generate_id,
    utc_now_iso,
)

log = logging.getLogger(__name__)

PROJECT_EXTENSION = ".mbook"
LIBRARY_EXTENSION = ".mlib"
LIBRARY_VERSION = 1

SECTION_TYPES = {t.value for t in SectionType}
TEMPLATES = {t.value for t in Template}

RawBook = dict[str, Any]


# =============================================================================
# Schema migrations
# =============================================================================


def _number_sections(data: RawBook) -> RawBook:
    """Sections saved before explicit ordering take their list position."""
    sections = data.get("sections")
    if isinstance(sections, list):
        for position, section in enumerate(sections):
            if isinstance(section, dict):
                section.setdefault("order", position)
                section.setdefault("notes", [])
    return data


def _normalize_cover(data: RawBook) -> RawBook:
    """Older saves store a missing cover as an empty string."""
    if data.get("coverImage") == "":
        data["coverImage"] = None
    return data


# Applied in order to every book whose schemaVersion is below the key
MIGRATIONS: list[tuple[int, Callable[[RawBook], RawBook]]] = [
    (1, _number_sections),
    (2, _normalize_cover),
]

SCHEMA_VERSION = MIGRATIONS[-1][0]


def migrate(data: RawBook) -> RawBook:
    """Upgrade raw book data to the current schema version."""
    current = data.get("schemaVersion")
    if not isinstance(current, int):
        current = 0
    pending = [upgrade for version, upgrade in MIGRATIONS if version > current]
    upgraded = reduce(lambda acc, upgrade: upgrade(acc), pending, data)
    upgraded["schemaVersion"] = SCHEMA_VERSION
    return upgraded


# =============================================================================
# Validation
# =============================================================================


def _valid_notes(raw_notes: Any, section_id: str) -> list[dict]:
    """Keep well-formed notes; drop the rest without failing the import."""
    if not isinstance(raw_notes, list):
        return []
    notes = []
    for raw in raw_notes:
        try:
            notes.append(Note.model_validate(raw).model_dump(by_alias=True))
        except ValidationError:
            log.debug("Dropping malformed note in section %s", section_id)
    return notes


def _valid_goal_history(raw_history: Any) -> list[dict]:
    if not isinstance(raw_history, list):
        return []
    history = []
    for raw in raw_history:
        try:
            history.append(DailyGoal.model_validate(raw).model_dump(by_alias=True))
        except ValidationError:
            log.debug("Dropping malformed goal history entry")
    return history


def _validate_section(raw: Any, position: int, label: str) -> dict:
    if not isinstance(raw, dict):
        raise ProjectImportError(f"{label}: section {position + 1} is not an object")

    section_id = raw.get("id")
    if not isinstance(section_id, str) or not section_id:
        raise ProjectImportError(f"{label}: section {position + 1} is missing an id")
    if not isinstance(raw.get("title"), str):
        raise ProjectImportError(f"{label}: section {position + 1} is missing a title")
    if raw.get("type") not in SECTION_TYPES:
        raise ProjectImportError(
            f"{label}: section {position + 1} has invalid type {raw.get('type')!r} "
            f"(expected one of {', '.join(sorted(SECTION_TYPES))})"
        )

    content = raw.get("content", "")
    if content is None:
        content = ""
    elif not isinstance(content, str):
        # Document stored as an object instead of a serialized string
        content = json.dumps(content)

    order = raw.get("order")
    if isinstance(order, bool) or not isinstance(order, int):
        order = position

    section = {
        "id": section_id,
        "type": raw["type"],
        "title": raw["title"],
        "content": content,
        "order": order,
        "notes": _valid_notes(raw.get("notes"), section_id),
    }
    if isinstance(raw.get("subtitle"), str):
        section["subtitle"] = raw["subtitle"]
    return section


def validate_book(raw: Any, label: str = "Invalid file") -> Book:
    """Validate raw book data, filling defaults for optional fields.

    Raises ProjectImportError when a load-bearing field is missing or wrong;
    the book is accepted or rejected as a whole.
    """
    if not isinstance(raw, dict):
        raise ProjectImportError(f"{label}: expected a book object")

    data = migrate(copy.deepcopy(raw))
    if not isinstance(data.get("title"), str):
        raise ProjectImportError(f"{label}: missing title")
    if not isinstance(data.get("sections"), list):
        raise ProjectImportError(f"{label}: missing sections")

    template = data.get("template")
    if template not in TEMPLATES:
        if template is not None:
            log.warning("Unknown template %r, using reedsy", template)
        template = Template.REEDSY.value

    cover = data.get("coverImage")
    now = utc_now_iso()

    cleaned = {
        "id": data["id"] if isinstance(data.get("id"), str) and data["id"] else generate_id(),
        "title": data["title"],
        "author": data["author"] if isinstance(data.get("author"), str) else "",
        "template": template,
        "sections": [
            _validate_section(section, position, label)
            for position, section in enumerate(data["sections"])
        ],
        "coverImage": cover if isinstance(cover, str) else None,
        "paragraphIndent": data.get("paragraphIndent", True) is not False,
        "chapterNumbers": data.get("chapterNumbers") is True,
        "goalHistory": _valid_goal_history(data.get("goalHistory")),
        "createdAt": data["createdAt"] if isinstance(data.get("createdAt"), str) else now,
        "updatedAt": data["updatedAt"] if isinstance(data.get("updatedAt"), str) else now,
    }
    for key, default in (("dailyGoal", 1000), ("wordCountGoal", 80000)):
        value = data.get(key)
        cleaned[key] = value if isinstance(value, int) and not isinstance(value, bool) else default

    try:
        return Book.model_validate(cleaned)
    except ValidationError as e:
        raise ProjectImportError(f"{label}: {e.errors()[0]['msg']}") from e


# =============================================================================
# Files
# =============================================================================


def dump_book(book: Book) -> str:
    """Serialize one book, cover included, as a project file."""
    data = book.model_dump(mode="json", by_alias=True)
    data["schemaVersion"] = SCHEMA_VERSION
    return json.dumps(data, indent=2, ensure_ascii=False)


def dump_library(books: Sequence[Book]) -> str:
    """Serialize several books as a versioned library bundle."""
    payload = {"version": LIBRARY_VERSION, "books": []}
    for book in books:
        data = book.model_dump(mode="json", by_alias=True)
        data["schemaVersion"] = SCHEMA_VERSION
        payload["books"].append(data)
    return json.dumps(payload, indent=2, ensure_ascii=False)


def is_library(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and isinstance(data.get("version"), int)
        and not isinstance(data.get("version"), bool)
        and isinstance(data.get("books"), list)
    )


def load_project(text: str) -> Book | list[Book]:
    """Parse a project file (one Book) or a library bundle (list of Books)."""
    try:
        data = json.loads(text)
    except ValueError as e:
        raise ProjectImportError(f"Invalid file: not valid JSON ({e})") from e

    if is_library(data):
        return [
            validate_book(raw, label=f"Invalid library: book {index + 1}")
            for index, raw in enumerate(data["books"])
        ]
    return validate_book(data)


def load_book(text: str) -> Book:
    """Parse a project file that must hold exactly one book."""
    result = load_project(text)
    if isinstance(result, list):
        raise ProjectImportError(f"File is a library ({LIBRARY_EXTENSION}), not a single book")
    return result


def read_project_file(path: Path) -> Book | list[Book]:
    """Load a project or library file from disk."""
    return load_project(path.read_text(encoding="utf-8"))


def read_book_file(path: Path) -> Book:
    """Load a single-book project file from disk."""
    return load_book(path.read_text(encoding="utf-8"))
