"""Data models for section rich-text content."""

import json
import logging
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

log = logging.getLogger(__name__)


class NodeType(str, Enum):
    """Known document node types."""

    DOC = "doc"
    TEXT = "text"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    LIST_ITEM = "listItem"
    BLOCKQUOTE = "blockquote"
    HORIZONTAL_RULE = "horizontalRule"
    HARD_BREAK = "hardBreak"
    IMAGE = "image"


CONTAINER_TYPES = frozenset(
    {
        NodeType.DOC.value,
        NodeType.PARAGRAPH.value,
        NodeType.HEADING.value,
        NodeType.BULLET_LIST.value,
        NodeType.ORDERED_LIST.value,
        NodeType.LIST_ITEM.value,
        NodeType.BLOCKQUOTE.value,
    }
)

LEAF_TYPES = frozenset(
    {
        NodeType.TEXT.value,
        NodeType.IMAGE.value,
        NodeType.HORIZONTAL_RULE.value,
        NodeType.HARD_BREAK.value,
    }
)


class Mark(BaseModel):
    """Inline formatting applied to a text node."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    attrs: dict[str, Any] = Field(default_factory=dict)

    @field_validator("attrs", mode="before")
    @classmethod
    def _none_attrs(cls, value: Any) -> Any:
        return {} if value is None else value


class DocNode(BaseModel):
    """One node of a section's document tree.

    Unknown node types are accepted so that content written by newer editors
    still loads; the renderer falls back to their children or text.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    content: list["DocNode"] | None = None
    text: str | None = None
    attrs: dict[str, Any] = Field(default_factory=dict)
    marks: list[Mark] = Field(default_factory=list)

    @field_validator("attrs", mode="before")
    @classmethod
    def _none_attrs(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("marks", mode="before")
    @classmethod
    def _none_marks(cls, value: Any) -> Any:
        return [] if value is None else value

    @model_validator(mode="after")
    def _check_shape(self) -> "DocNode":
        if self.type in CONTAINER_TYPES and self.text is not None:
            raise ValueError(f"{self.type} node cannot carry text")
        if self.type in LEAF_TYPES and self.content:
            raise ValueError(f"{self.type} node cannot have children")
        return self

    @property
    def children(self) -> list["DocNode"]:
        return self.content or []

    @classmethod
    def paragraph(cls, text: str = "") -> "DocNode":
        """Build a paragraph holding a single plain text run."""
        if not text:
            return cls(type=NodeType.PARAGRAPH.value)
        return cls(
            type=NodeType.PARAGRAPH.value,
            content=[cls(type=NodeType.TEXT.value, text=text)],
        )


class EpigraphContent(BaseModel):
    """Quote + attribution payload stored in an epigraph section."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: Literal["epigraph"] = Field(default="epigraph", alias="__type")
    quote: str = ""
    attribution: str = ""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def plain_text_document(text: str) -> DocNode:
    """Wrap raw text in a one-paragraph document."""
    return DocNode(type=NodeType.DOC.value, content=[DocNode.paragraph(text)])


def content_tag(raw: str) -> str | None:
    """Return the ``__type`` discriminator of serialized content, if any."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("__type"), str):
        return data["__type"]
    return None


def parse_content(raw: str) -> DocNode | EpigraphContent | None:
    """Parse a section's serialized content.

    Returns None for empty content. Content that is not valid JSON, or JSON
    that does not describe a document, is treated as plain text.
    """
    if not raw:
        return None

    try:
        data = json.loads(raw)
    except ValueError:
        log.debug("Section content is not JSON, rendering as plain text")
        return plain_text_document(raw)

    if isinstance(data, dict) and data.get("__type") == "epigraph":
        try:
            return EpigraphContent.model_validate(data)
        except ValidationError:
            return EpigraphContent()

    if not isinstance(data, dict) or "type" not in data:
        log.debug("Section content has no document root, rendering as plain text")
        return plain_text_document(raw)

    try:
        return DocNode.model_validate(data)
    except ValidationError as e:
        log.debug("Invalid document tree (%s), rendering as plain text", e.error_count())
        return plain_text_document(raw)


def parse_epigraph(raw: str) -> EpigraphContent:
    """Parse epigraph content, falling back to an empty epigraph."""
    parsed = parse_content(raw)
    if isinstance(parsed, EpigraphContent):
        return parsed
    return EpigraphContent()


def extract_text(node: DocNode) -> str:
    """Concatenate the text of a document tree, space separated per node."""
    if node.type == NodeType.TEXT.value and node.text is not None:
        return node.text
    return " ".join(extract_text(child) for child in node.children)


def count_words(text: str) -> int:
    return len(text.split())
