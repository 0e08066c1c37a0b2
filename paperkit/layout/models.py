"""Template models handed to the page renderer.

A Template is an ordered list of pages, each holding an ordered list of
positioned elements. Positions and sizes are absolute page units (millimetres
for the built-in presets) measured from the top-left corner of the page.

Unlike the analysis models, templates are mutable: validator auto-fixes edit
elements in place.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_MODEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "use_enum_values": True,
}


class ElementType(str, Enum):
    """Kinds of positioned elements understood by the renderer."""

    HEADING = "heading"
    TEXT = "text"
    QUESTION = "question"
    MULTIPLE_CHOICE = "multiple_choice"  # Stem and options in one group
    TRUE_FALSE = "true_false"  # Stem and True/False in one group
    ANSWER_SPACE = "answer_space"
    IMAGE = "image"


class Position(BaseModel):
    """Top-left corner of an element."""

    x: float = 0.0
    y: float = 0.0

    model_config = _MODEL_CONFIG


class Size(BaseModel):
    """Element dimensions. Synthesized elements always have positive sizes."""

    width: float
    height: float

    model_config = _MODEL_CONFIG


class PositionedElement(BaseModel):
    """One placed content unit within a page.

    Attributes:
        id: Identifier, unique within its page.
        type: Element kind.
        content: Text shown by the element (the stem for grouped questions).
        position: Top-left corner in page units.
        size: Width and height in page units.
        data_binding_path: Path into the analysis this element was built from.
        label: Printed prefix such as a question number.
        font_size: Font size in points.
        font_color: Text color as ``#rrggbb``.
        background_color: Fill color as ``#rrggbb``, None for transparent.
        options: Answer choices of grouped question elements.
        correct_answer: Expected answer, when known.
        points: Score weight of a question.
        alt_text: Alternative text for images.
        max_length: Character limit of a short answer space.
        word_limit: Word limit of an essay answer space.
    """

    id: str
    type: ElementType
    content: str = ""
    position: Position
    size: Size
    data_binding_path: str | None = None
    label: str | None = None
    font_size: float | None = None
    font_color: str | None = None
    background_color: str | None = None
    options: list[str] | None = None
    correct_answer: str | None = None
    points: float | None = None
    alt_text: str | None = None
    max_length: int | None = None
    word_limit: int | None = None

    model_config = _MODEL_CONFIG

    @property
    def bottom(self) -> float:
        return self.position.y + self.size.height

    @property
    def right(self) -> float:
        return self.position.x + self.size.width


class Page(BaseModel):
    """A page and the elements it exclusively owns."""

    number: int = Field(default=1, ge=1)
    elements: list[PositionedElement] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    def find(self, element_id: str) -> PositionedElement | None:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None


class Template(BaseModel):
    """Ordered pages of positioned elements, ready for rendering.

    Attributes:
        name: Display name derived from the document title.
        document_type: Type of the analyzed document (quiz, worksheet...).
        language: Language code of the content.
        page_width: Page width in page units.
        page_height: Page height in page units.
        margin: Margin applied on every side.
        pages: Pages in reading order.
    """

    name: str
    document_type: str = "general"
    language: str = "en"
    page_width: float
    page_height: float
    margin: float
    pages: list[Page] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    def elements(self) -> list[PositionedElement]:
        """All elements in page order."""
        return [element for page in self.pages for element in page.elements]

    def find(self, element_id: str) -> PositionedElement | None:
        """Return the first element with ``element_id`` across all pages."""
        for page in self.pages:
            element = page.find(element_id)
            if element is not None:
                return element
        return None

    def to_data(self) -> dict[str, Any]:
        """Dump to the camelCase shape consumed by the renderer."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DataBinding(BaseModel):
    """Maps a path in the analysis data to a slot of a template element.

    Attributes:
        path: Dotted path with list indexes, e.g.
            ``extractedQuestions[0].options``.
        target_element_id: Element whose slot receives the value.
        field: Element attribute that is written (``content`` or ``options``).
        fallback_value: Value used when the path does not resolve.
    """

    path: str
    target_element_id: str
    field: str = "content"
    fallback_value: Any = None

    model_config = _MODEL_CONFIG


class LayoutMetadata(BaseModel):
    """Summary of one synthesis run."""

    total_fields: int = 0
    question_count: int = 0
    section_count: int = 0
    page_count: int = 1
    estimated_height: float = 0.0

    model_config = _MODEL_CONFIG


class LayoutResult(BaseModel):
    """Output of the layout synthesizer."""

    template: Template
    bindings: list[DataBinding] = Field(default_factory=list)
    metadata: LayoutMetadata = Field(default_factory=LayoutMetadata)

    model_config = _MODEL_CONFIG
