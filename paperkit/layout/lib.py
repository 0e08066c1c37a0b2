"""Deterministic layout synthesis from a DocumentAnalysis.

The synthesizer walks the analysis in a fixed order (title, subtitle,
metadata line, sections, questions) with one vertical cursor, placing each
block at the left margin across the full content width. The cursor advances
by the block height plus a category-specific gap, so blocks never overlap.

Every element built from analysis data gets a DataBinding, so a template can
be re-populated from a fresh analysis with bind() instead of re-running
synthesis.
"""

import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from paperkit.schema import DocumentAnalysis, QuestionType

from .config import OverflowPolicy, PageConfig
from .models import (
    DataBinding,
    ElementType,
    LayoutMetadata,
    LayoutResult,
    Page,
    Position,
    PositionedElement,
    Size,
    Template,
)

logger = logging.getLogger(__name__)

# Answer space heights by question type, in page units
ANSWER_SPACE_HEIGHTS: dict[str, float] = {
    QuestionType.SHORT_ANSWER.value: 40.0,
    QuestionType.ESSAY.value: 80.0,
    QuestionType.FILL_BLANK.value: 40.0,
}
SHORT_ANSWER_MAX_LENGTH = 200
ESSAY_WORD_LIMIT = 500
TRUE_FALSE_OPTIONS = ["True", "False"]


# =============================================================================
# Height estimation
# =============================================================================


def estimate_text_height(
    text: str,
    font_size: float,
    chars_per_line: int,
    line_height: float = 1.4,
    min_height_factor: float = 1.2,
) -> float:
    """Estimate the rendered height of wrapped body text.

    Args:
        text: Text to measure.
        font_size: Font size in points.
        chars_per_line: Characters that fit on one line.
        line_height: Line height as a multiple of the font size.
        min_height_factor: Minimum height as a multiple of the font size.

    Returns:
        ``max(ceil(len / chars_per_line) * font_size * line_height,
        font_size * min_height_factor)``.

    Example:
        >>> estimate_text_height("x" * 800, 12, 80)
        168.0
    """
    lines = math.ceil(len(text) / chars_per_line)
    return max(lines * font_size * line_height, font_size * min_height_factor)


def grouped_question_height(option_count: int, config: PageConfig) -> float:
    return option_count * config.option_height + config.group_padding


# =============================================================================
# Synthesizer
# =============================================================================


class _LayoutBuilder:
    """Per-call state: the running cursor, the pages and the bindings."""

    def __init__(self, config: PageConfig):
        self.config = config
        self.pages: list[Page] = [Page(number=1)]
        self.bindings: list[DataBinding] = []
        self.y = config.margin

    @property
    def page(self) -> Page:
        return self.pages[-1]

    def place(
        self,
        element_id: str,
        element_type: ElementType,
        height: float,
        gap: float,
        **fields: Any,
    ) -> PositionedElement:
        config = self.config
        if (
            config.overflow == OverflowPolicy.PAGINATE
            and self.page.elements
            and self.y + height > config.content_bottom
        ):
            self.pages.append(Page(number=len(self.pages) + 1))
            self.y = config.margin
            logger.debug(f"Started page {len(self.pages)} for {element_id}")

        element = PositionedElement(
            id=element_id,
            type=element_type,
            position=Position(x=config.margin, y=self.y),
            size=Size(width=config.content_width, height=height),
            **fields,
        )
        self.page.elements.append(element)
        self.y += height + gap
        return element

    def bind(
        self, element: PositionedElement, path: str, value: Any, field: str = "content"
    ) -> None:
        if field == "content":
            element.data_binding_path = path
        self.bindings.append(
            DataBinding(
                path=path,
                target_element_id=element.id,
                field=field,
                fallback_value=value,
            )
        )

    def heading_height(self, font_size: float) -> float:
        return font_size * self.config.header_height_factor

    def text_height(self, text: str, font_size: float) -> float:
        config = self.config
        return estimate_text_height(
            text,
            font_size,
            config.chars_per_line_for(font_size),
            config.line_height,
            config.min_height_factor,
        )


class LayoutSynthesizer:
    """Converts a DocumentAnalysis into a single-column Template.

    The synthesizer holds no per-call state and can be shared.

    Example:
        >>> result = LayoutSynthesizer().synthesize(analysis)
        >>> [e.id for e in result.template.pages[0].elements][:2]
        ['documentTitle', 'documentSubtitle']
    """

    def __init__(self, page_config: PageConfig | None = None):
        self.page_config = page_config or PageConfig()

    def synthesize(
        self, analysis: DocumentAnalysis, page_config: PageConfig | None = None
    ) -> LayoutResult:
        """Lay out ``analysis`` on pages described by ``page_config``.

        Args:
            analysis: Canonical analysis to lay out.
            page_config: Overrides the synthesizer's default page config.

        Returns:
            LayoutResult with the template, its bindings and summary metadata.
        """
        config = page_config or self.page_config
        builder = _LayoutBuilder(config)

        self._place_header(analysis, builder)
        self._place_sections(analysis, builder)
        self._place_questions(analysis, builder)

        structure = analysis.document_structure
        template = Template(
            name=f"{analysis.extracted_content.title} - Template",
            document_type=structure.type,
            language=structure.metadata.language,
            page_width=config.width,
            page_height=config.height,
            margin=config.margin,
            pages=builder.pages,
        )

        last_bottom = max(
            (element.bottom for element in builder.page.elements), default=config.margin
        )
        metadata = LayoutMetadata(
            total_fields=len(builder.bindings),
            question_count=len(analysis.extracted_questions),
            section_count=len(structure.sections),
            page_count=len(builder.pages),
            estimated_height=last_bottom + config.margin,
        )

        if (
            config.overflow == OverflowPolicy.EXTEND
            and metadata.estimated_height > config.height
        ):
            logger.info(
                f"Layout extends to {metadata.estimated_height:.1f} units "
                f"on a {config.height:.1f} unit page"
            )
        logger.debug(
            f"Synthesized {len(template.elements())} elements on "
            f"{metadata.page_count} page(s)"
        )
        return LayoutResult(
            template=template, bindings=builder.bindings, metadata=metadata
        )

    # -------------------------------------------------------------------------
    # Blocks
    # -------------------------------------------------------------------------

    def _place_header(
        self, analysis: DocumentAnalysis, builder: _LayoutBuilder
    ) -> None:
        fonts, spacing, colors = (
            builder.config.fonts,
            builder.config.spacing,
            builder.config.colors,
        )
        content = analysis.extracted_content

        title = builder.place(
            "documentTitle",
            ElementType.HEADING,
            builder.heading_height(fonts.title),
            spacing.title,
            content=content.title,
            font_size=fonts.title,
            font_color=colors.heading,
        )
        builder.bind(title, "extractedContent.title", content.title)

        if content.subtitle:
            subtitle = builder.place(
                "documentSubtitle",
                ElementType.HEADING,
                builder.heading_height(fonts.header),
                spacing.header,
                content=content.subtitle,
                font_size=fonts.header,
                font_color=colors.muted,
            )
            builder.bind(subtitle, "extractedContent.subtitle", content.subtitle)

        parts = []
        if content.author:
            parts.append(f"Author: {content.author}")
        if content.course:
            parts.append(f"Course: {content.course}")
        if content.date:
            parts.append(f"Date: {content.date}")
        if parts:
            line = " | ".join(parts)
            builder.place(
                "documentInfo",
                ElementType.TEXT,
                builder.text_height(line, fonts.body),
                spacing.header,
                content=line,
                font_size=fonts.body,
                font_color=colors.muted,
            )

    def _place_sections(
        self, analysis: DocumentAnalysis, builder: _LayoutBuilder
    ) -> None:
        fonts, spacing, colors = (
            builder.config.fonts,
            builder.config.spacing,
            builder.config.colors,
        )

        for index, section in enumerate(analysis.document_structure.sections):
            path = f"documentStructure.sections[{index}]"
            if section.title:
                header = builder.place(
                    f"section_{index}_header",
                    ElementType.HEADING,
                    builder.heading_height(fonts.header),
                    spacing.header,
                    content=section.title,
                    font_size=fonts.header,
                    font_color=colors.heading,
                )
                builder.bind(header, f"{path}.title", section.title)

            body = builder.place(
                f"section_{index}_content",
                ElementType.TEXT,
                builder.text_height(section.content, fonts.body),
                spacing.text,
                content=section.content,
                font_size=fonts.body,
                font_color=colors.text,
            )
            builder.bind(body, f"{path}.content", section.content)

    def _place_questions(
        self, analysis: DocumentAnalysis, builder: _LayoutBuilder
    ) -> None:
        config = builder.config
        fonts, spacing, colors = config.fonts, config.spacing, config.colors

        for index, question in enumerate(analysis.extracted_questions):
            path = f"extractedQuestions[{index}]"
            common = {
                "content": question.content,
                "label": question.number,
                "font_size": fonts.question,
                "font_color": colors.text,
                "correct_answer": question.correct_answer,
                "points": question.points,
            }

            if question.type == QuestionType.MULTIPLE_CHOICE.value:
                group = builder.place(
                    f"question_{index}_mc",
                    ElementType.MULTIPLE_CHOICE,
                    grouped_question_height(len(question.options), config),
                    spacing.question,
                    options=list(question.options),
                    background_color=colors.group_background,
                    **common,
                )
                builder.bind(group, f"{path}.content", question.content)
                builder.bind(
                    group, f"{path}.options", list(question.options), "options"
                )
                continue

            if question.type == QuestionType.TRUE_FALSE.value:
                group = builder.place(
                    f"question_{index}_tf",
                    ElementType.TRUE_FALSE,
                    grouped_question_height(len(TRUE_FALSE_OPTIONS), config),
                    spacing.question,
                    options=list(TRUE_FALSE_OPTIONS),
                    background_color=colors.group_background,
                    **common,
                )
                builder.bind(group, f"{path}.content", question.content)
                continue

            stem = builder.place(
                f"question_{index}_content",
                ElementType.QUESTION,
                builder.text_height(question.content, fonts.question),
                spacing.text,
                **common,
            )
            builder.bind(stem, f"{path}.content", question.content)

            builder.place(
                f"question_{index}_answer",
                ElementType.ANSWER_SPACE,
                ANSWER_SPACE_HEIGHTS.get(question.type, 40.0),
                spacing.question,
                font_size=fonts.body,
                font_color=colors.text,
                max_length=(
                    SHORT_ANSWER_MAX_LENGTH
                    if question.type == QuestionType.SHORT_ANSWER.value
                    else None
                ),
                word_limit=(
                    ESSAY_WORD_LIMIT
                    if question.type == QuestionType.ESSAY.value
                    else None
                ),
            )



# =============================================================================
# Data binding
# =============================================================================

_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")
_MISSING = object()


def resolve_path(data: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted path with list indexes into nested data.

    Args:
        data: Nested mappings and lists (e.g. ``analysis.to_data()``).
        path: Path such as ``extractedQuestions[0].options[1]``.
        default: Returned when any step of the path is missing.

    Example:
        >>> resolve_path({"a": [{"b": 1}]}, "a[0].b")
        1
    """
    current = data
    for name, index in _PATH_TOKEN.findall(path):
        if name:
            if not isinstance(current, Mapping) or name not in current:
                return default
            current = current[name]
        else:
            position = int(index)
            if not isinstance(current, list) or position >= len(current):
                return default
            current = current[position]
    return current


def bind(
    template: Template,
    bindings: list[DataBinding],
    analysis: DocumentAnalysis | Mapping[str, Any],
) -> Template:
    """Re-populate a copy of ``template`` from fresh analysis data.

    Args:
        template: Template produced by synthesize().
        bindings: Bindings produced alongside the template.
        analysis: New analysis, or its camelCase data mapping.

    Returns:
        A new Template; the input template is left untouched.
    """
    data = analysis.to_data() if isinstance(analysis, DocumentAnalysis) else analysis
    bound = template.model_copy(deep=True)

    for binding in bindings:
        element = bound.find(binding.target_element_id)
        if element is None:
            logger.warning(f"Binding target '{binding.target_element_id}' not found")
            continue

        value = resolve_path(data, binding.path, _MISSING)
        if value is _MISSING or value is None:
            value = binding.fallback_value

        if binding.field == "options":
            element.options = (
                [str(v) for v in value] if isinstance(value, list) else None
            )
        elif binding.field == "content":
            element.content = "" if value is None else str(value)
        else:
            logger.warning(f"Unsupported binding field '{binding.field}'")
    return bound


__all__ = [
    "ANSWER_SPACE_HEIGHTS",
    "LayoutSynthesizer",
    "bind",
    "estimate_text_height",
    "grouped_question_height",
    "resolve_path",
]
