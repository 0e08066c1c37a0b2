"""Layout synthesis: DocumentAnalysis to positioned Template.

Example:
    >>> from paperkit.layout import LayoutSynthesizer, PageConfig
    >>>
    >>> result = LayoutSynthesizer().synthesize(analysis, PageConfig())
    >>> result.template.pages[0].elements[0].id
    'documentTitle'
"""

from .config import (
    Colors,
    FontSizes,
    Orientation,
    OverflowPolicy,
    PageConfig,
    PageSize,
    Spacing,
)
from .lib import (
    ANSWER_SPACE_HEIGHTS,
    LayoutSynthesizer,
    bind,
    estimate_text_height,
    grouped_question_height,
    resolve_path,
)
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

__all__ = [
    # Page configuration
    "Colors",
    "FontSizes",
    "Orientation",
    "OverflowPolicy",
    "PageConfig",
    "PageSize",
    "Spacing",
    # Template models
    "DataBinding",
    "ElementType",
    "LayoutMetadata",
    "LayoutResult",
    "Page",
    "Position",
    "PositionedElement",
    "Size",
    "Template",
    # Synthesis
    "ANSWER_SPACE_HEIGHTS",
    "LayoutSynthesizer",
    "estimate_text_height",
    "grouped_question_height",
    # Binding
    "bind",
    "resolve_path",
]
