"""Page presets, typography and spacing used by the layout synthesizer."""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from paperkit.config import EnvVar, get_environment

logger = logging.getLogger(__name__)

# Average glyph width is about half the font size; 0.3528 converts points to mm.
GLYPH_WIDTH_FACTOR = 0.5
POINT_TO_UNIT = 0.3528


class PageSize(str, Enum):
    """Supported page presets, in millimetres (portrait)."""

    A4 = "A4"
    LETTER = "LETTER"


PAGE_DIMENSIONS: dict[PageSize, tuple[float, float]] = {
    PageSize.A4: (210.0, 297.0),
    PageSize.LETTER: (215.9, 279.4),
}


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class OverflowPolicy(str, Enum):
    """What happens when the cursor passes the bottom margin.

    EXTEND keeps a single page that grows past its nominal height; the
    validator reports the overflow. PAGINATE starts a new page for any block
    that would cross the bottom margin.
    """

    EXTEND = "extend"
    PAGINATE = "paginate"


@dataclass(frozen=True)
class FontSizes:
    title: float = 18.0
    header: float = 16.0
    body: float = 12.0
    question: float = 12.0
    option: float = 10.0


@dataclass(frozen=True)
class Spacing:
    """Gap added below an element, by category."""

    title: float = 25.0
    header: float = 15.0
    question: float = 10.0
    text: float = 8.0


@dataclass(frozen=True)
class Colors:
    text: str = "#222222"
    heading: str = "#111111"
    muted: str = "#555555"
    group_background: str = "#f5f5f5"


@dataclass(frozen=True)
class PageConfig:
    """Geometry and typography of the synthesized page.

    Attributes:
        size: Page preset.
        orientation: Portrait or landscape.
        margin: Margin on every side, in page units.
        fonts: Font sizes by role.
        spacing: Inter-element gaps by category.
        colors: Text and fill colors.
        line_height: Line height as a multiple of the font size.
        header_height_factor: Heading height as a multiple of the font size.
        min_height_factor: Minimum body height as a multiple of the font size.
        option_height: Height of one option row in grouped questions.
        group_padding: Extra height of a grouped question for its stem.
        chars_per_line: Fixed characters per line; derived from the width
            when None.
        overflow: Overflow policy.
    """

    size: PageSize = PageSize.A4
    orientation: Orientation = Orientation.PORTRAIT
    margin: float = 20.0
    fonts: FontSizes = field(default_factory=FontSizes)
    spacing: Spacing = field(default_factory=Spacing)
    colors: Colors = field(default_factory=Colors)
    line_height: float = 1.4
    header_height_factor: float = 1.2
    min_height_factor: float = 1.2
    option_height: float = 25.0
    group_padding: float = 40.0
    chars_per_line: int | None = None
    overflow: OverflowPolicy = OverflowPolicy.EXTEND

    def __post_init__(self) -> None:
        if self.margin < 0:
            raise ValueError(f"margin must be non-negative, got {self.margin}")
        if self.margin * 2 >= min(self.width, self.height):
            raise ValueError(f"margin {self.margin} leaves no content area")
        if self.chars_per_line is not None and self.chars_per_line < 1:
            raise ValueError("chars_per_line must be at least 1")

    @property
    def width(self) -> float:
        portrait_width, portrait_height = PAGE_DIMENSIONS[PageSize(self.size)]
        if self.orientation == Orientation.LANDSCAPE:
            return portrait_height
        return portrait_width

    @property
    def height(self) -> float:
        portrait_width, portrait_height = PAGE_DIMENSIONS[PageSize(self.size)]
        if self.orientation == Orientation.LANDSCAPE:
            return portrait_width
        return portrait_height

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def content_bottom(self) -> float:
        return self.height - self.margin

    def chars_per_line_for(self, font_size: float) -> int:
        """Characters that fit on one line at ``font_size``.

        Example:
            >>> PageConfig().chars_per_line_for(12)
            80
        """
        if self.chars_per_line is not None:
            return self.chars_per_line
        glyph_width = font_size * GLYPH_WIDTH_FACTOR * POINT_TO_UNIT
        return max(1, math.floor(self.content_width / glyph_width))

    @classmethod
    def from_environment(cls, **overrides: Any) -> "PageConfig":
        """Build a config from PAPERKIT_PAGE_SIZE and PAPERKIT_PAGE_MARGIN.

        Unknown page sizes fall back to A4 with a warning.
        """
        size_name = str(get_environment(EnvVar.PAGE_SIZE)).upper()
        try:
            size = PageSize(size_name)
        except ValueError:
            logger.warning(f"Unknown page size '{size_name}', using A4")
            size = PageSize.A4

        values: dict[str, Any] = {
            "size": size,
            "margin": float(get_environment(EnvVar.PAGE_MARGIN)),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


__all__ = [
    "Colors",
    "FontSizes",
    "GLYPH_WIDTH_FACTOR",
    "OverflowPolicy",
    "Orientation",
    "PAGE_DIMENSIONS",
    "POINT_TO_UNIT",
    "PageConfig",
    "PageSize",
    "Spacing",
]
