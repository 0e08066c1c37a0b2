"""Template validation and scoring.

This module inspects a synthesized Template for structural, educational and
accessibility problems before it is handed to the renderer. Validation never
raises and never edits the template; auto_fix() is the only routine allowed
to mutate a template, and only for issues flagged as fixable.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from itertools import combinations
from typing import Any

from paperkit.layout import ElementType, Page, PositionedElement, Template

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 8
MIN_FONT_SIZE = 10.0
LONG_TEXT_THRESHOLD = 1000
MAX_ELEMENTS = 100
MAX_PAGES = 20
LOW_SCORE_THRESHOLD = 80
TRUE_FALSE_ANSWERS = {"true", "false", "t", "f", "đúng", "sai"}
_QUESTION_TYPES = {
    ElementType.QUESTION.value,
    ElementType.MULTIPLE_CHOICE.value,
    ElementType.TRUE_FALSE.value,
}


class Severity(str, Enum):
    """Issue severity and its score penalty."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


SEVERITY_PENALTIES: dict[Severity, int] = {
    Severity.ERROR: 15,
    Severity.WARNING: 5,
    Severity.INFO: 1,
}


class IssueCategory(str, Enum):
    STRUCTURE = "structure"
    CONTENT = "content"
    EDUCATIONAL = "educational"
    PERFORMANCE = "performance"
    ACCESSIBILITY = "accessibility"


@dataclass
class IssueLocation:
    page: int | None = None
    element: str | None = None


@dataclass
class ValidationIssue:
    """One problem found in a template.

    Attributes:
        id: Report-local identifier (``issue_1``, ``issue_2``...).
        rule: Machine-readable check name, e.g. ``overlap``.
        severity: error, warning or info.
        category: Area of the check.
        message: Human-readable description.
        location: Page number and element id, when applicable.
        suggestion: How to resolve the issue.
        fixable: Whether auto_fix() can resolve it.
    """

    id: str
    rule: str
    severity: Severity
    category: IssueCategory
    message: str
    location: IssueLocation = field(default_factory=IssueLocation)
    suggestion: str | None = None
    fixable: bool = False


@dataclass
class TemplateStatistics:
    total_elements: int = 0
    pages: int = 0
    questions: int = 0
    data_bindings: int = 0
    complexity: str = "low"
    estimated_render_ms: int = 0


@dataclass
class ValidationReport:
    """Result of validating one template.

    Attributes:
        score: Quality score in [0, 100].
        valid: True when no error-severity issue was found.
        issues: Issues in discovery order.
        statistics: Size and complexity figures.
        suggestions: Template-level recommendations.
        validation_time_ms: Time spent validating.
    """

    score: int
    valid: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    statistics: TemplateStatistics = field(default_factory=TemplateStatistics)
    suggestions: list[str] = field(default_factory=list)
    validation_time_ms: float = 0.0

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    def by_rule(self, rule: str) -> list[ValidationIssue]:
        return [i for i in self.issues if i.rule == rule]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for issue in data["issues"]:
            issue["severity"] = Severity(issue["severity"]).value
            issue["category"] = IssueCategory(issue["category"]).value
        return data


def score_issues(issues: list[ValidationIssue]) -> int:
    """100 minus severity penalties, floored at 0."""
    penalty = sum(SEVERITY_PENALTIES[Severity(i.severity)] for i in issues)
    return max(0, 100 - penalty)


def boxes_overlap(a: PositionedElement, b: PositionedElement) -> bool:
    """Axis-aligned intersection with a non-zero area.

    Elements that only touch along an edge do not overlap.
    """
    return (
        a.position.x < b.right
        and b.position.x < a.right
        and a.position.y < b.bottom
        and b.position.y < a.bottom
    )


# =============================================================================
# Validator
# =============================================================================


class _IssueCollector:
    """Numbers issues in discovery order."""

    def __init__(self):
        self.issues: list[ValidationIssue] = []

    def add(
        self,
        rule: str,
        severity: Severity,
        category: IssueCategory,
        message: str,
        *,
        page: int | None = None,
        element: str | None = None,
        suggestion: str | None = None,
        fixable: bool = False,
    ) -> None:
        self.issues.append(
            ValidationIssue(
                id=f"issue_{len(self.issues) + 1}",
                rule=rule,
                severity=severity,
                category=category,
                message=message,
                location=IssueLocation(page=page, element=element),
                suggestion=suggestion,
                fixable=fixable,
            )
        )


class LayoutValidator:
    """Scores templates for structural, overlap and accessibility issues.

    Example:
        >>> report = LayoutValidator().validate(template)
        >>> report.valid, report.score
        (True, 100)
    """

    def validate(self, template: Template) -> ValidationReport:
        """Validate ``template`` without modifying it.

        Args:
            template: Template to inspect.

        Returns:
            ValidationReport with score, issues, statistics and suggestions.
        """
        started = time.perf_counter()
        collector = _IssueCollector()

        if not template.pages:
            collector.add(
                "no_pages",
                Severity.ERROR,
                IssueCategory.STRUCTURE,
                "Template has no pages",
                suggestion="Synthesize the template from an analysis",
            )

        for page in template.pages:
            seen: set[str] = set()
            for element in page.elements:
                self._check_structure(template, page, element, seen, collector)
                self._check_content(page, element, collector)
                self._check_educational(page, element, collector)
                self._check_accessibility(page, element, collector)
            self._check_overlaps(page, collector)

        self._check_performance(template, collector)

        issues = collector.issues
        statistics = self._statistics(template)
        score = score_issues(issues)
        report = ValidationReport(
            score=score,
            valid=not any(i.severity == Severity.ERROR for i in issues),
            issues=issues,
            statistics=statistics,
            suggestions=self._suggestions(template, issues, statistics, score),
            validation_time_ms=(time.perf_counter() - started) * 1000,
        )
        logger.debug(
            f"Validated '{template.name}': score {report.score}, "
            f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        )
        return report

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _check_structure(
        self,
        template: Template,
        page: Page,
        element: PositionedElement,
        seen: set[str],
        collector: _IssueCollector,
    ) -> None:
        where = {"page": page.number, "element": element.id}

        if element.id in seen:
            collector.add(
                "duplicate_id",
                Severity.ERROR,
                IssueCategory.STRUCTURE,
                f"Duplicate element id '{element.id}' on page {page.number}",
                suggestion="Give every element on a page a unique id",
                **where,
            )
        seen.add(element.id)

        if not element.type:
            collector.add(
                "missing_type",
                Severity.ERROR,
                IssueCategory.STRUCTURE,
                f"Element '{element.id}' has no type",
                **where,
            )
        if element.position is None:
            collector.add(
                "missing_position",
                Severity.ERROR,
                IssueCategory.STRUCTURE,
                f"Element '{element.id}' has no position",
                **where,
            )
            return
        if element.size is None or element.size.width <= 0 or element.size.height <= 0:
            collector.add(
                "invalid_size",
                Severity.ERROR,
                IssueCategory.STRUCTURE,
                f"Element '{element.id}' must have positive width and height",
                suggestion="Set a positive width and height",
                fixable=element.size is not None,
                **where,
            )
            return

        limit = template.page_height - template.margin
        if element.bottom > limit:
            collector.add(
                "page_overflow",
                Severity.WARNING,
                IssueCategory.STRUCTURE,
                f"Element '{element.id}' extends past the bottom margin "
                f"({element.bottom:.1f} > {limit:.1f})",
                suggestion="Shorten the content or paginate the layout",
                **where,
            )

    def _check_overlaps(self, page: Page, collector: _IssueCollector) -> None:
        placed = [
            e
            for e in page.elements
            if e.position is not None
            and e.size is not None
            and e.size.width > 0
            and e.size.height > 0
        ]
        for a, b in combinations(placed, 2):
            if boxes_overlap(a, b):
                collector.add(
                    "overlap",
                    Severity.WARNING,
                    IssueCategory.STRUCTURE,
                    f"Elements '{a.id}' and '{b.id}' overlap",
                    page=page.number,
                    element=a.id,
                    suggestion="Adjust element positions to avoid overlap",
                )

    def _check_content(
        self, page: Page, element: PositionedElement, collector: _IssueCollector
    ) -> None:
        if len(element.content) > LONG_TEXT_THRESHOLD:
            collector.add(
                "long_text",
                Severity.WARNING,
                IssueCategory.CONTENT,
                f"Element '{element.id}' holds {len(element.content)} characters",
                page=page.number,
                element=element.id,
                suggestion="Split long text into several sections",
            )

    def _check_educational(
        self, page: Page, element: PositionedElement, collector: _IssueCollector
    ) -> None:
        where = {"page": page.number, "element": element.id}

        if element.type == ElementType.MULTIPLE_CHOICE.value:
            options = element.options or []
            if len(options) < MIN_OPTIONS:
                collector.add(
                    "too_few_options",
                    Severity.ERROR,
                    IssueCategory.EDUCATIONAL,
                    f"Multiple choice '{element.id}' has {len(options)} option(s)",
                    suggestion=f"Provide at least {MIN_OPTIONS} options",
                    **where,
                )
            elif len(options) > MAX_OPTIONS:
                collector.add(
                    "too_many_options",
                    Severity.WARNING,
                    IssueCategory.EDUCATIONAL,
                    f"Multiple choice '{element.id}' has {len(options)} options",
                    suggestion=f"Keep to at most {MAX_OPTIONS} options",
                    **where,
                )
            answer = element.correct_answer
            if answer is not None and answer not in options:
                collector.add(
                    "answer_not_in_options",
                    Severity.ERROR,
                    IssueCategory.EDUCATIONAL,
                    f"Correct answer of '{element.id}' is not one of its options",
                    suggestion="Make the correct answer match an option exactly",
                    **where,
                )

        if element.type == ElementType.TRUE_FALSE.value:
            answer = element.correct_answer
            if answer is not None and answer.strip().lower() not in TRUE_FALSE_ANSWERS:
                collector.add(
                    "invalid_true_false_answer",
                    Severity.ERROR,
                    IssueCategory.EDUCATIONAL,
                    f"True/false answer '{answer}' of '{element.id}' is not boolean",
                    suggestion="Use True or False as the answer",
                    **where,
                )

        if element.type in _QUESTION_TYPES and element.points is not None:
            if not isinstance(element.points, (int, float)) or element.points < 0:
                collector.add(
                    "invalid_points",
                    Severity.WARNING,
                    IssueCategory.EDUCATIONAL,
                    f"Points of '{element.id}' must be a non-negative number",
                    **where,
                )

        if element.max_length is not None and element.max_length <= 0:
            collector.add(
                "invalid_max_length",
                Severity.WARNING,
                IssueCategory.EDUCATIONAL,
                f"Answer space '{element.id}' has a non-positive max length",
                **where,
            )
        if element.word_limit is not None and element.word_limit <= 0:
            collector.add(
                "invalid_word_limit",
                Severity.WARNING,
                IssueCategory.EDUCATIONAL,
                f"Answer space '{element.id}' has a non-positive word limit",
                **where,
            )

    def _check_accessibility(
        self, page: Page, element: PositionedElement, collector: _IssueCollector
    ) -> None:
        where = {"page": page.number, "element": element.id}

        if element.font_size is not None and element.font_size < MIN_FONT_SIZE:
            collector.add(
                "small_font",
                Severity.WARNING,
                IssueCategory.ACCESSIBILITY,
                f"Font size {element.font_size} of '{element.id}' is below "
                f"{MIN_FONT_SIZE:g}",
                suggestion=f"Use a font size of at least {MIN_FONT_SIZE:g}",
                fixable=True,
                **where,
            )

        if (
            element.font_color
            and element.background_color
            and element.font_color.lower() == element.background_color.lower()
        ):
            collector.add(
                "identical_colors",
                Severity.ERROR,
                IssueCategory.ACCESSIBILITY,
                f"Text and background of '{element.id}' share the color "
                f"{element.font_color}",
                suggestion="Choose contrasting text and background colors",
                fixable=True,
                **where,
            )

        if element.type == ElementType.IMAGE.value and not element.alt_text:
            collector.add(
                "missing_alt_text",
                Severity.WARNING,
                IssueCategory.ACCESSIBILITY,
                f"Image '{element.id}' has no alternative text",
                suggestion="Describe the image in alt text",
                fixable=True,
                **where,
            )

    def _check_performance(
        self, template: Template, collector: _IssueCollector
    ) -> None:
        total = len(template.elements())
        if total > MAX_ELEMENTS:
            collector.add(
                "too_many_elements",
                Severity.WARNING,
                IssueCategory.PERFORMANCE,
                f"Template has {total} elements",
                suggestion="Reduce the number of elements to speed up rendering",
            )
        if len(template.pages) > MAX_PAGES:
            collector.add(
                "too_many_pages",
                Severity.INFO,
                IssueCategory.PERFORMANCE,
                f"Template has {len(template.pages)} pages",
                suggestion="Consider splitting the document",
            )

    # -------------------------------------------------------------------------
    # Statistics and suggestions
    # -------------------------------------------------------------------------

    def _statistics(self, template: Template) -> TemplateStatistics:
        elements = template.elements()
        total = len(elements)
        if total > 50:
            complexity = "high"
        elif total > 20:
            complexity = "medium"
        else:
            complexity = "low"
        return TemplateStatistics(
            total_elements=total,
            pages=len(template.pages),
            questions=sum(1 for e in elements if e.type in _QUESTION_TYPES),
            data_bindings=sum(1 for e in elements if e.data_binding_path),
            complexity=complexity,
            estimated_render_ms=total * 10 + len(template.pages) * 50,
        )

    def _suggestions(
        self,
        template: Template,
        issues: list[ValidationIssue],
        statistics: TemplateStatistics,
        score: int,
    ) -> list[str]:
        suggestions = []
        if statistics.questions == 0:
            suggestions.append("Add questions to make the document interactive")
        if statistics.pages == 1 and statistics.total_elements > 20:
            suggestions.append("Consider splitting content across multiple pages")
        if any(i.category == IssueCategory.ACCESSIBILITY for i in issues):
            suggestions.append("Review accessibility issues for inclusive design")
        if score < LOW_SCORE_THRESHOLD:
            suggestions.append(
                "Address the reported issues to improve template quality"
            )
        return suggestions


# =============================================================================
# Auto-fix
# =============================================================================


def _find(template: Template, issue: ValidationIssue) -> PositionedElement | None:
    for page in template.pages:
        if issue.location.page is not None and page.number != issue.location.page:
            continue
        element = page.find(issue.location.element or "")
        if element is not None:
            return element
    return None


def auto_fix(template: Template, report: ValidationReport) -> list[str]:
    """Resolve fixable issues of ``report`` by editing ``template`` in place.

    Fixes non-positive sizes, small fonts, identical text and background
    colors, and missing image alt text. Overlaps are never moved.

    Args:
        template: Template that produced ``report``.
        report: Report from LayoutValidator.validate().

    Returns:
        Ids of the issues that were fixed.
    """
    fixed: list[str] = []
    content_width = template.page_width - 2 * template.margin

    for issue in report.issues:
        if not issue.fixable:
            continue
        element = _find(template, issue)
        if element is None:
            continue

        if issue.rule == "invalid_size":
            if element.size.width <= 0:
                element.size.width = content_width
            if element.size.height <= 0:
                element.size.height = (element.font_size or MIN_FONT_SIZE) * 1.2
        elif issue.rule == "small_font":
            element.font_size = MIN_FONT_SIZE
        elif issue.rule == "identical_colors":
            background = (element.background_color or "").lower()
            element.font_color = "#ffffff" if background == "#000000" else "#000000"
        elif issue.rule == "missing_alt_text":
            element.alt_text = element.content or f"Image {element.id}"
        else:
            continue
        fixed.append(issue.id)

    if fixed:
        logger.info(f"Auto-fixed {len(fixed)} issue(s) in '{template.name}'")
    return fixed


__all__ = [
    "IssueCategory",
    "IssueLocation",
    "LayoutValidator",
    "MAX_OPTIONS",
    "MIN_FONT_SIZE",
    "MIN_OPTIONS",
    "SEVERITY_PENALTIES",
    "Severity",
    "TemplateStatistics",
    "ValidationIssue",
    "ValidationReport",
    "auto_fix",
    "boxes_overlap",
    "score_issues",
]
