"""Template validation, scoring and auto-fix."""

from .lib import (
    MAX_OPTIONS,
    MIN_FONT_SIZE,
    MIN_OPTIONS,
    SEVERITY_PENALTIES,
    IssueCategory,
    IssueLocation,
    LayoutValidator,
    Severity,
    TemplateStatistics,
    ValidationIssue,
    ValidationReport,
    auto_fix,
    boxes_overlap,
    score_issues,
)

__all__ = [
    # Thresholds
    "MAX_OPTIONS",
    "MIN_FONT_SIZE",
    "MIN_OPTIONS",
    "SEVERITY_PENALTIES",
    # Report types
    "IssueCategory",
    "IssueLocation",
    "Severity",
    "TemplateStatistics",
    "ValidationIssue",
    "ValidationReport",
    # Validation
    "LayoutValidator",
    "auto_fix",
    "boxes_overlap",
    "score_issues",
]
