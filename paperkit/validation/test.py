"""Unit tests for template validation."""

import pytest

from paperkit.layout import (
    ElementType,
    LayoutSynthesizer,
    Page,
    Position,
    PositionedElement,
    Size,
    Template,
)
from paperkit.sanitize import sanitize

from .lib import (
    IssueCategory,
    LayoutValidator,
    Severity,
    auto_fix,
    score_issues,
)


def _element(element_id: str, y: float = 20.0, height: float = 10.0, **fields):
    fields.setdefault("type", ElementType.TEXT)
    return PositionedElement(
        id=element_id,
        position=Position(x=20.0, y=y),
        size=Size(width=170.0, height=height),
        **fields,
    )


def _template(*pages: list[PositionedElement]) -> Template:
    return Template(
        name="Test",
        page_width=210.0,
        page_height=297.0,
        margin=20.0,
        pages=[
            Page(number=i + 1, elements=elements) for i, elements in enumerate(pages)
        ],
    )


@pytest.fixture
def validator() -> LayoutValidator:
    return LayoutValidator()


class TestStructure:
    """Structural checks."""

    @pytest.mark.unit
    def test_clean_template(self, validator):
        report = validator.validate(_template([_element("a"), _element("b", y=40)]))
        assert report.valid
        assert report.score == 100
        assert report.issues == []

    @pytest.mark.unit
    def test_non_positive_size(self, validator):
        report = validator.validate(_template([_element("a", height=0)]))
        assert not report.valid
        assert report.score == 85
        issue = report.by_rule("invalid_size")[0]
        assert issue.severity == Severity.ERROR
        assert issue.location.element == "a"
        assert issue.location.page == 1
        assert issue.fixable

    @pytest.mark.unit
    def test_duplicate_ids_on_one_page(self, validator):
        report = validator.validate(_template([_element("a"), _element("a", y=40)]))
        assert len(report.by_rule("duplicate_id")) == 1

    @pytest.mark.unit
    def test_same_id_on_different_pages(self, validator):
        report = validator.validate(_template([_element("a")], [_element("a")]))
        assert report.by_rule("duplicate_id") == []

    @pytest.mark.unit
    def test_no_pages(self, validator):
        report = validator.validate(_template())
        assert not report.valid

    @pytest.mark.unit
    def test_page_overflow(self, validator):
        report = validator.validate(_template([_element("a", y=270, height=20)]))
        assert len(report.by_rule("page_overflow")) == 1
        assert report.valid

    @pytest.mark.unit
    def test_issue_ids_are_sequential(self, validator):
        report = validator.validate(
            _template([_element("a", height=0), _element("b", height=-1)])
        )
        assert [i.id for i in report.issues] == ["issue_1", "issue_2"]


class TestOverlap:
    """Bounding-box overlap checks."""

    @pytest.mark.unit
    def test_overlap_is_warning(self, validator):
        report = validator.validate(
            _template([_element("a", y=20, height=20), _element("b", y=30)])
        )
        overlaps = report.by_rule("overlap")
        assert len(overlaps) == 1
        assert overlaps[0].severity == Severity.WARNING
        assert "'a'" in overlaps[0].message and "'b'" in overlaps[0].message
        assert report.valid

    @pytest.mark.unit
    def test_touching_edges_do_not_overlap(self, validator):
        report = validator.validate(
            _template([_element("a", y=20, height=10), _element("b", y=30)])
        )
        assert report.by_rule("overlap") == []

    @pytest.mark.unit
    def test_pages_are_independent(self, validator):
        report = validator.validate(_template([_element("a")], [_element("b")]))
        assert report.by_rule("overlap") == []

    @pytest.mark.unit
    @pytest.mark.parametrize("count", [1, 5, 40])
    def test_synthesized_sections_never_overlap(self, validator, count):
        """N sections laid out in one column produce zero overlap warnings."""
        analysis = sanitize(
            {"documentStructure": {"sections": [
                {"content": f"Paragraph number {i} " * (i % 7 + 1)}
                for i in range(count)
            ]}}
        )
        template = LayoutSynthesizer().synthesize(analysis).template
        assert validator.validate(template).by_rule("overlap") == []

    @pytest.mark.unit
    def test_overlap_is_not_auto_fixed(self, validator):
        template = _template([_element("a", y=20, height=20), _element("b", y=30)])
        report = validator.validate(template)
        assert auto_fix(template, report) == []
        assert template.find("b").position.y == 30


class TestEducational:
    """Question element checks."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "options,rule,severity",
        [
            (["A"], "too_few_options", Severity.ERROR),
            ([str(i) for i in range(9)], "too_many_options", Severity.WARNING),
        ],
    )
    def test_option_count(self, validator, options, rule, severity):
        element = _element("q", type=ElementType.MULTIPLE_CHOICE, options=options)
        issues = validator.validate(_template([element])).by_rule(rule)
        assert len(issues) == 1
        assert issues[0].severity == severity
        assert issues[0].category == IssueCategory.EDUCATIONAL

    @pytest.mark.unit
    def test_correct_answer_must_be_an_option(self, validator):
        element = _element(
            "q",
            type=ElementType.MULTIPLE_CHOICE,
            options=["A", "B"],
            correct_answer="C",
        )
        report = validator.validate(_template([element]))
        assert len(report.by_rule("answer_not_in_options")) == 1
        assert not report.valid

    @pytest.mark.unit
    def test_negative_points(self, validator):
        element = _element("q", type=ElementType.QUESTION, points=-1)
        issues = validator.validate(_template([element])).by_rule("invalid_points")
        assert issues[0].severity == Severity.WARNING

    @pytest.mark.unit
    @pytest.mark.parametrize("answer,count", [("True", 0), ("false", 0), ("maybe", 1)])
    def test_true_false_answer(self, validator, answer, count):
        element = _element(
            "q", type=ElementType.TRUE_FALSE, options=["True", "False"],
            correct_answer=answer,
        )
        report = validator.validate(_template([element]))
        assert len(report.by_rule("invalid_true_false_answer")) == count

    @pytest.mark.unit
    def test_answer_space_limits(self, validator):
        element = _element(
            "a", type=ElementType.ANSWER_SPACE, max_length=0, word_limit=-5
        )
        report = validator.validate(_template([element]))
        assert len(report.by_rule("invalid_max_length")) == 1
        assert len(report.by_rule("invalid_word_limit")) == 1


class TestAccessibility:
    """Accessibility checks and their fixes."""

    @pytest.mark.unit
    def test_small_font(self, validator):
        report = validator.validate(_template([_element("a", font_size=8)]))
        issue = report.by_rule("small_font")[0]
        assert issue.severity == Severity.WARNING
        assert issue.category == IssueCategory.ACCESSIBILITY

    @pytest.mark.unit
    def test_identical_colors(self, validator):
        element = _element("a", font_color="#FFFFFF", background_color="#ffffff")
        report = validator.validate(_template([element]))
        assert report.by_rule("identical_colors")[0].severity == Severity.ERROR

    @pytest.mark.unit
    def test_image_without_alt_text(self, validator):
        element = _element("img", type=ElementType.IMAGE)
        report = validator.validate(_template([element]))
        assert len(report.by_rule("missing_alt_text")) == 1

    @pytest.mark.unit
    def test_auto_fix_resolves_fixable_issues(self, validator):
        template = _template(
            [
                _element("small", font_size=8),
                _element("same", y=40, font_color="#000000",
                         background_color="#000000"),
                _element("img", y=60, type=ElementType.IMAGE, content="Diagram"),
                _element("flat", y=80, height=0),
            ]
        )
        report = validator.validate(template)

        fixed = auto_fix(template, report)

        assert sorted(fixed) == sorted(i.id for i in report.issues if i.fixable)
        assert template.find("small").font_size == 10
        assert template.find("same").font_color == "#ffffff"
        assert template.find("img").alt_text == "Diagram"
        assert template.find("flat").size.height > 0
        after = validator.validate(template)
        assert after.valid
        assert after.score == 100


class TestScoring:
    """Score, statistics and suggestions."""

    @pytest.mark.unit
    def test_score_is_floored(self, validator):
        elements = [_element(f"e{i}", y=20 + i * 12, height=0) for i in range(8)]
        report = validator.validate(_template(elements))
        assert report.score == 0

    @pytest.mark.unit
    def test_score_penalties(self, validator):
        template = _template(
            [_element("a", height=0), _element("b", y=40, font_size=8)]
        )
        report = validator.validate(template)
        assert report.score == 100 - 15 - 5
        assert report.score == score_issues(report.issues)

    @pytest.mark.unit
    def test_long_text(self, validator):
        report = validator.validate(_template([_element("a", content="x" * 1001)]))
        assert report.by_rule("long_text")[0].category == IssueCategory.CONTENT

    @pytest.mark.unit
    def test_too_many_elements(self, validator):
        elements = [_element(f"e{i}", y=i * 0.5, height=0.5) for i in range(101)]
        report = validator.validate(_template(elements))
        assert len(report.by_rule("too_many_elements")) == 1
        assert report.statistics.complexity == "high"

    @pytest.mark.unit
    def test_statistics(self, validator, sample_analysis):
        template = LayoutSynthesizer().synthesize(sample_analysis).template
        report = validator.validate(template)
        stats = report.statistics

        assert report.valid
        assert stats.total_elements == 10
        assert stats.pages == 1
        assert stats.questions == 2
        assert stats.data_bindings == 8
        assert stats.estimated_render_ms == 10 * 10 + 50

    @pytest.mark.unit
    def test_suggestions(self, validator):
        report = validator.validate(_template([_element("a", font_size=8)]))
        assert "Add questions to make the document interactive" in report.suggestions
        assert any("accessibility" in s for s in report.suggestions)

    @pytest.mark.unit
    def test_to_dict(self, validator):
        data = validator.validate(_template([_element("a", height=0)])).to_dict()
        assert data["issues"][0]["severity"] == "error"
        assert data["issues"][0]["location"] == {"page": 1, "element": "a"}
