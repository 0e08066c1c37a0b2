"""Unit tests for layout synthesis."""

import pytest

from paperkit.sanitize import sanitize

from .config import Orientation, OverflowPolicy, PageConfig, PageSize
from .lib import LayoutSynthesizer, bind, estimate_text_height, resolve_path
from .models import ElementType


def _sections(count: int, content: str = "Short paragraph of text.") -> dict:
    return {
        "documentStructure": {
            "sections": [
                {"title": f"Part {i}", "content": f"{content} ({i})"}
                for i in range(count)
            ]
        }
    }


class TestHeightEstimation:
    """Tests for text height estimation."""

    @pytest.mark.unit
    def test_800_chars_at_80_per_line(self):
        """800 characters at 80 per line is 10 lines."""
        assert estimate_text_height("x" * 800, 12, 80) == pytest.approx(10 * 12 * 1.4)

    @pytest.mark.unit
    def test_partial_line_rounds_up(self):
        assert estimate_text_height("x" * 81, 12, 80) == pytest.approx(2 * 12 * 1.4)

    @pytest.mark.unit
    def test_minimum_height(self):
        """Empty text still gets the minimum height."""
        assert estimate_text_height("", 12, 80) == pytest.approx(12 * 1.2)

    @pytest.mark.unit
    def test_section_height_in_layout(self):
        """A synthesized 800 character section uses the same estimate."""
        analysis = sanitize(
            {"documentStructure": {"sections": [{"content": "a" * 800}]}}
        )
        config = PageConfig(chars_per_line=80)
        result = LayoutSynthesizer().synthesize(analysis, config)

        body = result.template.find("section_0_content")
        assert body.size.height == pytest.approx(10 * config.fonts.body * 1.4)


class TestPageConfig:
    """Tests for page presets and derived geometry."""

    @pytest.mark.unit
    def test_a4_defaults(self):
        config = PageConfig()
        assert (config.width, config.height) == (210.0, 297.0)
        assert config.content_width == pytest.approx(170.0)
        assert config.chars_per_line_for(12) == 80

    @pytest.mark.unit
    def test_letter_landscape(self):
        config = PageConfig(size=PageSize.LETTER, orientation=Orientation.LANDSCAPE)
        assert config.width == pytest.approx(279.4)
        assert config.height == pytest.approx(215.9)

    @pytest.mark.unit
    def test_chars_per_line_override(self):
        assert PageConfig(chars_per_line=50).chars_per_line_for(18) == 50

    @pytest.mark.unit
    @pytest.mark.parametrize("margin", [-1.0, 105.0])
    def test_invalid_margin(self, margin):
        with pytest.raises(ValueError):
            PageConfig(margin=margin)

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAPERKIT_PAGE_SIZE", "letter")
        monkeypatch.setenv("PAPERKIT_PAGE_MARGIN", "15")
        config = PageConfig.from_environment()
        assert config.size == PageSize.LETTER
        assert config.margin == 15.0

    @pytest.mark.unit
    def test_from_environment_unknown_size(self, monkeypatch):
        monkeypatch.setenv("PAPERKIT_PAGE_SIZE", "TABLOID")
        assert PageConfig.from_environment().size == PageSize.A4


class TestSynthesize:
    """Tests for LayoutSynthesizer.synthesize."""

    @pytest.mark.unit
    def test_block_order(self, sample_analysis):
        """Title, subtitle, metadata, sections, then questions."""
        result = LayoutSynthesizer().synthesize(sample_analysis)
        ids = [e.id for e in result.template.pages[0].elements]
        assert ids == [
            "documentTitle",
            "documentSubtitle",
            "documentInfo",
            "section_0_header",
            "section_0_content",
            "section_1_header",
            "section_1_content",
            "question_0_mc",
            "question_1_content",
            "question_1_answer",
        ]

    @pytest.mark.unit
    def test_metadata_line(self, sample_analysis):
        result = LayoutSynthesizer().synthesize(sample_analysis)
        info = result.template.find("documentInfo")
        assert info.content == "Author: Ms. Tran | Course: Biology 101"

    @pytest.mark.unit
    def test_single_column_geometry(self, sample_analysis):
        """Every element starts at the margin and spans the content width."""
        config = PageConfig()
        result = LayoutSynthesizer().synthesize(sample_analysis, config)
        for element in result.template.elements():
            assert element.position.x == config.margin
            assert element.size.width == pytest.approx(config.content_width)
            assert element.size.height > 0

    @pytest.mark.unit
    def test_cursor_never_overlaps(self, sample_analysis):
        """Each element starts below the previous one."""
        elements = LayoutSynthesizer().synthesize(sample_analysis).template.elements()
        for previous, current in zip(elements, elements[1:]):
            assert current.position.y > previous.bottom

    @pytest.mark.unit
    def test_spacing_by_category(self, sample_analysis):
        """Title spacing > header spacing > question spacing."""
        config = PageConfig()
        template = LayoutSynthesizer().synthesize(sample_analysis, config).template
        title = template.find("documentTitle")
        subtitle = template.find("documentSubtitle")
        mc = template.find("question_0_mc")
        stem = template.find("question_1_content")

        assert subtitle.position.y - title.bottom == pytest.approx(config.spacing.title)
        assert stem.position.y - mc.bottom == pytest.approx(config.spacing.question)
        assert config.spacing.title > config.spacing.header > config.spacing.question

    @pytest.mark.unit
    def test_multiple_choice_is_one_group(self, sample_analysis):
        """Options live on one grouped element sized by option count."""
        template = LayoutSynthesizer().synthesize(sample_analysis).template
        group = template.find("question_0_mc")

        assert group.type == ElementType.MULTIPLE_CHOICE
        assert group.options == ["Oxygen", "Carbon dioxide", "Nitrogen"]
        assert group.correct_answer == "Carbon dioxide"
        assert group.size.height == pytest.approx(3 * 25 + 40)
        assert not any(e.id.startswith("option") for e in template.elements())

    @pytest.mark.unit
    def test_answer_spaces(self):
        analysis = sanitize(
            {"extractedQuestions": [
                {"content": "Define osmosis.", "type": "short_answer"},
                {"content": "Discuss.", "type": "essay"},
                {"content": "The sky is blue.", "type": "true_false"},
            ]}
        )
        template = LayoutSynthesizer().synthesize(analysis).template

        short = template.find("question_0_answer")
        essay = template.find("question_1_answer")
        true_false = template.find("question_2_tf")
        assert short.size.height == 40 and short.max_length > 0
        assert essay.size.height == 80 and essay.word_limit > 0
        assert true_false.options == ["True", "False"]
        assert template.find("question_2_answer") is None

    @pytest.mark.unit
    def test_empty_analysis(self):
        """An empty analysis still yields a titled single page."""
        result = LayoutSynthesizer().synthesize(sanitize({}))
        elements = result.template.pages[0].elements
        assert [e.id for e in elements] == ["documentTitle"]
        assert elements[0].content == "Untitled Document"
        assert result.metadata.total_fields == 1

    @pytest.mark.unit
    def test_deterministic(self, sample_analysis):
        synthesizer = LayoutSynthesizer()
        assert synthesizer.synthesize(sample_analysis) == synthesizer.synthesize(
            sample_analysis
        )

    @pytest.mark.unit
    def test_metadata(self, sample_analysis):
        result = LayoutSynthesizer().synthesize(sample_analysis)
        last = result.template.elements()[-1]
        assert result.metadata.question_count == 2
        assert result.metadata.section_count == 2
        assert result.metadata.total_fields == len(result.bindings)
        assert result.metadata.estimated_height == pytest.approx(last.bottom + 20)


class TestOverflow:
    """Tests for the overflow policies."""

    @pytest.mark.unit
    def test_extend_keeps_one_page(self):
        analysis = sanitize(_sections(30))
        config = PageConfig()
        result = LayoutSynthesizer().synthesize(analysis, config)

        assert len(result.template.pages) == 1
        assert result.metadata.estimated_height > config.height

    @pytest.mark.unit
    def test_paginate_starts_new_pages(self):
        analysis = sanitize(_sections(30))
        config = PageConfig(overflow=OverflowPolicy.PAGINATE)
        result = LayoutSynthesizer().synthesize(analysis, config)
        pages = result.template.pages

        assert len(pages) > 1
        assert [p.number for p in pages] == list(range(1, len(pages) + 1))
        for page in pages:
            assert page.elements[0].position.y == config.margin
            assert all(e.bottom <= config.content_bottom for e in page.elements)
        assert result.metadata.page_count == len(pages)


class TestBinding:
    """Tests for data bindings and re-binding."""

    @pytest.mark.unit
    def test_binding_paths(self, sample_analysis):
        result = LayoutSynthesizer().synthesize(sample_analysis)
        paths = {b.path: b.target_element_id for b in result.bindings}

        assert paths["extractedContent.title"] == "documentTitle"
        assert paths["documentStructure.sections[0].content"] == "section_0_content"
        assert paths["extractedQuestions[0].options"] == "question_0_mc"
        assert paths["extractedQuestions[1].content"] == "question_1_content"
        assert result.template.find("section_1_content").data_binding_path == (
            "documentStructure.sections[1].content"
        )

    @pytest.mark.unit
    def test_paths_resolve_against_source(self, sample_analysis):
        """Every binding path resolves to its fallback value in the source."""
        result = LayoutSynthesizer().synthesize(sample_analysis)
        data = sample_analysis.to_data()
        for binding in result.bindings:
            assert resolve_path(data, binding.path) == binding.fallback_value

    @pytest.mark.unit
    def test_bind_fresh_data(self, sample_analysis):
        """bind() re-populates a copy without touching the original."""
        result = LayoutSynthesizer().synthesize(sample_analysis)
        data = sample_analysis.to_data()
        data["extractedContent"]["title"] = "Retake Quiz"
        data["extractedQuestions"][0]["options"] = ["A", "B", "C"]

        bound = bind(result.template, result.bindings, data)

        assert bound.find("documentTitle").content == "Retake Quiz"
        assert bound.find("question_0_mc").options == ["A", "B", "C"]
        assert result.template.find("documentTitle").content == "Photosynthesis Quiz"

    @pytest.mark.unit
    def test_bind_uses_fallback(self, sample_analysis):
        """Missing paths fall back to the synthesized values."""
        result = LayoutSynthesizer().synthesize(sample_analysis)
        bound = bind(result.template, result.bindings, {})
        assert bound == result.template


class TestResolvePath:
    """Tests for resolve_path."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("a", {"b": [1, {"c": "x"}]}),
            ("a.b[0]", 1),
            ("a.b[1].c", "x"),
            ("a.b[5]", None),
            ("a.missing", None),
            ("a.b.c", None),
        ],
    )
    def test_paths(self, path, expected):
        assert resolve_path({"a": {"b": [1, {"c": "x"}]}}, path) == expected
