"""Tests for PromptBuilder module."""

import pytest

from paperkit.prompt import PromptBuilder, PromptConfig, build_analysis_prompt


class TestPromptConfig:
    """Tests for PromptConfig dataclass."""

    @pytest.mark.unit
    def test_default_config(self):
        """Test default configuration values."""
        config = PromptConfig()
        assert config.include_schema is True
        assert config.additional_instructions is None


class TestPromptBuilder:
    """Tests for PromptBuilder class."""

    @pytest.mark.unit
    def test_build_quiz_english(self):
        """Quiz prompts carry quiz hints and the response shape."""
        prompt = PromptBuilder().build("quiz", "en")

        assert "QUIZ:" in prompt
        assert "Respond with JSON only" in prompt
        assert '"extractedQuestions"' in prompt

    @pytest.mark.unit
    def test_build_vietnamese(self):
        """Vietnamese prompts use Vietnamese fragments."""
        prompt = PromptBuilder().build("worksheet", "vi")

        assert "BÀI TẬP:" in prompt
        assert "Chỉ trả về JSON" in prompt

    @pytest.mark.unit
    def test_build_without_schema(self):
        """Schema can be omitted."""
        prompt = PromptBuilder(PromptConfig(include_schema=False)).build()

        assert "GENERAL DOCUMENT:" in prompt
        assert "documentStructure" not in prompt

    @pytest.mark.unit
    def test_additional_instructions(self):
        """Additional instructions are appended at the end."""
        prompt = build_analysis_prompt("general", "en", "Ignore page footers")
        assert prompt.endswith("ADDITIONAL INSTRUCTIONS:\nIgnore page footers")

    @pytest.mark.unit
    def test_unknown_document_type(self):
        """Unknown document types are rejected."""
        with pytest.raises(ValueError):
            PromptBuilder().build("novel", "en")
