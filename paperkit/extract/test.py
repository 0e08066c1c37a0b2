"""Tests for JSON extraction."""

import json

import pytest

from paperkit.core.errors import NoJSONFound

from .lib import (
    ExtractionStrategy,
    clean_text,
    extract,
    extract_json,
    iter_candidates,
    parse_json,
    repair_json,
    salvage_text,
)


def fence_wrap(text: str) -> str:
    return f"```json\n{text}\n```"


class TestExtractStrategies:
    """Each strategy is tried in order; the first match wins."""

    @pytest.mark.unit
    def test_tagged_fence(self):
        """A ```json block returns exactly its inner object text."""
        inner = '{"documentStructure": {"type": "quiz", "sections": []}}'
        raw = f"Here is the analysis:\n```json\n{inner}\n```\nLet me know."

        result = extract(raw)

        assert result.text == inner
        assert result.strategy == ExtractionStrategy.TAGGED_FENCE

    @pytest.mark.unit
    def test_tagged_fence_case_insensitive(self):
        """The json tag may be upper case."""
        assert extract_json('```JSON\n{"a": 1}\n```') == '{"a": 1}'

    @pytest.mark.unit
    def test_untagged_fence_with_object(self):
        """An untagged fence holding an object is used."""
        raw = 'Output:\n```\n  {"a": [1, 2]}  \n```'
        result = extract(raw)
        assert result.text == '{"a": [1, 2]}'
        assert result.strategy == ExtractionStrategy.BRACE_FENCE

    @pytest.mark.unit
    def test_untagged_fence_without_object_is_skipped(self):
        """Fences that do not hold an object fall through to brace search."""
        raw = '```\nprint("hi")\n```\nResult: {"ok": true}'
        result = extract(raw)
        assert result.text == '{"ok": true}'
        assert result.strategy == ExtractionStrategy.OUTER_BRACES

    @pytest.mark.unit
    def test_outer_braces_are_largest(self):
        """Brace search spans from the first '{' to the last '}'."""
        raw = 'prefix {"a": {"b": 1}} middle {"c": 2} suffix'
        assert extract_json(raw) == '{"a": {"b": 1}} middle {"c": 2}'

    @pytest.mark.unit
    def test_line_block_candidate(self):
        """Line-bounded objects are offered after the outer-brace candidate."""
        raw = 'note {broken\n{"a": 1}\ntrailing } text'
        strategies = [c.strategy for c in iter_candidates(raw)]
        assert strategies == [
            ExtractionStrategy.OUTER_BRACES,
            ExtractionStrategy.LINE_BLOCK,
        ]

    @pytest.mark.unit
    def test_no_json(self):
        """Text without braces raises NoJSONFound."""
        with pytest.raises(NoJSONFound):
            extract("Sorry, I cannot read this document.")

    @pytest.mark.unit
    def test_empty_input(self):
        """Empty input raises NoJSONFound."""
        with pytest.raises(NoJSONFound):
            extract("")

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "obj",
        [
            {},
            {"a": 1},
            {"nested": {"list": [1, "two", None, True]}, "text": "line\nbreak"},
            {"documentStructure": {"sections": [{"content": "```code```"}]}},
        ],
    )
    def test_fence_round_trip(self, obj):
        """extract(fence_wrap(O)) returns serialize(O)."""
        for serialized in (json.dumps(obj), json.dumps(obj, indent=2)):
            assert extract_json(fence_wrap(serialized)) == serialized


class TestParseJson:
    """Tests for parse_json and repair."""

    @pytest.mark.unit
    def test_parses_first_candidate(self):
        """The decoded object and its candidate are returned."""
        parsed, candidate = parse_json(fence_wrap('{"a": 1}'))
        assert parsed == {"a": 1}
        assert candidate.strategy == ExtractionStrategy.TAGGED_FENCE

    @pytest.mark.unit
    def test_repairs_trailing_commas(self):
        """Trailing commas are removed."""
        parsed, _ = parse_json(fence_wrap('{"a": [1, 2,], "b": 3,}'))
        assert parsed == {"a": [1, 2], "b": 3}

    @pytest.mark.unit
    def test_falls_back_to_later_candidate(self):
        """An unparseable outer candidate falls through to a line block."""
        raw = 'note {broken\n{"a": 1}\ntrailing } text'
        parsed, candidate = parse_json(raw)
        assert parsed == {"a": 1}
        assert candidate.strategy == ExtractionStrategy.LINE_BLOCK

    @pytest.mark.unit
    def test_rejects_non_objects(self):
        """Arrays are not accepted as analysis objects."""
        with pytest.raises(NoJSONFound):
            parse_json("```json\n[1, 2]\n```")

    @pytest.mark.unit
    def test_repair_unquoted_keys_and_literals(self):
        """Unquoted keys and Python literals are repaired."""
        assert repair_json("{a: True, b: None}") == {"a": True, "b": None}

    @pytest.mark.unit
    def test_repair_balanced_prefix(self):
        """Trailing garbage after a balanced object is ignored."""
        assert repair_json('{"a": "}"} and more}') == {"a": "}"}

    @pytest.mark.unit
    def test_single_quoted_strings(self):
        """Single-quoted keys and values become JSON strings."""
        parsed, _ = parse_json("{'title': 'Quiz'}")
        assert parsed == {"title": "Quiz"}

    @pytest.mark.unit
    def test_single_quotes_keep_inner_double_quotes(self):
        assert repair_json("{'q': 'Say \"hi\"', 'a': \"it's\"}") == {
            "q": 'Say "hi"',
            "a": "it's",
        }

    @pytest.mark.unit
    def test_closes_missing_braces(self):
        """Objects missing closing braces are completed."""
        parsed, _ = parse_json('{"extractedContent": {"title": "Quiz"}')
        assert parsed == {"extractedContent": {"title": "Quiz"}}

    @pytest.mark.unit
    def test_truncated_completion(self):
        """A completion cut off mid-string is closed at the cut."""
        raw = 'Here you go:\n{"documentStructure": {"sections": [{"content": "Read th'
        parsed, candidate = parse_json(raw)
        assert parsed["documentStructure"]["sections"] == [{"content": "Read th"}]
        assert candidate.text.startswith('{"documentStructure"')

    @pytest.mark.unit
    def test_repair_failure(self):
        """Hopeless input returns None."""
        assert repair_json("{not json at all") is None


class TestSalvage:
    """Tests for plain-text salvage."""

    @pytest.mark.unit
    def test_clean_text(self):
        """Fences and escapes are removed."""
        assert clean_text('```json\nA\\n"B\\"  C\n```') == 'A\n"B" C'

    @pytest.mark.unit
    def test_salvage_filters_lines(self):
        """Short lines, braces and json mentions are dropped."""
        raw = "\n".join(
            [
                "Short",
                "Here is the JSON you asked for",
                '{"a": 1}',
                "Chapter 1 covers fractions and decimals.",
                "Exercise 2 asks for long division.",
            ]
        )
        assert salvage_text(raw) == [
            "Chapter 1 covers fractions and decimals.",
            "Exercise 2 asks for long division.",
        ]

    @pytest.mark.unit
    def test_salvage_limit(self):
        """At most max_lines lines are kept."""
        raw = "\n".join(f"Meaningful line number {i}" for i in range(20))
        assert len(salvage_text(raw)) == 10
        assert len(salvage_text(raw, max_lines=3)) == 3
