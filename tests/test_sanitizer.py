"""Tests for response sanitizing: fence stripping, JSON repair and fallbacks."""

import json

import pytest

from insights.app.models import EmotionalPattern, EntryInsight, WeeklyInsight
from insights.app.services.sanitizer import (
    ENTRY_FALLBACK,
    WEEKLY_FALLBACK,
    parse_entry,
    parse_weekly,
    repair_json,
    strip_code_fence,
)


WEEKLY_TEXT = json.dumps({
    "themes": ["Rest", "Friendship"],
    "emotionalPatterns": [
        {"emotion": "calm", "frequency": 0.6, "trend": "rising", "context": "Evening walks"},
    ],
    "achievements": ["Wrote every day"],
    "improvements": ["Sleep earlier"],
    "suggestions": ["Plan a quiet evening"],
    "motivationalInsight": "You are finding your rhythm.",
    "actionSteps": ["Walk twice", "Call a friend"],
})

ENTRY_TEXT = json.dumps({
    "keyThemes": ["Work"],
    "emotionalInsights": ["Relief after finishing"],
    "personalGrowth": ["Asking for help"],
    "patterns": ["Late-night worry"],
    "suggestions": ["Write tomorrow's plan"],
    "motivationalNote": "You did well today.",
    "reflection": "What helped most?",
})


class TestStripCodeFence:
    """Test fenced code block removal."""

    def test_plain_text_is_trimmed(self):
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'

    def test_fence_with_language_tag(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_without_language_tag(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_surrounded_by_whitespace(self):
        assert strip_code_fence('\n  ```json\n{"a": 1}\n```  \n') == '{"a": 1}'


class TestRepairJson:
    """Test the pre-parse comma repair."""

    def test_missing_comma_between_fields(self):
        broken = '{"a": "x"\n  "b": "y"}'

        assert json.loads(repair_json(broken)) == {"a": "x", "b": "y"}

    def test_known_boundary_without_separator(self):
        broken = '{"motivationalInsight": "Keep going." "actionSteps": ["Rest"]}'

        repaired = json.loads(repair_json(broken))

        assert repaired == {"motivationalInsight": "Keep going.", "actionSteps": ["Rest"]}

    def test_entry_boundary_without_separator(self):
        broken = '{"motivationalNote": "Well done."\n"reflection": "Why?"}'

        assert json.loads(repair_json(broken)) == {"motivationalNote": "Well done.", "reflection": "Why?"}

    def test_list_items_missing_comma(self):
        broken = '{"themes": ["one" "two"]}'

        assert json.loads(repair_json(broken)) == {"themes": ["one", "two"]}

    def test_valid_json_unchanged_semantics(self):
        assert json.loads(repair_json(WEEKLY_TEXT)) == json.loads(WEEKLY_TEXT)


class TestParseWeekly:
    """Test WeeklyInsight parsing and normalization."""

    def test_well_formed_text(self):
        insight = parse_weekly(WEEKLY_TEXT)

        assert insight.themes == ["Rest", "Friendship"]
        assert insight.emotional_patterns == [
            EmotionalPattern(emotion="calm", trend="rising", context="Evening walks", frequency=0.6)
        ]
        assert insight.achievements == ["Wrote every day"]
        assert insight.improvements == ["Sleep earlier"]
        assert insight.suggestions == ["Plan a quiet evening"]
        assert insight.motivational_insight == "You are finding your rhythm."
        assert insight.action_steps == ["Walk twice", "Call a friend"]

    def test_reparsing_serialized_result_is_stable(self):
        insight = parse_weekly(WEEKLY_TEXT)
        serialized = insight.model_dump_json(by_alias=True)

        assert parse_weekly(serialized) == insight

    def test_fenced_and_broken_text(self):
        text = (
            "```json\n"
            '{"themes": ["Rest"],\n'
            '"motivationalInsight": "Keep going."\n'
            '"actionSteps": ["Sleep"]}\n'
            "```"
        )

        insight = parse_weekly(text)

        assert insight.themes == ["Rest"]
        assert insight.motivational_insight == "Keep going."
        assert insight.action_steps == ["Sleep"]

    def test_missing_fields_are_defaulted(self):
        insight = parse_weekly('{"themes": ["Only themes"]}')

        assert insight.themes == ["Only themes"]
        assert insight.emotional_patterns == []
        assert insight.achievements == []
        assert insight.improvements == []
        assert insight.suggestions == []
        assert insight.motivational_insight == ""
        assert insight.action_steps == []

    def test_null_fields_are_defaulted(self):
        insight = parse_weekly('{"themes": null, "motivationalInsight": null}')

        assert insight.themes == []
        assert insight.motivational_insight == ""

    @pytest.mark.parametrize("raw, expected", [
        ("increasing", "rising"),
        ("decreasing", "falling"),
        ("stable", "flat"),
        ("Rising", "rising"),
        ("sideways", "flat"),
    ])
    def test_trend_vocabulary_normalized(self, raw, expected):
        text = json.dumps({"emotionalPatterns": [{"emotion": "joy", "trend": raw}]})

        assert parse_weekly(text).emotional_patterns[0].trend == expected

    def test_frequency_is_clamped(self):
        text = json.dumps({"emotionalPatterns": [{"emotion": "joy", "frequency": 3}]})

        assert parse_weekly(text).emotional_patterns[0].frequency == 1.0

    def test_action_steps_capped_at_five(self):
        text = json.dumps({"actionSteps": [f"step {i}" for i in range(8)]})

        assert parse_weekly(text).action_steps == [f"step {i}" for i in range(5)]

    @pytest.mark.parametrize("raw", [
        '{"themes": ["Rest", "Frien',
        "not json at all",
        "",
        None,
        '["a", "list"]',
    ])
    def test_irrecoverable_text_yields_fallback(self, raw):
        insight = parse_weekly(raw)

        assert insight == WEEKLY_FALLBACK
        assert insight.themes == ["Personal Reflection", "Daily Experiences"]
        for name in WeeklyInsight.model_fields:
            assert getattr(insight, name) is not None

    def test_fallback_is_a_copy(self):
        assert parse_weekly("oops") is not WEEKLY_FALLBACK

    def test_deeply_nested_text_yields_fallback(self):
        assert parse_weekly("[" * 100000) == WEEKLY_FALLBACK

    def test_values_kept_verbatim(self):
        text = json.dumps({
            "themes": ["  padded  ", "", "Rest"],
            "motivationalInsight": " Keep going.\n",
        })

        insight = parse_weekly(text)

        assert insight.themes == ["  padded  ", "", "Rest"]
        assert insight.motivational_insight == " Keep going.\n"

    def test_null_items_dropped_and_numbers_coerced(self):
        text = json.dumps({"themes": ["Rest", None, 3], "motivationalInsight": 7})

        insight = parse_weekly(text)

        assert insight.themes == ["Rest", "3"]
        assert insight.motivational_insight == "7"


class TestParseEntry:
    """Test EntryInsight parsing and normalization."""

    def test_well_formed_text(self):
        insight = parse_entry(ENTRY_TEXT)

        assert insight == EntryInsight(
            key_themes=["Work"],
            emotional_insights=["Relief after finishing"],
            personal_growth=["Asking for help"],
            patterns=["Late-night worry"],
            suggestions=["Write tomorrow's plan"],
            motivational_note="You did well today.",
            reflection="What helped most?",
        )

    def test_missing_fields_are_defaulted(self):
        insight = parse_entry('{"keyThemes": ["Work"]}')

        assert insight.key_themes == ["Work"]
        assert insight.emotional_insights == []
        assert insight.motivational_note == ""
        assert insight.reflection == ""

    def test_invalid_text_yields_fallback(self):
        insight = parse_entry("```json\n{\"keyThemes\": [\n```")

        assert insight == ENTRY_FALLBACK
        for name in EntryInsight.model_fields:
            assert getattr(insight, name) is not None

    def test_deeply_nested_text_yields_fallback(self):
        assert parse_entry('{"a":' * 100000) == ENTRY_FALLBACK
