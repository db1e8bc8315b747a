"""Recover structured insights from loosely formatted generator output.

The generator is asked for bare JSON but sometimes wraps it in a code fence
or drops the comma between two adjacent fields. Parsing goes through three
steps: ``strip_code_fence``, ``repair_json`` (a pure text pass) and
``json.loads``, followed by normalization into a fully populated model.

``parse_weekly`` and ``parse_entry`` never raise: irrecoverable input yields
a fixed fallback insight.
"""

import json
import re
from typing import Any, Callable, Dict, List, Optional, TypeVar

from pydantic import ValidationError

from insights.app.core.logging import get_logger
from insights.app.models import EmotionalPattern, EntryInsight, WeeklyInsight

logger = get_logger(__name__)

MAX_ACTION_STEPS = 5

_FENCE_OPEN = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```$")

# Adjacent quoted tokens with only whitespace between them: "a" "b"
_MISSING_COMMA = re.compile(r'"\s+"')

# Field pairs the generator is known to emit without a separator.
_KNOWN_BOUNDARIES = (
    ("motivationalInsight", "actionSteps"),
    ("motivationalNote", "reflection"),
)
_BOUNDARY_PATTERNS = [
    (
        re.compile(rf'"{first}":\s*"((?:[^"\\]|\\.)*)"\s+"{second}":'),
        first,
        second,
    )
    for first, second in _KNOWN_BOUNDARIES
]

_TRENDS = {
    "rising": "rising",
    "increasing": "rising",
    "up": "rising",
    "falling": "falling",
    "decreasing": "falling",
    "down": "falling",
    "flat": "flat",
    "stable": "flat",
    "steady": "flat",
}

WEEKLY_FALLBACK = WeeklyInsight(
    themes=["Personal Reflection", "Daily Experiences"],
    emotional_patterns=[
        EmotionalPattern(
            emotion="mixed",
            trend="flat",
            context="Various life experiences",
            frequency=0.5,
        )
    ],
    achievements=["Consistent journaling", "Self-reflection"],
    improvements=["Continue regular journaling"],
    suggestions=["Keep exploring your thoughts and feelings"],
    motivational_insight="Your commitment to journaling shows dedication to personal growth.",
    action_steps=["Continue daily journaling", "Reflect on patterns", "Set weekly goals"],
)

ENTRY_FALLBACK = EntryInsight(
    key_themes=["Self-Reflection", "Personal Experience"],
    emotional_insights=["You are processing your experiences with thoughtfulness"],
    personal_growth=["Your commitment to journaling shows self-awareness"],
    patterns=["Regular self-reflection and emotional processing"],
    suggestions=["Continue exploring your thoughts", "Trust your insights"],
    motivational_note="Your willingness to examine your inner world is a beautiful strength.",
    reflection="Each moment of self-reflection is a gift you give to your future self.",
)

InsightT = TypeVar("InsightT", WeeklyInsight, EntryInsight)


def strip_code_fence(text: str) -> str:
    """Trim the text and remove a surrounding ``` fence (with or without a language tag)."""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text, count=1)
        text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def repair_json(text: str) -> str:
    """Insert the commas the generator tends to drop between adjacent fields.

    Known field boundaries are repaired first, then every close quote that is
    followed by whitespace and another open quote gets a comma.
    """
    for pattern, first, second in _BOUNDARY_PATTERNS:
        text = pattern.sub(
            lambda m, a=first, b=second: f'"{a}": "{m.group(1)}",\n  "{b}":',
            text,
        )
    return _MISSING_COMMA.sub('",\n  "', text)


def _load_object(raw_text: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw_text:
        return None
    cleaned = repair_json(strip_code_fence(raw_text))
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError) as exc:
        logger.warning(f"Generated text is not valid JSON: {type(exc).__name__}: {exc}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Generated JSON is a {type(data).__name__}, expected an object")
        return None
    return data


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _text_list(value: Any) -> List[str]:
    """Default a missing list to ``[]``; null items are dropped, others kept as text."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        return [_text(value)]
    return [_text(item) for item in value if item is not None]


def _trend(value: Any) -> str:
    return _TRENDS.get(_text(value).strip().lower(), "flat")


def _frequency(value: Any) -> Optional[float]:
    try:
        frequency = float(value)
    except (TypeError, ValueError):
        return None
    return min(1.0, max(0.0, frequency))


def _emotional_patterns(value: Any) -> List[EmotionalPattern]:
    if not isinstance(value, list):
        return []
    patterns = []
    for item in value:
        if isinstance(item, dict):
            patterns.append(EmotionalPattern(
                emotion=_text(item.get("emotion")),
                trend=_trend(item.get("trend")),
                context=_text(item.get("context")),
                frequency=_frequency(item.get("frequency")),
            ))
        elif isinstance(item, str):
            patterns.append(EmotionalPattern(emotion=item))
    return patterns


def _build_weekly(data: Dict[str, Any]) -> WeeklyInsight:
    return WeeklyInsight(
        themes=_text_list(data.get("themes")),
        emotional_patterns=_emotional_patterns(data.get("emotionalPatterns")),
        achievements=_text_list(data.get("achievements")),
        improvements=_text_list(data.get("improvements")),
        suggestions=_text_list(data.get("suggestions")),
        motivational_insight=_text(data.get("motivationalInsight")),
        action_steps=_text_list(data.get("actionSteps"))[:MAX_ACTION_STEPS],
    )


def _build_entry(data: Dict[str, Any]) -> EntryInsight:
    return EntryInsight(
        key_themes=_text_list(data.get("keyThemes")),
        emotional_insights=_text_list(data.get("emotionalInsights")),
        personal_growth=_text_list(data.get("personalGrowth")),
        patterns=_text_list(data.get("patterns")),
        suggestions=_text_list(data.get("suggestions")),
        motivational_note=_text(data.get("motivationalNote")),
        reflection=_text(data.get("reflection")),
    )


def _parse(
    raw_text: Optional[str],
    build: Callable[[Dict[str, Any]], InsightT],
    fallback: InsightT,
) -> InsightT:
    data = _load_object(raw_text)
    if data is None:
        return fallback.model_copy(deep=True)
    try:
        return build(data)
    except ValidationError as exc:
        logger.warning(f"Generated JSON does not fit {type(fallback).__name__}: {exc}")
        return fallback.model_copy(deep=True)


def parse_weekly(raw_text: Optional[str]) -> WeeklyInsight:
    """Parse generated text into a WeeklyInsight, falling back on malformed input."""
    return _parse(raw_text, _build_weekly, WEEKLY_FALLBACK)


def parse_entry(raw_text: Optional[str]) -> EntryInsight:
    """Parse generated text into an EntryInsight, falling back on malformed input."""
    return _parse(raw_text, _build_entry, ENTRY_FALLBACK)
