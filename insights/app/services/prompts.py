"""Prompt construction for the generation endpoint.

Prompts live server-side only. Entries are clipped before they are embedded
so a single oversized journal cannot blow up the request.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from insights.app.exceptions import InvalidRequestError
from insights.app.models import EntryRecord, RequestKind


MAX_WEEKLY_ENTRIES = 14
MAX_TITLE_CHARS = 200
MAX_DATE_CHARS = 50
MAX_MOOD_CHARS = 50
MAX_CONTENT_CHARS = 5000
MAX_TAGS = 10
MAX_TAG_CHARS = 50

EntryLike = Union[EntryRecord, Mapping[str, Any]]

WEEKLY_SYSTEM_PROMPT = """You are Dr. Maya Chen, a world-renowned clinical psychologist and emotional intelligence expert with 25 years of experience. You specialize in cognitive behavioral therapy and positive psychology, and have helped thousands of people through journaling therapy.

Your approach is:
- Deeply empathetic and validating
- Insightful with pattern recognition
- Practical with actionable advice
- Encouraging while being honest
- Focused on growth and self-awareness"""

ENTRY_SYSTEM_PROMPT = (
    "You are Dr. Maya Chen, an expert AI therapist with deep expertise in emotional "
    "intelligence and personal growth. You provide insightful, compassionate analysis "
    "of journal entries that helps people understand themselves better."
)

QUOTE_SYSTEM_PROMPT = "You are a wise mentor who creates inspiring quotes."

QUOTE_USER_PROMPT = (
    "Generate a short, inspiring quote about journaling, self-reflection, or personal "
    "growth. Keep it under 20 words. Return only the quote, no quotation marks."
)

_WEEKLY_USER_TEMPLATE = """
Conduct a COMPREHENSIVE PSYCHOLOGICAL ANALYSIS of these {count} journal entries from the past week.

JOURNAL ENTRIES:
{entries}

ANALYZE DEEPLY:
1. EMOTIONAL LANDSCAPE - Map their full emotional journey this week
2. BEHAVIORAL PATTERNS - Identify recurring thoughts, actions, triggers
3. HIDDEN STRENGTHS - What resilience and capabilities do they show?
4. GROWTH EDGES - Where are they ready to evolve?
5. CORE NEEDS - What fundamental needs are expressed?

Provide your analysis in this EXACT JSON structure (no markdown, no code blocks):
{{
  "themes": ["3-5 deep, meaningful themes discovered in their entries"],
  "emotionalPatterns": [
    {{
      "emotion": "primary emotion",
      "frequency": 0.8,
      "trend": "increasing/decreasing/stable",
      "context": "When and why this emotion appears"
    }}
  ],
  "achievements": ["Meaningful accomplishments and victories to celebrate"],
  "improvements": ["Gentle, specific areas for growth"],
  "suggestions": ["Personalized, actionable advice based on their patterns"],
  "motivationalInsight": "A deeply personal, encouraging message (2-3 sentences) about their week.",
  "actionSteps": ["3-5 specific, practical steps they can take this week"]
}}

Be warm, wise, and genuinely helpful.

IMPORTANT: Return ONLY valid JSON. No markdown code blocks, no explanation text."""

_ENTRY_USER_TEMPLATE = """
Analyze this journal entry with deep psychological insight. Understand the emotions, thoughts, and underlying themes.

JOURNAL ENTRY:
{entry}

Provide your analysis in this EXACT JSON structure (no markdown, no code blocks):
{{
  "keyThemes": ["2-3 core themes in this entry"],
  "emotionalInsights": ["Deep observations about their emotional state"],
  "personalGrowth": ["Growth opportunities and strengths you observe"],
  "patterns": ["Behavioral or thought patterns noticed"],
  "suggestions": ["2-3 personalized, actionable suggestions"],
  "motivationalNote": "A warm, encouraging message that acknowledges their feelings (1-2 sentences)",
  "reflection": "A thought-provoking reflection to help them see their experience differently (1 sentence)"
}}

IMPORTANT: Return ONLY valid JSON."""


def _clip(value: Any, limit: int, default: str = "") -> str:
    text = str(value) if value else default
    return text[:limit]


def sanitize_entry(entry: EntryLike) -> EntryRecord:
    """Clip an entry's fields to the sizes embedded in prompts."""
    if not isinstance(entry, EntryRecord):
        entry = EntryRecord.model_validate(entry)
    return EntryRecord(
        title=_clip(entry.title, MAX_TITLE_CHARS, "Untitled"),
        date=_clip(entry.date, MAX_DATE_CHARS),
        mood=_clip(entry.mood, MAX_MOOD_CHARS, "not specified"),
        content=_clip(entry.content, MAX_CONTENT_CHARS),
        tags=[_clip(tag, MAX_TAG_CHARS) for tag in entry.tags[:MAX_TAGS]],
    )


def format_entry(entry: EntryRecord, index: Optional[int] = None) -> str:
    """Render an already sanitized entry as prompt text."""
    lines = []
    if index is not None:
        lines.append(f"Entry {index}:")
    lines.extend([
        f"Date: {entry.date}",
        f"Title: {entry.title}",
        f"Mood: {entry.mood}",
        f"Content: {entry.content}",
        f"Tags: {', '.join(entry.tags) or 'none'}",
    ])
    if index is not None:
        lines.append("---")
    return "\n".join(lines)


def build_weekly_prompt(entries: Sequence[EntryLike]) -> str:
    sanitized = [sanitize_entry(e) for e in entries[:MAX_WEEKLY_ENTRIES]]
    entries_text = "\n\n".join(
        format_entry(entry, index) for index, entry in enumerate(sanitized, start=1)
    )
    return _WEEKLY_USER_TEMPLATE.format(count=len(sanitized), entries=entries_text)


def build_entry_prompt(entry: EntryLike) -> str:
    return _ENTRY_USER_TEMPLATE.format(entry=format_entry(sanitize_entry(entry)))


def build_messages(kind: Union[RequestKind, str], payload: Optional[Dict[str, Any]] = None) -> List[Dict[str, str]]:
    """Build the role-tagged turns for one generation request.

    Args:
        kind: Request kind (weekly, entry or quote)
        payload: ``{"entries": [...]}`` for weekly, ``{"entry": ...}`` for entry

    Returns:
        ``[system, user]`` messages

    Raises:
        InvalidRequestError: If the kind is unknown or its payload is missing
    """
    try:
        kind = RequestKind(kind)
    except ValueError:
        raise InvalidRequestError("Invalid request type")
    payload = payload or {}

    if kind is RequestKind.WEEKLY:
        entries = payload.get("entries")
        if not entries:
            raise InvalidRequestError("No entries provided")
        system_prompt, user_prompt = WEEKLY_SYSTEM_PROMPT, build_weekly_prompt(entries)
    elif kind is RequestKind.ENTRY:
        entry = payload.get("entry")
        if not entry:
            raise InvalidRequestError("No entry provided")
        system_prompt, user_prompt = ENTRY_SYSTEM_PROMPT, build_entry_prompt(entry)
    else:
        system_prompt, user_prompt = QUOTE_SYSTEM_PROMPT, QUOTE_USER_PROMPT

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
