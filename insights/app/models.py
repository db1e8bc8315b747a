"""Data models shared by the insight pipeline and the analyze endpoint.

Insight results are immutable value objects. They serialize with the
camelCase field names the journaling client stores (``motivationalInsight``,
``actionSteps`` ...) and accept either spelling on input.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestKind(str, Enum):
    """Kinds of generation requests the pipeline issues."""
    WEEKLY = "weekly"
    ENTRY = "entry"
    QUOTE = "quote"


Trend = Literal["rising", "falling", "flat"]


class _InsightModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class EntryRecord(BaseModel):
    """A journal entry as handed over by the journaling application.

    Numeric fields (a mood of ``3``, a tag of ``2024``) are accepted as text.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    content: str = ""
    date: str = ""
    title: Optional[str] = None
    mood: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class EmotionalPattern(_InsightModel):
    """An emotion observed across the week and where it is heading."""
    emotion: str = ""
    trend: Trend = "flat"
    context: str = ""
    frequency: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class WeeklyInsight(_InsightModel):
    """Insight over a week of journal entries."""
    themes: list[str] = Field(default_factory=list)
    emotional_patterns: list[EmotionalPattern] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    motivational_insight: str = ""
    action_steps: list[str] = Field(default_factory=list, max_length=5)


class EntryInsight(_InsightModel):
    """Insight over a single journal entry."""
    key_themes: list[str] = Field(default_factory=list)
    emotional_insights: list[str] = Field(default_factory=list)
    personal_growth: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    motivational_note: str = ""
    reflection: str = ""


class AnalyzeRequest(BaseModel):
    """Request body of ``POST /api/analyze``."""
    type: RequestKind
    entries: Optional[list[EntryRecord]] = None
    entry: Optional[EntryRecord] = None


class AnalyzeResponse(BaseModel):
    """Successful response body of ``POST /api/analyze``."""
    content: str
    type: RequestKind
