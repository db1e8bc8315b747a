"""Insight service: the entry point the journaling application calls.

Composes the request queue and the response sanitizer behind three
operations (weekly summary, entry summary, motivational quote) plus a
read-only status. Only a caller contract violation (an empty entry list)
raises; every other failure resolves to ``None`` with ``last_error`` set,
and the quote always resolves to some text.
"""

import random
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

import httpx

from insights.app.core.config import Settings, settings as default_settings
from insights.app.core.logging import get_logger
from insights.app.exceptions import EmptyEntriesError
from insights.app.models import EntryInsight, EntryRecord, RequestKind, WeeklyInsight
from insights.app.providers.factory import create_provider
from insights.app.services.backoff import BackoffPolicy
from insights.app.services.generation import (
    GatedGenerationClient,
    GenerationClient,
    RemoteGenerationClient,
)
from insights.app.services.rate_gate import get_rate_gate
from insights.app.services.request_queue import RequestQueue
from insights.app.services.sanitizer import parse_entry, parse_weekly

logger = get_logger(__name__)

ERROR_NO_RESPONSE = "API error: No response received from AI service"

FALLBACK_QUOTES = (
    "Every word you write is a step toward understanding yourself better.",
    "Your journal is a mirror reflecting your growth and wisdom.",
    "In the pages of your journal, you discover the author of your own story.",
    "Each entry is a conversation with your future self.",
    "Writing is thinking on paper, and thinking is growing.",
    "Your thoughts matter. Your feelings are valid. Your story is worth telling.",
    "In moments of reflection, we find the seeds of transformation.",
)

EntryLike = Union[EntryRecord, Mapping[str, Any]]


@dataclass(frozen=True)
class InsightStatus:
    """Read-only diagnostics for the UI."""
    consecutive_failure_count: int
    last_error: Optional[str] = None


def _to_entry(entry: EntryLike) -> EntryRecord:
    if isinstance(entry, EntryRecord):
        return entry
    return EntryRecord.model_validate(entry)


def clean_quote(text: Optional[str]) -> str:
    """Trim whitespace and stray surrounding quotation marks from a generated quote."""
    if not text:
        return ""
    return text.strip().strip('"“”').strip()


class InsightService:
    """Facade over the request queue and the sanitizer."""

    def __init__(self, queue: RequestQueue, rng: Optional[random.Random] = None):
        self.queue = queue
        self._rng = rng or random.Random()

    @property
    def last_error(self) -> Optional[str]:
        return self.queue.last_error

    def _no_text(self) -> None:
        if not self.queue.last_error:
            self.queue.last_error = ERROR_NO_RESPONSE

    async def summarize_week(self, entries: Sequence[EntryLike]) -> Optional[WeeklyInsight]:
        """Summarize a week of entries.

        Raises:
            EmptyEntriesError: If ``entries`` is empty
        """
        if not entries:
            raise EmptyEntriesError()

        records = [_to_entry(entry) for entry in entries]
        text = await self.queue.submit(RequestKind.WEEKLY, {"entries": records})
        if not text:
            self._no_text()
            return None
        return parse_weekly(text)

    async def summarize_entry(self, entry: EntryLike) -> Optional[EntryInsight]:
        """Summarize a single entry."""
        text = await self.queue.submit(RequestKind.ENTRY, {"entry": _to_entry(entry)})
        if not text:
            self._no_text()
            return None
        return parse_entry(text)

    async def get_motivational_quote(self) -> str:
        """Return a generated quote, or one of the static quotes on any failure."""
        try:
            quote = clean_quote(await self.queue.submit(RequestKind.QUOTE))
        except Exception:
            logger.exception("Quote generation failed")
            quote = ""
        return quote or self._rng.choice(FALLBACK_QUOTES)

    def get_status(self) -> InsightStatus:
        return InsightStatus(
            consecutive_failure_count=self.queue.consecutive_failures,
            last_error=self.queue.last_error,
        )

    async def close(self) -> None:
        await self.queue.close()


def build_generation_client(
    config: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> GenerationClient:
    """Build the generation client selected by ``generation_mode``."""
    config = config or default_settings
    if config.generation_mode == "remote":
        return RemoteGenerationClient(config.analyze_url, http_client=http_client)
    return GatedGenerationClient(
        provider=create_provider(config, http_client),
        gate=get_rate_gate(),
        config=config,
    )


def create_insight_service(
    client: Optional[GenerationClient] = None,
    config: Optional[Settings] = None,
) -> InsightService:
    """Create an insight service wired from settings."""
    config = config or default_settings
    queue = RequestQueue(
        client or build_generation_client(config),
        policy=BackoffPolicy(
            base_delay_ms=config.queue_base_delay_ms,
            max_retries=config.queue_max_retries,
        ),
        max_schedule_waits=config.queue_max_schedule_waits,
    )
    return InsightService(queue)


# Global service instance
_insight_service: Optional[InsightService] = None


def get_insight_service() -> InsightService:
    """Get the process-wide insight service, creating it on first use."""
    global _insight_service
    if _insight_service is None:
        _insight_service = create_insight_service()
    return _insight_service


def reset_insight_service() -> None:
    """Reset the global insight service (mainly for tests)."""
    global _insight_service
    _insight_service = None
